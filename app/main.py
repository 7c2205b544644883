"""
Streamlit Frontend for Expense Tracker

The user interface for recording daily expenses and seeing a year of
spending at a glance.

DESIGN PRINCIPLES:
1. Recording an expense takes one tap (quick add) or one short form
2. The screen reacts immediately; storage catches up in the background
3. Clear error messages in simple language
4. The last chosen view is remembered

Streamlit reruns this script on every interaction, but the quick-add
timer must outlive a rerun. All domain coroutines therefore run on one
long-lived event loop in a background thread, and the script only
submits work to it.
"""

import asyncio
import threading
from datetime import date
from typing import Any, Callable, Optional

import streamlit as st

from expense_tracker.audit import configure_logging
from expense_tracker.cache import UndoResult
from expense_tracker.config import validate_all_settings
from expense_tracker.models.auth import Principal
from expense_tracker.models.expense import DEFAULT_CATEGORIES, ExpenseCategory
from expense_tracker.orchestrator import AppComponents, create_app_components, create_store
from expense_tracker.reports import INTENSITY_COLORS, build_heatmap, heatmap_range
from expense_tracker.services.auth import (
    AuthError,
    sign_in_error_message,
    sign_up_error_message,
)
from expense_tracker.services.storage import DocumentStore, StorageError
from expense_tracker.utils.budget import format_daily_budget, get_daily_budget
from expense_tracker.utils.currency import format_currency
from expense_tracker.utils.dates import format_date_for_display


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
    .pending {
        color: #a3a3a3;
        font-style: italic;
    }
    .savings-amount.positive { color: #16a34a; font-weight: bold; }
    .savings-amount.negative { color: #dc2626; font-weight: bold; }
    .heatmap-grid {
        display: grid;
        grid-template-columns: repeat(auto-fill, 14px);
        gap: 3px;
        margin: 10px 0;
    }
    .heatmap-cell {
        width: 14px;
        height: 14px;
        border-radius: 3px;
    }
    .heatmap-cell.empty { border: 1px solid #e5e5e5; }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One event loop for the whole server process, running in a daemon thread."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, name="expense-tracker-loop", daemon=True)
    thread.start()
    return loop


def run_async(coro):
    """Run a coroutine on the app's event loop and wait for its result."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


def call_on_loop(func: Callable[..., Any], *args: Any) -> Any:
    """Run a plain callable on the loop thread and wait for its result."""
    async def _call():
        return func(*args)
    return run_async(_call())


@st.cache_resource
def get_store() -> DocumentStore:
    """Get or create the document store (shared by all sessions)."""
    configure_logging()
    return create_store()


def get_components() -> AppComponents:
    """Get or create this session's components."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components(store=get_store())
    return st.session_state.components


def get_user_agent() -> Optional[str]:
    context = getattr(st, "context", None)
    if context is None:
        return None
    return context.headers.get("User-Agent")


def oidc_configured() -> bool:
    """True when Streamlit's built-in OIDC login has an [auth] section."""
    if not hasattr(st, "login"):
        return False
    try:
        return "auth" in st.secrets
    except FileNotFoundError:
        return False


def main():
    """Main application entry point."""
    components = get_components()
    principal = components.auth.current_principal

    if principal is None and oidc_configured() and st.user.is_logged_in:
        principal = run_async(components.auth.sign_in_with_provider(
            provider="oidc",
            subject=st.user.get("sub"),
            email=st.user.get("email"),
            display_name=st.user.get("name"),
        ))

    if principal is None:
        render_login_page(components)
        return

    if "view" not in st.session_state:
        st.session_state.view = components.preferences.get_preferred_view(get_user_agent())

    # Sidebar navigation
    st.sidebar.title("💰 Expense Tracker")
    st.sidebar.markdown(f"Signed in as **{principal.label}**")
    st.sidebar.markdown("---")

    views = {"expenses": "📝 Expenses", "heatmap": "📊 Heatmap"}
    view = st.sidebar.radio(
        "View:",
        list(views),
        index=list(views).index(st.session_state.view),
        format_func=views.get,
    )
    if view != st.session_state.view:
        st.session_state.view = view
        components.preferences.set_preferred_view(view)

    st.sidebar.markdown("---")
    if st.sidebar.button("Sign Out"):
        sign_out(components, principal)
        st.rerun()

    with st.sidebar.expander("⚙️ Settings"):
        render_settings(components)

    st.title(f"Welcome, {principal.label}")

    if view == "expenses":
        render_expenses_page(components, principal)
    else:
        render_heatmap_page(components, principal)


def sign_out(components: AppComponents, principal: Principal) -> None:
    buffer = st.session_state.pop("quick_add", None)
    if buffer is not None:
        call_on_loop(buffer.close)
    st.session_state.pop("quick_add_state", None)
    call_on_loop(components.cache.clear)
    run_async(components.auth.sign_out())
    if principal.provider != "password" and oidc_configured():
        st.logout()


# =============================================================================
# LOGIN
# =============================================================================

def render_login_page(components: AppComponents):
    """Render sign in and account creation."""
    st.title("💰 Expense Tracker")
    st.markdown("Track your daily spending in a few taps.")

    if oidc_configured():
        if st.button("🔑 Continue with your account provider", type="primary"):
            st.login()
        st.markdown("---")

    sign_in_tab, sign_up_tab = st.tabs(["Sign In", "Create Account"])

    with sign_in_tab:
        with st.form("sign_in_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", type="primary")

        if submitted:
            try:
                run_async(components.auth.sign_in(email, password))
                st.rerun()
            except AuthError as e:
                st.error(sign_in_error_message(e))

    with sign_up_tab:
        with st.form("sign_up_form"):
            display_name = st.text_input("Name")
            new_email = st.text_input("Email", key="sign_up_email")
            new_password = st.text_input("Password", type="password", key="sign_up_password")
            confirm = st.text_input("Confirm Password", type="password")
            created = st.form_submit_button("Create Account", type="primary")

        if created:
            if new_password != confirm:
                st.error("Passwords do not match")
            else:
                try:
                    run_async(components.auth.sign_up(new_email, new_password, display_name))
                    st.rerun()
                except AuthError as e:
                    st.error(sign_up_error_message(e))


# =============================================================================
# EXPENSES VIEW
# =============================================================================

def get_quick_add(components: AppComponents, owner: str):
    """This session's quick-add buffer, created on the loop thread."""
    if "quick_add" not in st.session_state:
        # Written from the loop thread, read by the script
        state = {"pending": 0}

        def on_pending_change(count: int) -> None:
            state["pending"] = count

        st.session_state.quick_add_state = state
        st.session_state.quick_add = call_on_loop(
            components.create_quick_add, owner, on_pending_change
        )
    return st.session_state.quick_add


def render_expenses_page(components: AppComponents, principal: Principal):
    """Render the day view: total, quick add, form and list."""
    owner = principal.uid
    settings = components.settings

    selected = st.date_input("Date", value=date.today())

    render_day_panel(components, owner, selected)

    st.markdown("### ⚡ Quick Add")
    buffer = get_quick_add(components, owner)
    col1, col2 = st.columns(2)
    with col1:
        if st.button(f"+ {format_currency(settings.quick_add_unit_amount, settings.currency_symbol)}", type="primary"):
            call_on_loop(buffer.activate)
    with col2:
        if st.button("↩️ Undo"):
            result = call_on_loop(buffer.undo)
            if result == UndoResult.CANCELLED_PENDING:
                st.toast("Quick add cancelled")
            elif result == UndoResult.DELETED_PERSISTED:
                st.toast("Last expense removed")
            else:
                st.toast("Nothing to undo")

    st.markdown("---")
    render_expense_form(components, owner, selected)

    with st.expander("🕒 Recent Expenses"):
        try:
            recent = run_async(components.mutations.recent_expenses(owner))
        except StorageError as e:
            st.error(f"Could not load recent expenses: {e}")
            recent = []
        for expense in recent:
            st.markdown(
                f"{format_date_for_display(expense.date)} · **{expense.description}** "
                f"· {format_currency(expense.amount, settings.currency_symbol)}"
            )


@st.fragment(run_every="1s")
def render_day_panel(components: AppComponents, owner: str, selected: date):
    """Day total and expense list; refreshes itself so quick adds show up."""
    settings = components.settings
    symbol = settings.currency_symbol

    try:
        total = run_async(components.mutations.day_total(owner, selected))
        expenses = run_async(components.mutations.expenses_by_date(owner, selected))
    except StorageError as e:
        st.error(f"Could not load expenses: {e}")
        return

    pending = st.session_state.get("quick_add_state", {}).get("pending", 0)

    st.markdown(f"""
    <div class="info-box">
        <h4>{format_date_for_display(selected)}</h4>
        <div class="big-number">{format_currency(total, symbol)}</div>
        <p>Daily budget: {format_daily_budget(settings, symbol)}</p>
    </div>
    """, unsafe_allow_html=True)

    if pending:
        amount = pending * settings.quick_add_unit_amount
        st.markdown(
            f'<p class="pending">Adding {format_currency(amount, symbol)} ({pending}x)...</p>',
            unsafe_allow_html=True,
        )

    if not expenses:
        st.info("📋 No expenses recorded for this day.")
        return

    for expense in expenses:
        is_pending = expense.is_provisional or components.mutations.is_pending_delete(owner, expense.id)
        col1, col2, col3 = st.columns([6, 2, 1])
        with col1:
            st.markdown(f"**{expense.description}** · {expense.category}")
            if expense.tags:
                st.caption(" ".join(f"#{tag}" for tag in expense.tags))
            if expense.notes:
                st.caption(expense.notes)
        with col2:
            st.markdown(format_currency(expense.amount, symbol))
        with col3:
            if st.button("🗑️", key=f"delete_{expense.id}", disabled=is_pending):
                deleted = run_async(components.mutations.delete_expense(owner, expense.id))
                if not deleted:
                    st.toast("Expense could not be deleted")
                st.rerun()


def render_expense_form(components: AppComponents, owner: str, selected: date):
    """Full expense form."""
    st.markdown("### ➕ Add New Expense")

    with st.form("expense_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount (THB)", placeholder="0.00")
            description = st.text_input("Description")
            category = st.selectbox(
                "Category",
                options=DEFAULT_CATEGORIES,
                index=DEFAULT_CATEGORIES.index(ExpenseCategory.FOOD_AND_DINING.value),
            )
        with col2:
            tags = st.text_input("Tags (comma separated)")
            notes = st.text_area("Notes")
            expense_date = st.date_input("Expense date", value=selected)

        submitted = st.form_submit_button("Add Expense", type="primary")

    if not submitted:
        return

    result = components.validator.validate(
        amount=amount,
        description=description,
        expense_date=expense_date,
        category=category,
        tags=tags,
        notes=notes,
    )

    if not result.is_valid:
        # Missing amount or description is refused silently
        if any(issue.issue_type != "missing" for issue in result.issues):
            st.error(components.validator.get_user_friendly_summary(result))
        return

    if result.warnings:
        st.warning(components.validator.get_user_friendly_summary(result))

    try:
        run_async(components.mutations.create_expense(owner, result.expense))
        st.success("✅ Expense added")
    except StorageError as e:
        st.error(f"Failed to save expense: {e}")


# =============================================================================
# HEATMAP VIEW
# =============================================================================

def render_heatmap_page(components: AppComponents, principal: Principal):
    """Render the last 365 days as a heatmap."""
    settings = components.settings
    symbol = settings.currency_symbol

    st.markdown("### Last 365 Days Expense Heatmap")

    start, end = heatmap_range()
    with st.spinner("Loading heatmap data..."):
        try:
            totals = run_async(components.expenses.get_period_totals(principal.uid, start, end))
        except StorageError as e:
            st.error(f"Could not load heatmap data: {e}")
            return

    heatmap = build_heatmap(totals, today=end, budget=get_daily_budget(settings))

    direction = "positive" if heatmap.total_savings >= 0 else "negative"
    st.markdown(
        f'<span class="savings-amount {direction}">{heatmap.savings_label(symbol)}</span>'
        f' &nbsp; Daily Budget: {format_daily_budget(settings, symbol)}',
        unsafe_allow_html=True,
    )

    selected = st.date_input("Day", value=end, min_value=start, max_value=end)
    cell = heatmap.cell_for(selected)
    if cell is not None:
        st.markdown(
            f"**{format_date_for_display(cell.day)}**: {format_currency(cell.amount, symbol)}"
        )

    cells_html = "".join(
        f'<div class="heatmap-cell {cell.intensity.value}" title="{cell.label}" '
        f'style="background: {INTENSITY_COLORS[cell.intensity]}"></div>'
        for cell in heatmap.cells
    )
    st.markdown(f'<div class="heatmap-grid">{cells_html}</div>', unsafe_allow_html=True)

    legend = "".join(
        f'<div class="heatmap-cell" style="display:inline-block; background: {color}"></div> '
        for color in INTENSITY_COLORS.values()
    )
    st.markdown(f"Less {legend} More", unsafe_allow_html=True)
    st.caption(
        "Pick any day above to see its total. "
        "This visualization shows your spending patterns throughout the year."
    )


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings(components: AppComponents):
    """Connection status and configuration hints."""
    status = validate_all_settings()

    if components.settings.storage_backend == "google_sheets":
        if status.get("google_sheets", False):
            st.success("✅ Google Sheets (Storage) - Configured")
        else:
            error = status.get("google_sheets_error", "Not configured")
            st.error(f"❌ Google Sheets (Storage) - {error}")
    else:
        st.info("💾 Using in-memory storage (data is lost on restart)")

    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
