"""
Authentication

The rest of the app only needs an opaque owner id; this module decides
who that is. AuthProvider is the contract the UI talks to.
LocalAuthProvider keeps accounts in the document store under users/{uid}
with pbkdf2_sha256 password hashes, and also links accounts coming from
an external identity provider (the Streamlit OIDC login).

Failures are AuthError(code) with the named codes from AuthErrorCode.
The UI turns codes into messages with sign_in_error_message and
sign_up_error_message; unknown codes collapse to a generic message.
"""

import re
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union
from uuid import uuid4

import structlog
from passlib.context import CryptContext

from expense_tracker.audit import AuditLogger
from expense_tracker.config import AuthSettings, get_settings
from expense_tracker.models.auth import AuthErrorCode, Principal, UserRecord
from expense_tracker.services.storage import SERVER_TIMESTAMP, DocumentStore, Filter

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

USERS_COLLECTION = "users"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SIGN_IN_ERROR_MESSAGES: dict[str, str] = {
    AuthErrorCode.USER_NOT_FOUND.value: "No account found with this email",
    AuthErrorCode.WRONG_PASSWORD.value: "Incorrect password",
    AuthErrorCode.INVALID_EMAIL.value: "Invalid email address",
    AuthErrorCode.TOO_MANY_REQUESTS.value: "Too many failed attempts. Please try again later",
}
SIGN_IN_DEFAULT_MESSAGE = "Failed to sign in. Please try again"

SIGN_UP_ERROR_MESSAGES: dict[str, str] = {
    AuthErrorCode.EMAIL_ALREADY_IN_USE.value: "An account with this email already exists",
    AuthErrorCode.INVALID_EMAIL.value: "Invalid email address",
    AuthErrorCode.WEAK_PASSWORD.value: "Password is too weak",
}
SIGN_UP_DEFAULT_MESSAGE = "Failed to create account. Please try again"


class AuthError(Exception):
    """Authentication failure carrying a named code."""

    def __init__(self, code: Union[AuthErrorCode, str], message: Optional[str] = None):
        self.code = code.value if isinstance(code, AuthErrorCode) else code
        super().__init__(message or self.code)


def _error_code(error: BaseException) -> Optional[str]:
    return getattr(error, "code", None)


def sign_in_error_message(error: BaseException) -> str:
    return SIGN_IN_ERROR_MESSAGES.get(_error_code(error), SIGN_IN_DEFAULT_MESSAGE)


def sign_up_error_message(error: BaseException) -> str:
    return SIGN_UP_ERROR_MESSAGES.get(_error_code(error), SIGN_UP_DEFAULT_MESSAGE)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # Malformed stored hash
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email or ""))


class AuthProvider(ABC):
    """
    Authentication collaborator.

    current_principal is None until a sign-in or sign-up succeeds.
    """

    @property
    @abstractmethod
    def current_principal(self) -> Optional[Principal]:
        pass

    @abstractmethod
    async def sign_in_with_provider(
        self,
        provider: str,
        subject: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Principal:
        """Sign in with an identity asserted by an external provider."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Principal:
        pass

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> Principal:
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass


class LocalAuthProvider(AuthProvider):
    """
    Email/password accounts stored in the document store.

    Failed sign-ins are counted per email; once max_failed_attempts
    failures fall inside the lockout window, further attempts are
    refused with auth/too-many-requests without checking the password.
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[AuthSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._settings = settings or get_settings().auth
        self._audit_logger = audit_logger
        self._clock = clock
        self._failed_attempts: dict[str, list[float]] = {}
        self._principal: Optional[Principal] = None

    @property
    def current_principal(self) -> Optional[Principal]:
        return self._principal

    async def sign_in(self, email: str, password: str) -> Principal:
        email = normalize_email(email)
        if not is_valid_email(email):
            await self._fail(email, AuthErrorCode.INVALID_EMAIL)

        if self._is_locked_out(email):
            await self._fail(email, AuthErrorCode.TOO_MANY_REQUESTS)

        record = await self._find_one([Filter("email", "==", email)])
        if record is None:
            self._record_failure(email)
            await self._fail(email, AuthErrorCode.USER_NOT_FOUND)

        if not record.password_hash or not verify_password(password, record.password_hash):
            self._record_failure(email)
            await self._fail(email, AuthErrorCode.WRONG_PASSWORD)

        self._failed_attempts.pop(email, None)
        return await self._establish(record, signed_up=False)

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> Principal:
        email = normalize_email(email)
        if not is_valid_email(email):
            await self._fail(email, AuthErrorCode.INVALID_EMAIL)

        if len(password or "") < self._settings.min_password_length:
            await self._fail(email, AuthErrorCode.WEAK_PASSWORD)

        if await self._find_one([Filter("email", "==", email)]) is not None:
            await self._fail(email, AuthErrorCode.EMAIL_ALREADY_IN_USE)

        record = UserRecord(
            uid=uuid4().hex,
            email=email,
            display_name=(display_name or "").strip() or None,
            password_hash=hash_password(password),
        )
        await self._save(record)
        return await self._establish(record, signed_up=True)

    async def sign_in_with_provider(
        self,
        provider: str,
        subject: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Principal:
        """
        Sign in an externally authenticated identity.

        The first sign-in for a (provider, subject) pair creates the
        account; later ones reuse it.
        """
        record = await self._find_one([
            Filter("provider", "==", provider),
            Filter("provider_subject", "==", subject),
        ])
        if record is not None:
            return await self._establish(record, signed_up=False)

        record = UserRecord(
            uid=uuid4().hex,
            email=normalize_email(email) if email else "",
            display_name=display_name,
            provider=provider,
            provider_subject=subject,
        )
        await self._save(record)
        return await self._establish(record, signed_up=True)

    async def sign_out(self) -> None:
        if self._principal is None:
            return
        uid = self._principal.uid
        self._principal = None
        logger.info("user_signed_out", uid=uid)
        if self._audit_logger:
            await self._audit_logger.log_user_signed_out(uid)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _find_one(self, filters: list[Filter]) -> Optional[UserRecord]:
        rows = await self._store.query(USERS_COLLECTION, filters=filters, limit=1)
        if not rows:
            return None
        doc_id, doc = rows[0]
        return UserRecord(uid=doc_id, **doc)

    async def _save(self, record: UserRecord) -> None:
        doc = record.model_dump(exclude={"uid", "created_at"})
        doc["created_at"] = SERVER_TIMESTAMP
        await self._store.set(f"{USERS_COLLECTION}/{record.uid}", doc)

    async def _establish(self, record: UserRecord, signed_up: bool) -> Principal:
        self._principal = record.to_principal()
        event = "user_signed_up" if signed_up else "user_signed_in"
        logger.info(event, uid=record.uid, provider=record.provider)
        if self._audit_logger:
            if signed_up:
                await self._audit_logger.log_user_signed_up(record.uid, record.provider)
            else:
                await self._audit_logger.log_user_signed_in(record.uid, record.provider)
        return self._principal

    async def _fail(self, email: str, code: AuthErrorCode) -> None:
        logger.warning("auth_failed", email=email, code=code.value)
        if self._audit_logger:
            await self._audit_logger.log_auth_failed(email, code.value)
        raise AuthError(code)

    def _recent_failures(self, email: str) -> list[float]:
        cutoff = self._clock() - self._settings.lockout_window_seconds
        recent = [t for t in self._failed_attempts.get(email, []) if t > cutoff]
        self._failed_attempts[email] = recent
        return recent

    def _is_locked_out(self, email: str) -> bool:
        return len(self._recent_failures(email)) >= self._settings.max_failed_attempts

    def _record_failure(self, email: str) -> None:
        self._recent_failures(email).append(self._clock())
