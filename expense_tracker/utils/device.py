"""User-agent based device detection, used to pick the default view."""

from typing import Literal, Optional

MOBILE_KEYWORDS = (
    "iphone",
    "ipod",
    "ipad",
    "android",
    "blackberry",
    "windows phone",
    "webos",
    "mobile",
    "phone",
)


def is_mobile_user_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    ua = user_agent.lower()
    return any(keyword in ua for keyword in MOBILE_KEYWORDS)


def is_tablet_user_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    ua = user_agent.lower()
    return "ipad" in ua or ("android" in ua and "mobile" not in ua)


def get_device_type(user_agent: Optional[str]) -> Literal["mobile", "desktop"]:
    return "mobile" if is_mobile_user_agent(user_agent) else "desktop"


def default_view(user_agent: Optional[str]) -> Literal["expenses", "heatmap"]:
    """Phones land on the expense form, everything else on the heatmap."""
    return "expenses" if is_mobile_user_agent(user_agent) else "heatmap"
