"""
User Agent Parsing

Adapter around the ``user-agents`` library producing the attribute tuple
stored in the user-agent dimension. The parser is best effort: fields it
cannot determine come back as ``None`` except the browser and OS names, which
fall back to ``"Unknown"``, and the device type, which falls back to
``"desktop"``.
"""

from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional

from user_agents import parse

UNKNOWN_LABEL = "Unknown"
DEFAULT_DEVICE_TYPE = "desktop"

# ua-parser reports unrecognised families as "Other"
_UNRECOGNISED = {"", "other"}


@dataclass(frozen=True)
class UserAgentAttributes:
    """Attribute tuple identifying a user-agent dimension row"""
    browser: str = UNKNOWN_LABEL
    browser_version: Optional[str] = None
    os: Optional[str] = UNKNOWN_LABEL
    os_version: Optional[str] = None
    device_type: Optional[str] = DEFAULT_DEVICE_TYPE
    device_vendor: Optional[str] = None
    device_model: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


UserAgentParser = Callable[[str], UserAgentAttributes]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value.lower() in _UNRECOGNISED:
        return None
    return value


def _device_type(ua) -> str:
    if ua.is_bot:
        return "bot"
    if ua.is_tablet:
        return "tablet"
    if ua.is_mobile:
        return "mobile"
    return DEFAULT_DEVICE_TYPE


def parse_user_agent(user_agent: Optional[str]) -> UserAgentAttributes:
    """
    Parse a raw User-Agent header into dimension attributes.

    Example:
        >>> parse_user_agent("Mozilla/5.0 (Windows NT 10.0; Win64; x64) ... Chrome/120.0 ...").browser
        'Chrome'
    """
    if not user_agent or not user_agent.strip():
        return UserAgentAttributes()

    ua = parse(user_agent)

    return UserAgentAttributes(
        browser=_clean(ua.browser.family) or UNKNOWN_LABEL,
        browser_version=_clean(ua.browser.version_string),
        os=_clean(ua.os.family) or UNKNOWN_LABEL,
        os_version=_clean(ua.os.version_string),
        device_type=_device_type(ua),
        device_vendor=_clean(ua.device.brand),
        device_model=_clean(ua.device.model),
    )
