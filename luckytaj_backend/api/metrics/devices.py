# luckytaj_backend/api/metrics/devices.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

# Ordered (markers, label) tables, first hit wins. Order matters:
# tablets before phones (iPad UAs also say "Mobile"), iOS before Mac
# (iPhone UAs say "like Mac OS X"), Android before Linux, Edge before Chrome.
DEVICE_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("ipad", "tablet"), "tablet"),
    (("mobile", "android", "iphone", "ipod", "blackberry", "windows phone"), "mobile"),
)

OS_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("windows",), "Windows"),
    (("iphone", "ipad", "ipod"), "iOS"),
    (("macintosh", "mac os x"), "Mac"),
    (("android",), "Android"),
    (("linux",), "Linux"),
)

BROWSER_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("edg",), "Edge"),
    (("firefox",), "Firefox"),
    (("chrome",), "Chrome"),
    (("safari",), "Safari"),
)

DEFAULT_DEVICE = "desktop"
UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DeviceInfo:
    device_type: str
    os: str
    browser: str
    user_agent: str = ""


def _first_match(ua: str, rules: Sequence[Tuple[Tuple[str, ...], str]], default: str) -> str:
    for markers, label in rules:
        if any(m in ua for m in markers):
            return label
    return default


def classify_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    raw = user_agent or ""
    ua = raw.lower()
    return DeviceInfo(
        device_type=_first_match(ua, DEVICE_RULES, DEFAULT_DEVICE),
        os=_first_match(ua, OS_RULES, UNKNOWN),
        browser=_first_match(ua, BROWSER_RULES, UNKNOWN),
        user_agent=raw,
    )
