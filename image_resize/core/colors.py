"""
Hex color parsing for canvas backgrounds.
"""

import re
from typing import NamedTuple

HEX_COLOR_RE = re.compile(r"^(?:[0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)


class Color(NamedTuple):
    r: int
    g: int
    b: int
    a: int = 255

    @property
    def rgb(self) -> tuple:
        return (self.r, self.g, self.b)


def _strip_hex(value: str) -> str:
    return (value or "").replace("#", "").strip().lower()


def normalize_hex_color(value: str, default: str) -> str:
    """Lowercase hex without '#', shortened to 3/4 digits when every pair repeats.

    Malformed input returns the (normalized) default. The default itself is
    validated by Settings at startup.
    """
    value = _strip_hex(value)
    if not HEX_COLOR_RE.match(value):
        value = _strip_hex(default)
    if len(value) in (6, 8):
        pairs = [value[i:i + 2] for i in range(0, len(value), 2)]
        if all(p[0] == p[1] for p in pairs):
            return "".join(p[0] for p in pairs)
    return value


def hex_to_color(value: str, default: str) -> Color:
    value = normalize_hex_color(value, default)
    if len(value) in (3, 4):
        channels = [int(c * 2, 16) for c in value]
    else:
        channels = [int(value[i:i + 2], 16) for i in range(0, len(value), 2)]
    return Color(*channels)


def color_to_hex(color: Color) -> str:
    """Shortest hex spelling of `color`; alpha is omitted when opaque."""
    channels = list(color) if color.a != 255 else list(color.rgb)
    value = "".join(f"{c:02x}" for c in channels)
    return normalize_hex_color(value, value)
