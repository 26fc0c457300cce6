"""
Deterministic cache placement for resized images.

The directory name is the canonical encoding of a directive, so the URL a
page links to and the file the pipeline writes are always the same path.
"""

from pathlib import Path

from .colors import HEX_COLOR_RE, color_to_hex, hex_to_color
from .config import Settings
from .models import ResizeDirective

CUSTOM_PLACEHOLDER_PREFIX = "custom-"


class CacheKeyBuilder:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.default_color = hex_to_color(settings.DEFAULT_BG_COLOR, settings.DEFAULT_BG_COLOR)

    def build_dir_name(self, directive: ResizeDirective) -> str:
        parts = [str(directive.width), str(directive.height), directive.method.value]
        if directive.quality != self.settings.DEFAULT_QUALITY:
            parts.append(f"q{directive.quality}")

        flags = directive.flag_word
        if directive.bg_color != self.default_color:
            parts.append(color_to_hex(directive.bg_color))
        elif flags and HEX_COLOR_RE.match(flags):
            # a flag word like "fbc" would otherwise be read back as a color
            parts.append(color_to_hex(self.default_color))
        if flags:
            parts.append(flags)

        offset = _encode_offset(*directive.abs_offset)
        if offset:
            parts.append(offset)
        return "-".join(parts)

    def cache_path(self, dir_name: str, image_url: str) -> Path:
        return self.settings.cache_root / dir_name / image_url

    def placeholder_cache_path(self, dir_name: str, placeholder: Path, custom: bool) -> Path:
        name = placeholder.name
        if custom:
            name = CUSTOM_PLACEHOLDER_PREFIX + name
        return self.settings.cache_root / dir_name / name


def _encode_offset(dx: int, dy: int) -> str:
    if dx == 0 and dy == 0:
        return ""
    token = "o"
    if dx > 0:
        token += f"l{dx}"
    elif dx < 0:
        token += f"r{-dx}"
    if dy > 0:
        token += f"t{dy}"
    elif dy < 0:
        token += f"b{-dy}"
    return token
