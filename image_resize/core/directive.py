"""
Request path grammar.

    <w>-<h>-<method>[-q<quality>][-<hex color>][-<flags>][-o[l|r<n>][t|b<n>]]/<image path>

The directory segment is split into dash separated tokens and read by a small
recursive-descent parser. Optional groups keep their order and each appears at
most once; a token that fits several groups goes to the earliest one.
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .cache_keys import CacheKeyBuilder
from .colors import hex_to_color
from .config import Settings
from .errors import GrammarError
from .models import FLAG_LETTERS, ResizeDirective, ResizeMethod

logger = logging.getLogger(__name__)

_SIZE_RE = re.compile(r"[0-9]{1,4}")
_QUALITY_RE = re.compile(r"q([0-9]{1,2}|100)")
_COLOR_RE = re.compile(r"(?:[0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})")
_FLAGS_RE = re.compile(r"[a-z]+")
_OFFSET_RE = re.compile(r"o(?:([lr])([0-9]+))?(?:([tb])([0-9]+))?")


def clamp_quality(quality: int, settings: Settings) -> int:
    return max(settings.MIN_QUALITY, min(settings.MAX_QUALITY, int(quality)))


class _Tokens:
    def __init__(self, segment: str):
        self.items = segment.split("-")
        self.pos = 0

    def next(self, what: str) -> str:
        if self.pos >= len(self.items):
            raise GrammarError(f"missing {what}")
        token = self.items[self.pos]
        self.pos += 1
        return token

    def peek(self) -> Optional[str]:
        if self.pos >= len(self.items):
            return None
        return self.items[self.pos]


class DirectiveGrammar:
    def __init__(self, settings: Settings, cache_keys: Optional[CacheKeyBuilder] = None):
        self.settings = settings
        self.cache_keys = cache_keys or CacheKeyBuilder(settings)
        # optional groups in the order they may appear
        self._optional: List[Tuple[str, Callable[[str], Optional[Dict]]]] = [
            ("quality", self._read_quality),
            ("color", self._read_color),
            ("flags", self._read_flags),
            ("offset", self._read_offset),
        ]

    def parse(self, path: str) -> Optional[ResizeDirective]:
        """Parse a request path (relative to the resized dir); None when invalid."""
        try:
            return self._parse(path)
        except GrammarError as exc:
            logger.debug("[directive] rejected %r: %s", path, exc)
            return None

    def encode(self, directive: ResizeDirective) -> str:
        """Canonical request path for `directive`."""
        return f"{self.cache_keys.build_dir_name(directive)}/{directive.image_url}"

    def _parse(self, path: str) -> ResizeDirective:
        dir_name, sep, image_url = (path or "").partition("/")
        if not sep:
            raise GrammarError("no image path")
        image_url = image_url.strip()
        if not image_url:
            raise GrammarError("empty image path")

        tokens = _Tokens(dir_name)
        width = self._read_size(tokens.next("width"), "width")
        height = self._read_size(tokens.next("height"), "height")
        method = self._read_method(tokens.next("method"))

        fields: Dict = {}
        group = 0
        while tokens.peek() is not None:
            token = tokens.next("option")
            for index in range(group, len(self._optional)):
                parsed = self._optional[index][1](token)
                if parsed is not None:
                    fields.update(parsed)
                    group = index + 1
                    break
            else:
                raise GrammarError(f"unexpected token {token!r}")

        bg_color = fields.pop("bg_color", self.settings.DEFAULT_BG_COLOR)
        return ResizeDirective(
            width=width,
            height=height,
            method=method,
            quality=fields.pop("quality", self.settings.DEFAULT_QUALITY),
            bg_color=hex_to_color(bg_color, self.settings.DEFAULT_BG_COLOR),
            image_url=image_url,
            dir_name=dir_name,
            **fields,
        )

    def _read_size(self, token: str, what: str) -> int:
        if not _SIZE_RE.fullmatch(token):
            raise GrammarError(f"bad {what} {token!r}")
        value = int(token)
        if not self.settings.MIN_SIZE <= value <= self.settings.MAX_SIZE:
            raise GrammarError(f"{what} {value} out of bounds")
        return value

    def _read_method(self, token: str) -> ResizeMethod:
        if token not in self.settings.METHODS:
            raise GrammarError(f"method {token!r} not allowed")
        return ResizeMethod(token)

    def _read_quality(self, token: str) -> Optional[Dict]:
        m = _QUALITY_RE.fullmatch(token)
        if not m:
            return None
        return {"quality": clamp_quality(int(m.group(1)), self.settings)}

    def _read_color(self, token: str) -> Optional[Dict]:
        if not _COLOR_RE.fullmatch(token):
            return None
        return {"bg_color": token}

    def _read_flags(self, token: str) -> Optional[Dict]:
        if not _FLAGS_RE.fullmatch(token):
            return None
        # unknown letters are ignored
        return {attr: letter in token for letter, attr in FLAG_LETTERS}

    def _read_offset(self, token: str) -> Optional[Dict]:
        m = _OFFSET_RE.fullmatch(token)
        if not m:
            return None
        dx = dy = 0
        if m.group(1):
            dx = int(m.group(2)) * (-1 if m.group(1) == "r" else 1)
        if m.group(3):
            dy = int(m.group(4)) * (-1 if m.group(3) == "b" else 1)
        return {"abs_offset": (dx, dy)}
