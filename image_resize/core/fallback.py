"""
Decide how a request is answered: blank pixel, existing cache entry, verbatim
copy of the source, or a fresh transform (of the source or a placeholder).

The order of the checks matters. A cache hit is detected before the source is
looked at, so once an entry exists the original is never touched again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from .bitmap import PillowCodec
from .cache_keys import CacheKeyBuilder
from .config import Settings
from .directive import DirectiveGrammar
from .errors import DecodeError, SourceMissingError
from .geometry import should_copy
from .models import ResizeDirective, SourceImage
from .placeholders import BLANK_IMAGE_NAME, placeholder_for
from .sanitize import UrlSanitizer

logger = logging.getLogger(__name__)

RECOVERABLE_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}


class Outcome(str, Enum):
    BLANK = "blank"
    CACHED = "cached"
    COPY = "copy"
    TRANSFORM = "transform"


@dataclass(frozen=True)
class Resolution:
    outcome: Outcome
    directive: Optional[ResizeDirective] = None
    source: Optional[SourceImage] = None
    dest_path: Optional[Path] = None
    placeholder: bool = False
    reason: str = ""


def _blank(reason: str) -> Resolution:
    return Resolution(Outcome.BLANK, reason=reason)


class FallbackResolver:
    def __init__(
        self,
        settings: Settings,
        grammar: DirectiveGrammar,
        sanitizer: UrlSanitizer,
        cache_keys: CacheKeyBuilder,
        codec: PillowCodec,
    ):
        self.settings = settings
        self.grammar = grammar
        self.sanitizer = sanitizer
        self.cache_keys = cache_keys
        self.codec = codec

    def resolve(self, path: str) -> Resolution:
        if path == BLANK_IMAGE_NAME:
            return _blank("blank image requested")

        directive = self.grammar.parse(path)
        if directive is None:
            return _blank("invalid directive")

        image_url = self.sanitizer.sanitize(directive.image_url)
        if not image_url:
            return _blank("empty image url")

        dest_path = self.cache_keys.cache_path(directive.dir_name, image_url)
        if dest_path.is_file():
            return Resolution(Outcome.CACHED, directive, dest_path=dest_path)

        source_path = self.settings.WEBROOT / image_url
        if not source_path.is_file() and directive.forced_format:
            source_path = self._strip_forced_extension(source_path)

        placeholder = False
        if not source_path.is_file():
            try:
                source_path, dest_path = self._placeholder(directive)
            except SourceMissingError as exc:
                logger.warning("[fallback] %s", exc)
                return _blank("placeholder missing")
            placeholder = True
            if dest_path.is_file():
                return Resolution(Outcome.CACHED, directive, dest_path=dest_path, placeholder=True)

        source = self._probe(source_path, directive)
        if source is None:
            return _blank("unusable source")

        src_w, src_h = source.display_size
        outcome = Outcome.TRANSFORM
        if should_copy(src_w, src_h, directive.width, directive.height, directive.method,
                       disable_copy=directive.disable_copy, skip_small=directive.skip_small):
            outcome = Outcome.COPY
        return Resolution(outcome, directive, source=source, dest_path=dest_path, placeholder=placeholder)

    def _strip_forced_extension(self, source_path: Path) -> Path:
        """`photo.png.jpg` -> `photo.png` when a format was forced by URL."""
        candidate = source_path.with_suffix("")
        original_ext = candidate.suffix.lstrip(".").lower()
        if original_ext in RECOVERABLE_EXTENSIONS and candidate.is_file():
            logger.debug("[fallback] using %s for forced format", candidate)
            return candidate
        return source_path

    def _placeholder(self, directive: ResizeDirective) -> Tuple[Path, Path]:
        placeholder, custom = placeholder_for(self.settings, directive.silhouette)
        if not placeholder.is_file():
            raise SourceMissingError(f"placeholder {placeholder} not found")
        dest_path = self.cache_keys.placeholder_cache_path(directive.dir_name, placeholder, custom)
        return placeholder, dest_path

    def _probe(self, source_path: Path, directive: ResizeDirective) -> Optional[SourceImage]:
        try:
            source = self.codec.probe(source_path, read_rotation=not directive.no_exif_rotate)
        except DecodeError as exc:
            logger.warning("[fallback] %s", exc)
            return None
        if source.width == 0 or source.height == 0:
            return None
        if source.mime_type not in self.settings.MIME_TYPES:
            logger.info("[fallback] %s has disallowed type %r", source_path, source.mime_type)
            return None
        return source
