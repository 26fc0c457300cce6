"""
Resize pipeline entry point.

ImageCreator wires the grammar, sanitizer, resolver, geometry and codec
together and turns a request path into image bytes. It never raises for a bad
request: every failure ends in the 1x1 blank GIF so a broken image can not
break the page that embeds it.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .bitmap import ALPHA_MIME_TYPES, PillowCodec
from .cache_keys import CacheKeyBuilder
from .config import KNOWN_MIME_TYPES, Settings, resolve_base_url
from .directive import DirectiveGrammar
from .errors import ImageResizeError, WriteError
from .fallback import FallbackResolver, Outcome, Resolution
from .geometry import compute_geometry
from .models import ResizeDirective, SourceImage
from .placeholders import BLANK_IMAGE, BLANK_IMAGE_MIME
from .resize_metrics import ResizeMetrics
from .sanitize import UrlSanitizer

logger = logging.getLogger(__name__)

FORCED_FORMAT_MIME = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


@dataclass(frozen=True)
class ImageResponse:
    content: bytes
    media_type: str
    path: Optional[Path] = None
    outcome: str = "blank"


BLANK_RESPONSE = ImageResponse(BLANK_IMAGE, BLANK_IMAGE_MIME)


def output_mime_type(source_mime: str, directive: ResizeDirective) -> str:
    forced = directive.forced_format
    if forced:
        return FORCED_FORMAT_MIME[forced]
    return source_mime


class ImageCreator:
    def __init__(
        self,
        settings: Settings,
        codec: Optional[PillowCodec] = None,
        metrics: Optional[ResizeMetrics] = None,
    ):
        # raises ConfigurationError; the only failure allowed out of here
        self.base_url = resolve_base_url(settings)
        self.settings = settings
        self.codec = codec or PillowCodec.from_settings(settings)
        self.metrics = metrics
        self.cache_keys = CacheKeyBuilder(settings)
        self.grammar = DirectiveGrammar(settings, self.cache_keys)
        self.sanitizer = UrlSanitizer(self.base_url)
        self.resolver = FallbackResolver(
            settings, self.grammar, self.sanitizer, self.cache_keys, self.codec
        )

    def create(self, path: str) -> ImageResponse:
        """Resolve `path` (relative to the resized dir) into an image response."""
        try:
            resolution = self.resolver.resolve(path)
            response = self._answer(resolution)
        except (ImageResizeError, OSError) as exc:
            logger.warning("[image_resize] %s failed: %s", path, exc)
            response = BLANK_RESPONSE
        except Exception:
            logger.exception("[image_resize] unexpected failure for %s", path)
            response = BLANK_RESPONSE
        if self.metrics is not None:
            self.metrics.record(response.outcome)
        return response

    def _answer(self, resolution: Resolution) -> ImageResponse:
        if resolution.outcome == Outcome.BLANK:
            logger.debug("[image_resize] blank image: %s", resolution.reason)
            return BLANK_RESPONSE
        if resolution.outcome == Outcome.CACHED:
            return self._serve(resolution.dest_path, "cached")

        outcome = "placeholder" if resolution.placeholder else None
        if resolution.outcome == Outcome.COPY:
            self._write(resolution.dest_path, resolution.source.path.read_bytes())
            logger.info("[image_resize] copied %s -> %s", resolution.source.path, resolution.dest_path)
            return self._serve(resolution.dest_path, outcome or "copied")

        media_type = self._transform(resolution.directive, resolution.source, resolution.dest_path)
        return self._serve(resolution.dest_path, outcome or "resized", media_type)

    def _transform(self, directive: ResizeDirective, source: SourceImage, dest_path: Path) -> str:
        im, _ = self.codec.decode(source.path.read_bytes())
        im = self.codec.rotate(im, source.rotation)
        src_w, src_h = im.size
        geometry = compute_geometry(
            src_w, src_h, directive.width, directive.height, directive.method,
            offset=directive.abs_offset,
            place_upper=directive.place_upper,
            no_top_offset=directive.no_top_offset,
            no_bottom_offset=directive.no_bottom_offset,
        )
        media_type = output_mime_type(source.mime_type, directive)
        canvas = self.codec.resample(
            im, geometry, directive.bg_color,
            alpha=media_type in ALPHA_MIME_TYPES,
            grayscale=directive.grayscale,
        )
        self._write(dest_path, self.codec.encode(canvas, media_type, directive.quality))
        logger.info(
            "[image_resize] %s %dx%d -> %dx%d (%s)",
            source.path, src_w, src_h, geometry.canvas_w, geometry.canvas_h, directive.method.value,
        )
        return media_type

    def _write(self, dest_path: Path, data: bytes) -> None:
        """Write through a temp file and an atomic rename.

        Concurrent writers of the same key produce identical bytes, so the
        last rename wins harmlessly.
        """
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(f"cannot create {dest_path.parent}: {exc}") from exc

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(dir=dest_path.parent, prefix=".tmp-", delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, dest_path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise WriteError(f"cannot write {dest_path}: {exc}") from exc

        if not dest_path.is_file():
            raise WriteError(f"{dest_path} did not materialize")

    def _serve(self, path: Path, outcome: str, media_type: Optional[str] = None) -> ImageResponse:
        if media_type is None:
            media_type = self.codec.mime_type_of(path)
        if media_type not in KNOWN_MIME_TYPES:
            logger.warning("[image_resize] refusing to serve %s as %r", path, media_type)
            return BLANK_RESPONSE
        return ImageResponse(path.read_bytes(), media_type, path=path, outcome=outcome)
