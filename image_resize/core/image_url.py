"""Build resize URLs for templates and API clients."""

import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from .cache_keys import CacheKeyBuilder
from .colors import hex_to_color
from .config import Settings, resolve_base_url
from .directive import clamp_quality
from .models import ResizeDirective, ResizeMethod
from .placeholders import BLANK_IMAGE_NAME
from .sanitize import UrlSanitizer

_ABSOLUTE_URL_RE = re.compile(r"^(https?:)?//", re.IGNORECASE)
SOURCE_EXTENSIONS = ("jpeg", "jpg", "png", "gif", "webp")

# forced format -> extensions that already satisfy it
_FORMAT_EXTENSIONS = (
    ("as_jpeg", "jpg", ("jpeg", "jpg")),
    ("as_png", "png", ("png",)),
    ("as_gif", "gif", ("gif",)),
    ("as_webp", "webp", ("webp",)),
)


@dataclass(frozen=True)
class ResizeOptions:
    quality: Optional[int] = None
    bg_color: Optional[str] = None
    silhouette: bool = False
    place_upper: bool = False
    no_top_offset: bool = False
    no_bottom_offset: bool = False
    skip_small: bool = False
    disable_copy: bool = False
    as_jpeg: bool = False
    as_png: bool = False
    as_gif: bool = False
    as_webp: bool = False
    no_exif_rotate: bool = False
    grayscale: bool = False
    abs_offset: Tuple[int, int] = (0, 0)


class ImageUrlBuilder:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.base_url = resolve_base_url(settings)
        self.cache_keys = CacheKeyBuilder(settings)
        self.sanitizer = UrlSanitizer(self.base_url)

    @property
    def resized_url(self) -> str:
        return self.base_url + "/" + self.settings.RESIZED_BASE_DIR.strip("/")

    def blank_url(self) -> str:
        return f"{self.resized_url}/{BLANK_IMAGE_NAME}"

    def crop(self, image_url: str, width: int, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.CROP, width, height, options)

    def fit(self, image_url: str, width: int, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.FIT, width, height, options)

    def fit_width(self, image_url: str, width: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.FIT_WIDTH, width, width, options)

    def fit_height(self, image_url: str, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.FIT_HEIGHT, height, height, options)

    def fill(self, image_url: str, width: int, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.FILL, width, height, options)

    def max(self, image_url: str, width: int, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.MAX, width, height, options)

    def place_center(self, image_url: str, width: int, height: int, options: Optional[ResizeOptions] = None) -> str:
        return self.resize(image_url, ResizeMethod.PLACE, width, height, options)

    def resize(
        self,
        image_url: str,
        method: Union[ResizeMethod, str],
        width: int,
        height: int,
        options: Optional[ResizeOptions] = None,
    ) -> str:
        options = options or ResizeOptions()
        settings = self.settings
        method_value = method.value if isinstance(method, ResizeMethod) else str(method)
        if (
            not image_url
            or not settings.MIN_SIZE <= width <= settings.MAX_SIZE
            or not settings.MIN_SIZE <= height <= settings.MAX_SIZE
            or method_value not in settings.METHODS
        ):
            return self.blank_url()

        # external images are linked as they are
        if _ABSOLUTE_URL_RE.match(image_url):
            return image_url

        clean_url = self.sanitizer.sanitize(image_url)
        if not clean_url:
            return self.blank_url()
        ext = clean_url.rsplit(".", 1)[-1].lower() if "." in clean_url.rsplit("/", 1)[-1] else ""
        if ext not in SOURCE_EXTENSIONS:
            return self.blank_url()

        options, clean_url = _force_format(options, clean_url, ext)
        method = ResizeMethod(method_value)
        directive = _normalized_directive(
            method, width, height, options, clean_url,
            quality=clamp_quality(options.quality, settings) if options.quality is not None
            else settings.DEFAULT_QUALITY,
            bg_color=hex_to_color(options.bg_color or settings.DEFAULT_BG_COLOR, settings.DEFAULT_BG_COLOR),
        )
        return f"{self.resized_url}/{self.cache_keys.build_dir_name(directive)}/{clean_url}"


def _force_format(options: ResizeOptions, url: str, ext: str) -> Tuple[ResizeOptions, str]:
    """Keep only the first forced format and append its extension when needed."""
    cleared = {attr: False for attr, _, _ in _FORMAT_EXTENSIONS}
    for attr, target_ext, satisfied_by in _FORMAT_EXTENSIONS:
        if not getattr(options, attr):
            continue
        if ext in satisfied_by:
            return replace(options, **cleared), url
        return replace(options, **dict(cleared, **{attr: True})), f"{url}.{target_ext}"
    return options, url


def _normalized_directive(method: ResizeMethod, width: int, height: int, options: ResizeOptions,
                          image_url: str, quality: int, bg_color) -> ResizeDirective:
    # vertical anchoring only means something for crop and fill
    can_offset = method.can_offset
    return ResizeDirective(
        width=width,
        height=height,
        method=method,
        quality=quality,
        bg_color=bg_color,
        image_url=image_url,
        silhouette=options.silhouette,
        as_jpeg=options.as_jpeg,
        as_png=options.as_png,
        as_gif=options.as_gif,
        as_webp=options.as_webp,
        place_upper=can_offset and options.place_upper
        and not options.no_top_offset and not options.no_bottom_offset,
        no_top_offset=can_offset and options.no_top_offset,
        no_bottom_offset=can_offset and not options.no_top_offset and options.no_bottom_offset,
        disable_copy=options.disable_copy,
        skip_small=not options.disable_copy and options.skip_small,
        no_exif_rotate=options.no_exif_rotate,
        grayscale=options.grayscale,
        abs_offset=options.abs_offset,
    )
