"""
Value objects shared by the resize pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple

from .colors import Color


class ResizeMethod(str, Enum):
    CROP = "crop"
    FIT = "fit"
    FIT_WIDTH = "fitw"
    FIT_HEIGHT = "fith"
    FILL = "fill"
    MAX = "max"
    PLACE = "place"

    @property
    def can_offset(self) -> bool:
        """Vertical anchoring and absolute offsets only apply to these."""
        return self in (ResizeMethod.CROP, ResizeMethod.FILL)


# Flag letter -> ResizeDirective attribute, in canonical encoding order.
FLAG_LETTERS: Tuple[Tuple[str, str], ...] = (
    ("s", "silhouette"),
    ("j", "as_jpeg"),
    ("p", "as_png"),
    ("f", "as_gif"),
    ("w", "as_webp"),
    ("u", "place_upper"),
    ("n", "no_top_offset"),
    ("b", "no_bottom_offset"),
    ("c", "disable_copy"),
    ("t", "skip_small"),
    ("r", "no_exif_rotate"),
    ("g", "grayscale"),
)


@dataclass(frozen=True)
class ResizeDirective:
    """Everything a request path says about the wanted output."""
    width: int
    height: int
    method: ResizeMethod
    quality: int
    bg_color: Color
    image_url: str
    silhouette: bool = False
    as_jpeg: bool = False
    as_png: bool = False
    as_gif: bool = False
    as_webp: bool = False
    place_upper: bool = False
    no_top_offset: bool = False
    no_bottom_offset: bool = False
    disable_copy: bool = False
    skip_small: bool = False
    no_exif_rotate: bool = False
    grayscale: bool = False
    abs_offset: Tuple[int, int] = (0, 0)
    # Raw segment as requested; cache placement only, not part of the value.
    dir_name: str = field(default="", compare=False)

    @property
    def flag_word(self) -> str:
        return "".join(letter for letter, attr in FLAG_LETTERS if getattr(self, attr))

    @property
    def forced_format(self) -> str:
        """Extension of the forced output format, or '' when none is forced."""
        if self.as_jpeg:
            return "jpg"
        if self.as_png:
            return "png"
        if self.as_gif:
            return "gif"
        if self.as_webp:
            return "webp"
        return ""


@dataclass(frozen=True)
class SourceImage:
    path: Path
    width: int
    height: int
    mime_type: str
    rotation: int = 0

    @property
    def display_size(self) -> Tuple[int, int]:
        """Width/height as displayed, after EXIF rotation."""
        if self.rotation in (90, -90):
            return self.height, self.width
        return self.width, self.height
