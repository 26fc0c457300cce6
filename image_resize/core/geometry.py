"""
Pixel geometry for every resize method.

All inputs are display dimensions (after EXIF axis swap). The result tells the
codec which source window to take, what size to scale it to, how big the
output canvas is and where the scaled image goes on it.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from .models import ResizeMethod


@dataclass(frozen=True)
class Geometry:
    crop_x: int
    crop_y: int
    crop_w: int
    crop_h: int
    scaled_w: int
    scaled_h: int
    canvas_w: int
    canvas_h: int
    paste_x: int = 0
    paste_y: int = 0

    @property
    def crop_box(self) -> Tuple[int, int, int, int]:
        return (self.crop_x, self.crop_y, self.crop_x + self.crop_w, self.crop_y + self.crop_h)


def round_half_away(value: float) -> int:
    """Round half away from zero (Python's round() is banker's rounding)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _at_least_one(value: float) -> int:
    return max(1, round_half_away(value))


def compute_geometry(
    src_w: int,
    src_h: int,
    dst_w: int,
    dst_h: int,
    method: ResizeMethod,
    offset: Tuple[int, int] = (0, 0),
    place_upper: bool = False,
    no_top_offset: bool = False,
    no_bottom_offset: bool = False,
) -> Geometry:
    if src_w <= 0 or src_h <= 0:
        raise ValueError(f"source size must be positive, got {src_w}x{src_h}")

    if method == ResizeMethod.CROP:
        ratio = max(dst_w / src_w, dst_h / src_h)
        window_w = dst_w / ratio
        window_h = dst_h / ratio
        crop_x = math.floor((src_w - window_w) / 2)
        if no_top_offset:
            crop_y = 0
        elif no_bottom_offset:
            crop_y = math.floor(src_h - window_h)
        else:
            crop_y = round_half_away((src_h - window_h) / 2)
        if crop_y > 0 and place_upper:
            crop_y = round_half_away(crop_y * 2 / 3)
        geometry = Geometry(
            crop_x=crop_x,
            crop_y=crop_y,
            crop_w=_clamp(round_half_away(window_w), 1, src_w),
            crop_h=_clamp(round_half_away(window_h), 1, src_h),
            scaled_w=dst_w,
            scaled_h=dst_h,
            canvas_w=dst_w,
            canvas_h=dst_h,
        )
    elif method == ResizeMethod.FIT_WIDTH:
        height = _at_least_one(dst_w / src_w * src_h)
        geometry = Geometry(0, 0, src_w, src_h, dst_w, height, dst_w, height)
    elif method == ResizeMethod.FIT_HEIGHT:
        width = _at_least_one(dst_h * src_w / src_h)
        geometry = Geometry(0, 0, src_w, src_h, width, dst_h, width, dst_h)
    else:
        ratio = min(dst_w / src_w, dst_h / src_h)
        scaled_w = _at_least_one(src_w * ratio)
        scaled_h = _at_least_one(src_h * ratio)
        if method == ResizeMethod.PLACE:
            geometry = Geometry(
                0, 0, src_w, src_h, scaled_w, scaled_h, dst_w, dst_h,
                paste_x=round_half_away((dst_w - scaled_w) / 2),
                paste_y=round_half_away((dst_h - scaled_h) / 2),
            )
        else:
            # fit, fill and max share the contain math
            geometry = Geometry(0, 0, src_w, src_h, scaled_w, scaled_h, scaled_w, scaled_h)

    return _apply_offset(geometry, src_w, src_h, method, offset)


def _apply_offset(geometry: Geometry, src_w: int, src_h: int, method: ResizeMethod,
                  offset: Tuple[int, int]) -> Geometry:
    """Shift the crop window by the absolute offset and keep it inside the source.

    Positive x moves the window right, positive y moves it up.
    """
    dx, dy = offset if method.can_offset else (0, 0)
    crop_x = _clamp(geometry.crop_x + dx, 0, src_w - geometry.crop_w)
    crop_y = _clamp(geometry.crop_y - dy, 0, src_h - geometry.crop_h)
    if (crop_x, crop_y) == (geometry.crop_x, geometry.crop_y):
        return geometry
    return Geometry(
        crop_x, crop_y, geometry.crop_w, geometry.crop_h,
        geometry.scaled_w, geometry.scaled_h, geometry.canvas_w, geometry.canvas_h,
        geometry.paste_x, geometry.paste_y,
    )


def should_copy(src_w: int, src_h: int, dst_w: int, dst_h: int, method: ResizeMethod,
                disable_copy: bool = False, skip_small: bool = False) -> bool:
    """True when the source can be served verbatim instead of being resampled."""
    if disable_copy:
        return False
    if method == ResizeMethod.FIT_WIDTH:
        same, smaller = dst_w == src_w, dst_w >= src_w
    elif method == ResizeMethod.FIT_HEIGHT:
        same, smaller = dst_h == src_h, dst_h >= src_h
    else:
        same = dst_w == src_w and dst_h == src_h
        smaller = dst_w >= src_w and dst_h >= src_h
    return same or (skip_small and smaller)
