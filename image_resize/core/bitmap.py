"""
Pillow-backed bitmap codec: probe, decode, EXIF rotation, resample, encode.

Every Pillow failure surfaces as DecodeError so the pipeline can fall back to
the blank image.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Tuple

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from .colors import Color
from .errors import DecodeError
from .geometry import Geometry
from .models import SourceImage

logger = logging.getLogger(__name__)

MIME_FORMATS = {
    "image/gif": "GIF",
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}
ALPHA_MIME_TYPES = {"image/png", "image/webp"}

# EXIF orientation -> counter-clockwise degrees; mirrored orientations are ignored
_ORIENTATION_ROTATION = {3: 180, 6: -90, 8: 90}
_ROTATE_TRANSPOSE = {
    90: Image.Transpose.ROTATE_90,
    -90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
}

_PILLOW_ERRORS = (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError, SyntaxError)


# multi-picture JPEGs from cameras are still served and cached as JPEG
_JPEG_FORMATS = {"JPEG", "MPO"}


def _mime_of(im: Image.Image) -> str:
    if im.format in _JPEG_FORMATS:
        return "image/jpeg"
    return Image.MIME.get(im.format or "", "")


class PillowCodec:
    def __init__(
        self,
        resample_mode: str = "BICUBIC",
        progressive_jpeg: bool = False,
        png_compress_level: int = 9,
        webp_method: int = 6,
    ):
        self.resample_filter = Image.Resampling[resample_mode.upper()]
        self.progressive_jpeg = progressive_jpeg
        self.png_compress_level = png_compress_level
        self.webp_method = webp_method

    @classmethod
    def from_settings(cls, settings) -> "PillowCodec":
        return cls(
            resample_mode=settings.RESAMPLE_MODE,
            progressive_jpeg=settings.ENABLE_PROGRESSIVE_JPEG,
            png_compress_level=settings.PNG_COMPRESSION_LEVEL,
            webp_method=settings.WEBP_METHOD,
        )

    def probe(self, path: Path, read_rotation: bool = True) -> SourceImage:
        """Read size, MIME type and EXIF rotation without decoding pixels."""
        try:
            with Image.open(path) as im:
                width, height = im.size
                mime_type = _mime_of(im)
                rotation = self._rotation_of(im) if read_rotation else 0
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot probe {path}: {exc}") from exc
        return SourceImage(path=Path(path), width=width, height=height,
                           mime_type=mime_type, rotation=rotation)

    def mime_type_of(self, path: Path) -> str:
        try:
            with Image.open(path) as im:
                return _mime_of(im)
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot identify {path}: {exc}") from exc

    def decode(self, data: bytes) -> Tuple[Image.Image, str]:
        try:
            im = Image.open(BytesIO(data))
            mime_type = _mime_of(im)
            im.load()
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot decode image: {exc}") from exc
        return im, mime_type

    def read_rotation(self, data: bytes) -> int:
        try:
            with Image.open(BytesIO(data)) as im:
                return self._rotation_of(im)
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot read rotation: {exc}") from exc

    def _rotation_of(self, im: Image.Image) -> int:
        if im.format not in _JPEG_FORMATS:
            return 0
        try:
            orientation = im.getexif().get(ExifTags.Base.Orientation)
        except _PILLOW_ERRORS as exc:
            logger.debug("[bitmap] unreadable EXIF: %s", exc)
            return 0
        return _ORIENTATION_ROTATION.get(orientation, 0)

    def rotate(self, im: Image.Image, degrees: int) -> Image.Image:
        if degrees not in _ROTATE_TRANSPOSE:
            return im
        return im.transpose(_ROTATE_TRANSPOSE[degrees])

    def resample(
        self,
        im: Image.Image,
        geometry: Geometry,
        background: Color,
        alpha: bool = False,
        grayscale: bool = False,
    ) -> Image.Image:
        """Crop, scale and place `im` on a fresh canvas.

        With `alpha` the canvas is transparent (tinted with the background
        color), otherwise it is the opaque background color.
        """
        try:
            source = im.convert("RGBA")
            scaled = source.resize(
                (geometry.scaled_w, geometry.scaled_h),
                self.resample_filter,
                box=geometry.crop_box,
            )
            size = (geometry.canvas_w, geometry.canvas_h)
            position = (geometry.paste_x, geometry.paste_y)
            if alpha:
                canvas = Image.new("RGBA", size, background.rgb + (0,))
                canvas.paste(scaled, position)
            else:
                canvas = Image.new("RGB", size, background.rgb)
                canvas.paste(scaled, position, scaled)
            if grayscale:
                canvas = self._grayscale(canvas)
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot resample image: {exc}") from exc
        return canvas

    def _grayscale(self, im: Image.Image) -> Image.Image:
        gray = ImageOps.grayscale(im)
        if im.mode == "RGBA":
            gray = gray.convert("RGBA")
            gray.putalpha(im.getchannel("A"))
            return gray
        return gray.convert("RGB")

    def encode(self, im: Image.Image, mime_type: str, quality: int) -> bytes:
        fmt = MIME_FORMATS.get(mime_type)
        if fmt is None:
            raise DecodeError(f"unsupported output type {mime_type!r}")
        out = BytesIO()
        try:
            if fmt == "JPEG":
                im.convert("RGB").save(out, "JPEG", quality=quality, progressive=self.progressive_jpeg)
            elif fmt == "PNG":
                im.save(out, "PNG", compress_level=self.png_compress_level)
            elif fmt == "GIF":
                im.convert("RGB").save(out, "GIF")
            else:
                im.save(out, "WEBP", quality=quality, method=self.webp_method)
        except _PILLOW_ERRORS as exc:
            raise DecodeError(f"cannot encode {mime_type}: {exc}") from exc
        return out.getvalue()
