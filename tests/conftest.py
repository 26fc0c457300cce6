from pathlib import Path

import pytest
from PIL import Image

from image_resize.core.config import Settings


def save_image(path: Path, size, color="red", fmt=None, orientation=None, mode="RGB") -> Path:
    """Write a solid-color test image, optionally tagged with an EXIF orientation."""
    path.parent.mkdir(parents=True, exist_ok=True)
    im = Image.new(mode, size, color)
    kwargs = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        kwargs["exif"] = exif
    im.save(path, fmt, **kwargs)
    return path


def save_multi_picture(path: Path) -> Path:
    """Write a camera-style JPEG that carries a second preview picture (MPO)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (400, 300), "blue").save(
        path, "MPO", save_all=True, append_images=[Image.new("RGB", (160, 120), "blue")]
    )
    return path


@pytest.fixture
def webroot(tmp_path):
    root = tmp_path / "public"
    root.mkdir()
    return root


@pytest.fixture
def make_settings(webroot):
    def _make(**overrides):
        overrides.setdefault("WEBROOT", webroot)
        return Settings(**overrides)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()
