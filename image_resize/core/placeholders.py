"""Blank pixel and placeholder assets served for missing images."""

import base64
from pathlib import Path
from typing import Tuple

from .config import Settings

BLANK_IMAGE_NAME = "b.gif"
BLANK_IMAGE_MIME = "image/gif"
# 1x1 transparent GIF
BLANK_IMAGE = base64.b64decode("R0lGODlhAQABAIAAAP///wAAACH5BAEAAAAALAAAAAABAAEAAAICRAEAOw==")

DEFAULT_IMAGE_NAME = "no-image.png"
DEFAULT_SILHOUETTE_NAME = "no-image-person.png"
ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"


def placeholder_for(settings: Settings, silhouette: bool) -> Tuple[Path, bool]:
    """Return (path, is_custom) of the placeholder to use.

    A configured custom placeholder wins when the file exists.
    """
    if silhouette:
        custom, builtin = settings.DEFAULT_SILHOUETTE_PATH, DEFAULT_SILHOUETTE_NAME
    else:
        custom, builtin = settings.DEFAULT_IMAGE_PATH, DEFAULT_IMAGE_NAME
    if custom is not None and Path(custom).is_file():
        return Path(custom), True
    return ASSETS_DIR / builtin, False
