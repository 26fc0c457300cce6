from pathlib import Path
from typing import List, Optional

from PIL import Image
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .colors import HEX_COLOR_RE
from .errors import ConfigurationError

KNOWN_METHODS = ("crop", "fit", "fitw", "fith", "fill", "max", "place")
KNOWN_MIME_TYPES = ("image/gif", "image/jpeg", "image/png", "image/webp")


class Settings(BaseSettings):
    # Load env from .env file, IMAGE_RESIZE_ prefixed; immutable once built
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="IMAGE_RESIZE_",
        extra="ignore",
        frozen=True,
    )

    # Filesystem layout
    WEBROOT: Path = Path("public")
    BASE_URL: str = ""  # URL path the site is mounted under, no trailing slash
    RESIZED_BASE_DIR: str = "/resized"

    # Bounds
    MIN_SIZE: int = Field(8, ge=1)
    MAX_SIZE: int = Field(3072, le=9999)
    MIN_QUALITY: int = Field(10, ge=0)
    MAX_QUALITY: int = Field(100, le=100)
    DEFAULT_QUALITY: int = 90
    DEFAULT_BG_COLOR: str = "fff"

    # Allowed source types and resize methods
    MIME_TYPES: List[str] = ["image/gif", "image/jpeg", "image/png"]
    METHODS: List[str] = list(KNOWN_METHODS)

    # Custom placeholders
    DEFAULT_IMAGE_PATH: Optional[Path] = None
    DEFAULT_SILHOUETTE_PATH: Optional[Path] = None

    # Encoder tuning
    ENABLE_PROGRESSIVE_JPEG: bool = False
    RESAMPLE_MODE: str = "BICUBIC"
    PNG_COMPRESSION_LEVEL: int = Field(9, ge=0, le=9)
    WEBP_METHOD: int = Field(6, ge=0, le=6)

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if self.MIN_SIZE > self.MAX_SIZE:
            raise ValueError("MIN_SIZE must not exceed MAX_SIZE")
        if self.MIN_QUALITY > self.MAX_QUALITY:
            raise ValueError("MIN_QUALITY must not exceed MAX_QUALITY")
        if not self.MIN_QUALITY <= self.DEFAULT_QUALITY <= self.MAX_QUALITY:
            raise ValueError("DEFAULT_QUALITY must lie within MIN_QUALITY..MAX_QUALITY")
        if not HEX_COLOR_RE.match(self.DEFAULT_BG_COLOR.lstrip("#")):
            raise ValueError(f"DEFAULT_BG_COLOR is not a hex color: {self.DEFAULT_BG_COLOR!r}")
        if self.RESAMPLE_MODE.upper() not in Image.Resampling.__members__:
            raise ValueError(f"unknown RESAMPLE_MODE: {self.RESAMPLE_MODE!r}")
        unknown = [m for m in self.METHODS if m not in KNOWN_METHODS]
        if unknown:
            raise ValueError(f"unknown resize methods: {', '.join(unknown)}")
        unknown = [m for m in self.MIME_TYPES if m not in KNOWN_MIME_TYPES]
        if unknown:
            raise ValueError(f"unsupported mime types: {', '.join(unknown)}")
        return self

    @property
    def cache_root(self) -> Path:
        return self.WEBROOT / self.RESIZED_BASE_DIR.strip("/")


def resolve_base_url(settings: Settings) -> str:
    """Return the site base URL without trailing slash.

    Raises ConfigurationError when it cannot be used as a URL path prefix.
    """
    base_url = (settings.BASE_URL or "").strip()
    if "://" in base_url or "?" in base_url or "#" in base_url:
        raise ConfigurationError(f"BASE_URL must be a path, got {base_url!r}")
    base_url = base_url.rstrip("/")
    if base_url and not base_url.startswith("/"):
        raise ConfigurationError(f"BASE_URL must start with '/', got {base_url!r}")
    if not settings.RESIZED_BASE_DIR.startswith("/") or settings.RESIZED_BASE_DIR.strip("/") == "":
        raise ConfigurationError(
            f"RESIZED_BASE_DIR must be an absolute sub-path, got {settings.RESIZED_BASE_DIR!r}"
        )
    return base_url


# Instantiate settings
settings = Settings()
