"""
Error taxonomy for the resize pipeline.

Per-request errors are always recovered inside the pipeline (blank image or a
placeholder). Only ConfigurationError is allowed to escape, and only at startup.
"""


class ImageResizeError(Exception):
    """Base error for the resize pipeline."""
    pass


class GrammarError(ImageResizeError):
    """Request path does not match the directive grammar or its bounds."""
    pass


class SourceMissingError(ImageResizeError):
    """Source image (and every fallback for it) is absent."""
    pass


class DecodeError(ImageResizeError):
    """Bitmap could not be probed, decoded or encoded."""
    pass


class WriteError(ImageResizeError):
    """Cache directory or cache file could not be created."""
    pass


class ConfigurationError(ImageResizeError):
    """Unrecoverable configuration problem detected at startup."""
    pass
