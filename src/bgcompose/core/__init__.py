"""Core types and errors for bgcompose."""

from .types import (
    StatusCb,
    ProgressCb,
    BackgroundType,
    TransparentFormat,
    Anchor,
    SizeMode,
)
from .errors import (
    BGComposeError,
    ConfigurationError,
    CanvasError,
    UnsupportedFormatError,
    BundleError,
    MediaProbeError,
    FFmpegError,
    FFmpegNotFoundError,
)

__all__ = [
    "StatusCb",
    "ProgressCb",
    "BackgroundType",
    "TransparentFormat",
    "Anchor",
    "SizeMode",
    "BGComposeError",
    "ConfigurationError",
    "CanvasError",
    "UnsupportedFormatError",
    "BundleError",
    "MediaProbeError",
    "FFmpegError",
    "FFmpegNotFoundError",
]
