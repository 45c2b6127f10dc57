"""bgcompose - compose background-removed videos with FFmpeg."""

from .__version__ import __version__
from .client import BGRemoverClient
from .media import (
    Video,
    Background,
    Foreground,
    Composition,
    EncoderProfile,
    RemoveBGOptions,
    Prefer,
    Model,
    MediaContext,
    default_context,
    set_default_context,
)
from .core import (
    BackgroundType,
    TransparentFormat,
    Anchor,
    SizeMode,
    BGComposeError,
    ConfigurationError,
    CanvasError,
    FFmpegError,
    FFmpegNotFoundError,
)


__all__ = [
    "__version__",
    "BGRemoverClient",
    "Video",
    "Background",
    "Foreground",
    "Composition",
    "EncoderProfile",
    "RemoveBGOptions",
    "Prefer",
    "Model",
    "MediaContext",
    "default_context",
    "set_default_context",
    "BackgroundType",
    "TransparentFormat",
    "Anchor",
    "SizeMode",
    "BGComposeError",
    "ConfigurationError",
    "CanvasError",
    "FFmpegError",
    "FFmpegNotFoundError",
]
