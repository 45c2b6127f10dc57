"""Exceptions raised by the media layer."""

from typing import List, Optional


class BGComposeError(Exception):
    """Base class for all bgcompose media errors."""


class ConfigurationError(BGComposeError, ValueError):
    """Invalid composition input, detected before any process is spawned."""


class CanvasError(ConfigurationError):
    """Canvas size cannot be determined."""


class UnsupportedFormatError(ConfigurationError):
    """File extension does not map to a known foreground format."""


class BundleError(ConfigurationError):
    """Pro bundle archive is missing a required member."""


class MediaProbeError(ConfigurationError):
    """Required stream metadata (e.g. dimensions) could not be probed."""


class FFmpegError(BGComposeError, RuntimeError):
    """FFmpeg exited with a nonzero status."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        argv: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.argv = argv or []


class FFmpegNotFoundError(FFmpegError):
    """FFmpeg binary could not be started."""
