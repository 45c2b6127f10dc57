"""Media runtime context: FFmpeg binaries, capabilities and temporary files."""

import os
import shutil
import logging
import tempfile
import subprocess
from typing import Dict, List, Optional

from ..core.errors import FFmpegNotFoundError, FFmpegError


class TempManifest:
    """Temporary files owned by a single export, removed when the export ends."""

    def __init__(self, root: str, logger: logging.Logger):
        self._root = root
        self._logger = logger
        self.paths: List[str] = []

    def path(self, suffix: str = "", prefix: str = "bgc_export_") -> str:
        """Reserve a temporary file path tracked by this manifest."""
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=self._root)
        os.close(fd)
        self.paths.append(path)
        return path

    def release(self) -> None:
        """Delete every tracked file (best effort)."""
        for path in self.paths:
            try:
                if os.path.exists(path):
                    os.remove(path)
            except OSError as e:
                self._logger.warning(f"Failed to delete temp file {path}: {e}")
        self.paths.clear()

    def __enter__(self) -> "TempManifest":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class MediaContext:
    """Context for media operations with FFmpeg and temporary file management."""

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        tmp_root: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize media context.

        Binaries are not executed here; call verify() to check them up front.

        Args:
            ffmpeg: Path to ffmpeg binary
            ffprobe: Path to ffprobe binary
            tmp_root: Root directory for temporary files
            logger: Logger instance for debugging
        """
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.logger = logger or logging.getLogger(__name__)

        # Construction-time artifacts (downloads, extracted bundles) live here
        self._tmp = tempfile.TemporaryDirectory(prefix="bgcompose_", dir=tmp_root)
        self.tmp = self._tmp.name

        self._capabilities: Dict[str, bool] = {}

    @classmethod
    def from_env(cls, logger: Optional[logging.Logger] = None) -> "MediaContext":
        """
        Build a context from BGCOMPOSE_FFMPEG, BGCOMPOSE_FFPROBE and BGCOMPOSE_TMPDIR.

        Unset variables fall back to the constructor defaults.
        """
        return cls(
            ffmpeg=os.getenv("BGCOMPOSE_FFMPEG", "ffmpeg"),
            ffprobe=os.getenv("BGCOMPOSE_FFPROBE", "ffprobe"),
            tmp_root=os.getenv("BGCOMPOSE_TMPDIR") or None,
            logger=logger,
        )

    def verify(self) -> None:
        """
        Check that both binaries start and report a version.

        Raises:
            FFmpegNotFoundError: If a binary cannot be executed
            FFmpegError: If a binary exits with an error or hangs
        """
        for binary in (self.ffmpeg, self.ffprobe):
            try:
                result = subprocess.run(
                    [binary, "-version"], capture_output=True, text=True, timeout=10
                )
            except FileNotFoundError as e:
                raise FFmpegNotFoundError(
                    f"{binary} not found. Please install FFmpeg: {e}", argv=[binary]
                ) from e
            except subprocess.TimeoutExpired as e:
                raise FFmpegError(f"{binary} verification timed out") from e

            if result.returncode != 0:
                raise FFmpegError(
                    f"{binary} not working",
                    returncode=result.returncode,
                    stderr=result.stderr,
                    argv=[binary, "-version"],
                )

        self.logger.debug("FFmpeg binaries verified successfully")

    def temp_path(self, suffix: str = "", prefix: str = "bgc_") -> str:
        """
        Generate a temporary file path that lives as long as this context.

        Args:
            suffix: File suffix/extension (e.g., ".mp4")
            prefix: File prefix

        Returns:
            Temporary file path
        """
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=self.tmp)
        os.close(fd)
        return path

    def temp_dir(self, prefix: str = "bgc_") -> str:
        """Create a fresh directory under the context's temp root."""
        return tempfile.mkdtemp(prefix=prefix, dir=self.tmp)

    def temp_manifest(self) -> TempManifest:
        """Start a manifest of temp files scoped to one export."""
        return TempManifest(self.tmp, self.logger)

    def has_decoder(self, name: str) -> bool:
        """
        Check whether FFmpeg lists the given decoder. Cached per context.

        Args:
            name: Decoder name as printed by `ffmpeg -decoders`

        Returns:
            True if the decoder is available
        """
        if name in self._capabilities:
            return self._capabilities[name]

        available = False
        try:
            result = subprocess.run(
                [self.ffmpeg, "-hide_banner", "-decoders"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode == 0:
                available = name in result.stdout
            else:
                self.logger.warning(f"Could not list decoders: {result.stderr}")
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.warning(f"Error checking decoder {name}: {e}")

        self.logger.debug(f"Decoder {name} available: {available}")
        self._capabilities[name] = available
        return available

    def check_webm_support(self) -> bool:
        """True if the libvpx-vp9 decoder (keeps VP9 alpha) is available."""
        return self.has_decoder("libvpx-vp9")

    def cleanup(self) -> None:
        """Remove every construction-time temporary file of this context."""
        for entry in os.listdir(self.tmp):
            path = os.path.join(self.tmp, entry)
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
            except OSError as e:
                self.logger.warning(f"Error cleaning up {path}: {e}")
        self.logger.debug("Temporary files cleaned up")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self._tmp.cleanup()


_DEFAULT_CTX: Optional[MediaContext] = None


def default_context() -> MediaContext:
    """
    Get the default media context, creating it on first use.

    Returns:
        Default MediaContext instance
    """
    global _DEFAULT_CTX
    if _DEFAULT_CTX is None:
        _DEFAULT_CTX = MediaContext.from_env()
    return _DEFAULT_CTX


def set_default_context(ctx: Optional[MediaContext]) -> None:
    """
    Set (or reset with None) the default media context.

    Args:
        ctx: MediaContext to use as default
    """
    global _DEFAULT_CTX
    _DEFAULT_CTX = ctx
