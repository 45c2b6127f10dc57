"""Stream metadata probing with ffprobe."""

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse
from pydantic import BaseModel
from .context import MediaContext

SourceType = Literal["file", "url", "stream"]

ALPHA_PIX_FMTS = {
    "yuva420p",
    "yuva422p",
    "yuva444p",
    "yuva444p10le",
    "rgba",
    "bgra",
    "argb",
    "abgr",
}

DEFAULT_FPS = 30.0


class StreamInfo(BaseModel):
    """Metadata of the primary video stream of a source.

    Every derived field is optional: a failed probe produces a placeholder
    whose codec_name is "unknown".
    """

    source: str
    source_type: SourceType = "file"
    codec_name: str = "unknown"
    pix_fmt: str = "unknown"
    width: Optional[int] = None
    height: Optional[int] = None
    rotation: int = 0
    fps: Optional[float] = None
    duration: Optional[float] = None
    has_audio: bool = False
    needs_vp9_decoder: bool = False

    model_config = {"frozen": True}

    @property
    def complete(self) -> bool:
        """False for the placeholder returned by a failed probe."""
        return self.codec_name != "unknown"

    @property
    def has_alpha(self) -> bool:
        return self.pix_fmt in ALPHA_PIX_FMTS


def detect_source_type(source: str) -> SourceType:
    """Classify a locator as a local file, an HTTP(S)/FTP URL or a stream."""
    parsed = urlparse(source)
    if parsed.scheme in ("http", "https", "ftp"):
        return "url"
    # Single-letter schemes are Windows drive letters
    if parsed.scheme and len(parsed.scheme) > 1:
        return "stream"
    return "file"


def source_extension(source: str) -> str:
    """Lowercase extension of a path or URL path, ignoring any query string."""
    if detect_source_type(source) == "file":
        return Path(source).suffix.lower()
    return Path(urlparse(source).path).suffix.lower()


def parse_frame_rate(value: Optional[str]) -> float:
    """Parse an ffprobe rational like "30000/1001"; 30.0 when unparsable."""
    if not value:
        return DEFAULT_FPS
    try:
        if "/" in value:
            num, den = value.split("/", 1)
            return float(num) / float(den)
        return float(value)
    except (ValueError, ZeroDivisionError):
        return DEFAULT_FPS


def _parse_duration(value: Any) -> Optional[float]:
    if value in (None, "", "N/A"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_rotation(stream: Dict[str, Any]) -> int:
    try:
        if stream.get("rotation"):
            return abs(int(float(stream["rotation"])))
        tags = stream.get("tags") or {}
        if tags.get("rotate"):
            return abs(int(float(tags["rotate"])))
    except (TypeError, ValueError):
        pass
    return 0


def placeholder_info(source: str) -> StreamInfo:
    """Metadata-incomplete info, with decoder hints guessed from the extension."""
    source_type = detect_source_type(source)
    if source_type == "stream":
        needs_vp9 = ".webm" in source.lower()
    else:
        needs_vp9 = source_extension(source) == ".webm"
    return StreamInfo(
        source=source, source_type=source_type, needs_vp9_decoder=needs_vp9
    )


def parse_probe_output(source: str, data: Dict[str, Any]) -> Optional[StreamInfo]:
    """
    Build StreamInfo from parsed ffprobe JSON.

    Args:
        source: Probed path or URL
        data: ffprobe output with "streams" and optional "format"

    Returns:
        StreamInfo, or None when there is no video stream
    """
    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    if video is None:
        return None

    width = video.get("width")
    height = video.get("height")
    rotation = _parse_rotation(video)
    if width is not None and height is not None and rotation in (90, 270):
        width, height = height, width

    duration = _parse_duration(video.get("duration"))
    if duration is None:
        duration = _parse_duration((data.get("format") or {}).get("duration"))

    codec = video.get("codec_name") or "unknown"
    pix_fmt = video.get("pix_fmt") or "unknown"

    return StreamInfo(
        source=source,
        source_type=detect_source_type(source),
        codec_name=codec,
        pix_fmt=pix_fmt,
        width=int(width) if width is not None else None,
        height=int(height) if height is not None else None,
        rotation=rotation,
        fps=parse_frame_rate(video.get("r_frame_rate")),
        duration=duration,
        has_audio=any(s.get("codec_type") == "audio" for s in streams),
        needs_vp9_decoder=codec == "vp9" and pix_fmt in ALPHA_PIX_FMTS,
    )


def probe_source(source: str, ctx: MediaContext) -> StreamInfo:
    """
    Probe a file or URL with ffprobe.

    Never raises: any failure is logged and a placeholder is returned.

    Args:
        source: Path or URL to probe
        ctx: Media context providing the ffprobe binary and logger

    Returns:
        StreamInfo for the primary video stream
    """
    cmd = [
        ctx.ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_entries",
        "stream=codec_name,codec_type,pix_fmt,width,height,duration,r_frame_rate,rotation"
        ":stream_tags=rotate:format=duration",
        source,
    ]
    timeout = 10 if detect_source_type(source) == "url" else 5

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        ctx.logger.warning(f"Probing timed out for {source}")
        return placeholder_info(source)
    except OSError as e:
        ctx.logger.warning(f"Probing failed for {source}: {e}")
        return placeholder_info(source)

    if result.returncode != 0:
        ctx.logger.warning(f"ffprobe failed for {source}: {result.stderr}")
        return placeholder_info(source)

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        ctx.logger.warning(f"Invalid ffprobe output for {source}: {e}")
        return placeholder_info(source)

    info = parse_probe_output(source, data)
    if info is None:
        ctx.logger.warning(f"No video streams found in {source}")
        return placeholder_info(source)

    ctx.logger.debug(
        f"Probed {source}: {info.codec_name}/{info.pix_fmt} "
        f"{info.width}x{info.height} @ {info.fps} fps, duration={info.duration}"
    )
    return info
