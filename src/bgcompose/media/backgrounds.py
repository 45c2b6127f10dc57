"""Canvas backgrounds: solid color, looped image, video, or fully transparent."""

import re
from typing import Callable, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, HttpUrl, field_validator
from ..core.errors import ConfigurationError, MediaProbeError
from . import _io
from .context import MediaContext, TempManifest, default_context
from .probe import StreamInfo, probe_source, detect_source_type
from .video import Video

BackgroundKind = Literal["color", "image", "video", "empty"]

HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")


class Background(BaseModel):
    """
    Canvas backdrop of a composition.

    One immutable model covers every kind; behaviour that differs per kind is
    looked up in the tables at the bottom of this module. Use the factory
    methods rather than the constructor.
    """

    kind: BackgroundKind
    width: int
    height: int
    fps: float
    color: Optional[str] = None
    source: Optional[str] = None
    source_trim: Optional[Tuple[float, Optional[float]]] = None
    audio_enabled: bool = False
    audio_volume: float = 1.0
    info: Optional[StreamInfo] = None

    model_config = {"frozen": True}

    @field_validator("color")
    @classmethod
    def _check_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not HEX_COLOR.fullmatch(v):
            raise ValueError(f"Color must be in hex format (#RRGGBB), got {v!r}")
        return v

    # Factories

    @staticmethod
    def from_color(hex_color: str, width: int, height: int, fps: float) -> "Background":
        """
        Solid color background.

        Args:
            hex_color: Color as "#RRGGBB"
            width: Canvas width in pixels
            height: Canvas height in pixels
            fps: Frame rate

        Raises:
            pydantic.ValidationError: If the color is not "#RRGGBB"
        """
        return Background(
            kind="color", color=hex_color, width=width, height=height, fps=fps
        )

    @staticmethod
    def from_image(
        path_or_url: Union[str, HttpUrl],
        fps: float = 30.0,
        ctx: Optional[MediaContext] = None,
    ) -> "Background":
        """
        Looped still image; the canvas takes the image's dimensions.

        Remote images are probed in place and only downloaded when exporting.

        Args:
            path_or_url: Path or URL of the image
            fps: Frame rate of the generated stream
            ctx: Media context for probing
        """
        ctx = ctx or default_context()
        source = str(path_or_url)
        info = probe_source(source, ctx)
        if not info.width or not info.height:
            raise MediaProbeError(f"Could not determine dimensions for image {source}")
        return Background(
            kind="image",
            source=source,
            width=info.width,
            height=info.height,
            fps=fps,
            info=info,
        )

    @staticmethod
    def from_video(
        path_or_url_or_video: Union[str, HttpUrl, Video],
        ctx: Optional[MediaContext] = None,
    ) -> "Background":
        """
        Video background. It dictates the composition duration and its audio
        is enabled by default.

        Args:
            path_or_url_or_video: Path, URL, or Video instance
            ctx: Media context for probing
        """
        ctx = ctx or default_context()
        if isinstance(path_or_url_or_video, Video):
            source = str(path_or_url_or_video.src)
        else:
            source = str(path_or_url_or_video)

        info = probe_source(source, ctx)
        if not info.width or not info.height:
            raise MediaProbeError(f"Could not determine video dimensions for {source}")
        if info.rotation in (90, 270):
            ctx.logger.debug(
                f"Video has {info.rotation}° rotation, using {info.width}x{info.height}"
            )

        return Background(
            kind="video",
            source=source,
            width=info.width,
            height=info.height,
            fps=info.fps or 30.0,
            audio_enabled=True,
            info=info,
        )

    @staticmethod
    def empty(width: int, height: int, fps: float) -> "Background":
        """Fully transparent background."""
        return Background(kind="empty", width=width, height=height, fps=fps)

    # Copy-on-write transforms

    def audio(self, enabled: bool = True, volume: float = 1.0) -> "Background":
        """
        New background with updated audio settings.

        Args:
            enabled: Whether to mix this background's audio
            volume: Audio volume, clamped to 0.0-1.0
        """
        return self.model_copy(
            update={
                "audio_enabled": enabled,
                "audio_volume": max(0.0, min(1.0, volume)),
            }
        )

    def subclip(self, start: float, end: Optional[float] = None) -> "Background":
        """
        New video background using only ``start``..``end`` of the source.

        Raises:
            ConfigurationError: For non-video backgrounds
        """
        if self.kind != "video":
            raise ConfigurationError(f"Cannot subclip a {self.kind} background")
        return self.model_copy(update={"source_trim": (start, end)})

    # Per-kind behaviour

    def controls_duration(self) -> bool:
        """Whether this background dictates the composition duration."""
        return _CONTROLS_DURATION[self.kind]

    def input_args(
        self,
        canvas_width: int,
        canvas_height: int,
        canvas_fps: float,
        ctx: MediaContext,
        manifest: Optional[TempManifest] = None,
    ) -> List[str]:
        """
        FFmpeg input arguments for this background.

        Args:
            canvas_width: Resolved canvas width
            canvas_height: Resolved canvas height
            canvas_fps: Resolved canvas frame rate
            ctx: Media context
            manifest: Export-scoped temp files; enables staging of remote images
        """
        return _INPUT_ARGS[self.kind](
            self, canvas_width, canvas_height, canvas_fps, ctx, manifest
        )

    def has_audio(self) -> bool:
        """Whether the probed source carries an audio stream."""
        return bool(self.kind == "video" and self.info and self.info.has_audio)

    def duration(self) -> Optional[float]:
        """Probed playable duration, after trimming; None if unknown."""
        if self.kind != "video" or self.info is None or not self.info.duration:
            return None
        return trimmed_duration(self.info.duration, self.source_trim)


def lavfi_color(color: str, width: int, height: int, fps: float) -> List[str]:
    """Synthetic solid-color input of the given size and rate."""
    return ["-f", "lavfi", "-i", f"color=c={color}:size={width}x{height}:rate={fps}"]


def trimmed_duration(
    total: float, source_trim: Optional[Tuple[float, Optional[float]]]
) -> Optional[float]:
    """Playable length of a (start, end) window over ``total`` seconds; None if empty."""
    if not source_trim:
        return total
    start, end = source_trim
    stop = total if end is None else min(end, total)
    return stop - start if stop > start else None


def trim_args(source_trim: Optional[Tuple[float, Optional[float]]]) -> List[str]:
    """Input-level seek/duration arguments for a (start, end) pair."""
    if not source_trim:
        return []
    start, end = source_trim
    args = ["-ss", str(start)]
    if end is not None:
        args.extend(["-t", str(end - start)])
    return args


def _color_args(bg, w, h, fps, ctx, manifest) -> List[str]:
    return lavfi_color(bg.color, w, h, fps)


def _empty_args(bg, w, h, fps, ctx, manifest) -> List[str]:
    return lavfi_color("black@0.0", w, h, fps)


def _image_args(bg, w, h, fps, ctx, manifest) -> List[str]:
    source = bg.source
    # FFmpeg re-fetches looped remote images, so stage them locally
    if manifest is not None and detect_source_type(source) == "url":
        source = _io.download(
            source,
            lambda ext: manifest.path(suffix=ext, prefix="downloaded_image_"),
            ctx,
            default_ext=".png",
            timeout=30,
        )
    return ["-loop", "1", "-i", source]


def _video_args(bg, w, h, fps, ctx, manifest) -> List[str]:
    args = []
    if bg.info and bg.info.needs_vp9_decoder and ctx.check_webm_support():
        ctx.logger.debug(f"Using libvpx-vp9 decoder for: {bg.source}")
        args.extend(["-c:v", "libvpx-vp9"])
    args.extend(trim_args(bg.source_trim))
    args.extend(["-i", bg.source])
    return args


_CONTROLS_DURATION: Dict[str, bool] = {
    "color": False,
    "image": False,
    "video": True,
    "empty": False,
}

_INPUT_ARGS: Dict[str, Callable[..., List[str]]] = {
    "color": _color_args,
    "image": _image_args,
    "video": _video_args,
    "empty": _empty_args,
}
