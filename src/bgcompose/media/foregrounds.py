"""Foreground clips carrying transparency, in one of four encodings.

| format        | inputs                       | normalization                           |
|---------------|------------------------------|-----------------------------------------|
| webm_vp9      | 1 (libvpx-vp9 if available)  | none, already RGBA                      |
| mov_prores    | 1                            | none, already RGBA                      |
| pro_bundle    | RGB + mask (+ audio)         | rgba + gray mask (thresholded) merged   |
| stacked_video | 1, split top/bottom by crop  | top rgba + bottom gray mask merged      |

With alpha disabled every format is reduced to its RGB picture (rgb24).
"""

from typing import Callable, Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, model_validator
from ..core.errors import BundleError, ConfigurationError, UnsupportedFormatError
from . import _io
from .backgrounds import trimmed_duration
from .context import MediaContext, default_context
from .graph import FilterGraph, Pad
from .probe import StreamInfo, detect_source_type, probe_source, source_extension

ForegroundFormat = Literal["webm_vp9", "mov_prores", "pro_bundle", "stacked_video"]

# Mask luminance >= 128 becomes opaque, anything darker fully transparent
BINARY_MASK = "geq='if(gte(lum(X,Y),128),255,0)'"

STACKED_EXTENSIONS = (".mp4", ".m4v", ".mkv", ".avi")

BUNDLE_COLOR = "color.mp4"
BUNDLE_ALPHA = "alpha.mp4"
BUNDLE_AUDIO = "audio.m4a"


class InputWiring(BaseModel):
    """Input-stage arguments of one foreground inside a composition."""

    args: List[str]
    inputs: Dict[str, int]
    audio_key: Optional[str] = None


class Foreground(BaseModel):
    """Foreground video with transparency information."""

    format: ForegroundFormat
    primary_path: str
    mask_path: Optional[str] = None
    audio_path: Optional[str] = None
    source_trim: Optional[Tuple[float, Optional[float]]] = None
    soft_alpha: bool = False
    info: Optional[StreamInfo] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_invariants(self) -> "Foreground":
        if (self.mask_path is not None) != (self.format == "pro_bundle"):
            raise ValueError("mask_path is required for pro_bundle and only allowed there")
        if self.soft_alpha and self.format != "pro_bundle":
            raise ValueError("soft_alpha is only supported for pro_bundle foregrounds")
        _check_trim(self.source_trim)
        return self

    # Factories

    @staticmethod
    def from_webm_vp9(path: str, ctx: Optional[MediaContext] = None) -> "Foreground":
        """
        Foreground from a WebM VP9 file (or URL) with an alpha channel.

        Args:
            path: Path or URL
            ctx: Media context for probing
        """
        ctx = ctx or default_context()
        return Foreground(
            format="webm_vp9", primary_path=path, info=probe_source(path, ctx)
        )

    @staticmethod
    def from_mov_prores(path: str, ctx: Optional[MediaContext] = None) -> "Foreground":
        """Foreground from a ProRes 4444 MOV file (or URL) with an alpha channel."""
        ctx = ctx or default_context()
        return Foreground(
            format="mov_prores", primary_path=path, info=probe_source(path, ctx)
        )

    @staticmethod
    def from_video_and_mask(
        video_path: str,
        mask_path: str,
        audio_path: Optional[str] = None,
        soft: bool = False,
        ctx: Optional[MediaContext] = None,
    ) -> "Foreground":
        """
        Foreground from a separate RGB video and grayscale mask.

        Args:
            video_path: RGB video path or URL
            mask_path: Grayscale mask video path or URL
            audio_path: Separate audio file (optional)
            soft: Use mask luminance directly as alpha instead of a binary matte
            ctx: Media context for probing
        """
        ctx = ctx or default_context()
        return Foreground(
            format="pro_bundle",
            primary_path=video_path,
            mask_path=mask_path,
            audio_path=audio_path,
            soft_alpha=soft,
            info=probe_source(video_path, ctx),
        )

    @staticmethod
    def from_stacked_video(
        path: str, ctx: Optional[MediaContext] = None
    ) -> "Foreground":
        """
        Foreground from a stacked video: color in the top half of each frame,
        grayscale mask in the bottom half.
        """
        ctx = ctx or default_context()
        return Foreground(
            format="stacked_video", primary_path=path, info=probe_source(path, ctx)
        )

    @staticmethod
    def from_pro_bundle_zip(
        path: str, soft: bool = False, ctx: Optional[MediaContext] = None
    ) -> "Foreground":
        """
        Foreground from a pro bundle archive (local path or URL).

        The archive must contain color.mp4 (RGB) and alpha.mp4 (grayscale
        matte); audio.m4a is picked up when present. Extracted files live in
        the context's temp directory.

        Raises:
            BundleError: If color.mp4 or alpha.mp4 is missing
        """
        ctx = ctx or default_context()
        if detect_source_type(path) == "url":
            path = _io.download(
                path,
                lambda ext: ctx.temp_path(suffix=ext, prefix="pro_bundle_"),
                ctx,
                default_ext=".zip",
            )

        extract_dir = _io.extract_zip(path, ctx)
        color = _io.find_member(extract_dir, BUNDLE_COLOR)
        alpha = _io.find_member(extract_dir, BUNDLE_ALPHA)
        audio = _io.find_member(extract_dir, BUNDLE_AUDIO)

        if color is None:
            raise BundleError(f"{BUNDLE_COLOR} not found in pro bundle {path}")
        if alpha is None:
            raise BundleError(f"{BUNDLE_ALPHA} not found in pro bundle {path}")

        ctx.logger.info(
            f"Pro bundle members: {BUNDLE_COLOR}, {BUNDLE_ALPHA}"
            + (f", {BUNDLE_AUDIO}" if audio else " (no audio)")
        )
        return Foreground.from_video_and_mask(color, alpha, audio, soft=soft, ctx=ctx)

    @staticmethod
    def from_file(path: str, ctx: Optional[MediaContext] = None) -> "Foreground":
        """
        Foreground from a path or URL, choosing the format by extension:
        .webm -> WebM VP9, .mov -> ProRes, .zip -> pro bundle,
        .mp4/.m4v/.mkv/.avi -> stacked video.

        Raises:
            UnsupportedFormatError: For any other extension
        """
        ctx = ctx or default_context()
        extension = source_extension(path)

        if extension == ".webm":
            return Foreground.from_webm_vp9(path, ctx)
        if extension == ".mov":
            return Foreground.from_mov_prores(path, ctx)
        if extension == ".zip":
            return Foreground.from_pro_bundle_zip(path, ctx=ctx)
        if extension in STACKED_EXTENSIONS:
            return Foreground.from_stacked_video(path, ctx)

        raise UnsupportedFormatError(
            f"Unknown video format for file: {path}\n"
            f"Detected extension: {extension or 'none'}\n"
            f"Supported formats:\n"
            f"  - .webm → Foreground.from_webm_vp9()\n"
            f"  - .mov  → Foreground.from_mov_prores()\n"
            f"  - {'/'.join(STACKED_EXTENSIONS)} → Foreground.from_stacked_video()\n"
            f"  - .zip  → Foreground.from_pro_bundle_zip()"
        )

    @staticmethod
    def from_url(
        url: str,
        format: Optional[ForegroundFormat] = None,
        ctx: Optional[MediaContext] = None,
    ) -> "Foreground":
        """
        Foreground from a URL.

        Args:
            url: Remote video or pro bundle archive
            format: Encoding of the URL's content; None chooses by extension
                like from_file()
            ctx: Media context

        Raises:
            UnsupportedFormatError: If no format is given and the URL has no
                known extension
        """
        if format is None:
            return Foreground.from_file(url, ctx)
        factories: Dict[str, Callable[..., "Foreground"]] = {
            "webm_vp9": Foreground.from_webm_vp9,
            "mov_prores": Foreground.from_mov_prores,
            "stacked_video": Foreground.from_stacked_video,
            "pro_bundle": Foreground.from_pro_bundle_zip,
        }
        if format not in factories:
            raise UnsupportedFormatError(
                f"Unknown foreground format: {format}. "
                f"Expected one of: {', '.join(factories)}"
            )
        return factories[format](url, ctx=ctx)

    def subclip(self, start: float, end: Optional[float] = None) -> "Foreground":
        """
        New Foreground using only ``start``..``end`` of the source.

        Replaces any previous trim; the receiver is left untouched.
        """
        _check_trim((start, end))
        return self.model_copy(update={"source_trim": (start, end)})

    def duration(self) -> Optional[float]:
        """Probed duration after trimming; None if unknown."""
        if self.info is None or not self.info.duration:
            return None
        return trimmed_duration(self.info.duration, self.source_trim)

    # Composition wiring

    def input_wiring(
        self,
        first_index: int,
        layer_idx: int,
        ctx: MediaContext,
        trim_args: List[str],
    ) -> InputWiring:
        """
        Input arguments and named input indices for this foreground.

        Args:
            first_index: FFmpeg index of the first input added
            layer_idx: Layer position in add-order, used for input names
            ctx: Media context (decoder capability)
            trim_args: Source trimming arguments placed before each -i
        """
        return _INPUTS[self.format](self, first_index, f"layer_{layer_idx}", ctx, trim_args)

    def normalize(
        self,
        graph: FilterGraph,
        inputs: Dict[str, int],
        layer_idx: int,
        alpha_enabled: bool = True,
    ) -> Pad:
        """
        Add the nodes turning this foreground into one RGBA (or RGB) stream.

        Args:
            graph: Graph under construction
            inputs: Named input indices from input_wiring()
            layer_idx: Layer position in add-order, used for labels
            alpha_enabled: False drops transparency (rgb24 output)

        Returns:
            Pad carrying the normalized video
        """
        return _NORMALIZE[self.format](
            self, graph, inputs, f"layer_{layer_idx}", alpha_enabled
        )


def _check_trim(trim: Optional[Tuple[float, Optional[float]]]) -> None:
    if trim is None:
        return
    start, end = trim
    if end is not None and end < start:
        raise ConfigurationError(f"Trim end ({end}) is before start ({start})")


def _vp9_decoder(path: str, ctx: MediaContext) -> List[str]:
    if ctx.check_webm_support():
        ctx.logger.debug(f"Using libvpx-vp9 decoder for WebM: {path}")
        return ["-c:v", "libvpx-vp9"]
    return []


def _single_input(key_suffix: str, decoder: bool) -> Callable[..., InputWiring]:
    def wiring(fg, index, label, ctx, trim_args) -> InputWiring:
        args = _vp9_decoder(fg.primary_path, ctx) if decoder else []
        args += trim_args + ["-i", fg.primary_path]
        key = f"{label}{key_suffix}"
        return InputWiring(args=args, inputs={key: index}, audio_key=key)

    return wiring


def _bundle_inputs(fg, index, label, ctx, trim_args) -> InputWiring:
    rgb_args = []
    if source_extension(fg.primary_path) == ".webm":
        rgb_args = _vp9_decoder(fg.primary_path, ctx)
    args = rgb_args + trim_args + ["-i", fg.primary_path]
    args += trim_args + ["-i", fg.mask_path]
    inputs = {f"{label}_rgb": index, f"{label}_mask": index + 1}
    audio_key = f"{label}_rgb"

    if fg.audio_path:
        args += trim_args + ["-i", fg.audio_path]
        audio_key = f"{label}_audio"
        inputs[audio_key] = index + 2

    return InputWiring(args=args, inputs=inputs, audio_key=audio_key)


def _direct_normalize(fg, graph, inputs, label, alpha_enabled) -> Pad:
    source = graph.input(inputs[label])
    if alpha_enabled:
        return source
    return graph.add("format=rgb24", [source], f"{label}_merged")


def _matte(graph: FilterGraph, mask: Pad, label: str, soft: bool) -> Pad:
    gray = graph.add("format=gray", [mask], f"{label}_mask_gray")
    if soft:
        return gray
    return graph.add(BINARY_MASK, [gray], f"{label}_binary_mask")


def _bundle_normalize(fg, graph, inputs, label, alpha_enabled) -> Pad:
    rgb = graph.input(inputs[f"{label}_rgb"])
    if not alpha_enabled:
        return graph.add("format=rgb24", [rgb], f"{label}_merged")

    rgba = graph.add("format=rgba", [rgb], f"{label}_rgba")
    matte = _matte(graph, graph.input(inputs[f"{label}_mask"]), label, fg.soft_alpha)
    return graph.add("alphamerge", [rgba, matte], f"{label}_merged")


def _stacked_normalize(fg, graph, inputs, label, alpha_enabled) -> Pad:
    stacked = graph.input(inputs[f"{label}_stacked"])
    top = graph.add("crop=iw:ih/2:0:0", [stacked], f"{label}_top")
    if not alpha_enabled:
        return graph.add("format=rgb24", [top], f"{label}_merged")

    rgba = graph.add("format=rgba", [top], f"{label}_top_rgba")
    bottom = graph.add("crop=iw:ih/2:0:ih/2", [stacked], f"{label}_bottom")
    matte = _matte(graph, bottom, label, soft=False)
    return graph.add("alphamerge", [rgba, matte], f"{label}_merged")


_INPUTS: Dict[str, Callable[..., InputWiring]] = {
    "webm_vp9": _single_input("", decoder=True),
    "mov_prores": _single_input("", decoder=False),
    "pro_bundle": _bundle_inputs,
    "stacked_video": _single_input("_stacked", decoder=False),
}

_NORMALIZE: Dict[str, Callable[..., Pad]] = {
    "webm_vp9": _direct_normalize,
    "mov_prores": _direct_normalize,
    "pro_bundle": _bundle_normalize,
    "stacked_video": _stacked_normalize,
}
