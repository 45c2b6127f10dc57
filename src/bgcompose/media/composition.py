"""Video composition: layers over a background, compiled to one FFmpeg call."""

import asyncio
import math
import subprocess
from contextlib import contextmanager
from typing import Dict, Iterator, List, Literal, Optional, Tuple
from pydantic import BaseModel
from ..core.errors import CanvasError, FFmpegError, FFmpegNotFoundError
from ..core.types import Anchor, SizeMode, ProgressCb
from .backgrounds import Background, lavfi_color, trim_args, trimmed_duration
from .context import MediaContext, TempManifest, default_context
from .encoders import EncoderProfile
from .foregrounds import Foreground
from .graph import FilterGraph, Pad, StreamKind
from .layout import SizeSpec, anchor_position, scale_params, target_box

StreamFormat = Literal["y4m", "webm", "matroska", "mp4_fragmented"]

_STREAM_FORMAT_ARGS: Dict[str, List[str]] = {
    "y4m": ["-f", "yuv4mpegpipe"],
    "webm": ["-f", "webm"],
    "matroska": ["-f", "matroska"],
    "mp4_fragmented": ["-f", "mp4", "-movflags", "frag_keyframe+empty_moov"],
}


class Layer(BaseModel):
    """Placement record of one foreground inside a composition."""

    name: str
    fg: Foreground
    anchor: Anchor = Anchor.CENTER
    dx: float = 0
    dy: float = 0
    x_expr: Optional[str] = None
    y_expr: Optional[str] = None
    size: SizeSpec = SizeSpec()
    opacity: float = 1.0
    rotate: float = 0.0
    crop: Optional[Tuple[int, int, int, int]] = None
    comp_start: Optional[float] = None
    comp_end: Optional[float] = None
    comp_duration: Optional[float] = None
    source_trim: Optional[Tuple[float, Optional[float]]] = None
    audio_enabled: bool = True
    audio_volume: float = 1.0
    alpha_enabled: bool = True
    z: int = 0

    @property
    def effective_trim(self) -> Optional[Tuple[float, Optional[float]]]:
        """Layer trim if set, otherwise the foreground's own trim."""
        return self.source_trim or self.fg.source_trim

    @property
    def start_offset(self) -> float:
        return self.comp_start if self.comp_start and self.comp_start > 0 else 0.0

    def window_end(self) -> Optional[float]:
        """Composition time at which the layer disappears; end wins over duration."""
        if self.comp_end is not None:
            return self.comp_end
        if self.comp_duration is not None:
            return (self.comp_start or 0) + self.comp_duration
        return None

    def duration(self) -> Optional[float]:
        """Probed duration of the layer's (trimmed) source; reversed trims give None."""
        if not self.source_trim:
            return self.fg.duration()
        info = self.fg.info
        if info is None or not info.duration:
            return None
        return trimmed_duration(info.duration, self.source_trim)


class AudioSource(BaseModel):
    """One audio stream feeding the output mix."""

    pad: Pad
    volume: float = 1.0
    delay: float = 0.0
    audible: bool = True

    @property
    def plain(self) -> bool:
        """Mapped as is, without delay or volume filters."""
        return self.delay <= 0 and self.volume == 1.0


class LayerHandle:
    """Chainable handle mutating one layer of a composition in place."""

    def __init__(self, comp: "Composition", idx: int):
        self._comp = comp
        self._idx = idx

    @property
    def layer(self) -> Layer:
        return self._comp._layers[self._idx]

    def at(self, anchor: Anchor = Anchor.CENTER, dx: float = 0, dy: float = 0) -> "LayerHandle":
        """Position the layer by anchor and pixel offset."""
        self.layer.anchor = anchor
        self.layer.dx = dx
        self.layer.dy = dy
        return self

    def xy(self, x_expr: str, y_expr: str) -> "LayerHandle":
        """Position the layer with raw overlay expressions (overrides the anchor)."""
        self.layer.x_expr = x_expr
        self.layer.y_expr = y_expr
        return self

    def size(
        self,
        mode: SizeMode,
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        percent: Optional[float] = None,
        scale: Optional[float] = None,
    ) -> "LayerHandle":
        """Set the size mode and its parameters."""
        self.layer.size = SizeSpec(
            mode=mode, width=width, height=height, percent=percent, scale=scale
        )
        return self

    def opacity(self, alpha: float) -> "LayerHandle":
        """Set layer opacity, clamped to 0.0-1.0."""
        self.layer.opacity = max(0.0, min(1.0, alpha))
        return self

    def rotate(self, degrees: float) -> "LayerHandle":
        self.layer.rotate = degrees
        return self

    def crop(self, x: int, y: int, w: int, h: int) -> "LayerHandle":
        self.layer.crop = (x, y, w, h)
        return self

    def start(self, seconds: float) -> "LayerHandle":
        """When the layer appears on the composition timeline."""
        self.layer.comp_start = seconds
        return self

    def end(self, seconds: float) -> "LayerHandle":
        """When the layer disappears from the composition timeline."""
        self.layer.comp_end = seconds
        return self

    def duration(self, seconds: float) -> "LayerHandle":
        """How long the layer stays visible after its start."""
        self.layer.comp_duration = seconds
        return self

    def subclip(self, start: float, end: Optional[float] = None) -> "LayerHandle":
        """
        Use only part of the source for this layer.

        Args:
            start: Start time in the source (seconds)
            end: End time in the source (seconds, None = until the end)
        """
        self.layer.source_trim = (start, end)
        return self

    def audio(self, enabled: bool = True, volume: float = 1.0) -> "LayerHandle":
        """
        Include or mute this layer's audio.

        Args:
            enabled: Whether to mix this layer's audio
            volume: Audio volume, clamped to 0.0-1.0
        """
        self.layer.audio_enabled = enabled
        self.layer.audio_volume = max(0.0, min(1.0, volume))
        return self

    def z(self, index: int) -> "LayerHandle":
        """Set the compositing order; higher is drawn later (on top)."""
        self.layer.z = index
        return self

    def alpha(self, enabled: bool = True) -> "LayerHandle":
        """Keep (default) or drop the layer's transparency."""
        self.layer.alpha_enabled = enabled
        return self


class Composition:
    """Video composition with layers and effects."""

    def __init__(
        self,
        background: Optional[Background] = None,
        ctx: Optional[MediaContext] = None,
    ):
        """
        Initialize composition.

        Args:
            background: Optional background; without one, call set_canvas()
            ctx: Media context for operations
        """
        self.ctx = ctx or default_context()
        self._background: Optional[Background] = background
        self._layers: List[Layer] = []
        self._canvas_hint: Optional[Tuple[int, int, float]] = None
        self._explicit_duration: Optional[float] = None

    def _copy(self) -> "Composition":
        comp = Composition(self._background, ctx=self.ctx)
        comp._layers = list(self._layers)
        comp._canvas_hint = self._canvas_hint
        comp._explicit_duration = self._explicit_duration
        return comp

    @staticmethod
    def canvas(
        width: int, height: int, fps: float, ctx: Optional[MediaContext] = None
    ) -> "Composition":
        """Composition on a transparent canvas of the given size."""
        return Composition(Background.empty(width, height, fps), ctx=ctx)

    def background(self, bg: Background) -> "Composition":
        """New composition with the same layers over another background."""
        comp = self._copy()
        comp._background = bg
        return comp

    def set_canvas(self, width: int, height: int, fps: float) -> "Composition":
        """New composition with an explicit canvas, used when there is no background."""
        comp = self._copy()
        comp._canvas_hint = (width, height, fps)
        return comp

    def set_duration(self, seconds: float) -> "Composition":
        """New composition with an explicit duration, overriding every other rule."""
        comp = self._copy()
        comp._explicit_duration = seconds
        return comp

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    def add(self, fg: Foreground, name: Optional[str] = None) -> LayerHandle:
        """
        Add a foreground layer to the composition.

        The same foreground may be added several times.

        Args:
            fg: Foreground to add
            name: Optional layer name

        Returns:
            LayerHandle for further configuration
        """
        idx = len(self._layers)
        self._layers.append(Layer(name=name or f"layer{idx}", fg=fg, z=idx))
        return LayerHandle(self, idx)

    # Resolution rules

    def canvas_size(self) -> Tuple[int, int, float]:
        """
        Canvas width, height and fps: background first, then set_canvas().

        Raises:
            CanvasError: If neither is available
        """
        bg = self._background
        if bg is not None and bg.width and bg.height and bg.fps:
            return bg.width, bg.height, bg.fps
        if self._canvas_hint:
            return self._canvas_hint
        raise CanvasError(
            "Cannot determine canvas size. Please provide a background "
            "(Background.from_image/from_video/from_color) or set explicit canvas "
            "dimensions using Composition.canvas() or .set_canvas()."
        )

    def resolved_duration(self) -> Optional[float]:
        """
        Output duration: explicit override, else a video background's
        duration, else the longest layer source. None means run to EOF.
        """
        return self._duration_rule()[0]

    def _duration_rule(self) -> Tuple[Optional[float], str]:
        """Resolved duration and the name of the rule that produced it."""
        if self._explicit_duration is not None:
            return self._explicit_duration, "explicit duration"

        bg = self._background
        if bg is not None and bg.controls_duration():
            bg_duration = bg.duration()
            if bg_duration and bg_duration > 0:
                return bg_duration, "video background duration"

        durations = [d for d in (layer.duration() for layer in self._layers) if d]
        longest = max(durations, default=0.0)
        if longest > 0:
            return longest, "longest foreground duration"
        return None, "unbounded"

    # Compilation

    def build_argv(
        self,
        out_path: str,
        encoder: EncoderProfile,
        stream_format: Optional[StreamFormat] = None,
        manifest: Optional[TempManifest] = None,
    ) -> List[str]:
        """
        Compile the composition into a complete FFmpeg argument list.

        Args:
            out_path: Output path ("-" for a pipe)
            encoder: Encoder profile
            stream_format: Container for piped output
            manifest: Export-scoped temp files (remote image staging)

        Raises:
            CanvasError: If the canvas size cannot be resolved
        """
        width, height, fps = self.canvas_size()
        argv = [self.ctx.ffmpeg, "-y"]

        # Inputs: background first, then layers in add-order
        if self._background is not None:
            argv += self._background.input_args(width, height, fps, self.ctx, manifest)
        else:
            argv += lavfi_color("black@0.0", width, height, fps)

        inputs: Dict[str, int] = {"background": 0}
        audio: List[AudioSource] = []
        next_index = 1

        for i, layer in enumerate(self._layers):
            wiring = layer.fg.input_wiring(
                next_index, i, self.ctx, trim_args(layer.effective_trim)
            )
            argv += wiring.args
            inputs.update(wiring.inputs)
            next_index += len(wiring.inputs)

            if layer.audio_enabled and wiring.audio_key:
                audio.append(
                    AudioSource(
                        pad=FilterGraph.input(inputs[wiring.audio_key], StreamKind.AUDIO),
                        volume=layer.audio_volume,
                        delay=layer.start_offset,
                        audible=_may_have_audio(layer),
                    )
                )

        bg = self._background
        if bg is not None and bg.audio_enabled and bg.has_audio():
            audio.append(
                AudioSource(
                    pad=FilterGraph.input(0, StreamKind.AUDIO), volume=bg.audio_volume
                )
            )

        graph = FilterGraph()
        video_out = self._build_video(graph, inputs, width, height, encoder)
        audio_args = self._build_audio(graph, audio)
        graph.validate()

        if graph:
            argv += ["-filter_complex", graph.render()]
        argv += ["-map", video_out.map_spec()]
        argv += audio_args

        duration, rule = self._duration_rule()
        if duration:
            argv += ["-t", str(duration)]
            self.ctx.logger.info(f"Using {rule}: {duration:.1f}s")

        encoder_args = encoder.args(out_path)
        argv += encoder_args[:-1]
        if stream_format:
            argv += _STREAM_FORMAT_ARGS[stream_format]
        argv.append(encoder_args[-1])
        return argv

    def build_graph(self, encoder: Optional[EncoderProfile] = None) -> FilterGraph:
        """The filter graph build_argv() would render, for inspection."""
        width, height, _ = self.canvas_size()
        graph = FilterGraph()
        inputs: Dict[str, int] = {"background": 0}
        next_index = 1
        for i, layer in enumerate(self._layers):
            wiring = layer.fg.input_wiring(
                next_index, i, self.ctx, trim_args(layer.effective_trim)
            )
            inputs.update(wiring.inputs)
            next_index += len(wiring.inputs)
        self._build_video(graph, inputs, width, height, encoder or EncoderProfile.h264())
        return graph

    def _ordered_layers(self) -> List[Tuple[int, Layer]]:
        # sorted() is stable: equal z keeps add-order
        return sorted(enumerate(self._layers), key=lambda item: item[1].z)

    def _build_video(
        self,
        graph: FilterGraph,
        inputs: Dict[str, int],
        width: int,
        height: int,
        encoder: EncoderProfile,
    ) -> Pad:
        current = graph.input(inputs["background"])
        ordered = self._ordered_layers()
        final_label = "composed" if encoder.stacks_alpha else "out"

        for position, (idx, layer) in enumerate(ordered):
            pad = layer.fg.normalize(graph, inputs, idx, layer.alpha_enabled)
            pad = self._transform(graph, layer, idx, pad, width, height)

            label = final_label if position == len(ordered) - 1 else f"tmp{position}"
            current = graph.add(
                f"overlay={self._overlay_params(layer, width, height)}",
                [current, pad],
                label,
            )

        if encoder.stacks_alpha:
            current = _stack_alpha(graph, current, encoder.layout or "vertical")

        if graph:
            graph.mark_output(current)
        return current

    def _transform(
        self,
        graph: FilterGraph,
        layer: Layer,
        idx: int,
        pad: Pad,
        width: int,
        height: int,
    ) -> Pad:
        """Timeline shift, crop, scale, rotate and opacity, in that order."""
        label = f"layer_{idx}"

        if layer.start_offset > 0:
            pad = graph.add(
                f"setpts=PTS-STARTPTS,setpts=PTS+{layer.start_offset}/TB",
                [pad],
                f"{label}_timed",
            )

        if layer.crop:
            x, y, w, h = layer.crop
            pad = graph.add(f"crop={w}:{h}:{x}:{y}", [pad], f"{label}_crop")

        params = scale_params(layer.size, width, height)
        if params:
            pad = graph.add(f"scale={params}", [pad], f"{label}_scale")

        if layer.rotate != 0:
            pad = graph.add(f"rotate={layer.rotate}*PI/180", [pad], f"{label}_rotate")

        if layer.opacity != 1.0:
            expr = f"colorchannelmixer=aa={layer.opacity}"
            if not layer.alpha_enabled:
                expr = "format=rgba," + expr
            pad = graph.add(expr, [pad], f"{label}_opacity")

        return pad

    def _overlay_params(self, layer: Layer, width: int, height: int) -> str:
        if layer.x_expr and layer.y_expr:
            x, y = layer.x_expr, layer.y_expr
        elif layer.size.mode == SizeMode.CANVAS_PERCENT:
            box = target_box(layer.size, width, height)
            x, y = anchor_position(layer.anchor, layer.dx, layer.dy, box)
        else:
            x, y = anchor_position(layer.anchor, layer.dx, layer.dy)

        params = f"x='{x}':y='{y}':eof_action=pass"
        end = layer.window_end()
        if end is not None:
            params += f":enable='between(t,{layer.comp_start or 0},{end})'"
        return params

    def _build_audio(self, graph: FilterGraph, sources: List[AudioSource]) -> List[str]:
        """Add audio nodes and return the audio mapping arguments."""
        # "?" tolerates a missing stream; filters on one would fail
        if len(sources) == 1 and sources[0].plain:
            return ["-map", f"{sources[0].pad.label}?"]

        sources = [s for s in sources if s.audible]
        if not sources:
            return ["-an"]

        if len(sources) == 1:
            source = sources[0]
            if source.plain:
                return ["-map", f"{source.pad.label}?"]

            pad = source.pad
            if source.delay > 0:
                pad = graph.add(_adelay(source.delay), [pad], "audio_delayed")
            if source.volume != 1.0:
                pad = graph.add(f"volume={source.volume}", [pad], "audio_out")
            else:
                pad = graph.add("anull", [pad], "audio_out")
            graph.mark_output(pad)
            return ["-map", pad.map_spec()]

        mixed = []
        for i, source in enumerate(sources):
            pad = source.pad
            if source.delay > 0:
                pad = graph.add(_adelay(source.delay), [pad], f"audio_delayed_{i}")
            if source.volume != 1.0:
                pad = graph.add(f"volume={source.volume}", [pad], f"audio_vol_{i}")
            mixed.append(pad)

        out = graph.add(
            f"amix=inputs={len(mixed)}:duration=longest", mixed, "audio_out"
        )
        graph.mark_output(out)
        return ["-map", out.map_spec()]

    # Export

    def dry_run(self) -> str:
        """
        FFmpeg command for this composition, without running it.

        Returns:
            The argument list joined by spaces
        """
        argv = self.build_argv("OUT.mp4", EncoderProfile.h264())
        return " ".join(map(str, argv))

    def to_file(
        self,
        out_path: str,
        encoder: EncoderProfile,
        on_progress: ProgressCb = None,
        verbose: bool = False,
    ) -> None:
        """
        Render the composition to a file.

        Args:
            out_path: Output file path
            encoder: Encoder profile to use
            on_progress: Status callback ("processing", "completed")
            verbose: Stream FFmpeg output to the console instead of capturing it

        Raises:
            CanvasError: If the canvas size cannot be resolved
            FFmpegNotFoundError: If FFmpeg cannot be started
            FFmpegError: If FFmpeg exits with an error
        """
        with self.ctx.temp_manifest() as manifest:
            argv = self.build_argv(out_path, encoder, manifest=manifest)
            self._run(argv, on_progress, verbose=verbose)

    async def to_file_async(
        self,
        out_path: str,
        encoder: EncoderProfile,
        on_progress: ProgressCb = None,
        verbose: bool = False,
    ) -> None:
        """Coroutine version of to_file(); FFmpeg runs as an asyncio subprocess."""
        with self.ctx.temp_manifest() as manifest:
            # build_argv may download remote inputs
            argv = await asyncio.to_thread(
                self.build_argv, out_path, encoder, manifest=manifest
            )
            self.ctx.logger.info(f"Running FFmpeg: {' '.join(argv)}")
            if on_progress:
                on_progress("processing")

            pipe = None if verbose else asyncio.subprocess.PIPE
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv, stdin=asyncio.subprocess.DEVNULL, stdout=pipe, stderr=pipe
                )
            except FileNotFoundError as e:
                raise FFmpegNotFoundError(
                    f"FFmpeg not found ({argv[0]}): {e}", argv=argv
                ) from e

            _, stderr = await process.communicate()
            _check_exit(process.returncode, (stderr or b"").decode(errors="replace"), argv)

        if on_progress:
            on_progress("completed")
        self.ctx.logger.info("FFmpeg completed successfully")

    def to_stream(
        self,
        format: StreamFormat,
        video: Optional[EncoderProfile] = None,
        on_progress: ProgressCb = None,
    ):
        """
        Render the composition to FFmpeg's stdout.

        Args:
            format: Container written to the pipe
            video: Encoder profile (default VP9)
            on_progress: Status callback

        Returns:
            Context manager yielding the readable stdout pipe
        """
        argv = self.build_argv("-", video or EncoderProfile.vp9(), stream_format=format)
        return self._pipe_context(argv, on_progress)

    def _run(
        self, argv: List[str], on_progress: ProgressCb = None, verbose: bool = False
    ) -> None:
        """Run FFmpeg to completion."""
        self.ctx.logger.info(f"Running FFmpeg: {' '.join(argv)}")
        if on_progress:
            on_progress("processing")

        pipe = None if verbose else subprocess.PIPE
        try:
            process = subprocess.Popen(
                argv, stdin=subprocess.DEVNULL, stdout=pipe, stderr=pipe, text=True
            )
        except FileNotFoundError as e:
            raise FFmpegNotFoundError(f"FFmpeg not found ({argv[0]}): {e}", argv=argv) from e

        _, stderr = process.communicate()
        _check_exit(process.returncode, stderr or "", argv)

        if on_progress:
            on_progress("completed")
        self.ctx.logger.info("FFmpeg completed successfully")

    @contextmanager
    def _pipe_context(
        self, argv: List[str], on_progress: ProgressCb = None
    ) -> Iterator:
        self.ctx.logger.info(f"Starting FFmpeg stream: {' '.join(argv)}")
        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise FFmpegNotFoundError(f"FFmpeg not found ({argv[0]}): {e}", argv=argv) from e

        if on_progress:
            on_progress("processing")
        try:
            yield process.stdout
        finally:
            process.terminate()
            process.wait()


def _may_have_audio(layer: Layer) -> bool:
    """False only when a complete probe found no audio and no audio file is attached."""
    fg = layer.fg
    if fg.audio_path:
        return True
    if fg.info is None or not fg.info.complete:
        return True
    return fg.info.has_audio


def _adelay(seconds: float) -> str:
    ms = math.floor(seconds * 1000)
    return f"adelay=delays={ms}:all=1"


def _stack_alpha(graph: FilterGraph, pad: Pad, layout: str) -> Pad:
    """Place the color frame and its alpha mask side by side (or stacked)."""
    color_src, alpha_src = graph.add_multi(
        "format=rgba,split", [pad], ["stack_color_src", "stack_alpha_src"]
    )
    color = graph.add("format=rgb24", [color_src], "stack_color")
    mask = graph.add("alphaextract,format=rgb24", [alpha_src], "stack_mask")
    stacker = "vstack" if layout == "vertical" else "hstack"
    return graph.add(f"{stacker}=inputs=2", [color, mask], "out")


def _check_exit(returncode: Optional[int], stderr: str, argv: List[str]) -> None:
    if returncode != 0:
        raise FFmpegError(
            f"FFmpeg failed with code {returncode}: {stderr}",
            returncode=returncode,
            stderr=stderr,
            argv=argv,
        )
