"""Encoder profiles: output codec settings mapped to FFmpeg arguments."""

from typing import Callable, Dict, List, Literal, Optional
from pydantic import BaseModel

EncoderKind = Literal[
    "h264",
    "vp9",
    "transparent_webm",
    "prores_4444",
    "png_sequence",
    "stacked_video",
]


class EncoderProfile(BaseModel):
    """Encoder profile that generates FFmpeg arguments."""

    kind: EncoderKind
    crf: Optional[int] = None
    preset: Optional[str] = None
    layout: Optional[Literal["vertical", "horizontal"]] = None
    fps: Optional[float] = None

    model_config = {"frozen": True}

    @staticmethod
    def h264(crf: int = 18, preset: str = "medium") -> "EncoderProfile":
        """
        H.264 profile for standard opaque output.

        Args:
            crf: Constant Rate Factor (lower = higher quality)
            preset: x264 speed preset (ultrafast ... veryslow)
        """
        return EncoderProfile(kind="h264", crf=crf, preset=preset)

    @staticmethod
    def vp9(crf: int = 32) -> "EncoderProfile":
        """VP9 profile for web delivery (constant quality mode)."""
        return EncoderProfile(kind="vp9", crf=crf)

    @staticmethod
    def transparent_webm(crf: int = 28) -> "EncoderProfile":
        """VP9 WebM keeping the alpha channel (yuva420p)."""
        return EncoderProfile(kind="transparent_webm", crf=crf)

    @staticmethod
    def prores_4444() -> "EncoderProfile":
        """ProRes 4444 with alpha, for editing workflows."""
        return EncoderProfile(kind="prores_4444")

    @staticmethod
    def png_sequence(fps: Optional[float] = None) -> "EncoderProfile":
        """
        RGBA PNG frames. The output path should contain a frame pattern
        such as ``frames/%05d.png``.

        Args:
            fps: Output frame rate, defaults to the canvas rate
        """
        return EncoderProfile(kind="png_sequence", fps=fps)

    @staticmethod
    def stacked_video(
        layout: Literal["vertical", "horizontal"] = "vertical",
        crf: int = 18,
        preset: str = "medium",
    ) -> "EncoderProfile":
        """
        H.264 video carrying color and its alpha mask side by side.

        The composition stacks the color frame over (vertical) or next to
        (horizontal) a grayscale rendering of the alpha channel.
        """
        return EncoderProfile(
            kind="stacked_video", layout=layout, crf=crf, preset=preset
        )

    @property
    def stacks_alpha(self) -> bool:
        """Whether the composition must append a color/mask stacking stage."""
        return self.kind == "stacked_video"

    def args(self, out_path: str) -> List[str]:
        """
        FFmpeg encoder arguments, ending with the output path.

        Args:
            out_path: Output file path ("-" for a pipe)
        """
        return _ARGS[self.kind](self) + [out_path]


def _x264(p: EncoderProfile) -> List[str]:
    return [
        "-c:v",
        "libx264",
        "-crf",
        str(p.crf if p.crf is not None else 18),
        "-preset",
        p.preset or "medium",
        "-pix_fmt",
        "yuv420p",
    ]


def _vp9(p: EncoderProfile) -> List[str]:
    return [
        "-c:v",
        "libvpx-vp9",
        "-crf",
        str(p.crf if p.crf is not None else 32),
        "-b:v",
        "0",
    ]


def _transparent_webm(p: EncoderProfile) -> List[str]:
    return [
        "-c:v",
        "libvpx-vp9",
        "-crf",
        str(p.crf if p.crf is not None else 28),
        "-b:v",
        "0",
        "-pix_fmt",
        "yuva420p",
        "-auto-alt-ref",
        "0",
    ]


def _prores_4444(p: EncoderProfile) -> List[str]:
    return ["-c:v", "prores_ks", "-profile:v", "4", "-pix_fmt", "yuva444p10le"]


def _png_sequence(p: EncoderProfile) -> List[str]:
    args = ["-c:v", "png", "-pix_fmt", "rgba"]
    if p.fps:
        args.extend(["-r", str(p.fps)])
    return args


_ARGS: Dict[str, Callable[[EncoderProfile], List[str]]] = {
    "h264": _x264,
    "vp9": _vp9,
    "transparent_webm": _transparent_webm,
    "prores_4444": _prores_4444,
    "png_sequence": _png_sequence,
    "stacked_video": _x264,
}
