"""Size and position algebra for layers.

All functions are pure: they turn a layer's size mode, anchor and offsets
into FFmpeg ``scale`` parameters and ``overlay`` x/y expressions that FFmpeg
evaluates at run time (W/H = canvas, w/h = rendered overlay).
"""

import math
from typing import Optional, Tuple, Union
from pydantic import BaseModel
from ..core.types import Anchor, SizeMode

Number = Union[int, float]


class SizeSpec(BaseModel):
    """Size mode plus its mode-specific parameters.

    PX: width/height in pixels. CANVAS_PERCENT: width/height/percent in
    percent of the canvas. SCALE: width/height/scale as factors of the
    source size. Other modes take no parameters.
    """

    mode: SizeMode = SizeMode.CONTAIN
    width: Optional[float] = None
    height: Optional[float] = None
    percent: Optional[float] = None
    scale: Optional[float] = None


def aspect_constraint(mode: SizeMode) -> Optional[str]:
    """``force_original_aspect_ratio`` value for a size mode, or None."""
    if mode in (SizeMode.PX, SizeMode.CANVAS_PERCENT, SizeMode.CONTAIN):
        return "decrease"
    if mode == SizeMode.COVER:
        return "increase"
    # FIT_* derive the free axis with -1, SCALE carries explicit factors
    return None


def _fmt(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def target_box(size: SizeSpec, canvas_width: int, canvas_height: int) -> Tuple[int, int]:
    """
    Box of a CANVAS_PERCENT layer in pixels (floor of canvas * pct / 100).

    A single given axis takes ``percent`` (or 100) for the other axis.
    """
    if size.width is not None and size.height is not None:
        pw, ph = size.width, size.height
    elif size.width is not None:
        pw, ph = size.width, size.percent or 100
    elif size.height is not None:
        pw, ph = size.percent or 100, size.height
    elif size.percent:
        pw = ph = size.percent
    else:
        pw = ph = 100
    return (
        math.floor(canvas_width * pw / 100),
        math.floor(canvas_height * ph / 100),
    )


def scale_params(size: SizeSpec, canvas_width: int, canvas_height: int) -> Optional[str]:
    """
    Parameters of the ``scale`` filter for a layer, or None for no scaling.

    Args:
        size: Layer size spec
        canvas_width: Resolved canvas width
        canvas_height: Resolved canvas height
    """
    mode = size.mode
    if mode == SizeMode.PX:
        if not size.width or not size.height:
            return None
        target = (_fmt(size.width), _fmt(size.height))
    elif mode == SizeMode.CANVAS_PERCENT:
        bw, bh = target_box(size, canvas_width, canvas_height)
        target = (str(bw), str(bh))
    elif mode in (SizeMode.CONTAIN, SizeMode.COVER):
        target = (str(canvas_width), str(canvas_height))
    elif mode == SizeMode.FIT_WIDTH:
        target = (str(canvas_width), "-1")
    elif mode == SizeMode.FIT_HEIGHT:
        target = ("-1", str(canvas_height))
    elif mode == SizeMode.SCALE:
        if size.width is not None and size.height is not None:
            fx, fy = size.width, size.height
        elif size.scale is not None:
            fx = fy = size.scale
        elif size.width is not None:
            fx = fy = size.width
        elif size.height is not None:
            fx = fy = size.height
        else:
            return "iw:ih"
        target = (f"iw*{_fmt(fx)}", f"ih*{_fmt(fy)}")
    else:
        raise ValueError(f"Unknown size mode: {mode}")

    params = f"{target[0]}:{target[1]}"
    constraint = aspect_constraint(mode)
    if constraint:
        params += f":force_original_aspect_ratio={constraint}"
    return params


def _with_offset(base: str, offset: Number) -> str:
    return f"{base}{offset:+}" if offset else base


def _axis_base(align: str, canvas: str, extent: str) -> str:
    if align in ("left", "top"):
        return "0"
    if align in ("right", "bottom"):
        return f"{canvas}-{extent}"
    return f"({canvas}-{extent})/2"


def anchor_position(
    anchor: Anchor,
    dx: Number = 0,
    dy: Number = 0,
    box: Optional[Tuple[int, int]] = None,
) -> Tuple[str, str]:
    """
    Overlay x/y expressions for an anchor and pixel offset.

    Without ``box`` the overlay's own size (w/h) is placed on the canvas.
    With ``box`` (CANVAS_PERCENT layers) the box is placed and the rendered
    content is then aligned inside it along the anchor's edges.
    """
    if box is None:
        x = _with_offset(_axis_base(anchor.halign, "W", "w"), dx)
        y = _with_offset(_axis_base(anchor.valign, "H", "h"), dy)
        return x, y

    bw, bh = box
    x = _with_offset(_axis_base(anchor.halign, "W", str(bw)), dx)
    y = _with_offset(_axis_base(anchor.valign, "H", str(bh)), dy)

    if anchor.halign == "right":
        x = f"({x})+({bw}-w)"
    elif anchor.halign == "center":
        x = f"({x})+({bw}-w)/2"
    if anchor.valign == "bottom":
        y = f"({y})+({bh}-h)"
    elif anchor.valign == "center":
        y = f"({y})+({bh}-h)/2"
    return x, y
