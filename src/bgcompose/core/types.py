"""Core types and enums shared by the client and media layers."""

from enum import Enum
from typing import Optional, Callable

# Status callback: receives status strings ("created", "uploaded", "processing", "completed")
StatusCb = Optional[Callable[[str], None]]

ProgressCb = StatusCb


class BackgroundType(str, Enum):
    """Background type requested from the removal API."""

    COLOR = "color"
    TRANSPARENT = "transparent"


class TransparentFormat(str, Enum):
    """Transparent output formats the removal API can produce."""

    WEBM_VP9 = "webm_vp9"
    MOV_PRORES = "mov_prores"
    PRO_BUNDLE = "pro_bundle"
    STACKED_VIDEO = "stacked_video"


class Anchor(str, Enum):
    """Reference points on the canvas used to place a layer."""

    CENTER = "center"
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def halign(self) -> str:
        """Horizontal alignment: left, center or right."""
        if self in (Anchor.TOP_LEFT, Anchor.CENTER_LEFT, Anchor.BOTTOM_LEFT):
            return "left"
        if self in (Anchor.TOP_RIGHT, Anchor.CENTER_RIGHT, Anchor.BOTTOM_RIGHT):
            return "right"
        return "center"

    @property
    def valign(self) -> str:
        """Vertical alignment: top, center or bottom."""
        if self in (Anchor.TOP_LEFT, Anchor.TOP_CENTER, Anchor.TOP_RIGHT):
            return "top"
        if self in (Anchor.BOTTOM_LEFT, Anchor.BOTTOM_CENTER, Anchor.BOTTOM_RIGHT):
            return "bottom"
        return "center"


class SizeMode(str, Enum):
    """Size modes for layer scaling."""

    CONTAIN = "contain"  # Fit within canvas, keep aspect ratio
    COVER = "cover"  # Fill canvas, keep aspect ratio, may overflow
    PX = "px"  # Box in pixels, keep aspect ratio
    CANVAS_PERCENT = "canvas_percent"  # Box as percentage of canvas
    SCALE = "scale"  # Factor of the source size
    FIT_WIDTH = "fit_width"  # Match canvas width
    FIT_HEIGHT = "fit_height"  # Match canvas height
