"""Options for Video.remove_background()."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel
from ..core.types import TransparentFormat


class Prefer(str, Enum):
    """Transparent format to request; AUTO picks one from local FFmpeg capabilities."""

    AUTO = "auto"
    WEBM_VP9 = "webm_vp9"
    MOV_PRORES = "mov_prores"
    STACKED_VIDEO = "stacked_video"
    PRO_BUNDLE = "pro_bundle"

    def transparent_format(self) -> Optional[TransparentFormat]:
        """API format for this preference, or None when it must be detected."""
        if self is Prefer.AUTO:
            return None
        return TransparentFormat(self.value)


class Model(str, Enum):
    """Segmentation model used by the API."""

    VIDEOBGREMOVER_ORIGINAL = "videobgremover-original"
    VIDEOBGREMOVER_LIGHT = "videobgremover-light"


class RemoveBGOptions(BaseModel):
    """
    Removal job settings.

    Args:
        prefer: Output format preference
        model: Model name; None lets the API choose
    """

    prefer: Prefer = Prefer.AUTO
    model: Optional[str] = None
