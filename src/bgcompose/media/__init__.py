"""Media module for probing, layering and composing videos with FFmpeg."""

from .video import Video
from .backgrounds import Background
from .foregrounds import Foreground
from .composition import Composition, Layer, LayerHandle
from .encoders import EncoderProfile
from .graph import FilterGraph, FilterNode, GraphError, Pad, StreamKind
from .layout import SizeSpec
from .probe import StreamInfo, probe_source
from .remove_bg import RemoveBGOptions, Prefer, Model
from .context import MediaContext, TempManifest, default_context, set_default_context

__all__ = [
    "Video",
    "Background",
    "Foreground",
    "Composition",
    "Layer",
    "LayerHandle",
    "EncoderProfile",
    "FilterGraph",
    "FilterNode",
    "GraphError",
    "Pad",
    "StreamKind",
    "SizeSpec",
    "StreamInfo",
    "probe_source",
    "RemoveBGOptions",
    "Prefer",
    "Model",
    "MediaContext",
    "TempManifest",
    "default_context",
    "set_default_context",
]
