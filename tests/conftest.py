"""Shared test fixtures and configuration."""

import os
import tempfile
from unittest.mock import patch

import pytest
from dotenv import load_dotenv

from bgcompose.media.context import MediaContext, set_default_context
from bgcompose.media.probe import StreamInfo

load_dotenv()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


@pytest.fixture
def ctx():
    """Default media context that never asks FFmpeg for its decoders."""
    with MediaContext() as context:
        context._capabilities["libvpx-vp9"] = False
        set_default_context(context)
        yield context
    set_default_context(None)


def stream_info(source, **overrides):
    """Complete probe result for a source; override any field."""
    fields = dict(
        source=source,
        codec_name="h264",
        pix_fmt="yuv420p",
        width=1920,
        height=1080,
        fps=30.0,
        duration=10.0,
        has_audio=True,
    )
    fields.update(overrides)
    return StreamInfo(**fields)


@pytest.fixture
def probes():
    """
    Route probe_source() through a dict of source -> StreamInfo.

    Unknown sources get a complete 1920x1080, 10 s result with audio.
    """
    table = {}

    def fake_probe(source, ctx):
        return table.get(source) or stream_info(source)

    with patch("bgcompose.media.foregrounds.probe_source", side_effect=fake_probe), patch(
        "bgcompose.media.backgrounds.probe_source", side_effect=fake_probe
    ):
        yield table


@pytest.fixture
def sample_video_path(temp_dir):
    """Create a sample video file path (fake content)."""
    video_path = os.path.join(temp_dir, "sample.mp4")
    with open(video_path, "wb") as f:
        f.write(b"fake video data")
    return video_path
