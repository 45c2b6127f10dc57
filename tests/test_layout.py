"""Tests for size and position computation."""

import pytest

from bgcompose.core import Anchor, SizeMode
from bgcompose.media.layout import (
    SizeSpec,
    aspect_constraint,
    anchor_position,
    scale_params,
    target_box,
)


class TestAspectConstraint:
    @pytest.mark.parametrize(
        "mode,expected",
        [
            (SizeMode.PX, "decrease"),
            (SizeMode.CANVAS_PERCENT, "decrease"),
            (SizeMode.CONTAIN, "decrease"),
            (SizeMode.COVER, "increase"),
            (SizeMode.FIT_WIDTH, None),
            (SizeMode.FIT_HEIGHT, None),
        ],
    )
    def test_table(self, mode, expected):
        assert aspect_constraint(mode) == expected
        assert aspect_constraint(mode) == aspect_constraint(mode)


class TestScaleParams:
    def test_px(self):
        size = SizeSpec(mode=SizeMode.PX, width=800, height=600)
        assert scale_params(size, 1920, 1080) == "800:600:force_original_aspect_ratio=decrease"

    def test_px_needs_both_dimensions(self):
        assert scale_params(SizeSpec(mode=SizeMode.PX, width=800), 1920, 1080) is None

    def test_contain_and_cover(self):
        assert scale_params(SizeSpec(), 1280, 720) == (
            "1280:720:force_original_aspect_ratio=decrease"
        )
        assert scale_params(SizeSpec(mode=SizeMode.COVER), 1280, 720) == (
            "1280:720:force_original_aspect_ratio=increase"
        )

    def test_fit_axes(self):
        assert scale_params(SizeSpec(mode=SizeMode.FIT_WIDTH), 1280, 720) == "1280:-1"
        assert scale_params(SizeSpec(mode=SizeMode.FIT_HEIGHT), 1280, 720) == "-1:720"

    def test_scale_factors(self):
        assert scale_params(SizeSpec(mode=SizeMode.SCALE, scale=0.5), 1920, 1080) == (
            "iw*0.5:ih*0.5"
        )
        assert scale_params(
            SizeSpec(mode=SizeMode.SCALE, width=2, height=0.25), 1920, 1080
        ) == "iw*2:ih*0.25"
        assert scale_params(SizeSpec(mode=SizeMode.SCALE), 1920, 1080) == "iw:ih"

    def test_canvas_percent(self):
        size = SizeSpec(mode=SizeMode.CANVAS_PERCENT, width=25, height=50)
        assert scale_params(size, 1920, 1080) == "480:540:force_original_aspect_ratio=decrease"


class TestTargetBox:
    def test_uniform_percent(self):
        size = SizeSpec(mode=SizeMode.CANVAS_PERCENT, percent=33)
        assert target_box(size, 1000, 500) == (330, 165)

    def test_floor(self):
        size = SizeSpec(mode=SizeMode.CANVAS_PERCENT, percent=33.3)
        assert target_box(size, 1001, 1001) == (333, 333)

    def test_single_axis(self):
        size = SizeSpec(mode=SizeMode.CANVAS_PERCENT, width=50)
        assert target_box(size, 1920, 1080) == (960, 1080)


class TestAnchorPosition:
    @pytest.mark.parametrize(
        "anchor,expected",
        [
            (Anchor.TOP_LEFT, ("0", "0")),
            (Anchor.TOP_CENTER, ("(W-w)/2", "0")),
            (Anchor.TOP_RIGHT, ("W-w", "0")),
            (Anchor.CENTER_LEFT, ("0", "(H-h)/2")),
            (Anchor.CENTER, ("(W-w)/2", "(H-h)/2")),
            (Anchor.CENTER_RIGHT, ("W-w", "(H-h)/2")),
            (Anchor.BOTTOM_LEFT, ("0", "H-h")),
            (Anchor.BOTTOM_CENTER, ("(W-w)/2", "H-h")),
            (Anchor.BOTTOM_RIGHT, ("W-w", "H-h")),
        ],
    )
    def test_anchors(self, anchor, expected):
        assert anchor_position(anchor) == expected

    def test_offsets(self):
        assert anchor_position(Anchor.TOP_LEFT, 10, 20) == ("0+10", "0+20")
        assert anchor_position(Anchor.BOTTOM_RIGHT, -5, -15) == ("W-w-5", "H-h-15")

    def test_box_alignment(self):
        x, y = anchor_position(Anchor.CENTER, box=(960, 540))
        assert x == "((W-960)/2)+(960-w)/2"
        assert y == "((H-540)/2)+(540-h)/2"

    def test_box_top_left_needs_no_alignment(self):
        assert anchor_position(Anchor.TOP_LEFT, 8, 0, box=(960, 540)) == ("0+8", "0")
