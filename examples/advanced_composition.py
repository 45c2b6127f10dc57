#!/usr/bin/env python3
"""
Advanced composition example for bgcompose.

Combines already background-removed clips (no API calls):
- a video background whose duration drives the output
- a pro bundle with soft edges, trimmed and delayed
- a WebM picture-in-picture with reduced opacity and its audio mixed in
- a stacked-video export keeping the alpha channel as a mask
"""

import asyncio
import logging

from bgcompose import (
    Background,
    Foreground,
    Composition,
    EncoderProfile,
    MediaContext,
    Anchor,
    SizeMode,
)


def build(ctx: MediaContext) -> Composition:
    background = Background.from_video("assets/beach.mp4", ctx=ctx).audio(volume=0.4)
    presenter = Foreground.from_pro_bundle_zip("assets/presenter_bundle.zip", soft=True, ctx=ctx)
    logo = Foreground.from_file("assets/logo_spin.webm", ctx=ctx)

    comp = Composition(background, ctx=ctx)

    comp.add(presenter, name="presenter").subclip(2, 14).start(1.5).size(
        SizeMode.CANVAS_PERCENT, percent=60
    ).at(Anchor.BOTTOM_LEFT, dx=40, dy=-40)

    comp.add(logo, name="logo").size(SizeMode.PX, width=240, height=240).at(
        Anchor.TOP_RIGHT, dx=-24, dy=24
    ).opacity(0.85).audio(True, volume=0.3).end(6)

    return comp


async def export_all(comp: Composition) -> None:
    await asyncio.gather(
        comp.to_file_async("output_advanced.mp4", EncoderProfile.h264(crf=20)),
        comp.to_file_async(
            "output_advanced_stacked.mp4", EncoderProfile.stacked_video(layout="vertical")
        ),
    )


def main():
    logging.basicConfig(level=logging.INFO)

    with MediaContext.from_env() as ctx:
        ctx.verify()
        comp = build(ctx)
        print(comp.dry_run())
        print(f"Duration: {comp.resolved_duration()}s")
        asyncio.run(export_all(comp))


if __name__ == "__main__":
    main()
