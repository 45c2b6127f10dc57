#!/usr/bin/env python3
"""
Basic usage example for bgcompose.

This example:
1. Removes the background of a video through the API
2. Places the result over a solid color background
3. Exports the composition to MP4
"""

from bgcompose import (
    BGRemoverClient,
    Video,
    Background,
    Composition,
    EncoderProfile,
    RemoveBGOptions,
    Prefer,
    Anchor,
    SizeMode,
    ConfigurationError,
)


def main():
    """Run basic usage example."""
    try:
        client = BGRemoverClient.from_env()
    except ConfigurationError:
        print("Please set the BGCOMPOSE_API_KEY environment variable")
        return

    credits = client.credits()
    print(f"Remaining credits: {credits.remaining_credits}")
    if credits.remaining_credits < 10:
        print("Not enough credits for this example")
        return

    video = Video.open("https://example.com/videos/interview.mp4")

    print("Removing background... (this may take a few minutes)")
    foreground = video.remove_background(
        client,
        RemoveBGOptions(prefer=Prefer.WEBM_VP9),
        on_status=lambda status: print(f"Job status: {status}"),
    )

    composition = Composition(Background.from_color("#00FF00", 1920, 1080, 30.0))
    composition.add(foreground, name="main_video").at(Anchor.CENTER).size(
        SizeMode.CONTAIN
    )

    print("FFmpeg command:")
    print(composition.dry_run())

    composition.to_file(
        "output_basic.mp4",
        EncoderProfile.h264(crf=20),
        on_progress=lambda status: print(f"Export: {status}"),
    )
    print("Saved output_basic.mp4")


if __name__ == "__main__":
    main()
