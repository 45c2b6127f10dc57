"""Job orchestration between a source Video and the removal API.

Internal module; use Video.remove_background().
"""

import mimetypes
import subprocess
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from ..client.api import BGRemoverClient
from ..client.models import (
    BackgroundOptions,
    CreateJobFileUpload,
    CreateJobUrlDownload,
    JobStatus,
    StartJobRequest,
)
from ..core.types import BackgroundType, TransparentFormat
from . import _io
from .context import MediaContext
from .foregrounds import Foreground
from .probe import detect_source_type, source_extension
from .remove_bg import RemoveBGOptions
from .video import Video

UPLOAD_CONTENT_TYPES = {"video/mp4", "video/mov", "video/webm"}
RESULT_EXTENSIONS = {".mp4", ".mov", ".webm", ".zip"}

# The API rejects URL jobs above this size; larger files are uploaded
MAX_URL_JOB_BYTES = 1_000_000_000


class Importer:
    """Runs one background removal job and imports its result."""

    def __init__(self, ctx: MediaContext):
        self.ctx = ctx

    def remove_background(
        self,
        video: Video,
        client: BGRemoverClient,
        options: RemoveBGOptions,
        wait_poll_seconds: float,
        on_status: Optional[Callable[[str], None]],
        webhook_url: Optional[str] = None,
    ) -> Foreground:
        """
        Create, start and await a job, then download its result.

        Returns:
            Foreground for the processed video

        Raises:
            ProcessingError: If the job fails
            RuntimeError: If the completed job has no result URL
        """
        transparent_format = self.choose_format(options)
        self.ctx.logger.info(f"Using transparent format: {transparent_format}")

        job_id = self._create_job(video, client)
        self.ctx.logger.info(f"Created job: {job_id}")

        client.start_job(
            job_id,
            StartJobRequest(
                background=BackgroundOptions(
                    type=BackgroundType.TRANSPARENT,
                    transparent_format=TransparentFormat(transparent_format),
                ),
                model=options.model,
                webhook_url=webhook_url,
            ),
        )
        self.ctx.logger.info("Job started, waiting for completion...")

        status = client.wait(job_id, poll_seconds=wait_poll_seconds, on_status=on_status)
        self.ctx.logger.info("Job completed, downloading result...")
        return self.import_result(status)

    def choose_format(self, options: RemoveBGOptions) -> str:
        """Requested format, or for AUTO the best one local FFmpeg can encode."""
        explicit = options.prefer.transparent_format()
        if explicit is not None:
            return explicit.value

        if self._ffmpeg_lists("-encoders", "libvpx-vp9") and self._ffmpeg_lists(
            "-pix_fmts", "yuva420p"
        ):
            self.ctx.logger.debug("WebM VP9 alpha support detected")
            return TransparentFormat.WEBM_VP9.value

        self.ctx.logger.debug("Falling back to stacked video")
        return TransparentFormat.STACKED_VIDEO.value

    def _ffmpeg_lists(self, flag: str, name: str) -> bool:
        try:
            result = subprocess.run(
                [self.ctx.ffmpeg, "-hide_banner", flag],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.ctx.logger.warning(f"Error checking FFmpeg {flag}: {e}")
            return False
        return result.returncode == 0 and name in result.stdout

    def _create_job(self, video: Video, client: BGRemoverClient) -> str:
        if video.kind == "url" and self._public_url_ok(video.src):
            response = client.create_job_url(CreateJobUrlDownload(video_url=video.src))
            return response["id"]

        content_type, _ = mimetypes.guess_type(video.src)
        if content_type not in UPLOAD_CONTENT_TYPES:
            content_type = "video/mp4"
        filename = Path(urlparse(video.src).path).name or "video.mp4"

        response = client.create_job_file(
            CreateJobFileUpload(filename=filename, content_type=content_type)
        )
        self._upload(response["upload_url"], video.src, content_type)
        return response["id"]

    def _public_url_ok(self, url: str) -> bool:
        """Whether the API can fetch the URL itself."""
        try:
            response = requests.head(url, allow_redirects=True, timeout=5)
        except requests.RequestException as e:
            self.ctx.logger.debug(f"URL check failed for {url}: {e}")
            return False

        if response.status_code not in (200, 204):
            return False
        length = response.headers.get("Content-Length")
        return not (length and length.isdigit() and int(length) > MAX_URL_JOB_BYTES)

    def _upload(self, upload_url: str, src: str, content_type: str) -> None:
        if detect_source_type(src) == "url":
            src = _io.download(
                src, lambda ext: self.ctx.temp_path(suffix=ext, prefix="upload_"), self.ctx
            )
        try:
            with open(src, "rb") as f:
                response = requests.put(
                    upload_url, data=f, headers={"Content-Type": content_type}, timeout=300
                )
                response.raise_for_status()
        except (OSError, requests.RequestException) as e:
            raise RuntimeError(f"Failed to upload {src}: {e}") from e

    def import_result(self, status: JobStatus) -> Foreground:
        """Download a completed job's result and open it as a Foreground."""
        if not status.processed_video_url:
            raise RuntimeError("No processed video URL in job status")

        url = str(status.processed_video_url)
        extension = source_extension(url)
        if extension not in RESULT_EXTENSIONS:
            extension = ".mp4"

        local_path = _io.download(
            url,
            lambda _: self.ctx.temp_path(suffix=extension, prefix="processed_"),
            self.ctx,
        )
        return Foreground.from_file(local_path, self.ctx)
