"""Source videos handed to the background removal API."""

from typing import TYPE_CHECKING, Callable, Literal, Optional, Union
from pydantic import BaseModel, HttpUrl
from .remove_bg import RemoveBGOptions
from .context import MediaContext, default_context
from .probe import detect_source_type

if TYPE_CHECKING:
    from ..client.api import BGRemoverClient
    from .foregrounds import Foreground


class Video(BaseModel):
    """Video loaded from a file path or URL."""

    kind: Literal["file", "url"]
    src: str

    @staticmethod
    def open(src: Union[str, HttpUrl]) -> "Video":
        """
        Reference a video by path or URL. Nothing is read or downloaded yet.

        Args:
            src: Video source (file path or http(s) URL)
        """
        src_str = str(src)
        kind = "url" if detect_source_type(src_str) == "url" else "file"
        return Video(kind=kind, src=src_str)

    def remove_background(
        self,
        client: "BGRemoverClient",
        options: Optional[RemoveBGOptions] = None,
        on_status: Optional[Callable[[str], None]] = None,
        wait_poll_seconds: float = 2.0,
        ctx: Optional[MediaContext] = None,
        webhook_url: Optional[str] = None,
    ) -> "Foreground":
        """
        Remove the background through the API.

        Args:
            client: API client
            options: Background removal options (default: automatic format)
            on_status: Called with each job status change
            wait_poll_seconds: Polling interval for job status
            ctx: Media context (default context if omitted)
            webhook_url: Optional webhook URL for job notifications

        Returns:
            Foreground built from the downloaded result

        Raises:
            ProcessingError: If the job fails
        """
        from ._importer import Importer

        importer = Importer(ctx or default_context())
        return importer.remove_background(
            self, client, options or RemoveBGOptions(), wait_poll_seconds, on_status, webhook_url
        )
