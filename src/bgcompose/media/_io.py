"""Download and archive helpers for media sources."""

import os
import zipfile
from mimetypes import guess_extension
from typing import Callable, Optional
from urllib.parse import urlparse

import requests

from .context import MediaContext

_GENERIC_EXTENSIONS = {"", ".tmp", ".bin"}


def _extension_for(response: requests.Response, url: str, default: str) -> str:
    """Pick a file extension from Content-Type, then the URL path, then a default."""
    content_type = response.headers.get("Content-Type")
    if content_type:
        guessed = guess_extension(content_type.split(";")[0].strip())
        if guessed and guessed not in _GENERIC_EXTENSIONS:
            return guessed

    _, path_ext = os.path.splitext(urlparse(url).path)
    if path_ext and path_ext not in _GENERIC_EXTENSIONS:
        return path_ext.lower()

    return default


def download(
    url: str,
    make_path: Callable[[str], str],
    ctx: MediaContext,
    default_ext: str = ".bin",
    timeout: float = 300,
) -> str:
    """
    Stream a URL to a local file.

    Args:
        url: HTTP(S) URL to fetch
        make_path: Returns a destination path for the detected extension
        ctx: Media context for logging
        default_ext: Extension used when none can be detected
        timeout: Request timeout in seconds

    Returns:
        Local path of the downloaded file
    """
    ctx.logger.debug(f"Downloading {url}")
    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to download {url}: {e}") from e

    local_path = make_path(_extension_for(response, url, default_ext))
    try:
        with open(local_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                f.write(chunk)
    except OSError as e:
        raise RuntimeError(f"Failed to write {url} to {local_path}: {e}") from e

    ctx.logger.info(f"Downloaded {url} to {local_path}")
    return local_path


def extract_zip(path: str, ctx: MediaContext, prefix: str = "pro_bundle_") -> str:
    """Extract an archive into a fresh directory under the context temp root."""
    extract_dir = ctx.temp_dir(prefix=prefix)
    try:
        with zipfile.ZipFile(path, "r") as archive:
            archive.extractall(extract_dir)
    except (zipfile.BadZipFile, OSError) as e:
        raise RuntimeError(f"Failed to extract {path}: {e}") from e
    ctx.logger.info(f"Extracted {path} to {extract_dir}")
    return extract_dir


def find_member(directory: str, name: str) -> Optional[str]:
    """Locate an extracted member by file name, at the top level or one folder down."""
    candidate = os.path.join(directory, name)
    if os.path.isfile(candidate):
        return candidate
    for entry in sorted(os.listdir(directory)):
        nested = os.path.join(directory, entry, name)
        if os.path.isfile(nested):
            return nested
    return None
