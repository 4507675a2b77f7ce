"""
Asset Sources

Fetches image and GIF bytes from URLs or local paths. These calls block;
renderers run them in a worker thread.
"""

import logging
import urllib.error
import urllib.parse
import urllib.request
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import AssetLoadError

logger = logging.getLogger(__name__)

USER_AGENT = "matrix-hopper/1.0"


def is_remote_url(url: str) -> bool:
    """Whether the URL is http or https."""
    return urllib.parse.urlparse(url).scheme in ("http", "https")


def _local_path(url: str) -> Path:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme == "file":
        return Path(urllib.request.url2pathname(parsed.path))
    return Path(url)


def fetch_bytes(url: str, timeout: float = 30.0) -> bytes:
    """
    Read an asset from an http(s) URL, a file:// URL or a local path.

    Raises:
        AssetLoadError: If the asset cannot be read.
    """
    if not url:
        raise AssetLoadError("Empty asset URL")

    if is_remote_url(url):
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                data = response.read()
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise AssetLoadError(f"Failed to fetch {url}: {e}") from e
        logger.debug(f"Fetched {len(data)} bytes from {url}")
        return data

    path = _local_path(url)
    try:
        return path.read_bytes()
    except OSError as e:
        raise AssetLoadError(f"Failed to read {path}: {e}") from e


def is_gif(url: str, timeout: float = 10.0) -> bool:
    """Whether a URL points to a GIF, by extension or by the server's Content-Type."""
    if urllib.parse.urlparse(url).path.lower().endswith(".gif"):
        return True
    if not is_remote_url(url):
        return False

    request = urllib.request.Request(url, method="HEAD", headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            content_type = response.headers.get("Content-Type", "")
    except (urllib.error.URLError, OSError, ValueError) as e:
        logger.warning(f"Could not detect image type for {url}: {e}")
        return False
    return "image/gif" in content_type.lower()


def open_image(data: bytes) -> Image.Image:
    """
    Decode a still image, returned as RGBA.

    Raises:
        AssetLoadError: If the data is not a decodable image.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            return img.convert('RGBA')
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise AssetLoadError(f"Failed to decode image: {e}") from e
