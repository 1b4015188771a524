"""
Loads a photo from disk or an http(s) URL and encodes it as a data URI.
"""

import base64
import logging
import mimetypes
import os
from typing import Tuple

import requests

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
REQUEST_TIMEOUT = 10


class ImageLoadError(Exception):
    """Raised when an image cannot be used for an entry."""
    pass


def _check_image(data: bytes, mime_type: str) -> None:
    if not mime_type or not mime_type.startswith("image/"):
        raise ImageLoadError("Invalid file type: please upload an image file")
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageLoadError("File too large: please upload an image smaller than 5MB")


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _fetch_url(url: str) -> Tuple[bytes, str]:
    try:
        resp = requests.get(url, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Image download failed: {e}")
        raise ImageLoadError(f"Could not download image: {e}") from e

    mime_type = resp.headers.get("Content-Type", "").split(";")[0].strip()
    if not mime_type:
        mime_type = mimetypes.guess_type(url)[0] or ""
    return resp.content, mime_type


def _read_file(path: str) -> Tuple[bytes, str]:
    if not os.path.isfile(path):
        raise ImageLoadError(f"Image not found: {path}")
    with open(path, "rb") as f:
        data = f.read()
    return data, mimetypes.guess_type(path)[0] or ""


def load_image(source: str) -> str:
    """
    Reads an image from a local path or URL.

    Returns:
        Base64 data URI of the image.

    Raises:
        ImageLoadError: If the source is unreachable, not an image, or over 5MB.
    """
    if source.startswith(("http://", "https://")):
        data, mime_type = _fetch_url(source)
    else:
        data, mime_type = _read_file(source)

    _check_image(data, mime_type)
    logger.info(f"Loaded image {source} ({len(data)} bytes, {mime_type})")
    return to_data_uri(data, mime_type)
