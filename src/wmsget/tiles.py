"""
HTTP retrieval and image handling for map tiles.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional, Union
import logging

import requests
from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError, ImageWriteError, TransportError, UnexpectedStatusError
from .types import TileRequest, TileResponse
from .typing import Credentials

logger = logging.getLogger(__name__)

_PREVIEW_BYTES = 200


def fetch_tile(
    request: TileRequest,
    session: Optional[requests.Session] = None,
    auth: Optional[Credentials] = None,
) -> TileResponse:
    """
    Fetch a document or image from a WMS endpoint.

    Args:
        request: Tile request parameters
        session: Session to reuse connections, a plain ``requests.get`` otherwise
        auth: Optional basic authentication (username, password)

    Returns:
        Tile response with the full body

    Raises:
        TransportError: If the request could not be completed
        UnexpectedStatusError: If the server answered with a status other than 200
    """
    if not request.url:
        raise ValueError("URL is required")

    getter = session.get if session is not None else requests.get
    logger.debug("Fetching %s", request.full_url)
    try:
        response = getter(
            request.url,
            params=request.params,
            headers=request.headers,
            timeout=request.timeout,
            auth=auth,
        )
    except requests.RequestException as exc:
        logger.warning("Request to %s failed: %s", request.url, exc)
        raise TransportError(f"Network error: {exc}", cause=exc) from exc

    if response.status_code != 200:
        logger.warning("Request to %s answered HTTP %s", response.url, response.status_code)
        raise UnexpectedStatusError(response.status_code, response.url)

    return TileResponse(
        data=response.content,
        content_type=response.headers.get("content-type", ""),
        status_code=response.status_code,
        headers=dict(response.headers),
        url=response.url,
    )


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes, loading the pixels so the buffer can be released.

    Raises:
        ImageDecodeError: If the bytes are not an image Pillow can read
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            return img.copy()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Response is not an image: %r", data[:_PREVIEW_BYTES])
        raise ImageDecodeError(
            f"Response is not a decodable image: {exc}; body starts with {data[:_PREVIEW_BYTES]!r}",
            cause=exc,
        ) from exc


def crop_center(image: Image.Image, width: int, height: int) -> Image.Image:
    """
    Cut a ``width`` x ``height`` rectangle out of the centre of ``image``.

    The rectangle is clipped to the image when it is larger than the image.
    """
    width = min(width, image.width)
    height = min(height, image.height)
    left = (image.width - width) // 2
    top = (image.height - height) // 2
    return image.crop((left, top, left + width, top + height))


def save_image(image: Image.Image, output_path: Union[str, Path]) -> Path:
    """
    Save an image, picking the codec from the file extension.

    Args:
        image: Decoded image
        output_path: Target file path

    Returns:
        The path written

    Raises:
        ImageWriteError: If the directory or file cannot be written
    """
    output_path = Path(output_path)
    if output_path.suffix.lower() in (".jpg", ".jpeg") and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        image.save(output_path)
    except (OSError, ValueError) as exc:
        raise ImageWriteError(str(output_path), exc) from exc
    logger.debug("Saved tile to %s", output_path)
    return output_path
