"""Reference image acquisition.

Turns a source reference into a size-bounded JPEG ready to send to the model.
Supported sources:

- local file paths
- ``data:`` URIs (base64)
- ``http://`` / ``https://`` URLs, downloaded with ``httpx``

Processing is deterministic for a given source and width bound: EXIF
orientation is applied, images wider than the bound are resized (aspect ratio
preserved, LANCZOS), the result is converted to RGB and encoded as JPEG at the
configured quality.
"""

import base64
import binascii
import io
import logging
from pathlib import Path

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from .config import LemStudioConfig
from .errors import ImageAcquisitionError
from .model_adapters import ImagePayload

logger = logging.getLogger(__name__)


def downscale_to_jpeg(raw: bytes, max_width: int, quality: int = 80) -> bytes:
    """Bound an encoded image's width and re-encode it as JPEG.

    Args:
        raw: Encoded image bytes in any format Pillow can read
        max_width: Maximum output width in pixels
        quality: JPEG quality (1-95)

    Returns:
        JPEG-encoded bytes

    Raises:
        ImageAcquisitionError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(raw)) as opened:
            image = ImageOps.exif_transpose(opened)
            image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageAcquisitionError(f"Unreadable image data: {e}") from e

    width, height = image.size
    if width > max_width:
        new_height = max(1, round(height * max_width / width))
        image = image.resize((max_width, new_height), Image.Resampling.LANCZOS)
        logger.debug(f"Resized image from {(width, height)} to {image.size}")

    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def _decode_data_uri(source: str) -> bytes:
    header, _, payload = source.partition(",")
    if ";base64" not in header:
        raise ImageAcquisitionError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageAcquisitionError(f"Invalid base64 image data: {e}") from e


class ImageLoader:
    """Load reference images from files, data URIs or URLs.

    Attributes:
        quality: JPEG quality used for encoding.
        timeout: Download timeout in seconds for remote URLs.
    """

    def __init__(self, quality: int = 80, timeout: float = 30.0) -> None:
        self.quality = quality
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: LemStudioConfig) -> "ImageLoader":
        return cls(quality=config.jpeg_quality, timeout=config.fetch_timeout)

    async def _read(self, source: str) -> bytes:
        if source.startswith("data:"):
            return _decode_data_uri(source)

        if source.startswith(("http://", "https://")):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(source)
                    response.raise_for_status()
                    return response.content
            except httpx.HTTPError as e:
                raise ImageAcquisitionError(f"Failed to download {source}: {e}") from e

        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ImageAcquisitionError(f"Failed to read {path}: {e}") from e

    async def load(self, source: str, max_width: int) -> ImagePayload:
        """Load one reference image.

        Args:
            source: Path, data URI or http(s) URL
            max_width: Maximum width of the encoded image

        Returns:
            JPEG payload tagged with its source

        Raises:
            ImageAcquisitionError: If the image cannot be read or decoded
        """
        raw = await self._read(source)
        data = downscale_to_jpeg(raw, max_width, self.quality)
        return ImagePayload(data=data, mime_type="image/jpeg", source=source)
