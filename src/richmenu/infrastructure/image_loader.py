"""Resolve menu image references to raw bytes."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional

import httpx

from src.richmenu.domain.exceptions import ImageLoadError
from src.richmenu.domain.value_objects import ImagePayload
from src.shared.config import get_settings
from src.shared.logging import get_logger

logger = get_logger(__name__)

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
_JPEG_MAGIC = b"\xff\xd8\xff"


def sniff_content_type(data: bytes, fallback: str = "image/png") -> str:
    """Content type from magic bytes; LINE only accepts PNG and JPEG."""
    if data.startswith(_PNG_MAGIC):
        return "image/png"
    if data.startswith(_JPEG_MAGIC):
        return "image/jpeg"
    return fallback


def decode_base64_image(reference: str) -> ImagePayload:
    """
    Decode a data URL or a bare base64 string.

    Raises:
        ImageLoadError: If the payload is not valid base64
    """
    mime: Optional[str] = None
    encoded = reference.strip()
    match = _DATA_URL.match(encoded)
    if match:
        mime = match.group("mime")
        encoded = match.group("data")
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError("Image data is not valid base64") from e
    if not data:
        raise ImageLoadError("Image data is empty")
    if mime == "image/jpg":
        mime = "image/jpeg"
    return ImagePayload(data=data, content_type=mime or sniff_content_type(data))


class HttpImageLoader:
    """
    ImageLoader accepting the three reference forms the editor stores:
    data URLs, bare base64 and http(s) URLs (downloaded with httpx).
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else get_settings().image_fetch_timeout_seconds
        self.transport = transport

    async def load(self, reference: str) -> ImagePayload:
        if not reference or not reference.strip():
            raise ImageLoadError("Image reference is empty")
        ref = reference.strip()
        if ref.startswith(("http://", "https://")):
            return await self._download(ref)
        return decode_base64_image(ref)

    async def _download(self, url: str) -> ImagePayload:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning("Image download failed", url=url, error=str(e))
            raise ImageLoadError(f"Image download failed: {e}") from e

        if not response.is_success:
            raise ImageLoadError(f"Image download failed ({response.status_code})")
        data = response.content
        if not data:
            raise ImageLoadError("Downloaded image is empty")
        header = response.headers.get("content-type", "").split(";")[0].strip().lower()
        content_type = header if header in ("image/png", "image/jpeg") else sniff_content_type(data)
        return ImagePayload(data=data, content_type=content_type)
