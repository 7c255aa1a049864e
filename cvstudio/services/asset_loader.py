"""
Asset Loader
Resolves background/photo references (remote URL, local path, data URI) to images
"""

import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from cvstudio.config import settings
from cvstudio.errors import InputValidationError, TransientServiceError

logger = logging.getLogger(__name__)


def is_data_uri(value: str) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def is_image_payload(value) -> bool:
    """Embedded image value as produced by the photo uploads"""
    return isinstance(value, str) and value.startswith("data:image")


def decode_data_uri(value: str) -> bytes:
    """Payload bytes of a base64 data URI"""
    try:
        header, encoded = value.split(",", 1)
    except ValueError:
        raise ValueError("Malformed data URI")
    if ";base64" not in header:
        raise ValueError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}")


def open_image(content: bytes) -> Image.Image:
    """Decode bytes into an RGB/RGBA image ready for embedding"""
    try:
        image = Image.open(BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable image: {e}")
    if image.mode not in ("RGB", "RGBA"):
        has_transparency = image.mode in ("LA", "PA") or (image.mode == "P" and "transparency" in image.info)
        image = image.convert("RGBA" if has_transparency else "RGB")
    return image


class AssetLoader:
    """
    Fetches asset bytes; remote fetch failures surface as transient errors

    Remote references must point at the storage host or one of allowed_hosts.
    Local paths are only read when a base_dir is given and must stay inside it.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = None,
        base_dir: Path = None,
        allowed_hosts: Iterable[str] = (),
        allow_any_host: bool = False,
    ):
        self.http_client = http_client
        self.timeout = timeout or settings.ASSET_FETCH_TIMEOUT
        self.base_dir = base_dir.resolve() if base_dir is not None else None
        self.allowed_hosts = {host.lower() for host in allowed_hosts}
        self.allow_any_host = allow_any_host

    async def fetch_bytes(self, ref: str) -> bytes:
        if is_data_uri(ref):
            return decode_data_uri(ref)
        if ref.startswith(("http://", "https://")):
            return await self._fetch_remote(ref)
        local_path = self._local_path(ref)
        try:
            return local_path.read_bytes()
        except OSError as e:
            raise ValueError(f"Local asset not readable: {local_path} ({e})")

    def host_allowed(self, url: str) -> bool:
        if self.allow_any_host:
            return True
        host = (urlparse(url).hostname or "").lower()
        hosts = set(self.allowed_hosts)
        hosts.update(h.strip().lower() for h in settings.ASSET_ALLOWED_HOSTS.split(",") if h.strip())
        if settings.SUPABASE_URL:
            storage_host = urlparse(settings.SUPABASE_URL).hostname
            if storage_host:
                hosts.add(storage_host.lower())
        return host in hosts

    def _local_path(self, ref: str) -> Path:
        if self.base_dir is None:
            raise InputValidationError("Local asset paths are not accepted")
        local_path = (self.base_dir / ref.lstrip("/")).resolve()
        try:
            local_path.relative_to(self.base_dir)
        except ValueError:
            raise InputValidationError(f"Asset path escapes the asset directory: {ref}")
        return local_path

    async def _fetch_remote(self, url: str) -> bytes:
        if not self.host_allowed(url):
            logger.warning("Refusing asset fetch from %s", urlparse(url).hostname)
            raise InputValidationError("Asset host is not allowed")
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise TransientServiceError(f"Asset could not be fetched: {e}")
        if response.status_code != 200:
            raise TransientServiceError(f"Asset could not be fetched (HTTP {response.status_code})")
        return response.content

    async def load_image(self, ref: str) -> Image.Image:
        return open_image(await self.fetch_bytes(ref))


# Create singleton instance
asset_loader = AssetLoader()
