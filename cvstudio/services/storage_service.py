"""
Storage Service
Supabase Storage integration for template background pages
"""

import logging
from typing import Optional

import httpx

from cvstudio.config import settings
from cvstudio.errors import TemplateStoreError, TransientServiceError

logger = logging.getLogger(__name__)


class StorageService:
    """Supabase Storage helper"""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client

    @staticmethod
    def _ensure_config():
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise TemplateStoreError("Supabase Storage is not configured")

    @staticmethod
    def _headers(content_type: str = None) -> dict:
        headers = {
            "Authorization": f"Bearer {settings.SUPABASE_KEY}",
            "apikey": settings.SUPABASE_KEY,
        }
        if content_type:
            headers["Content-Type"] = content_type
            headers["x-upsert"] = "true"
        return headers

    @staticmethod
    def public_url(path: str) -> str:
        base = settings.SUPABASE_URL.rstrip("/")
        return f"{base}/storage/v1/object/public/{settings.STORAGE_BUCKET}/{path}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self.http_client is not None:
                return await self.http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=30) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Storage %s %s failed: %s", method, url, e)
            raise TransientServiceError("Storage is unreachable. Please try again.")

    async def upload_bytes(self, path: str, content: bytes, content_type: str) -> str:
        """Upload and return the public URL"""
        self._ensure_config()

        base = settings.SUPABASE_URL.rstrip("/")
        url = f"{base}/storage/v1/object/{settings.STORAGE_BUCKET}/{path}"

        resp = await self._send(
            "POST", url,
            headers=self._headers(content_type or "application/octet-stream"),
            content=content,
        )
        if resp.status_code not in (200, 201):
            raise TemplateStoreError(f"Storage upload failed: {resp.text}")

        logger.info("Uploaded %s (%d bytes)", path, len(content))
        return self.public_url(path)

    async def delete_path(self, path: str) -> None:
        self._ensure_config()

        base = settings.SUPABASE_URL.rstrip("/")
        url = f"{base}/storage/v1/object/{settings.STORAGE_BUCKET}/{path}"

        resp = await self._send("DELETE", url, headers=self._headers())
        if resp.status_code not in (200, 204, 404):
            raise TemplateStoreError(f"Storage delete failed: {resp.text}")

    async def delete_by_url(self, file_url: str) -> None:
        self._ensure_config()

        prefix = self.public_url("")
        # URLs outside our bucket are left alone
        if file_url.startswith(prefix):
            await self.delete_path(file_url[len(prefix):])


# Create singleton instance
storage_service = StorageService()
