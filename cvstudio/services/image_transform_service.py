"""
Image Transform Service
Background removal for candidate photos
"""

import base64
import binascii
import logging
from typing import Optional

import httpx

from cvstudio.config import settings
from cvstudio.errors import TransientServiceError
from cvstudio.services.enrichment_service import GeminiClient

logger = logging.getLogger(__name__)

REMOVE_BACKGROUND_PROMPT = (
    "Remove the background from this image. Keep only the person. "
    "Output must be a PNG with a transparent background."
)
FAILURE_MESSAGE = "AI limit reached or image unclear. Please try again later."


class BackgroundRemovalService:
    """Image bytes in, PNG bytes with the subject isolated out"""

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.AsyncClient] = None, model: str = None):
        self.client = GeminiClient(api_key, model or settings.BACKGROUND_REMOVAL_MODEL, http_client=http_client)

    async def transform(self, image: bytes, content_type: str = "image/png") -> bytes:
        payload = {
            "contents": [{
                "parts": [
                    GeminiClient.inline_image(image, content_type),
                    {"text": REMOVE_BACKGROUND_PROMPT},
                ]
            }]
        }
        body = await self.client.generate(payload)

        for part in GeminiClient.response_parts(body):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                try:
                    return base64.b64decode(inline["data"])
                except (binascii.Error, ValueError):
                    break

        logger.warning("Background removal produced no image")
        raise TransientServiceError(FAILURE_MESSAGE)


def get_background_remover() -> BackgroundRemovalService:
    """Dependency: transformer bound to the configured key"""
    return BackgroundRemovalService(settings.GEMINI_API_KEY)
