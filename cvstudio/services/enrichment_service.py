"""
Record Enrichment Service
Passport extraction through the Gemini generateContent REST endpoint
"""

import base64
import json
import logging
from typing import Optional

import httpx

from cvstudio.config import settings
from cvstudio.errors import TransientServiceError
from cvstudio.schemas.enrichment import PassportData

logger = logging.getLogger(__name__)

PASSPORT_PROMPT = (
    "Extract passport details from MRZ lines. Focus on the bottom two lines. "
    "Provide JSON: mrzLine1, passportNumber, nationality, dob (YYYY-MM-DD), sex, "
    "expiryDate (YYYY-MM-DD), pob, placeOfIssue."
)

PASSPORT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "mrzLine1": {"type": "STRING"},
        "passportNumber": {"type": "STRING"},
        "nationality": {"type": "STRING"},
        "dob": {"type": "STRING"},
        "sex": {"type": "STRING"},
        "expiryDate": {"type": "STRING"},
        "pob": {"type": "STRING"},
        "placeOfIssue": {"type": "STRING"},
    },
    "required": ["mrzLine1", "passportNumber", "dob", "expiryDate"],
}

DEFAULT_NATIONALITY = "ETHIOPIAN"


def parse_mrz_name(line: str) -> str:
    """
    Name from the first MRZ line

    ``P<ETHDOE<<JANE<MARY<<<<<<`` -> ``JANE MARY DOE`` (given names first).
    """
    if not line or len(line) < 10:
        return ""
    content = line.strip().upper()[5:].split("<<<<")[0]
    parts = content.split("<<")
    if len(parts) >= 2:
        surname = parts[0].replace("<", " ").strip()
        given = parts[1].replace("<", " ").strip()
        return f"{given} {surname}".strip()
    return content.replace("<", " ").strip()


class GeminiClient:
    """Minimal generateContent caller; the API key is always passed in"""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = None,
        timeout: float = None,
    ):
        self.api_key = api_key
        self.model = model
        self.http_client = http_client
        self.base_url = (base_url or settings.GEMINI_API_URL).rstrip("/")
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS

    async def generate(self, payload: dict) -> dict:
        if not self.api_key:
            raise TransientServiceError("AI service is not configured")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            if self.http_client is not None:
                resp = await self.http_client.post(url, headers=headers, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Gemini request to %s failed: %s", self.model, e)
            raise TransientServiceError("AI service unreachable. Please try again later.")

        if resp.status_code != 200:
            logger.warning("Gemini %s returned HTTP %s: %s", self.model, resp.status_code, resp.text[:200])
            raise TransientServiceError("AI limit reached or image unclear. Please try again later.")

        try:
            return resp.json()
        except ValueError:
            raise TransientServiceError("AI service returned an unreadable response")

    @staticmethod
    def inline_image(content: bytes, mime_type: str) -> dict:
        return {
            "inline_data": {
                "mime_type": mime_type or "image/jpeg",
                "data": base64.b64encode(content).decode("ascii"),
            }
        }

    @staticmethod
    def response_parts(body: dict) -> list:
        candidates = body.get("candidates") or []
        if not candidates:
            return []
        return (candidates[0].get("content") or {}).get("parts") or []


class PassportExtractionService:
    """Passport image -> PassportData"""

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.AsyncClient] = None, model: str = None):
        self.client = GeminiClient(api_key, model or settings.PASSPORT_MODEL, http_client=http_client)

    async def extract(self, image: bytes, content_type: str = "image/jpeg") -> PassportData:
        """
        Read the MRZ of a passport scan

        Raises:
            TransientServiceError: Service unreachable, limited, or the answer was not usable
        """
        payload = {
            "contents": [{
                "parts": [
                    GeminiClient.inline_image(image, content_type),
                    {"text": PASSPORT_PROMPT},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": PASSPORT_SCHEMA,
            },
        }
        body = await self.client.generate(payload)

        text = "".join(part.get("text", "") for part in GeminiClient.response_parts(body))
        try:
            data = json.loads(text or "{}")
        except ValueError:
            logger.warning("Passport extraction returned non-JSON text")
            raise TransientServiceError("Passport could not be read. Please try a clearer image.")
        if not isinstance(data, dict):
            raise TransientServiceError("Passport could not be read. Please try a clearer image.")

        return PassportData(
            full_name=parse_mrz_name(data.get("mrzLine1") or ""),
            passport_number=(data.get("passportNumber") or "").upper(),
            dob=data.get("dob") or "",
            expiry_date=data.get("expiryDate") or "",
            nationality=(data.get("nationality") or DEFAULT_NATIONALITY).upper(),
            sex=(data.get("sex") or "").upper(),
            pob=(data.get("pob") or settings.DEFAULT_PLACE_OF_ISSUE).upper(),
            place_of_issue=(data.get("placeOfIssue") or settings.DEFAULT_PLACE_OF_ISSUE).upper(),
        )


def get_passport_extractor() -> PassportExtractionService:
    """Dependency: extractor bound to the configured key"""
    return PassportExtractionService(settings.GEMINI_API_KEY)
