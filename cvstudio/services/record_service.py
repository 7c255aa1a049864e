"""
Record Service
Input normalization and the derived invariants of a candidate record
"""

import base64
import logging
import re
from datetime import date
from typing import Iterable, List, Optional

from cvstudio.config import settings
from cvstudio.errors import InputValidationError, TransientServiceError
from cvstudio.schemas.enrichment import PassportData
from cvstudio.schemas.record import RECORD_KEY_PATTERN, PhotoSlot, Record, RecordValue
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.asset_loader import decode_data_uri, is_image_payload
from cvstudio.services.composition_service import parse_date
from cvstudio.services.field_catalog import FieldCatalog

logger = logging.getLogger(__name__)

LANGUAGES = ("English", "Arabic")
LANGUAGE_LEVELS = ("Poor", "Fair", "Fluent")
EXPERIENCE_KEY = re.compile(r"^expCountry(\d+)$")
TRAILING_NUMBER = re.compile(r"^(.*?)(\d+)$")
DEFAULT_EXPERIENCE_POSITION = "HOUSEMAID"
DEFAULT_CONTACT_RELATION = "FATHER"
MAX_AGE = 99


class RecordService:
    """Stateless record helpers"""

    @staticmethod
    def normalize(key: str, raw) -> Optional[RecordValue]:
        """
        Value as stored for a key

        Strings are upper-cased once here, numbers become strings, flags are kept
        and None clears the key.
        """
        if raw is None:
            return None
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return str(raw)
        if isinstance(raw, str):
            return raw.upper()
        raise InputValidationError(f"Unsupported value for '{key}'")

    @staticmethod
    def compute_age(dob: str, today: Optional[date] = None) -> Optional[int]:
        """Whole years since dob, None for invalid, future or implausible dates"""
        birth = parse_date(dob) if dob else None
        if birth is None:
            return None
        today = today or date.today()
        years = today.year - birth.year
        if (today.month, today.day) < (birth.month, birth.day):
            years -= 1
        if years < 0 or years > MAX_AGE:
            return None
        return years

    @staticmethod
    def required_experience_records(templates: Iterable[CustomTemplate]) -> int:
        """Highest expCountry index placed by any template"""
        highest = 0
        for template in templates:
            for field in template.fields:
                match = EXPERIENCE_KEY.match(field.key)
                if match:
                    highest = max(highest, int(match.group(1)))
        return highest

    @staticmethod
    def increment_reference(ref: str) -> str:
        """TK-101 -> TK-102; zero padding is kept, refs without a number are unchanged"""
        match = TRAILING_NUMBER.match(ref or "")
        if not match:
            return ref
        prefix, digits = match.groups()
        return f"{prefix}{int(digits) + 1:0{len(digits)}d}"

    @staticmethod
    def contact_name_from(full_name: str) -> str:
        """Guardian name: the full name without its first token"""
        return " ".join(full_name.split()[1:])


class RecordForm:
    """
    Owns one Record while it is being filled in against a set of templates

    Every write goes through update() so derived keys stay consistent:
    age follows dob, pob seeds the contact address, experience positions get
    a default once the candidate has experience.
    """

    def __init__(
        self,
        record: Optional[Record] = None,
        templates: Optional[Iterable[CustomTemplate]] = None,
        today: Optional[date] = None,
    ):
        self.record = record or Record()
        self.templates: List[CustomTemplate] = list(templates or [])
        self.today = today
        self.is_scanning = False
        self.is_removing_background = False
        self.notice: Optional[str] = None

    def has_field(self, key: str) -> bool:
        return FieldCatalog.used_by_any(self.templates, key)

    def custom_label_for(self, key: str) -> Optional[str]:
        return FieldCatalog.custom_label_for(self.templates, key)

    @property
    def required_experience_records(self) -> int:
        return RecordService.required_experience_records(self.templates)

    def update(self, key: str, raw) -> Record:
        if key == "photos" or not RECORD_KEY_PATTERN.match(key or ""):
            raise InputValidationError(f"Invalid record key '{key}'")

        value = RecordService.normalize(key, raw)
        self._set(key, value)

        if key == "dob":
            self._derive_age()
        elif key == "pob" and value and not self.record.text("contactAddress"):
            self._set("contactAddress", value)
        elif key == "hasExperience" and value is True:
            self.apply_experience_defaults()
        return self.record

    def _set(self, key: str, value: Optional[RecordValue]) -> None:
        self.record = self.record.with_values(**{key: value})

    def _derive_age(self) -> None:
        age = RecordService.compute_age(self.record.text("dob"), self.today)
        if age is not None:
            self._set("age", str(age))

    def select_language(self, language: str, level: str) -> Record:
        language = (language or "").strip().capitalize()
        level = (level or "").strip().capitalize()
        if language not in LANGUAGES or level not in LANGUAGE_LEVELS:
            raise InputValidationError(f"Unknown language level '{language} {level}'")
        for option in LANGUAGE_LEVELS:
            self._set(f"lang{language}{option}", option == level)
        return self.record

    def apply_experience_defaults(self) -> Record:
        for i in range(1, self.required_experience_records + 1):
            key = f"expPosition{i}"
            if not self.record.text(key):
                self._set(key, DEFAULT_EXPERIENCE_POSITION)
        return self.record

    def set_photo(self, slot: PhotoSlot, payload: Optional[str]) -> Record:
        if payload is not None and not is_image_payload(payload):
            raise InputValidationError("Photos must be embedded image data")
        photos = self.record.photos.model_copy(update={slot.value: payload})
        self.record = Record(values=dict(self.record.values), photos=photos)
        return self.record

    def apply_passport(self, data: PassportData) -> Record:
        full_name = data.full_name.upper()
        pob = data.pob.upper()
        self._set("fullName", full_name or None)
        self._set("passportNumber", data.passport_number.upper() or None)
        self._set("dob", data.dob or None)
        self._set("expiryDate", data.expiry_date or None)
        self._set("placeOfIssue", data.place_of_issue.upper() or settings.DEFAULT_PLACE_OF_ISSUE)
        self._set("pob", pob or None)
        self._derive_age()

        contact_name = RecordService.contact_name_from(full_name)
        if contact_name:
            self._set("contactName", contact_name)
            self._set("contactRelation", DEFAULT_CONTACT_RELATION)
        if pob:
            self._set("contactAddress", pob)
        return self.record

    async def scan_passport(self, extractor, image: bytes, content_type: str = "image/jpeg") -> bool:
        """Fill passport fields from a scan; failures leave a notice instead of raising"""
        self.is_scanning = True
        self.notice = None
        try:
            data = await extractor.extract(image, content_type)
            self.set_photo(
                PhotoSlot.PASSPORT,
                f"data:{content_type};base64,{base64.b64encode(image).decode('ascii')}",
            )
            self.apply_passport(data)
            return True
        except TransientServiceError as e:
            logger.warning("Passport scan failed: %s", e.message)
            self.notice = f"Scan Failed: {e.message}"
            return False
        finally:
            self.is_scanning = False

    async def remove_background(self, transformer, slot: PhotoSlot = PhotoSlot.FACE) -> bool:
        payload = self.record.photos.get(slot)
        if not payload:
            self.notice = "Upload a photo first"
            return False

        self.is_removing_background = True
        self.notice = None
        try:
            content = decode_data_uri(payload)
            mime_type = payload[5:payload.index(";")]
            result = await transformer.transform(content, mime_type)
            self.set_photo(slot, f"data:image/png;base64,{base64.b64encode(result).decode('ascii')}")
            return True
        except (TransientServiceError, ValueError) as e:
            message = getattr(e, "message", str(e))
            logger.warning("Background removal failed: %s", message)
            self.notice = message
            return False
        finally:
            self.is_removing_background = False


# Create singleton instance
record_service = RecordService()
