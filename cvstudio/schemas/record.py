"""
Candidate Record Models
Key -> value data keyed by the same vocabulary as template fields
"""

import logging
import re
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictStr, model_validator

logger = logging.getLogger(__name__)

RECORD_KEY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

# Text(str) or Flag(bool); photos live in their own sub-model
RecordValue = Union[StrictBool, StrictStr]


class PhotoSlot(str, Enum):
    FACE = "face"
    FULL = "full"
    PASSPORT = "passport"


PHOTO_FIELD_KEYS = {
    "photoFace": PhotoSlot.FACE,
    "photoFull": PhotoSlot.FULL,
    "photoPassport": PhotoSlot.PASSPORT,
}


class PhotoSet(BaseModel):
    """Embedded image payloads (data URIs) for the candidate photos"""
    face: Optional[str] = None
    full: Optional[str] = None
    passport: Optional[str] = None

    def get(self, slot: PhotoSlot) -> Optional[str]:
        return getattr(self, slot.value)


def coerce_value(value: Any) -> Optional[RecordValue]:
    """Map raw input onto Text/Flag; None means 'absent'"""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"Unsupported record value type: {type(value).__name__}")


class Record(BaseModel):
    """
    Candidate/office data

    Accepts the flat wire shape ``{"fullName": "...", "photos": {...}}`` as well as
    the explicit ``{"values": {...}, "photos": {...}}`` shape. Keys that are not
    plain identifiers are dropped.
    """
    values: Dict[str, RecordValue] = Field(default_factory=dict)
    photos: PhotoSet = Field(default_factory=PhotoSet)

    @model_validator(mode="before")
    @classmethod
    def _split_flat_mapping(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "values" in data and set(data.keys()) <= {"values", "photos"}:
            raw_values = data.get("values") or {}
        else:
            raw_values = {k: v for k, v in data.items() if k != "photos"}

        values = {}
        for key, raw in raw_values.items():
            if not isinstance(key, str) or not RECORD_KEY_PATTERN.match(key):
                logger.debug("Ignoring record key %r", key)
                continue
            try:
                value = coerce_value(raw)
            except ValueError:
                logger.debug("Ignoring record key %r with unsupported value", key)
                continue
            if value is not None:
                values[key] = value
        return {"values": values, "photos": data.get("photos") or {}}

    def get(self, key: str, default: Optional[RecordValue] = None) -> Optional[RecordValue]:
        return self.values.get(key, default)

    def text(self, key: str) -> str:
        """String value of a key, empty when absent or a flag"""
        value = self.values.get(key)
        return value if isinstance(value, str) else ""

    def flag(self, key: str) -> bool:
        return bool(self.values.get(key))

    def with_values(self, **updates: Optional[RecordValue]) -> "Record":
        """Copy with some keys replaced; None removes a key"""
        values = dict(self.values)
        for key, value in updates.items():
            if value is None:
                values.pop(key, None)
            else:
                values[key] = value
        return Record(values=values, photos=self.photos.model_copy())

    def to_mapping(self) -> dict:
        """Flat wire shape"""
        data = dict(self.values)
        data["photos"] = self.photos.model_dump()
        return data
