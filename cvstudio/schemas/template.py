"""
CV Template Models
Positioned fields over background pages; geometry is stored as percentages (0-100)
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldType(str, Enum):
    """How a field's value is resolved and drawn"""
    TEXT = "text"
    IMAGE = "image"
    CHECKMARK = "checkmark"
    BOOLEAN = "boolean"


class FieldCategory(str, Enum):
    """Informational grouping, no effect on rendering"""
    PERSONAL = "personal"
    PASSPORT = "passport"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    CONTACT = "contact"
    CUSTOM = "custom"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class DateFormat(str, Enum):
    NUMERIC = "numeric"  # 15/06/2024
    ALPHA = "alpha"      # 15 JUN 2024


class Country(str, Enum):
    KUWAIT = "kuwait"
    SAUDI = "saudi"
    JORDAN = "jordan"
    OMAN = "oman"
    UAE = "uae"
    QATAR = "qatar"
    BAHRAIN = "bahrain"


FONT_FAMILIES = (
    "Helvetica",
    "Times New Roman",
    "Courier",
    "Arial",
    "Century",
    "Poppins",
)

TOGGLEABLE_TYPES = (FieldType.TEXT, FieldType.CHECKMARK, FieldType.BOOLEAN)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemplateField(BaseModel):
    """A positioned, styled placeholder bound to one record key"""
    id: str = Field(default_factory=_new_id)
    key: str = Field(..., min_length=1, max_length=64)
    label: str = Field(default="")
    custom_label: Optional[str] = Field(default=None, alias="customLabel")
    category: FieldCategory = Field(default=FieldCategory.CUSTOM)
    type: FieldType = Field(default=FieldType.TEXT)

    # Percentages of page width/height
    x: float = Field(default=10.0)
    y: float = Field(default=10.0)
    width: float = Field(default=40.0)
    height: float = Field(default=6.0)
    page: int = Field(default=1, ge=1, description="1-based background page index")

    font_size: float = Field(default=12.0, gt=0, alias="fontSize")
    font_family: str = Field(default="Helvetica", alias="fontFamily")
    color: str = Field(default="#000000", description="Hex color code (e.g., #000000)")
    bold: bool = False
    italic: bool = False
    align: TextAlign = TextAlign.LEFT
    date_format: Optional[DateFormat] = Field(default=None, alias="dateFormat")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def display_label(self) -> str:
        return self.custom_label or self.label or self.key


class CustomTemplate(BaseModel):
    """A named, country-scoped, multi-page layout"""
    id: str = Field(default_factory=_new_id)
    name: str = Field(default="New Layout", max_length=100, description="Internal version label")
    office_name: str = Field(default="", max_length=200, alias="officeName")
    country: Country = Field(default=Country.KUWAIT)
    pages: List[str] = Field(default_factory=list, description="Background page references in order")
    fields: List[TemplateField] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def fields_on_page(self, page: int) -> List[TemplateField]:
        """Fields placed on a 1-based page"""
        return [f for f in self.fields if f.page == page]

    def field_by_id(self, field_id: str) -> Optional[TemplateField]:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def to_wire(self) -> dict:
        """Persisted representation (camelCase keys, JSON-safe values)"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TemplateListResponse(BaseModel):
    """Templates owned by one agency"""
    owner_id: str
    total: int
    templates: List[CustomTemplate]


class CatalogEntryResponse(BaseModel):
    key: str
    label: str
    type: FieldType
    category: FieldCategory


class CatalogGroupResponse(BaseModel):
    title: str
    fields: List[CatalogEntryResponse]
