"""
Pydantic Schemas
Request/response models and the template and record wire formats
"""

from cvstudio.schemas.template import (
    CatalogEntryResponse,
    CatalogGroupResponse,
    Country,
    CustomTemplate,
    DateFormat,
    FieldCategory,
    FieldType,
    TemplateField,
    TemplateListResponse,
    TextAlign,
)
from cvstudio.schemas.record import PhotoSet, PhotoSlot, Record

__all__ = [
    "CatalogEntryResponse",
    "CatalogGroupResponse",
    "Country",
    "CustomTemplate",
    "DateFormat",
    "FieldCategory",
    "FieldType",
    "TemplateField",
    "TemplateListResponse",
    "TextAlign",
    "PhotoSet",
    "PhotoSlot",
    "Record",
]
