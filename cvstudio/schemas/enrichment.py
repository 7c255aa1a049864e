"""
Enrichment Schemas
Passport extraction and photo transform payloads
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from cvstudio.schemas.record import PhotoSlot, Record


class PassportData(BaseModel):
    """Fields read from a passport scan; dates are ISO (YYYY-MM-DD)"""
    full_name: str = Field(default="", alias="fullName")
    passport_number: str = Field(default="", alias="passportNumber")
    dob: str = ""
    expiry_date: str = Field(default="", alias="expiryDate")
    nationality: str = ""
    sex: str = ""
    pob: str = ""
    place_of_issue: str = Field(default="", alias="placeOfIssue")

    model_config = ConfigDict(populate_by_name=True)


class FormStateResponse(BaseModel):
    """Record after a form operation, plus any dismissable notice"""
    record: dict
    notice: Optional[str] = None

    @classmethod
    def from_record(cls, record: Record, notice: Optional[str] = None) -> "FormStateResponse":
        return cls(record=record.to_mapping(), notice=notice)


class LanguageSelectRequest(BaseModel):
    record: Record = Field(default_factory=Record)
    language: str = Field(..., description="English or Arabic")
    level: str = Field(..., description="Poor, Fair or Fluent")


class FieldUpdateRequest(BaseModel):
    record: Record = Field(default_factory=Record)
    key: str
    value: Any = None


class BackgroundRemovalRequest(BaseModel):
    record: Record = Field(default_factory=Record)
    slot: PhotoSlot = PhotoSlot.FACE
