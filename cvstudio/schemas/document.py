"""
Document Schemas
Request models for CV generation
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cvstudio.schemas.record import Record
from cvstudio.schemas.template import Country
from cvstudio.services.batch_service import BatchOverride


class GenerateRequest(BaseModel):
    """One record rendered through one stored template"""
    template_id: str
    record: Record = Field(default_factory=Record)


class BatchRequest(BaseModel):
    """
    One record rendered through several templates

    Templates are chosen by id when given, else by country, else all of the
    owner's templates.
    """
    template_ids: Optional[List[str]] = None
    country: Optional[Country] = None
    record: Record = Field(default_factory=Record)
    overrides: Dict[str, BatchOverride] = Field(default_factory=dict, description="Keyed by template id")


class ReferenceIncrementRequest(BaseModel):
    overrides: Dict[str, BatchOverride] = Field(default_factory=dict)
