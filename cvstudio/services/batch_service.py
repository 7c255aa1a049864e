"""
Batch Service
Sequential rendering of one record through many templates
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from cvstudio.config import settings
from cvstudio.errors import CVStudioError
from cvstudio.schemas.record import Record
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.composition_service import CompositionService, RenderedDocument, composition_service
from cvstudio.services.usage_service import UsageTracker

logger = logging.getLogger(__name__)


class BatchOverride(BaseModel):
    """Per-template values for the keys a batch may vary"""
    ref_no: Optional[str] = Field(default=None, alias="refNo")
    monthly_salary: Optional[str] = Field(default=None, alias="monthlySalary")

    model_config = ConfigDict(populate_by_name=True)


@dataclass
class BatchFailure:
    template_id: str
    office_name: str
    message: str


@dataclass
class BatchReport:
    documents: List[RenderedDocument] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    @property
    def produced(self) -> int:
        return len(self.documents)

    @property
    def failed(self) -> int:
        return len(self.failures)


def apply_override(record: Record, override: Optional[BatchOverride]) -> Record:
    """Override value, else the record's own value, else empty"""
    override = override or BatchOverride()
    return record.with_values(
        refNo=override.ref_no or record.text("refNo"),
        monthlySalary=override.monthly_salary or record.text("monthlySalary"),
    )


class BatchService:
    """
    Renders templates one after another with a fixed pause in between

    A failing template is logged and reported; the remaining templates are
    still attempted. Produced documents are reported to the usage tracker.
    """

    def __init__(
        self,
        composer: CompositionService = None,
        usage_tracker: Optional[UsageTracker] = None,
        delay_seconds: float = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.composer = composer or composition_service
        self.usage_tracker = usage_tracker
        self.delay_seconds = settings.BATCH_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.sleep = sleep

    async def run(
        self,
        owner_id: str,
        record: Record,
        templates: Sequence[CustomTemplate],
        overrides: Optional[Dict[str, BatchOverride]] = None,
        agency_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        overrides = overrides or {}
        report = BatchReport()

        for template in templates:
            merged = apply_override(record, overrides.get(template.id))
            try:
                document = await self.composer.compose(merged, template, agency_name=agency_name, now=now)
                report.documents.append(document)
            except CVStudioError as e:
                logger.error("Batch render failed for template %s: %s", template.id, e.message)
                report.failures.append(BatchFailure(template.id, template.office_name, e.message))
            await self.sleep(self.delay_seconds)

        logger.info("Batch for %s: %d produced, %d failed", owner_id, report.produced, report.failed)
        if report.produced and self.usage_tracker is not None:
            await self.usage_tracker.track(owner_id, report.produced)
        return report
