"""Tests for the sequential batch orchestrator."""

import pytest

from cvstudio.errors import CompositionError
from cvstudio.schemas.record import Record
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.batch_service import BatchOverride, BatchService, apply_override
from cvstudio.services.composition_service import RenderedDocument
from cvstudio.services.usage_service import InMemoryUsageTracker

pytestmark = pytest.mark.anyio


class StubComposer:
    """Fails for the configured template ids, records what it was asked to render"""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    async def compose(self, record, template, agency_name=None, now=None):
        self.calls.append((template.id, record.text("refNo"), record.text("monthlySalary")))
        if template.id in self.failing:
            raise CompositionError("background unreachable")
        return RenderedDocument(template.id, f"{template.id}.pdf", b"%PDF-1.4", 1)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def _templates(*ids):
    return [CustomTemplate(id=template_id, office_name=template_id.upper()) for template_id in ids]


async def test_failed_template_does_not_stop_batch():
    composer = StubComposer(failing={"t2"})
    tracker = InMemoryUsageTracker()
    sleep = SleepRecorder()
    service = BatchService(composer, tracker, delay_seconds=0.6, sleep=sleep)

    report = await service.run("owner-1", Record(values={"fullName": "JANE"}), _templates("t1", "t2", "t3"))

    assert [d.template_id for d in report.documents] == ["t1", "t3"]
    assert report.produced == 2
    assert report.failed == 1
    assert report.failures[0].template_id == "t2"
    assert report.failures[0].message == "background unreachable"
    assert await tracker.count("owner-1") == 2
    assert sleep.delays == [0.6, 0.6, 0.6]


async def test_templates_render_in_input_order():
    composer = StubComposer()
    service = BatchService(composer, delay_seconds=0, sleep=SleepRecorder())

    await service.run("owner-1", Record(), _templates("c", "a", "b"))

    assert [call[0] for call in composer.calls] == ["c", "a", "b"]


async def test_overrides_apply_per_template():
    composer = StubComposer()
    service = BatchService(composer, delay_seconds=0, sleep=SleepRecorder())
    record = Record(values={"refNo": "TK-100", "monthlySalary": "1000"})

    await service.run(
        "owner-1",
        record,
        _templates("t1", "t2"),
        overrides={"t2": BatchOverride(refNo="TK-200")},
    )

    assert composer.calls == [("t1", "TK-100", "1000"), ("t2", "TK-200", "1000")]
    # Base record is shared, not mutated
    assert record.get("refNo") == "TK-100"


async def test_nothing_tracked_when_all_fail():
    tracker = InMemoryUsageTracker()
    service = BatchService(StubComposer(failing={"t1"}), tracker, delay_seconds=0, sleep=SleepRecorder())

    report = await service.run("owner-1", Record(), _templates("t1"))

    assert report.produced == 0
    assert await tracker.count("owner-1") == 0


async def test_apply_override_falls_back_to_empty():
    merged = apply_override(Record(values={"fullName": "JANE"}), None)

    assert merged.get("refNo") == ""
    assert merged.get("monthlySalary") == ""
    assert merged.get("fullName") == "JANE"


async def test_usage_tracking_failure_is_swallowed():
    class BrokenTracker(InMemoryUsageTracker):
        async def _increment(self, owner_id, amount):
            raise RuntimeError("database down")

    service = BatchService(StubComposer(), BrokenTracker(), delay_seconds=0, sleep=SleepRecorder())

    report = await service.run("owner-1", Record(), _templates("t1"))

    assert report.produced == 1


def test_override_accepts_field_names_and_aliases():
    by_name = BatchOverride(ref_no="TK-300", monthly_salary="900")
    by_alias = BatchOverride.model_validate({"refNo": "TK-300", "monthlySalary": "900"})

    assert by_name == by_alias
    assert by_name.model_dump(by_alias=True) == {"refNo": "TK-300", "monthlySalary": "900"}
