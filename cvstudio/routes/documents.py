"""
Document Endpoints
CV generation: single PDF download and batch ZIP
"""

import zipfile
from io import BytesIO

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from cvstudio.auth.dependencies import get_current_owner
from cvstudio.errors import CompositionError, InputValidationError
from cvstudio.schemas.document import BatchRequest, GenerateRequest, ReferenceIncrementRequest
from cvstudio.services.batch_service import BatchOverride, BatchService
from cvstudio.services.composition_service import CompositionService, get_composition_service
from cvstudio.services.record_service import RecordService
from cvstudio.services.template_store import TemplateStore, get_template_store
from cvstudio.services.usage_service import UsageTracker, get_usage_tracker

router = APIRouter()


def get_batch_service(
    composer: CompositionService = Depends(get_composition_service),
    tracker: UsageTracker = Depends(get_usage_tracker),
) -> BatchService:
    return BatchService(composer, tracker)


@router.post("/generate")
async def generate_document(
    request: GenerateRequest,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
    composer: CompositionService = Depends(get_composition_service),
    tracker: UsageTracker = Depends(get_usage_tracker),
):
    """Render one record through one template and download the PDF"""
    template = await store.get(current_owner["owner_id"], request.template_id)
    document = await composer.compose(request.record, template, agency_name=current_owner["agency_name"])
    await tracker.track(current_owner["owner_id"], 1)

    return StreamingResponse(
        BytesIO(document.content),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'}
    )


@router.post("/batch")
async def generate_batch(
    request: BatchRequest,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
    batch: BatchService = Depends(get_batch_service),
):
    """
    Render the record through several templates, one after another

    Failed templates do not stop the batch; the counts are reported in the
    X-Batch-Produced and X-Batch-Failed headers.
    """
    owner_id = current_owner["owner_id"]
    if request.template_ids:
        templates = [await store.get(owner_id, template_id) for template_id in request.template_ids]
    else:
        templates = await store.list_for_owner(owner_id)
        if request.country is not None:
            templates = [t for t in templates if t.country == request.country]
    if not templates:
        raise InputValidationError("No templates selected")

    report = await batch.run(
        owner_id,
        request.record,
        templates,
        overrides=request.overrides,
        agency_name=current_owner["agency_name"],
    )
    if not report.produced:
        raise CompositionError(f"Batch failed: {report.failed} template(s) could not be rendered")

    archive = BytesIO()
    with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zf:
        used = set()
        for document in report.documents:
            name = document.filename
            if name in used:
                name = f"{name[:-4]}_{document.template_id[:8]}.pdf"
            used.add(name)
            zf.writestr(name, document.content)
    archive.seek(0)

    return StreamingResponse(
        archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": 'attachment; filename="cv_batch.zip"',
            "X-Batch-Produced": str(report.produced),
            "X-Batch-Failed": str(report.failed),
        }
    )


@router.post("/references/increment")
async def increment_references(
    request: ReferenceIncrementRequest,
    current_owner: dict = Depends(get_current_owner),
):
    """Bump every per-template reference number by one"""
    overrides = {}
    for template_id, override in request.overrides.items():
        overrides[template_id] = BatchOverride(
            ref_no=RecordService.increment_reference(override.ref_no) if override.ref_no else None,
            monthly_salary=override.monthly_salary,
        ).model_dump(by_alias=True)
    return {"overrides": overrides}
