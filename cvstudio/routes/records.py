"""
Record Endpoints
Form-side record updates: normalization, derived keys, passport scan, photo cleanup
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError

from cvstudio.auth.dependencies import get_current_owner
from cvstudio.routes.uploads import read_image_upload
from cvstudio.schemas.enrichment import (
    BackgroundRemovalRequest,
    FieldUpdateRequest,
    FormStateResponse,
    LanguageSelectRequest,
)
from cvstudio.schemas.record import Record
from cvstudio.schemas.template import Country, CustomTemplate
from cvstudio.services.enrichment_service import PassportExtractionService, get_passport_extractor
from cvstudio.services.field_catalog import FieldCatalog
from cvstudio.services.image_transform_service import BackgroundRemovalService, get_background_remover
from cvstudio.services.record_service import RecordForm
from cvstudio.services.template_store import TemplateStore, get_template_store

router = APIRouter()


async def _country_templates(
    owner_id: str,
    store: TemplateStore,
    country: Optional[Country],
) -> List[CustomTemplate]:
    templates = await store.list_for_owner(owner_id)
    if country is None:
        return templates
    return [t for t in templates if t.country == country]


@router.get("/form")
async def get_form_layout(
    country: Optional[Country] = Query(None),
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """Which inputs a form needs for the owner's templates of a country"""
    templates = await _country_templates(current_owner["owner_id"], store, country)
    form = RecordForm(templates=templates)
    keys = sorted(FieldCatalog.used_keys(templates))

    custom_labels = {}
    for key in keys:
        label = form.custom_label_for(key)
        if label:
            custom_labels[key] = label

    return {
        "keys": keys,
        "experience_records": form.required_experience_records,
        "custom_labels": custom_labels,
    }


@router.post("/update", response_model=FormStateResponse)
async def update_record_field(
    request: FieldUpdateRequest,
    country: Optional[Country] = Query(None),
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """Set one key; strings are upper-cased and derived keys follow"""
    templates = await _country_templates(current_owner["owner_id"], store, country)
    form = RecordForm(request.record, templates)
    form.update(request.key, request.value)
    return FormStateResponse.from_record(form.record)


@router.post("/language", response_model=FormStateResponse)
async def select_language(
    request: LanguageSelectRequest,
    current_owner: dict = Depends(get_current_owner),
):
    form = RecordForm(request.record)
    form.select_language(request.language, request.level)
    return FormStateResponse.from_record(form.record)


@router.post("/passport-scan", response_model=FormStateResponse)
async def scan_passport(
    image: UploadFile = File(...),
    record: str = Form("{}"),
    current_owner: dict = Depends(get_current_owner),
    extractor: PassportExtractionService = Depends(get_passport_extractor),
):
    """Fill passport and contact keys from a passport photo"""
    try:
        current = Record.model_validate(json.loads(record or "{}"))
    except (json.JSONDecodeError, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid record JSON")

    content = await read_image_upload(image)
    form = RecordForm(current)
    await form.scan_passport(extractor, content, image.content_type or "image/jpeg")
    return FormStateResponse.from_record(form.record, form.notice)


@router.post("/remove-background", response_model=FormStateResponse)
async def remove_photo_background(
    request: BackgroundRemovalRequest,
    current_owner: dict = Depends(get_current_owner),
    transformer: BackgroundRemovalService = Depends(get_background_remover),
):
    form = RecordForm(request.record)
    await form.remove_background(transformer, request.slot)
    return FormStateResponse.from_record(form.record, form.notice)
