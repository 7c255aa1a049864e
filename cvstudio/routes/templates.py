"""
Template Endpoints
Listing, import and deletion of stored CV templates; the field catalog
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from cvstudio.auth.dependencies import get_current_owner
from cvstudio.schemas.template import (
    CatalogEntryResponse,
    CatalogGroupResponse,
    Country,
    CustomTemplate,
    TemplateListResponse,
)
from cvstudio.services.field_catalog import field_catalog
from cvstudio.services.template_store import TemplateStore, get_template_store

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    country: Optional[Country] = Query(None, description="Only templates for this country"),
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """List the owner's templates, newest first"""
    templates = await store.list_for_owner(current_owner["owner_id"])
    if country is not None:
        templates = [t for t in templates if t.country == country]
    return {
        "owner_id": current_owner["owner_id"],
        "total": len(templates),
        "templates": templates,
    }


@router.get("/catalog", response_model=List[CatalogGroupResponse])
async def get_field_catalog(search: str = Query("", description="Filter by label")):
    """Field palette grouped by section"""
    return [
        CatalogGroupResponse(
            title=title,
            fields=[
                CatalogEntryResponse(key=e.key, label=e.label, type=e.default_type, category=e.category)
                for e in entries
            ],
        )
        for title, entries in field_catalog.search(search)
    ]


@router.post("", response_model=CustomTemplate, status_code=status.HTTP_201_CREATED)
async def import_template(
    template: CustomTemplate,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """Store a complete template document; embedded page images are uploaded"""
    return await store.save(current_owner["owner_id"], template, list(template.pages))


@router.get("/{template_id}", response_model=CustomTemplate)
async def get_template(
    template_id: str,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    return await store.get(current_owner["owner_id"], template_id)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """Delete a template and its stored page images"""
    await store.delete(current_owner["owner_id"], template_id)
