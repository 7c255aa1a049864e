"""
Template Store
Whole-document persistence of CV templates and their background pages
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from cvstudio.config import settings
from cvstudio.database import database as default_database
from cvstudio.errors import CVStudioError, NotFoundError, TemplateStoreError
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.asset_loader import decode_data_uri, is_data_uri
from cvstudio.services.image_optimizer import ImageOptimizer, image_optimizer
from cvstudio.services.storage_service import StorageService, storage_service

logger = logging.getLogger(__name__)

PageAsset = Union[str, bytes]


class TemplateStore(ABC):
    """
    Persists templates per owner

    save() uploads any new page bytes first and substitutes the returned public
    references into the page list, keeping the original order.
    """

    def __init__(self, storage: StorageService = None, optimizer: ImageOptimizer = None):
        self.storage = storage or storage_service
        self.optimizer = optimizer or image_optimizer

    async def save(self, owner_id: str, template: CustomTemplate, page_assets: Sequence[PageAsset]) -> CustomTemplate:
        pages = await self.resolve_page_assets(owner_id, template.id, page_assets)
        stored = template.model_copy(update={"pages": pages}, deep=True)
        await self._upsert(owner_id, stored)
        logger.info("Stored template %s (%d pages, %d fields)", stored.id, len(pages), len(stored.fields))
        return stored

    async def resolve_page_assets(self, owner_id: str, template_id: str, page_assets: Sequence[PageAsset]) -> List[str]:
        timestamp = int(time.time() * 1000)
        pages = []
        for index, asset in enumerate(page_assets):
            if isinstance(asset, str) and not is_data_uri(asset):
                pages.append(asset)
                continue

            try:
                content = decode_data_uri(asset) if isinstance(asset, str) else asset
            except ValueError as e:
                raise TemplateStoreError(f"Page {index + 1} could not be decoded: {e}")
            optimized, content_type = self.optimizer.optimize(content)
            path = f"{owner_id}/{template_id}/{index}_{timestamp}.png"
            pages.append(await self.storage.upload_bytes(path, optimized, content_type))
        return pages

    async def get(self, owner_id: str, template_id: str) -> CustomTemplate:
        template = await self._fetch(owner_id, template_id)
        if template is None:
            raise NotFoundError("Template not found")
        return template

    async def delete(self, owner_id: str, template_id: str) -> None:
        template = await self.get(owner_id, template_id)
        await self._remove(owner_id, template_id)
        for page in template.pages:
            try:
                await self.storage.delete_by_url(page)
            except CVStudioError as e:
                logger.warning("Could not delete page asset %s: %s", page, e)
        logger.info("Deleted template %s", template_id)

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> List[CustomTemplate]:
        """Templates of one owner, newest first"""

    @abstractmethod
    async def _upsert(self, owner_id: str, template: CustomTemplate) -> None:
        ...

    @abstractmethod
    async def _fetch(self, owner_id: str, template_id: str) -> Optional[CustomTemplate]:
        ...

    @abstractmethod
    async def _remove(self, owner_id: str, template_id: str) -> None:
        ...


def _load_json(value, default):
    if value is None:
        return default
    if isinstance(value, (list, dict)):
        return value
    return json.loads(value)


def template_from_row(row) -> CustomTemplate:
    data = dict(row)
    return CustomTemplate(
        id=data["id"],
        name=data["name"],
        office_name=data["office_name"] or "",
        country=data["country"],
        pages=_load_json(data["pages"], []),
        fields=_load_json(data["fields"], []),
        created_at=data["created_at"],
    )


class DatabaseTemplateStore(TemplateStore):
    """cv_templates table through raw SQL"""

    def __init__(self, database=None, **kwargs):
        super().__init__(**kwargs)
        self.database = database if database is not None else default_database

    async def _upsert(self, owner_id: str, template: CustomTemplate) -> None:
        wire = template.to_wire()
        try:
            await self.database.execute(
                """
                INSERT INTO cv_templates
                (id, owner_id, name, office_name, country, pages, fields, created_at, updated_at)
                VALUES (:id, :owner_id, :name, :office_name, :country, :pages, :fields, :created_at, :updated_at)
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    office_name = excluded.office_name,
                    country = excluded.country,
                    pages = excluded.pages,
                    fields = excluded.fields,
                    updated_at = excluded.updated_at
                WHERE cv_templates.owner_id = excluded.owner_id
                """,
                {
                    "id": template.id,
                    "owner_id": owner_id,
                    "name": template.name,
                    "office_name": template.office_name,
                    "country": template.country.value,
                    "pages": json.dumps(wire["pages"]),
                    "fields": json.dumps(wire["fields"]),
                    "created_at": template.created_at,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
        except Exception as e:
            logger.error("Failed to save template %s: %s", template.id, e)
            raise TemplateStoreError(f"Failed to save template: {str(e)}")

        # The conflict clause skips rows of another owner without an error
        try:
            row = await self.database.fetch_one(
                "SELECT owner_id FROM cv_templates WHERE id = :template_id",
                {"template_id": template.id}
            )
        except Exception as e:
            raise TemplateStoreError(f"Failed to save template: {str(e)}")
        if row is None or row["owner_id"] != owner_id:
            logger.warning("Template %s was not written for owner %s", template.id, owner_id)
            raise TemplateStoreError("Template belongs to another owner")

    async def _fetch(self, owner_id: str, template_id: str) -> Optional[CustomTemplate]:
        try:
            row = await self.database.fetch_one(
                "SELECT * FROM cv_templates WHERE id = :template_id AND owner_id = :owner_id",
                {"template_id": template_id, "owner_id": owner_id}
            )
        except Exception as e:
            raise TemplateStoreError(f"Failed to load template: {str(e)}")
        return template_from_row(row) if row else None

    async def list_for_owner(self, owner_id: str) -> List[CustomTemplate]:
        try:
            rows = await self.database.fetch_all(
                """
                SELECT * FROM cv_templates
                WHERE owner_id = :owner_id
                ORDER BY created_at DESC
                """,
                {"owner_id": owner_id}
            )
        except Exception as e:
            raise TemplateStoreError(f"Failed to list templates: {str(e)}")
        return [template_from_row(row) for row in rows]

    async def _remove(self, owner_id: str, template_id: str) -> None:
        try:
            await self.database.execute(
                "DELETE FROM cv_templates WHERE id = :template_id AND owner_id = :owner_id",
                {"template_id": template_id, "owner_id": owner_id}
            )
        except Exception as e:
            raise TemplateStoreError(f"Failed to delete template: {str(e)}")


class InMemoryTemplateStore(TemplateStore):
    """Process-local store; keeps the persisted JSON so reads go through serialization"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._rows: Dict[str, dict] = {}

    async def _upsert(self, owner_id: str, template: CustomTemplate) -> None:
        existing = self._rows.get(template.id)
        if existing is not None and existing["owner_id"] != owner_id:
            raise TemplateStoreError("Template belongs to another owner")
        self._rows[template.id] = {"owner_id": owner_id, "document": json.dumps(template.to_wire())}

    async def _fetch(self, owner_id: str, template_id: str) -> Optional[CustomTemplate]:
        row = self._rows.get(template_id)
        if row is None or row["owner_id"] != owner_id:
            return None
        return CustomTemplate.model_validate(json.loads(row["document"]))

    async def list_for_owner(self, owner_id: str) -> List[CustomTemplate]:
        templates = [
            CustomTemplate.model_validate(json.loads(row["document"]))
            for row in self._rows.values()
            if row["owner_id"] == owner_id
        ]
        return sorted(templates, key=lambda t: t.created_at, reverse=True)

    async def _remove(self, owner_id: str, template_id: str) -> None:
        self._rows.pop(template_id, None)


_store: Optional[TemplateStore] = None


def get_template_store() -> TemplateStore:
    """Dependency: store for the configured backend"""
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "memory":
            _store = InMemoryTemplateStore()
        else:
            _store = DatabaseTemplateStore()
    return _store
