"""
Layout Editor
Direct-manipulation editing of a template: placement, drag, resize, marquee
selection, alignment and batch restyling.

All coordinates are normalized percentages (0-100) of the page. Input comes in
as abstract pointer events, so any UI toolkit can drive the editor by mapping
its raw mouse/touch events onto ``pointer_down``/``pointer_move``/``pointer_up``.
"""

import base64
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from cvstudio.errors import InputValidationError
from cvstudio.schemas.template import (
    Country,
    CustomTemplate,
    DateFormat,
    FieldType,
    TemplateField,
    TextAlign,
    TOGGLEABLE_TYPES,
)
from cvstudio.services.field_catalog import FieldCatalog, field_catalog

logger = logging.getLogger(__name__)

DRAG_GRID_STEP = 2.0
RESIZE_GRID_STEP = 1.0
MIN_FIELD_SIZE = 5.0
PAGE_EXTENT = 100.0

# (x, y, width, height) for newly placed fields
DEFAULT_TEXT_BOX = (10.0, 10.0, 40.0, 6.0)
DEFAULT_CHECKMARK_BOX = (10.0, 10.0, 4.0, 4.0)

# A page asset is either an already stored reference or raw image bytes
PageAsset = Union[str, bytes]


class EditorError(InputValidationError):
    """Editor operation rejected; template and selection are unchanged"""


class InteractionMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    MARQUEE = "marquee-selecting"


class ResizeDirection(str, Enum):
    N = "N"
    S = "S"
    E = "E"
    W = "W"
    NE = "NE"
    NW = "NW"
    SE = "SE"
    SW = "SW"


class AlignKind(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    HORIZONTAL_CENTER = "horizontal-center"
    VERTICAL_CENTER = "vertical-center"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Marquee rectangle between the anchor and the current pointer"""
    x1: float
    y1: float
    x2: float
    y2: float

    def bounds(self) -> Tuple[float, float, float, float]:
        return (
            min(self.x1, self.x2),
            min(self.y1, self.y2),
            max(self.x1, self.x2),
            max(self.y1, self.y2),
        )

    def contains(self, field: TemplateField) -> bool:
        x_min, y_min, x_max, y_max = self.bounds()
        return (
            field.x >= x_min
            and field.right <= x_max
            and field.y >= y_min
            and field.bottom <= y_max
        )


class FieldPropertiesUpdate(BaseModel):
    """Property panel edits; unset attributes are left alone"""
    font_size: Optional[float] = Field(default=None, gt=0, alias="fontSize")
    font_family: Optional[str] = Field(default=None, alias="fontFamily")
    color: Optional[str] = Field(default=None, pattern=r"^#?[0-9a-fA-F]{6}$")
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    align: Optional[TextAlign] = None
    # Single-selection only
    type: Optional[FieldType] = None
    date_format: Optional[DateFormat] = Field(default=None, alias="dateFormat")
    custom_label: Optional[str] = Field(default=None, max_length=100, alias="customLabel")

    model_config = ConfigDict(populate_by_name=True)


BATCH_PROPERTIES = ("font_size", "font_family", "color", "bold", "italic", "align")
SINGLE_PROPERTIES = ("type", "date_format", "custom_label")


def snap(value: float, step: float) -> float:
    """Round half up to the nearest grid step"""
    return math.floor(value / step + 0.5) * step


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _data_uri(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


class LayoutEditor:
    """
    One editing session over a single template

    The session owns its template exclusively; mutations happen in place and
    the whole document is handed to the template store on save.
    """

    def __init__(
        self,
        template: Optional[CustomTemplate] = None,
        snap_to_grid: bool = False,
        catalog: FieldCatalog = field_catalog,
    ):
        self.template = template.model_copy(deep=True) if template else CustomTemplate()
        self.page_assets: List[PageAsset] = list(self.template.pages)
        self.catalog = catalog
        self.snap_to_grid = snap_to_grid

        self.current_page_index = 0
        self.selected_ids: List[str] = []
        self.mode = InteractionMode.IDLE
        self.resize_direction: Optional[ResizeDirection] = None
        self.marquee: Optional[Rect] = None
        self.closed = False

        self._anchor: Optional[Point] = None
        self._origins: Dict[str, Tuple[float, float, float, float]] = {}

    # ------------------------------------------------------------------
    # Queries

    @property
    def fields(self) -> List[TemplateField]:
        return self.template.fields

    @property
    def current_page(self) -> int:
        """1-based page number shown in the canvas"""
        return self.current_page_index + 1

    @property
    def page_fields(self) -> List[TemplateField]:
        return self.template.fields_on_page(self.current_page)

    @property
    def selected_fields(self) -> List[TemplateField]:
        chosen = set(self.selected_ids)
        return [f for f in self.template.fields if f.id in chosen]

    @property
    def primary_field(self) -> Optional[TemplateField]:
        """Last selected field, shown in the property panel"""
        if not self.selected_ids:
            return None
        return self.template.field_by_id(self.selected_ids[-1])

    # ------------------------------------------------------------------
    # Pointer state machine

    def pointer_down(
        self,
        point: Point,
        field_id: Optional[str] = None,
        handle: Optional[ResizeDirection] = None,
        multi: bool = False,
    ) -> InteractionMode:
        """
        Start an interaction

        Args:
            point: Pointer position in normalized coordinates
            field_id: Field under the pointer, None for empty canvas
            handle: Resize handle under the pointer (requires field_id)
            multi: Multi-select modifier held (shift/ctrl/meta)

        Returns:
            The resulting interaction mode
        """
        self._reset_interaction()
        self._anchor = point

        if field_id is None:
            self.mode = InteractionMode.MARQUEE
            self.marquee = Rect(point.x, point.y, point.x, point.y)
            if not multi:
                self.selected_ids = []
            return self.mode

        if self.template.field_by_id(field_id) is None:
            raise EditorError("Field not found")

        if handle is not None:
            if not multi and not self.selected_ids:
                self.selected_ids = [field_id]
            # Resize only acts on a sole selection
            if self.selected_ids == [field_id]:
                self.mode = InteractionMode.RESIZING
                self.resize_direction = ResizeDirection(handle)
                self._snapshot_origins()
            return self.mode

        if multi:
            if field_id in self.selected_ids:
                self.selected_ids.remove(field_id)
            else:
                self.selected_ids.append(field_id)
        elif field_id not in self.selected_ids:
            self.selected_ids = [field_id]

        if field_id in self.selected_ids:
            self.mode = InteractionMode.DRAGGING
            self._snapshot_origins()
        return self.mode

    def pointer_move(self, point: Point) -> None:
        if self.mode == InteractionMode.DRAGGING:
            self._drag_to(point)
        elif self.mode == InteractionMode.RESIZING:
            self._resize_to(point)
        elif self.mode == InteractionMode.MARQUEE and self._anchor is not None:
            self.marquee = Rect(self._anchor.x, self._anchor.y, point.x, point.y)

    def pointer_up(self) -> List[str]:
        """Finish the interaction; returns the selection"""
        if self.mode == InteractionMode.MARQUEE and self.marquee is not None:
            enclosed = [f.id for f in self.page_fields if self.marquee.contains(f)]
            for field_id in enclosed:
                if field_id not in self.selected_ids:
                    self.selected_ids.append(field_id)
        self._reset_interaction()
        return list(self.selected_ids)

    def _reset_interaction(self) -> None:
        self.mode = InteractionMode.IDLE
        self.resize_direction = None
        self.marquee = None
        self._anchor = None
        self._origins = {}

    def _snapshot_origins(self) -> None:
        self._origins = {
            f.id: (f.x, f.y, f.width, f.height) for f in self.selected_fields
        }

    def _drag_to(self, point: Point) -> None:
        dx = point.x - self._anchor.x
        dy = point.y - self._anchor.y
        for field in self.selected_fields:
            origin = self._origins.get(field.id)
            if origin is None:
                continue
            new_x = origin[0] + dx
            new_y = origin[1] + dy
            if self.snap_to_grid:
                new_x = snap(new_x, DRAG_GRID_STEP)
                new_y = snap(new_y, DRAG_GRID_STEP)
            field.x = max(0.0, min(PAGE_EXTENT - field.width, new_x))
            field.y = max(0.0, min(PAGE_EXTENT - field.height, new_y))

    def _resize_to(self, point: Point) -> None:
        if len(self.selected_ids) != 1:
            return
        field = self.template.field_by_id(self.selected_ids[0])
        origin = self._origins.get(field.id) if field else None
        if origin is None:
            return

        ox, oy, ow, oh = origin
        x, y, width, height = ox, oy, ow, oh
        edges = self.resize_direction.value

        if "E" in edges:
            width = max(MIN_FIELD_SIZE, min(point.x, PAGE_EXTENT) - ox)
        if "W" in edges:
            right = ox + ow
            x = min(max(point.x, 0.0), right - MIN_FIELD_SIZE)
            width = right - x
        if "S" in edges:
            height = max(MIN_FIELD_SIZE, min(point.y, PAGE_EXTENT) - oy)
        if "N" in edges:
            bottom = oy + oh
            y = min(max(point.y, 0.0), bottom - MIN_FIELD_SIZE)
            height = bottom - y

        if self.snap_to_grid:
            x = snap(x, RESIZE_GRID_STEP)
            y = snap(y, RESIZE_GRID_STEP)
            width = max(MIN_FIELD_SIZE, snap(width, RESIZE_GRID_STEP))
            height = max(MIN_FIELD_SIZE, snap(height, RESIZE_GRID_STEP))

        # Snapped edges stay on the page
        x = clamp(x, 0.0, PAGE_EXTENT - MIN_FIELD_SIZE)
        y = clamp(y, 0.0, PAGE_EXTENT - MIN_FIELD_SIZE)
        width = max(MIN_FIELD_SIZE, min(width, PAGE_EXTENT - x))
        height = max(MIN_FIELD_SIZE, min(height, PAGE_EXTENT - y))

        field.x, field.y, field.width, field.height = x, y, width, height

    # ------------------------------------------------------------------
    # Field operations

    def add_field(self, key: str) -> TemplateField:
        """Place a catalog field on the current page and select it"""
        if not self.template.pages:
            raise EditorError("Please upload a CV page background first.")
        entry = self.catalog.lookup(key)
        if entry is None:
            raise EditorError(f"Unknown field '{key}'")

        box = DEFAULT_CHECKMARK_BOX if entry.default_type == FieldType.CHECKMARK else DEFAULT_TEXT_BOX
        field = TemplateField(
            key=entry.key,
            label=entry.label,
            category=entry.category,
            type=entry.default_type,
            x=box[0], y=box[1], width=box[2], height=box[3],
            page=self.current_page,
            font_size=12,
            font_family="Helvetica",
            color="#000000",
            align=TextAlign.LEFT,
            date_format=DateFormat.ALPHA,
        )
        self.template.fields.append(field)
        self.selected_ids = [field.id]
        logger.debug("Added field %s on page %d", key, self.current_page)
        return field

    def delete_selected(self) -> int:
        """Remove every selected field; returns how many were removed"""
        chosen = set(self.selected_ids)
        before = len(self.template.fields)
        self.template.fields = [f for f in self.template.fields if f.id not in chosen]
        self.selected_ids = []
        return before - len(self.template.fields)

    def apply_properties(self, update: FieldPropertiesUpdate) -> List[TemplateField]:
        """
        Apply property panel edits to the selection

        Styling applies to every selected field. Type, date format and custom
        label require exactly one selected field.
        """
        selected = self.selected_fields
        if not selected:
            raise EditorError("No field selected")

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        single = {k: v for k, v in changes.items() if k in SINGLE_PROPERTIES}
        batch = {k: v for k, v in changes.items() if k in BATCH_PROPERTIES}

        if single and len(selected) != 1:
            raise EditorError("Type, date format and label can only be edited on a single field")
        if "type" in single and single["type"] not in TOGGLEABLE_TYPES:
            raise EditorError("Field type can only be switched between text, checkmark and boolean")
        if "color" in batch and not batch["color"].startswith("#"):
            batch["color"] = f"#{batch['color']}"

        for field in selected:
            for name, value in batch.items():
                setattr(field, name, value)
        if single:
            for name, value in single.items():
                setattr(selected[0], name, value)
        return selected

    def align_selected(self, kind: AlignKind) -> List[TemplateField]:
        """Line up two or more selected fields on one edge or center"""
        selected = self.selected_fields
        if len(selected) < 2:
            raise EditorError("Select at least two fields to align")

        kind = AlignKind(kind)
        if kind == AlignKind.LEFT:
            target = min(f.x for f in selected)
        elif kind == AlignKind.RIGHT:
            target = max(f.right for f in selected)
        elif kind == AlignKind.TOP:
            target = min(f.y for f in selected)
        elif kind == AlignKind.BOTTOM:
            target = max(f.bottom for f in selected)
        elif kind == AlignKind.HORIZONTAL_CENTER:
            target = sum(f.center_x for f in selected) / len(selected)
        else:
            target = sum(f.center_y for f in selected) / len(selected)

        for field in selected:
            if kind == AlignKind.LEFT:
                field.x = target
            elif kind == AlignKind.RIGHT:
                field.x = target - field.width
            elif kind == AlignKind.TOP:
                field.y = target
            elif kind == AlignKind.BOTTOM:
                field.y = target - field.height
            elif kind == AlignKind.HORIZONTAL_CENTER:
                field.x = target - field.width / 2
            else:
                field.y = target - field.height / 2
        return selected

    # ------------------------------------------------------------------
    # Pages and metadata

    def add_page(self, asset: PageAsset, content_type: str = "image/png") -> int:
        """Append a background page; returns its 1-based number"""
        if isinstance(asset, bytes):
            if not asset:
                raise EditorError("Empty page image")
            preview = _data_uri(asset, content_type)
        elif isinstance(asset, str) and asset:
            preview = asset
        else:
            raise EditorError("Invalid page asset")
        self.template.pages.append(preview)
        self.page_assets.append(asset)
        if len(self.template.pages) == 1:
            self.current_page_index = 0
        return len(self.template.pages)

    def select_page(self, index: int) -> None:
        """Switch the canvas to a 0-based page index"""
        if not 0 <= index < len(self.template.pages):
            raise EditorError("Page does not exist")
        if index != self.current_page_index:
            self.selected_ids = []
        self.current_page_index = index
        self._reset_interaction()

    def set_metadata(
        self,
        name: Optional[str] = None,
        office_name: Optional[str] = None,
        country: Optional[Country] = None,
    ) -> None:
        if name is not None:
            self.template.name = name
        if office_name is not None:
            self.template.office_name = office_name.upper()
        if country is not None:
            self.template.country = Country(country)

    # ------------------------------------------------------------------
    # Save

    def build_save_payload(self) -> Tuple[CustomTemplate, List[PageAsset]]:
        """Template plus the raw page asset list for the template store"""
        if not self.template.office_name.strip():
            raise EditorError("Office Name required.")
        return self.template.model_copy(deep=True), list(self.page_assets)

    async def save(self, store, owner_id: str) -> CustomTemplate:
        """
        Persist the template; the session ends only on success

        On failure the exception propagates and the in-memory state is left
        intact so the user can retry.
        """
        template, assets = self.build_save_payload()
        saved = await store.save(owner_id, template, assets)
        self.closed = True
        logger.info("Template %s saved for owner %s", saved.id, owner_id)
        return saved
