"""
Editor Schemas
Request and response models for layout editor sessions
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from cvstudio.schemas.template import Country, CustomTemplate
from cvstudio.services.layout_editor import AlignKind, InteractionMode, LayoutEditor, ResizeDirection


class OpenSessionRequest(BaseModel):
    template_id: Optional[str] = Field(default=None, description="Stored template to edit; omit for a new layout")
    snap_to_grid: bool = False


class PointerEventRequest(BaseModel):
    """Pointer input in normalized page coordinates (0-100)"""
    x: float
    y: float
    field_id: Optional[str] = None
    handle: Optional[ResizeDirection] = None
    multi: bool = Field(default=False, description="Multi-select modifier held")


class AddFieldRequest(BaseModel):
    key: str = Field(..., min_length=1)


class AlignRequest(BaseModel):
    kind: AlignKind


class SelectPageRequest(BaseModel):
    index: int = Field(..., ge=0, description="0-based page index")


class MetadataRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    office_name: Optional[str] = Field(default=None, max_length=200)
    country: Optional[Country] = None
    snap_to_grid: Optional[bool] = None


class MarqueeResponse(BaseModel):
    x: float
    y: float
    width: float
    height: float


class EditorStateResponse(BaseModel):
    session_id: str
    mode: InteractionMode
    resize_direction: Optional[ResizeDirection] = None
    current_page: int
    selected_ids: List[str]
    primary_field_id: Optional[str] = None
    snap_to_grid: bool
    marquee: Optional[MarqueeResponse] = None
    template: CustomTemplate

    @classmethod
    def from_editor(cls, session_id: str, editor: LayoutEditor) -> "EditorStateResponse":
        marquee = None
        if editor.marquee is not None:
            x_min, y_min, x_max, y_max = editor.marquee.bounds()
            marquee = MarqueeResponse(x=x_min, y=y_min, width=x_max - x_min, height=y_max - y_min)
        primary = editor.primary_field
        return cls(
            session_id=session_id,
            mode=editor.mode,
            resize_direction=editor.resize_direction,
            current_page=editor.current_page,
            selected_ids=list(editor.selected_ids),
            primary_field_id=primary.id if primary else None,
            snap_to_grid=editor.snap_to_grid,
            marquee=marquee,
            template=editor.template,
        )
