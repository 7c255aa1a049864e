"""
Layout Editor Endpoints
Pointer-driven template editing sessions
"""

from typing import Literal

from fastapi import APIRouter, Depends, File, UploadFile, status

from cvstudio.auth.dependencies import get_current_owner
from cvstudio.routes.uploads import read_image_upload
from cvstudio.schemas.editor import (
    AddFieldRequest,
    AlignRequest,
    EditorStateResponse,
    MetadataRequest,
    OpenSessionRequest,
    PointerEventRequest,
    SelectPageRequest,
)
from cvstudio.schemas.template import CustomTemplate
from cvstudio.services.editor_sessions import EditorSession, editor_sessions
from cvstudio.services.layout_editor import FieldPropertiesUpdate, Point
from cvstudio.services.template_store import TemplateStore, get_template_store

router = APIRouter()


def get_session(session_id: str, current_owner: dict = Depends(get_current_owner)) -> EditorSession:
    return editor_sessions.get(session_id, current_owner["owner_id"])


def _state(session: EditorSession) -> EditorStateResponse:
    return EditorStateResponse.from_editor(session.id, session.editor)


@router.post("/sessions", response_model=EditorStateResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    request: OpenSessionRequest,
    current_owner: dict = Depends(get_current_owner),
    store: TemplateStore = Depends(get_template_store),
):
    """Start editing a stored template, or a blank layout"""
    template = None
    if request.template_id:
        template = await store.get(current_owner["owner_id"], request.template_id)
    session = editor_sessions.open(current_owner["owner_id"], template)
    session.editor.snap_to_grid = request.snap_to_grid
    return _state(session)


@router.get("/sessions/{session_id}", response_model=EditorStateResponse)
async def get_state(session: EditorSession = Depends(get_session)):
    return _state(session)


@router.post("/sessions/{session_id}/pointer/{phase}", response_model=EditorStateResponse)
async def pointer_event(
    phase: Literal["down", "move", "up"],
    request: PointerEventRequest,
    session: EditorSession = Depends(get_session),
):
    """Feed one pointer event into the interaction state machine"""
    editor = session.editor
    point = Point(request.x, request.y)
    if phase == "down":
        editor.pointer_down(point, field_id=request.field_id, handle=request.handle, multi=request.multi)
    elif phase == "move":
        editor.pointer_move(point)
    else:
        editor.pointer_move(point)
        editor.pointer_up()
    return _state(session)


@router.post("/sessions/{session_id}/fields", response_model=EditorStateResponse)
async def add_field(request: AddFieldRequest, session: EditorSession = Depends(get_session)):
    session.editor.add_field(request.key)
    return _state(session)


@router.delete("/sessions/{session_id}/fields/selected", response_model=EditorStateResponse)
async def delete_selected_fields(session: EditorSession = Depends(get_session)):
    session.editor.delete_selected()
    return _state(session)


@router.patch("/sessions/{session_id}/fields/selected", response_model=EditorStateResponse)
async def update_selected_fields(request: FieldPropertiesUpdate, session: EditorSession = Depends(get_session)):
    """Restyle the selection; type, date format and label need a single field"""
    session.editor.apply_properties(request)
    return _state(session)


@router.post("/sessions/{session_id}/align", response_model=EditorStateResponse)
async def align_selected_fields(request: AlignRequest, session: EditorSession = Depends(get_session)):
    session.editor.align_selected(request.kind)
    return _state(session)


@router.post("/sessions/{session_id}/pages", response_model=EditorStateResponse)
async def add_page(image: UploadFile = File(...), session: EditorSession = Depends(get_session)):
    """Append a background page image"""
    content = await read_image_upload(image)
    session.editor.add_page(content, image.content_type or "image/png")
    return _state(session)


@router.post("/sessions/{session_id}/pages/select", response_model=EditorStateResponse)
async def select_page(request: SelectPageRequest, session: EditorSession = Depends(get_session)):
    session.editor.select_page(request.index)
    return _state(session)


@router.patch("/sessions/{session_id}/metadata", response_model=EditorStateResponse)
async def update_metadata(request: MetadataRequest, session: EditorSession = Depends(get_session)):
    editor = session.editor
    editor.set_metadata(name=request.name, office_name=request.office_name, country=request.country)
    if request.snap_to_grid is not None:
        editor.snap_to_grid = request.snap_to_grid
    return _state(session)


@router.post("/sessions/{session_id}/save", response_model=CustomTemplate)
async def save_session(
    session: EditorSession = Depends(get_session),
    store: TemplateStore = Depends(get_template_store),
):
    """Persist the layout; the session closes only when the store accepts it"""
    saved = await session.editor.save(store, session.owner_id)
    editor_sessions.close(session.id)
    return saved


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session: EditorSession = Depends(get_session)):
    editor_sessions.close(session.id)
