"""
Workspace Session Endpoints

Explicit commands driving the workspace core:
open / switch / close chat, submit prompt, change view, export, deploy.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
import io

from appforge.api.deps import get_session_manager
from appforge.core.config import settings
from appforge.core.logging_config import logger
from appforge.schemas.workspace import (
    DeployResponse,
    FileEntrySchema,
    PromptRequest,
    PromptResponse,
    SessionFilesResponse,
    SessionState,
    SwitchRequest,
    ViewRequest,
)
from appforge.services.preview_bundler import InMemoryBundler
from appforge.services.project_export import sanitize_archive_filename
from appforge.services.session_manager import SessionManager


router = APIRouter(prefix="/sessions", tags=["Workspace"])


@router.post("/{chat_id}", response_model=SessionState)
async def open_session(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Open a chat: load its baseline and sync the preview."""
    session = await manager.open(chat_id)
    return SessionState(**session.to_dict())


@router.delete("/{chat_id}")
async def close_session(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Close a chat, cancelling any outstanding generation."""
    closed = await manager.close(chat_id)
    return {"success": True, "chat_id": chat_id, "closed": closed}


@router.post("/{chat_id}/switch", response_model=SessionState)
async def switch_session(
    chat_id: str,
    request: SwitchRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    """Switch to chat_id, closing from_chat_id first."""
    session = await manager.switch(request.from_chat_id, chat_id)
    return SessionState(**session.to_dict())


@router.get("/{chat_id}", response_model=SessionState)
async def get_session_state(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    return SessionState(**manager.get(chat_id).to_dict())


@router.post("/{chat_id}/prompt", response_model=PromptResponse)
async def submit_prompt(
    chat_id: str,
    request: PromptRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    """
    Submit a prompt. Supersedes any pending prompt for the chat.

    With wait=true the call returns once this request resolves.
    """
    generation = manager.submit_prompt(chat_id, request.prompt)

    outcome = None
    if request.wait:
        result = await manager.dispatcher.wait(chat_id)
        outcome = result.value if result is not None else None

    return PromptResponse(chat_id=chat_id, request_id=generation.request_id, outcome=outcome)


@router.get("/{chat_id}/files", response_model=SessionFilesResponse)
async def get_session_files(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Merged file set (defaults included) as shown in the editor."""
    session = manager.get(chat_id)
    return SessionFilesResponse(
        chat_id=chat_id,
        revision=session.revision,
        files=[FileEntrySchema(**entry) for entry in session.merged_file_set.to_wire()]
    )


@router.get("/{chat_id}/preview")
async def get_preview(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """What the preview bundler last received for this chat."""
    session = manager.get(chat_id)
    if isinstance(manager.bundler, InMemoryBundler):
        return {"chat_id": chat_id, "source": "memory", **manager.bundler.snapshot(chat_id).to_dict()}

    return {
        "chat_id": chat_id,
        "source": "remote",
        "sync_url": settings.PREVIEW_SYNC_URL,
        "sync_count": session.projection.sync_count
    }


@router.put("/{chat_id}/view", response_model=SessionState)
async def set_view_mode(
    chat_id: str,
    request: ViewRequest,
    manager: SessionManager = Depends(get_session_manager)
):
    """Switch editor view; preview starts the building countdown."""
    session = manager.get(chat_id)
    session.projection.set_view(request.mode)
    return SessionState(**session.to_dict())


@router.get("/{chat_id}/export")
async def export_session(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """Download every file of the merged set as a ZIP archive."""
    session = manager.get(chat_id)
    data = session.export_all()
    filename = sanitize_archive_filename(settings.EXPORT_ARCHIVE_NAME)

    logger.info(f"[Export] Serving {filename} for chat {chat_id}")
    return StreamingResponse(
        io.BytesIO(data),
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(data))
        }
    )


@router.post("/{chat_id}/deploy", response_model=DeployResponse)
async def deploy_session(
    chat_id: str,
    manager: SessionManager = Depends(get_session_manager)
):
    """
    Deploy the merged set.

    A second deploy while one is outstanding is rejected with 409.
    """
    session = manager.get(chat_id)
    result = await session.deploy()
    return DeployResponse(**result.to_dict())
