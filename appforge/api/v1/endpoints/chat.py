"""
Generation Endpoints
Incremental code generation, whole-project scaffolds and streamed explanations
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from typing import AsyncGenerator
import json
from datetime import datetime

from appforge.api.deps import get_code_generator, get_project_store
from appforge.core.exceptions import InvalidPromptError
from appforge.core.logging_config import logger
from appforge.schemas.workspace import (
    CodeRequest,
    CodeResponse,
    FileEntrySchema,
    ProjectRequest,
    ProjectResponse,
    StoredFilesResponse,
    TextRequest,
)
from appforge.services.code_generator import CodeGenerationService
from appforge.services.project_store import ProjectStore, validate_chat_id


router = APIRouter(prefix="/chat", tags=["Generation"])


def _require_message(message: str) -> str:
    if not message or not message.strip():
        raise InvalidPromptError("Message must not be empty")
    return message


@router.post("/code/{chat_id}", response_model=CodeResponse)
async def generate_code(
    chat_id: str,
    request: CodeRequest,
    generator: CodeGenerationService = Depends(get_code_generator)
):
    """
    Generate the files a prompt creates or replaces.

    Errors are rendered by the application handler as
    {"success": false, "error": {...}} with a non-2xx status.
    """
    validate_chat_id(chat_id)
    _require_message(request.message)

    normalized = await generator.generate_files(chat_id, request.message)
    return CodeResponse(
        success=True,
        files=[FileEntrySchema(**entry) for entry in normalized.file_set.to_wire()],
        dropped=normalized.dropped_count
    )


@router.post("/project", response_model=ProjectResponse)
async def generate_project(
    request: ProjectRequest,
    generator: CodeGenerationService = Depends(get_code_generator)
):
    """Generate a complete React + Vite + Tailwind project."""
    _require_message(request.message)

    project = await generator.generate_project(request.message)
    return ProjectResponse(success=True, **project)


@router.post("/text/{chat_id}")
async def stream_explanation(
    chat_id: str,
    request: TextRequest,
    generator: CodeGenerationService = Depends(get_code_generator)
):
    """
    Stream a short plain-language explanation of what will be built.
    Uses Server-Sent Events (SSE).
    """
    validate_chat_id(chat_id)
    _require_message(request.message)

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for chunk in generator.stream_explanation(request.message):
                yield f"data: {json.dumps({'type': 'content', 'data': {'chunk': chunk}, 'timestamp': datetime.utcnow().isoformat()})}\n\n"

            yield f"data: {json.dumps({'type': 'done', 'data': {'message': 'Response complete'}, 'timestamp': datetime.utcnow().isoformat()})}\n\n"

        except Exception as e:
            # Headers are already sent; report the failure in-band
            logger.error(f"Explanation streaming error for chat {chat_id}: {e}", exc_info=True)
            yield f"data: {json.dumps({'type': 'error', 'data': {'error': str(e)}, 'timestamp': datetime.utcnow().isoformat()})}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@router.get("/{chat_id}/files", response_model=StoredFilesResponse)
async def get_stored_files(
    chat_id: str,
    store: ProjectStore = Depends(get_project_store)
):
    """Persisted baseline for a chat (empty for new chats)."""
    file_set = await store.load(chat_id)
    return StoredFilesResponse(
        chat_id=chat_id,
        files=[FileEntrySchema(**entry) for entry in file_set.to_wire()]
    )
