"""
Pydantic schemas for the generation and workspace endpoints
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from appforge.services.sandbox_projection import ViewMode


class FileEntrySchema(BaseModel):
    """Generated file in wire shape"""
    path: str = Field(..., description="Root-relative file path, e.g. /App.js")
    content: str = Field(..., description="File content")


class CodeRequest(BaseModel):
    """Request for incremental code generation"""
    message: str = Field(..., description="User prompt describing the change")


class CodeResponse(BaseModel):
    """Generation contract response"""
    success: bool = Field(..., description="Whether generation succeeded")
    files: List[FileEntrySchema] = Field(default_factory=list, description="Created or replaced files")
    dropped: int = Field(default=0, description="Malformed entries dropped from the model output")
    error: Optional[Dict[str, Any]] = Field(None, description="Error payload when success is false")


class ProjectRequest(BaseModel):
    """Request for a whole-project scaffold"""
    message: str = Field(..., description="Description of the application to build")


class ProjectResponse(BaseModel):
    """Whole-project scaffold"""
    success: bool = Field(..., description="Whether generation succeeded")
    files: Dict[str, Dict[str, str]] = Field(default_factory=dict, description="{path: {code}}")
    generatedFiles: List[str] = Field(default_factory=list, description="Paths present in files")
    unapprovedPackages: List[str] = Field(default_factory=list, description="Dependencies outside the approved list")
    error: Optional[Dict[str, Any]] = Field(None, description="Error payload when success is false")


class TextRequest(BaseModel):
    """Request for a streamed explanation"""
    message: str = Field(..., description="User prompt to explain")


class StoredFilesResponse(BaseModel):
    """Persisted baseline for a chat"""
    chat_id: str
    files: List[FileEntrySchema] = Field(default_factory=list)


class PromptRequest(BaseModel):
    """Prompt submitted to an open session"""
    prompt: str = Field(..., description="Prompt text")
    wait: bool = Field(default=False, description="Block until the generation resolves")


class PromptResponse(BaseModel):
    """Accepted prompt"""
    chat_id: str
    request_id: int
    outcome: Optional[str] = Field(None, description="merged/unchanged/stale/cancelled/failed when wait=true")


class SwitchRequest(BaseModel):
    """Switch from the current chat to chat_id in the path"""
    from_chat_id: Optional[str] = Field(None, description="Chat currently open, closed before switching")


class ViewRequest(BaseModel):
    """Editor view mode"""
    mode: ViewMode = Field(..., description="code or preview")


class SessionState(BaseModel):
    """Observable state of an open session"""
    chat_id: str
    active_prompt: Optional[str] = None
    generating: bool = False
    revision: int = 0
    file_count: int = 0
    view_mode: ViewMode = ViewMode.CODE
    preview_indicator: Dict[str, Any] = Field(default_factory=dict)
    sync_count: int = 0
    deploying: bool = False
    last_deployment: Optional[Dict[str, Any]] = None
    notices: List[Dict[str, Any]] = Field(default_factory=list)


class SessionFilesResponse(BaseModel):
    """Merged file set of a session"""
    chat_id: str
    revision: int
    files: List[FileEntrySchema] = Field(default_factory=list)


class DeployResponse(BaseModel):
    """Deployment outcome"""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None
    file_count: int = 0
    finished_at: Optional[str] = None
