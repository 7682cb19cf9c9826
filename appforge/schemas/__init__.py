# Pydantic schemas
from appforge.schemas.workspace import (
    FileEntrySchema,
    CodeRequest,
    CodeResponse,
    ProjectRequest,
    ProjectResponse,
    TextRequest,
    PromptRequest,
    PromptResponse,
    ViewRequest,
    SessionState,
    DeployResponse,
)
