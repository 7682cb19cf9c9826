"""
Custom Exceptions for AppForge
==============================

Every failure in the generation / sync pipeline is terminal to its own
request or action only. These classes carry a stable ``code`` so the API
layer can render them without string matching.

Usage:
    from appforge.core.exceptions import GenerationFailedError

    if response.status_code >= 400:
        raise GenerationFailedError("Backend returned HTTP 500", status_code=500)
"""

from typing import Optional, Any, Dict


class AppForgeError(Exception):
    """Base exception for all AppForge errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(AppForgeError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class SessionNotFoundError(ResourceNotFoundError):
    """No open project session for this chat"""

    def __init__(self, chat_id: str):
        super().__init__("Session", chat_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AppForgeError):
    """Input validation failed"""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidPromptError(ValidationError):
    """Prompt is empty or whitespace"""

    def __init__(self, message: str = "Prompt must not be empty"):
        super().__init__(message, field="prompt")
        self.code = "INVALID_PROMPT"


class MalformedEntryError(ValidationError):
    """A single generated file entry is missing fields or has the wrong type.

    Raised only inside the normalizer; callers see the entry dropped.
    """

    def __init__(self, reason: str, entry: Any = None, index: Optional[int] = None):
        super().__init__(f"Malformed file entry: {reason}")
        self.code = "MALFORMED_ENTRY"
        self.details = {"reason": reason, "entry": repr(entry)[:200]}
        if index is not None:
            self.details["index"] = index


# ============================================
# Generation Errors
# ============================================

class GenerationFailedError(AppForgeError):
    """Transport failure or malformed top-level generation response"""

    status_code = 502

    def __init__(self, message: str, chat_id: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, code="GENERATION_FAILED")
        if chat_id:
            self.details["chat_id"] = chat_id
        if status_code is not None:
            self.details["http_status"] = status_code


# ============================================
# Deployment Errors
# ============================================

class DeploymentFailedError(AppForgeError):
    """Deploy request failed or returned no URL"""

    status_code = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, code="DEPLOYMENT_FAILED")
        if status_code is not None:
            self.details["http_status"] = status_code


class DeploymentInProgressError(AppForgeError):
    """A deploy is already outstanding for this session"""

    status_code = 409

    def __init__(self, chat_id: str):
        super().__init__(
            "A deployment is already in progress",
            code="DEPLOYMENT_IN_PROGRESS",
            details={"chat_id": chat_id}
        )


# ============================================
# AI/Claude Errors
# ============================================

class AIServiceError(AppForgeError):
    """AI service (Claude) error"""

    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, code="AI_SERVICE_ERROR")


class AIResponseParseError(AIServiceError):
    """Failed to parse AI response"""

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message)
        self.code = "AI_PARSE_ERROR"


# ============================================
# Storage Errors
# ============================================

class StorageError(AppForgeError):
    """Project store operation failed"""

    def __init__(self, message: str, chat_id: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if chat_id:
            self.details["chat_id"] = chat_id


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: AppForgeError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
