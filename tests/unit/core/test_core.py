"""
Unit Tests for configuration, exceptions and middleware helpers
"""
import pytest
from pydantic import ValidationError as SettingsValidationError

from appforge.core.config import Settings, parse_cors_origins, parse_package_names
from appforge.core.exceptions import (
    DeploymentInProgressError,
    GenerationFailedError,
    InvalidPromptError,
    SessionNotFoundError,
    error_response,
)
from appforge.core.middleware import extract_chat_id, should_skip_logging


class TestSettings:
    """Environment-driven settings with validation"""

    def test_countdown_bounds(self):
        assert Settings(PREVIEW_COUNTDOWN_SECONDS=5).PREVIEW_COUNTDOWN_SECONDS == 5
        with pytest.raises(SettingsValidationError):
            Settings(PREVIEW_COUNTDOWN_SECONDS=4)
        with pytest.raises(SettingsValidationError):
            Settings(PREVIEW_COUNTDOWN_SECONDS=13)

    def test_negative_debounce_rejected(self):
        with pytest.raises(SettingsValidationError):
            Settings(GENERATION_DEBOUNCE_SECONDS=-0.1)

    def test_defaults(self):
        settings = Settings()
        assert settings.GENERATION_DEBOUNCE_SECONDS == 0.5
        assert settings.DEPLOY_REENTRY_GUARD is True
        assert "lucide-react" in settings.APPROVED_PACKAGES

    def test_list_parsing(self):
        assert parse_cors_origins("http://a, http://b") == ["http://a", "http://b"]
        assert parse_cors_origins('["http://a"]') == ["http://a"]
        assert parse_package_names("react,,vite") == ["react", "vite"]


class TestExceptions:
    """Stable codes and HTTP statuses"""

    @pytest.mark.parametrize("error,code,status", [
        (GenerationFailedError("boom", status_code=500), "GENERATION_FAILED", 502),
        (DeploymentInProgressError("chat-1"), "DEPLOYMENT_IN_PROGRESS", 409),
        (InvalidPromptError(), "INVALID_PROMPT", 422),
        (SessionNotFoundError("chat-1"), "SESSION_NOT_FOUND", 404),
    ])
    def test_codes(self, error, code, status):
        assert error.code == code
        assert error.status_code == status

    def test_error_response(self):
        body = error_response(SessionNotFoundError("chat-1"))
        assert body["success"] is False
        assert body["error"]["details"]["resource_id"] == "chat-1"


class TestMiddlewareHelpers:
    @pytest.mark.parametrize("path,expected", [
        ("/api/v1/sessions/chat-1/prompt", "chat-1"),
        ("/api/v1/chat/code/abc", "abc"),
        ("/api/v1/chat/text/xyz", "xyz"),
        ("/api/v1/chat/project", None),
    ])
    def test_extract_chat_id(self, path, expected):
        assert extract_chat_id(path) == expected

    def test_health_is_skipped(self):
        assert should_skip_logging("/api/v1/health") is True
        assert should_skip_logging("/api/v1/sessions/a") is False
