from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_package_names(v: Any) -> List[str]:
    """Parse approved npm package names from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [name.strip() for name in v.split(',') if name.strip()]
    return []


# Bounds for the preview "building" indicator
PREVIEW_COUNTDOWN_MIN_SECONDS = 5
PREVIEW_COUNTDOWN_MAX_SECONDS = 12


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "AppForge"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = "/api/v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Generation Dispatcher
    # ==========================================
    # Base URL of the service exposing POST /chat/code/{chat_id}
    GENERATION_BACKEND_URL: str = "http://localhost:8000/api/v1"
    GENERATION_DEBOUNCE_SECONDS: float = 0.5
    HTTP_TIMEOUT_SECONDS: float = 300.0
    HTTP_CONNECT_TIMEOUT_SECONDS: float = 10.0

    # ==========================================
    # Sandbox Projection
    # ==========================================
    PREVIEW_COUNTDOWN_SECONDS: int = 12
    PREVIEW_TICK_SECONDS: float = 1.0
    PREVIEW_SYNC_URL: str = ""  # Empty means keep the preview snapshot in memory

    # Deployment endpoint (POST /deploy)
    DEPLOY_API_URL: str = "http://localhost:5000"
    DEPLOY_REENTRY_GUARD: bool = True

    EXPORT_ARCHIVE_NAME: str = "project.zip"

    # ==========================================
    # Storage
    # ==========================================
    PROJECT_STORE_DIR: str = "/tmp/appforge_projects"
    DEFAULT_FILES_DIR: str = ""  # Empty means use the built-in React boilerplate

    # ==========================================
    # Claude AI
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 16000
    CLAUDE_TEMPERATURE: float = 0.5
    CLAUDE_REQUEST_TIMEOUT: int = 300  # 5 minutes for whole-project generations
    CLAUDE_CONNECT_TIMEOUT: int = 60  # seconds
    CLAUDE_MAX_RETRIES: int = 3
    CLAUDE_RETRY_BASE_DELAY: float = 2.0  # seconds
    CLAUDE_RETRY_MAX_DELAY: float = 30.0  # seconds

    # Packages generated projects may depend on
    APPROVED_PACKAGES_STR: str = (
        "react,react-dom,react-scripts,react-router-dom,tailwindcss,"
        "tailwindcss-animate,lucide-react,vite,postcss,autoprefixer,@vitejs/plugin-react"
    )

    @property
    def APPROVED_PACKAGES(self) -> List[str]:
        """Parse approved packages from comma-separated string"""
        return parse_package_names(self.APPROVED_PACKAGES_STR)

    @field_validator("PREVIEW_COUNTDOWN_SECONDS")
    @classmethod
    def validate_countdown(cls, v: int) -> int:
        if not PREVIEW_COUNTDOWN_MIN_SECONDS <= v <= PREVIEW_COUNTDOWN_MAX_SECONDS:
            raise ValueError(
                f"PREVIEW_COUNTDOWN_SECONDS must be between "
                f"{PREVIEW_COUNTDOWN_MIN_SECONDS} and {PREVIEW_COUNTDOWN_MAX_SECONDS}"
            )
        return v

    @field_validator("GENERATION_DEBOUNCE_SECONDS", "PREVIEW_TICK_SECONDS")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delay must not be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
