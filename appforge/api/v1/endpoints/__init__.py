# API endpoints
from . import chat, health, sessions

__all__ = ["chat", "health", "sessions"]
