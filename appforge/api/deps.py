"""
FastAPI dependency providers

The workspace objects are built once in the application lifespan and kept
on ``app.state``; tests swap them out by assigning new ones.
"""

from fastapi import Request

from appforge.services.code_generator import CodeGenerationService
from appforge.services.project_store import ProjectStore
from appforge.services.session_manager import SessionManager


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_project_store(request: Request) -> ProjectStore:
    return request.app.state.project_store


def get_code_generator(request: Request) -> CodeGenerationService:
    return request.app.state.code_generator
