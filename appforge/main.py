from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from appforge.core.config import settings
from appforge.core.exceptions import AppForgeError, error_response
from appforge.core.logging_config import logger
from appforge.core.middleware import RequestLoggingMiddleware
from appforge.api.v1.router import api_router
from appforge.services.code_generator import CodeGenerationService
from appforge.services.default_files import load_default_files
from appforge.services.deploy_client import DeployClient
from appforge.services.file_merge import FileSetMergeEngine
from appforge.services.generation_client import GenerationClient
from appforge.services.generation_dispatcher import GenerationDispatcher
from appforge.services.preview_bundler import create_bundler
from appforge.services.project_store import ProjectStore
from appforge.services.session_manager import SessionManager
from appforge.utils.claude_client import claude_client


def validate_config():
    """Log configuration problems at startup; generation may still be served elsewhere"""
    if not settings.ANTHROPIC_API_KEY:
        logger.warning("[Startup] WARNING: ANTHROPIC_API_KEY is not set - /chat endpoints will fail")
    logger.info(
        f"[Startup] Generation backend: {settings.GENERATION_BACKEND_URL}, "
        f"deploy endpoint: {settings.DEPLOY_API_URL}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    validate_config()

    store = ProjectStore()
    merge_engine = FileSetMergeEngine(load_default_files(settings.DEFAULT_FILES_DIR))
    generation_client = GenerationClient()
    dispatcher = GenerationDispatcher(generation_client)
    bundler = create_bundler()
    deploy_client = DeployClient()

    app.state.project_store = store
    app.state.code_generator = CodeGenerationService(store, claude_client)
    app.state.session_manager = SessionManager(
        merge_engine=merge_engine,
        dispatcher=dispatcher,
        store=store,
        bundler=bundler,
        deploy_client=deploy_client,
    )
    logger.info(f"Workspace ready with {len(merge_engine.defaults)} default files")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    await app.state.session_manager.shutdown()
    await generation_client.close()
    await deploy_client.close()
    await bundler.close()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Chat-driven React project generation with a live, synchronized sandbox",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    redirect_slashes=False
)

# Add middleware (order matters - last added runs first)
app.add_middleware(RequestLoggingMiddleware)

# CORS - Origins from CORS_ORIGINS_STR in .env
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# Exception handlers
@app.exception_handler(AppForgeError)
async def appforge_exception_handler(request: Request, exc: AppForgeError):
    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": "INTERNAL_ERROR",
                "message": str(exc) if settings.DEBUG else "An error occurred",
                "details": {}
            }
        }
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("appforge.main:app", host=settings.SERVER_HOST, port=settings.SERVER_PORT, reload=settings.DEBUG)
