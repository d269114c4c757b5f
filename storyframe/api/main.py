"""Main FastAPI application for Storyframe."""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables using centralized loader
from storyframe.core.env_loader import ensure_env_loaded
ensure_env_loaded()

from storyframe import __version__
from storyframe.core.exceptions import (
    EditError,
    LLMError,
    PipelineError,
    RateLimitError,
    ScriptGenerationError,
    StoryframeError,
    ValidationError,
)
from storyframe.core.config import get_config
from storyframe.core.logging_config import get_logger, setup_server_logging
from storyframe.api.routers import sessions

logger = get_logger("api.main")

app = FastAPI(
    title="Storyframe API",
    description="API for brief-to-storyboard script and prompt generation",
    version=__version__,
)

# Add rate limiter to app state
app.state.limiter = sessions.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware for web UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])


def status_for_error(error: StoryframeError) -> int:
    """HTTP status for a Storyframe error."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, EditError):
        return 404
    if isinstance(error, ScriptGenerationError):
        return 502
    if isinstance(error, PipelineError):
        return 409
    if isinstance(error, RateLimitError):
        return 429
    if isinstance(error, LLMError):
        return 502
    return 500


@app.exception_handler(StoryframeError)
async def storyframe_error_handler(request: Request, exc: StoryframeError):
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": exc.message, "details": exc.details},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Storyframe API", "version": __version__}


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def start_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Start the FastAPI server."""
    log_file = setup_server_logging(get_config())
    logger.info(f"Starting Storyframe API on {host}:{port}, logging to {log_file}")
    uvicorn.run(
        "storyframe.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="warning",
    )


if __name__ == "__main__":
    start_server()
