"""
FastAPI API Server.

Voice API for the Quick Post client: transcription, field extraction,
location resolution and language detection.

Start with:
    uvicorn quickpost.api_server:app --reload --port 5000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quickpost.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from quickpost.api.voice import router as voice_router
from quickpost.config import get_settings
from quickpost.exceptions import QuickPostError, ValidationError
from quickpost.logging_config import get_logger, setup_logging

setup_logging()
settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle hooks."""
    logger.info(
        "api_server_starting",
        extraction_backend=settings.extraction_backend.value,
        gemini_configured=bool(settings.gemini_api_key),
    )
    yield
    logger.info("api_server_stopping")


app = FastAPI(
    title="Quick Post Voice API",
    description="Voice intake for marketplace job posting and quick signup",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (last added runs outermost)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(voice_router)


@app.exception_handler(QuickPostError)
async def quick_post_error_handler(request: Request, exc: QuickPostError) -> JSONResponse:
    status = 400 if isinstance(exc, ValidationError) else 500
    logger.error("request_failed", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=status, content={"message": str(exc)})


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "quickpost-voice-api"}


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    """API root."""
    return {
        "service": "Quick Post Voice API",
        "version": "0.1.0",
        "docs": "/docs",
    }
