"""FastAPI service for vehicle release-form extraction.

Run with: uvicorn api.main:app --reload --port 8000

Endpoints:
- /api/extract-documents - Extract vehicle and pickup data from uploads
- /api/merge-extractions - Merge upstream extraction payloads
- /api/health - Health check
"""
import sys
import uuid
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import get_config
from core.logging_config import LogContext, setup_logging

from api.routes import extract, health


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    - Uses the client's X-Request-ID or generates one
    - Binds it as the log run id for the request
    - Adds X-Request-ID header to responses
    """
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        request.state.request_id = request_id

        with LogContext(run_id=request_id):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        return response


_config = get_config()
setup_logging(level=_config.log_level, format_type=_config.log_format)

app = FastAPI(
    title="Release Form Extraction",
    description="Vehicle identity and pickup location extraction from release-form uploads",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Request ID middleware - add first so it runs for all requests
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
    max_age=86400,
)

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(extract.router, prefix="/api", tags=["Extraction"])
