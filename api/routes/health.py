"""Health check endpoints."""
import subprocess
from datetime import datetime, timezone
from fastapi import APIRouter
from pydantic import BaseModel
from typing import Dict, Any

from core.config import ConfigurationError, get_config

router = APIRouter()

# Version info - updated on build/deploy
APP_VERSION = "1.0.0"
BUILD_TIME = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def get_git_info() -> Dict[str, str]:
    """Get git commit info for version tracking."""
    try:
        git_sha = subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],
            stderr=subprocess.DEVNULL
        ).decode().strip()
        git_branch = subprocess.check_output(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            stderr=subprocess.DEVNULL
        ).decode().strip()
        return {"sha": git_sha, "branch": git_branch}
    except (OSError, subprocess.CalledProcessError):
        return {"sha": "unknown", "branch": "unknown"}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    git_sha: str
    git_branch: str
    build_time: str
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
def health_check():
    """
    Health check endpoint.

    Returns system health status including:
    - Configuration validity
    - OCR credential presence (scanned documents need it)
    - VIN decoding status
    """
    checks = {}
    overall_status = "healthy"
    config = get_config()

    try:
        config.validate()
        checks["config"] = {"status": "ok"}
    except ConfigurationError as e:
        checks["config"] = {"status": "error", "error": str(e)}
        overall_status = "unhealthy"

    checks["ocr"] = {
        "configured": config.ocr.is_configured,
        "endpoint": config.ocr.endpoint,
    }
    if not config.ocr.is_configured:
        overall_status = "degraded" if overall_status == "healthy" else overall_status

    checks["vin_decode"] = {
        "enabled": config.vin_decode.enabled,
        "base_url": config.vin_decode.base_url,
    }

    git_info = get_git_info()

    return HealthResponse(
        status=overall_status,
        version=APP_VERSION,
        git_sha=git_info["sha"],
        git_branch=git_info["branch"],
        build_time=BUILD_TIME,
        checks=checks,
    )


@router.get("/ready")
def readiness_check():
    """Simple readiness probe for k8s/docker."""
    return {"ready": True}


@router.get("/live")
def liveness_check():
    """Simple liveness probe for k8s/docker."""
    return {"alive": True}
