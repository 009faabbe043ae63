"""Reusable FastAPI dependencies."""
from fastapi import HTTPException, Request, status

from web.config import Settings, get_settings as _get_settings
from web.services import ReportPipeline


def get_settings() -> Settings:
    """Return application settings (cached)."""
    return _get_settings()


def get_pipeline(request: Request) -> ReportPipeline:
    """Return the report pipeline built at startup."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Report service is not ready.",
        )
    return pipeline
