"""Report generation routes."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from web.dependencies import get_pipeline
from web.schemas import ReportRequest
from web.services import PipelineError, ReportPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def _invalid(details=None) -> JSONResponse:
    body = {"error": "Invalid data"}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status.HTTP_400_BAD_REQUEST)


@router.post("/generate-pdf")
async def generate_pdf(request: Request, pipeline: ReportPipeline = Depends(get_pipeline)):
    """Render the career report for one student and return its shareable link."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _invalid("Request body must be JSON.")

    if not isinstance(body, dict) or body.get("reportData") is None:
        return _invalid()

    try:
        report_request = ReportRequest.model_validate(body)
    except ValidationError as exc:
        return _invalid(exc.errors(include_url=False, include_context=False, include_input=False))

    try:
        result = await pipeline.run(report_request)
    except PipelineError as exc:
        return JSONResponse(
            {"error": str(exc), "details": exc.details},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return {"reportLink": result.report_link}
