"""
Report pipeline: enrich, populate, render, merge, upload, register.

All six pages are populated and rendered concurrently against the shared
browser. Results are merged by template index, never by completion order.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from playwright.async_api import Browser

from web.schemas import ReportPayload, ReportRequest
from web.services.asset_cache import TEMPLATE_NAMES, AssetCache
from web.services.browser import BrowserManager
from web.services.page_renderer import PageRenderer
from web.services.pdf_merger import merge_pdfs
from web.services.populator import populate_page

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """A report could not be produced; ``details`` carries the underlying reason."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


@dataclass
class ReportResult:
    report_link: str
    filename: str


def build_report_filename(student_name: Optional[str], student_id: Optional[str], on_date: date) -> str:
    """``Career_Report_<name>_<id>_<YYYY-MM-DD>.pdf`` with non-alphanumerics replaced by ``_``."""
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", student_name or "Student")
    return f"Career_Report_{safe_name}_{student_id or '000'}_{on_date.isoformat()}.pdf"


def enrich_payload(payload: ReportPayload, assets: AssetCache) -> ReportPayload:
    """
    Return a copy of ``payload`` with catalog skills and courses attached to
    every career. Careers missing from the catalog are left unchanged.
    """
    enriched = payload.model_copy(deep=True)
    for bucket in enriched.top_buckets:
        for career in bucket.top_careers:
            entry = assets.career(career.career_name)
            if entry is None:
                continue
            career.recommended_skills = list(entry.get("recommendedSkills") or [])
            career.recommended_courses = list(entry.get("recommendedCourses") or [])
    return enriched


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ReportPipeline:
    """Turns a :class:`ReportRequest` into a shared PDF link."""

    def __init__(
        self,
        assets: AssetCache,
        browser_manager: BrowserManager,
        renderer: PageRenderer,
        storage,
        registrar=None,
        today: Callable[[], date] = _utc_today,
    ):
        """
        Args:
            storage: Object with ``async upload(pdf_bytes, filename, student_id) -> str``.
            registrar: Optional object with ``schedule(student_id, link)``; notified
                in the background after a successful upload.
        """
        self.assets = assets
        self.browser_manager = browser_manager
        self.renderer = renderer
        self.storage = storage
        self.registrar = registrar
        self.today = today

    async def build_pdf(self, request: ReportRequest) -> bytes:
        """Render and merge all pages without uploading."""
        payload = enrich_payload(request.report_data, self.assets)
        browser = await self.browser_manager.get()
        pages = await asyncio.gather(*(
            self._render_page(browser, name, payload, request)
            for name in TEMPLATE_NAMES
        ))
        return merge_pdfs(pages)

    async def _render_page(
        self,
        browser: Browser,
        template_name: str,
        payload: ReportPayload,
        request: ReportRequest,
    ) -> bytes:
        html = populate_page(
            template_name,
            payload,
            self.assets,
            student_id=request.student_id,
            student_name=request.student_name,
        )
        return await self.renderer.render(browser, html, label=template_name)

    async def run(self, request: ReportRequest) -> ReportResult:
        """
        Generate, upload and register one report.

        Raises:
            PipelineError: Enrichment, rendering, merging or upload failed. The
                shared browser has been discarded by the time this is raised.
        """
        student_name = request.student_name or request.report_data.student_name
        filename = build_report_filename(student_name, request.student_id, self.today())
        try:
            pdf_bytes = await self.build_pdf(request)
            report_link = await self.storage.upload(pdf_bytes, filename, request.student_id)
        except Exception as exc:
            logger.exception("Report generation failed for %s", filename)
            await self.browser_manager.reset()
            raise PipelineError("Failed to generate PDF", details=str(exc)) from exc

        if report_link and request.student_id and self.registrar is not None:
            self.registrar.schedule(request.student_id, report_link)

        return ReportResult(report_link=report_link, filename=filename)
