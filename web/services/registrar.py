"""Best-effort notification of the backend that stores report links."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx

from web.config import Settings

logger = logging.getLogger(__name__)


class LinkRegistrar:
    """Sends ``{reportLink}`` to the backend without ever failing the caller."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LinkRegistrar":
        return cls(settings.BACKEND_API_URL, timeout=settings.REGISTRAR_TIMEOUT_SECONDS)

    async def notify(self, student_id: str, report_link: str) -> bool:
        """Save the link for ``student_id``; returns False instead of raising."""
        url = f"{self.base_url}/api/reports/{student_id}/link"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.put(url, json={"reportLink": report_link})
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to save report link for student %s: %s", student_id, exc)
            return False
        logger.info("Successfully saved report link for student %s", student_id)
        return True

    def schedule(self, student_id: str, report_link: str) -> asyncio.Task:
        """Run :meth:`notify` in the background; the request does not wait for it."""
        task = asyncio.create_task(self.notify(student_id, report_link))
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Report link notification crashed", exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for notifications that are still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
