"""Pytest configuration and fixtures."""
import asyncio
import copy
import io
import re
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfWriter

from web.app import app
from web.schemas import ReportRequest
from web.services import AssetCache, BrowserManager, PageRenderer, ReportPipeline

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"
REPORT_LINK = "https://drive.google.com/uc?id=file123&export=download"


def make_pdf(page_widths) -> bytes:
    """Build a real PDF with one blank page per width; the width marks the page."""
    writer = PdfWriter()
    for width in page_widths:
        writer.add_blank_page(width=width, height=842)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def page_width(page_number: int) -> int:
    return 500 + page_number


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------

class FakeRequest:
    def __init__(self, resource_type: str, url: str):
        self.resource_type = resource_type
        self.url = url


class FakeRoute:
    def __init__(self, resource_type: str, url: str):
        self.request = FakeRequest(resource_type, url)
        self.aborted = False
        self.continued = False

    async def abort(self):
        self.aborted = True

    async def continue_(self):
        self.continued = True


class FakePage:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.routes = []
        self.html = None
        self.content_options = {}
        self.pdf_options = {}
        self.closed = False

    async def route(self, pattern, handler):
        self.routes.append((pattern, handler))

    async def set_content(self, html, **options):
        self.html = html
        self.content_options = options
        number = self.page_number
        delay = self.browser.delays.get(number, 0)
        if delay:
            await asyncio.sleep(delay)
        if number in self.browser.crash_pages:
            self.browser.connected = False
            raise RuntimeError("Target page, context or browser has been closed")

    async def pdf(self, **options):
        self.pdf_options = options
        return make_pdf([page_width(self.page_number)])

    async def close(self):
        self.closed = True

    @property
    def page_number(self) -> int:
        match = re.search(r'data-page="(\d+)"', self.html or "")
        return int(match.group(1)) if match else 0


class FakeBrowser:
    def __init__(self, crash_pages=(), delays=None):
        self.crash_pages = set(crash_pages)
        self.delays = delays or {}
        self.connected = True
        self.closed = False
        self.pages = []

    def is_connected(self):
        return self.connected

    async def new_page(self):
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True
        self.connected = False


class FakePlaywrightFactory:
    """Stands in for ``async_playwright``; records every browser it launches."""

    def __init__(self, crash_pages_by_launch=None, delays=None):
        self.crash_pages_by_launch = crash_pages_by_launch or {}
        self.delays = delays or {}
        self.browsers = []
        self.launch_options = []
        self.started = 0
        self.stopped = 0

    def __call__(self):
        return self

    async def start(self):
        self.started += 1
        return self

    @property
    def chromium(self):
        return self

    async def launch(self, **options):
        self.launch_options.append(options)
        crash_pages = self.crash_pages_by_launch.get(len(self.browsers), ())
        browser = FakeBrowser(crash_pages=crash_pages, delays=self.delays)
        self.browsers.append(browser)
        return browser

    async def stop(self):
        self.stopped += 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture(scope="session")
def asset_cache() -> AssetCache:
    """Asset cache loaded from the shipped templates and datasets."""
    cache = AssetCache(ASSETS_DIR)
    cache.preload()
    return cache


@pytest.fixture
def report_data() -> dict:
    """A complete report payload referencing careers from the shipped catalog."""
    return {
        "studentName": "Asha Menon",
        "studentID": "1001",
        "schoolName": "Greenwood High",
        "grade": 10,
        "board": "ICSE",
        "summaryParagraph": "Asha enjoys solving problems and explaining ideas to others.",
        "vibeScores": {"R": 40, "I": 88, "A": 65, "S": 70, "E": 52, "C": 33},
        "top5Buckets": [
            {
                "bucketName": "Engineering & Technology",
                "topCareers": [
                    {"careerName": "Software Engineer", "studyPath": ["PCM", "B.Tech", "M.Tech"]},
                    {"careerName": "Mechanical Engineer", "studyPath": ["PCM", "B.Tech"]},
                    {"careerName": "Biotechnologist", "studyPath": ["PCB"]},
                ],
            },
            {
                "bucketName": "Healthcare & Life Sciences",
                "topCareers": [
                    {"careerName": "Doctor (MBBS)", "studyPath": ["PCB", "MBBS"]},
                    {"careerName": "Biotechnologist", "studyPath": ["PCB", "B.Sc"]},
                ],
            },
        ],
    }


@pytest.fixture
def request_body(report_data) -> dict:
    return {
        "reportData": report_data,
        "studentID": "1001",
        "studentName": "Asha Menon",
        "mobileNo": "9999999999",
    }


@pytest.fixture
def report_request(request_body) -> ReportRequest:
    return ReportRequest.model_validate(copy.deepcopy(request_body))


@pytest.fixture
def playwright_factory() -> FakePlaywrightFactory:
    return FakePlaywrightFactory()


@pytest.fixture
def make_pipeline(asset_cache):
    """Build a pipeline around fake Playwright, storage and registrar."""

    def _make(factory, storage=None, registrar=None):
        if storage is None:
            storage = Mock()
            storage.upload = AsyncMock(return_value=REPORT_LINK)
        manager = BrowserManager(launch_args=["--no-sandbox"], playwright_factory=factory)
        return ReportPipeline(
            assets=asset_cache,
            browser_manager=manager,
            renderer=PageRenderer(timeout_ms=60_000),
            storage=storage,
            registrar=registrar if registrar is not None else Mock(),
        )

    return _make
