"""Service layer for the Career Report Renderer."""
from .asset_cache import AssetCache, FatalStartupError, TEMPLATE_NAMES
from .browser import BrowserManager, BrowserState
from .page_renderer import PageRenderer, RenderError
from .pdf_merger import MergeError, merge_pdfs
from .drive import DriveStorage, UploadError
from .registrar import LinkRegistrar
from .pipeline import PipelineError, ReportPipeline, ReportResult, build_report_filename

__all__ = [
	"AssetCache", "FatalStartupError", "TEMPLATE_NAMES",
	"BrowserManager", "BrowserState", "PageRenderer", "RenderError",
	"MergeError", "merge_pdfs", "DriveStorage", "UploadError", "LinkRegistrar",
	"PipelineError", "ReportPipeline", "ReportResult", "build_report_filename"
]
