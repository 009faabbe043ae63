"""
Process-wide cache of report templates and reference datasets.

Everything is read from disk once at startup. Template images are embedded
as base64 data URIs so that pages render without touching the filesystem or
the network.
"""
from __future__ import annotations

import base64
import json
import logging
import mimetypes
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

# Page order of the final document.
TEMPLATE_NAMES = (
    "page1.html",
    "page2.html",
    "page3.html",
    "page4.html",
    "page5.html",
    "page6.html",
)

RECOMMENDATIONS_FILE = "recommendations.json"
CAREERS_FILE = "careers.json"
TRAIT_DESCRIPTIONS_FILE = "trait_descriptions.json"
CARD_LOGO_FILE = "footer_logo.png"

LOCAL_IMAGE_PATTERN = re.compile(r'src="\./assets/([^"]+)"')


class FatalStartupError(Exception):
    """Required templates or datasets could not be loaded."""


def image_data_uri(image_path: Path) -> str:
    """Read an image file and return it as a ``data:`` URI."""
    mime_type, _ = mimetypes.guess_type(image_path.name)
    if not mime_type or not mime_type.startswith("image/"):
        mime_type = f"image/{image_path.suffix.lstrip('.').lower()}"
    encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class AssetCache:
    """Read-only store of templates and reference data shared by all requests."""

    def __init__(self, assets_dir: Path):
        self.assets_dir = Path(assets_dir)
        self.templates_dir = self.assets_dir / "templates"
        self.images_dir = self.templates_dir / "assets"
        self.data_dir = self.assets_dir / "data"

        self.templates: Mapping[str, str] = MappingProxyType({})
        self.recommendations: Mapping[str, str] = MappingProxyType({})
        self.careers: Mapping[str, Mapping[str, Any]] = MappingProxyType({})
        self.trait_descriptions: Mapping[str, str] = MappingProxyType({})
        self.card_logo_src: Optional[str] = None
        self.is_loaded = False

    def preload(self) -> None:
        """
        Load datasets and templates into memory.

        Raises:
            FatalStartupError: A dataset or template is missing or malformed.
        """
        logger.info("Preloading report assets from %s", self.assets_dir)
        try:
            recommendations = self._read_json(RECOMMENDATIONS_FILE)
            careers = self._read_json(CAREERS_FILE)
            trait_descriptions = self._read_json(TRAIT_DESCRIPTIONS_FILE)
            if not isinstance(recommendations, dict) or not isinstance(trait_descriptions, dict):
                raise ValueError("recommendations and trait descriptions must be JSON objects")
            careers_by_name = self._index_careers(careers)

            templates = {name: self._load_template(name) for name in TEMPLATE_NAMES}
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise FatalStartupError(f"Could not preload report assets: {exc}") from exc

        logo_path = self.images_dir / CARD_LOGO_FILE
        try:
            self.card_logo_src = image_data_uri(logo_path)
        except OSError:
            logger.warning("Could not preload card logo %s; cards will reference it by path", logo_path)

        self.recommendations = MappingProxyType(recommendations)
        self.trait_descriptions = MappingProxyType(trait_descriptions)
        self.careers = MappingProxyType(careers_by_name)
        self.templates = MappingProxyType(templates)
        self.is_loaded = True
        logger.info(
            "Preloaded %d templates, %d careers, %d recommendations",
            len(templates), len(careers_by_name), len(recommendations),
        )

    def career(self, career_name: str) -> Optional[Mapping[str, Any]]:
        return self.careers.get(career_name)

    def _read_json(self, filename: str) -> Any:
        with open(self.data_dir / filename, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _index_careers(careers: List[Dict[str, Any]]) -> Dict[str, Mapping[str, Any]]:
        if not isinstance(careers, list):
            raise ValueError("career catalog must be a JSON array")
        # Later duplicates replace earlier ones.
        return {entry["careerName"]: MappingProxyType(entry) for entry in careers}

    def _load_template(self, name: str) -> str:
        html = (self.templates_dir / name).read_text(encoding="utf-8")

        def embed(match: re.Match) -> str:
            filename = match.group(1)
            try:
                return f'src="{image_data_uri(self.images_dir / filename)}"'
            except OSError:
                logger.warning("Could not preload image %s referenced by %s", filename, name)
                return match.group(0)

        return LOCAL_IMAGE_PATTERN.sub(embed, html)
