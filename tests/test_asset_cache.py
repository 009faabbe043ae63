"""Tests for the startup asset cache."""
import json
import shutil

import pytest

from web.services.asset_cache import TEMPLATE_NAMES, AssetCache, FatalStartupError

from conftest import ASSETS_DIR


@pytest.fixture
def assets_copy(tmp_path):
    """A writable copy of the shipped assets directory."""
    target = tmp_path / "assets"
    shutil.copytree(ASSETS_DIR, target)
    return target


class TestPreload:
    """Tests for AssetCache.preload."""

    def test_loads_all_templates_in_order(self, asset_cache):
        assert tuple(asset_cache.templates) == TEMPLATE_NAMES
        assert asset_cache.is_loaded is True

    def test_images_are_embedded(self, asset_cache):
        for name, html in asset_cache.templates.items():
            assert 'src="./assets/' not in html, name
            assert 'src="data:image/png;base64,' in html

    def test_card_logo_is_data_uri(self, asset_cache):
        assert asset_cache.card_logo_src.startswith("data:image/png;base64,")

    def test_datasets_loaded(self, asset_cache):
        assert "Engineering & Technology" in asset_cache.recommendations
        assert set(asset_cache.trait_descriptions) == {"R", "I", "A", "S", "E", "C"}
        assert asset_cache.career("Software Engineer")["recommendedSkills"]
        assert asset_cache.career("Astronaut") is None

    def test_cache_is_read_only(self, asset_cache):
        with pytest.raises(TypeError):
            asset_cache.templates["page1.html"] = "<html></html>"
        with pytest.raises(TypeError):
            asset_cache.recommendations["New Bucket"] = "text"

    def test_missing_image_is_not_fatal(self, assets_copy, caplog):
        (assets_copy / "templates" / "assets" / "cover_illustration.png").unlink()
        cache = AssetCache(assets_copy)
        cache.preload()

        assert 'src="./assets/cover_illustration.png"' in cache.templates["page1.html"]
        assert 'src="./assets/header_logo.png"' not in cache.templates["page1.html"]
        assert "cover_illustration.png" in caplog.text

    def test_missing_card_logo_falls_back(self, assets_copy):
        (assets_copy / "templates" / "assets" / "footer_logo.png").unlink()
        cache = AssetCache(assets_copy)
        cache.preload()
        assert cache.card_logo_src is None

    def test_unreadable_card_logo_is_not_fatal(self, assets_copy, caplog):
        logo = assets_copy / "templates" / "assets" / "footer_logo.png"
        logo.unlink()
        logo.mkdir()
        cache = AssetCache(assets_copy)
        cache.preload()

        assert cache.is_loaded is True
        assert cache.card_logo_src is None
        assert "footer_logo.png" in caplog.text

    def test_duplicate_career_names_last_wins(self, assets_copy):
        careers_file = assets_copy / "data" / "careers.json"
        careers = json.loads(careers_file.read_text(encoding="utf-8"))
        careers.append({"careerName": "Software Engineer", "whyFit": "Replacement entry"})
        careers_file.write_text(json.dumps(careers), encoding="utf-8")

        cache = AssetCache(assets_copy)
        cache.preload()
        assert cache.career("Software Engineer")["whyFit"] == "Replacement entry"


class TestPreloadFailures:
    """Dataset and template problems must stop startup."""

    @pytest.mark.parametrize("filename", ["recommendations.json", "careers.json", "trait_descriptions.json"])
    def test_missing_dataset_is_fatal(self, assets_copy, filename):
        (assets_copy / "data" / filename).unlink()
        with pytest.raises(FatalStartupError):
            AssetCache(assets_copy).preload()

    def test_malformed_dataset_is_fatal(self, assets_copy):
        (assets_copy / "data" / "careers.json").write_text("[{not json", encoding="utf-8")
        with pytest.raises(FatalStartupError):
            AssetCache(assets_copy).preload()

    def test_career_without_name_is_fatal(self, assets_copy):
        (assets_copy / "data" / "careers.json").write_text('[{"whyFit": "x"}]', encoding="utf-8")
        with pytest.raises(FatalStartupError):
            AssetCache(assets_copy).preload()

    def test_missing_template_is_fatal(self, assets_copy):
        (assets_copy / "templates" / "page4.html").unlink()
        cache = AssetCache(assets_copy)
        with pytest.raises(FatalStartupError):
            cache.preload()
        assert cache.is_loaded is False
