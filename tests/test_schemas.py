"""Test YAML schema validation and config loading.

Tests for respimg.utils.validators:
    - Load the shipped example config (configs/picture_v1.yaml)
    - Flat preset layout folds into ordered sources
    - Defaults (markup, asset_path, generated_path)
    - Reject invalid configs with ConfigurationError naming the problem
    - Preset lookup errors list the available presets

Run:
    pytest tests/test_schemas.py -v
"""
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from respimg.utils import validators
from respimg.utils.validators import (
    ConfigurationError,
    PictureSettings,
    PresetConfig,
    SourceConfig,
    load_picture_config,
    parse_picture_settings,
)


@pytest.fixture(scope="module")
def project_root():
    """Project root directory."""
    return Path(__file__).parent.parent


def _write_config(tmp_path, data, name="_config.yml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


class TestExampleConfig:

    def test_load_shipped_config(self, project_root):
        settings = load_picture_config(project_root / "configs" / "picture_v1.yaml")

        assert settings.markup == "picturefill"
        assert settings.asset_path == "assets/images"
        assert settings.generated_path == "assets/images/generated"
        assert list(settings.presets) == ["default", "thumb", "sidebar"]

        default = settings.presets["default"]
        assert list(default.sources) == ["source_lrg", "source_med", "source_default"]
        assert default.ppi == [1, 1.5, 2]
        assert default.attr == {"class": "blog-full", "itemprop": "image"}
        assert default.sources["source_lrg"].media == "(min-width: 40em)"

    def test_every_shipped_preset_has_fallback(self, project_root):
        settings = load_picture_config(project_root / "configs" / "picture_v1.yaml")
        for preset in settings.presets.values():
            assert "source_default" in preset.sources
            assert all(s.has_dimension for s in preset.sources.values())


class TestPresetConfig:

    def test_flat_layout_folded(self):
        preset = PresetConfig(**{
            "attr": {"class": "x"},
            "source_b": {"width": 10},
            "ppi": [2],
            "source_a": {"height": 5},
        })
        assert list(preset.sources) == ["source_b", "source_a"]
        assert preset.ppi == [2]

    def test_null_reserved_keys_dropped(self):
        preset = PresetConfig(**{"attr": None, "ppi": None, "source_default": {"width": 10}})
        assert preset.attr == {}
        assert preset.ppi == []

    def test_attr_values_stringified(self):
        preset = PresetConfig(**{"attr": {"data-index": 3, "hidden": None}, "source_default": {"width": 1}})
        assert preset.attr == {"data-index": "3", "hidden": None}

    def test_no_sources_rejected(self):
        with pytest.raises(ValidationError, match="at least one source"):
            PresetConfig(**{"attr": {"class": "x"}})

    @pytest.mark.parametrize("ppi", [[0], [2, -1]])
    def test_non_positive_ppi_rejected(self, ppi):
        with pytest.raises(ValidationError, match="positive"):
            PresetConfig(**{"ppi": ppi, "source_default": {"width": 10}})

    def test_source_without_dimension_is_accepted(self):
        # Rejected later when jobs are built, so the failing tag is named
        preset = PresetConfig(**{"source_default": {"media": "(min-width: 1px)"}})
        assert not preset.sources["source_default"].has_dimension

    def test_frozen(self):
        preset = PresetConfig(**{"source_default": {"width": 10}})
        with pytest.raises(ValidationError):
            preset.ppi = [2]


class TestSourceConfig:

    @pytest.mark.parametrize("field", ["width", "height"])
    def test_non_positive_dimension_rejected(self, field):
        with pytest.raises(ValidationError):
            SourceConfig(**{field: 0})

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig(width=10, widht=20)


class TestPictureSettings:

    def test_defaults(self):
        settings = PictureSettings(presets={})
        assert settings.markup == "picturefill"
        assert settings.asset_path == "."
        assert settings.generated_path == "./generated"

    def test_generated_path_follows_asset_path(self):
        settings = PictureSettings(asset_path="assets/images")
        assert settings.generated_path == "assets/images/generated"

    def test_unknown_markup_rejected(self):
        with pytest.raises(ConfigurationError, match="markup"):
            parse_picture_settings({"markup": "imgset", "presets": {}})

    def test_get_preset_lists_available(self):
        settings = parse_picture_settings({
            "presets": {
                "default": {"source_default": {"width": 10}},
                "thumb": {"source_default": {"width": 5}},
            }
        })
        with pytest.raises(ConfigurationError, match="Available presets: default, thumb"):
            settings.get_preset("gallery")


class TestParsePictureSettings:

    def test_section_or_bare(self):
        section = {"asset_path": "img", "presets": {"default": {"source_default": {"width": 10}}}}
        assert parse_picture_settings({"picture": section}) == parse_picture_settings(section)

    @pytest.mark.parametrize("data", [None, {}])
    def test_empty_rejected(self, data):
        with pytest.raises(ConfigurationError, match="Empty"):
            parse_picture_settings(data)

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_picture_settings(["picture"])

    def test_non_mapping_section_rejected(self):
        with pytest.raises(ConfigurationError, match="picture"):
            parse_picture_settings({"picture": "assets"})

    def test_validation_error_names_origin(self):
        with pytest.raises(ConfigurationError, match="site.yml"):
            parse_picture_settings(
                {"presets": {"default": {"source_default": {"width": -1}}}},
                origin="site.yml",
            )

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestLoadPictureConfig:

    def test_roundtrip(self, tmp_path):
        path = _write_config(tmp_path, {
            "title": "Blog",
            "picture": {
                "markup": "picture",
                "presets": {"default": {"source_med": {"width": 600}, "source_default": {"width": 300}}},
            },
        })
        settings = load_picture_config(path)
        assert settings.markup == "picture"
        assert list(settings.presets["default"].sources) == ["source_med", "source_default"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_picture_config(tmp_path / "nope.yml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "_config.yml"
        path.write_text("")
        with pytest.raises(ConfigurationError, match="Empty"):
            validators.load_picture_config(path)

    def test_unknown_source_key_names_file(self, tmp_path):
        path = _write_config(tmp_path, {
            "picture": {"presets": {"default": {"source_default": {"width": 300, "dpi": 2}}}},
        })
        with pytest.raises(ConfigurationError, match="_config.yml"):
            load_picture_config(path)
