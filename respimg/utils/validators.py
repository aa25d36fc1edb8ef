"""YAML schema validation and config loading for picture presets.

Provides centralized validation of the site's `picture:` configuration using
pydantic:
    - Source schema: target width/height in pixels, optional media query
    - Preset schema: ordered sources, default HTML attributes, ppi multipliers
    - Settings schema: markup style, asset/generated paths, named presets

Config layout (Jekyll `_config.yml` or a standalone file)::

    picture:
      markup: picturefill          # or "picture"
      asset_path: assets/images
      generated_path: assets/images/generated
      presets:
        default:
          ppi: [1, 1.5, 2]
          attr:
            class: blog-full
            itemprop: image
          source_medium:
            media: "(min-width: 40em)"
            width: 600
          source_default:
            width: 300
            height: 200

Inside a preset, `attr` and `ppi` are reserved; every other key is a source.
Source order from the file is preserved and is the order tags are emitted in.

Models are frozen: a render builds its own jobs from them and never mutates
shared settings.

Usage:
    from respimg.utils import validators
    settings = validators.load_picture_config("_config.yml")
"""

import posixpath
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ConfigurationError(ValueError):
    """Raised when picture configuration or a tag references invalid settings.

    Always raised before any image file is opened.
    """

    pass


# ============================================================================
# PICTURE SCHEMA
# ============================================================================

RESERVED_PRESET_KEYS = ("attr", "ppi")


class SourceConfig(BaseModel):
    """Target box for one source key (pixels)."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    width: Optional[int] = Field(None, gt=0, description="Target width (px)")
    height: Optional[int] = Field(None, gt=0, description="Target height (px)")
    media: Optional[str] = Field(None, description="Media query for this source")

    @property
    def has_dimension(self) -> bool:
        return self.width is not None or self.height is not None


class PresetConfig(BaseModel):
    """Named preset: ordered sources plus default attributes and densities."""
    model_config = ConfigDict(frozen=True)

    attr: Dict[str, Optional[str]] = Field(default_factory=dict, description="Default HTML attributes")
    ppi: List[float] = Field(default_factory=list, description="Pixel density multipliers")
    sources: Dict[str, SourceConfig] = Field(..., description="Source key → target box")

    @model_validator(mode='before')
    @classmethod
    def collect_sources(cls, data: Any) -> Any:
        """Fold the flat YAML layout into `sources`."""
        if not isinstance(data, dict) or 'sources' in data:
            return data
        sources = {k: v for k, v in data.items() if k not in RESERVED_PRESET_KEYS}
        folded = {k: data[k] for k in RESERVED_PRESET_KEYS if data.get(k) is not None}
        folded['sources'] = sources
        return folded

    @field_validator('attr', mode='before')
    @classmethod
    def stringify_attr(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {str(k): (None if val is None else str(val)) for k, val in v.items()}

    @field_validator('ppi')
    @classmethod
    def validate_ppi(cls, v: List[float]) -> List[float]:
        for p in v:
            if p <= 0:
                raise ValueError(f"ppi multipliers must be positive, got {p}")
        return v

    @field_validator('sources')
    @classmethod
    def validate_sources(cls, v: Dict[str, SourceConfig]) -> Dict[str, SourceConfig]:
        if not v:
            raise ValueError("A preset must define at least one source")
        return v


class PictureSettings(BaseModel):
    """Site-wide `picture:` settings."""
    model_config = ConfigDict(frozen=True)

    markup: Literal["picturefill", "picture"] = Field("picturefill", description="Markup style")
    asset_path: str = Field(".", description="Source image dir, relative to site root")
    generated_path: str = Field(..., description="Derived image dir, relative to site root")
    presets: Dict[str, PresetConfig] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def default_generated_path(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get('generated_path'):
            data = dict(data)
            asset_path = data.get('asset_path') or '.'
            data['generated_path'] = posixpath.join(asset_path, 'generated')
        return data

    def get_preset(self, name: str) -> PresetConfig:
        """Look up a preset by name.

        Raises
        ------
        ConfigurationError
            If the preset does not exist
        """
        try:
            return self.presets[name]
        except KeyError:
            available = ', '.join(self.presets) or '(none)'
            raise ConfigurationError(
                f"Preset '{name}' doesn't exist. Available presets: {available}"
            ) from None


# ============================================================================
# PUBLIC API
# ============================================================================

def parse_picture_settings(data: Optional[Dict[str, Any]], origin: str = "<config>") -> PictureSettings:
    """Validate an already-parsed config mapping.

    Accepts either a full site config holding a `picture:` section or the
    section itself.

    Raises
    ------
    ConfigurationError
        If the mapping is empty or fails validation
    """
    if not data:
        raise ConfigurationError(f"Empty picture configuration: {origin}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Picture configuration must be a mapping: {origin}")

    section = data.get('picture', data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"`picture` section must be a mapping: {origin}")

    try:
        return PictureSettings(**section)
    except ValidationError as e:
        raise ConfigurationError(f"Picture config validation failed at {origin}: {e}") from e


def load_picture_config(path: Union[str, Path]) -> PictureSettings:
    """Load and validate picture settings from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to `_config.yml` or a standalone picture config

    Returns
    -------
    PictureSettings
        Validated, frozen settings

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ConfigurationError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Picture config not found: {path}")

    return parse_picture_settings(fs.load_yaml(path), origin=str(path))
