"""Source-set expansion: preset sources → ordered derivation jobs.

A preset names an ordered set of sources (`source_default`, `source_small`,
...), each with a target width and/or height and an optional media query.
Expansion turns those into the exact list of images to derive:

    1. Resolve each source to a concrete image path (tag override or the
       primary image).
    2. For every ppi multiplier other than 1, synthesize a high-density
       variant `{key}-x{d}` with scaled dimensions and a resolution media
       query, inserted immediately before its base source.

Ordering:
    keys [A, B] with ppi [1.5, 2] expand to
    [A-x2, A-x1.5, A, B-x2, B-x1.5, B]
    Multipliers are processed largest first, so the densest variant of a
    source always comes first. The result order is the tag emission order.

Media queries use both the WebKit device-pixel-ratio feature and the
standard `min-resolution` in dpi (1x = 96dpi) for cross-browser support.
"""

import math
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional, Sequence

from ..utils.validators import ConfigurationError, PresetConfig

CSS_DPI = 96

ExpandedSourceSet = List["SourceSpec"]
"""Ordered derivation jobs, in tag emission order."""


@dataclass(frozen=True, slots=True)
class SourceSpec:
    """One derivation job: a source image and the box to derive from it.

    Parameters
    ----------
    key : str
        Source key, unique within an expanded set
    src : str
        Source image path, relative to the asset directory
    width, height : Optional[int]
        Target box in pixels; at least one is required
    media : Optional[str]
        Media query emitted with this source
    """

    key: str
    src: str
    width: Optional[int] = None
    height: Optional[int] = None
    media: Optional[str] = None

    def __post_init__(self) -> None:
        if self.width is None and self.height is None:
            raise ConfigurationError(
                f"Source '{self.key}' must have at least one of width and height"
            )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (pixels are positive)."""
    return int(math.floor(value + 0.5))


def format_multiplier(d: float) -> str:
    """Render a multiplier without a trailing `.0` (2.0 → "2", 1.5 → "1.5")."""
    return f"{d:g}"


def ppi_media_query(media: Optional[str], d: float) -> str:
    """Build the high-density media query for multiplier `d`.

    Examples
    --------
    >>> ppi_media_query("(min-width: 800px)", 2)
    '(min-width: 800px) and (-webkit-min-device-pixel-ratio: 2), (min-width: 800px) and (min-resolution: 192dpi)'
    >>> ppi_media_query(None, 1.5)
    '(-webkit-min-device-pixel-ratio: 1.5), (min-resolution: 144dpi)'
    """
    ratio = format_multiplier(d)
    dpi = round_half_up(d * CSS_DPI)
    if media:
        return (
            f"{media} and (-webkit-min-device-pixel-ratio: {ratio}), "
            f"{media} and (min-resolution: {dpi}dpi)"
        )
    return f"(-webkit-min-device-pixel-ratio: {ratio}), (min-resolution: {dpi}dpi)"


def density_variant(spec: SourceSpec, d: float) -> SourceSpec:
    """Scale a source by multiplier `d`, keyed `{key}-x{d}`."""
    return replace(
        spec,
        key=f"{spec.key}-x{format_multiplier(d)}",
        width=round_half_up(spec.width * d) if spec.width is not None else None,
        height=round_half_up(spec.height * d) if spec.height is not None else None,
        media=ppi_media_query(spec.media, d),
    )


def build_sources(
    preset: PresetConfig,
    image_src: str,
    source_src: Optional[Mapping[str, str]] = None,
) -> List[SourceSpec]:
    """Create fresh jobs for every source of a preset.

    Parameters
    ----------
    preset : PresetConfig
        Shared preset; read only
    image_src : str
        Primary image path
    source_src : Mapping[str, str], optional
        Per-source image overrides from the tag

    Returns
    -------
    List[SourceSpec]
        Jobs in preset order

    Raises
    ------
    ConfigurationError
        If an override names a source the preset lacks, or a source has
        neither width nor height
    """
    source_src = source_src or {}

    unknown = [key for key in source_src if key not in preset.sources]
    if unknown:
        raise ConfigurationError(
            f"You're trying to specify an image for a source that doesn't exist: "
            f"{', '.join(unknown)}. Available sources: {', '.join(preset.sources)}"
        )

    return [
        SourceSpec(
            key=key,
            src=source_src.get(key, image_src),
            width=cfg.width,
            height=cfg.height,
            media=cfg.media,
        )
        for key, cfg in preset.sources.items()
    ]


def expand_sources(
    sources: Sequence[SourceSpec],
    densities: Optional[Iterable[float]] = None,
) -> ExpandedSourceSet:
    """Insert high-density variants before their base sources.

    Parameters
    ----------
    sources : Sequence[SourceSpec]
        Jobs in preset order (keys must be unique)
    densities : Iterable[float], optional
        ppi multipliers; None or empty returns the sources unchanged

    Returns
    -------
    ExpandedSourceSet
        New list; `sources` is not modified

    Raises
    ------
    ConfigurationError
        If a key repeats or a multiplier is not positive
    """
    keys = [spec.key for spec in sources]
    if len(set(keys)) != len(keys):
        raise ConfigurationError(f"Duplicate source keys: {keys}")

    expanded = list(sources)
    ordered = sorted(set(densities or ()), reverse=True)
    if not ordered:
        return expanded
    if ordered[-1] <= 0:
        raise ConfigurationError(f"ppi multipliers must be positive, got {ordered[-1]}")

    for spec in sources:
        for d in ordered:
            if d == 1:
                continue
            expanded.insert(keys_index(expanded, spec.key), density_variant(spec, d))

    return expanded


def keys_index(expanded: Sequence[SourceSpec], key: str) -> int:
    """Current position of `key` in an expanded set."""
    for i, spec in enumerate(expanded):
        if spec.key == key:
            return i
    raise KeyError(key)
