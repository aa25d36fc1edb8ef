"""Render a parsed picture tag: preset → expanded jobs → derived images → markup.

Steps (all configuration errors are raised before any image is opened):
    1. Look up the preset
    2. Build fresh jobs from it (shared settings are never mutated)
    3. Check tag overrides and the `source_default` fallback exist
    4. Expand ppi variants
    5. Derive every job, sequentially or on a thread pool; results keep
       expansion order and the first failure aborts the render
    6. Render markup in the configured style

Log records emitted while deriving carry `preset` and `image` context fields,
including those from pool threads.

Public API:
    derive_sources(tag, settings, site_root, max_workers=1) → List[RenderedSource]
    render_picture(tag, settings, site_root, max_workers=1) → str
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..utils.logging_config import pop_context, push_context
from ..utils.validators import ConfigurationError, PictureSettings
from .derive import DerivedImage, derive_image
from .markup import MarkupStyle, RenderedSource, build_attributes, render_markup
from .srcset import ExpandedSourceSet, build_sources, expand_sources
from .tag import PictureTag

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "source_default"


def plan_sources(tag: PictureTag, settings: PictureSettings) -> ExpandedSourceSet:
    """Resolve and expand the jobs for a tag without touching the filesystem.

    Raises
    ------
    ConfigurationError
        Unknown preset, unknown override key, missing `source_default`, or a
        source with neither width nor height
    """
    preset = settings.get_preset(tag.preset)
    if FALLBACK_SOURCE not in preset.sources:
        raise ConfigurationError(
            f"Preset '{tag.preset}' must define '{FALLBACK_SOURCE}' as the fallback image"
        )
    sources = build_sources(preset, tag.image_src, tag.source_src)
    return expand_sources(sources, preset.ppi)


def derive_all(
    jobs: ExpandedSourceSet,
    settings: PictureSettings,
    site_root: Union[str, Path],
    max_workers: int = 1,
    pil_kwargs: Optional[Dict[str, Any]] = None,
) -> List[DerivedImage]:
    """Derive every job, returning results in job order."""
    def derive(job):
        return derive_image(
            job,
            site_root,
            asset_path=settings.asset_path,
            generated_path=settings.generated_path,
            pil_kwargs=pil_kwargs,
        )

    if max_workers <= 1 or len(jobs) <= 1:
        return [derive(job) for job in jobs]

    # Pool threads start with an empty context; run each job in a copy of ours
    contexts = [contextvars.copy_context() for _ in jobs]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="derive") as pool:
        return list(pool.map(lambda ctx, job: ctx.run(derive, job), contexts, jobs))


def derive_sources(
    tag: PictureTag,
    settings: PictureSettings,
    site_root: Union[str, Path],
    max_workers: int = 1,
    pil_kwargs: Optional[Dict[str, Any]] = None,
) -> List[RenderedSource]:
    """Derive all images for a tag.

    Returns
    -------
    List[RenderedSource]
        (key, generated URL, media) in emission order
    """
    jobs = plan_sources(tag, settings)
    logger.debug(
        "Deriving %d sources for %s (preset=%s)", len(jobs), tag.image_src, tag.preset
    )
    derived = derive_all(jobs, settings, site_root, max_workers, pil_kwargs)
    return [RenderedSource(d.key, d.url, d.media) for d in derived]


def render_picture(
    tag: PictureTag,
    settings: PictureSettings,
    site_root: Union[str, Path],
    max_workers: int = 1,
    pil_kwargs: Optional[Dict[str, Any]] = None,
) -> str:
    """Render the complete markup block for a tag.

    Parameters
    ----------
    tag : PictureTag
        Parsed directive
    settings : PictureSettings
        Validated site settings (read only)
    site_root : Union[str, Path]
        Site source root on disk
    max_workers : int
        Threads used to derive images; 1 derives sequentially
    pil_kwargs : Optional[Dict[str, Any]]
        Encoder options for derived images

    Returns
    -------
    str
        Markup block

    Raises
    ------
    ConfigurationError
        Before any I/O, for invalid presets or tag overrides
    SourceImageError
        If a source image is missing or unreadable
    """
    style = MarkupStyle(settings.markup)
    preset = settings.get_preset(tag.preset)
    attributes, alt = build_attributes(preset.attr, tag.html_attr, style)

    push_context(preset=tag.preset, image=tag.image_src)
    try:
        sources = derive_sources(tag, settings, site_root, max_workers, pil_kwargs)
    finally:
        pop_context(["preset", "image"])
    fallback = next(s for s in sources if s.key == FALLBACK_SOURCE)

    return render_markup(style, attributes, sources, fallback.generated_src, alt)
