"""Responsive picture generation.

Modules:
    - tag: `{% picture %}` directive parsing
    - srcset: preset sources → ordered jobs with ppi variants
    - derive: job → resized, center-cropped, content-addressed image file
    - markup: Picturefill or native `<picture>` markup
    - render: orchestration of the above for one tag

Workflow:
    1. Parse directive → PictureTag
    2. Preset + tag → SourceSpec jobs, expanded by ppi multipliers
    3. Each job → DerivedImage (cached by source pixel hash)
    4. Derived URLs + media queries → markup block
"""

from .derive import DerivedImage, SourceImageError, compute_target_size, derive_image
from .markup import MarkupStyle, RenderedSource
from .render import derive_sources, plan_sources, render_picture
from .srcset import SourceSpec, expand_sources
from .tag import PictureTag, parse_tag, substitute_tags

__all__ = [
    'DerivedImage',
    'MarkupStyle',
    'PictureTag',
    'RenderedSource',
    'SourceImageError',
    'SourceSpec',
    'compute_target_size',
    'derive_image',
    'derive_sources',
    'expand_sources',
    'parse_tag',
    'plan_sources',
    'render_picture',
    'substitute_tags',
]
