"""respimg: responsive image variants for static sites.

Derives resized, center-cropped image variants from a source image and a
named preset of breakpoints, with optional high-density (ppi) variants, and
renders Picturefill or native `<picture>` markup for them.

Architecture layers (strict one-way dependency):
    scripts/ → respimg/picture/ → respimg/utils/

Key invariants:
    - Derived images are never upscaled
    - Derived filenames carry a hash of the source pixels; unchanged sources
      are never regenerated, changed sources get new files
    - Presets are read only; every render builds its own jobs
    - YAML-only configs
"""

__version__ = "1.0.0"
