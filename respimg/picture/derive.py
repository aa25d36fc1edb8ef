"""Derivation engine: one job → one resized, center-cropped image on disk.

Pipeline per job:
    1. Open the source image, read its native size and ratio R = W/H
    2. Resolve the target box (a missing side follows R; two given sides
       keep the requested ratio R' and imply a crop)
    3. No upscaling: if the box exceeds the native size, shrink it to the
       largest box with ratio R' that fits, log a warning, and continue
    4. Short SHA-256 of the decoded pixels (cache key)
    5. Output name `{name}-{W}x{H}-{digest}{ext}` under the generated dir,
       mirroring the source's subdirectory
    6. Existing file → reuse it untouched
    7. Otherwise resize-to-cover, center-crop, save atomically
    8. Return the site-root URL and effective size

The output directory is an append-only cache: files are created, never
modified, and are orphaned (not deleted) when their source changes.

Used by:
    - render.derive_sources() for every job of an expanded source set
"""

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..utils import fs, hashing
from ..utils.validators import ConfigurationError
from .srcset import SourceSpec, round_half_up

logger = logging.getLogger(__name__)


class SourceImageError(OSError):
    """Raised when a source image is missing or cannot be decoded."""

    pass


@dataclass(frozen=True, slots=True)
class DerivedImage:
    """Result of deriving one job.

    Attributes:
        key: source key of the job
        url: site-root-relative URL, normalized (e.g. "/generated/a-400x200-a3f5b2.jpg")
        path: absolute location of the derived file
        width, height: effective size after the no-upscale adjustment
        digest: short content hash of the source pixels
        media: media query echoed from the job
        generated: True if this call wrote the file, False on a cache hit
    """
    key: str
    url: str
    path: Path
    width: int
    height: int
    digest: str
    media: Optional[str] = None
    generated: bool = False


def compute_target_size(
    native_width: int,
    native_height: int,
    width: Optional[int],
    height: Optional[int],
) -> Tuple[int, int, bool]:
    """Resolve the final pixel box for a job.

    Parameters
    ----------
    native_width, native_height : int
        Source image size
    width, height : Optional[int]
        Requested box; at least one is required

    Returns
    -------
    Tuple[int, int, bool]
        (width, height, capped) where `capped` is True when the request
        exceeded the source and was shrunk

    Raises
    ------
    ConfigurationError
        If neither width nor height is given

    Notes
    -----
    When capping, the requested ratio R' is kept, not the native ratio R:
    R' < R caps height and recomputes width, R' > R caps width and
    recomputes height. Rounding happens only after capping.

    Examples
    --------
    >>> compute_target_size(2000, 1000, 400, None)
    (400, 200, False)
    >>> compute_target_size(2000, 1000, 3000, None)
    (2000, 1000, True)
    >>> compute_target_size(2000, 1000, 1500, 1500)
    (1000, 1000, True)
    """
    if width is None and height is None:
        raise ConfigurationError("At least one of width and height is required")

    src_width = float(native_width)
    src_height = float(native_height)
    src_ratio = src_width / src_height

    gen_width = float(width) if width is not None else src_ratio * height
    gen_height = float(height) if height is not None else width / src_ratio
    gen_ratio = gen_width / gen_height

    capped = src_width < gen_width or src_height < gen_height
    if capped:
        gen_width = src_height * gen_ratio if gen_ratio < src_ratio else src_width
        gen_height = src_width / gen_ratio if gen_ratio > src_ratio else src_height

    return max(1, round_half_up(gen_width)), max(1, round_half_up(gen_height)), capped


def cover_crop(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale so both sides cover the box, then crop the center to it exactly.

    Parameters
    ----------
    img : PIL.Image.Image
        Source image
    width, height : int
        Exact output size

    Returns
    -------
    PIL.Image.Image
        New image of size (width, height)
    """
    if img.mode in ("P", "1"):
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")

    sw, sh = img.size
    scale = max(width / sw, height / sh)
    new_w = max(width, round_half_up(sw * scale))
    new_h = max(height, round_half_up(sh * scale))

    resized = img.resize((new_w, new_h), resample=Image.Resampling.LANCZOS)
    left = (new_w - width) // 2
    top = (new_h - height) // 2
    return resized.crop((left, top, left + width, top + height))


def _open_source(src_path: Path) -> Image.Image:
    """Open and fully decode a source image."""
    try:
        img = Image.open(src_path)
    except FileNotFoundError as e:
        raise SourceImageError(f"Source image not found: {src_path}") from e
    except UnidentifiedImageError as e:
        raise SourceImageError(f"Source image is not a readable image: {src_path}") from e
    except OSError as e:
        raise SourceImageError(f"Cannot open source image {src_path}: {e}") from e

    try:
        img.load()
    except OSError as e:
        img.close()
        raise SourceImageError(f"Cannot decode source image {src_path}: {e}") from e
    return img


def derived_name(src: str, width: int, height: int, digest: str) -> str:
    """Filename of a derived image: `{name}-{W}x{H}-{digest}{ext}`."""
    base = posixpath.basename(src)
    stem, ext = posixpath.splitext(base)
    return f"{stem}-{width}x{height}-{digest}{ext}"


def derive_image(
    job: SourceSpec,
    site_root: Union[str, Path],
    asset_path: str = ".",
    generated_path: str = "generated",
    pil_kwargs: Optional[Dict[str, Any]] = None,
) -> DerivedImage:
    """Derive (or reuse) the image for one job.

    Parameters
    ----------
    job : SourceSpec
        Source path and requested box
    site_root : Union[str, Path]
        Site source root on disk
    asset_path : str
        Directory of source images, relative to site_root
    generated_path : str
        Directory for derived images, relative to site_root
    pil_kwargs : Optional[Dict[str, Any]]
        Encoder options passed to PIL.Image.save (e.g., quality=85)

    Returns
    -------
    DerivedImage
        URL, path and effective size of the derived file

    Raises
    ------
    SourceImageError
        If the source image is missing or unreadable
    RuntimeError
        If the derived image cannot be written
    """
    site_root = Path(site_root)
    # All three paths are site-relative, even when written with a leading slash
    generated_path = generated_path.lstrip("/")
    asset_path = asset_path.lstrip("/") or "."
    src = job.src.lstrip("/")
    src_path = site_root / asset_path / src

    img = _open_source(src_path)
    with img:
        digest = hashing.short_digest(img)
        width, height, capped = compute_target_size(img.width, img.height, job.width, job.height)

        if capped:
            logger.warning(
                "%s is smaller than the requested resize (%sx%s). "
                "Outputting as large as possible without upscaling.",
                posixpath.join(asset_path, src), job.width, job.height,
            )

        src_dir = posixpath.dirname(src)
        name = derived_name(src, width, height, digest)
        out_path = site_root / generated_path / src_dir / name
        url = posixpath.normpath(posixpath.join("/", generated_path, src_dir, name))

        generated = False
        if not out_path.exists():
            logger.info("Generating %s", url)
            fs.atomic_save_image(cover_crop(img, width, height), out_path, pil_kwargs)
            generated = True
        else:
            logger.debug("Reusing %s", url)

    return DerivedImage(
        key=job.key,
        url=url,
        path=out_path,
        width=width,
        height=height,
        digest=digest,
        media=job.media,
        generated=generated,
    )
