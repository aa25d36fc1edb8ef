"""SHA-256 hashing for source images and derived-file cache keys.

Provides:
    - sha256_image(): Hash decoded pixel values of a Pillow image
    - short_digest(): Truncated pixel hash used in derived filenames

Cache keys:
    - Derived files are named `{name}-{W}x{H}-{digest}{ext}`
    - The digest is taken over decoded pixels, not the file, so it changes
      whenever any pixel changes and never because of a timestamp
    - Six hex characters by default (collisions only matter between
      versions of the same source at the same size)

Deterministic hashing:
    - Pixels converted to bytes via numpy.asarray(img).tobytes()
    - Mode and size are mixed in so reshaped data never collides
    - Palette images also mix in the palette and transparency, since their
      pixel array holds indices, not colors

Usage:
    from respimg.utils import hashing
    digest = hashing.short_digest(img)   # e.g. "a3f5b2"

Note: Module named `hashing.py` to avoid shadowing builtin `hash()`.
"""

import hashlib

import numpy as np
from PIL import Image

DEFAULT_DIGEST_LENGTH = 6


def sha256_image(img: Image.Image) -> str:
    """Compute SHA-256 hash of decoded pixel values.

    Parameters
    ----------
    img : PIL.Image.Image
        Image to hash (any mode)

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Notes
    -----
    Deterministic: same pixels, mode and size → same hash. For palette
    modes, a recolored palette changes the hash.
    Invariant to container metadata (EXIF, encoder settings of a lossless
    format) but NOT to mode: an RGB and an RGBA copy hash differently.

    Examples
    --------
    >>> with Image.open("assets/photo.jpg") as img:
    ...     print(sha256_image(img)[:6])
    a3f5b2
    """
    pixels = np.asarray(img)

    sha256 = hashlib.sha256()
    sha256.update(f"{img.mode}:{img.width}x{img.height}:".encode('utf-8'))
    sha256.update(pixels.tobytes())

    if img.mode in ("P", "PA"):
        sha256.update(bytes(img.getpalette() or []))
        sha256.update(repr(img.info.get("transparency")).encode('utf-8'))

    return sha256.hexdigest()


def short_digest(img: Image.Image, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    """Return the first `length` hex characters of sha256_image()."""
    if length < 1:
        raise ValueError(f"Digest length must be positive, got {length}")
    return sha256_image(img)[:length]
