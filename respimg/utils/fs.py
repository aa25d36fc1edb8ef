"""Atomic filesystem operations for derived images and YAML config.

Provides:
    - Atomic image saves: unique tmp file in target dir → os.replace
    - Atomic text writes for rendered templates
    - YAML loading with safe_load
    - Directory creation with exist_ok semantics

Derived images are an append-only cache keyed by content hash: a file either
exists complete at its final path or not at all. Two renders deriving the same
variant concurrently each write their own tmp file; the last replace wins and
both produce identical bytes.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from respimg.utils import fs
    fs.atomic_save_image(img, out_dir / "photo-400x200-a3f5b2.jpg")
    cfg = fs.load_yaml("_config.yml")

Note: Module named `fs.py` to avoid shadowing stdlib `io`.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)

    Notes
    -----
    Thread-safe (mkdir with exist_ok=True).
    Creates parent directories as needed.
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def _tmp_sibling(path: Path) -> Path:
    """Reserve a unique tmp path next to `path`, keeping its extension."""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.stem}.",
        suffix=".tmp" + path.suffix,
    )
    os.close(fd)
    # mkstemp creates 0600; derived files must be readable by the web server
    os.chmod(tmp_name, 0o644)
    return Path(tmp_name)


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> None:
    """Write bytes to file atomically (tmp → fsync → replace).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write

    Notes
    -----
    The tmp file lives in the target directory so the final rename never
    crosses a filesystem boundary.
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = _tmp_sibling(path)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically.

    Convenience wrapper around atomic_write_bytes.
    """
    atomic_write_bytes(path, text.encode(encoding))


def atomic_save_image(
    img: Image.Image,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save a Pillow image atomically (prevents partial reads).

    Parameters
    ----------
    img : PIL.Image.Image
        Fully processed image
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save (e.g., quality=90)

    Raises
    ------
    RuntimeError
        If encoding or the final replace fails; no file is left at `path`
        unless one was already there.

    Notes
    -----
    JPEG cannot hold alpha or palette data, so such images are flattened to
    RGB before encoding.
    """
    path = Path(path)
    pil_kwargs = pil_kwargs or {}
    ensure_dir(path.parent)

    fmt = Image.registered_extensions().get(path.suffix.lower())
    if fmt == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")

    tmp_path = _tmp_sibling(path)
    try:
        img.save(tmp_path, format=fmt, **pil_kwargs)
        os.replace(tmp_path, path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


def load_yaml(path: Union[str, Path]) -> Any:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Any
        Parsed YAML content (None for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails

    Notes
    -----
    Uses safe_load to prevent arbitrary code execution. Mapping order from
    the file is preserved, which keeps preset source order intact.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
