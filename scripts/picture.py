#!/usr/bin/env python3
"""Render `{% picture %}` directives into responsive image markup.

Derives every image variant the directive's preset asks for (cached under the
generated directory by source pixel hash) and prints the markup block.

Two modes:
    1. Tag mode (default): each positional argument is the body of one
       directive; markup blocks are printed to stdout in order
    2. Template mode: every `{% picture ... %}` in --template is replaced by
       its markup; the result goes to --output or stdout

Refactored architecture:
    - picture_main(config_path, site_root, tags | template, ...) → str
        * Callable function (used by tests and build scripts)
    - CLI entry point: if __name__ == "__main__"

Usage:
    python scripts/picture.py --config _config.yml --site . 'gallery photos/harbour.jpg alt="Harbour"'
    python scripts/picture.py --config _config.yml --site . --template _drafts/post.md --output _posts/post.md
    python scripts/picture.py --config configs/picture_v1.yaml --site site/ --workers 4 -v 'photo.jpg'

Exit codes:
    0: success
    2: configuration error or missing/unreadable source image
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from respimg.picture import SourceImageError, parse_tag, render_picture, substitute_tags
from respimg.utils import fs, validators
from respimg.utils.logging_config import install_excepthook, setup_logging

logger = logging.getLogger("respimg.scripts.picture")

DEFAULT_CONFIG = Path("_config.yml")


def picture_main(
    config_path: str,
    site_root: str,
    tags: Sequence[str] = (),
    template_path: Optional[str] = None,
    output_path: Optional[str] = None,
    max_workers: int = 1,
) -> str:
    """Render directives or a template.

    Parameters
    ----------
    config_path : str
        Site config holding the `picture:` section
    site_root : str
        Site source root (asset and generated paths are relative to it)
    tags : Sequence[str]
        Directive bodies, used when no template is given
    template_path : Optional[str]
        Template whose `{% picture %}` directives are substituted
    output_path : Optional[str]
        Write the rendered template here (atomically) instead of returning only
    max_workers : int
        Threads used to derive images

    Returns
    -------
    str
        Rendered markup (tag mode) or rendered template (template mode)

    Raises
    ------
    ConfigurationError
        Invalid config or directive; raised before any image is opened
    SourceImageError
        Missing or unreadable source image
    """
    settings = validators.load_picture_config(config_path)

    def render(tag):
        return render_picture(tag, settings, site_root, max_workers=max_workers)

    if template_path is not None:
        text = Path(template_path).read_text(encoding="utf-8")
        rendered = substitute_tags(text, render)
        if output_path is not None:
            fs.atomic_write_text(output_path, rendered)
            logger.info("Wrote %s", output_path)
        return rendered

    parsed = [parse_tag(body) for body in tags]
    return ''.join(render(tag) for tag in parsed)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate responsive image variants and picture markup",
    )
    parser.add_argument(
        "tags",
        nargs="*",
        help='Directive bodies, e.g. \'gallery photo.jpg alt="Harbour"\'',
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Site config with a `picture:` section (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--site",
        type=Path,
        default=Path("."),
        help="Site source root (default: current directory)",
    )
    parser.add_argument(
        "--template",
        type=Path,
        help="Substitute every {%% picture %%} directive in this file",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the rendered template here instead of stdout",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Threads used to derive images (default: 1)",
    )

    # Logging
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )

    args = parser.parse_args(argv)

    setup_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        log_file=args.log_file,
        json=args.json_logs,
        context={"app": "picture"},
    )
    install_excepthook()

    if not args.tags and args.template is None:
        parser.error("give at least one directive or --template")
    if args.output is not None and args.template is None:
        parser.error("--output requires --template")

    try:
        rendered = picture_main(
            config_path=str(args.config),
            site_root=str(args.site),
            tags=args.tags,
            template_path=str(args.template) if args.template else None,
            output_path=str(args.output) if args.output else None,
            max_workers=args.workers,
        )
    except (validators.ConfigurationError, SourceImageError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 2

    if args.output is None:
        sys.stdout.write(rendered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
