"""Parsing of `{% picture %}` directives.

Syntax:
    {% picture [preset] path/to/img.jpg [source_key: path/to/alt-img.jpg ...] [attr="value" ...] %}

Examples:
    {% picture photo.jpg %}
    {% picture gallery photo.jpg alt="Harbour at dusk" class="wide" %}
    {% picture gallery photo.jpg source_small: photo-crop.jpg alt="Harbour" %}

Rules:
    - The preset name (no dots or colons) is optional, default "default"
    - Image paths end in a 3-4 character alphanumeric extension
    - Per-source overrides use keys starting with `source_`
    - Attributes are `name="value"` or bare `name`
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..utils.validators import ConfigurationError

DEFAULT_PRESET = "default"

USAGE = (
    'A picture tag is formatted incorrectly. Try '
    '{% picture [preset] path/to/img.jpg [source_key: path/to/alt-img.jpg] [attr="value"] %}.'
)

TAG_PATTERN = re.compile(
    r'(?:(?P<preset>[^\s.:]+)\s+)?'
    r'(?P<image_src>\S+\.[a-zA-Z0-9]{3,4})\s*'
    r'(?P<source_src>(?:source_[^\s:]+:\s+\S+\.[a-zA-Z0-9]{3,4}\s*)+)?'
    r'(?P<html_attr>[\s\S]+)?'
)
SOURCE_PATTERN = re.compile(r'(?P<key>source_[^\s:]+):\s+(?P<path>\S+)')
ATTR_PATTERN = re.compile(r'(?P<attr>[^\s="]+)(?:="(?P<value>[^"]*)")?')
DIRECTIVE_PATTERN = re.compile(r'\{%-?\s*picture\s+(?P<markup>.*?)\s*-?%\}', re.DOTALL)


@dataclass(frozen=True)
class PictureTag:
    """Parsed directive.

    Attributes:
        preset: preset name
        image_src: primary image path, relative to the asset directory
        source_src: per-source image overrides, in tag order
        html_attr: wrapper attributes, in tag order (None = bare attribute)
    """
    image_src: str
    preset: str = DEFAULT_PRESET
    source_src: Dict[str, str] = field(default_factory=dict)
    html_attr: Dict[str, Optional[str]] = field(default_factory=dict)


def parse_tag(markup: str) -> PictureTag:
    """Parse the body of a picture directive.

    Raises
    ------
    ConfigurationError
        If the markup does not match the directive grammar
    """
    match = TAG_PATTERN.fullmatch(markup.strip())
    if not match:
        raise ConfigurationError(USAGE)

    source_src = {}
    if match.group('source_src'):
        source_src = {
            m.group('key'): m.group('path')
            for m in SOURCE_PATTERN.finditer(match.group('source_src'))
        }

    html_attr: Dict[str, Optional[str]] = {}
    if match.group('html_attr'):
        for m in ATTR_PATTERN.finditer(match.group('html_attr')):
            html_attr[m.group('attr')] = m.group('value')

    return PictureTag(
        image_src=match.group('image_src'),
        preset=match.group('preset') or DEFAULT_PRESET,
        source_src=source_src,
        html_attr=html_attr,
    )


def substitute_tags(text: str, render: Callable[[PictureTag], str]) -> str:
    """Replace every `{% picture ... %}` directive in `text`.

    The first parse or render error propagates; no partial output is returned.
    """
    return DIRECTIVE_PATTERN.sub(lambda m: render(parse_tag(m.group('markup'))), text)
