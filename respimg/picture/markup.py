"""HTML markup for a derived source set.

Two styles are supported:
    - PICTUREFILL: `<span data-picture>` wrapper with one `<span data-src>`
      per source and a `<noscript><img></noscript>` fallback, for the
      Picturefill polyfill
    - PICTURE: native `<picture>` with one `<source srcset media>` per
      source and an `<img>` fallback

Attributes are an ordered list of (name, value) pairs; a None value renders
as a bare attribute (`data-picture`). Values are HTML-escaped.

Lines are never indented: Markdown processors turn four leading spaces into
a code block.
"""

import html
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

Attribute = Tuple[str, Optional[str]]


class MarkupStyle(str, Enum):
    """Output template selected by `picture.markup` in the site config."""
    PICTUREFILL = "picturefill"
    PICTURE = "picture"


@dataclass(frozen=True, slots=True)
class RenderedSource:
    """One emitted source: key, derived image URL and optional media query."""
    key: str
    generated_src: str
    media: Optional[str] = None


def build_attributes(
    preset_attr: Mapping[str, Optional[str]],
    tag_attr: Mapping[str, Optional[str]],
    style: MarkupStyle,
) -> Tuple[List[Attribute], Optional[str]]:
    """Merge preset and tag attributes for the wrapper element.

    Tag attributes override preset defaults by name; preset order comes
    first. `alt` is pulled out and returned separately because neither
    wrapper element may carry it. Picturefill additionally gets a bare
    `data-picture` and, when alt text exists, `data-alt`.

    Returns
    -------
    Tuple[List[Attribute], Optional[str]]
        (wrapper attributes, alt text)
    """
    merged: Dict[str, Optional[str]] = dict(preset_attr)
    merged.update(tag_attr)
    alt = merged.pop('alt', None)

    attributes: List[Attribute] = list(merged.items())
    if style is MarkupStyle.PICTUREFILL:
        attributes.append(('data-picture', None))
        if alt is not None:
            attributes.append(('data-alt', alt))
    return attributes, alt


def render_attributes(attributes: Sequence[Attribute]) -> str:
    """Render attributes as `name="value"` / `name`, space separated."""
    parts = []
    for name, value in attributes:
        if value is None:
            parts.append(name)
        else:
            parts.append(f'{name}="{html.escape(value, quote=True)}"')
    return ' '.join(parts)


def _open_tag(element: str, attributes: Sequence[Attribute]) -> str:
    rendered = render_attributes(attributes)
    return f"<{element} {rendered}>" if rendered else f"<{element}>"


def _render_picturefill(
    attributes: Sequence[Attribute],
    sources: Sequence[RenderedSource],
    fallback_src: str,
    alt: Optional[str],
) -> str:
    lines = [_open_tag('span', attributes)]
    for source in sources:
        source_attr: List[Attribute] = [('data-src', source.generated_src)]
        if source.media:
            source_attr.append(('data-media', source.media))
        lines.append(f"{_open_tag('span', source_attr)}</span>")
    lines.append("<noscript>")
    lines.append(_open_tag('img', [('src', fallback_src), ('alt', alt or '')]))
    lines.append("</noscript>")
    lines.append("</span>")
    return '\n'.join(lines) + '\n'


def _render_picture(
    attributes: Sequence[Attribute],
    sources: Sequence[RenderedSource],
    fallback_src: str,
    alt: Optional[str],
) -> str:
    lines = [_open_tag('picture', attributes)]
    for source in sources:
        source_attr: List[Attribute] = [('srcset', source.generated_src)]
        if source.media:
            source_attr.append(('media', source.media))
        lines.append(_open_tag('source', source_attr))
    lines.append(_open_tag('img', [('src', fallback_src), ('alt', alt or '')]))
    lines.append("</picture>")
    return '\n'.join(lines) + '\n'


_RENDERERS: Dict[MarkupStyle, Callable[..., str]] = {
    MarkupStyle.PICTUREFILL: _render_picturefill,
    MarkupStyle.PICTURE: _render_picture,
}


def render_markup(
    style: MarkupStyle,
    attributes: Sequence[Attribute],
    sources: Sequence[RenderedSource],
    fallback_src: str,
    alt: Optional[str] = None,
) -> str:
    """Render the full tag block for `style`.

    Parameters
    ----------
    style : MarkupStyle
        Output template
    attributes : Sequence[Attribute]
        Wrapper element attributes (see build_attributes)
    sources : Sequence[RenderedSource]
        Sources in emission order
    fallback_src : str
        URL used when JavaScript or `<picture>` support is missing
    alt : Optional[str]
        Alternative text for the fallback image

    Returns
    -------
    str
        Markup block ending in a newline
    """
    return _RENDERERS[MarkupStyle(style)](attributes, sources, fallback_src, alt)
