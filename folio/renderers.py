"""Content renderers for Folio.

Each renderer handles a single content type and returns the HTML plus the
headings found while rendering.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with syntax highlighting.
- HTMLRenderer: Passes through HTML content.
- RendererRegistry: Picks a renderer for a source file.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html, strip_tags
from .utils import is_html, is_markdown

_PROMPT_RE = re.compile(r"\s*\{:\s*\.(prompt-[\w-]+)\s*\}")

_SKIP_MEDIA_PREFIXES = ("http://", "https://", "//", "/", "data:", "#")


@dataclass
class Heading:
    """A heading found in rendered content, used for the table of contents.

    Attributes:
        id: Anchor ID for the heading.
        text: Plain text of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


def generate_heading_id(text: str) -> str:
    """Generate a URL-friendly anchor ID from heading text."""
    slug = html.unescape(strip_tags(text)).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


def rewrite_media_path(src: str, media_path: str | None) -> str:
    """Join a relative media source onto a document's media path prefix.

    Absolute, protocol-relative, root-relative, data and templated sources
    are returned unchanged, as is everything when there is no prefix.

    Examples:
        >>> rewrite_media_path("cover.png", "/assets/img/hello")
        '/assets/img/hello/cover.png'
    """
    if not media_path or not src or src.startswith(_SKIP_MEDIA_PREFIXES) or "{{" in src:
        return src
    relative = src[2:] if src.startswith("./") else src
    return f"{media_path.rstrip('/')}/{relative}"


class _BlogHTMLRenderer(mistune.HTMLRenderer):
    """Markdown renderer with heading anchors, media prefixes and highlighting.

    Attributes:
        media_path: Prefix joined onto relative image sources.
        highlight_code: Whether fenced code goes through Pygments.
        headings: Headings collected during rendering.
    """

    def __init__(self, media_path: str | None = None, highlight_code: bool = True):
        super().__init__(escape=False)
        self.media_path = media_path
        self.highlight_code = highlight_code
        self.headings: list[Heading] = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        plain = html.unescape(strip_tags(text))
        self.headings.append(Heading(id=heading_id, text=plain, level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def image(self, text: str, url: str, title: str | None = None) -> str:
        return super().image(text, rewrite_media_path(url, self.media_path), title)

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Unknown languages, or disabled highlighting, fall back to an escaped
        ``<pre><code>`` block carrying a ``language-*`` class.
        """
        lang = info.split()[0] if info and info.strip() else None
        if lang and self.highlight_code:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                formatter = HtmlFormatter(cssclass="highlight")
                return highlight(code, lexer, formatter)
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"

    def block_quote(self, text: str) -> str:
        # Kramdown-style attribute line: "> tip\n{: .prompt-tip }"
        match = _PROMPT_RE.search(text)
        if match:
            text = _PROMPT_RE.sub("", text, count=1)
            return f'<blockquote class="{match.group(1)}">\n{text}</blockquote>\n'
        return super().block_quote(text)


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    Attributes:
        highlight_code: Whether fenced code blocks are highlighted with Pygments.
    """

    plugins = ["strikethrough", "footnotes", "table", "url"]

    def __init__(self, highlight_code: bool = True):
        self.highlight_code = highlight_code

    @property
    def source_type(self) -> str:
        return "markdown"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str, media_path: str | None = None) -> tuple[str, list[Heading]]:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source.
            media_path: Optional prefix for relative image sources.

        Returns:
            Tuple of (rendered HTML, list of Heading objects).
        """
        renderer = _BlogHTMLRenderer(media_path, self.highlight_code)
        markdown = mistune.create_markdown(renderer=renderer, plugins=self.plugins)
        rendered = markdown(content)
        return rendered, renderer.headings


class HTMLRenderer:
    """Passes HTML content through unchanged."""

    @property
    def source_type(self) -> str:
        return "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str, media_path: str | None = None) -> tuple[str, list[Heading]]:
        return content, []


class RendererRegistry:
    """Registry for content renderers.

    Renderers are consulted in registration order; the first one that
    accepts a path renders it.
    """

    def __init__(self, highlight_code: bool = True):
        self._renderers: list = []
        self.register(MarkdownRenderer(highlight_code))
        self.register(HTMLRenderer())

    def register(self, renderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Return the first renderer that can handle ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None
