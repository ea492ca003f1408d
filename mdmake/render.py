"""Turn one Markdown document into a complete HTML page."""

from __future__ import annotations

import html
import posixpath
import re
from typing import List, Optional

import markdown

from .config import PageChrome, SiteConfig, load_chrome
from .errors import LinkResolutionWarning
from .links import ExistsFn, rewrite_links
from .paths import normalize_relative, parent_dir, relative_href, to_output_path

MARKDOWN_EXTENSIONS = ["extra", "fenced_code", "tables"]

_H1 = re.compile(r"^ {0,3}#(?!#)[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$", re.MULTILINE)


def convert_markdown_to_html(md_text: str) -> str:
    """Convert markdown to an HTML fragment."""
    return markdown.markdown(md_text, extensions=MARKDOWN_EXTENSIONS)


def strip_inline_markup(text: str) -> str:
    """Crude plain-text version of a line of inline Markdown."""
    plain = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", text)
    plain = re.sub(r"`([^`]*)`", r"\1", plain)
    plain = re.sub(r"[*_]+", "", plain)
    return re.sub(r"\s+", " ", plain).strip()


def page_title(document_src_path: str, md_text: str) -> str:
    """First level-1 heading of the document, or its file stem."""
    in_fence = False
    for line in md_text.splitlines():
        if re.match(r"^ {0,3}(`{3,}|~{3,})", line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _H1.match(line)
        if match:
            title = strip_inline_markup(match.group(1))
            if title:
                return title
    stem = posixpath.splitext(posixpath.basename(document_src_path))[0]
    return stem or "untitled"


def render_page_html(
    title: str,
    content_html: str,
    stylesheet_href: Optional[str] = None,
    header_html: Optional[str] = None,
    footer_html: Optional[str] = None,
) -> str:
    """Wrap a rendered fragment in the page shell."""
    head = [
        '    <meta charset="utf-8">',
        '    <meta name="viewport" content="width=device-width, initial-scale=1">',
        f"    <title>{html.escape(title)}</title>",
    ]
    if stylesheet_href is not None:
        head.append(f'    <link rel="stylesheet" href="{html.escape(stylesheet_href)}">')

    body: List[str] = []
    if header_html is not None:
        body.append(header_html.rstrip("\n"))
    body.append(content_html)
    if footer_html is not None:
        body.append(footer_html.rstrip("\n"))

    head_html = "\n".join(head)
    body_html = "\n".join(body)
    return f"""<!doctype html>
<html lang="en">
  <head>
{head_html}
  </head>
  <body>
{body_html}
  </body>
</html>
"""


def render_page(
    document_src_path: str,
    markdown_text: str,
    config: SiteConfig,
    chrome: Optional[PageChrome] = None,
    exists: Optional[ExistsFn] = None,
    warnings: Optional[List[LinkResolutionWarning]] = None,
) -> bytes:
    """Render a source document to the bytes of its HTML page.

    Links are rewritten first, then the Markdown is converted. The stylesheet link is
    relative to the page's own output directory, so a page two directories deep
    refers to ``../../style.css``.
    """
    document_src_path = normalize_relative(document_src_path)
    if chrome is None:
        chrome = load_chrome(config)

    rewritten = rewrite_links(document_src_path, markdown_text, exists=exists, warnings=warnings)
    content_html = convert_markdown_to_html(rewritten)

    stylesheet_href = None
    if chrome.has_stylesheet:
        out_dir = parent_dir(to_output_path(document_src_path))
        stylesheet_href = relative_href(config.stylesheet_name, out_dir)

    page = render_page_html(
        title=page_title(document_src_path, markdown_text),
        content_html=content_html,
        stylesheet_href=stylesheet_href,
        header_html=chrome.header,
        footer_html=chrome.footer,
    )
    return page.encode("utf-8")
