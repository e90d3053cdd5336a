"""
Regex-based metadata extraction from raw HTML.

Pure functions with no I/O. Extraction runs regular expressions over the raw
markup; there is no HTML parser and no DOM. Malformed or unclosed tags simply
don't match, and nested markup inside a tag body (e.g. ``<p>a <b>b</b></p>``)
is skipped. Tests depend on these blind spots, so they must be kept.
"""
import re
from collections.abc import Callable
from dataclasses import dataclass

from services.url_utils import get_domain, resolve_favicon_url

DEFAULT_SUMMARY_MAX_LENGTH = 200
ELLIPSIS = '...'

TITLE_PATTERN = re.compile(r'<title[^>]*>([^<]+)</title>')
FAVICON_PATTERN = re.compile(
    r'''<link[^>]*rel=["'](?:shortcut )?icon["'][^>]*href=["']([^"']+)["'][^>]*>''',
    re.IGNORECASE,
)
META_DESCRIPTION_PATTERN = re.compile(
    r'''<meta[^>]*name=["']description["'][^>]*content=["']([^"']+)["'][^>]*>''',
    re.IGNORECASE,
)
OG_DESCRIPTION_PATTERN = re.compile(
    r'''<meta[^>]*property=["']og:description["'][^>]*content=["']([^"']+)["'][^>]*>''',
    re.IGNORECASE,
)
PARAGRAPH_PATTERN = re.compile(r'<p[^>]*>([^<]+)</p>')
DIV_PATTERN = re.compile(r'<div[^>]*>([^<]{40,})</div>')

MAX_PARAGRAPHS = 3
MIN_PARAGRAPH_LENGTH = 20
MAX_DIVS = 2


@dataclass
class PageMetadata:
    """Title, favicon, and summary derived for a bookmarked page."""

    title: str | None
    favicon: str | None
    summary: str | None


SummaryStrategy = Callable[[str, int], str | None]


def default_summary(url: str) -> str:
    """Summary used when nothing could be derived for a URL."""
    return f'Bookmark from {get_domain(url)}. No summary available.'


def extract_title(html: str) -> str | None:
    """Return the trimmed body of the first ``<title>`` tag (case-sensitive), if any."""
    match = TITLE_PATTERN.search(html)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def extract_favicon_href(html: str) -> str | None:
    """Return the raw href of the first ``<link rel="icon">`` / ``rel="shortcut icon"`` tag."""
    match = FAVICON_PATTERN.search(html)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def extract_favicon(html: str, final_url: str) -> str | None:
    """
    Return the absolute favicon URL for a page.

    Uses the first icon link tag resolved against ``final_url``; when there is
    none, or it does not resolve to a valid URL, falls back to
    ``{origin}/favicon.ico``. Returns None only if ``final_url`` is unparseable.
    """
    href = extract_favicon_href(html)
    if href:
        favicon = resolve_favicon_url(final_url, href)
        if favicon:
            return favicon
    return resolve_favicon_url(final_url, '')


def _truncate(text: str, max_length: int) -> str:
    truncated = text[:max_length]
    # Mark as truncated whenever the text filled the whole budget
    if len(truncated) == max_length:
        return truncated + ELLIPSIS
    return truncated


def summary_from_meta_description(html: str, max_length: int) -> str | None:  # noqa: ARG001
    """``<meta name="description">`` content, untruncated."""
    match = META_DESCRIPTION_PATTERN.search(html)
    return match.group(1).strip() if match else None


def summary_from_og_description(html: str, max_length: int) -> str | None:  # noqa: ARG001
    """``<meta property="og:description">`` content, untruncated."""
    match = OG_DESCRIPTION_PATTERN.search(html)
    return match.group(1).strip() if match else None


def summary_from_paragraphs(html: str, max_length: int) -> str | None:
    """Join the first three ``<p>`` bodies longer than 20 characters, truncated."""
    paragraphs = []
    for match in PARAGRAPH_PATTERN.finditer(html):
        text = match.group(1).strip()
        if len(text) > MIN_PARAGRAPH_LENGTH:
            paragraphs.append(text)
        if len(paragraphs) >= MAX_PARAGRAPHS:
            break
    if not paragraphs:
        return None
    return _truncate(' '.join(paragraphs), max_length)


def summary_from_divs(html: str, max_length: int) -> str | None:
    """Join the first two ``<div>`` bodies of at least 40 characters, truncated."""
    divs = [match.group(1).strip() for match in DIV_PATTERN.finditer(html)][:MAX_DIVS]
    if not divs:
        return None
    return _truncate(' '.join(divs), max_length)


# Tried in order; the first strategy returning a value wins.
SUMMARY_STRATEGIES: tuple[SummaryStrategy, ...] = (
    summary_from_meta_description,
    summary_from_og_description,
    summary_from_paragraphs,
    summary_from_divs,
)


def extract_summary(
    html: str,
    max_length: int = DEFAULT_SUMMARY_MAX_LENGTH,
    strategies: tuple[SummaryStrategy, ...] = SUMMARY_STRATEGIES,
) -> str | None:
    """
    Derive a summary from HTML using the first strategy that yields one.

    Returns None when no strategy matched, so callers can try other sources
    (e.g. a remote summarization service) before falling back to a default.
    """
    for strategy in strategies:
        summary = strategy(html, max_length)
        if summary:
            return summary
    return None


def extract_metadata(
    html: str,
    final_url: str,
    max_length: int = DEFAULT_SUMMARY_MAX_LENGTH,
) -> PageMetadata:
    """
    Extract title, favicon, and summary from raw HTML.

    Args:
        html:
            Raw HTML of the page.
        final_url:
            URL the page was served from (after redirects). Relative favicon
            references are resolved against it.
        max_length:
            Maximum length of heuristic (paragraph/div) summaries.

    Returns:
        PageMetadata where ``title`` is None if the page has no ``<title>``
        (callers supply a hostname default), ``favicon`` falls back to
        ``{origin}/favicon.ico``, and ``summary`` falls back to the default
        summary for the URL.
    """
    return PageMetadata(
        title=extract_title(html),
        favicon=extract_favicon(html, final_url),
        summary=extract_summary(html, max_length) or default_summary(final_url),
    )
