"""URL scraping service for fetching pages and deriving bookmark metadata."""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from services.html_metadata import (
    DEFAULT_SUMMARY_MAX_LENGTH,
    PageMetadata,
    default_summary,
    extract_favicon,
    extract_summary,
    extract_title,
)
from services.url_utils import normalize_url, parse_http_url

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; Bookmarks/1.0)'
DEFAULT_TIMEOUT = 5.0
DEFAULT_SUMMARY_SERVICE_URL = 'https://r.jina.ai/http://'
DEFAULT_SUMMARY_TIMEOUT = 5.0
INVALID_URL_SUMMARY = 'Could not process this URL. Please check the format.'


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # Unparseable addresses are treated as internal
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, so a public hostname
    that resolves to an internal IP is also refused.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL has no hostname or the hostname does not resolve.
    """
    parsed = parse_http_url(url)
    hostname = parsed.hostname if parsed else None

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    # sockaddr is (ip, port) for IPv4 or (ip, port, flow, scope) for IPv6
    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw HTML before extraction)."""

    html: str | None
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None

    @property
    def is_html(self) -> bool:
        """Check if the content type indicates HTML."""
        return bool(self.content_type and 'text/html' in self.content_type.lower())

    @property
    def is_unsupported_content(self) -> bool:
        """Check if the page was fetched successfully but is not HTML."""
        return (
            self.status_code is not None
            and 200 <= self.status_code < 300  # noqa: PLR2004
            and self.content_type is not None
            and not self.is_html
        )


async def fetch_page(  # noqa: PLR0911
    url: str,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    block_private_addresses: bool = True,
) -> FetchResult:
    """
    Fetch an HTML page.

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL, which is the base for
    resolving relative references in the page.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.
        block_private_addresses:
            Refuse URLs (and redirect targets) that resolve to internal networks.

    Returns:
        FetchResult containing HTML or error info.
    """
    if block_private_addresses:
        try:
            validate_url_not_private(url)
        except (SSRFBlockedError, ValueError) as e:
            return FetchResult(
                html=None,
                final_url=url,
                status_code=None,
                content_type=None,
                error=str(e),
            )

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)
            final_url = str(response.url)

            if block_private_addresses and final_url != url:
                try:
                    validate_url_not_private(final_url)
                except (SSRFBlockedError, ValueError) as e:
                    return FetchResult(
                        html=None,
                        final_url=final_url,
                        status_code=response.status_code,
                        content_type=None,
                        error=f"Redirect blocked: {e}",
                    )

            content_type = response.headers.get('content-type', '')

            if not response.is_success:
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"HTTP {response.status_code}",
                )

            if 'text/html' not in content_type.lower():
                return FetchResult(
                    html=None,
                    final_url=final_url,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=f"Non-HTML content type: {content_type}",
                )

            return FetchResult(
                html=response.text,
                final_url=final_url,
                status_code=response.status_code,
                content_type=content_type,
                error=None,
            )
    except httpx.TimeoutException:
        return FetchResult(
            html=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        return FetchResult(
            html=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=f"Request failed: {e}",
        )


async def fetch_remote_summary(
    url: str,
    endpoint: str = DEFAULT_SUMMARY_SERVICE_URL,
    timeout: float = DEFAULT_SUMMARY_TIMEOUT,  # noqa: ASYNC109
) -> str | None:
    """
    Ask the external summarization service for a summary of a page.

    The service is addressed by appending the percent-encoded page URL to
    ``endpoint``. Any failure (network, timeout, non-2xx, empty body) is logged
    and yields None; it is never raised.
    """
    target = f'{endpoint}{quote(url, safe="")}'
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
        ) as client:
            response = await client.get(target)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("Summary service request failed for %s: %s", url, e)
        return None

    if not response.is_success:
        logger.warning(
            "Summary service returned HTTP %s for %s", response.status_code, url,
        )
        return None

    summary = response.text.strip()
    if not summary:
        logger.info("Summary service returned an empty summary for %s", url)
        return None
    return summary


async def fetch_metadata(
    raw_url: str,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    summary_endpoint: str | None = DEFAULT_SUMMARY_SERVICE_URL,
    summary_timeout: float = DEFAULT_SUMMARY_TIMEOUT,
    summary_max_length: int = DEFAULT_SUMMARY_MAX_LENGTH,
    block_private_addresses: bool = True,
) -> PageMetadata:
    """
    Fetch a URL and derive its title, favicon, and summary.

    This is the main entry point for bookmark creation and metadata previews.
    It always returns usable metadata and never raises:

    1. Normalize the URL; if it still doesn't parse, return the raw input as
       the title with a "could not process" summary.
    2. Fetch the page. Any failure (network, timeout, non-2xx) returns defaults
       (hostname title, no favicon, default summary). Non-HTML responses return
       defaults with the content type appended to the title.
    3. Extract title, favicon, and summary from the HTML, resolving the favicon
       against the final URL after redirects.
    4. If no summary could be derived from the page, try the summarization
       service once; its failure silently keeps the default summary.

    Args:
        raw_url:
            User-entered URL (scheme optional).
        timeout:
            Page fetch timeout in seconds.
        summary_endpoint:
            Summarization service prefix, or None to skip the remote fallback.
        summary_timeout:
            Summarization request timeout in seconds.
        summary_max_length:
            Maximum length of heuristic (paragraph/div) summaries.
        block_private_addresses:
            Refuse URLs that resolve to internal networks.
    """
    normalized = normalize_url(raw_url)
    parsed = parse_http_url(normalized)
    if parsed is None:
        logger.warning("Invalid URL: %s", normalized)
        return PageMetadata(title=raw_url, favicon=None, summary=INVALID_URL_SUMMARY)

    hostname = parsed.hostname
    defaults = PageMetadata(
        title=hostname,
        favicon=None,
        summary=default_summary(normalized),
    )

    result = await fetch_page(
        normalized,
        timeout=timeout,
        block_private_addresses=block_private_addresses,
    )

    if result.is_unsupported_content:
        logger.info("Content type is not HTML for %s: %s", normalized, result.content_type)
        mime = result.content_type.split(';')[0].strip()
        return PageMetadata(
            title=f'{hostname} ({mime})',
            favicon=defaults.favicon,
            summary=defaults.summary,
        )

    if result.html is None:
        logger.warning("Failed to fetch URL %s: %s", normalized, result.error)
        return defaults

    if result.final_url != normalized:
        logger.info("Followed redirects from %s to %s", normalized, result.final_url)

    html = result.html
    final_url = result.final_url

    favicon = extract_favicon(html, final_url)
    summary = extract_summary(html, summary_max_length)
    if summary is None and summary_endpoint:
        summary = await fetch_remote_summary(
            final_url, endpoint=summary_endpoint, timeout=summary_timeout,
        )

    # Summaries describe the host that actually served the page
    return PageMetadata(
        title=extract_title(html) or defaults.title,
        favicon=favicon,
        summary=summary or default_summary(final_url),
    )
