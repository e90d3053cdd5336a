"""URL normalization, parsing, and favicon resolution helpers."""
import logging
import re
from urllib.parse import SplitResult, urlsplit

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {'http': 80, 'https': 443}

# Characters allowed in the host portion of a URL (registered names, IPv4, bracketed IPv6)
HOST_PATTERN = re.compile(r"^[A-Za-z0-9\-._~%!$&'()*+,;=:\[\]]+$")


def normalize_url(url: str) -> str:
    """
    Ensure a user-entered URL carries a protocol.

    Trims surrounding whitespace and prepends ``https://`` unless the value
    already starts with ``http://`` or ``https://``. Never raises and does not
    check that the result is well-formed.
    """
    trimmed = url.strip()
    if not trimmed.startswith(('http://', 'https://')):
        return 'https://' + trimmed
    return trimmed


def parse_http_url(url: str) -> SplitResult | None:
    """
    Strictly parse an absolute http(s) URL.

    Returns the split result, or None if the value has no http(s) scheme, no
    host, whitespace or illegal characters in the host, or an invalid port.
    """
    if not url:
        return None
    try:
        parsed = urlsplit(url)
        # Accessing .port validates it (raises ValueError when out of range)
        _ = parsed.port
    except ValueError:
        return None
    if parsed.scheme not in DEFAULT_PORTS or not parsed.hostname:
        return None
    host = parsed.hostname
    if not host.isascii():
        # Internationalized names are checked in their punycode form
        try:
            host = host.encode('idna').decode('ascii')
        except UnicodeError:
            return None
    if not HOST_PATTERN.match(host):
        return None
    return parsed


def validate_and_normalize_url(url: str | None) -> str:
    """
    Normalize a user-entered URL and verify it parses.

    Raises:
        ValueError: If the URL is empty or cannot be parsed after normalization.
    """
    if not url or not url.strip():
        raise ValueError("URL cannot be empty")
    normalized = normalize_url(url)
    if parse_http_url(normalized) is None:
        raise ValueError("Invalid URL. Please enter a valid website address.")
    return normalized


def get_domain(url: str) -> str:
    """Return the hostname of a (possibly scheme-less) URL, or the input if unparseable."""
    parsed = parse_http_url(normalize_url(url))
    if parsed is None:
        return url
    return parsed.hostname


def url_origin(url: str) -> str | None:
    """Return ``scheme://host[:port]`` for a URL, omitting the scheme's default port."""
    parsed = parse_http_url(url)
    if parsed is None:
        return None
    host = parsed.hostname
    if ':' in host:
        host = f'[{host}]'
    port = parsed.port
    if port is not None and port != DEFAULT_PORTS[parsed.scheme]:
        return f'{parsed.scheme}://{host}:{port}'
    return f'{parsed.scheme}://{host}'


def resolve_favicon_url(base_url: str, favicon_path: str | None) -> str | None:
    """
    Resolve a favicon reference found in a page into an absolute URL.

    Resolution rules:
    - empty reference: ``{origin}/favicon.ico`` of the base URL
    - ``//host/path``: protocol-relative, gets ``https:`` prepended
    - ``/path``: joined to the base URL's origin
    - ``http(s)://...``: returned unchanged
    - anything else: joined to the *directory* of the base URL's path
      (the last path segment is dropped, it is usually a file)

    Args:
        base_url: URL of the page the reference came from (after redirects).
        favicon_path: Raw href value from the page.

    Returns:
        The absolute favicon URL, or None if the base URL or the result does not parse.
    """
    candidate = (favicon_path or '').strip()
    if not candidate:
        origin = url_origin(base_url)
        return f'{origin}/favicon.ico' if origin else None

    if candidate.startswith('//'):
        resolved = f'https:{candidate}'
    elif candidate.startswith(('http://', 'https://')):
        resolved = candidate
    else:
        base = parse_http_url(base_url)
        origin = url_origin(base_url)
        if base is None or origin is None:
            return None
        if candidate.startswith('/'):
            resolved = f'{origin}{candidate}'
        else:
            base_path = base.path or '/'
            if not base_path.endswith('/'):
                base_path = base_path[:base_path.rfind('/') + 1] or '/'
            resolved = f'{origin}{base_path}{candidate}'

    if parse_http_url(resolved) is None:
        logger.warning("Invalid favicon URL after resolution: %s", resolved)
        return None
    return resolved
