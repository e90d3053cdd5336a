"""
Tests for URL normalization, parsing, and favicon resolution.

Pure functions, no I/O.
"""
import pytest

from services.url_utils import (
    get_domain,
    normalize_url,
    parse_http_url,
    resolve_favicon_url,
    url_origin,
    validate_and_normalize_url,
)


class TestNormalizeUrl:
    """Tests for normalize_url."""

    @pytest.mark.parametrize(
        ('value', 'expected'),
        [
            ('example.com', 'https://example.com'),
            ('www.example.com/path?q=1', 'https://www.example.com/path?q=1'),
            ('  example.com  ', 'https://example.com'),
            ('ftp://example.com', 'https://ftp://example.com'),
            ('', 'https://'),
        ],
    )
    def test__normalize_url__prepends_https_without_scheme(self, value: str, expected: str) -> None:
        """Values without an http(s) prefix get https:// prepended (never raises)."""
        assert normalize_url(value) == expected

    @pytest.mark.parametrize(
        'value',
        ['http://example.com', 'https://example.com/a/b', '  https://example.com  '],
    )
    def test__normalize_url__keeps_existing_scheme(self, value: str) -> None:
        """Values already prefixed with http:// or https:// are only trimmed."""
        assert normalize_url(value) == value.strip()


class TestParseHttpUrl:
    """Tests for parse_http_url."""

    @pytest.mark.parametrize(
        'url',
        [
            'https://example.com',
            'http://localhost:8080/path',
            'https://[::1]/',
            'https://example.com/path with spaces',
        ],
    )
    def test__parse_http_url__accepts_valid(self, url: str) -> None:
        """Absolute http(s) URLs with a host parse."""
        assert parse_http_url(url) is not None

    @pytest.mark.parametrize(
        'url',
        [
            '',
            'example.com',
            'ftp://example.com',
            'https://',
            'https://exa mple.com',
            'https://example.com:99999',
            'https://example.com:abc',
        ],
    )
    def test__parse_http_url__rejects_invalid(self, url: str) -> None:
        """Missing scheme or host, whitespace in the host, and bad ports are rejected."""
        assert parse_http_url(url) is None

    def test__parse_http_url__accepts_internationalized_host(self) -> None:
        """Non-ASCII hostnames are valid; the unicode form is kept."""
        parsed = parse_http_url('https://münchen.de/karte')
        assert parsed is not None
        assert parsed.hostname == 'münchen.de'

    def test__parse_http_url__rejects_invalid_internationalized_host(self) -> None:
        """A non-ASCII host that cannot be punycode-encoded is rejected."""
        assert parse_http_url('https://münchen..de') is None

    def test__validate_and_normalize_url__internationalized_host(self) -> None:
        """A scheme-less IDN address is normalized instead of rejected."""
        assert validate_and_normalize_url('münchen.de') == 'https://münchen.de'


class TestValidateAndNormalizeUrl:
    """Tests for validate_and_normalize_url."""

    def test__validate_and_normalize_url__normalizes(self) -> None:
        """A scheme-less URL is returned with https://."""
        assert validate_and_normalize_url(' example.com ') == 'https://example.com'

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test__validate_and_normalize_url__empty(self, value: str | None) -> None:
        """Blank input is rejected."""
        with pytest.raises(ValueError, match='URL cannot be empty'):
            validate_and_normalize_url(value)

    def test__validate_and_normalize_url__unparseable(self) -> None:
        """Input that doesn't parse after normalization is rejected."""
        with pytest.raises(ValueError, match='Invalid URL'):
            validate_and_normalize_url('not a url')


class TestGetDomainAndOrigin:
    """Tests for get_domain and url_origin."""

    def test__get_domain__returns_hostname(self) -> None:
        """Hostname of a URL, with or without scheme."""
        assert get_domain('https://www.example.com/path') == 'www.example.com'
        assert get_domain('example.org') == 'example.org'

    def test__get_domain__returns_input_when_unparseable(self) -> None:
        """Unparseable input comes back unchanged."""
        assert get_domain('not a url') == 'not a url'

    @pytest.mark.parametrize(
        ('url', 'expected'),
        [
            ('https://example.com/a/b?c=d', 'https://example.com'),
            ('https://example.com:443/', 'https://example.com'),
            ('http://example.com:80/', 'http://example.com'),
            ('http://example.com:8080/x', 'http://example.com:8080'),
            ('https://[::1]:8443/', 'https://[::1]:8443'),
            ('not a url', None),
        ],
    )
    def test__url_origin(self, url: str, expected: str | None) -> None:
        """Origin omits path, query, and the scheme's default port."""
        assert url_origin(url) == expected


class TestResolveFaviconUrl:
    """Tests for resolve_favicon_url."""

    def test__resolve_favicon_url__empty_uses_origin_favicon(self) -> None:
        """An empty reference resolves to {origin}/favicon.ico."""
        assert resolve_favicon_url('https://example.com/a/b', '') == 'https://example.com/favicon.ico'
        assert resolve_favicon_url('https://example.com:8443/', None) == 'https://example.com:8443/favicon.ico'

    def test__resolve_favicon_url__root_relative(self) -> None:
        """A /path reference is joined to the origin."""
        assert resolve_favicon_url('https://example.com/page', '/path') == 'https://example.com/path'

    def test__resolve_favicon_url__protocol_relative(self) -> None:
        """A //host/path reference gets https: prepended."""
        assert (
            resolve_favicon_url('https://example.com', '//cdn.example.com/path')
            == 'https://cdn.example.com/path'
        )

    def test__resolve_favicon_url__protocol_relative_on_http_page(self) -> None:
        """Protocol-relative references always become https, even from an http page."""
        assert (
            resolve_favicon_url('http://example.com', '//cdn.example.com/i.png')
            == 'https://cdn.example.com/i.png'
        )

    def test__resolve_favicon_url__absolute_unchanged(self) -> None:
        """Absolute http(s) references are returned as-is."""
        icon = 'http://static.example.org/icon.png'
        assert resolve_favicon_url('https://example.com', icon) == icon

    @pytest.mark.parametrize(
        ('base', 'expected'),
        [
            ('https://example.com/blog/post', 'https://example.com/blog/icon.png'),
            ('https://example.com/blog/', 'https://example.com/blog/icon.png'),
            ('https://example.com', 'https://example.com/icon.png'),
            ('https://example.com/page', 'https://example.com/icon.png'),
        ],
    )
    def test__resolve_favicon_url__relative_uses_base_directory(
        self, base: str, expected: str,
    ) -> None:
        """Relative references join the directory of the base path."""
        assert resolve_favicon_url(base, 'icon.png') == expected

    def test__resolve_favicon_url__unparseable_base(self) -> None:
        """Without a usable base nothing can be resolved."""
        assert resolve_favicon_url('not a url', '') is None
        assert resolve_favicon_url('not a url', 'icon.png') is None

    def test__resolve_favicon_url__invalid_result(self) -> None:
        """References that don't form a valid URL give None."""
        assert resolve_favicon_url('https://example.com', '//bad host/icon.png') is None
