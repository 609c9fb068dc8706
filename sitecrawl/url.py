"""URL normalization, scope filtering, and link extraction helpers."""

from __future__ import annotations

import re
from typing import AbstractSet
from urllib.parse import SplitResult, quote, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup


DEFAULT_SCHEME = "https"
ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "ftp:", "#")

_HOSTNAME_RE = re.compile(r"^[a-z0-9_]([a-z0-9_-]*[a-z0-9_])?(\.[a-z0-9_]([a-z0-9_-]*[a-z0-9_])?)*\.?$")
_IPV6_RE = re.compile(r"^[0-9a-f:.]+$")


def _split(raw: str) -> SplitResult | None:
    candidate = raw if "://" in raw else f"{DEFAULT_SCHEME}://{raw}"
    try:
        return urlsplit(candidate)
    except ValueError:
        return None


def _valid_host(host: str) -> bool:
    if ":" in host:
        return bool(_IPV6_RE.match(host))
    return bool(_HOSTNAME_RE.match(host))


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed: SplitResult) -> str | None:
    host = (parsed.hostname or "").lower()
    if not host or not _valid_host(host):
        return None

    try:
        port = parsed.port
    except ValueError:
        return None

    userinfo = ""
    if parsed.username:
        userinfo = quote(parsed.username, safe="")
        if parsed.password:
            userinfo += ":" + quote(parsed.password, safe="")
        userinfo += "@"

    if ":" in host:
        host = f"[{host}]"

    if port is not None and not _has_default_port(parsed.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str) -> str:
    # An empty path stays empty, so "https://a.com" and "https://a.com/" are
    # distinct keys.
    if not path:
        return ""

    collapsed = re.sub(r"/{2,}", "/", path)
    if not collapsed.startswith("/"):
        collapsed = "/" + collapsed

    # Single trailing slash is dropped except for the domain root.
    if collapsed != "/" and collapsed.endswith("/"):
        collapsed = collapsed[:-1]
    return collapsed


def normalize_url(raw: str | None) -> str | None:
    """Canonicalize a URL into the key used for deduplication.

    Assumes `https` when no scheme is given, lower-cases scheme and host,
    drops default ports and the fragment, collapses repeated slashes, and
    strips a trailing slash unless the path is the domain root. Returns
    `None` for anything that cannot be crawled; never raises.
    """

    if raw is None:
        return None

    candidate = raw.strip()
    if not candidate:
        return None

    parsed = _split(candidate)
    if parsed is None:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return None

    netloc = _normalize_netloc(parsed)
    if netloc is None:
        return None

    return urlunsplit((scheme, netloc, _normalize_path(parsed.path), parsed.query, ""))


def host_from_url(url: str | None) -> str | None:
    """Extract the lower-cased host without a leading `www.`."""

    if not url or not url.strip():
        return None

    parsed = _split(url.strip())
    if parsed is None:
        return None

    host = (parsed.hostname or "").strip().lower()
    if not host or not _valid_host(host):
        return None

    if host.startswith("www."):
        host = host[4:]
    return host.strip(".") or None


def is_in_scope(url: str | None, allowed_hosts: AbstractSet[str]) -> bool:
    """Return True when the URL's host is exactly one of `allowed_hosts`."""

    host = host_from_url(url)
    return host is not None and host in allowed_hosts


def is_http_url(url: str) -> bool:
    """Return True if URL is absolute with an http(s) scheme and a host."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against the page URL.

    Returns the normalized absolute URL, or `None` for hrefs that are not
    crawlable links (other schemes, fragment-only, bare `/`).
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate == "/":
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None

    if not is_http_url(absolute):
        return None
    return normalize_url(absolute)


def extract_links_from_html(html: str | bytes, *, base_url: str) -> list[str]:
    """Extract resolved links from HTML anchor tags.

    Returns links in document order with duplicates removed.
    """

    soup = BeautifulSoup(html, "lxml")

    out: list[str] = []
    seen: set[str] = set()

    for element in soup.find_all("a", href=True):
        resolved = resolve_url(base_url, element.get("href"))
        if not resolved or resolved in seen:
            continue
        seen.add(resolved)
        out.append(resolved)

    return out


__all__ = [
    "ALLOWED_SCHEMES",
    "DEFAULT_SCHEME",
    "SKIP_HREF_PREFIXES",
    "extract_links_from_html",
    "host_from_url",
    "is_http_url",
    "is_in_scope",
    "normalize_url",
    "resolve_url",
]
