"""URL parsing and site identity helpers.

Every function here fails soft: malformed input yields an empty string (or the
original value for :func:`normalize_url`) instead of raising.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlparse

from ..config import COMMON_SUBDOMAINS, DEFAULT_TABLES, ScoringTables
from ..io.models import SiteContext

logger = logging.getLogger(__name__)

_EXTENSION_PATTERN = re.compile(r"\.([a-z0-9]+)$", re.IGNORECASE)


def normalize_url(url: str, base: str) -> str:
    """Return an absolute URL by resolving *url* against *base*."""
    if not isinstance(url, str):
        return url
    if url.startswith("data:"):
        return url
    try:
        return urljoin(base, url)
    except (TypeError, ValueError):
        logger.debug("Failed normalising %s against %s", url, base, exc_info=True)
        return url


def pathname_of(url: str) -> str:
    if not url or url.startswith("data:"):
        return ""
    try:
        return urlparse(url).path
    except (TypeError, ValueError):
        return ""


def filename_of(url: str) -> str:
    """Return the last path segment of *url* without its query string."""
    if not url or url.startswith("data:"):
        return ""
    try:
        path = urlparse(url).path
    except (TypeError, ValueError):
        path = url.split("#", 1)[0]
    return path.rsplit("/", 1)[-1].split("?", 1)[0]


def extension_of(filename: str) -> str:
    if not filename:
        return ""
    match = _EXTENSION_PATTERN.search(filename)
    return match.group(1).lower() if match else ""


def domain_of(url: str) -> str:
    """Return the lowercase hostname of *url* with any leading ``www.`` removed."""
    if not url or url.startswith("data:"):
        return ""
    try:
        host = urlparse(url).hostname or ""
    except (TypeError, ValueError):
        return ""
    return _strip_www(host.lower())


def site_name_of(
    hostname: str, common_subdomains: frozenset[str] = COMMON_SUBDOMAINS
) -> str:
    """Derive a short brand token from *hostname*.

    ``invest.debrecen.hu`` yields ``debrecen`` because ``invest`` is a generic
    subdomain; ``brand.co.uk`` yields ``brand`` because ``co`` is too short to
    be the brand. This is a lossy heuristic, not identity resolution.
    """
    if not hostname:
        return ""
    domain = _strip_www(hostname.strip().lower().rstrip("."))
    parts = [part for part in domain.split(".") if part]
    if len(parts) >= 3:
        main_part = parts[-2]
        subdomain_part = parts[-3]
        if subdomain_part in common_subdomains:
            return main_part
        if len(main_part) <= 2 or main_part.isdigit():
            return subdomain_part
        return main_part
    if len(parts) == 2:
        return parts[0]
    return domain


def site_name_from_url(
    url: str, common_subdomains: frozenset[str] = COMMON_SUBDOMAINS
) -> str:
    try:
        host = urlparse(url).hostname or ""
    except (TypeError, ValueError):
        return ""
    return site_name_of(host, common_subdomains)


def _strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*, or ``""`` when it has no host."""
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


def site_context_for(url: str, tables: ScoringTables = DEFAULT_TABLES) -> SiteContext:
    """Build the :class:`SiteContext` used to score candidates found on *url*."""
    return SiteContext(
        site_name=site_name_from_url(url, tables.common_subdomains),
        site_domain=domain_of(url),
    )


def is_valid_url(url: str) -> bool:
    """Return ``True`` for absolute http(s) URLs with a host."""
    if not url or not url.startswith("http"):
        return False
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
