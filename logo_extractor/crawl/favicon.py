"""Locate a site's favicon for the fallback candidate and color extraction."""

from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError  # type: ignore[import-untyped]

from .fetch import url_responds
from .urls import normalize_url, origin_of

logger = logging.getLogger(__name__)

ICON_RELS: tuple[str, ...] = (
    "icon",
    "shortcut icon",
    "apple-touch-icon",
    "apple-touch-icon-precomposed",
)
COMMON_ICON_PATHS: tuple[str, ...] = (
    "/favicon.ico",
    "/favicon.png",
    "/apple-touch-icon.png",
)

_ICON_LINK_SCRIPT = """
(rels) => {
  for (const rel of rels) {
    const link = document.querySelector(`link[rel="${rel}"]`);
    if (link && link.getAttribute('href')) return link.getAttribute('href');
  }
  return null;
}
"""


def default_favicon_url(base_url: str) -> str | None:
    origin = origin_of(base_url)
    return f"{origin}/favicon.ico" if origin else None


def favicon_url_from_html(html: str, base_url: str) -> str | None:
    """Return the first icon link in *html*, else the conventional root path."""
    return declared_icon_url(html, base_url) or default_favicon_url(base_url)


def find_favicon_url(page: Any, base_url: str) -> str | None:
    """Return a best-effort absolute favicon URL for a rendered *page*."""
    try:
        href = page.evaluate(_ICON_LINK_SCRIPT, list(ICON_RELS))
    except PlaywrightError:
        logger.debug("Favicon lookup failed for %s", base_url, exc_info=True)
        href = None
    if isinstance(href, str) and href.strip():
        return normalize_url(href.strip(), base_url)
    return default_favicon_url(base_url)


def discover_favicon_url(html: str | None, base_url: str) -> str | None:
    """Return a favicon URL that is declared in *html* or answers at a common path."""
    declared = declared_icon_url(html, base_url)
    if declared:
        return declared
    origin = origin_of(base_url)
    if not origin:
        return None
    for path in COMMON_ICON_PATHS:
        candidate = f"{origin}{path}"
        if url_responds(candidate):
            return candidate
    return None


def declared_icon_url(html: str | None, base_url: str) -> str | None:
    """Return the absolute href of the first icon ``<link>`` in *html*."""
    if not html:
        return None
    links = BeautifulSoup(html, "lxml").find_all("link", href=True)
    for rel in ICON_RELS:
        for link in links:
            if " ".join(link.get("rel") or ()).lower() == rel and link["href"].strip():
                return normalize_url(link["href"].strip(), base_url)
    return None
