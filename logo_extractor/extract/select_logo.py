"""Rank scored candidates and select the most plausible logo."""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Dict, Iterable, Sequence

from ..crawl.urls import domain_of, extension_of, filename_of, pathname_of
from ..io.models import ImageCandidate, SiteContext, SourceKind

logger = logging.getLogger(__name__)

TIE_BAND = 15

SOURCE_PRIORITY: Dict[SourceKind, int] = {
    SourceKind.TAG_REFERENCE: 1,
    SourceKind.INLINE_VECTOR: 1,
    SourceKind.VECTOR_SPRITE: 1,
    SourceKind.CSS_BACKGROUND: 2,
    SourceKind.INLINE_STYLE_BACKGROUND: 3,
    SourceKind.MARKUP_TEXT_SCAN: 4,
    SourceKind.SPRITE_MARKUP_SCAN: 4,
    SourceKind.DATA_ATTRIBUTE_SCAN: 5,
    SourceKind.FAVICON_FALLBACK: 7,
}


def rank(
    candidates: Iterable[ImageCandidate], site: SiteContext | None = None
) -> list[ImageCandidate]:
    """Return *candidates* in ranked order without modifying them.

    Candidates naming the site come first, then higher scores, with vector
    candidates promoted over rasters that beat them by at most ``TIE_BAND``
    points. Remaining ties follow :data:`SOURCE_PRIORITY`.
    """
    site = site or SiteContext()

    def compare(a: ImageCandidate, b: ImageCandidate) -> int:
        if site.has_identity:
            a_named = names_site(a, site)
            b_named = names_site(b, site)
            if a_named != b_named:
                return -1 if a_named else 1

        if a.score is not None and b.score is not None:
            gap = abs(a.score - b.score)
            if gap <= TIE_BAND and a.is_vector != b.is_vector:
                return -1 if a.is_vector else 1
            if a.score != b.score:
                return b.score - a.score

        return _priority(a) - _priority(b)

    return sorted(candidates, key=cmp_to_key(compare))


def select_top(
    candidates: Sequence[ImageCandidate], site: SiteContext | None = None
) -> ImageCandidate | None:
    """Return the winning candidate, or ``None`` when nothing scores above zero."""
    for candidate in candidates:
        if is_conclusive(candidate):
            logger.debug("Conclusive header background logo: %s", candidate.url[:80])
            return candidate

    viable = [candidate for candidate in candidates if candidate.is_viable]
    if not viable:
        return None
    return rank(viable, site)[0]


def is_conclusive(candidate: ImageCandidate) -> bool:
    """Return ``True`` for an inline SVG background marked as the header logo."""
    return (
        candidate.source_kind is SourceKind.CSS_BACKGROUND
        and candidate.url.startswith("data:image/svg+xml")
        and "logo" in (candidate.css_class or "").lower()
        and candidate.is_in_header
    )


def names_site(candidate: ImageCandidate, site: SiteContext) -> bool:
    if not site.has_identity:
        return False
    name = site.site_name.lower()
    return name in (candidate.filename or "").lower() or name in candidate.url.lower()


def favicon_candidate(url: str) -> ImageCandidate:
    """Build the score-zero fallback record for a favicon *url*."""
    filename = filename_of(url) or "favicon.ico"
    return ImageCandidate(
        url=url,
        source_kind=SourceKind.FAVICON_FALLBACK,
        filename=filename,
        extension=extension_of(filename) or "ico",
        pathname=pathname_of(url),
        domain=domain_of(url),
        score=0,
        is_favicon=True,
    )


def with_favicon(
    candidates: Sequence[ImageCandidate], favicon_url: str | None
) -> list[ImageCandidate]:
    """Append a favicon fallback unless its URL was already discovered."""
    result = list(candidates)
    if not favicon_url:
        return result
    if any(candidate.url == favicon_url for candidate in result):
        return result
    result.append(favicon_candidate(favicon_url))
    return result


def _priority(candidate: ImageCandidate) -> int:
    return SOURCE_PRIORITY.get(candidate.source_kind, 6)
