"""Heuristic logo scoring for harvested image candidates."""

from __future__ import annotations

import re
from typing import Dict

from ..config import DEFAULT_TABLES, ScoringTables
from ..io.models import ImageCandidate, SiteContext, SourceKind

WEIGHTS: Dict[str, int] = {
    # site identity
    "site_name": 50,
    "site_name_prefix": 15,
    "logo_without_site_other_org": -30,
    "logo_without_site": -20,
    "logo_without_site_weak": -10,
    "third_party": -40,
    "third_party_alt": -15,
    "partner_path": -30,
    "partner_word": -20,
    "hash_filename": -10,
    # source type
    "vector_source": 30,
    "vector_header_nav": 10,
    "vector_top_left": 8,
    "vector_homepage": 10,
    "logo_fragment": 25,
    # domain affinity
    "same_domain": 15,
    "brand_cdn": 10,
    # lexical
    "logo_keyword": 10,
    "logo_filename": 15,
    "logo_directory": 10,
    "logo_naming": 10,
    "logo_clean": 5,
    "logo_variant": 10,
    "main_logo_directory": 15,
    "secondary_keyword": 5,
    # alt text
    "alt_logo": 15,
    "alt_site_name": 20,
    "alt_single_token": 8,
    "alt_company": 5,
    # class / id
    "attr_logo": 20,
    "attr_brand": 10,
    "attr_header": 5,
    "parent": 5,
    # viewport position
    "top_200": 8,
    "top_100": 5,
    "left_100": 5,
    "top_left_logo": 5,
    # geometry
    "medium_width": 5,
    "medium_height": 3,
    "aspect_ratio": 5,
    "small": -3,
    "large": -3,
    "large_with_logo_signals": -1,
    # structure
    "header": 10,
    "navigation": 8,
    "homepage_anchor": 10,
    "only_child": 5,
}

_HEX_RUN = re.compile(r"[0-9a-f]{20,}")
_DIGIT_RUN = re.compile(r"\d{10,}")
_LOGO_PREFIX = re.compile(r"^logo[-_]")
_LOGO_INFIX = re.compile(r"[-_]logo")
_LOGO_VARIANT = re.compile(r"^logo-(full|white|black|color|main|site|primary)")
_LOGO_DIRECTORIES = ("/assets/", "/images/", "/logo", "/brand")
_MAIN_LOGO_URL_DIRECTORIES = (
    "/assets/images/",
    "/assets/logo",
    "/images/logo",
    "/static/images/",
    "/static/logo",
)
_MAIN_LOGO_PATH_DIRECTORIES = ("/assets/images/", "/images/logo")
_PARENT_TOKENS = ("logo", "brand", "header", "nav", "site-identity")


def score_candidate(
    candidate: ImageCandidate,
    site: SiteContext,
    tables: ScoringTables = DEFAULT_TABLES,
    weights: Dict[str, int] = WEIGHTS,
) -> int:
    """Return the additive logo score for *candidate* on *site*.

    The function is pure: it reads only the candidate fields, the site context
    and the supplied tables. Missing metadata contributes nothing.
    """
    signals = _Signals(candidate, site, tables)
    total = 0
    total += _identity_score(signals, weights)
    total += _third_party_score(signals, weights)
    total += _partner_score(signals, tables, weights)
    total += _source_score(signals, weights)
    total += _domain_score(signals, weights)
    total += _lexical_score(signals, tables, weights)
    total += _alt_score(signals, weights)
    total += _attribute_score(signals, weights)
    total += _position_score(signals, weights)
    total += _geometry_score(signals, weights)
    total += _context_score(signals, weights)
    return total


class _Signals:
    """Lower-cased views of a candidate shared by the scoring rules."""

    def __init__(
        self, candidate: ImageCandidate, site: SiteContext, tables: ScoringTables
    ) -> None:
        self.candidate = candidate
        self.url = (candidate.url or "").lower()
        self.filename = (candidate.filename or "").lower()
        self.path = (candidate.pathname or "").lower()
        self.domain = (candidate.domain or "").lower()
        self.alt = (candidate.alt_text or "").lower()
        self.css_class = (candidate.css_class or "").lower()
        self.element_id = (candidate.element_id or "").lower()
        self.site_name = (site.site_name or "").lower()
        self.site_domain = (site.site_domain or "").lower()
        self.has_identity = len(self.site_name) > 2
        self.other_organization_words = tables.other_organization_words

        self.logo_in_filename = "logo" in self.filename
        self.logo_in_path = "logo" in self.path
        self.has_site_name = self.has_identity and (
            self.site_name in self.filename
            or self.site_name in self.url
            or self.site_name in self.path
        )
        self.logo_in_class_or_id = (
            "logo" in self.css_class or "logo" in self.element_id
        )

        matched = [
            name for name in tables.third_party_names if self._mentions(name)
        ]
        self.own_service = any(name == self.site_name for name in matched)
        self.foreign_service = any(name != self.site_name for name in matched)
        self.alt_is_foreign_service = bool(self.alt) and any(
            name in self.alt and name != self.site_name
            for name in tables.third_party_names
        )

    def _mentions(self, name: str) -> bool:
        return (
            name in self.filename
            or f"/{name}" in self.url
            or f"/{name}" in self.path
        )


def _identity_score(s: _Signals, w: Dict[str, int]) -> int:
    if not s.has_identity:
        return 0
    if s.has_site_name:
        score = w["site_name"]
        if s.filename.startswith(s.site_name):
            score += w["site_name_prefix"]
        return score
    if not s.logo_in_filename:
        return 0
    if _has_word(s.filename, s.other_organization_words):
        return w["logo_without_site_other_org"]
    if "logo" in s.alt or s.logo_in_class_or_id:
        return w["logo_without_site_weak"]
    return w["logo_without_site"]


def _has_word(text: str, words: tuple[str, ...]) -> bool:
    if not words:
        return False
    pattern = r"\b(" + "|".join(re.escape(word) for word in words) + r")\b"
    return re.search(pattern, text) is not None


def _third_party_score(s: _Signals, w: Dict[str, int]) -> int:
    if s.foreign_service and not s.own_service:
        return w["third_party"]
    return 0


def _partner_score(s: _Signals, tables: ScoringTables, w: Dict[str, int]) -> int:
    score = 0
    if any(
        segment in s.url or segment in s.path
        for segment in tables.partner_path_segments
    ):
        score += w["partner_path"]
    if _HEX_RUN.search(s.filename) or _DIGIT_RUN.search(s.filename):
        score += w["hash_filename"]
    has_partner_word = any(
        word in s.filename or f"/{word}/" in s.url for word in tables.partner_words
    )
    if has_partner_word and not s.logo_in_filename:
        score += w["partner_word"]
    return score


def _source_score(s: _Signals, w: Dict[str, int]) -> int:
    candidate = s.candidate
    if not candidate.is_vector:
        return 0
    score = w["vector_source"]
    if candidate.source_kind is SourceKind.VECTOR_SPRITE and candidate.is_logo_fragment:
        score += w["logo_fragment"]
    return score


def _domain_score(s: _Signals, w: Dict[str, int]) -> int:
    if not s.domain or not s.site_domain:
        return 0
    score = 0
    if s.domain == s.site_domain or s.domain.endswith("." + s.site_domain):
        score += w["same_domain"]
    if s.site_domain.replace(".", "", 1) in s.domain or (
        s.site_domain.replace(".", "-", 1) in s.url
    ):
        score += w["brand_cdn"]
    return score


def _lexical_score(s: _Signals, tables: ScoringTables, w: Dict[str, int]) -> int:
    score = 0
    if s.logo_in_filename or s.logo_in_path:
        score += w["logo_keyword"]
    if s.logo_in_filename:
        score += w["logo_filename"]
        if any(d in s.url or d in s.path for d in _LOGO_DIRECTORIES):
            score += w["logo_directory"]
        if (
            _LOGO_PREFIX.search(s.filename)
            or _LOGO_INFIX.search(s.filename)
            or s.filename in ("logo.png", "logo.svg")
        ):
            score += w["logo_naming"]
        if _LOGO_PREFIX.search(s.filename) and not _HEX_RUN.search(s.filename):
            score += w["logo_clean"]
        if _LOGO_VARIANT.search(s.filename):
            score += w["logo_variant"]
        if any(d in s.url for d in _MAIN_LOGO_URL_DIRECTORIES) or any(
            d in s.path for d in _MAIN_LOGO_PATH_DIRECTORIES
        ):
            score += w["main_logo_directory"]
    for keyword in tables.secondary_keywords:
        if keyword in s.filename or keyword in s.path:
            score += w["secondary_keyword"]
    return score


def _alt_score(s: _Signals, w: Dict[str, int]) -> int:
    if not s.alt:
        return 0
    score = 0
    if "logo" in s.alt:
        score += w["alt_logo"]
    if s.has_identity and s.site_name in s.alt:
        score += w["alt_site_name"]
    if s.foreign_service and s.alt_is_foreign_service:
        score += w["third_party_alt"]
    if (
        len(s.alt) < 50
        and " " not in s.alt
        and (not s.foreign_service or s.alt == s.site_name)
    ):
        score += w["alt_single_token"]
    if "company" in s.alt or "home" in s.alt:
        score += w["alt_company"]
    return score


def _attribute_score(s: _Signals, w: Dict[str, int]) -> int:
    score = _single_attribute_score(s.css_class, w) + _single_attribute_score(
        s.element_id, w
    )
    parent_text = " ".join(
        value.lower()
        for value in (s.candidate.parent_css_class, s.candidate.parent_element_id)
        if value
    )
    if any(token in parent_text for token in _PARENT_TOKENS):
        score += w["parent"]
    return score


def _single_attribute_score(value: str, w: Dict[str, int]) -> int:
    if not value:
        return 0
    if "logo" in value:
        return w["attr_logo"]
    if "brand" in value or "site-identity" in value:
        return w["attr_brand"]
    if "header" in value or "nav" in value:
        return w["attr_header"]
    return 0


def _position_score(s: _Signals, w: Dict[str, int]) -> int:
    box = s.candidate.bounding_box
    if box is None:
        return 0
    score = 0
    if box.top < 200:
        score += w["top_200"]
    if box.top < 100:
        score += w["top_100"]
    if box.left < 100:
        score += w["left_100"]
    if box.top < 200 and box.left < 200 and s.logo_in_class_or_id:
        score += w["top_left_logo"]
    return score


def _geometry_score(s: _Signals, w: Dict[str, int]) -> int:
    width = s.candidate.width or 0
    height = s.candidate.height or 0
    if not width or not height:
        return 0
    score = 0
    if 100 <= width <= 400:
        score += w["medium_width"]
    if 100 <= height <= 400:
        score += w["medium_height"]
    if 1 <= width / height <= 3:
        score += w["aspect_ratio"]
    if width < 50 or height < 50:
        score += w["small"]
    if width > 800 or height > 800:
        if s.logo_in_class_or_id or s.alt:
            score += w["large_with_logo_signals"]
        else:
            score += w["large"]
    return score


def _context_score(s: _Signals, w: Dict[str, int]) -> int:
    candidate = s.candidate
    score = 0
    if candidate.is_in_header:
        score += w["header"]
    if candidate.is_in_navigation:
        score += w["navigation"]
    if candidate.is_in_homepage_anchor:
        score += w["homepage_anchor"]
    if candidate.is_only_child_of_anchor:
        score += w["only_child"]
    if candidate.is_vector:
        if candidate.is_in_header or candidate.is_in_navigation:
            score += w["vector_header_nav"]
        box = candidate.bounding_box
        if box is not None and box.top < 200 and box.left < 200:
            score += w["vector_top_left"]
        if candidate.is_in_homepage_anchor:
            score += w["vector_homepage"]
    return score
