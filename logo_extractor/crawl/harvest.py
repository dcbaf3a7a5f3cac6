"""Harvest image candidates from a rendered page snapshot."""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Mapping, TypeVar

from ..config import DEFAULT_TABLES, ScoringTables
from ..extract.scoring import score_candidate
from ..io.models import BoundingBox, ImageCandidate, SiteContext, SourceKind
from .snapshot import Snapshot, capture_snapshot
from .urls import (
    domain_of,
    extension_of,
    filename_of,
    normalize_url,
    origin_of,
    pathname_of,
    site_context_for,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ElementRecord = Mapping[str, Any]

_ASSET_DIRECTORIES = ("/images/", "/img/", "/assets/", "/static/")
_CSS_URL = re.compile(r"url\(['\"]?([^'\")]+)['\"]?\)")
_INLINE_BACKGROUND = re.compile(
    r"background-image:\s*url\(['\"]?([^'\")]+)['\"]?\)", re.IGNORECASE
)
_ABSOLUTE_IMAGE_URL = re.compile(
    r"(https?://[^\s\"'<>]*\.(?:png|jpg|jpeg|svg|webp|gif|ico|bmp|tiff)[^\s\"'<>]*)",
    re.IGNORECASE,
)
_SPRITE_HREF = re.compile(
    r"(?:href|xlink:href)\s*=\s*[\"']?([^\"'\s<>]*\.svg[^\"'\s<>]*)", re.IGNORECASE
)
_MARKUP_DEBRIS = (
    re.compile(r"&quot;", re.IGNORECASE),
    re.compile(r"%7B.*%7D", re.IGNORECASE),
    re.compile(r"\[0,.*\]"),
)
_DATA_URI_TYPE = re.compile(r"^data:image/([a-z0-9.+-]+)", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"^\s*(-?[0-9]*\.?[0-9]+)")
_SPRITE_PREFIXES = ("/", "./", "../", "http")
_MARKUP_KINDS = (SourceKind.MARKUP_TEXT_SCAN, SourceKind.SPRITE_MARKUP_SCAN)


@dataclass(frozen=True)
class _HarvestContext:
    base_url: str
    origin: str
    tables: ScoringTables


def harvest(
    page: Any, base_url: str, tables: ScoringTables = DEFAULT_TABLES
) -> list[ImageCandidate]:
    """Return scored, deduplicated candidates discovered on a live *page*."""
    return harvest_snapshot(capture_snapshot(page), base_url, tables)


def harvest_snapshot(
    snapshot: Snapshot, base_url: str, tables: ScoringTables = DEFAULT_TABLES
) -> list[ImageCandidate]:
    """Turn a DOM *snapshot* into candidates, scoring each as it is created."""
    site = site_context_for(base_url, tables)
    context = _HarvestContext(
        base_url=base_url,
        origin=str(snapshot.get("origin") or origin_of(base_url)),
        tables=tables,
    )

    channels: tuple[Callable[[Snapshot, _HarvestContext], Iterable[ImageCandidate]], ...] = (
        _tag_references,
        _inline_vectors,
        _sprite_references,
        _css_backgrounds,
        _inline_style_backgrounds,
        _markup_text_scan,
        _sprite_markup_scan,
        _data_attribute_scan,
    )

    discovered: list[ImageCandidate] = []
    for channel in channels:
        try:
            for candidate in channel(snapshot, context):
                discovered.append(_scored(candidate, site, tables))
        except Exception:  # noqa: BLE001 - best-effort aggregation
            logger.debug("Harvest channel %s failed", channel.__name__, exc_info=True)

    candidates = deduplicate(discovered)
    logger.debug(
        "Harvested %d candidates (%d before dedupe) from %s",
        len(candidates),
        len(discovered),
        base_url,
    )
    return candidates


def collect_best_effort(
    items: Iterable[T], build: Callable[[T], R | None], label: str
) -> list[R]:
    """Apply *build* to every item, keeping successes and logging failures."""
    results: list[R] = []
    for item in items:
        try:
            result = build(item)
        except Exception:  # noqa: BLE001 - one bad element must not abort
            logger.debug("Skipping %s element", label, exc_info=True)
            continue
        if result is not None:
            results.append(result)
    return results


def deduplicate(candidates: Iterable[ImageCandidate]) -> list[ImageCandidate]:
    """Keep one candidate per URL, preferring logo-flagged sprite references."""
    positions: dict[str, int] = {}
    kept: list[ImageCandidate] = []
    for candidate in candidates:
        position = positions.get(candidate.url)
        if position is None:
            positions[candidate.url] = len(kept)
            kept.append(candidate)
        elif supersedes(candidate, kept[position]):
            kept[position] = candidate
    return kept


def supersedes(incoming: ImageCandidate, existing: ImageCandidate) -> bool:
    """Return ``True`` when *incoming* should replace *existing* for one URL."""
    if incoming.source_kind is not SourceKind.VECTOR_SPRITE:
        return False
    promotable = (
        incoming.is_logo_fragment
        or incoming.is_in_header
        or incoming.is_in_logo_container
    )
    if not promotable:
        return False
    if existing.source_kind in _MARKUP_KINDS:
        return True
    return (
        existing.source_kind is SourceKind.VECTOR_SPRITE
        and incoming.is_logo_fragment
        and not existing.is_logo_fragment
    )


def _scored(
    candidate: ImageCandidate, site: SiteContext, tables: ScoringTables
) -> ImageCandidate:
    if candidate.source_kind is SourceKind.DATA_ATTRIBUTE_SCAN:
        return candidate
    return replace(candidate, score=score_candidate(candidate, site, tables))


# -- channels ---------------------------------------------------------------


def _tag_references(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        source = next(
            (
                value.strip()
                for value in record.get("sources") or ()
                if isinstance(value, str) and _is_fetchable(value.strip())
            ),
            None,
        )
        if not source:
            return None
        url = normalize_url(source, context.base_url)
        if not _accepts(url, context.tables):
            return None
        return _element_candidate(
            url,
            SourceKind.TAG_REFERENCE,
            record,
            context,
            width=_leading_number(record.get("width")),
            height=_leading_number(record.get("height")),
        )

    return collect_best_effort(snapshot.get("images") or (), build, "image")


def _inline_vectors(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        markup = record.get("markup")
        if not markup:
            return None
        encoded = base64.b64encode(markup.encode("utf-8")).decode("ascii")
        width, height = _vector_dimensions(record)
        candidate = _element_candidate(
            f"data:image/svg+xml;base64,{encoded}",
            SourceKind.INLINE_VECTOR,
            record,
            context,
            width=width,
            height=height,
        )
        return replace(
            candidate,
            filename=_inline_vector_filename(record),
            extension="svg",
            alt_text=record.get("aria_label") or record.get("title") or None,
        )

    return collect_best_effort(snapshot.get("vectors") or (), build, "inline vector")


def _sprite_references(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        href = (record.get("href") or "").strip()
        svg = record.get("svg")
        if not href or not svg:
            return None
        file_part, _, fragment = href.partition("#")
        file_part = file_part.strip()
        if not file_part or not file_part.startswith(_SPRITE_PREFIXES):
            return None
        fragment_lower = fragment.lower()
        is_logo_fragment = bool(fragment) and any(
            token in fragment_lower for token in context.tables.logo_fragment_tokens
        )
        url = normalize_url(file_part, context.base_url)
        width, height = _vector_dimensions(svg)
        candidate = _element_candidate(
            url, SourceKind.VECTOR_SPRITE, svg, context, width=width, height=height
        )
        return replace(
            candidate,
            filename=filename_of(url) or "svg-sprite.svg",
            extension="svg",
            parent_css_class=_sprite_parent_class(svg),
            alt_text=svg.get("aria_label")
            or svg.get("title")
            or svg.get("anchor_title")
            or None,
            sprite_fragment=fragment or None,
            is_logo_fragment=is_logo_fragment,
        )

    return collect_best_effort(snapshot.get("sprites") or (), build, "sprite")


def _css_backgrounds(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        match = _CSS_URL.search(record.get("computed") or "")
        if not match:
            return None
        return _background_candidate(
            match.group(1),
            SourceKind.CSS_BACKGROUND,
            record,
            context,
        )

    return collect_best_effort(
        snapshot.get("backgrounds") or (), build, "css background"
    )


def _inline_style_backgrounds(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        match = _INLINE_BACKGROUND.search(record.get("inline_style") or "")
        if not match:
            return None
        return _background_candidate(
            match.group(1),
            SourceKind.INLINE_STYLE_BACKGROUND,
            record,
            context,
        )

    return collect_best_effort(
        snapshot.get("backgrounds") or (), build, "inline style"
    )


def _markup_text_scan(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(match: re.Match[str]) -> ImageCandidate | None:
        raw = match.group(1)
        if any(pattern.search(raw) for pattern in _MARKUP_DEBRIS):
            return None
        return _bare_candidate(
            normalize_url(raw, context.base_url), SourceKind.MARKUP_TEXT_SCAN
        )

    html = snapshot.get("html") or ""
    return collect_best_effort(_ABSOLUTE_IMAGE_URL.finditer(html), build, "markup url")


def _sprite_markup_scan(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(match: re.Match[str]) -> ImageCandidate | None:
        sprite_url = match.group(1).split("#", 1)[0].strip()
        if not sprite_url:
            return None
        url = normalize_url(sprite_url, context.base_url)
        if extension_of(filename_of(url)) != "svg" and ".svg" not in url.lower():
            return None
        candidate = _bare_candidate(url, SourceKind.SPRITE_MARKUP_SCAN)
        return replace(
            candidate,
            filename=filename_of(url) or "svg-sprite.svg",
            extension="svg",
        )

    html = snapshot.get("html") or ""
    return collect_best_effort(_SPRITE_HREF.finditer(html), build, "markup sprite")


def _data_attribute_scan(
    snapshot: Snapshot, context: _HarvestContext
) -> list[ImageCandidate]:
    def build(record: ElementRecord) -> ImageCandidate | None:
        match = _ABSOLUTE_IMAGE_URL.search(record.get("value") or "")
        if not match:
            return None
        candidate = _bare_candidate(
            normalize_url(match.group(1), context.base_url),
            SourceKind.DATA_ATTRIBUTE_SCAN,
        )
        return replace(candidate, attribute_name=record.get("name"))

    return collect_best_effort(
        snapshot.get("data_attributes") or (), build, "data attribute"
    )


# -- record helpers ---------------------------------------------------------


def _bare_candidate(url: str, kind: SourceKind) -> ImageCandidate:
    filename = filename_of(url)
    return ImageCandidate(
        url=url,
        source_kind=kind,
        filename=filename or "unnamed",
        extension=extension_of(filename) or _data_uri_extension(url),
        pathname=pathname_of(url),
        domain=domain_of(url),
    )


def _element_candidate(
    url: str,
    kind: SourceKind,
    record: ElementRecord,
    context: _HarvestContext,
    *,
    width: float = 0,
    height: float = 0,
    structural: bool = True,
) -> ImageCandidate:
    candidate = _bare_candidate(url, kind)
    fields: dict[str, Any] = {
        "css_class": record.get("class") or None,
        "element_id": record.get("id") or None,
        "tag_name": record.get("tag") or None,
        "width": width,
        "height": height,
        "bounding_box": _bounding_box(record.get("rect")),
        "is_in_header": bool(record.get("in_header")),
        "is_in_navigation": bool(record.get("in_nav")),
        "is_in_logo_container": bool(record.get("in_logo_container")),
    }
    if structural:
        fields.update(
            {
                "alt_text": record.get("alt") or None,
                "parent_css_class": record.get("parent_class") or None,
                "parent_element_id": record.get("parent_id") or None,
                "is_in_homepage_anchor": _targets_homepage(
                    record.get("anchor_href"), context.origin
                ),
                "is_only_child_of_anchor": bool(record.get("only_child_of_anchor")),
            }
        )
    return replace(candidate, **fields)


def _background_candidate(
    source: str,
    kind: SourceKind,
    record: ElementRecord,
    context: _HarvestContext,
) -> ImageCandidate | None:
    source = source.strip()
    if not _is_fetchable(source):
        return None
    url = normalize_url(source, context.base_url)
    if not _accepts(url, context.tables):
        return None
    box = _bounding_box(record.get("rect"))
    return _element_candidate(
        url,
        kind,
        record,
        context,
        width=box.width if box else 0,
        height=box.height if box else 0,
        structural=False,
    )


def _is_fetchable(value: str) -> bool:
    return value.startswith("http") or value.startswith("data:image")


def _accepts(url: str, tables: ScoringTables) -> bool:
    if url.startswith("data:image"):
        return True
    if extension_of(filename_of(url)) in tables.image_extensions:
        return True
    lowered = url.lower()
    return any(directory in lowered for directory in _ASSET_DIRECTORIES)


def _targets_homepage(href: Any, origin: str) -> bool:
    if not isinstance(href, str) or not href:
        return False
    return href == origin or href == f"{origin}/" or href.endswith("/")


def _bounding_box(rect: Any) -> BoundingBox | None:
    if not isinstance(rect, Mapping):
        return None
    try:
        return BoundingBox(
            top=float(rect["top"]),
            left=float(rect["left"]),
            right=float(rect["right"]),
            bottom=float(rect["bottom"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def _vector_dimensions(record: ElementRecord) -> tuple[float, float]:
    width = _leading_number(record.get("width_attr"))
    height = _leading_number(record.get("height_attr"))
    if width > 0 and height > 0:
        return width, height
    width = height = 0.0
    view_box = record.get("view_box")
    if isinstance(view_box, str):
        parts = re.split(r"[\s,]+", view_box.strip())
        if len(parts) >= 4:
            width = _leading_number(parts[2])
            height = _leading_number(parts[3])
    if not width or not height:
        box = _bounding_box(record.get("rect"))
        width = box.width if box else 0.0
        height = box.height if box else 0.0
    return width, height


def _inline_vector_filename(record: ElementRecord) -> str:
    element_id = record.get("id")
    if element_id:
        return f"{element_id}.svg"
    classes = (record.get("class") or "").split()
    if classes:
        return f"{classes[0]}.svg"
    return "inline-svg"


def _sprite_parent_class(svg: ElementRecord) -> str | None:
    parent_class = svg.get("parent_class") or None
    anchor_class = svg.get("anchor_class") or None
    if anchor_class and not svg.get("anchor_is_parent"):
        return f"{parent_class} {anchor_class}" if parent_class else anchor_class
    return parent_class


def _data_uri_extension(url: str) -> str:
    match = _DATA_URI_TYPE.match(url)
    if not match:
        return ""
    subtype = match.group(1).lower()
    return "svg" if subtype.startswith("svg") else subtype


def _leading_number(value: Any) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return 0.0
    match = _LEADING_NUMBER.match(value)
    return float(match.group(1)) if match else 0.0
