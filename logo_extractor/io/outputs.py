"""Output helpers for persisting extraction results."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from dataclasses import asdict, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .models import BrandColors, ImageCandidate, SiteReport

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:image/([a-z0-9.+-]+);base64,(.+)$", re.IGNORECASE | re.DOTALL)
_DATA_URI_EXTENSIONS = {
    "jpeg": "jpg",
    "jpg": "jpg",
    "png": "png",
    "gif": "gif",
    "svg+xml": "svg",
    "webp": "webp",
    "ico": "ico",
    "x-icon": "ico",
    "vnd.microsoft.icon": "ico",
    "bmp": "bmp",
}
_DISPLAY_DATA_URI_CHARS = 100


def candidate_to_dict(candidate: ImageCandidate) -> dict[str, Any]:
    """Return a JSON-ready view of *candidate* for diagnostics."""
    url = candidate.url
    if candidate.is_data_uri and len(url) > _DISPLAY_DATA_URI_CHARS:
        url = url[:_DISPLAY_DATA_URI_CHARS] + "..."
    box = candidate.bounding_box
    return {
        "url": url,
        "source": candidate.source_kind.value,
        "score": candidate.score,
        "filename": candidate.filename,
        "extension": candidate.extension,
        "domain": candidate.domain,
        "alt": candidate.alt_text,
        "class": candidate.css_class,
        "id": candidate.element_id,
        "parent_class": candidate.parent_css_class,
        "parent_id": candidate.parent_element_id,
        "tag": candidate.tag_name,
        "width": candidate.width,
        "height": candidate.height,
        "bounding_box": asdict(box) if box is not None else None,
        "is_in_header": candidate.is_in_header,
        "is_in_navigation": candidate.is_in_navigation,
        "is_in_homepage_anchor": candidate.is_in_homepage_anchor,
        "sprite_fragment": candidate.sprite_fragment,
        "is_logo_fragment": candidate.is_logo_fragment,
        "attribute_name": candidate.attribute_name,
        "is_favicon": candidate.is_favicon,
        "byte_size": candidate.byte_size,
        "saved_path": str(candidate.saved_path) if candidate.saved_path else None,
    }


def colors_to_dict(colors: BrandColors) -> dict[str, str | None]:
    return {"primary": colors.primary, "secondary": colors.secondary}


def build_report(report: SiteReport) -> dict[str, Any]:
    """Return the ``result.json`` payload for one site."""
    payload: dict[str, Any] = {
        "url": report.url,
        "logo_url": report.logo_url,
        "colors": colors_to_dict(report.colors),
    }
    if report.error:
        payload["error"] = report.error
    return payload


def build_candidates_report(report: SiteReport) -> dict[str, Any]:
    """Return the ``images.json`` payload listing every ranked candidate."""
    payload: dict[str, Any] = {
        "url": report.url,
        "total_images": len(report.candidates),
        "logo_url": report.logo_url,
        "images": [candidate_to_dict(candidate) for candidate in report.candidates],
    }
    if report.error:
        payload["error"] = report.error
    return payload


def write_json(path: Path, payload: Any) -> Path:
    """Write *payload* to *path* as indented JSON and return the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def write_report(out_dir: Path, report: SiteReport) -> tuple[Path, Path]:
    """Write ``result.json`` and ``images.json`` for a single site."""
    result_path = write_json(out_dir / "result.json", build_report(report))
    images_path = write_json(out_dir / "images.json", build_candidates_report(report))
    return result_path, images_path


def build_batch_report(
    reports: Sequence[SiteReport],
    total_seconds: float,
    processed_at: datetime | None = None,
) -> dict[str, Any]:
    processed_at = processed_at or datetime.now(timezone.utc)
    successful = sum(1 for report in reports if report.status == "success")
    return {
        "processed_at": processed_at.isoformat(),
        "total_urls": len(reports),
        "successful": successful,
        "failed": len(reports) - successful,
        "total_execution_time_seconds": round(total_seconds, 2),
        "average_time_per_url_seconds": round(total_seconds / len(reports), 2)
        if reports
        else 0.0,
        "results": [
            {
                "url": report.url,
                "logo_url": report.logo_url,
                "colors": colors_to_dict(report.colors),
                "execution_time_seconds": round(report.execution_time_seconds, 2),
                "error": report.error,
                "status": report.status,
            }
            for report in reports
        ],
    }


def write_batch_report(
    path: Path, reports: Sequence[SiteReport], total_seconds: float
) -> Path:
    return write_json(path, build_batch_report(reports, total_seconds))


def write_summary_table(path: Path, reports: Sequence[SiteReport]) -> Path | None:
    """Write one row per site to a parquet file, or skip when there are none."""
    if not reports:
        logger.info("No batch rows to write")
        return None
    rows = [
        {
            "url": report.url,
            "logo_url": report.logo_url,
            "primary_color": report.colors.primary,
            "secondary_color": report.colors.secondary,
            "status": report.status,
            "error": report.error,
            "execution_time_seconds": report.execution_time_seconds,
            "candidate_count": len(report.candidates),
        }
        for report in reports
    ]
    df = pd.DataFrame(rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False, engine="pyarrow")
    return path


def save_data_uri_candidates(
    candidates: Sequence[ImageCandidate], assets_dir: Path
) -> list[ImageCandidate]:
    """Decode base64 image candidates into *assets_dir*.

    Returns the candidate list with ``byte_size`` and ``saved_path`` filled in
    for every candidate that was written; other fields are untouched.
    """
    result: list[ImageCandidate] = []
    for index, candidate in enumerate(candidates):
        if not candidate.is_data_uri:
            result.append(candidate)
            continue
        saved = _save_data_uri(candidate, index, assets_dir)
        if saved is None:
            result.append(candidate)
            continue
        path, size = saved
        result.append(replace(candidate, byte_size=size, saved_path=path))
    return result


def _save_data_uri(
    candidate: ImageCandidate, index: int, assets_dir: Path
) -> tuple[Path, int] | None:
    match = _DATA_URI.match(candidate.url)
    if not match:
        logger.debug("Not a base64 image data URI: %s", candidate.url[:50])
        return None
    image_type = match.group(1).lower()
    try:
        payload = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        logger.warning("Invalid base64 payload for %s", candidate.filename or index)
        return None
    extension = _DATA_URI_EXTENSIONS.get(image_type, image_type)
    assets_dir.mkdir(parents=True, exist_ok=True)
    path = _unique_path(assets_dir, _asset_name(candidate.filename, index, extension))
    path.write_bytes(payload)
    return path, len(payload)


def _asset_name(filename: str, index: int, extension: str) -> str:
    if not filename or filename == "unnamed" or "." not in filename:
        return f"image_{index}.{extension}"
    stem = filename.split(".", 1)[0]
    return f"{stem}.{extension}"


def _unique_path(directory: Path, name: str) -> Path:
    path = directory / name
    stem, dot, suffix = name.rpartition(".")
    counter = 2
    while path.exists():
        path = directory / (f"{stem}_{counter}.{suffix}" if dot else f"{name}_{counter}")
        counter += 1
    return path
