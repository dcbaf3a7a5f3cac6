"""Dominant brand color extraction."""

from __future__ import annotations

import io
import logging

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError

from ..crawl.fetch import fetch_image_bytes
from ..io.models import BrandColors

logger = logging.getLogger(__name__)

_MAX_SIDE = 100
_ALPHA_CUTOFF = 128
_MAX_CLUSTERS = 5
_MERGE_DISTANCE = 30
_KMEANS_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 20, 1.0)
_KMEANS_ATTEMPTS = 3


class ColorExtractionError(Exception):
    """Raised when an image cannot be reduced to brand colors."""


def extract_colors(image_bytes: bytes) -> BrandColors:
    """Return the primary and secondary colors of an icon or logo image.

    Transparent pixels are ignored. The secondary color is the cluster furthest
    from the primary, or ``None`` when the image holds a single color.
    """
    pixels = _opaque_pixels(_decode(image_bytes))
    clusters = _cluster(pixels)
    primary_center, _ = clusters[0]
    secondary = None
    if len(clusters) > 1:
        distances = [
            float(np.linalg.norm(center - primary_center)) for center, _ in clusters[1:]
        ]
        secondary = to_hex(clusters[1 + int(np.argmax(distances))][0])
    return BrandColors(primary=to_hex(primary_center), secondary=secondary)


def extract_colors_from_url(url: str, referer: str | None = None) -> BrandColors:
    """Download *url* and extract its colors."""
    image_bytes = fetch_image_bytes(url, referer=referer)
    if not image_bytes:
        raise ColorExtractionError(f"Could not download image {url}")
    return extract_colors(image_bytes)


def is_light_color(hex_color: str | None) -> bool:
    if not hex_color:
        return False
    value = hex_color.lstrip("#")
    try:
        r, g, b = (int(value[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return False
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255 > 0.5


def ensure_secondary(colors: BrandColors) -> BrandColors:
    """Fill a missing secondary with black or white, contrasting the primary."""
    if colors.primary is None or colors.secondary is not None:
        return colors
    fallback = "#000000" if is_light_color(colors.primary) else "#FFFFFF"
    return BrandColors(primary=colors.primary, secondary=fallback)


def to_hex(rgb: np.ndarray) -> str:
    r, g, b = (int(round(float(channel))) for channel in rgb[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def _decode(image_bytes: bytes) -> Image.Image:
    if not image_bytes:
        raise ColorExtractionError("Empty image payload")
    head = image_bytes.lstrip()[:512].lower()
    if head.startswith(b"<") and b"<svg" in head:
        raise ColorExtractionError("SVG images are not supported for color extraction")
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            rgba = image.convert("RGBA")
    except (UnidentifiedImageError, DecompressionBombError, OSError) as exc:
        raise ColorExtractionError(f"Unable to decode image: {exc}") from exc
    rgba.thumbnail((_MAX_SIDE, _MAX_SIDE))
    return rgba


def _opaque_pixels(image: Image.Image) -> np.ndarray:
    array = np.asarray(image, dtype=np.uint8).reshape(-1, 4)
    opaque = array[array[:, 3] >= _ALPHA_CUTOFF][:, :3]
    if opaque.size == 0:
        raise ColorExtractionError("No colors found in image")
    return opaque.astype(np.float32)


def _cluster(pixels: np.ndarray) -> list[tuple[np.ndarray, int]]:
    """Return ``(center, count)`` pairs ordered by population, largest first."""
    unique = np.unique(pixels, axis=0)
    k = min(_MAX_CLUSTERS, len(unique))
    if k == 1:
        return [(unique[0], len(pixels))]

    cv2.setRNGSeed(0)
    _, labels, centers = cv2.kmeans(
        pixels, k, None, _KMEANS_CRITERIA, _KMEANS_ATTEMPTS, cv2.KMEANS_PP_CENTERS
    )
    counts = np.bincount(labels.flatten(), minlength=k)

    merged: list[list] = []
    for index in np.argsort(counts)[::-1]:
        if counts[index] == 0:
            continue
        center = centers[index]
        for entry in merged:
            if float(np.abs(entry[0] - center).sum()) < _MERGE_DISTANCE:
                entry[1] += int(counts[index])
                break
        else:
            merged.append([center, int(counts[index])])

    merged.sort(key=lambda entry: entry[1], reverse=True)
    logger.debug("Clustered %d pixels into %d colors", len(pixels), len(merged))
    return [(center, count) for center, count in merged]
