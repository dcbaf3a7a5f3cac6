"""Data models shared across the logo extraction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List


class SourceKind(str, Enum):
    """Discovery channel an image reference came from."""

    TAG_REFERENCE = "tag-reference"
    INLINE_VECTOR = "inline-vector"
    VECTOR_SPRITE = "vector-sprite-reference"
    CSS_BACKGROUND = "css-background"
    INLINE_STYLE_BACKGROUND = "inline-style-background"
    MARKUP_TEXT_SCAN = "markup-text-scan"
    SPRITE_MARKUP_SCAN = "sprite-markup-scan"
    DATA_ATTRIBUTE_SCAN = "data-attribute-scan"
    FAVICON_FALLBACK = "favicon-fallback"

    @property
    def is_vector(self) -> bool:
        return self in (SourceKind.INLINE_VECTOR, SourceKind.VECTOR_SPRITE)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Viewport-relative element rectangle captured at harvest time."""

    top: float
    left: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return max(0.0, self.right - self.left)

    @property
    def height(self) -> float:
        return max(0.0, self.bottom - self.top)


@dataclass(frozen=True, slots=True)
class ImageCandidate:
    """One discovered image reference plus the metadata used to score it."""

    url: str
    source_kind: SourceKind
    filename: str = ""
    extension: str = ""
    pathname: str = ""
    domain: str = ""
    alt_text: str | None = None
    css_class: str | None = None
    element_id: str | None = None
    parent_css_class: str | None = None
    parent_element_id: str | None = None
    tag_name: str | None = None
    width: float = 0
    height: float = 0
    bounding_box: BoundingBox | None = None
    is_in_header: bool = False
    is_in_navigation: bool = False
    is_in_logo_container: bool = False
    is_in_homepage_anchor: bool = False
    is_only_child_of_anchor: bool = False
    sprite_fragment: str | None = None
    is_logo_fragment: bool = False
    attribute_name: str | None = None
    score: int | None = None
    is_favicon: bool = False
    byte_size: int | None = None
    saved_path: Path | None = None

    @property
    def is_vector(self) -> bool:
        return self.source_kind.is_vector

    @property
    def is_viable(self) -> bool:
        return self.score is not None and self.score > 0

    @property
    def is_data_uri(self) -> bool:
        return self.url.startswith("data:")


@dataclass(frozen=True, slots=True)
class SiteContext:
    """Identity of the site whose page is being scored."""

    site_name: str = ""
    site_domain: str = ""

    @property
    def has_identity(self) -> bool:
        return len(self.site_name) > 2


@dataclass(slots=True)
class BrandColors:
    """Dominant colors extracted from a brand icon."""

    primary: str | None = None
    secondary: str | None = None


@dataclass(slots=True)
class ExtractionResult:
    """Outcome of a single-page logo extraction."""

    url: str
    site: SiteContext
    top: ImageCandidate | None
    candidates: List[ImageCandidate] = field(default_factory=list)

    @property
    def logo_url(self) -> str | None:
        return self.top.url if self.top else None


@dataclass(slots=True)
class SiteReport:
    """Per-URL summary written to batch reports."""

    url: str
    logo_url: str | None = None
    colors: BrandColors = field(default_factory=BrandColors)
    execution_time_seconds: float = 0.0
    error: str | None = None
    status: str = "success"
    candidates: List[ImageCandidate] = field(default_factory=list)
