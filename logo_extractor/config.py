"""Configuration objects and static lookup tables for logo extraction."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

IMAGE_EXTENSIONS: tuple[str, ...] = (
    "jpg",
    "jpeg",
    "png",
    "gif",
    "svg",
    "webp",
    "ico",
    "bmp",
    "tiff",
)

COMMON_SUBDOMAINS: frozenset[str] = frozenset(
    {
        "www",
        "www2",
        "www3",
        "invest",
        "admin",
        "app",
        "api",
        "blog",
        "mail",
        "ftp",
        "cdn",
        "static",
        "assets",
        "media",
        "images",
        "img",
    }
)

THIRD_PARTY_NAMES: tuple[str, ...] = (
    "stripe",
    "paypal",
    "visa",
    "mastercard",
    "amex",
    "discover",
    "google",
    "facebook",
    "twitter",
    "linkedin",
    "instagram",
    "youtube",
    "microsoft",
    "apple",
    "amazon",
    "aws",
    "azure",
    "github",
    "gitlab",
    "slack",
    "zoom",
    "dropbox",
    "salesforce",
    "shopify",
    "woocommerce",
    "wordpress",
    "drupal",
    "joomla",
    "magento",
    "prestashop",
)

PARTNER_PATH_SEGMENTS: tuple[str, ...] = (
    "/partners/",
    "/partner/",
    "/ads/",
    "/ad/",
    "/sponsors/",
    "/sponsor/",
    "/advertisements/",
    "/advertisement/",
)

PARTNER_WORDS: tuple[str, ...] = (
    "partner",
    "sponsor",
    "ad",
    "advertisement",
    "affiliate",
)

OTHER_ORGANIZATION_WORDS: tuple[str, ...] = (
    "edc",
    "dif",
    "partner",
    "sponsor",
    "affiliate",
    "certified",
    "certification",
)

SECONDARY_KEYWORDS: tuple[str, ...] = ("brand", "header", "site", "company")

LOGO_FRAGMENT_TOKENS: tuple[str, ...] = ("logo", "fw", "brand")


@dataclass(frozen=True)
class ScoringTables:
    """Word lists consulted by the identity resolver and the scorer.

    Kept as a value object so tests and callers can substitute their own lists
    without touching module globals.
    """

    common_subdomains: frozenset[str] = COMMON_SUBDOMAINS
    third_party_names: tuple[str, ...] = THIRD_PARTY_NAMES
    partner_path_segments: tuple[str, ...] = PARTNER_PATH_SEGMENTS
    partner_words: tuple[str, ...] = PARTNER_WORDS
    other_organization_words: tuple[str, ...] = OTHER_ORGANIZATION_WORDS
    secondary_keywords: tuple[str, ...] = SECONDARY_KEYWORDS
    logo_fragment_tokens: tuple[str, ...] = LOGO_FRAGMENT_TOKENS
    image_extensions: tuple[str, ...] = IMAGE_EXTENSIONS


DEFAULT_TABLES = ScoringTables()


@dataclass
class ExtractorConfig:
    """Settings that control rendering and batch behaviour."""

    navigation_timeout: float = 30.0
    wait_after_load: float = 1.0
    settle: bool = True
    headless: bool = True
    viewport: dict[str, int] = field(
        default_factory=lambda: {"width": 1920, "height": 1080}
    )
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = "en-US"
    workers: int = 4
    extract_colors: bool = True
    static: bool = False

    @property
    def navigation_timeout_ms(self) -> int:
        return int(self.navigation_timeout * 1000)

    @property
    def wait_after_load_ms(self) -> int:
        return int(self.wait_after_load * 1000)
