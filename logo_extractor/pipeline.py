"""Per-site and batch orchestration of logo and color extraction."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Sequence

from tqdm import tqdm

from .config import DEFAULT_TABLES, ExtractorConfig, ScoringTables
from .crawl.favicon import favicon_url_from_html, find_favicon_url, discover_favicon_url
from .crawl.fetch import ExtractionError, ensure_http_scheme, fetch_html, open_page
from .crawl.harvest import harvest, harvest_snapshot
from .crawl.snapshot import snapshot_from_html
from .crawl.urls import is_valid_url, site_context_for
from .extract.select_logo import favicon_candidate, rank, select_top, with_favicon
from .features.color import (
    ColorExtractionError,
    ensure_secondary,
    extract_colors_from_url,
)
from .io.models import BrandColors, ExtractionResult, ImageCandidate, SiteReport

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, SiteReport], None]


def extract_logo(
    url: str,
    config: ExtractorConfig | None = None,
    tables: ScoringTables = DEFAULT_TABLES,
) -> ExtractionResult:
    """Render *url*, harvest its images and select the brand logo.

    Raises :class:`~logo_extractor.crawl.fetch.NavigationError` when the page
    cannot be loaded under any wait condition.
    """
    config = config or ExtractorConfig()
    if config.static:
        return extract_logo_static(url, config, tables)
    base_url = ensure_http_scheme(url)
    with open_page(base_url, config) as page:
        candidates = harvest(page, base_url, tables)
        favicon_url = find_favicon_url(page, base_url)
    return _select(base_url, candidates, favicon_url, tables)


def extract_logo_static(
    url: str,
    config: ExtractorConfig | None = None,
    tables: ScoringTables = DEFAULT_TABLES,
) -> ExtractionResult:
    """Like :func:`extract_logo` but parses HTTP-fetched HTML without a browser."""
    config = config or ExtractorConfig()
    final_url, html = fetch_html(url, timeout=config.navigation_timeout)
    if html is None:
        raise ExtractionError(f"Could not fetch {url}")
    base_url = final_url or ensure_http_scheme(url)
    candidates = harvest_snapshot(snapshot_from_html(html, base_url), base_url, tables)
    return _select(base_url, candidates, favicon_url_from_html(html, base_url), tables)


def _select(
    base_url: str,
    candidates: Sequence[ImageCandidate],
    favicon_url: str | None,
    tables: ScoringTables,
) -> ExtractionResult:
    site = site_context_for(base_url, tables)
    top = select_top(candidates, site)
    ranked = with_favicon(rank(candidates, site), favicon_url)
    if top is None and favicon_url:
        logger.info("No viable logo on %s, falling back to favicon", base_url)
        top = next(
            (candidate for candidate in ranked if candidate.url == favicon_url),
            favicon_candidate(favicon_url),
        )
    return ExtractionResult(url=base_url, site=site, top=top, candidates=ranked)


def extract_favicon_colors(url: str, config: ExtractorConfig | None = None) -> BrandColors:
    """Return brand colors taken from the site's favicon."""
    config = config or ExtractorConfig()
    final_url, html = fetch_html(url, timeout=config.navigation_timeout)
    base_url = final_url or ensure_http_scheme(url)
    favicon_url = discover_favicon_url(html, base_url)
    if not favicon_url:
        raise ColorExtractionError(f"No favicon found for {url}")
    return ensure_secondary(extract_colors_from_url(favicon_url, referer=base_url))


def extract_site_colors(
    url: str,
    logo_url: str | None = None,
    config: ExtractorConfig | None = None,
) -> BrandColors:
    """Return favicon colors, falling back to the logo image when that fails."""
    try:
        return extract_favicon_colors(url, config)
    except ColorExtractionError as exc:
        logger.info("Favicon colors unavailable for %s: %s", url, exc)
    return _logo_colors(url, logo_url)


def _logo_colors(url: str, logo_url: str | None) -> BrandColors:
    if not logo_url:
        return BrandColors()
    try:
        return ensure_secondary(extract_colors_from_url(logo_url, referer=url))
    except ColorExtractionError as exc:
        logger.info("Logo colors unavailable for %s: %s", url, exc)
    return BrandColors()


def process_url(
    url: str,
    config: ExtractorConfig | None = None,
    tables: ScoringTables = DEFAULT_TABLES,
) -> SiteReport:
    """Extract logo and colors for *url*, never raising.

    The two extractions run concurrently and settle independently: a color
    failure leaves the logo intact and vice versa.
    """
    config = config or ExtractorConfig()
    started = time.perf_counter()
    report = SiteReport(url=url)
    try:
        if not is_valid_url(url):
            raise ExtractionError("Invalid URL format")
        with ThreadPoolExecutor(max_workers=2) as executor:
            logo_future = executor.submit(extract_logo, url, config, tables)
            color_future: Future[BrandColors] | None = None
            if config.extract_colors:
                color_future = executor.submit(extract_favicon_colors, url, config)
            _settle_logo(logo_future, report)
            if color_future is not None:
                report.colors = _settle_colors(color_future, url, report.logo_url)
    except Exception as exc:  # noqa: BLE001 - one URL must not stop a batch
        logger.warning("Extraction failed for %s: %s", url, exc)
        report.status = "error"
        report.error = str(exc)
    finally:
        report.execution_time_seconds = time.perf_counter() - started
    return report


def _settle_logo(future: Future[ExtractionResult], report: SiteReport) -> None:
    try:
        result = future.result()
    except Exception as exc:  # noqa: BLE001 - colors still settle
        logger.warning("Logo extraction failed for %s: %s", report.url, exc)
        report.status = "error"
        report.error = str(exc)
        return
    report.logo_url = result.logo_url
    report.candidates = result.candidates


def _settle_colors(
    future: Future[BrandColors], url: str, logo_url: str | None
) -> BrandColors:
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001 - fall back to the logo image
        logger.info("Favicon colors unavailable for %s: %s", url, exc)
    return _logo_colors(url, logo_url)


def process_batch(
    urls: Sequence[str],
    config: ExtractorConfig | None = None,
    tables: ScoringTables = DEFAULT_TABLES,
    progress: ProgressCallback | None = None,
) -> list[SiteReport]:
    """Process *urls* concurrently and return reports in input order."""
    config = config or ExtractorConfig()
    if not urls:
        return []
    reports: list[SiteReport | None] = [None] * len(urls)
    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as executor:
        futures = {
            executor.submit(process_url, url, config, tables): index
            for index, url in enumerate(urls)
        }
        completed = tqdm(
            as_completed(futures),
            total=len(urls),
            desc="Extracting logos",
            unit="site",
            leave=False,
        )
        for done, future in enumerate(completed, start=1):
            index = futures[future]
            reports[index] = future.result()
            if progress is not None:
                progress(done, len(urls), reports[index])
    return [report for report in reports if report is not None]


def read_url_file(path: Path) -> list[str]:
    """Read http(s) URLs from *path*, skipping blanks and ``#`` comments."""
    if not path.exists():
        raise FileNotFoundError(f"Input file does not exist: {path}")
    lines = [line.strip() for line in path.read_text(encoding="utf-8-sig").splitlines()]
    return [
        line
        for line in lines
        if line and not line.startswith("#") and line.startswith("http")
    ]
