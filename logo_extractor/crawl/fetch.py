"""HTTP and headless fetching utilities for the logo extractor."""

from __future__ import annotations

import base64
import binascii
import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator
from urllib.parse import unquote_to_bytes, urlparse

import requests
from playwright.sync_api import (  # type: ignore[import-untyped]
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)
from requests import Session
from tenacity import (  # type: ignore[import-untyped]
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import DEFAULT_USER_AGENT, ExtractorConfig

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0
_IMAGE_TIMEOUT = 10.0
_SVG_WAIT_MS = 2000
_SVG_RETRY_WAIT_MS = 3000
_SCROLL_PAUSE_MS = 1000

_session_lock = Lock()
_session: Session | None = None


class ExtractionError(Exception):
    """Raised when a page cannot be turned into a candidate list."""


class NavigationError(ExtractionError):
    """Raised after every navigation wait tier has failed for a URL."""

    def __init__(self, url: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Navigation failed for {url}: {cause}")
        self.url = url


class RetryableHTTPStatusError(Exception):
    """Raised for HTTP status codes that should trigger a retry."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Server returned status {status_code}")
        self.status_code = status_code


def _get_session() -> Session:
    """Return a shared requests session configured with default headers."""
    global _session
    if _session is None:
        with _session_lock:
            if _session is None:
                session = requests.Session()
                session.headers.update(
                    {
                        "User-Agent": DEFAULT_USER_AGENT,
                        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                        "Accept-Language": "en-US,en;q=0.5",
                    }
                )
                _session = session
    return _session


_retryer = Retrying(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type(
        (requests.Timeout, requests.ConnectionError, RetryableHTTPStatusError)
    ),
    before_sleep=before_sleep_log(logger, logging.DEBUG),
    reraise=True,
)


def ensure_http_scheme(url: str) -> str:
    """Ensure *url* is qualified with an HTTP scheme, defaulting to https."""
    cleaned = url.strip()
    if not cleaned:
        return cleaned
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    if cleaned.startswith("//"):
        return f"https:{cleaned}"
    parsed = urlparse(cleaned)
    if parsed.scheme:
        return cleaned
    return f"https://{cleaned}"


def _fetch_once(url: str, timeout: float) -> tuple[str, str]:
    """Issue a single HTTP GET request and return the resolved URL and HTML."""
    target_url = ensure_http_scheme(url)
    session = _get_session()
    response = session.get(target_url, timeout=timeout, allow_redirects=True)
    if 500 <= response.status_code < 600:
        raise RetryableHTTPStatusError(response.status_code)
    if not response.encoding:
        response.encoding = response.apparent_encoding or "utf-8"
    return response.url, response.text


def fetch_html(url: str, timeout: float = _DEFAULT_TIMEOUT) -> tuple[str | None, str | None]:
    """Fetch *url* via HTTP, returning the final URL and HTML content.

    Retries are attempted for transient failures such as server errors or timeouts.
    On error the function returns ``(None, None)`` and logs the failure.
    """
    try:
        return _retryer(lambda: _fetch_once(url, timeout))
    except RetryableHTTPStatusError as exc:
        logger.warning("Server error fetching %s: %s", url, exc)
    except requests.RequestException as exc:
        logger.warning("Request error fetching %s: %s", url, exc)
    except Exception:  # noqa: BLE001 - avoid leaking unexpected exceptions
        logger.exception("Unexpected error fetching %s", url)
    return None, None


def _fetch_image_once(url: str, referer: str | None, timeout: float) -> bytes:
    headers = {"Accept": "image/*,*/*;q=0.8"}
    if referer:
        headers["Referer"] = referer
    response = _get_session().get(url, headers=headers, timeout=timeout)
    if 500 <= response.status_code < 600:
        raise RetryableHTTPStatusError(response.status_code)
    response.raise_for_status()
    return response.content


def fetch_image_bytes(
    url: str, referer: str | None = None, timeout: float = _IMAGE_TIMEOUT
) -> bytes | None:
    """Return the raw bytes behind an image URL or data URI, or ``None``."""
    if not url:
        return None
    if url.startswith("data:"):
        return decode_data_uri(url)
    try:
        return _retryer(lambda: _fetch_image_once(url, referer, timeout))
    except (requests.RequestException, RetryableHTTPStatusError):
        logger.debug("Failed to fetch image bytes from %s", url, exc_info=True)
    return None


def url_responds(url: str, timeout: float = 3.0) -> bool:
    """Return ``True`` when a GET for *url* answers with HTTP 200."""
    try:
        response = _get_session().get(url, timeout=timeout, stream=True)
    except requests.RequestException:
        logger.debug("HEAD check failed for %s", url, exc_info=True)
        return False
    try:
        return response.status_code == 200
    finally:
        response.close()


def decode_data_uri(uri: str) -> bytes | None:
    """Decode the payload of a ``data:`` URI, or return ``None`` if malformed."""
    if not uri.startswith("data:"):
        return None
    try:
        header, data = uri.split(",", 1)
    except ValueError:
        return None
    if ";base64" in header:
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            return None
    return unquote_to_bytes(data)


WAIT_TIERS: tuple[tuple[str, int], ...] = (
    ("networkidle", 0),
    ("load", 1),
    ("domcontentloaded", 2),
)


def navigate_with_fallback(page: Page, url: str, config: ExtractorConfig) -> None:
    """Navigate *page* to *url*, loosening the wait condition on each failure.

    Each tier waits ``wait_after_load`` times its multiplier after a successful
    navigation. Only a failure of the loosest tier raises :class:`NavigationError`.
    """
    last_error: BaseException | None = None
    for wait_until, grace_multiplier in WAIT_TIERS:
        try:
            page.goto(url, wait_until=wait_until, timeout=config.navigation_timeout_ms)
        except PlaywrightError as exc:
            last_error = exc
            logger.info("%s wait failed for %s, loosening", wait_until, url)
            continue
        grace = config.wait_after_load_ms * grace_multiplier
        if grace:
            page.wait_for_timeout(grace)
        return
    raise NavigationError(url, last_error)


def settle_page(page: Page, config: ExtractorConfig) -> None:
    """Give lazily rendered vectors a chance to appear before harvesting."""
    if not _wait_for_svg(page, _SVG_WAIT_MS):
        try:
            page.evaluate("window.scrollTo(0, document.body.scrollHeight / 2)")
            page.wait_for_timeout(_SCROLL_PAUSE_MS)
            page.evaluate("window.scrollTo(0, 0)")
            page.wait_for_timeout(_SCROLL_PAUSE_MS)
        except PlaywrightError:
            logger.debug("Scroll nudge failed", exc_info=True)
        _wait_for_svg(page, _SVG_RETRY_WAIT_MS)
    if config.wait_after_load_ms:
        page.wait_for_timeout(config.wait_after_load_ms)


def _wait_for_svg(page: Page, timeout_ms: int) -> bool:
    try:
        page.wait_for_selector("svg", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return False
    except PlaywrightError:
        logger.debug("SVG wait failed", exc_info=True)
        return False
    return True


@contextmanager
def open_page(url: str, config: ExtractorConfig | None = None) -> Iterator[Page]:
    """Yield a rendered Playwright page for *url* in its own browser.

    Every call owns its Playwright driver, browser and context, so concurrent
    callers in different threads never share state.
    """
    config = config or ExtractorConfig()
    target_url = ensure_http_scheme(url)
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=config.headless)
        try:
            context = browser.new_context(
                user_agent=config.user_agent,
                viewport=config.viewport,
                locale=config.locale,
            )
            context.set_default_navigation_timeout(config.navigation_timeout_ms)
            context.set_default_timeout(config.navigation_timeout_ms)
            page = context.new_page()
            navigate_with_fallback(page, target_url, config)
            if config.settle:
                settle_page(page, config)
            yield page
        finally:
            try:
                browser.close()
            except PlaywrightError:  # pragma: no cover - best-effort cleanup
                logger.debug("Failed to close browser", exc_info=True)
