"""Tests for HTTP helpers and the navigation fallback ladder."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest
import requests
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from logo_extractor.config import ExtractorConfig
from logo_extractor.crawl import fetch
from logo_extractor.crawl.fetch import (
    NavigationError,
    decode_data_uri,
    ensure_http_scheme,
    fetch_html,
    fetch_image_bytes,
    navigate_with_fallback,
    open_page,
    settle_page,
    url_responds,
)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def response(status_code=200, **fields):
    defaults = {
        "status_code": status_code,
        "url": "https://acme.com/",
        "text": "<html></html>",
        "content": b"bytes",
        "encoding": "utf-8",
        "apparent_encoding": "utf-8",
        "close": lambda: None,
    }
    defaults.update(fields)

    def raise_for_status():
        if status_code >= 400:
            raise requests.HTTPError(f"{status_code} error")

    return SimpleNamespace(raise_for_status=raise_for_status, **defaults)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("acme.com", "https://acme.com"),
        ("  http://acme.com  ", "http://acme.com"),
        ("//cdn.acme.com/x", "https://cdn.acme.com/x"),
        ("ftp://acme.com", "ftp://acme.com"),
        ("", ""),
    ],
)
def test_ensure_http_scheme(raw, expected):
    assert ensure_http_scheme(raw) == expected


class TestDecodeDataUri:
    def test_base64(self):
        assert decode_data_uri("data:image/png;base64,aGVsbG8=") == b"hello"

    def test_percent_encoded(self):
        assert decode_data_uri("data:image/svg+xml,%3Csvg%2F%3E") == b"<svg/>"

    @pytest.mark.parametrize(
        "uri",
        ["https://acme.com/logo.png", "data:image/png;base64", "data:image/png;base64,***"],
    )
    def test_malformed(self, uri):
        assert decode_data_uri(uri) is None


class TestHttpFetching:
    def test_fetch_html(self, monkeypatch):
        session = FakeSession(response(url="https://www.acme.com/", text="<p>hi</p>"))
        monkeypatch.setattr(fetch, "_get_session", lambda: session)
        assert fetch_html("acme.com") == ("https://www.acme.com/", "<p>hi</p>")
        assert session.calls[0][0] == "https://acme.com"

    def test_fetch_html_request_error(self, monkeypatch):
        session = FakeSession(error=requests.HTTPError("denied"))
        monkeypatch.setattr(fetch, "_get_session", lambda: session)
        assert fetch_html("https://acme.com") == (None, None)

    def test_fetch_image_bytes_sends_referer(self, monkeypatch):
        session = FakeSession(response(content=b"\x89PNG"))
        monkeypatch.setattr(fetch, "_get_session", lambda: session)
        assert fetch_image_bytes("https://acme.com/logo.png", referer="https://acme.com/") == b"\x89PNG"
        assert session.calls[0][1]["headers"]["Referer"] == "https://acme.com/"

    def test_fetch_image_bytes_not_found(self, monkeypatch):
        session = FakeSession(response(404))
        monkeypatch.setattr(fetch, "_get_session", lambda: session)
        assert fetch_image_bytes("https://acme.com/missing.png") is None
        assert len(session.calls) == 1

    def test_fetch_image_bytes_data_uri_skips_network(self, monkeypatch):
        monkeypatch.setattr(fetch, "_get_session", MagicMock(side_effect=AssertionError))
        assert fetch_image_bytes("data:image/png;base64,aGVsbG8=") == b"hello"

    def test_fetch_image_bytes_empty_url(self):
        assert fetch_image_bytes("") is None

    def test_url_responds(self, monkeypatch):
        monkeypatch.setattr(fetch, "_get_session", lambda: FakeSession(response(200)))
        assert url_responds("https://acme.com/favicon.ico")
        monkeypatch.setattr(fetch, "_get_session", lambda: FakeSession(response(404)))
        assert not url_responds("https://acme.com/favicon.ico")

    def test_url_responds_connection_error(self, monkeypatch):
        session = FakeSession(error=requests.ConnectionError("refused"))
        monkeypatch.setattr(fetch, "_get_session", lambda: session)
        assert not url_responds("https://acme.com/favicon.ico")


class TestNavigation:
    def test_first_tier_success(self):
        page = MagicMock()
        config = ExtractorConfig(navigation_timeout=5, wait_after_load=1)
        navigate_with_fallback(page, "https://acme.com", config)
        page.goto.assert_called_once_with("https://acme.com", wait_until="networkidle", timeout=5000)
        page.wait_for_timeout.assert_not_called()

    def test_loosens_wait_condition(self):
        page = MagicMock()
        page.goto.side_effect = [PlaywrightTimeoutError("idle timeout"), None]
        config = ExtractorConfig(navigation_timeout=5, wait_after_load=1)
        navigate_with_fallback(page, "https://acme.com", config)
        assert [c.kwargs["wait_until"] for c in page.goto.call_args_list] == ["networkidle", "load"]
        page.wait_for_timeout.assert_called_once_with(1000)

    def test_last_tier_waits_longest(self):
        page = MagicMock()
        page.goto.side_effect = [PlaywrightTimeoutError("a"), PlaywrightTimeoutError("b"), None]
        navigate_with_fallback(page, "https://acme.com", ExtractorConfig(wait_after_load=0.5))
        page.wait_for_timeout.assert_called_once_with(1000)

    def test_all_tiers_fail(self):
        page = MagicMock()
        page.goto.side_effect = PlaywrightTimeoutError("down")
        with pytest.raises(NavigationError) as excinfo:
            navigate_with_fallback(page, "https://acme.com", ExtractorConfig())
        assert excinfo.value.url == "https://acme.com"
        assert page.goto.call_count == 3


class TestSettle:
    def test_svg_present(self):
        page = MagicMock()
        settle_page(page, ExtractorConfig(wait_after_load=0))
        page.wait_for_selector.assert_called_once_with("svg", timeout=2000)
        page.evaluate.assert_not_called()

    def test_scroll_nudge_when_svg_missing(self):
        page = MagicMock()
        page.wait_for_selector.side_effect = [PlaywrightTimeoutError("no svg"), None]
        settle_page(page, ExtractorConfig(wait_after_load=0.25))
        assert page.evaluate.call_count == 2
        assert page.wait_for_selector.call_args_list[-1] == call("svg", timeout=3000)
        assert page.wait_for_timeout.call_args_list[-1] == call(250)


class TestOpenPage:
    def test_yields_page_and_closes_browser(self, monkeypatch):
        driver = MagicMock()
        driver.return_value.__exit__.return_value = False
        monkeypatch.setattr(fetch, "sync_playwright", driver)
        playwright = driver.return_value.__enter__.return_value
        browser = playwright.chromium.launch.return_value
        page = browser.new_context.return_value.new_page.return_value
        config = ExtractorConfig(settle=False, headless=True, navigation_timeout=7)

        with open_page("acme.com", config) as opened:
            assert opened is page

        playwright.chromium.launch.assert_called_once_with(headless=True)
        browser.new_context.assert_called_once_with(
            user_agent=config.user_agent, viewport=config.viewport, locale="en-US"
        )
        page.goto.assert_called_once_with("https://acme.com", wait_until="networkidle", timeout=7000)
        browser.close.assert_called_once()

    def test_browser_closed_on_navigation_failure(self, monkeypatch):
        driver = MagicMock()
        driver.return_value.__exit__.return_value = False
        monkeypatch.setattr(fetch, "sync_playwright", driver)
        browser = driver.return_value.__enter__.return_value.chromium.launch.return_value
        browser.new_context.return_value.new_page.return_value.goto.side_effect = (
            PlaywrightTimeoutError("down")
        )

        with pytest.raises(NavigationError):
            with open_page("https://acme.com", ExtractorConfig(settle=False)):
                pass
        browser.close.assert_called_once()
