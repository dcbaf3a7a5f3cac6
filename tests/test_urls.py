"""Tests for URL parsing and site identity helpers."""

from __future__ import annotations

from urllib.parse import urlparse

import pytest

from logo_extractor.config import ScoringTables
from logo_extractor.crawl.urls import (
    domain_of,
    extension_of,
    filename_of,
    is_valid_url,
    normalize_url,
    origin_of,
    pathname_of,
    site_context_for,
    site_name_from_url,
    site_name_of,
)


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        "relative",
        ["logo.png", "/assets/logo.svg", "../img/brand.webp", "./a/b/c.gif?v=3"],
    )
    def test_relative_path_keeps_base_origin(self, relative):
        result = normalize_url(relative, "https://acme.com/about/team")
        parsed = urlparse(result)
        assert parsed.scheme == "https"
        assert parsed.netloc == "acme.com"

    def test_resolves_against_base_directory(self):
        assert (
            normalize_url("img/logo.png", "https://acme.com/about/")
            == "https://acme.com/about/img/logo.png"
        )

    def test_absolute_url_unchanged(self):
        url = "https://cdn.example.net/logo.png"
        assert normalize_url(url, "https://acme.com/") == url

    def test_data_uri_passes_through(self):
        uri = "data:image/png;base64,AAAA"
        assert normalize_url(uri, "https://acme.com/") == uri

    def test_malformed_input_returned_unchanged(self):
        assert normalize_url("http://[broken", "https://acme.com/") == "http://[broken"

    def test_non_string_returned_unchanged(self):
        assert normalize_url(None, "https://acme.com/") is None  # type: ignore[arg-type]


class TestDerivations:
    def test_filename_strips_query(self):
        assert filename_of("https://acme.com/a/logo.png?v=2#x") == "logo.png"

    @pytest.mark.parametrize("url", ["", "data:image/png;base64,AAAA"])
    def test_filename_empty_for_non_paths(self, url):
        assert filename_of(url) == ""

    @pytest.mark.parametrize(
        "filename, expected",
        [("LOGO.PNG", "png"), ("brand.svg", "svg"), ("noext", ""), ("", "")],
    )
    def test_extension(self, filename, expected):
        assert extension_of(filename) == expected

    def test_pathname(self):
        assert pathname_of("https://acme.com/assets/logo.svg?x=1") == "/assets/logo.svg"
        assert pathname_of("data:image/svg+xml;base64,AA") == ""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://www.Acme.com/x", "acme.com"),
            ("https://cdn.acme.com/x", "cdn.acme.com"),
            ("not a url", ""),
            ("", ""),
        ],
    )
    def test_domain(self, url, expected):
        assert domain_of(url) == expected

    def test_origin(self):
        assert origin_of("https://acme.com:8443/a/b") == "https://acme.com:8443"
        assert origin_of("relative/path") == ""


class TestSiteName:
    @pytest.mark.parametrize(
        "hostname, expected",
        [
            ("www.acme.com", "acme"),
            ("acme.com", "acme"),
            ("invest.debrecen.hu", "debrecen"),
            ("cdn.acme.com", "acme"),
            ("shop.example.com", "example"),
            ("brand.co.uk", "brand"),
            ("portal.123.net", "portal"),
            ("localhost", "localhost"),
            ("", ""),
        ],
    )
    def test_site_name_of(self, hostname, expected):
        assert site_name_of(hostname) == expected

    def test_custom_subdomain_list(self):
        assert site_name_of("portal.a1.io", frozenset({"portal"})) == "a1"

    def test_from_url(self):
        assert site_name_from_url("https://www.debrecen.hu/en/") == "debrecen"

    def test_site_context(self):
        site = site_context_for("https://www.acme.com/about", ScoringTables())
        assert site.site_name == "acme"
        assert site.site_domain == "acme.com"
        assert site.has_identity

    def test_short_site_name_has_no_identity(self):
        assert not site_context_for("https://hp.com").has_identity


class TestIsValidUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://acme.com", True),
            ("http://acme.com/page", True),
            ("acme.com", False),
            ("ftp://acme.com", False),
            ("https://", False),
            ("", False),
        ],
    )
    def test_validation(self, url, expected):
        assert is_valid_url(url) is expected
