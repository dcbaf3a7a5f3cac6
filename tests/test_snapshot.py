"""Tests for DOM snapshot capture and the static HTML snapshot builder."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from logo_extractor.crawl.harvest import harvest_snapshot
from logo_extractor.crawl.snapshot import SNAPSHOT_SCRIPT, capture_snapshot, snapshot_from_html
from logo_extractor.io.models import SourceKind

PAGE = """
<html>
  <head><title>Acme</title></head>
  <body>
    <header class="site-header">
      <a href="/" class="home">
        <img class="logo" alt="Acme" src="/assets/images/logo.png" width="180" height="60">
      </a>
      <nav id="main-nav">
        <a href="/products"><svg viewBox="0 0 24 24" class="icon"><use xlink:href="/sprite.svg#brand"></use></svg></a>
      </nav>
    </header>
    <main>
      <div class="hero" style="background-image: url('https://acme.com/img/hero.jpg')"></div>
      <img data-src="https://acme.com/img/lazy.png" src="">
      <div data-config="https://acme.com/img/config.gif"></div>
    </main>
  </body>
</html>
"""


class TestCaptureSnapshot:
    def test_runs_snapshot_script(self):
        page = MagicMock()
        page.evaluate.return_value = {"images": []}
        assert capture_snapshot(page) == {"images": []}
        page.evaluate.assert_called_once_with(SNAPSHOT_SCRIPT)

    def test_rejects_unexpected_payload(self):
        page = MagicMock()
        page.evaluate.return_value = None
        with pytest.raises(TypeError):
            capture_snapshot(page)


class TestSnapshotFromHtml:
    @pytest.fixture
    def snap(self):
        return snapshot_from_html(PAGE, "https://acme.com/")

    def test_origin_and_html(self, snap):
        assert snap["origin"] == "https://acme.com"
        assert snap["html"] == PAGE

    def test_image_record(self, snap):
        logo = snap["images"][0]
        assert logo["sources"][0] == "https://acme.com/assets/images/logo.png"
        assert logo["class"] == "logo"
        assert logo["alt"] == "Acme"
        assert logo["in_header"] is True
        assert logo["in_nav"] is False
        assert logo["anchor_href"] == "https://acme.com/"
        assert logo["anchor_is_parent"] is True
        assert logo["only_child_of_anchor"] is True
        assert (logo["width"], logo["height"]) == (180, 60)
        assert logo["rect"] is None

    def test_lazy_source_recorded(self, snap):
        lazy = snap["images"][1]
        assert "https://acme.com/img/lazy.png" in lazy["sources"]

    def test_vector_and_sprite_records(self, snap):
        [svg] = snap["vectors"]
        assert svg["view_box"] == "0 0 24 24"
        assert svg["in_nav"] is True
        assert svg["markup"].startswith("<svg")
        [sprite] = snap["sprites"]
        assert sprite["href"] == "/sprite.svg#brand"
        assert sprite["svg"]["anchor_href"] == "https://acme.com/products"

    def test_inline_background_record(self, snap):
        [background] = snap["backgrounds"]
        assert background["class"] == "hero"
        assert background["computed"] is None
        assert "hero.jpg" in background["inline_style"]

    def test_data_attributes(self, snap):
        names = {item["name"] for item in snap["data_attributes"]}
        assert names == {"data-src", "data-config"}

    def test_harvest_from_static_snapshot(self, snap):
        candidates = harvest_snapshot(snap, "https://acme.com/")
        kinds = {candidate.url: candidate.source_kind for candidate in candidates}
        assert kinds["https://acme.com/assets/images/logo.png"] is SourceKind.TAG_REFERENCE
        assert kinds["https://acme.com/sprite.svg"] is SourceKind.VECTOR_SPRITE
        assert kinds["https://acme.com/img/hero.jpg"] is SourceKind.INLINE_STYLE_BACKGROUND
        assert kinds["https://acme.com/img/lazy.png"] is SourceKind.TAG_REFERENCE
        assert kinds["https://acme.com/img/config.gif"] is SourceKind.MARKUP_TEXT_SCAN
        logo = next(c for c in candidates if c.url.endswith("/logo.png"))
        assert logo.is_in_homepage_anchor
        assert logo.is_in_header

    def test_empty_html(self):
        snap = snapshot_from_html("", "https://acme.com/")
        assert snap["images"] == []
        assert harvest_snapshot(snap, "https://acme.com/") == []
