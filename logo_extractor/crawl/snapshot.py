"""Produce DOM snapshots consumed by the image harvester.

A snapshot is a plain JSON-compatible dictionary describing every element the
harvester may turn into a candidate. Live pages produce it with one in-page
evaluation of :data:`SNAPSHOT_SCRIPT`; static HTML produces the same shape via
BeautifulSoup, minus geometry and computed styles.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]
ElementRecord = dict[str, Any]

SNAPSHOT_SCRIPT = r"""
() => {
  const describe = (el) => {
    const parent = el.parentElement;
    const anchor = el.closest('a');
    const rect = el.getBoundingClientRect();
    return {
      tag: el.tagName.toLowerCase(),
      class: el.getAttribute('class'),
      id: el.getAttribute('id'),
      alt: el.getAttribute('alt'),
      aria_label: el.getAttribute('aria-label'),
      title: el.getAttribute('title'),
      parent_tag: parent ? parent.tagName.toLowerCase() : null,
      parent_class: parent ? parent.getAttribute('class') : null,
      parent_id: parent ? parent.getAttribute('id') : null,
      rect: {top: rect.top, left: rect.left, right: rect.right, bottom: rect.bottom},
      in_header: el.closest('header, [class*="header"], [id*="header"]') !== null,
      in_nav: el.closest('nav, [class*="nav"], [id*="nav"]') !== null,
      in_logo_container: el.closest('[class*="logo"]') !== null,
      anchor_href: anchor ? anchor.href : null,
      anchor_class: anchor ? anchor.getAttribute('class') : null,
      anchor_title: anchor
        ? (anchor.getAttribute('title') || anchor.getAttribute('aria-label'))
        : null,
      anchor_is_parent: !!anchor && anchor === parent,
      only_child_of_anchor:
        !!anchor && anchor.children.length === 1 && anchor.children[0] === el,
    };
  };
  const describeVector = (svg) => Object.assign(describe(svg), {
    width_attr: svg.getAttribute('width'),
    height_attr: svg.getAttribute('height'),
    view_box: svg.getAttribute('viewBox'),
  });
  const collect = (elements, fn) => {
    const out = [];
    for (const el of elements) {
      try {
        const record = fn(el);
        if (record) out.push(record);
      } catch (e) {
        // element is skipped; the rest of the walk continues
      }
    }
    return out;
  };

  const images = collect(document.querySelectorAll('img'), (img) => {
    const srcset = img.getAttribute('srcset');
    return Object.assign(describe(img), {
      sources: [
        img.src,
        img.getAttribute('data-src'),
        img.getAttribute('data-lazy-src'),
        img.getAttribute('data-original'),
        img.getAttribute('data-image'),
        img.getAttribute('data-img'),
        img.getAttribute('data-logo'),
        srcset ? srcset.split(' ')[0] : null,
      ],
      width: img.naturalWidth || img.width || 0,
      height: img.naturalHeight || img.height || 0,
    });
  });

  const vectors = collect(document.querySelectorAll('svg'), (svg) =>
    Object.assign(describeVector(svg), {markup: svg.outerHTML}));

  const sprites = collect(document.querySelectorAll('svg use'), (use) => {
    const svg = use.closest('svg');
    if (!svg) return null;
    return {
      href: use.getAttribute('href') || use.getAttribute('xlink:href'),
      svg: describeVector(svg),
    };
  });

  const all = Array.from(document.querySelectorAll('*'));
  const backgrounds = collect(all, (el) => {
    const computed = window.getComputedStyle(el).backgroundImage;
    const inline = el.getAttribute('style');
    const hasComputed = computed && computed !== 'none';
    const hasInline = inline && /background/i.test(inline);
    if (!hasComputed && !hasInline) return null;
    return Object.assign(describe(el), {
      computed: hasComputed ? computed : null,
      inline_style: hasInline ? inline : null,
    });
  });

  const dataAttributes = [];
  for (const el of all) {
    try {
      for (const attr of Array.from(el.attributes)) {
        if (attr.name.startsWith('data-') && attr.value && attr.value.includes('http')) {
          dataAttributes.push({name: attr.name, value: attr.value});
        }
      }
    } catch (e) {
      // element is skipped
    }
  }

  return {
    origin: window.location.origin,
    html: document.documentElement.outerHTML,
    images,
    vectors,
    sprites,
    backgrounds,
    data_attributes: dataAttributes,
  };
}
"""

_IMG_SOURCE_ATTRS = (
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-image",
    "data-img",
    "data-logo",
)


def capture_snapshot(page: Any) -> Snapshot:
    """Run the snapshot script against a live Playwright *page*."""
    snapshot = page.evaluate(SNAPSHOT_SCRIPT)
    if not isinstance(snapshot, dict):
        raise TypeError("Snapshot script returned an unexpected payload")
    return snapshot


def snapshot_from_html(html: str, base_url: str) -> Snapshot:
    """Build a geometry-free snapshot from static *html* fetched at *base_url*."""
    soup = BeautifulSoup(html or "", "lxml")
    parsed = urlparse(base_url)
    origin = f"{parsed.scheme}://{parsed.netloc}" if parsed.netloc else ""

    def absolute(value: str | None) -> str | None:
        if not value:
            return value
        try:
            return urljoin(base_url, value)
        except ValueError:
            return value

    def describe(tag: Tag) -> ElementRecord:
        parent = tag.parent if isinstance(tag.parent, Tag) else None
        anchor = _closest(tag, lambda node: node.name == "a")
        return {
            "tag": tag.name,
            "class": _class_text(tag),
            "id": _attr_text(tag, "id"),
            "alt": _attr_text(tag, "alt"),
            "aria_label": _attr_text(tag, "aria-label"),
            "title": _attr_text(tag, "title"),
            "parent_tag": parent.name if parent is not None else None,
            "parent_class": _class_text(parent) if parent is not None else None,
            "parent_id": _attr_text(parent, "id") if parent is not None else None,
            "rect": None,
            "in_header": _closest(tag, _region_matcher("header")) is not None,
            "in_nav": _closest(tag, _region_matcher("nav")) is not None,
            "in_logo_container": _closest(
                tag, lambda node: "logo" in (_class_text(node) or "")
            )
            is not None,
            "anchor_href": absolute(_attr_text(anchor, "href"))
            if anchor is not None
            else None,
            "anchor_class": _class_text(anchor) if anchor is not None else None,
            "anchor_title": (
                _attr_text(anchor, "title") or _attr_text(anchor, "aria-label")
            )
            if anchor is not None
            else None,
            "anchor_is_parent": anchor is not None and anchor is parent,
            "only_child_of_anchor": anchor is not None
            and _is_only_child(anchor, tag),
        }

    def describe_vector(svg: Tag) -> ElementRecord:
        record = describe(svg)
        record.update(
            {
                "width_attr": _attr_text(svg, "width"),
                "height_attr": _attr_text(svg, "height"),
                "view_box": _attr_text(svg, "viewbox") or _attr_text(svg, "viewBox"),
            }
        )
        return record

    def image_record(img: Tag) -> ElementRecord:
        record = describe(img)
        srcset = _attr_text(img, "srcset")
        record["sources"] = [absolute(_attr_text(img, "src"))]
        record["sources"].extend(_attr_text(img, name) for name in _IMG_SOURCE_ATTRS)
        record["sources"].append(srcset.split(" ")[0] if srcset else None)
        record["width"] = _to_number(_attr_text(img, "width"))
        record["height"] = _to_number(_attr_text(img, "height"))
        return record

    def vector_record(svg: Tag) -> ElementRecord:
        record = describe_vector(svg)
        record["markup"] = str(svg)
        return record

    def sprite_record(use: Tag) -> ElementRecord | None:
        svg = _closest(use, lambda node: node.name == "svg")
        if svg is None:
            return None
        return {
            "href": _attr_text(use, "href") or _attr_text(use, "xlink:href"),
            "svg": describe_vector(svg),
        }

    def background_record(tag: Tag) -> ElementRecord | None:
        style = _attr_text(tag, "style")
        if not style or "background" not in style.lower():
            return None
        record = describe(tag)
        record["computed"] = None
        record["inline_style"] = style
        return record

    all_tags = soup.find_all(True)
    data_attributes: list[dict[str, str]] = []
    for tag in all_tags:
        for name, value in tag.attrs.items():
            if not name.startswith("data-") or not isinstance(value, str):
                continue
            if "http" in value:
                data_attributes.append({"name": name, "value": value})

    return {
        "origin": origin,
        "html": html or "",
        "images": list(_collect(soup.find_all("img"), image_record)),
        "vectors": list(_collect(soup.find_all("svg"), vector_record)),
        "sprites": list(_collect(soup.select("svg use"), sprite_record)),
        "backgrounds": list(_collect(all_tags, background_record)),
        "data_attributes": data_attributes,
    }


def _collect(
    tags: list[Tag], builder: Callable[[Tag], ElementRecord | None]
) -> Iterator[ElementRecord]:
    for tag in tags:
        try:
            record = builder(tag)
        except Exception:  # noqa: BLE001 - one malformed element must not abort
            logger.debug("Skipping element <%s>", tag.name, exc_info=True)
            continue
        if record is not None:
            yield record


def _closest(tag: Tag, predicate: Callable[[Tag], bool]) -> Tag | None:
    node: Any = tag
    while isinstance(node, Tag):
        if node.name != "[document]" and predicate(node):
            return node
        node = node.parent
    return None


def _region_matcher(token: str) -> Callable[[Tag], bool]:
    def matches(node: Tag) -> bool:
        if node.name == token:
            return True
        return token in (_class_text(node) or "") or token in (
            _attr_text(node, "id") or ""
        )

    return matches


def _is_only_child(anchor: Tag, tag: Tag) -> bool:
    children = [child for child in anchor.children if isinstance(child, Tag)]
    return len(children) == 1 and children[0] is tag


def _attr_text(tag: Tag | None, name: str) -> str | None:
    if tag is None:
        return None
    value = tag.get(name)
    if isinstance(value, (list, tuple)):
        return " ".join(str(item) for item in value) or None
    if isinstance(value, str):
        return value
    return None


def _class_text(tag: Tag | None) -> str | None:
    return _attr_text(tag, "class")


def _to_number(value: str | None) -> float:
    if not value:
        return 0
    try:
        return float(value.strip().rstrip("px"))
    except ValueError:
        return 0
