"""Resolve URLs and extract image candidates, page links, and title from HTML."""

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

# .gif is opt-in (animated GIFs are usually UI decoration)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".svg", ".bmp", ".ico")
ALL_IMAGE_EXTENSIONS = IMAGE_EXTENSIONS + (".gif",)

# Lazy-load / custom attributes that commonly hold an image URL
DATA_IMAGE_ATTRS = ("data-src", "data-image", "data-background", "data-thumbnail", "data-thumb", "data-lazy-src")

# url(...) inside an inline style attribute
_CSS_URL_RE = re.compile(r"url\(['\"]?([^)'\"]+)['\"]?\)")
# background / background-image declarations anywhere in the raw HTML (catches <style> blocks)
_RAW_BACKGROUND_RE = re.compile(
    r"(?:background-image|background)\s*:\s*url\(['\"]?([^)'\"]+)['\"]?\)",
    re.IGNORECASE,
)
# JSON-ish "image": "...png" pairs (JSON-LD, inline script state)
_JSON_IMAGE_RE = re.compile(
    r"\"(?:image|url|src|thumbnail|thumb|poster|bg|background)[\":\s]*\"?\s*:\s*"
    r"\"([^\"]+\.(?:jpg|jpeg|png|gif|webp|svg|bmp|ico))\"",
    re.IGNORECASE,
)
# Bare absolute or protocol-relative image URLs in text
_ABSOLUTE_IMAGE_RE = re.compile(
    r"\"?((?:https?:)?//[^\s\"'<>]+\.(?:jpg|jpeg|png|gif|webp|svg|bmp|ico))\"?",
    re.IGNORECASE,
)
_TRAILING_PUNCT = "\"',;:"


def _extensions(include_gifs: bool) -> tuple[str, ...]:
    return ALL_IMAGE_EXTENSIONS if include_gifs else IMAGE_EXTENSIONS


def resolve_url(reference: str, base_url: str) -> str:
    """
    Absolute URL for reference relative to base_url. Already-absolute references
    are returned unchanged; returns "" when resolution is impossible.
    """
    if not reference or not isinstance(reference, str):
        return ""
    reference = reference.strip()
    if not reference:
        return ""
    try:
        parsed = urlsplit(reference)
        if parsed.scheme and (parsed.netloc or parsed.scheme not in ("http", "https")):
            return reference
        return urljoin(base_url, reference)
    except ValueError:
        return ""


def looks_like_image(url: str, include_gifs: bool = False) -> bool:
    """True if url (query stripped, case-insensitive) ends with a known image extension."""
    if not url:
        return False
    path = url.lower().split("?")[0]
    return path.endswith(_extensions(include_gifs))


def is_valid_image_url(url: str, include_gifs: bool = False) -> bool:
    """Final filter: HTTP(S) only (when absolute) and a known image extension on the path."""
    if not url:
        return False
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    if parsed.scheme:
        if parsed.scheme.lower() not in ("http", "https"):
            return False
        path = parsed.path
    else:
        path = url
    return path.lower().endswith(_extensions(include_gifs))


def normalize_page_url(url: str) -> str:
    """Page identity: drop the fragment, keep the query, empty path becomes '/'."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path or "/", parts.query, ""))


def same_host(url: str, other: str) -> bool:
    """Case-insensitive host comparison; scheme and port are ignored."""
    try:
        host = urlsplit(url).hostname
        return host is not None and host == urlsplit(other).hostname
    except ValueError:
        return False


def parse_srcset(srcset: str) -> list[str]:
    """Every URL in a srcset value ("a.jpg 1x, b.jpg 2x"), regardless of descriptor."""
    urls: list[str] = []
    for entry in srcset.split(","):
        parts = entry.strip().split(" ")
        if parts and parts[0]:
            urls.append(parts[0])
    return urls


def urls_from_css(css: str) -> list[str]:
    """All url(...) references in a CSS declaration string."""
    return [m.group(1).strip() for m in _CSS_URL_RE.finditer(css)]


def _not_data_uri(value: str | None) -> bool:
    return bool(value) and not value.startswith("data:")


def find_img_tag_urls(soup: BeautifulSoup, page_url: str, include_gifs: bool = False) -> list[str]:
    """img elements: every srcset entry, src (unless data: URI), and alt text that is itself an image URL."""
    urls: list[str] = []
    for img in soup.select("img"):
        srcset = img.get("srcset")
        if srcset:
            urls.extend(resolve_url(u, page_url) for u in parse_srcset(srcset))
        src = img.get("src")
        if _not_data_uri(src):
            urls.append(resolve_url(src, page_url))
        alt = img.get("alt")
        if alt and looks_like_image(alt, include_gifs):
            urls.append(resolve_url(alt, page_url))
    return urls


def find_picture_urls(soup: BeautifulSoup, page_url: str) -> list[str]:
    """picture elements: srcset of each nested source, plus src of the nested img."""
    urls: list[str] = []
    for picture in soup.select("picture"):
        for source in picture.select("source"):
            srcset = source.get("srcset")
            if srcset:
                urls.extend(resolve_url(u, page_url) for u in parse_srcset(srcset))
        img = picture.select_one("img")
        if img is not None:
            src = img.get("src")
            if _not_data_uri(src):
                urls.append(resolve_url(src, page_url))
    return urls


def find_style_attr_urls(soup: BeautifulSoup, page_url: str) -> list[str]:
    """url(...) references in style="..." attributes (background images)."""
    urls: list[str] = []
    for tag in soup.find_all(style=True):
        style = tag.get("style") or ""
        urls.extend(resolve_url(u, page_url) for u in urls_from_css(style))
    return urls


def find_data_attr_urls(soup: BeautifulSoup, page_url: str, include_gifs: bool = False) -> list[str]:
    """data-src, data-image, ... attributes whose value looks like an image URL."""
    urls: list[str] = []
    selector = ", ".join(f"[{attr}]" for attr in DATA_IMAGE_ATTRS)
    for tag in soup.select(selector):
        for attr in DATA_IMAGE_ATTRS:
            val = tag.get(attr)
            if val and looks_like_image(val, include_gifs):
                urls.append(resolve_url(val, page_url))
    return urls


def find_media_cover_urls(soup: BeautifulSoup, page_url: str) -> list[str]:
    """video[poster] and audio[cover], taken as-is (no extension check)."""
    urls: list[str] = []
    for video in soup.select("video[poster]"):
        urls.append(resolve_url(video.get("poster"), page_url))
    for audio in soup.select("audio[cover]"):
        urls.append(resolve_url(audio.get("cover"), page_url))
    return urls


def find_raw_background_urls(html: str, page_url: str, include_gifs: bool = False) -> list[str]:
    """background/background-image url(...) declarations in the raw HTML text."""
    urls: list[str] = []
    for m in _RAW_BACKGROUND_RE.finditer(html):
        url = m.group(1).strip()
        if looks_like_image(url, include_gifs):
            urls.append(resolve_url(url, page_url))
    return urls


def find_text_pattern_urls(html: str, page_url: str, include_gifs: bool = False) -> list[str]:
    """
    Image URLs in raw text: JSON-like "image"/"thumbnail"/... pairs (taken as-is),
    then bare absolute or protocol-relative URLs (filtered by extension).
    """
    urls: list[str] = []
    for m in _JSON_IMAGE_RE.finditer(html):
        urls.append(resolve_url(m.group(1).strip(), page_url))
    for m in _ABSOLUTE_IMAGE_RE.finditer(html):
        url = m.group(1).strip().rstrip(_TRAILING_PUNCT)
        if looks_like_image(url, include_gifs):
            urls.append(resolve_url(url, page_url))
    return urls


def find_page_links(soup: BeautifulSoup, page_url: str) -> list[str]:
    """
    Hyperlink targets as normalized absolute HTTP(S) URLs, in document order.
    Duplicates are kept; the frontier dedupes against its visited set.
    """
    links: list[str] = []
    for a in soup.select("a[href]"):
        href = a.get("href")
        if not href:
            continue
        abs_url = resolve_url(href, page_url)
        if not abs_url:
            continue
        try:
            parsed = urlsplit(abs_url)
        except ValueError:
            continue
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            continue
        links.append(normalize_page_url(abs_url))
    return links


def page_title(soup: BeautifulSoup) -> str:
    """Document title text, stripped ("" when missing)."""
    if soup.title is None:
        return ""
    return soup.title.get_text().strip()
