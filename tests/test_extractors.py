import pytest
from bs4 import BeautifulSoup

from pixgrab.discovery import collect_image_urls, find_image_candidates
from pixgrab.extractors import (
    find_data_attr_urls,
    find_img_tag_urls,
    find_media_cover_urls,
    find_page_links,
    find_picture_urls,
    find_raw_background_urls,
    find_text_pattern_urls,
    is_valid_image_url,
    looks_like_image,
    normalize_page_url,
    page_title,
    parse_srcset,
    resolve_url,
    same_host,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _collect(html: str, page_url: str = "https://a.test/", **kwargs) -> list[str]:
    return collect_image_urls(_soup(html), page_url, html, **kwargs)


# --- resolver -----------------------------------------------------------------


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("https://cdn.test/x.png", "https://cdn.test/x.png"),
        ("img/x.png", "https://a.test/dir/img/x.png"),
        ("/x.png", "https://a.test/x.png"),
        ("//cdn.test/x.png", "https://cdn.test/x.png"),
        ("../x.png", "https://a.test/x.png"),
        ("  x.png  ", "https://a.test/dir/x.png"),
    ],
)
def test_resolve_url(ref, expected):
    assert resolve_url(ref, "https://a.test/dir/page.html") == expected


def test_resolve_url_leaves_other_absolute_schemes_alone():
    assert resolve_url("mailto:me@a.test", "https://a.test/") == "mailto:me@a.test"


@pytest.mark.parametrize("ref", ["", "   ", None, "http://[broken"])
def test_resolve_url_returns_empty_when_impossible(ref):
    assert resolve_url(ref, "https://a.test/") == ""


@pytest.mark.parametrize("ref", ["x.png", "/a/b.jpg?x=1", "//cdn.test/y.webp", "https://b.test/z.png#f", "?q=1"])
def test_resolve_url_is_idempotent(ref):
    base = "https://a.test/dir/"
    once = resolve_url(ref, base)
    assert resolve_url(once, base) == once


@pytest.mark.parametrize(
    "url, include_gifs, expected",
    [
        ("https://a.test/x.JPG", False, True),
        ("x.png?v=2", False, True),
        ("https://a.test/x.gif", False, False),
        ("https://a.test/x.gif", True, True),
        ("https://a.test/x.svg", False, True),
        ("https://a.test/page.html", False, False),
        ("", False, False),
    ],
)
def test_looks_like_image(url, include_gifs, expected):
    assert looks_like_image(url, include_gifs) is expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://a.test/x.png", True),
        ("http://a.test/x.jpeg?size=2", True),
        ("ftp://a.test/x.png", False),
        ("data:image/png;base64,AAAA.png", False),
        ("javascript:void('x.png')", False),
        ("https://a.test/x.png/view", False),
        ("https://a.test/x.gif", False),
        ("http://[bad/x.png", False),
    ],
)
def test_is_valid_image_url(url, expected):
    assert is_valid_image_url(url) is expected


def test_is_valid_image_url_gif_opt_in():
    assert is_valid_image_url("https://a.test/x.gif", include_gifs=True)


def test_same_host_ignores_case_scheme_and_port():
    assert same_host("http://A.Test:8080/x", "https://a.test/")
    assert not same_host("https://b.test/", "https://a.test/")
    assert not same_host("https://sub.a.test/", "https://a.test/")


def test_normalize_page_url():
    assert normalize_page_url("https://a.test") == "https://a.test/"
    assert normalize_page_url("https://a.test/p?q=1#frag") == "https://a.test/p?q=1"


# --- heuristics ---------------------------------------------------------------


def test_parse_srcset_returns_every_url():
    assert parse_srcset("a.jpg 1x, b.jpg 2x,  c.jpg 640w,") == ["a.jpg", "b.jpg", "c.jpg"]


def test_img_srcset_and_src_scenario():
    html = '<img srcset="a.jpg 1x, b.jpg 2x" src="c.jpg">'
    urls = _collect(html, "https://a.test/x")
    assert set(urls) == {"https://a.test/a.jpg", "https://a.test/b.jpg", "https://a.test/c.jpg"}
    assert urls == ["https://a.test/a.jpg", "https://a.test/b.jpg", "https://a.test/c.jpg"]


def test_img_skips_data_uri_and_uses_alt_url():
    html = '<img src="data:image/png;base64,AAAA"><img src="x.svg" alt="/full/big.png"><img alt="A cat">'
    urls = find_img_tag_urls(_soup(html), "https://a.test/")
    assert urls == ["https://a.test/x.svg", "https://a.test/full/big.png"]


def test_picture_sources_and_nested_img():
    html = """
    <picture>
      <source srcset="/p/wide.webp 1200w, /p/narrow.webp 600w" media="(min-width: 600px)">
      <source srcset="/p/fallback.png">
      <img src="/p/base.jpg">
    </picture>
    """
    urls = find_picture_urls(_soup(html), "https://a.test/")
    assert urls == [
        "https://a.test/p/wide.webp",
        "https://a.test/p/narrow.webp",
        "https://a.test/p/fallback.png",
        "https://a.test/p/base.jpg",
    ]


def test_inline_background_style_scenario():
    html = """<div style="background-image:url('bg.png')"></div>"""
    assert "https://a.test/bg.png" in _collect(html, "https://a.test/")


def test_data_attributes_need_image_extension():
    html = """
    <div data-src="/lazy/one.jpg"></div>
    <span data-thumb="/thumb/two.png" data-image="/api/image/3"></span>
    <a data-lazy-src="three.webp?w=100"></a>
    """
    urls = find_data_attr_urls(_soup(html), "https://a.test/")
    assert urls == [
        "https://a.test/lazy/one.jpg",
        "https://a.test/thumb/two.png",
        "https://a.test/three.webp?w=100",
    ]


def test_media_poster_and_cover_taken_without_extension_check():
    html = '<video poster="/poster"></video><audio cover="/covers/album.png"></audio><video></video>'
    urls = find_media_cover_urls(_soup(html), "https://a.test/")
    assert urls == ["https://a.test/poster", "https://a.test/covers/album.png"]


def test_raw_style_block_background():
    html = '<style>.hero { background: url("/img/hero.png") no-repeat; } .x { background-image:url(/img/x.css) }</style>'
    urls = find_raw_background_urls(html, "https://a.test/")
    assert urls == ["https://a.test/img/hero.png"]


def test_json_thumbnail_scenario_without_gifs():
    html = '<script>var data = {"thumbnail":"https://cdn.test/t.webp"};</script>'
    urls = _collect(html, "https://a.test/", include_gifs=False)
    assert urls == ["https://cdn.test/t.webp"]


def test_json_pattern_is_added_before_validity_filter():
    html = '<script type="application/ld+json">{"image": "/media/anim.gif"}</script>'
    assert "https://a.test/media/anim.gif" in find_text_pattern_urls(html, "https://a.test/")
    assert _collect(html) == []
    assert _collect(html, include_gifs=True) == ["https://a.test/media/anim.gif"]


def test_bare_urls_in_text_trimmed_and_protocol_relative_resolved():
    html = "<script>load('//cdn.test/p.png'); other = 'https://b.test/q.jpeg';</script><p>see https://b.test/r.png, ok</p>"
    urls = find_text_pattern_urls(html, "https://a.test/")
    assert urls == ["https://cdn.test/p.png", "https://b.test/q.jpeg", "https://b.test/r.png"]


def test_gifs_excluded_unless_enabled():
    html = '<img src="a.gif"><img src="b.png">'
    assert _collect(html) == ["https://a.test/b.png"]
    assert _collect(html, include_gifs=True) == ["https://a.test/a.gif", "https://a.test/b.png"]


def test_same_image_from_two_heuristics_is_one_candidate():
    html = '<div data-src="https://a.test/p.jpg"></div><script>{"src": "https://a.test/p.jpg"}</script>'
    candidates = find_image_candidates(_soup(html), "https://a.test/", html)
    assert candidates.count("https://a.test/p.jpg") == 1


def test_candidates_follow_heuristic_order():
    html = """
    <script>{"image": "https://a.test/seventh.png"}</script>
    <video poster="/fifth.jpg"></video>
    <div style="background:url(/third.png)"></div>
    <img src="/first.jpg">
    """
    urls = _collect(html)
    assert urls == [
        "https://a.test/first.jpg",
        "https://a.test/third.png",
        "https://a.test/fifth.jpg",
        "https://a.test/seventh.png",
    ]


def test_non_http_candidates_are_filtered():
    html = '<video poster="data:image/png;base64,iVBOR.png"></video><img src="/ok.png">'
    assert "data:image/png;base64,iVBOR.png" in find_image_candidates(_soup(html), "https://a.test/", html)
    assert _collect(html) == ["https://a.test/ok.png"]


# --- links and title ----------------------------------------------------------


def test_find_page_links_normalizes_and_filters():
    html = """
    <a href="/about#team">About</a>
    <a href="gallery?page=2">Gallery</a>
    <a href="/about">About again</a>
    <a href="mailto:me@a.test">Mail</a>
    <a href="javascript:void(0)">JS</a>
    <a href="">Empty</a>
    <a>No href</a>
    <a href="https://b.test/elsewhere">Other</a>
    """
    links = find_page_links(_soup(html), "https://a.test/dir/")
    assert links == [
        "https://a.test/about",
        "https://a.test/dir/gallery?page=2",
        "https://a.test/about",
        "https://b.test/elsewhere",
    ]


def test_page_title():
    assert page_title(_soup("<html><head><title>  My Gallery </title></head></html>")) == "My Gallery"
    assert page_title(_soup("<p>no title</p>")) == ""
