"""
Image URL discovery: one place that runs every heuristic over a page.
Depends only on extractors; no fetching here.
"""

from bs4 import BeautifulSoup

from pixgrab.extractors import (
    find_data_attr_urls,
    find_img_tag_urls,
    find_media_cover_urls,
    find_picture_urls,
    find_raw_background_urls,
    find_style_attr_urls,
    find_text_pattern_urls,
    is_valid_image_url,
)


def find_image_candidates(
    soup: BeautifulSoup,
    page_url: str,
    html_str: str,
    *,
    include_gifs: bool = False,
) -> list[str]:
    """
    Run the seven heuristics in order and return deduped candidates in discovery order.
    Empty (unresolvable) results are dropped; the validity filter is not applied yet.
    """
    candidates: list[str] = []
    seen: set[str] = set()

    def add(urls: list[str]) -> None:
        for u in urls:
            if u and u not in seen:
                seen.add(u)
                candidates.append(u)

    add(find_img_tag_urls(soup, page_url, include_gifs))
    add(find_picture_urls(soup, page_url))
    add(find_style_attr_urls(soup, page_url))
    add(find_data_attr_urls(soup, page_url, include_gifs))
    add(find_media_cover_urls(soup, page_url))
    # Raw-text passes see <style> blocks and scripts the DOM walks skip
    add(find_raw_background_urls(html_str, page_url, include_gifs))
    add(find_text_pattern_urls(html_str, page_url, include_gifs))
    return candidates


def collect_image_urls(
    soup: BeautifulSoup,
    page_url: str,
    html_str: str,
    *,
    include_gifs: bool = False,
) -> list[str]:
    """Candidates that pass the final validity filter (HTTP(S), known image extension)."""
    return [
        u
        for u in find_image_candidates(soup, page_url, html_str, include_gifs=include_gifs)
        if is_valid_image_url(u, include_gifs)
    ]
