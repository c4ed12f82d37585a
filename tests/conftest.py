from collections import Counter
from io import BytesIO

import httpx
import pytest
from PIL import Image

from pixgrab.config import ScraperConfig
from pixgrab.fetcher import Fetcher


def image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 3), mode: str = "RGB") -> bytes:
    buf = BytesIO()
    color = 128 if mode == "L" else (200, 30, 30, 255)[: len(mode)]
    Image.new(mode, size, color=color).save(buf, format=fmt)
    return buf.getvalue()


class MockSite:
    """Routes absolute URLs to canned responses and counts requests per URL."""

    def __init__(self, routes: dict[str, object]) -> None:
        self.routes = routes
        self.hits: Counter[str] = Counter()

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.hits[url] += 1
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            # fresh copy per request; a Response object is single-use
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        if isinstance(route, bytes):
            return httpx.Response(200, content=route)
        return httpx.Response(200, text=route, headers={"content-type": "text/html; charset=utf-8"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def sleeps(monkeypatch):
    """Capture time.sleep calls (seconds) made by the pacing code instead of sleeping."""
    calls: list[float] = []
    monkeypatch.setattr("pixgrab.delay.time.sleep", calls.append)
    return calls


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG", (5, 7))


@pytest.fixture
def jpeg_bytes() -> bytes:
    return image_bytes("JPEG", (8, 6))


@pytest.fixture
def make_site():
    return MockSite


@pytest.fixture
def make_config(tmp_path):
    def _make(url: str = "https://a.test/", **kwargs) -> ScraperConfig:
        kwargs.setdefault("output_dir", tmp_path / "out")
        kwargs.setdefault("show_progress", False)
        return ScraperConfig(url=url, **kwargs)

    return _make


@pytest.fixture
def make_fetcher():
    def _make(site: MockSite, config: ScraperConfig) -> Fetcher:
        return Fetcher.from_config(config, transport=site.transport)

    return _make


@pytest.fixture
def make_image():
    return image_bytes
