"""Scraping pipeline: frontier, image sink, and the single-page / domain drivers. Used by CLI and programmatic callers."""

import sys
import traceback
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from bs4 import BeautifulSoup
from tqdm import tqdm

from pixgrab.config import ScraperConfig
from pixgrab.convert import ConversionError, convert_image
from pixgrab.delay import compute_delay, polite_sleep
from pixgrab.discovery import collect_image_urls
from pixgrab.extractors import find_page_links, normalize_page_url, page_title, same_host
from pixgrab.fetcher import FetchError, Fetcher
from pixgrab.storage import ensure_unique, image_filename, output_folder_name, write_binary


@dataclass
class CrawlState:
    """Counters for one top-level run; a fresh instance per run."""
    pages_processed: int = 0
    pages_failed: int = 0
    images_found: int = 0
    images_saved: int = 0


class DownloadStatus(str, Enum):
    """Outcome of one image download."""

    SAVED = "saved"
    CONVERTED = "converted"
    SAVED_ORIGINAL = "saved_original"  # conversion failed, raw bytes written instead
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class DownloadResult:
    url: str
    status: DownloadStatus
    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (DownloadStatus.SAVED, DownloadStatus.CONVERTED, DownloadStatus.SAVED_ORIGINAL)


@dataclass
class PageResult:
    """Result of processing one page: discovered images, their downloads, and outgoing links."""
    url: str
    image_urls: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    downloads: list[DownloadResult] = field(default_factory=list)
    error: str | None = None
    exc: BaseException | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


def _print_traceback(exc: BaseException) -> None:
    print("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), file=sys.stderr)


class Frontier:
    """
    FIFO queue of page URLs scoped to the start URL's host, with a visited set
    and a page budget. Visited is checked at pop time, so re-enqueueing is harmless.
    """

    def __init__(self, start_url: str, max_pages: int) -> None:
        self.start_url = normalize_page_url(start_url)
        self.max_pages = max_pages
        self.visited: set[str] = set()
        self.pages_processed = 0
        self._queue: deque[str] = deque([self.start_url])

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def exhausted(self) -> bool:
        return not self._queue or self.pages_processed >= self.max_pages

    def pop(self) -> str | None:
        """Next unvisited URL (marked visited and counted), or None when the queue or budget runs out."""
        while self._queue and self.pages_processed < self.max_pages:
            url = self._queue.popleft()
            if url in self.visited:
                continue
            self.visited.add(url)
            self.pages_processed += 1
            return url
        return None

    def add_links(self, links: Iterable[str]) -> int:
        """Enqueue unvisited same-host links; returns how many were queued."""
        added = 0
        for link in links:
            if link not in self.visited and same_host(link, self.start_url):
                self._queue.append(link)
                added += 1
        return added


class ImageSink:
    """Downloads each distinct image URL once per run, optionally re-encoding it."""

    def __init__(self, config: ScraperConfig, fetcher: Fetcher, out_dir: Path) -> None:
        self.config = config
        self.fetcher = fetcher
        self.out_dir = out_dir
        self.downloaded: set[str] = set()

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(f"* {message}", file=sys.stderr)

    def download(self, url: str) -> DownloadResult:
        """Fetch url and write it under out_dir. Failures are logged and returned, never raised."""
        if url in self.downloaded:
            return DownloadResult(url, DownloadStatus.DUPLICATE)
        self.downloaded.add(url)

        cfg = self.config
        try:
            if cfg.stealth:
                wait = compute_delay(cfg.delay_ms // 2, cfg.randomize_delays)
                self._log(f"Delay: {wait}ms")
                polite_sleep(wait)

            filename = image_filename(url, cfg.convert_to)
            if cfg.convert_to:
                self._log(f"[CONVERT] {image_filename(url)} will be converted to {filename}")
            dest = ensure_unique(self.out_dir / filename)

            data = self.fetcher.fetch_bytes(url)
            self._log(f"Got {len(data)} bytes from {url}")

            if not cfg.convert_to:
                write_binary(dest, data)
                print(f"  [+] {url} -> {dest.name}", file=sys.stderr)
                return DownloadResult(url, DownloadStatus.SAVED, dest)

            try:
                encoded, (width, height) = convert_image(data, cfg.convert_to, quality=cfg.jpeg_quality)
            except ConversionError as e:
                print(f"  [ERROR] Conversion failed for {url}: {e}", file=sys.stderr)
                write_binary(dest, data)
                print(f"  [!] {url} -> {dest.name} (conversion failed, saved as-is)", file=sys.stderr)
                return DownloadResult(url, DownloadStatus.SAVED_ORIGINAL, dest, str(e))
            self._log(f"Image {width}x{height} encoded as {cfg.convert_to.upper()}")
            write_binary(dest, encoded)
            print(f"  [+] {url} -> {dest.name} ({cfg.convert_to.upper()})", file=sys.stderr)
            return DownloadResult(url, DownloadStatus.CONVERTED, dest)
        except Exception as e:
            print(f"  [ERROR] Failed to download {url}: {e}", file=sys.stderr)
            if cfg.verbose:
                _print_traceback(e)
            return DownloadResult(url, DownloadStatus.FAILED, error=str(e))


class ImageScraper:
    """Drives one run: resolve the output folder, then process one page or crawl the domain."""

    def __init__(self, config: ScraperConfig, *, fetcher: Fetcher | None = None) -> None:
        self.config = config
        self.fetcher = fetcher or Fetcher.from_config(config)
        self.state = CrawlState()
        self.output_dir: Path | None = None
        self.sink: ImageSink | None = None
        self.frontier: Frontier | None = None
        # Start page HTML fetched while naming the output folder; consumed by the first page pass
        self._page_cache: dict[str, str] = {}

    def close(self) -> None:
        self.fetcher.close()

    def __enter__(self) -> "ImageScraper":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(f"* {message}", file=sys.stderr)

    def run(self) -> CrawlState:
        if self.config.domain_mode:
            return self.crawl_domain()
        return self.scrape_single_page()

    def _start_run(self, banner: str) -> None:
        cfg = self.config
        self.state = CrawlState()
        self.fetcher.reset()
        self._page_cache = {}
        print(banner, file=sys.stderr)
        if cfg.stealth:
            print(f"Stealth mode enabled with {cfg.delay_ms}ms {cfg.delay_kind} delay between requests", file=sys.stderr)
        if cfg.convert_to:
            print(f"Converting all images to {cfg.convert_to.upper()} during download", file=sys.stderr)
        self.output_dir = self.resolve_output_dir()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        print(f"Saving images to: {self.output_dir}", file=sys.stderr)
        self.sink = ImageSink(cfg, self.fetcher, self.output_dir)

    def resolve_output_dir(self) -> Path:
        """Explicit override, else the start page's title, else <host>_<path-slug>."""
        if self.config.output_dir is not None:
            return self.config.output_dir
        url = self.config.url
        title = ""
        try:
            html = self.fetcher.fetch_page(url)
            self._page_cache[normalize_page_url(url)] = html
            title = page_title(BeautifulSoup(html, "lxml"))
        except FetchError as e:
            self._log(f"Could not read page title: {e}")
        return Path(output_folder_name(url, title))

    def process_page(self, url: str) -> PageResult:
        """Fetch, extract, and download one page. Any failure is captured in the result."""
        try:
            html = self._page_cache.pop(normalize_page_url(url), None)
            if html is None:
                html = self.fetcher.fetch_page(url)
            if not html.strip():
                return PageResult(url)
            soup = BeautifulSoup(html, "lxml")
            image_urls = collect_image_urls(soup, url, html, include_gifs=self.config.include_gifs)
            self.state.images_found += len(image_urls)
            print(
                f"Found {len(image_urls)} images on this page (total so far: {self.state.images_found})",
                file=sys.stderr,
            )
            downloads = [self.sink.download(u) for u in image_urls]
            self.state.images_saved += sum(1 for d in downloads if d.ok)
            links = find_page_links(soup, url) if self.config.domain_mode else []
            return PageResult(url, image_urls, links, downloads)
        except Exception as e:
            return PageResult(url, error=str(e), exc=e)

    def _report_failure(self, result: PageResult) -> None:
        self.state.pages_failed += 1
        print(f"[WARN] Error processing page {result.url}: {result.error}", file=sys.stderr)
        if self.config.verbose and result.exc is not None:
            _print_traceback(result.exc)

    def scrape_single_page(self) -> CrawlState:
        """One fetch + extract pass over the configured URL; no frontier."""
        self._start_run("Starting single-page image download...")
        self.state.pages_processed = 1
        result = self.process_page(self.config.url)
        if not result.ok:
            self._report_failure(result)
        print(f"Download complete. Total images found: {self.state.images_found}", file=sys.stderr)
        return self.state

    def crawl_domain(self) -> CrawlState:
        """Breadth-first crawl of the start URL's host, bounded by max_pages."""
        cfg = self.config
        self._start_run("Starting domain-wide crawling...")
        frontier = Frontier(cfg.url, cfg.max_pages)
        self.frontier = frontier
        with tqdm(
            desc="Crawl", unit=" page", total=cfg.max_pages, file=sys.stderr, disable=not cfg.show_progress
        ) as pbar:
            while True:
                url = frontier.pop()
                if url is None:
                    break
                self.state.pages_processed = frontier.pages_processed
                print(f"[{frontier.pages_processed}/{cfg.max_pages}] Crawling: {url}", file=sys.stderr)
                result = self.process_page(url)
                if result.ok:
                    queued = frontier.add_links(result.links)
                    self._log(f"Queued {queued} links ({len(frontier)} pending)")
                else:
                    self._report_failure(result)
                pbar.set_postfix(queue=len(frontier))
                pbar.update(1)
        print(
            f"Crawling complete. Processed {self.state.pages_processed} pages. "
            f"Total images found: {self.state.images_found}",
            file=sys.stderr,
        )
        return self.state
