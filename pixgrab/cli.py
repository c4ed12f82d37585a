"""pixgrab CLI. Invoked as `pixgrab` when installed with pip install -e ."""

import argparse
import sys
from pathlib import Path

from pixgrab import __version__
from pixgrab._deps import check_required
from pixgrab.config import (
    CONVERT_FORMATS,
    DEFAULT_DELAY_MS,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_PAGES,
    ConfigError,
    ScraperConfig,
)
from pixgrab.storage import sanitize_folder_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixgrab",
        description="Download images from a web page, or from every page of its domain.",
        epilog=(
            "Stealth mode uses realistic HTTP headers and randomized delays, and backs off "
            "progressively when the server rate-limits (HTTP 429)."
        ),
    )
    parser.add_argument("url", metavar="URL", help="HTTP or HTTPS URL of the page to scrape")
    parser.add_argument("--domain", action="store_true", help="Crawl the entire domain, not just the given page")
    parser.add_argument(
        "--max-pages",
        type=int,
        default=DEFAULT_MAX_PAGES,
        metavar="N",
        help=f"Max pages to crawl in domain mode (default: {DEFAULT_MAX_PAGES})",
    )
    parser.add_argument("--out", default=None, metavar="DIR", help="Output folder (default: from page title or URL)")
    parser.add_argument("--include-gifs", action="store_true", help="Include animated GIF files in downloads")
    pacing = parser.add_mutually_exclusive_group()
    pacing.add_argument("--stealth", action="store_true", help="Stealth mode with randomized delays")
    pacing.add_argument(
        "--delay",
        type=int,
        default=None,
        metavar="MS",
        help=f"Stealth mode with a fixed delay between requests in milliseconds (default base: {DEFAULT_DELAY_MS})",
    )
    parser.add_argument(
        "--convert-to",
        type=str.lower,
        default=None,
        choices=list(CONVERT_FORMATS) + ["jpeg"],
        metavar="FMT",
        help="Convert all images to: jpg, png, or gif",
    )
    parser.add_argument(
        "--jpeg-quality",
        type=int,
        default=DEFAULT_JPEG_QUALITY,
        metavar="N",
        help=f"JPEG quality for conversion (1-100, default: {DEFAULT_JPEG_QUALITY})",
    )
    parser.add_argument("--verbose", action="store_true", help="Print detailed information about operations")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bar (e.g. for scripting)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def output_dir_from_arg(out: str | None) -> Path | None:
    """--out as a path whose last component has characters unsafe in folder names replaced."""
    if not out:
        return None
    path = Path(out)
    return path.with_name(sanitize_folder_name(path.name)) if path.name else path


def config_from_args(args: argparse.Namespace) -> ScraperConfig:
    """Build the immutable run configuration; raises ConfigError on bad values."""
    stealth = args.stealth or args.delay is not None
    return ScraperConfig(
        url=args.url,
        domain_mode=args.domain,
        output_dir=output_dir_from_arg(args.out),
        max_pages=args.max_pages,
        include_gifs=args.include_gifs,
        stealth=stealth,
        randomize_delays=args.stealth,
        delay_ms=args.delay if args.delay is not None else DEFAULT_DELAY_MS,
        convert_to=args.convert_to,
        jpeg_quality=args.jpeg_quality,
        verbose=args.verbose,
        show_progress=not args.no_progress,
    )


def main(argv: list[str] | None = None) -> int:
    check_required()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigError as e:
        parser.error(str(e))

    from pixgrab.pipeline import ImageScraper

    with ImageScraper(config) as scraper:
        state = scraper.run()
    if state.pages_processed and state.pages_failed == state.pages_processed:
        print("[ERROR] No page could be processed.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
