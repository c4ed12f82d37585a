"""Scraper configuration: resolved once from CLI input, never mutated afterwards."""

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_MAX_PAGES = 100
# 1 req/s: most sites tolerate it; with ±40% randomization the range is 600-1400ms
DEFAULT_DELAY_MS = 1000
DEFAULT_JPEG_QUALITY = 90
DEFAULT_TIMEOUT = 30.0

CONVERT_FORMATS = ("jpg", "png", "gif")
_FORMAT_ALIASES = {"jpeg": "jpg"}


class ConfigError(ValueError):
    """Configuration is missing or malformed; the run must not start."""


def normalize_format(fmt: str | None) -> str | None:
    """Lower-case a conversion format token and map aliases (jpeg -> jpg). Empty means no conversion."""
    if fmt is None:
        return None
    fmt = fmt.strip().lower()
    if not fmt:
        return None
    fmt = _FORMAT_ALIASES.get(fmt, fmt)
    if fmt not in CONVERT_FORMATS:
        raise ConfigError(f"Invalid conversion format '{fmt}'. Use: jpg, png, or gif.")
    return fmt


@dataclass(frozen=True)
class ScraperConfig:
    url: str
    domain_mode: bool = False
    output_dir: Path | None = None
    max_pages: int = DEFAULT_MAX_PAGES
    include_gifs: bool = False
    stealth: bool = False
    randomize_delays: bool = False
    delay_ms: int = DEFAULT_DELAY_MS
    convert_to: str | None = None
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    verbose: bool = False
    show_progress: bool = True
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        url = (self.url or "").strip()
        if not url:
            raise ConfigError("URL is required.")
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ConfigError(f"Invalid URL '{url}': {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError("Invalid URL. Must be a valid HTTP or HTTPS URL.")
        if self.max_pages <= 0:
            raise ConfigError("max_pages must be a positive integer.")
        if self.delay_ms <= 0:
            raise ConfigError("delay must be a positive number of milliseconds.")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigError("jpeg_quality must be between 1 and 100.")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive.")
        # frozen: assign normalized values through object.__setattr__
        object.__setattr__(self, "url", url)
        object.__setattr__(self, "convert_to", normalize_format(self.convert_to))
        if self.output_dir is not None and not isinstance(self.output_dir, Path):
            object.__setattr__(self, "output_dir", Path(self.output_dir))

    @property
    def delay_kind(self) -> str:
        return "randomized" if self.randomize_delays else "fixed"
