"""Image scraper: find images on a page or across a domain and download them."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pixgrab")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"
