"""Output folder naming, filename sanitization, and file writing."""

import re
from pathlib import Path
from urllib.parse import unquote, urlparse

DEFAULT_IMAGE_NAME = "image"
DEFAULT_IMAGE_EXT = ".jpg"
MAX_NAME_LENGTH = 200


def sanitize_filename(name: str) -> str:
    """Replace characters unsafe in a filename with '_'."""
    return re.sub(r"[^\w.-]", "_", name)


def image_filename(url: str, convert_to: str | None = None) -> str:
    """
    Filename for an image URL: last path segment (percent-decoded), "image" when empty,
    ".jpg" appended when there is no extension, unsafe characters replaced.
    With convert_to, the extension is rewritten to the target format.
    """
    try:
        path = urlparse(url).path
    except ValueError:
        path = ""
    name = unquote(path).split("/")[-1]
    if not name or not name.strip("."):
        name = DEFAULT_IMAGE_NAME
    if not Path(name).suffix:
        name += DEFAULT_IMAGE_EXT
    name = sanitize_filename(name)
    if len(name) > MAX_NAME_LENGTH:
        stem, ext = Path(name).stem, Path(name).suffix
        name = stem[: MAX_NAME_LENGTH - len(ext)] + ext
    if convert_to:
        name = f"{Path(name).stem}.{convert_to}"
    return name


def ensure_unique(path: Path) -> Path:
    """If path exists, add numeric suffix (_1, _2, ...) before the extension."""
    if not path.exists():
        return path
    stem = path.stem
    ext = path.suffix
    parent = path.parent
    n = 1
    while True:
        candidate = parent / f"{stem}_{n}{ext}"
        if not candidate.exists():
            return candidate
        n += 1


# Characters no common filesystem accepts in a folder name
_UNSAFE_FOLDER_CHARS_RE = re.compile(r'[<>:"\\|?*\x00-\x1f]')


def sanitize_folder_name(name: str) -> str:
    """Replace characters that are invalid in a folder name with '_'."""
    return _UNSAFE_FOLDER_CHARS_RE.sub("_", name)


def folder_from_title(title: str) -> str | None:
    """Folder name from a page title: keep [\\w\\s-], collapse whitespace to '_'. None if too short."""
    if not title or len(title) <= 2:
        return None
    sanitized = re.sub(r"[^\w\s-]", "", title)
    sanitized = re.sub(r"\s+", "_", sanitized)
    if len(sanitized) > 3:
        return sanitized
    return None


def folder_from_url(url: str) -> str:
    """Folder name from host (without www.) and path: <host>_<path_slug> or <host>_images."""
    parsed = urlparse(url)
    domain = (parsed.hostname or "unknown").replace("www.", "")
    slug = parsed.path.strip("/").replace("/", "_")
    slug = sanitize_filename(slug)
    if slug:
        return f"{domain}_{slug}"
    return f"{domain}_images"


def output_folder_name(url: str, title: str | None = None) -> str:
    """Title-based folder name when usable, else URL-based."""
    return folder_from_title(title or "") or folder_from_url(url)


def write_binary(path: Path, data: bytes) -> None:
    """Write binary data."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
