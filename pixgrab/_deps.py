"""Startup check that the third-party packages pixgrab imports are installed."""

import os
import subprocess
import sys
from importlib.util import find_spec

# Set to "1" to pip-install missing packages on first run
AUTO_INSTALL_ENV = "PIXGRAB_AUTO_INSTALL_DEPS"

# import name -> distribution name on PyPI
REQUIRED = {
    "httpx": "httpx",
    "bs4": "beautifulsoup4",
    "lxml": "lxml",
    "PIL": "Pillow",
    "tqdm": "tqdm",
}


def missing_required() -> list[str]:
    """Distribution names of required packages that are not importable."""
    return [dist for module, dist in REQUIRED.items() if find_spec(module) is None]


def install_help(missing: list[str]) -> str:
    """Message shown when packages are missing: what is absent and the commands that fix it."""
    packages = " ".join(missing)
    return "\n".join(
        [
            f"pixgrab cannot start: missing {', '.join(missing)}.",
            "",
            f"  pip install {packages}",
            "",
            "or reinstall pixgrab from its project directory with `pip install -e .`,",
            f"or run once with {AUTO_INSTALL_ENV}=1 to have pixgrab install them.",
        ]
    )


def _auto_install_requested() -> bool:
    return os.environ.get(AUTO_INSTALL_ENV, "").lower() in ("1", "true", "yes")


def _pip_install(missing: list[str]) -> int:
    print(f"Installing {', '.join(missing)}...", file=sys.stderr)
    result = subprocess.run([sys.executable, "-m", "pip", "install", "-q", *missing])
    return result.returncode


def check_required() -> bool:
    """
    Return True when every required package imports. Otherwise print install help and
    exit 1, or pip-install the packages and exit (0 on success) when auto-install is set.
    """
    missing = missing_required()
    if not missing:
        return True
    if _auto_install_requested():
        try:
            code = _pip_install(missing)
        except OSError as e:
            print(f"[ERROR] pip could not be started: {e}", file=sys.stderr)
            code = 1
        if code == 0:
            print("Dependencies installed. Run pixgrab again.", file=sys.stderr)
            sys.exit(0)
        print("[ERROR] Automatic install failed.", file=sys.stderr)
    print(install_help(missing), file=sys.stderr)
    sys.exit(1)
