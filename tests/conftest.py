"""Test fixtures and path configuration."""

import sys
from pathlib import Path

import matplotlib


def pytest_configure() -> None:
    """Make ``src`` importable and keep chart rendering off-screen."""

    root = Path(__file__).resolve().parent.parent
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    matplotlib.use("Agg")
