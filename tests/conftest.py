"""pytest configuration.

The package code lives under ./python (flat layout, namespace packages).
Put it on sys.path so `python -m pytest` works from the repo root without an install.
"""

import sys
from pathlib import Path


def _ensure_python_dir_on_syspath() -> None:
    python_dir = str(Path(__file__).resolve().parents[1] / "python")
    if python_dir not in sys.path:
        sys.path.insert(0, python_dir)


_ensure_python_dir_on_syspath()
