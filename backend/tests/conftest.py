"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: puts `backend/` on the import path so tests can
    import `oddsboard` without installing the package.
"""

from __future__ import annotations

import sys
from pathlib import Path

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))
