"""Pytest configuration shared by the flashdeck test suite."""

import os
import sys
import tempfile
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "apps" / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

# Importing flashdeck.store opens the configured database, so point it at a
# throwaway file before any test module imports the package. Tests that need
# an isolated store override FLASHCARDS_DB_PATH via monkeypatch.
os.environ.setdefault(
    "FLASHCARDS_DB_PATH",
    str(Path(tempfile.mkdtemp(prefix="flashdeck-tests-")) / "store.sqlite3"),
)
# keep API tests clear of the production-sized per-IP budget
os.environ.setdefault("RATE_LIMIT_PER_MIN_IP", "10000")
