"""Point the application at a throwaway database before it is imported."""

import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="dutch_drill_test_"))
os.environ["DUTCH_DRILL_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
