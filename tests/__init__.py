"""Test suite; every run works on a throwaway SQLite database."""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="chitfund-tests-")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
