"""Shared test setup.

Settings are read at import time, so the JWT secret must be in the
environment before any `src.userservice` module is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "unit-test-secret-0123456789abcdef0123")
