"""Global pytest configuration."""

import os

# Keep tests on in-memory stores regardless of a developer .env
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("REMOTE_STORE_URL", "")
