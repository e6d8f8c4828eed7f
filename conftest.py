"""Root pytest configuration.

Settings are read once at import time (engine, limiter), so the test
environment has to be in place before any project module is imported.
"""

import os

from dotenv import load_dotenv

# Optional local overrides, e.g. TEST_DATABASE_URL pointing at PostgreSQL
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("REDIS_URL", "memory://")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the test env vars
get_settings.cache_clear()
