"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or a real database
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault("EMBEDDING_API_KEY", "")
os.environ.setdefault("API_TOKEN", "")
os.environ.setdefault("ALLOW_AUTOCONFIRM", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
