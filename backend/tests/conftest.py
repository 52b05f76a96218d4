import os

# Use in-memory sqlite for tests; must be set before astate.core.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("STORE_URL", "")
os.environ.setdefault("NOTIFY_WEBHOOK_URL", "")
