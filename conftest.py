"""Root conftest: env applied to ALL test paths (tests/, apps/publisher/tests/)."""

import os

# Deterministic test env: no webhook notifications, no multi-tenant config DB from the shell
os.environ.setdefault("ENV", "test")
os.environ.setdefault("PYTEST_RUNNING", "1")
os.environ.pop("NOTIFY_WEBHOOK_URL", None)
os.environ.pop("MULTI_TENANT", None)
