import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from post_scheduler.adapters.clock import FrozenClock
from post_scheduler.adapters.sqlite.migrator import SQLiteMigrator
from post_scheduler.api.deps import get_context, get_jwt_secret
from post_scheduler.api.main import app
from post_scheduler.app_shell.context import ServiceContext
from post_scheduler.rules.loader import load_rules
from post_scheduler.rules.models import Rules
from tests.factories import CRON_SECRET, JWT_SECRET, NOW

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def rules_path() -> Path:
    return PROJECT_ROOT / "rules.yaml"


@pytest.fixture
def rules(rules_path: Path) -> Rules:
    return load_rules(rules_path)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def no_sleep() -> list[float]:
    """Records requested sleeps instead of sleeping; pass .append as the sleep function."""
    return []


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Temporary SQLite database with every migration applied."""
    path = os.path.join(str(tmp_path), "scheduler.db")
    SQLiteMigrator(path).run_migrations()
    return path


# --- API ---


@pytest.fixture
def api_context(db_path: str, rules: Rules, clock: FrozenClock) -> ServiceContext:
    return ServiceContext.create(
        db_path,
        rules,
        environ={"CRON_SECRET": CRON_SECRET},
        clock=clock,
        sleep=lambda _: None,
    )


@pytest.fixture
def client(api_context: ServiceContext) -> TestClient:
    """TestClient over the real app without running startup (no lifespan)."""
    app.dependency_overrides[get_context] = lambda: api_context
    app.dependency_overrides[get_jwt_secret] = lambda: JWT_SECRET
    yield TestClient(app)
    app.dependency_overrides.clear()
