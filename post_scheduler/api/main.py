import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from post_scheduler import __version__
from post_scheduler.adapters.sqlite import SQLiteMigrator
from post_scheduler.api.deps import get_rules, get_settings
from post_scheduler.app_shell.config import validate_ops_rules
from post_scheduler.shell.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules()
        configure_logging(rules.logging.level, rules.logging.structured)
        validate_ops_rules(rules, settings.data_dir)
        SQLiteMigrator(settings.db_path).run_migrations()
    except Exception as e:
        print(f"CRITICAL: Startup failed: {e}", file=sys.stderr)
        sys.exit(1)

    yield


app = FastAPI(
    title="Post Scheduler API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from post_scheduler.api.routes import metrics, posts, preferences, scheduler  # noqa: E402

app.include_router(scheduler.router, prefix="/api/scheduler", tags=["Scheduler"])
app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
app.include_router(preferences.router, prefix="/api/user/preferences", tags=["Preferences"])
app.include_router(metrics.router, prefix="/api/metrics", tags=["Metrics"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "post-scheduler"}
