from post_scheduler.adapters.sqlite.migrator import SQLiteMigrator
from post_scheduler.adapters.sqlite.repos import (
    SQLiteMetricsRepo,
    SQLitePostRepo,
    SQLitePreferencesRepo,
)

__all__ = [
    "SQLiteMigrator",
    "SQLiteMetricsRepo",
    "SQLitePostRepo",
    "SQLitePreferencesRepo",
]
