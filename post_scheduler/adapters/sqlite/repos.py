import sqlite3
import time
from datetime import UTC, datetime
from typing import Any

from post_scheduler.core.entities import SchedulerMetrics
from post_scheduler.core.timefmt import format_utc_iso, parse_utc_iso
from post_scheduler.domain.entities import Post, PostStatus, UserPreferences

DEFAULT_BUSY_TIMEOUT_MS = 30000
# VM instructions between deadline checks
PROGRESS_CHECK_INTERVAL = 1000


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _to_db(dt: datetime | None) -> str | None:
    """Store datetimes as fixed-width UTC ISO strings so they sort lexically."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class _SQLiteRepo:
    def __init__(self, db_path: str, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS):
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms

    def _get_conn(self) -> sqlite3.Connection:
        """
        Open a connection bounded by busy_timeout_ms.

        The timeout covers lock waits and, through a progress handler, query
        execution: a statement still running past the deadline is interrupted
        and raises sqlite3.OperationalError.
        """
        timeout_s = self.busy_timeout_ms / 1000.0
        conn = sqlite3.connect(self.db_path, timeout=timeout_s)
        conn.row_factory = dict_factory
        deadline = time.monotonic() + timeout_s
        conn.set_progress_handler(
            lambda: int(time.monotonic() > deadline), PROGRESS_CHECK_INTERVAL
        )
        return conn


class SQLitePostRepo(_SQLiteRepo):
    def _map_row(self, row: dict[str, Any]) -> Post:
        return Post(
            id=row["id"],
            user_id=row["user_id"],
            content=row["content"],
            status=row["status"],
            scheduled_at=_from_db(row["scheduled_at"]),
            published_at=_from_db(row["published_at"]),
            created_at=_from_db(row["created_at"]),
            user_timezone=row["user_timezone"],
            original_scheduled_time=row["original_scheduled_time"],
        )

    def get_due_posts(self, before_utc: datetime) -> list[Post]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM posts
                WHERE status = 'SCHEDULED' AND scheduled_at <= ?
                ORDER BY scheduled_at ASC
                """,
                (_to_db(before_utc),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()

    def mark_published(self, post_ids: list[str], published_at_utc: datetime) -> list[str]:
        if not post_ids:
            return []
        conn = self._get_conn()
        try:
            placeholders = ", ".join("?" for _ in post_ids)
            # Compare-and-set: only rows still SCHEDULED flip
            cursor = conn.execute(
                f"""
                UPDATE posts
                SET status = 'PUBLISHED', published_at = ?
                WHERE id IN ({placeholders}) AND status = 'SCHEDULED'
                RETURNING id
                """,
                (_to_db(published_at_utc), *post_ids),
            )
            rows = cursor.fetchall()
            conn.commit()
            return [r["id"] for r in rows]
        finally:
            conn.close()

    def create_post(self, post: Post) -> Post:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO posts (
                    id, user_id, content, status, scheduled_at, published_at,
                    created_at, user_timezone, original_scheduled_time
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    post.id,
                    post.user_id,
                    post.content,
                    post.status,
                    _to_db(post.scheduled_at),
                    _to_db(post.published_at),
                    _to_db(post.created_at),
                    post.user_timezone,
                    post.original_scheduled_time,
                ),
            )
            conn.commit()
            return post
        finally:
            conn.close()

    def update_post(self, post: Post) -> Post:
        conn = self._get_conn()
        try:
            # PUBLISHED rows are never rewritten by the CRUD path
            conn.execute(
                """
                UPDATE posts SET
                    content = ?,
                    status = ?,
                    scheduled_at = ?,
                    user_timezone = ?,
                    original_scheduled_time = ?
                WHERE id = ? AND status != 'PUBLISHED'
                """,
                (
                    post.content,
                    post.status,
                    _to_db(post.scheduled_at),
                    post.user_timezone,
                    post.original_scheduled_time,
                    post.id,
                ),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (post.id,)).fetchone()
            return self._map_row(row) if row else post
        finally:
            conn.close()

    def get_by_id(self, post_id: str) -> Post | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def delete(self, post_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM posts WHERE id = ? AND status != 'PUBLISHED'", (post_id,))
            conn.commit()
        finally:
            conn.close()

    def list_by_user(self, user_id: str, status: PostStatus | None = None) -> list[Post]:
        conn = self._get_conn()
        try:
            if status:
                rows = conn.execute(
                    """
                    SELECT * FROM posts WHERE user_id = ? AND status = ?
                    ORDER BY created_at DESC
                    """,
                    (user_id, status),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM posts WHERE user_id = ? ORDER BY created_at DESC",
                    (user_id,),
                ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()


class SQLiteMetricsRepo(_SQLiteRepo):
    def _map_row(self, row: dict[str, Any]) -> SchedulerMetrics:
        return SchedulerMetrics(
            execution_id=row["execution_id"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            posts_processed=row["posts_processed"],
            posts_published=row["posts_published"],
            errors_encountered=row["errors_encountered"],
            execution_duration_ms=row["execution_duration_ms"],
        )

    def save_metrics(self, metrics: SchedulerMetrics) -> bool:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO scheduler_metrics (
                    execution_id, started_at, completed_at, posts_processed,
                    posts_published, errors_encountered, execution_duration_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    metrics.execution_id,
                    metrics.started_at,
                    metrics.completed_at,
                    metrics.posts_processed,
                    metrics.posts_published,
                    metrics.errors_encountered,
                    metrics.execution_duration_ms,
                ),
            )
            conn.commit()
            return True
        except sqlite3.IntegrityError:
            return False
        finally:
            conn.close()

    def get_metrics(self, execution_id: str) -> SchedulerMetrics | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM scheduler_metrics WHERE execution_id = ?", (execution_id,)
            ).fetchone()
            if not row:
                return None
            return self._map_row(row)
        finally:
            conn.close()

    def get_recent_metrics(self, limit: int = 10) -> list[SchedulerMetrics]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM scheduler_metrics ORDER BY started_at DESC LIMIT ?",
                (limit,),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()

    def get_metrics_by_date_range(self, start_utc: str, end_utc: str) -> list[SchedulerMetrics]:
        start = format_utc_iso(parse_utc_iso(start_utc))
        end = format_utc_iso(parse_utc_iso(end_utc))
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM scheduler_metrics
                WHERE started_at >= ? AND started_at <= ?
                ORDER BY started_at DESC
                """,
                (start, end),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()


class SQLitePreferencesRepo(_SQLiteRepo):
    def get(self, user_id: str) -> UserPreferences | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM user_preferences WHERE user_id = ?", (user_id,)
            ).fetchone()
            if not row:
                return None
            return UserPreferences(
                user_id=row["user_id"],
                timezone=row["timezone"],
                created_at=_from_db(row["created_at"]),
                updated_at=_from_db(row["updated_at"]),
            )
        finally:
            conn.close()

    def save(self, prefs: UserPreferences) -> UserPreferences:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO user_preferences (user_id, timezone, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    timezone=excluded.timezone,
                    updated_at=excluded.updated_at
                """,
                (
                    prefs.user_id,
                    prefs.timezone,
                    _to_db(prefs.created_at),
                    _to_db(prefs.updated_at),
                ),
            )
            conn.commit()
            return prefs
        finally:
            conn.close()
