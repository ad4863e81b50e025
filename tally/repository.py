import copy
import dataclasses
import enum
import sqlite3
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from . import db
from .core.errors import PersistenceError
from .core.models import Habit
from .lib import clock
from .lib.converters import row_to_habit
from .lib.dates import format_timestamp

__all__ = [
    "HabitQuery",
    "HabitRepository",
    "InMemoryHabitRepository",
    "SortKey",
    "SqliteHabitRepository",
    "apply_query",
]


class SortKey(enum.Enum):
    NEWEST = "newest"
    STREAK = "streak"
    WEEKLY = "weekly"
    TITLE = "title"


@dataclasses.dataclass(frozen=True)
class HabitQuery:
    search: str = ""
    sort: SortKey = SortKey.NEWEST
    limit: int | None = None


class HabitRepository(Protocol):
    """Storage seam for the habit collection.

    Writes are staged by upsert/delete and become durable only on commit(),
    which persists everything staged or raises PersistenceError.
    """

    def get(self, habit_id: str) -> Habit | None: ...

    def list(self, query: HabitQuery | None = None) -> list[Habit]: ...

    def upsert(self, habit: Habit) -> None: ...

    def delete(self, habit_id: str) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _matches(habit: Habit, needle: str) -> bool:
    return needle in habit.title.lower() or needle in ",".join(habit.tags).lower()


def apply_query(habits: Iterable[Habit], query: HabitQuery | None = None) -> list[Habit]:
    query = query or HabitQuery()
    needle = query.search.strip().lower()
    result = [h for h in habits if _matches(h, needle)] if needle else list(habits)

    if query.sort is SortKey.NEWEST:
        result.sort(key=lambda h: h.created_at, reverse=True)
    elif query.sort is SortKey.STREAK:
        today = clock.today()
        result.sort(key=lambda h: h.current_streak(today), reverse=True)
    elif query.sort is SortKey.WEEKLY:
        today = clock.today()
        result.sort(key=lambda h: h.weekly_rate(today), reverse=True)
    elif query.sort is SortKey.TITLE:
        result.sort(key=lambda h: h.title.lower())

    if query.limit is not None:
        result = result[: query.limit]
    return result


# ── sqlite ───────────────────────────────────────────────────────────────────


_HABIT_COLS = (
    "id, title, icon, color_hex, notes, created_at, target_per_day, "
    "remind_enabled, reminder_hour, reminder_minute"
)


def _load_completions(conn: sqlite3.Connection, habit_ids: list[str]) -> dict[str, list[datetime]]:
    if not habit_ids:
        return {}
    placeholders = ",".join("?" * len(habit_ids))
    cursor = conn.execute(
        f"SELECT habit_id, completed_at FROM completions WHERE habit_id IN ({placeholders}) ORDER BY id",  # noqa: S608
        habit_ids,
    )
    result: dict[str, list[datetime]] = {}
    for habit_id, completed_at in cursor.fetchall():
        result.setdefault(habit_id, []).append(datetime.fromisoformat(completed_at))
    return result


def _load_tags(conn: sqlite3.Connection, habit_ids: list[str]) -> dict[str, list[str]]:
    if not habit_ids:
        return {}
    placeholders = ",".join("?" * len(habit_ids))
    cursor = conn.execute(
        f"SELECT habit_id, tag FROM tags WHERE habit_id IN ({placeholders}) ORDER BY position",  # noqa: S608
        habit_ids,
    )
    result: dict[str, list[str]] = {}
    for habit_id, tag in cursor.fetchall():
        result.setdefault(habit_id, []).append(tag)
    return result


def _fetch_habits(
    conn: sqlite3.Connection, where: str = "1 = 1", params: tuple[object, ...] = ()
) -> list[Habit]:
    """Fetch habits matching a WHERE clause and hydrate completions + tags."""
    cursor = conn.execute(f"SELECT {_HABIT_COLS} FROM habits WHERE {where}", params)  # noqa: S608
    habits = [row_to_habit(row) for row in cursor.fetchall()]
    ids = [h.id for h in habits]
    completions = _load_completions(conn, ids)
    tags = _load_tags(conn, ids)
    for h in habits:
        h.completions = completions.get(h.id, [])
        h.tags = tags.get(h.id, [])
    return habits


def _write_habit(conn: sqlite3.Connection, habit: Habit) -> None:
    conn.execute(
        f"""
        INSERT INTO habits ({_HABIT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (id) DO UPDATE SET
            title = excluded.title,
            icon = excluded.icon,
            color_hex = excluded.color_hex,
            notes = excluded.notes,
            created_at = excluded.created_at,
            target_per_day = excluded.target_per_day,
            remind_enabled = excluded.remind_enabled,
            reminder_hour = excluded.reminder_hour,
            reminder_minute = excluded.reminder_minute
        """,  # noqa: S608
        (
            habit.id,
            habit.title,
            habit.icon,
            habit.color_hex,
            habit.notes,
            format_timestamp(habit.created_at),
            habit.target_per_day,
            int(habit.remind_enabled),
            habit.reminder_hour,
            habit.reminder_minute,
        ),
    )
    conn.execute("DELETE FROM completions WHERE habit_id = ?", (habit.id,))
    conn.executemany(
        "INSERT INTO completions (habit_id, completed_at) VALUES (?, ?)",
        [(habit.id, format_timestamp(c)) for c in habit.completions],
    )
    conn.execute("DELETE FROM tags WHERE habit_id = ?", (habit.id,))
    conn.executemany(
        "INSERT INTO tags (habit_id, position, tag) VALUES (?, ?, ?)",
        [(habit.id, i, tag) for i, tag in enumerate(habit.tags)],
    )


class SqliteHabitRepository:
    """Habit collection backed by the tally SQLite database.

    Reads see staged changes layered over what is already committed.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path
        self._staged: dict[str, Habit] = {}
        self._deleted: set[str] = set()

    def get(self, habit_id: str) -> Habit | None:
        if habit_id in self._deleted:
            return None
        if habit_id in self._staged:
            return self._staged[habit_id]
        with db.get_db(self.db_path) as conn:
            habits = _fetch_habits(conn, "id = ?", (habit_id,))
        return habits[0] if habits else None

    def list(self, query: HabitQuery | None = None) -> list[Habit]:
        with db.get_db(self.db_path) as conn:
            stored = {h.id: h for h in _fetch_habits(conn)}
        for habit_id in self._deleted:
            stored.pop(habit_id, None)
        stored.update(self._staged)
        return apply_query(stored.values(), query)

    def upsert(self, habit: Habit) -> None:
        self._deleted.discard(habit.id)
        self._staged[habit.id] = habit

    def delete(self, habit_id: str) -> None:
        self._staged.pop(habit_id, None)
        self._deleted.add(habit_id)

    def commit(self) -> None:
        if not self._staged and not self._deleted:
            return
        try:
            with db.get_db(self.db_path) as conn:
                for habit_id in self._deleted:
                    conn.execute("DELETE FROM habits WHERE id = ?", (habit_id,))
                for habit in self._staged.values():
                    _write_habit(conn, habit)
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to save habits: {e}") from e
        self._staged.clear()
        self._deleted.clear()

    def rollback(self) -> None:
        self._staged.clear()
        self._deleted.clear()


# ── memory ───────────────────────────────────────────────────────────────────


class InMemoryHabitRepository:
    """Dict-backed collection. Uncommitted edits are discarded by rollback()."""

    def __init__(self, habits: Iterable[Habit] = ()):
        self._committed: dict[str, Habit] = {h.id: copy.deepcopy(h) for h in habits}
        self._working: dict[str, Habit] = copy.deepcopy(self._committed)

    def get(self, habit_id: str) -> Habit | None:
        return self._working.get(habit_id)

    def list(self, query: HabitQuery | None = None) -> list[Habit]:
        return apply_query(self._working.values(), query)

    def upsert(self, habit: Habit) -> None:
        self._working[habit.id] = habit

    def delete(self, habit_id: str) -> None:
        self._working.pop(habit_id, None)

    def commit(self) -> None:
        self._committed = copy.deepcopy(self._working)

    def rollback(self) -> None:
        self._working = copy.deepcopy(self._committed)
