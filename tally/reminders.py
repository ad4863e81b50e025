import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol

from fncli import cli

from . import db
from .core.models import Habit, Reminder
from .lib import clock
from .lib.dates import format_timestamp

__all__ = [
    "NullReminderScheduler",
    "ReminderScheduler",
    "SqliteReminderScheduler",
    "cancel_reminder",
    "reminder_message",
    "sync_reminder",
]

logger = logging.getLogger(__name__)


class ReminderScheduler(Protocol):
    """Daily repeating reminders, at most one per habit id."""

    def schedule(self, habit_id: str, hour: int, minute: int, message: str) -> None: ...

    def cancel(self, habit_id: str) -> None: ...


class NullReminderScheduler:
    def schedule(self, habit_id: str, hour: int, minute: int, message: str) -> None:
        pass

    def cancel(self, habit_id: str) -> None:
        pass


class SqliteReminderScheduler:
    """Keeps the active schedule in the reminders table for a notifier to pick up."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path

    def schedule(self, habit_id: str, hour: int, minute: int, message: str) -> None:
        with db.get_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO reminders (habit_id, hour, minute, message, scheduled_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (habit_id) DO UPDATE SET
                    hour = excluded.hour,
                    minute = excluded.minute,
                    message = excluded.message,
                    scheduled_at = excluded.scheduled_at
                """,
                (habit_id, hour, minute, message, format_timestamp(clock.now())),
            )

    def cancel(self, habit_id: str) -> None:
        with db.get_db(self.db_path) as conn:
            conn.execute("DELETE FROM reminders WHERE habit_id = ?", (habit_id,))

    def list_reminders(self) -> list[Reminder]:
        with db.get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT habit_id, hour, minute, message, scheduled_at FROM reminders ORDER BY hour, minute"
            ).fetchall()
        return [
            Reminder(
                habit_id=row[0],
                hour=row[1],
                minute=row[2],
                message=row[3],
                scheduled_at=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]


def reminder_message(habit: Habit) -> str:
    return f"Mark {habit.title} for today."


def sync_reminder(habit: Habit, scheduler: ReminderScheduler) -> None:
    """Schedule the habit's reminder when enabled, cancel it otherwise.

    Scheduler failures are logged and dropped.
    """
    try:
        if habit.remind_enabled:
            scheduler.schedule(
                habit.id, habit.reminder_hour, habit.reminder_minute, reminder_message(habit)
            )
        else:
            scheduler.cancel(habit.id)
    except Exception:
        logger.exception("reminder sync failed for %s", habit.reminder_id)


def cancel_reminder(habit_id: str, scheduler: ReminderScheduler) -> None:
    try:
        scheduler.cancel(habit_id)
    except Exception:
        logger.exception("reminder cancel failed for habit-%s", habit_id)


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("tally", name="reminders")
def reminders() -> None:
    """List scheduled reminders"""
    items = SqliteReminderScheduler().list_reminders()
    if not items:
        print("no reminders")
        return
    for r in items:
        print(f"  {r.hour:02d}:{r.minute:02d}  {r.message}  [{r.habit_id[:8]}]")
