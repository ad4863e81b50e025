import logging
from pathlib import Path

from fncli import cli

from .core.models import Habit, HabitSnapshot, ImportResult
from .lib.converters import overwrite_from_record, record_to_habit
from .reminders import ReminderScheduler, sync_reminder
from .repository import HabitRepository

__all__ = ["import_snapshot"]

logger = logging.getLogger(__name__)


def import_snapshot(
    repo: HabitRepository,
    snapshot: HabitSnapshot,
    scheduler: ReminderScheduler | None = None,
) -> ImportResult:
    """Merge a snapshot into the collection, keyed by habit id.

    A record whose id exists replaces that habit wholesale; a record with an
    unknown id is inserted under that same id and created_at. Habits missing
    from the snapshot are left alone. Everything is committed in one go: on
    any error the repository is rolled back and the error propagates.
    Reminders are re-synced only once the commit has succeeded.
    """
    existing: dict[str, Habit] = {h.id: h for h in repo.list()}
    created: list[str] = []
    updated: list[str] = []
    to_sync: dict[str, Habit] = {}

    try:
        for record in snapshot.items:
            habit = existing.get(record.id)
            if habit is not None:
                overwrite_from_record(habit, record)
                if habit.id not in created and habit.id not in updated:
                    updated.append(habit.id)
                to_sync[habit.id] = habit
            else:
                habit = record_to_habit(record)
                existing[habit.id] = habit
                created.append(habit.id)
                # nothing scheduled yet, so no cancel for new ids
                if habit.remind_enabled:
                    to_sync[habit.id] = habit
            repo.upsert(habit)
        repo.commit()
    except Exception:
        repo.rollback()
        raise

    if scheduler is not None:
        for habit in to_sync.values():
            sync_reminder(habit, scheduler)

    logger.info("imported snapshot: %d created, %d updated", len(created), len(updated))
    return ImportResult(created=created, updated=updated)


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("tally", name="import")
def import_(path: str) -> None:
    """Merge habits from a JSON export"""
    from .reminders import SqliteReminderScheduler
    from .repository import SqliteHabitRepository
    from .snapshot import read_import

    snapshot = read_import(Path(path).expanduser())
    result = import_snapshot(SqliteHabitRepository(), snapshot, SqliteReminderScheduler())
    print(f"imported {result.total} habits ({len(result.created)} new, {len(result.updated)} updated)")
