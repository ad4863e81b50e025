import uuid
from datetime import datetime
from typing import Any, cast

from tally.core.errors import DecodeError
from tally.core.models import Habit, HabitRecord
from tally.lib.colors import normalize_hex
from tally.lib.dates import format_timestamp, parse_timestamp, to_local_naive

__all__ = [
    "dict_to_record",
    "habit_to_record",
    "overwrite_from_record",
    "record_to_dict",
    "record_to_habit",
    "row_to_habit",
]

HabitRow = tuple[object, ...]


def row_to_habit(row: HabitRow) -> Habit:
    """
    Converts a raw database row from the habits table into a Habit object.
    Expected row format: (id, title, icon, color_hex, notes, created_at, target_per_day,
    remind_enabled, reminder_hour, reminder_minute)
    Completions and tags are hydrated separately.
    """
    return Habit(
        id=cast(str, row[0]),
        title=cast(str, row[1]),
        icon=cast(str, row[2]),
        color_hex=cast(str, row[3]),
        notes=cast(str, row[4]) if row[4] is not None else "",
        created_at=datetime.fromisoformat(cast(str, row[5])),
        target_per_day=cast(int, row[6]),
        remind_enabled=bool(row[7]),
        reminder_hour=cast(int, row[8]),
        reminder_minute=cast(int, row[9]),
    )


def habit_to_record(habit: Habit) -> HabitRecord:
    return HabitRecord(
        id=habit.id,
        title=habit.title,
        icon=habit.icon,
        color_hex=habit.color_hex,
        notes=habit.notes,
        created_at=habit.created_at,
        target_per_day=habit.target_per_day,
        completions=list(habit.completions),
        remind_enabled=habit.remind_enabled,
        reminder_hour=habit.reminder_hour,
        reminder_minute=habit.reminder_minute,
        tags=list(habit.tags),
    )


def record_to_habit(record: HabitRecord) -> Habit:
    """Build a new habit from a record, adopting the record's id and created_at."""
    habit = Habit.new(
        title=record.title,
        icon=record.icon,
        color_hex=record.color_hex,
        notes=record.notes,
        target_per_day=record.target_per_day,
        tags=record.tags,
    )
    habit.id = record.id
    habit.created_at = record.created_at
    habit.completions = list(record.completions)
    habit.remind_enabled = record.remind_enabled
    habit.reminder_hour = record.reminder_hour
    habit.reminder_minute = record.reminder_minute
    return habit


def overwrite_from_record(habit: Habit, record: HabitRecord) -> None:
    """Replace every stored field except id with the record's values."""
    habit.title = record.title
    habit.icon = record.icon
    habit.color_hex = record.color_hex
    habit.notes = record.notes
    habit.created_at = record.created_at
    habit.target_per_day = record.target_per_day
    habit.completions = list(record.completions)
    habit.remind_enabled = record.remind_enabled
    habit.reminder_hour = record.reminder_hour
    habit.reminder_minute = record.reminder_minute
    habit.tags = list(record.tags)


def record_to_dict(record: HabitRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "icon": record.icon,
        "colorHex": record.color_hex,
        "notes": record.notes,
        "createdAt": format_timestamp(record.created_at),
        "targetPerDay": record.target_per_day,
        "completions": [format_timestamp(c) for c in record.completions],
        "remindEnabled": record.remind_enabled,
        "reminderHour": record.reminder_hour,
        "reminderMinute": record.reminder_minute,
        "tags": list(record.tags),
    }


def _field(data: dict[str, Any], key: str, kind: type, path: str) -> Any:
    if key not in data:
        raise DecodeError("missing required field", path=f"{path}.{key}")
    value = data[key]
    # bool is an int subclass; keep the two apart
    if kind is int and isinstance(value, bool):
        raise DecodeError("expected int, got bool", path=f"{path}.{key}")
    if not isinstance(value, kind):
        raise DecodeError(
            f"expected {kind.__name__}, got {type(value).__name__}", path=f"{path}.{key}"
        )
    return value


def _ranged(data: dict[str, Any], key: str, lo: int, hi: int, path: str) -> int:
    value = _field(data, key, int, path)
    if not lo <= value <= hi:
        raise DecodeError(f"out of range {lo}-{hi}: {value}", path=f"{path}.{key}")
    return value


def _timestamp(value: object, path: str) -> datetime:
    if not isinstance(value, str):
        raise DecodeError(f"expected timestamp string, got {type(value).__name__}", path=path)
    try:
        # stored timestamps are local wall time; offsets from other clients are folded in
        return to_local_naive(parse_timestamp(value))
    except (ValueError, OverflowError) as e:
        raise DecodeError(str(e), path=path) from e


def _str_list(data: dict[str, Any], key: str, path: str) -> list[str]:
    values = _field(data, key, list, path)
    for i, v in enumerate(values):
        if not isinstance(v, str):
            raise DecodeError(f"expected str, got {type(v).__name__}", path=f"{path}.{key}[{i}]")
    return values


def dict_to_record(data: object, path: str = "item") -> HabitRecord:
    """Validate one decoded JSON object and build a HabitRecord from it.

    Unknown keys are ignored. Raises DecodeError naming the offending field.
    """
    if not isinstance(data, dict):
        raise DecodeError(f"expected object, got {type(data).__name__}", path=path)

    raw_id = _field(data, "id", str, path)
    try:
        habit_id = str(uuid.UUID(raw_id))
    except ValueError as e:
        raise DecodeError(f"invalid UUID {raw_id!r}", path=f"{path}.id") from e

    raw_color = _field(data, "colorHex", str, path)
    try:
        color_hex = normalize_hex(raw_color)
    except ValueError as e:
        raise DecodeError(str(e), path=f"{path}.colorHex") from e

    target = _field(data, "targetPerDay", int, path)
    if target < 1:
        raise DecodeError(f"must be >= 1: {target}", path=f"{path}.targetPerDay")

    completions = [
        _timestamp(v, f"{path}.completions[{i}]")
        for i, v in enumerate(_field(data, "completions", list, path))
    ]

    return HabitRecord(
        id=habit_id,
        title=_field(data, "title", str, path),
        icon=_field(data, "icon", str, path),
        color_hex=color_hex,
        notes=_field(data, "notes", str, path),
        created_at=_timestamp(_field(data, "createdAt", str, path), f"{path}.createdAt"),
        target_per_day=target,
        completions=completions,
        remind_enabled=_field(data, "remindEnabled", bool, path),
        reminder_hour=_ranged(data, "reminderHour", 0, 23, path),
        reminder_minute=_ranged(data, "reminderMinute", 0, 59, path),
        tags=_str_list(data, "tags", path),
    )
