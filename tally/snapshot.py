import json
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from fncli import cli

from . import config
from .core.errors import DecodeError
from .core.models import Habit, HabitSnapshot
from .lib import clock
from .lib.converters import dict_to_record, habit_to_record, record_to_dict
from .lib.dates import format_timestamp, parse_timestamp, to_local_naive

__all__ = [
    "default_export_path",
    "dumps",
    "export_snapshot",
    "parse",
    "read_import",
    "write_export",
]


def export_snapshot(habits: Iterable[Habit], exported_at: datetime | None = None) -> HabitSnapshot:
    """Flatten the collection as stored. Completion timestamps are copied, not re-normalized."""
    return HabitSnapshot(
        exported_at=exported_at if exported_at is not None else clock.now(),
        items=[habit_to_record(h) for h in habits],
    )


def snapshot_to_dict(snapshot: HabitSnapshot) -> dict[str, Any]:
    return {
        "exportedAt": format_timestamp(snapshot.exported_at),
        "items": [record_to_dict(r) for r in snapshot.items],
    }


def dumps(snapshot: HabitSnapshot) -> bytes:
    return json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False).encode()


def parse(data: bytes | str) -> HabitSnapshot:
    """Decode an export file. Raises DecodeError on anything malformed."""
    try:
        doc = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise DecodeError(f"expected object, got {type(doc).__name__}", path="$")
    if "exportedAt" not in doc:
        raise DecodeError("missing required field", path="$.exportedAt")
    if not isinstance(doc["exportedAt"], str):
        raise DecodeError("expected timestamp string", path="$.exportedAt")
    try:
        exported_at = to_local_naive(parse_timestamp(doc["exportedAt"]))
    except (ValueError, OverflowError) as e:
        raise DecodeError(str(e), path="$.exportedAt") from e

    items = doc.get("items")
    if items is None:
        raise DecodeError("missing required field", path="$.items")
    if not isinstance(items, list):
        raise DecodeError(f"expected list, got {type(items).__name__}", path="$.items")

    return HabitSnapshot(
        exported_at=exported_at,
        items=[dict_to_record(item, path=f"$.items[{i}]") for i, item in enumerate(items)],
    )


def default_export_path(exported_at: datetime | None = None) -> Path:
    stamp = (exported_at or clock.now()).strftime("%Y-%m-%d")
    return config.EXPORT_DIR / f"HabitExport-{stamp}.json"


def write_export(habits: Iterable[Habit], path: Path | None = None) -> tuple[Path, HabitSnapshot]:
    snapshot = export_snapshot(habits)
    path = path if path else default_export_path(snapshot.exported_at)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps(snapshot))
    return path, snapshot


def read_import(path: Path) -> HabitSnapshot:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise DecodeError(f"cannot read {path}: {e}") from e
    return parse(data)


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("tally", name="export")
def export(path: str | None = None) -> None:
    """Export all habits as JSON"""
    from .repository import SqliteHabitRepository

    out, snapshot = write_export(
        SqliteHabitRepository().list(), Path(path).expanduser() if path else None
    )
    print(f"exported {len(snapshot.items)} habits → {out}")
