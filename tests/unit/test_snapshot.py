import json
from datetime import date, datetime

import pytest

from tally.core.errors import DecodeError
from tally.core.models import Habit
from tally.merge import import_snapshot
from tally.repository import InMemoryHabitRepository
from tally.snapshot import (
    default_export_path,
    dumps,
    export_snapshot,
    parse,
    read_import,
    write_export,
)


def _habits() -> list[Habit]:
    a = Habit.new("read", color_hex="336699", notes="20 pages", target_per_day=2, tags=["mind"])
    a.increment(date(2026, 10, 18))
    a.increment(date(2026, 10, 19))
    a.increment(date(2026, 10, 19))
    a.remind_enabled = True
    a.reminder_hour, a.reminder_minute = 21, 15
    b = Habit.new("run")
    # stored as-is even when not at midnight; export must not re-normalize
    b.completions.append(datetime(2026, 10, 17, 6, 45, 12, 500))
    return [a, b]


def test_export_snapshot_flattens_every_habit(frozen_now):
    habits = _habits()
    snap = export_snapshot(habits)
    assert snap.exported_at == frozen_now
    assert [r.id for r in snap.items] == [h.id for h in habits]
    assert snap.items[0].completions == habits[0].completions
    assert snap.items[1].completions == [datetime(2026, 10, 17, 6, 45, 12, 500)]


def test_dumps_uses_wire_format():
    snap = export_snapshot(_habits(), exported_at=datetime(2026, 10, 19, 9, 0))
    doc = json.loads(dumps(snap))
    assert doc["exportedAt"] == "2026-10-19T09:00:00"
    item = doc["items"][0]
    assert list(item) == [
        "id",
        "title",
        "icon",
        "colorHex",
        "notes",
        "createdAt",
        "targetPerDay",
        "completions",
        "remindEnabled",
        "reminderHour",
        "reminderMinute",
        "tags",
    ]
    assert item["colorHex"] == "336699"
    assert item["completions"] == [
        "2026-10-18T00:00:00",
        "2026-10-19T00:00:00",
        "2026-10-19T00:00:00",
    ]
    assert doc["items"][1]["completions"] == ["2026-10-17T06:45:12.000500"]


def test_parse_roundtrip_preserves_records():
    snap = export_snapshot(_habits())
    assert parse(dumps(snap)) == snap


def test_parse_accepts_str():
    snap = export_snapshot([])
    assert parse(dumps(snap).decode()).items == []


def test_export_then_import_reproduces_collection():
    habits = _habits()
    target = InMemoryHabitRepository()
    import_snapshot(target, parse(dumps(export_snapshot(habits))))
    restored = sorted(target.list(), key=lambda h: h.id)
    assert restored == sorted(habits, key=lambda h: h.id)


def test_reimport_into_same_collection_is_idempotent():
    habits = _habits()
    repo = InMemoryHabitRepository(habits)
    data = dumps(export_snapshot(repo.list()))
    import_snapshot(repo, parse(data))
    assert sorted(repo.list(), key=lambda h: h.id) == sorted(habits, key=lambda h: h.id)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"{not json",
        b'{"exportedAt": "2026-10-19T00:00:00", "items": [',
        b"[]",
        b'{"items": []}',
        b'{"exportedAt": 5, "items": []}',
        b'{"exportedAt": "soon", "items": []}',
        b'{"exportedAt": "2026-10-19T00:00:00"}',
        b'{"exportedAt": "2026-10-19T00:00:00", "items": {}}',
        b'{"exportedAt": "2026-10-19T00:00:00", "items": [{"id": "x"}]}',
        b"\xff\xfe\x00",
    ],
)
def test_parse_rejects_malformed(data):
    with pytest.raises(DecodeError):
        parse(data)


def test_parse_error_names_item_index():
    snap = export_snapshot(_habits())
    doc = json.loads(dumps(snap))
    del doc["items"][1]["tags"]
    with pytest.raises(DecodeError) as exc:
        parse(json.dumps(doc))
    assert exc.value.path == "$.items[1].tags"


def test_parse_ignores_unknown_top_level_keys():
    doc = json.loads(dumps(export_snapshot(_habits())))
    doc["version"] = 2
    assert len(parse(json.dumps(doc)).items) == 2


def test_write_and_read_export(tmp_tally_dir, frozen_now):
    path, snap = write_export(_habits())
    assert path == default_export_path(frozen_now)
    assert path.name == "HabitExport-2026-10-19.json"
    assert read_import(path) == snap


def test_read_import_missing_file(tmp_path):
    with pytest.raises(DecodeError):
        read_import(tmp_path / "nope.json")
