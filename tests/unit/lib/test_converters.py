from datetime import datetime

import pytest

from tally.core.errors import DecodeError
from tally.core.models import Habit
from tally.lib.converters import (
    dict_to_record,
    habit_to_record,
    overwrite_from_record,
    record_to_dict,
    record_to_habit,
    row_to_habit,
)

HABIT_ID = "0b7c6a8e-4c2f-4a51-9a7e-2f7d3c1b9e10"


def _item(**overrides):
    item = {
        "id": HABIT_ID,
        "title": "Stretch",
        "icon": "figure.walk",
        "colorHex": "FF8800",
        "notes": "10 minutes",
        "createdAt": "2026-01-02T08:00:00",
        "targetPerDay": 2,
        "completions": ["2026-10-18T00:00:00", "2026-10-19T00:00:00"],
        "remindEnabled": True,
        "reminderHour": 7,
        "reminderMinute": 30,
        "tags": ["body"],
    }
    item.update(overrides)
    return item


def test_row_to_habit():
    row = (HABIT_ID, "read", "book", "112233", None, "2026-01-02T08:00:00", 2, 1, 7, 45)
    h = row_to_habit(row)
    assert h.id == HABIT_ID
    assert h.notes == ""
    assert h.created_at == datetime(2026, 1, 2, 8, 0)
    assert h.remind_enabled is True
    assert (h.reminder_hour, h.reminder_minute) == (7, 45)
    assert h.completions == [] and h.tags == []


def test_dict_to_record_parses_every_field():
    r = dict_to_record(_item())
    assert r.id == HABIT_ID
    assert r.color_hex == "FF8800"
    assert r.created_at == datetime(2026, 1, 2, 8, 0)
    assert r.target_per_day == 2
    assert r.completions == [datetime(2026, 10, 18), datetime(2026, 10, 19)]
    assert r.remind_enabled is True
    assert (r.reminder_hour, r.reminder_minute) == (7, 30)
    assert r.tags == ["body"]


def test_dict_to_record_canonicalizes_uuid():
    r = dict_to_record(_item(id=HABIT_ID.upper()))
    assert r.id == HABIT_ID


def test_dict_to_record_folds_offsets_into_local_time(shanghai_tz):
    r = dict_to_record(
        _item(createdAt="2025-01-01T08:00:00Z", completions=["2026-10-18T16:00:00+00:00"])
    )
    assert r.created_at == datetime(2025, 1, 1, 16, 0)
    assert r.completions == [datetime(2026, 10, 19)]


def test_dict_to_record_ignores_unknown_keys():
    r = dict_to_record(_item(archived=True, streak=4))
    assert r.title == "Stretch"


@pytest.mark.parametrize(
    "field",
    [
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
    ],
)
def test_dict_to_record_requires_field(field):
    item = _item()
    del item[field]
    with pytest.raises(DecodeError) as exc:
        dict_to_record(item)
    assert exc.value.path == f"item.{field}"


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("id", "not-a-uuid"),
        ("title", 5),
        ("colorHex", "blue"),
        ("targetPerDay", 0),
        ("targetPerDay", "2"),
        ("targetPerDay", True),
        ("remindEnabled", 1),
        ("reminderHour", 24),
        ("reminderMinute", -1),
        ("completions", "2026-10-19"),
        ("completions", ["yesterday"]),
        ("createdAt", 1700000000),
        ("tags", ["ok", 3]),
    ],
)
def test_dict_to_record_rejects_bad_values(field, value):
    with pytest.raises(DecodeError):
        dict_to_record(_item(**{field: value}))


def test_dict_to_record_rejects_non_object():
    with pytest.raises(DecodeError):
        dict_to_record(["id", HABIT_ID])


def test_record_dict_roundtrip():
    r = dict_to_record(_item())
    assert record_to_dict(r) == _item()


def test_record_to_habit_adopts_identity():
    r = dict_to_record(_item())
    h = record_to_habit(r)
    assert h.id == HABIT_ID
    assert h.created_at == datetime(2026, 1, 2, 8, 0)
    assert h.completions == r.completions
    assert h.completions is not r.completions
    assert h.remind_enabled is True
    assert habit_to_record(h) == r


def test_overwrite_keeps_id_replaces_rest():
    h = Habit.new("old", target_per_day=5, tags=["x"])
    h.increment(datetime(2020, 1, 1))
    original_id = h.id
    r = dict_to_record(_item())
    overwrite_from_record(h, r)
    assert h.id == original_id
    assert h.title == "Stretch"
    assert h.target_per_day == 2
    assert h.completions == r.completions
    assert h.tags == ["body"]
