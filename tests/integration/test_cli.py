import json

from tally import config
from tally.habits import get_habits


def test_ls_empty(runner):
    result = runner.invoke(["ls"])
    assert result.exit_code == 0
    assert "no habits" in result.stdout


def test_add_then_ls(runner):
    result = runner.invoke(["add", "floss"])
    assert result.exit_code == 0
    assert "floss" in result.stdout

    result = runner.invoke(["ls"])
    assert result.exit_code == 0
    assert "floss" in result.stdout
    assert "0/1" in result.stdout


def test_check_shows_progress(runner):
    runner.invoke(["add", "floss"])
    result = runner.invoke(["check", "floss"])
    assert result.exit_code == 0
    assert "floss 1/1" in result.stdout
    assert get_habits()[0].is_done_today


def test_uncheck_reverses_check(runner):
    runner.invoke(["add", "floss"])
    runner.invoke(["check", "floss"])
    result = runner.invoke(["uncheck", "floss"])
    assert result.exit_code == 0
    assert get_habits()[0].today_count == 0


def test_show_detail(runner):
    runner.invoke(["add", "floss"])
    runner.invoke(["check", "floss"])
    result = runner.invoke(["show", "floss"])
    assert result.exit_code == 0
    assert "streak: 1d" in result.stdout
    assert "october 2026" in result.stdout


def test_check_unknown_habit_fails(runner):
    result = runner.invoke(["check", "nothing"])
    assert result.exit_code != 0
    assert "No habit found" in result.stderr


def test_rm(runner):
    runner.invoke(["add", "floss"])
    result = runner.invoke(["rm", "floss"])
    assert result.exit_code == 0
    assert get_habits() == []


def test_import_merges_file(runner, tmp_tally_dir):
    habit_id = "5d1b3c3e-9f2a-4c59-8e3b-0a4f6e7d2c11"
    path = tmp_tally_dir / "in.json"
    path.write_text(
        json.dumps(
            {
                "exportedAt": "2026-10-19T08:00:00Z",
                "items": [
                    {
                        "id": habit_id,
                        "title": "stretch",
                        "icon": "figure.walk",
                        "colorHex": "FF8800",
                        "notes": "",
                        "createdAt": "2025-01-01T00:00:00",
                        "targetPerDay": 1,
                        "completions": ["2026-10-19T00:00:00"],
                        "remindEnabled": False,
                        "reminderHour": 9,
                        "reminderMinute": 0,
                        "tags": [],
                    }
                ],
            }
        )
    )
    result = runner.invoke(["import", str(path)])
    assert result.exit_code == 0
    assert "1 new" in result.stdout
    (habit,) = get_habits()
    assert habit.id == habit_id
    assert habit.is_done_today


def test_import_rejects_malformed_file(runner, tmp_tally_dir):
    path = tmp_tally_dir / "bad.json"
    path.write_text('{"items": []}')
    result = runner.invoke(["import", str(path)])
    assert result.exit_code != 0
    assert "exportedAt" in result.stderr
    assert get_habits() == []


def test_export_writes_file(runner, tmp_tally_dir):
    runner.invoke(["add", "floss"])
    result = runner.invoke(["export"])
    assert result.exit_code == 0
    exported = config.EXPORT_DIR / "HabitExport-2026-10-19.json"
    doc = json.loads(exported.read_text())
    assert [i["title"] for i in doc["items"]] == ["floss"]
