from datetime import date

from fncli import cli

from . import config
from .core.errors import NotFoundError, ValidationError
from .core.models import DEFAULT_ICON, Habit
from .lib import ansi, clock
from .lib.colors import DEFAULT_COLOR, normalize_hex
from .lib.dates import parse_day
from .lib.format import format_habit, format_rate, format_status, format_week_strip
from .lib.fuzzy import find_in_pool
from .reminders import (
    ReminderScheduler,
    SqliteReminderScheduler,
    cancel_reminder,
    sync_reminder,
)
from .repository import HabitQuery, HabitRepository, SortKey, SqliteHabitRepository
from .widget import JsonFileWidgetPublisher, WidgetPublisher, sync_widget

__all__ = [
    "add_habit",
    "check_habit",
    "delete_habit",
    "find_habit",
    "get_habit",
    "get_habits",
    "leaderboard",
    "parse_tags",
    "parse_time",
    "require_habit",
    "set_reminder",
    "uncheck_habit",
    "update_habit",
]


# ── domain ───────────────────────────────────────────────────────────────────


def _repo(repo: HabitRepository | None) -> HabitRepository:
    return repo if repo is not None else SqliteHabitRepository()


def _scheduler(scheduler: ReminderScheduler | None) -> ReminderScheduler:
    return scheduler if scheduler is not None else SqliteReminderScheduler()


def _publisher(publisher: WidgetPublisher | None) -> WidgetPublisher:
    return publisher if publisher is not None else JsonFileWidgetPublisher()


def parse_tags(text: str | None) -> list[str]:
    """Comma-separated tags, trimmed, empties dropped, order kept."""
    if not text:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]


def parse_time(text: str) -> tuple[int, int]:
    parts = text.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValidationError(f"invalid time '{text}' — use HH:MM")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError(f"invalid time '{text}'")
    return hour, minute


def _color(value: str) -> str:
    try:
        return normalize_hex(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def add_habit(
    title: str,
    icon: str = DEFAULT_ICON,
    color_hex: str = DEFAULT_COLOR,
    notes: str = "",
    target_per_day: int = 1,
    tags: list[str] | None = None,
    remind_at: tuple[int, int] | None = None,
    repo: HabitRepository | None = None,
    scheduler: ReminderScheduler | None = None,
) -> Habit:
    title = title.strip()
    if not title:
        raise ValidationError("habit title cannot be empty")

    habit = Habit.new(
        title=title,
        icon=icon,
        color_hex=_color(color_hex),
        notes=notes.strip(),
        target_per_day=target_per_day,
        tags=tags,
    )
    if remind_at is not None:
        habit.remind_enabled = True
        habit.reminder_hour, habit.reminder_minute = remind_at

    repo = _repo(repo)
    repo.upsert(habit)
    repo.commit()
    if habit.remind_enabled:
        sync_reminder(habit, _scheduler(scheduler))
    return habit


def get_habit(habit_id: str, repo: HabitRepository | None = None) -> Habit | None:
    return _repo(repo).get(habit_id)


def get_habits(
    search: str = "",
    sort: SortKey = SortKey.NEWEST,
    limit: int | None = None,
    repo: HabitRepository | None = None,
) -> list[Habit]:
    return _repo(repo).list(HabitQuery(search=search, sort=sort, limit=limit))


def find_habit(ref: str, repo: HabitRepository | None = None) -> Habit | None:
    return find_in_pool(ref, _repo(repo).list())


def require_habit(ref: str, repo: HabitRepository | None = None) -> Habit:
    habit = find_habit(ref, repo)
    if not habit:
        raise NotFoundError(f"No habit found: '{ref}'")
    return habit


def update_habit(
    habit_id: str,
    title: str | None = None,
    icon: str | None = None,
    color_hex: str | None = None,
    notes: str | None = None,
    target_per_day: int | None = None,
    tags: list[str] | None = None,
    repo: HabitRepository | None = None,
    scheduler: ReminderScheduler | None = None,
) -> Habit | None:
    repo = _repo(repo)
    habit = repo.get(habit_id)
    if not habit:
        return None

    renamed = False
    if title is not None:
        title = title.strip()
        if not title:
            raise ValidationError("habit title cannot be empty")
        renamed = title != habit.title
        habit.title = title
    if icon is not None:
        habit.icon = icon
    if color_hex is not None:
        habit.color_hex = _color(color_hex)
    if notes is not None:
        habit.notes = notes.strip()
    if target_per_day is not None:
        habit.target_per_day = max(1, target_per_day)
    if tags is not None:
        habit.tags = list(tags)

    repo.upsert(habit)
    repo.commit()
    # reminder text carries the title
    if renamed and habit.remind_enabled:
        sync_reminder(habit, _scheduler(scheduler))
    return habit


def delete_habit(
    habit_id: str,
    repo: HabitRepository | None = None,
    scheduler: ReminderScheduler | None = None,
) -> bool:
    repo = _repo(repo)
    if repo.get(habit_id) is None:
        return False
    repo.delete(habit_id)
    repo.commit()
    cancel_reminder(habit_id, _scheduler(scheduler))
    if config.get_primary_habit() == habit_id:
        config.set_primary_habit(None)
    return True


def check_habit(
    habit_id: str,
    day: date | None = None,
    repo: HabitRepository | None = None,
    publisher: WidgetPublisher | None = None,
) -> Habit | None:
    repo = _repo(repo)
    habit = repo.get(habit_id)
    if not habit:
        return None
    habit.increment(day)
    repo.upsert(habit)
    repo.commit()
    sync_widget(habit, _publisher(publisher), config.get_primary_habit())
    return habit


def uncheck_habit(
    habit_id: str,
    day: date | None = None,
    repo: HabitRepository | None = None,
    publisher: WidgetPublisher | None = None,
) -> Habit | None:
    repo = _repo(repo)
    habit = repo.get(habit_id)
    if not habit:
        return None
    if habit.decrement(day):
        repo.upsert(habit)
        repo.commit()
        sync_widget(habit, _publisher(publisher), config.get_primary_habit())
    return habit


def set_reminder(
    habit_id: str,
    enabled: bool,
    hour: int | None = None,
    minute: int | None = None,
    repo: HabitRepository | None = None,
    scheduler: ReminderScheduler | None = None,
) -> Habit | None:
    repo = _repo(repo)
    habit = repo.get(habit_id)
    if not habit:
        return None
    habit.remind_enabled = enabled
    if hour is not None:
        habit.reminder_hour = hour
    if minute is not None:
        habit.reminder_minute = minute
    repo.upsert(habit)
    repo.commit()
    sync_reminder(habit, _scheduler(scheduler))
    return habit


def leaderboard(limit: int = 3, repo: HabitRepository | None = None) -> list[Habit]:
    return get_habits(sort=SortKey.STREAK, limit=limit, repo=repo)


# ── cli ──────────────────────────────────────────────────────────────────────


def _sort_key(value: str) -> SortKey:
    try:
        return SortKey(value.lower())
    except ValueError:
        choices = ", ".join(k.value for k in SortKey)
        raise ValidationError(f"unknown sort '{value}' — one of: {choices}") from None


def _day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return parse_day(value, clock.today())
    except ValueError:
        raise ValidationError(f"invalid day '{value}' — use YYYY-MM-DD, today, yesterday or -N") from None


@cli("tally")
def add(
    title: str,
    target: int = 1,
    tags: str | None = None,
    icon: str = DEFAULT_ICON,
    color: str = DEFAULT_COLOR,
    notes: str = "",
    remind: str | None = None,
) -> None:
    """Add a habit"""
    remind_at = parse_time(remind) if remind else None
    habit = add_habit(
        title,
        icon=icon,
        color_hex=color,
        notes=notes,
        target_per_day=target,
        tags=parse_tags(tags),
        remind_at=remind_at,
    )
    print(format_status("+", habit.title, habit.id))


@cli("tally", name="ls")
def ls(search: str | None = None, sort: str = "newest") -> None:
    """List habits"""
    items = get_habits(search=search or "", sort=_sort_key(sort))
    if not items:
        print("no habits")
        return
    today = clock.today()
    for h in items:
        print(format_habit(h, today))


@cli("tally")
def top(limit: int = 3) -> None:
    """Show the streak leaderboard"""
    items = leaderboard(limit)
    if not items:
        print("no habits")
        return
    today = clock.today()
    for rank, h in enumerate(items, start=1):
        print(f"{rank}. {h.title}  {h.current_streak(today)}d")


@cli("tally")
def show(ref: str) -> None:
    """Show habit detail"""
    h = require_habit(ref)
    today = clock.today()
    print(f"{ansi.swatch(h.color_hex)} {ansi.bold(h.title)} {ansi.muted(f'[{h.id[:8]}]')}")
    if h.notes:
        print(f"  {h.notes}")
    if h.tags:
        print(f"  tags: {h.tags_display}")
    print(f"  today: {h.count(today)}/{h.target_per_day}")
    print(f"  streak: {h.current_streak(today)}d")
    print(f"  week: {format_rate(h.weekly_rate(today))}  month: {format_rate(h.monthly_rate(today))}")
    print(f"  last 7: {format_week_strip(h.weekly_progress(today))}")
    if h.remind_enabled:
        print(f"  reminder: {h.reminder_hour:02d}:{h.reminder_minute:02d}")
    grid = h.month_grid(today)
    print(f"  {today.strftime('%B %Y').lower()}")
    row = ["  "] * grid[0].day.weekday()
    for d in grid:
        row.append(ansi.green(f"{d.day.day:2d}") if d.done else ansi.muted(f"{d.day.day:2d}"))
        if d.day.weekday() == 6:
            print("  " + " ".join(row))
            row = []
    if row:
        print("  " + " ".join(row))


@cli("tally")
def check(ref: str, day: str | None = None) -> None:
    """Record one completion (today by default)"""
    h = require_habit(ref)
    on = _day(day)
    updated = check_habit(h.id, on)
    if updated:
        d = on or clock.today()
        print(format_status("✓", f"{updated.title} {updated.count(d)}/{updated.target_per_day}", updated.id))


@cli("tally")
def uncheck(ref: str, day: str | None = None) -> None:
    """Remove one completion (today by default)"""
    h = require_habit(ref)
    on = _day(day)
    updated = uncheck_habit(h.id, on)
    if updated:
        d = on or clock.today()
        print(format_status("□", f"{updated.title} {updated.count(d)}/{updated.target_per_day}", updated.id))


@cli("tally")
def edit(
    ref: str,
    title: str | None = None,
    icon: str | None = None,
    color: str | None = None,
    notes: str | None = None,
    target: int | None = None,
    tags: str | None = None,
) -> None:
    """Edit habit fields"""
    h = require_habit(ref)
    updated = update_habit(
        h.id,
        title=title,
        icon=icon,
        color_hex=color,
        notes=notes,
        target_per_day=target,
        tags=parse_tags(tags) if tags is not None else None,
    )
    if updated:
        print(format_status("→", updated.title, updated.id))


@cli("tally")
def remind(ref: str, at: str | None = None, off: bool = False) -> None:
    """Set or disable a daily reminder"""
    h = require_habit(ref)
    if off:
        set_reminder(h.id, enabled=False)
        print(format_status("×", f"{h.title} reminder off", h.id))
        return
    hour, minute = parse_time(at) if at else (h.reminder_hour, h.reminder_minute)
    set_reminder(h.id, enabled=True, hour=hour, minute=minute)
    print(format_status("⏰", f"{h.title} at {hour:02d}:{minute:02d}", h.id))


@cli("tally")
def rm(ref: str) -> None:
    """Delete a habit"""
    h = require_habit(ref)
    delete_habit(h.id)
    print(format_status("×", h.title, h.id))


@cli("tally")
def primary(ref: str) -> None:
    """Pin the habit shown on the widget"""
    h = require_habit(ref)
    config.set_primary_habit(h.id)
    print(format_status("★", h.title, h.id))
