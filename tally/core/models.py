import dataclasses
import uuid
from collections import Counter
from datetime import date, datetime, timedelta, tzinfo

from tally.lib import clock
from tally.lib.colors import DEFAULT_COLOR, normalize_hex
from tally.lib.dates import Day, day_range, end_of_month, start_of_day, start_of_month, to_day

DEFAULT_ICON = "checkmark.circle"
DEFAULT_REMINDER_HOUR = 9
DEFAULT_REMINDER_MINUTE = 0


@dataclasses.dataclass(frozen=True)
class DayProgress:
    day: date
    count: int
    done: bool


@dataclasses.dataclass
class Habit:
    """A habit and its completion log.

    `completions` is a multiset: one entry per completion unit, stored at the
    start of the day it was recorded on. Entries on the same day are
    interchangeable; only their day and their number matter.
    """

    id: str
    title: str
    icon: str
    color_hex: str
    notes: str
    created_at: datetime
    target_per_day: int = 1
    completions: list[datetime] = dataclasses.field(default_factory=list)
    remind_enabled: bool = False
    reminder_hour: int = DEFAULT_REMINDER_HOUR
    reminder_minute: int = DEFAULT_REMINDER_MINUTE
    tags: list[str] = dataclasses.field(default_factory=list)

    @classmethod
    def new(
        cls,
        title: str,
        icon: str = DEFAULT_ICON,
        color_hex: str = DEFAULT_COLOR,
        notes: str = "",
        target_per_day: int = 1,
        tags: list[str] | None = None,
    ) -> "Habit":
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            icon=icon,
            color_hex=normalize_hex(color_hex),
            notes=notes,
            created_at=clock.now(),
            target_per_day=max(1, target_per_day),
            tags=list(tags or []),
        )

    @property
    def reminder_id(self) -> str:
        return f"habit-{self.id}"

    @property
    def tags_display(self) -> str:
        return ", ".join(self.tags)

    # ── completions ──────────────────────────────────────────────────────

    def increment(self, day: Day | None = None, tz: tzinfo | None = None) -> None:
        self.completions.append(start_of_day(day if day is not None else clock.now(), tz))

    def decrement(self, day: Day | None = None, tz: tzinfo | None = None) -> bool:
        """Remove one completion on `day`. Returns False when there was none."""
        target = to_day(day if day is not None else clock.now(), tz)
        for idx in range(len(self.completions) - 1, -1, -1):
            if to_day(self.completions[idx], tz) == target:
                del self.completions[idx]
                return True
        return False

    def _day_counts(self, tz: tzinfo | None = None) -> Counter[date]:
        return Counter(to_day(c, tz) for c in self.completions)

    def count(self, day: Day, tz: tzinfo | None = None) -> int:
        target = to_day(day, tz)
        return sum(1 for c in self.completions if to_day(c, tz) == target)

    def is_completed(self, day: Day, tz: tzinfo | None = None) -> bool:
        return self.count(day, tz) >= self.target_per_day

    @property
    def today_count(self) -> int:
        return self.count(clock.now())

    @property
    def is_done_today(self) -> bool:
        return self.today_count >= self.target_per_day

    # ── metrics ──────────────────────────────────────────────────────────

    def current_streak(self, today: Day | None = None, tz: tzinfo | None = None) -> int:
        """Consecutive completed days ending today; 0 when today is not completed."""
        counts = self._day_counts(tz)
        d = to_day(today if today is not None else clock.now(), tz)
        streak = 0
        while counts[d] >= self.target_per_day:
            streak += 1
            d -= timedelta(days=1)
        return streak

    def weekly_progress(
        self, ending_at: Day | None = None, tz: tzinfo | None = None
    ) -> list[DayProgress]:
        end = to_day(ending_at if ending_at is not None else clock.now(), tz)
        counts = self._day_counts(tz)
        days = [end - timedelta(days=off) for off in range(6, -1, -1)]
        return [DayProgress(d, counts[d], counts[d] >= self.target_per_day) for d in days]

    def completion_rate(self, start: Day, end: Day, tz: tzinfo | None = None) -> float:
        start_day, end_day = to_day(start, tz), to_day(end, tz)
        if start_day > end_day:
            return 0.0
        counts = self._day_counts(tz)
        days = 0
        completed = 0
        for d in day_range(start_day, end_day):
            days += 1
            if counts[d] >= self.target_per_day:
                completed += 1
        return completed / days if days else 0.0

    def weekly_rate(self, reference: Day | None = None, tz: tzinfo | None = None) -> float:
        end = to_day(reference if reference is not None else clock.now(), tz)
        return self.completion_rate(end - timedelta(days=6), end, tz)

    def monthly_rate(self, reference: Day | None = None, tz: tzinfo | None = None) -> float:
        ref = to_day(reference if reference is not None else clock.now(), tz)
        return self.completion_rate(start_of_month(ref), end_of_month(ref), tz)

    def count_series(
        self, days: int = 30, ending_at: Day | None = None, tz: tzinfo | None = None
    ) -> list[tuple[date, int]]:
        end = to_day(ending_at if ending_at is not None else clock.now(), tz)
        counts = self._day_counts(tz)
        series = [end - timedelta(days=off) for off in range(days - 1, -1, -1)]
        return [(d, counts[d]) for d in series]

    def month_grid(self, month: Day | None = None, tz: tzinfo | None = None) -> list[DayProgress]:
        ref = to_day(month if month is not None else clock.now(), tz)
        counts = self._day_counts(tz)
        return [
            DayProgress(d, counts[d], counts[d] >= self.target_per_day)
            for d in day_range(start_of_month(ref), end_of_month(ref))
        ]


@dataclasses.dataclass(frozen=True)
class HabitRecord:
    """Flattened, fully denormalized habit as it appears in an export file."""

    id: str
    title: str
    icon: str
    color_hex: str
    notes: str
    created_at: datetime
    target_per_day: int
    completions: list[datetime] = dataclasses.field(default_factory=list, hash=False)
    remind_enabled: bool = False
    reminder_hour: int = DEFAULT_REMINDER_HOUR
    reminder_minute: int = DEFAULT_REMINDER_MINUTE
    tags: list[str] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class HabitSnapshot:
    exported_at: datetime
    items: list[HabitRecord] = dataclasses.field(default_factory=list, hash=False)


@dataclasses.dataclass(frozen=True)
class WidgetPayload:
    id: str
    title: str
    icon: str
    color_hex: str
    date: datetime
    today_count: int
    target_per_day: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "icon": self.icon,
            "colorHex": self.color_hex,
            "date": self.date.isoformat(),
            "todayCount": self.today_count,
            "targetPerDay": self.target_per_day,
        }


@dataclasses.dataclass(frozen=True)
class Reminder:
    habit_id: str
    hour: int
    minute: int
    message: str
    scheduled_at: datetime | None = None


@dataclasses.dataclass(frozen=True)
class ImportResult:
    created: list[str] = dataclasses.field(default_factory=list, hash=False)
    updated: list[str] = dataclasses.field(default_factory=list, hash=False)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated)
