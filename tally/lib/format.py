from datetime import date

from tally.core.models import DayProgress, Habit

from . import ansi

__all__ = [
    "format_habit",
    "format_rate",
    "format_status",
    "format_week_strip",
]


def format_rate(rate: float) -> str:
    return f"{round(rate * 100)}%"


def format_week_strip(days: list[DayProgress]) -> str:
    """Seven cells, oldest first: ■ done, ▪ partial, □ nothing."""
    cells = []
    for d in days:
        if d.done:
            cells.append(ansi.green("■"))
        elif d.count:
            cells.append(ansi.yellow("▪"))
        else:
            cells.append(ansi.muted("□"))
    return "".join(cells)


def format_habit(habit: Habit, today: date, show_id: bool = True) -> str:
    """Format a habit row. Returns: swatch [✓|□] title count/target streak [#tags] [id]"""
    count = habit.count(today)
    done = count >= habit.target_per_day
    parts = [ansi.swatch(habit.color_hex), ansi.gray("✓") if done else "□", habit.title]
    parts.append(ansi.muted(f"{min(count, habit.target_per_day)}/{habit.target_per_day}"))
    streak = habit.current_streak(today)
    if streak:
        parts.append(ansi.yellow(f"🔥{streak}"))
    if habit.tags:
        parts.append(" ".join(ansi.muted(f"#{t}") for t in habit.tags))
    if show_id:
        parts.append(ansi.muted(f"[{habit.id[:8]}]"))
    return " ".join(parts)


def format_status(symbol: str, content: str, item_id: str | None = None) -> str:
    """Format status message for action confirmations."""
    if item_id:
        return f"{symbol} {content} {ansi.muted(f'[{item_id[:8]}]')}"
    return f"{symbol} {content}"
