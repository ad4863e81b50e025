import json
import logging
from datetime import date
from pathlib import Path
from typing import Protocol

from . import config
from .core.models import Habit, WidgetPayload
from .lib import clock
from .lib.dates import start_of_day

__all__ = [
    "WIDGET_KEY",
    "JsonFileWidgetPublisher",
    "WidgetPublisher",
    "build_payload",
    "sync_widget",
]

WIDGET_KEY = "widget.primaryHabit"

logger = logging.getLogger(__name__)


class WidgetPublisher(Protocol):
    def publish(self, payload: WidgetPayload) -> None: ...


class JsonFileWidgetPublisher:
    """Shared key-value surface as a JSON file, plus a refresh marker beside it."""

    def __init__(self, path: Path | None = None):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path if self._path else config.WIDGET_PATH

    @property
    def refresh_path(self) -> Path:
        return self.path.with_suffix(".refresh")

    def read(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text())
        return data if isinstance(data, dict) else {}

    def publish(self, payload: WidgetPayload) -> None:
        data = self.read()
        data[WIDGET_KEY] = payload.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2))
        tmp.replace(self.path)
        self.refresh_path.write_text(clock.now().isoformat())


def build_payload(habit: Habit, today: date | None = None) -> WidgetPayload:
    day = today if today is not None else clock.today()
    return WidgetPayload(
        id=habit.id,
        title=habit.title,
        icon=habit.icon,
        color_hex=habit.color_hex,
        date=start_of_day(day),
        today_count=habit.count(day),
        target_per_day=habit.target_per_day,
    )


def sync_widget(
    habit: Habit,
    publisher: WidgetPublisher,
    primary_id: str | None = None,
    today: date | None = None,
) -> bool:
    """Publish the habit to the widget if it is the primary one.

    With no primary configured, the habit that just changed is published.
    Publisher failures are logged and dropped; returns whether it published.
    """
    if primary_id and habit.id != primary_id:
        return False
    try:
        publisher.publish(build_payload(habit, today))
    except Exception:
        logger.exception("widget sync failed for %s", habit.id)
        return False
    return True
