import logging
from pathlib import Path

import yaml

TALLY_DIR = Path.home() / ".tally"
DB_PATH = TALLY_DIR / "tally.db"
CONFIG_PATH = TALLY_DIR / "config.yaml"
EXPORT_DIR = TALLY_DIR / "exports"
WIDGET_PATH = TALLY_DIR / "widget.json"

logger = logging.getLogger(__name__)


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next access re-reads CONFIG_PATH."""
        cls._instance = None

    def _load(self) -> None:
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                self._data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, e)
            self._data = {}

    def _save(self) -> None:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


def get_primary_habit() -> str | None:
    """Habit id mirrored to the home-screen widget. None = whichever habit changed last."""
    val = Config().get("primary_habit")
    return str(val).strip() if val else None


def set_primary_habit(habit_id: str | None) -> None:
    Config().set("primary_habit", habit_id)


def get_log_level() -> str:
    val = Config().get("log_level", "WARNING")
    return str(val).upper()
