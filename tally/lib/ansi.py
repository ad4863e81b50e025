import re
from collections.abc import Callable
from dataclasses import dataclass

from .colors import hex_to_rgb

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class Theme:
    red: str = "\033[38;5;203m"
    green: str = "\033[38;5;114m"
    yellow: str = "\033[38;5;221m"
    cyan: str = "\033[38;5;117m"
    gray: str = "\033[38;5;245m"
    muted: str = "\033[90m"  # dim gray for secondary text
    bold: str = "\033[1m"
    dim: str = "\033[2m"
    reset: str = "\033[0m"


DEFAULT = Theme()
PLAIN = Theme(**{name: "" for name in Theme.__dataclass_fields__})
_active: Theme = DEFAULT

_COLORS = {"red", "green", "yellow", "cyan", "gray", "muted"}


def use(theme: Theme) -> None:
    global _active
    _active = theme


def __getattr__(name: str) -> Callable[[str], str]:
    if name in _COLORS:

        def _wrap(text: str) -> str:
            return f"{getattr(_active, name)}{text}{_active.reset}"

        _wrap.__name__ = name
        return _wrap
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def bold(text: str) -> str:
    return f"{_active.bold}{text}{_active.reset}"


def swatch(color_hex: str, text: str = "●") -> str:
    """Render text in the habit's own 24-bit colour."""
    if not _active.reset:
        return text
    r, g, b = hex_to_rgb(color_hex)
    return f"\033[38;2;{r};{g};{b}m{text}{_active.reset}"


def strip(text: str) -> str:
    return _ANSI_RE.sub("", text)
