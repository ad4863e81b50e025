import re

__all__ = ["DEFAULT_COLOR", "hex_to_rgb", "normalize_hex"]

DEFAULT_COLOR = "1C7ED6"

_NON_ALNUM_RE = re.compile(r"[^0-9A-Za-z]")
_HEX_RE = re.compile(r"^[0-9A-F]{6}$")


def normalize_hex(value: str) -> str:
    """Canonical RRGGBB form: no leading '#', uppercase, 3-digit shorthand expanded."""
    s = _NON_ALNUM_RE.sub("", value).upper()
    if len(s) == 3:
        s = "".join(c * 2 for c in s)
    if not _HEX_RE.match(s):
        raise ValueError(f"invalid color '{value}' — use RRGGBB")
    return s


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    n = int(normalize_hex(value), 16)
    return (n >> 16) & 0xFF, (n >> 8) & 0xFF, n & 0xFF
