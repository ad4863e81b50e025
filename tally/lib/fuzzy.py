from collections.abc import Sequence
from difflib import get_close_matches

from tally.core.errors import AmbiguousError
from tally.core.models import Habit

__all__ = ["find_in_pool"]

FUZZY_MATCH_CUTOFF = 0.8


def _match_uuid_prefix(ref: str, pool: Sequence[Habit]) -> Habit | None:
    ref_lower = ref.lower()
    exact = next((h for h in pool if h.id == ref_lower), None)
    if exact:
        return exact
    matches = [h for h in pool if h.id.startswith(ref_lower)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [h.id[:8] for h in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_substring(ref: str, pool: Sequence[Habit]) -> Habit | None:
    ref_lower = ref.lower()
    exact = next((h for h in pool if h.title.lower() == ref_lower), None)
    if exact:
        return exact
    matches = [h for h in pool if ref_lower in h.title.lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        sample = [h.title for h in matches[:3]]
        raise AmbiguousError(ref, count=len(matches), sample=sample)
    return None


def _match_fuzzy(ref: str, pool: Sequence[Habit]) -> Habit | None:
    titles = [h.title.lower() for h in pool]
    matches = get_close_matches(ref.lower(), titles, n=1, cutoff=FUZZY_MATCH_CUTOFF)
    if matches:
        return pool[titles.index(matches[0])]
    return None


def find_in_pool(ref: str, pool: Sequence[Habit]) -> Habit | None:
    """Resolve a ref by id prefix, then title substring, then fuzzy title."""
    if not pool or not ref.strip():
        return None
    if len(ref) >= 4 and all(c in "0123456789abcdef-" for c in ref.lower()):
        found = _match_uuid_prefix(ref, pool)
        if found:
            return found
    return _match_substring(ref, pool) or _match_fuzzy(ref, pool)
