from __future__ import annotations

from .models import EnvironmentSnapshot, ShortcutEntry
from .query_parser import parse_query

# Lower is better
RANK_EXACT = 0
RANK_PREFIX = 1
RANK_KEYWORD_SUBSTRING = 2
RANK_TEXT_SUBSTRING = 3


def _rank(entry: ShortcutEntry, needle: str) -> int | None:
    keyword = (entry.keyword or "").lower()
    if keyword == needle:
        return RANK_EXACT
    if keyword.startswith(needle):
        return RANK_PREFIX
    if needle in keyword:
        return RANK_KEYWORD_SUBSTRING
    texts = [entry.title or "", entry.description or "", *entry.tags]
    if any(needle in text.lower() for text in texts):
        return RANK_TEXT_SUBSTRING
    return None


def get_suggestions(snapshot: EnvironmentSnapshot, partial_query: str, limit: int | None = None) -> list[ShortcutEntry]:
    """Entries matching the keyword being typed.

    Reachable entries come first, then exact keyword, keyword prefix,
    keyword substring and title/description/tag matches.
    """
    query = parse_query(partial_query)
    needle = query.keyword
    if not needle:
        return []

    hits = []
    for namespace in snapshot.by_priority():
        if query.forced_namespace and namespace.name != query.forced_namespace:
            continue
        for entry in namespace.shortcuts.values():
            rank = _rank(entry, needle)
            if rank is None:
                continue
            hits.append(((not entry.reachable, rank, -namespace.priority, entry.keyword, str(entry.argument_count)), entry))

    hits.sort(key=lambda hit: hit[0])
    suggestions = [entry for _, entry in hits]
    return suggestions[:limit] if limit else suggestions
