from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import ResolvedQuery

WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class QueryParser:
    """Splits "keyword arg1,arg2" queries.

    A keyword of the form `namespace.keyword` forces that namespace,
    e.g. `de.w berlin` or `.us.w chicago`.
    """

    namespace_delimiter: str = "."
    argument_delimiter: str = ","

    def parse(self, text: str) -> ResolvedQuery:
        """Split a raw query into keyword, forced namespace and arguments."""
        raw = (text or "").strip()
        if not raw:
            return ResolvedQuery(raw=raw)

        parts = WHITESPACE_RE.split(raw, maxsplit=1)
        keyword = parts[0]
        remainder = parts[1].strip() if len(parts) > 1 else ""

        # Namespace names keep their case; keywords match case-insensitively
        forced_namespace, keyword = self._split_namespace(keyword)
        keyword = keyword.lower()

        return ResolvedQuery(
            raw=raw,
            keyword=keyword,
            forced_namespace=forced_namespace,
            argument_string=remainder,
            argument_values=self._split_arguments(remainder),
        )

    def _split_namespace(self, keyword: str) -> tuple[Optional[str], str]:
        # A leading delimiter is part of the namespace name (".us")
        start = 1 if keyword.startswith(self.namespace_delimiter) else 0
        idx = keyword.find(self.namespace_delimiter, start)
        if idx <= start or idx == len(keyword) - 1:
            return None, keyword
        return keyword[:idx], keyword[idx + 1:]

    def _split_arguments(self, remainder: str) -> list[str]:
        if not remainder:
            return []
        return [value.strip() for value in remainder.split(self.argument_delimiter)]


def parse_query(text: str) -> ResolvedQuery:
    return QueryParser().parse(text)
