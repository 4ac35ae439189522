from __future__ import annotations

from typing import Iterable, Optional, Union

from .logging_utils import setup_logger
from .models import WILDCARD, EnvironmentSnapshot, NamespaceDescriptor, ResolvedQuery, ResolveResult, ShortcutEntry
from .templater import fill_template

logger = setup_logger("shortcuts.resolver")


def _candidate_namespaces(snapshot: EnvironmentSnapshot, query: ResolvedQuery) -> list[NamespaceDescriptor]:
    if query.forced_namespace:
        namespace = snapshot.namespaces.get(query.forced_namespace)
        return [namespace] if namespace is not None else []
    return snapshot.by_priority()


def find_shortcut(
    namespaces: Iterable[NamespaceDescriptor],
    keyword: str,
    argument_count: Union[int, str],
) -> Optional[ShortcutEntry]:
    """First entry for the key, in precedence order."""
    key = f"{keyword.lower()} {argument_count}"
    for namespace in namespaces:
        entry = namespace.shortcuts.get(key)
        if entry is not None:
            return entry
    return None


def available_argument_counts(namespaces: Iterable[NamespaceDescriptor], keyword: str) -> list[str]:
    counts = set()
    for namespace in namespaces:
        for entry in namespace.shortcuts.values():
            if entry.keyword == keyword:
                counts.add(str(entry.argument_count))
    return sorted(counts)


def build_result(entry: ShortcutEntry, values: list[str], used_default_keyword: bool = False) -> ResolveResult:
    if not entry.url:
        return ResolveResult(
            found=False,
            status="no_match",
            reason=f"Shortcut {entry.namespace}:{entry.key} has no URL",
            namespace=entry.namespace,
            key=entry.key,
        )
    filled = fill_template(entry.url, values)
    reason = None
    if filled.extra:
        logger.debug(f"⚠️ {entry.namespace}:{entry.key} has no placeholder for {filled.extra} argument(s)")
        reason = f"{filled.extra} argument(s) without a placeholder in {entry.key}"
    return ResolveResult(
        found=True,
        status="ok",
        reason=reason,
        url=filled.url,
        namespace=entry.namespace,
        key=entry.key,
        title=entry.title,
        missing_arguments=filled.missing,
        extra_arguments=filled.extra,
        used_default_keyword=used_default_keyword,
    )


def resolve_query(snapshot: EnvironmentSnapshot, query: ResolvedQuery) -> ResolveResult:
    """
    クエリを解決して遷移先URLを組み立てる

    解決戦略:
    1. キーワード + 引数の数が一致するショートカット
    2. キーワード + "*"（任意の引数の数）
    3. キーワードはあるが引数の数が違う → argument_mismatch
    4. デフォルトキーワードにクエリ全体を1引数として渡す
    """
    if query.empty:
        return ResolveResult(found=False, status="no_match", reason="empty query")

    logger.debug(f"🔍 Resolving {query.keyword!r} with {len(query.argument_values)} arguments"
                 + (f" in {query.forced_namespace!r}" if query.forced_namespace else ""))

    namespaces = _candidate_namespaces(snapshot, query)
    values = list(query.argument_values)

    entry = (
        find_shortcut(namespaces, query.keyword, len(values))
        or find_shortcut(namespaces, query.keyword, WILDCARD)
    )
    if entry is not None:
        return build_result(entry, values)

    counts = available_argument_counts(namespaces, query.keyword)
    if counts:
        logger.debug(f"❌ {query.keyword!r} takes {counts} arguments, got {len(values)}")
        return ResolveResult(
            found=False,
            status="argument_mismatch",
            reason=f"{query.keyword} expects {', '.join(counts)} arguments, got {len(values)}",
            available_argument_counts=counts,
        )

    default_keyword = snapshot.params.default_keyword
    if default_keyword and not query.forced_namespace:
        entry = find_shortcut(namespaces, default_keyword, 1) or find_shortcut(namespaces, default_keyword, WILDCARD)
        if entry is not None:
            logger.debug(f"↪️ Falling back to default keyword {default_keyword!r}")
            return build_result(entry, [query.raw], used_default_keyword=True)

    return ResolveResult(found=False, status="no_match", reason=f"No shortcut found for {query.keyword!r}")
