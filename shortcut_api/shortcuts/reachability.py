from __future__ import annotations

from typing import Mapping

from .collection import split_key
from .models import NamespaceDescriptor, ShortcutEntry
from .templater import get_arguments


def annotate_entry(entry: ShortcutEntry, namespace: NamespaceDescriptor, reachable: bool) -> ShortcutEntry:
    keyword, argument_count = split_key(entry.key)
    return entry.model_copy(update={
        "keyword": keyword,
        "argument_count": argument_count,
        "namespace": namespace.name,
        "arguments": get_arguments(entry.url),
        "title": entry.title or "",
        "reachable": reachable,
    })


def annotate_reachability(namespaces: Mapping[str, NamespaceDescriptor]) -> dict[str, NamespaceDescriptor]:
    """Mark, per key, the one entry an unqualified query resolves to.

    Namespaces are walked from the highest priority value down, so the last
    namespace in the caller's list wins. Entries of later-visited
    namespaces with an already claimed key stay reachable only by forcing
    their namespace. Unsubscribed namespaces get the derived fields too but
    never claim a key.
    """
    annotated = dict(namespaces)
    seen: set[str] = set()

    ordered = sorted(
        (ns for ns in namespaces.values() if ns.subscribed),
        key=lambda ns: ns.priority,
        reverse=True,
    )
    for namespace in ordered:
        shortcuts = {}
        for key, entry in namespace.shortcuts.items():
            shortcuts[key] = annotate_entry(entry, namespace, reachable=key not in seen)
            seen.add(key)
        annotated[namespace.name] = namespace.model_copy(update={"shortcuts": shortcuts})

    for namespace in namespaces.values():
        if namespace.subscribed:
            continue
        shortcuts = {
            key: annotate_entry(entry, namespace, reachable=False)
            for key, entry in namespace.shortcuts.items()
        }
        annotated[namespace.name] = namespace.model_copy(update={"shortcuts": shortcuts})

    return annotated
