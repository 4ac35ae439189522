from __future__ import annotations

from typing import Awaitable, Callable, Optional

from .collection import normalize_key
from .logging_utils import setup_logger
from .models import Diagnostic, NamespaceDescriptor, ShortcutEntry

logger = setup_logger("shortcuts.includes")

NamespaceLookup = Callable[[str], Awaitable[Optional[NamespaceDescriptor]]]


def _target_key(key: str) -> str:
    try:
        return normalize_key(key)
    except ValueError:
        return key


def merge_include(entry: ShortcutEntry, source: ShortcutEntry) -> ShortcutEntry:
    """Fields of `source`, overwritten by the fields `entry` sets itself."""
    return ShortcutEntry(**{**source.authored_fields(), **entry.authored_fields()})


async def resolve_includes(
    descriptor: NamespaceDescriptor,
    lookup_namespace: NamespaceLookup,
) -> tuple[NamespaceDescriptor, list[Diagnostic]]:
    """Return a copy of the namespace with every include merged in.

    Targets are looked up among the entries as parsed, so an include that
    points at an including entry gets that entry's own fields only.
    """
    shortcuts: dict[str, ShortcutEntry] = {}
    diagnostics: list[Diagnostic] = []

    for key, entry in descriptor.shortcuts.items():
        ref = entry.include
        if ref is None:
            shortcuts[key] = entry
            continue

        if not ref.key:
            diagnostics.append(Diagnostic(
                kind="malformed_include",
                namespace=descriptor.name,
                message=f"Incorrect include found at {key}",
            ))
            shortcuts[key] = entry
            continue

        if ref.namespace and ref.namespace != descriptor.name:
            target = await lookup_namespace(ref.namespace)
        else:
            target = descriptor

        source = target.shortcuts.get(_target_key(ref.key)) if target is not None else None
        if source is None:
            diagnostics.append(Diagnostic(
                kind="missing_include",
                namespace=descriptor.name,
                message=f"Include target {ref.key!r} in namespace "
                        f"{ref.namespace or descriptor.name!r} not found for {key}",
            ))
            shortcuts[key] = entry
            continue

        logger.debug(f"🔗 {descriptor.name}:{key} includes {ref.namespace or descriptor.name}:{ref.key}")
        shortcuts[key] = merge_include(entry, source)

    return descriptor.model_copy(update={"shortcuts": shortcuts}), diagnostics
