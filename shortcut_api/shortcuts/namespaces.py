from __future__ import annotations

from typing import Iterable, Optional

from .config import Settings, settings as default_settings
from .models import Diagnostic, NamespaceDescriptor, NamespaceSpec

# Identifiers shorter than this are site collections ("o", "de", ".us")
SITE_NAME_MAX_LENGTH = 4
SELF_MARKER = "."


def describe_namespace(
    spec: NamespaceSpec,
    priority: int,
    github: Optional[str] = None,
    settings: Settings = default_settings,
) -> NamespaceDescriptor:
    """Build the descriptor for one namespace spec.

    Args:
        spec: short site name, `{url, name}` pair, Github account name,
            `{github, name?}` mapping, or "." for the session's own account
        priority: position in the caller's list (1-based), 0 if fetched on demand
        github: the session's account, used to resolve "."
    """
    # Site namespaces
    if isinstance(spec, str) and len(spec) < SITE_NAME_MAX_LENGTH and spec != SELF_MARKER:
        return NamespaceDescriptor(
            name=spec,
            type="site",
            source_url=settings.site_url_template.format(name=spec),
            priority=priority,
        )

    # User namespace with custom URL
    if isinstance(spec, dict) and spec.get("url") and spec.get("name"):
        return NamespaceDescriptor(
            name=str(spec["name"]),
            type="user-url",
            source_url=str(spec["url"]),
            priority=priority,
        )

    # Remains: user namespace on Github
    info = {"github": spec} if isinstance(spec, str) else dict(spec)
    account = info.get("github")
    if account == SELF_MARKER:
        account = github
    name = info.get("name") or account or info.get("github") or info.get("url") or repr(spec)
    return NamespaceDescriptor(
        name=str(name),
        type="user-github",
        source_url=settings.github_shortcuts_url_template.format(github=account) if account else None,
        priority=priority,
        github=account,
    )


def resolve_namespaces(
    specs: Iterable[NamespaceSpec],
    github: Optional[str] = None,
    settings: Settings = default_settings,
) -> tuple[dict[str, NamespaceDescriptor], list[Diagnostic]]:
    """Describe the caller's namespace list, keyed by name, priorities 1..n.

    Specs that resolve to no fetch location are kept (so they show up
    empty) and reported as defective.
    """
    descriptors: dict[str, NamespaceDescriptor] = {}
    diagnostics: list[Diagnostic] = []
    for index, spec in enumerate(specs):
        descriptor = describe_namespace(spec, priority=index + 1, github=github, settings=settings)
        if descriptor.defective:
            diagnostics.append(Diagnostic(
                kind="defective_namespace",
                namespace=descriptor.name,
                message=f"No URL could be resolved for namespace spec {spec!r}",
            ))
        # A repeated name takes the later (higher) priority
        descriptors.pop(descriptor.name, None)
        descriptors[descriptor.name] = descriptor
    return descriptors, diagnostics
