"""Fetching of collection documents.

The HTTP transport is a collaborator (`Fetcher`); `fetch_collections` runs
one fetch per namespace in a bounded group and never lets one namespace's
failure affect another.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

import httpx

from .collection import CollectionParseError, parse_collection, verify_shortcuts
from .config import settings
from .logging_utils import setup_logger
from .models import Diagnostic, NamespaceDescriptor

logger = setup_logger("shortcuts.fetcher")


class FetchError(Exception):
    """Transport-level failure: the document could not be retrieved at all."""


@dataclass(frozen=True)
class FetchResponse:
    status: int
    text: str
    url: str

    @property
    def ok(self) -> bool:
        return self.status == 200


class Fetcher(Protocol):
    async def fetch(self, url: str, reload: bool = False) -> FetchResponse:
        ...


class HttpxFetcher:
    """Fetcher backed by httpx.

    `reload` asks intermediaries to revalidate; otherwise cached copies,
    even stale ones, are acceptable.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = settings.fetch_timeout):
        self._client = client
        self._timeout = timeout

    async def fetch(self, url: str, reload: bool = False) -> FetchResponse:
        headers = {"Cache-Control": "no-cache"} if reload else {"Cache-Control": "max-stale"}
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, headers=headers, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"{url}: {exc}") from exc
        return FetchResponse(status=response.status_code, text=response.text, url=str(response.url))


@dataclass
class FetchOutcome:
    descriptor: NamespaceDescriptor
    parsed: bool = False
    diagnostics: list[Diagnostic] = field(default_factory=list)


async def fetch_namespace(
    descriptor: NamespaceDescriptor,
    fetcher: Fetcher,
    reload: bool = False,
) -> FetchOutcome:
    """Fetch, parse and verify one namespace; failures leave it empty."""
    mode = "reload" if reload else "cache "
    if descriptor.defective:
        return FetchOutcome(descriptor=descriptor)

    try:
        response = await fetcher.fetch(descriptor.source_url, reload=reload)
    except FetchError as exc:
        logger.debug(f"{mode} Fail:    {descriptor.source_url}")
        return FetchOutcome(descriptor=descriptor, diagnostics=[Diagnostic(
            kind="fetch_failed", namespace=descriptor.name, message=str(exc),
        )])

    if not response.ok:
        logger.debug(f"{mode} Fail:    {descriptor.source_url} ({response.status})")
        return FetchOutcome(descriptor=descriptor, diagnostics=[Diagnostic(
            kind="fetch_failed",
            namespace=descriptor.name,
            message=f"HTTP {response.status} for {descriptor.source_url}",
        )])
    logger.debug(f"{mode} Success: {response.url}")

    try:
        raw = parse_collection(response.text)
    except CollectionParseError as exc:
        return FetchOutcome(descriptor=descriptor, diagnostics=[Diagnostic(
            kind="parse_failed",
            namespace=descriptor.name,
            message=f"Error parsing {descriptor.source_url}:\n\n{exc}",
        )])

    shortcuts, diagnostics = verify_shortcuts(raw, descriptor.name)
    return FetchOutcome(
        descriptor=descriptor.model_copy(update={"shortcuts": shortcuts}),
        parsed=True,
        diagnostics=diagnostics,
    )


async def fetch_collections(
    descriptors: Iterable[NamespaceDescriptor],
    fetcher: Fetcher,
    reload: bool = False,
    concurrency: int = settings.fetch_concurrency,
) -> dict[str, FetchOutcome]:
    """Fetch all namespaces concurrently, results keyed by namespace name."""
    semaphore = asyncio.Semaphore(max(1, concurrency))
    descriptors = list(descriptors)

    async def _bounded(descriptor: NamespaceDescriptor) -> FetchOutcome:
        async with semaphore:
            return await fetch_namespace(descriptor, fetcher, reload=reload)

    outcomes = await asyncio.gather(*(_bounded(d) for d in descriptors))
    return {d.name: outcome for d, outcome in zip(descriptors, outcomes)}
