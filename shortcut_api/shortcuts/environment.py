from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from .collection import CollectionParseError, parse_collection
from .config import Settings, settings as default_settings
from .fetcher import Fetcher, FetchError, HttpxFetcher, fetch_collections, fetch_namespace
from .includes import resolve_includes
from .logging_utils import create_session_id, log_diagnostic, setup_logger
from .models import (
    Diagnostic,
    EnvironmentSnapshot,
    EnvironmentState,
    NamespaceDescriptor,
    ResolveResult,
    SessionParams,
    ShortcutEntry,
)
from .namespaces import describe_namespace, resolve_namespaces
from .query_parser import QueryParser
from .reachability import annotate_reachability
from .resolver import resolve_query
from .suggestions import get_suggestions

logger = setup_logger("shortcuts.environment")


class EnvironmentNotReady(RuntimeError):
    """Raised when querying an environment that did not reach READY."""


class ResolutionSession:
    """Namespace descriptors and diagnostics of one populate run.

    Namespaces fetched on demand for cross-namespace includes are added
    here; concurrent requests for the same one share a single fetch.
    """

    def __init__(self, params: SessionParams, fetcher: Fetcher, settings: Settings):
        self.session_id = create_session_id()
        self.params = params
        self.fetcher = fetcher
        self.settings = settings
        self.namespaces: dict[str, NamespaceDescriptor] = {}
        self.diagnostics: list[Diagnostic] = []
        self.state = EnvironmentState.UNINITIALIZED
        self._on_demand: dict[str, asyncio.Task] = {}

    def advance(self, state: EnvironmentState) -> None:
        logger.debug(f"➡️ {self.session_id}: {self.state.value} -> {state.value}")
        self.state = state

    def report(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.diagnostics.append(diagnostic)
            log_diagnostic(logger, diagnostic, debug=self.params.debug)

    async def lookup_namespace(self, name: str) -> Optional[NamespaceDescriptor]:
        if name in self.namespaces:
            return self.namespaces[name]
        task = self._on_demand.get(name)
        if task is None:
            task = asyncio.ensure_future(self._fetch_on_demand(name))
            self._on_demand[name] = task
        return await task

    async def _fetch_on_demand(self, name: str) -> NamespaceDescriptor:
        logger.debug(f"📥 Fetching namespace {name!r} on demand for an include")
        descriptor = describe_namespace(name, priority=0, github=self.params.github, settings=self.settings)
        outcome = await fetch_namespace(descriptor, self.fetcher, reload=self.params.reload)
        self.report(outcome.diagnostics)
        self.namespaces.setdefault(name, outcome.descriptor)
        return self.namespaces[name]


class Environment:
    """Populates and holds the namespace stack that queries run against.

    UNINITIALIZED -> [FETCHING_USER_CONFIG] -> FETCHING_COLLECTIONS ->
    RESOLVING_INCLUDES -> ANNOTATING_REACHABILITY -> READY, or FAILED when
    not a single namespace could be fetched and parsed. Each run walks these
    states on its own session; `state` is that of the last finished run.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        settings: Settings = default_settings,
    ):
        self.settings = settings
        self.fetcher = fetcher or HttpxFetcher(timeout=settings.fetch_timeout)
        self.state = EnvironmentState.UNINITIALIZED
        self.snapshot: Optional[EnvironmentSnapshot] = None
        self.query_parser = QueryParser()
        self._lock = asyncio.Lock()

    async def populate(
        self,
        params: Union[SessionParams, Mapping[str, Any], None] = None,
    ) -> EnvironmentSnapshot:
        """Run the pipeline once; later calls return the same snapshot unless `reload`.

        The previous snapshot keeps serving queries while a reload runs;
        `state` and `snapshot` change together when the run finishes.
        """
        if not isinstance(params, SessionParams):
            params = SessionParams.model_validate(dict(params or {}))

        if self.snapshot is not None and not params.reload:
            return self.snapshot

        async with self._lock:
            # Another caller may have populated while this one waited
            if self.snapshot is not None and not params.reload:
                return self.snapshot
            return await self._run_pipeline(params)

    async def _run_pipeline(self, params: SessionParams) -> EnvironmentSnapshot:
        session = ResolutionSession(params, self.fetcher, self.settings)

        if params.github:
            session.advance(EnvironmentState.FETCHING_USER_CONFIG)
            params = await self._apply_user_config(params, session)
        params = self._with_defaults(params)
        session.params = params

        descriptors, diagnostics = resolve_namespaces(
            params.namespaces, github=params.github, settings=self.settings
        )
        session.report(diagnostics)

        forced = self.query_parser.parse(params.query).forced_namespace
        if forced and forced not in descriptors:
            descriptors[forced] = describe_namespace(
                forced, priority=len(params.namespaces) + 1, github=params.github, settings=self.settings
            )

        logger.info(f"🔍 Populating {session.session_id} with namespaces {list(descriptors)}")

        session.advance(EnvironmentState.FETCHING_COLLECTIONS)
        outcomes = await fetch_collections(
            descriptors.values(),
            self.fetcher,
            reload=params.reload,
            concurrency=self.settings.fetch_concurrency,
        )
        for name, outcome in outcomes.items():
            session.namespaces[name] = outcome.descriptor
            session.report(outcome.diagnostics)

        if not any(outcome.parsed for outcome in outcomes.values()):
            logger.error(f"❌ No namespace could be loaded for {session.session_id}")
            return self._finish(session, EnvironmentState.FAILED)

        session.advance(EnvironmentState.RESOLVING_INCLUDES)
        fetched = [session.namespaces[name] for name in outcomes]
        resolved = await asyncio.gather(
            *(resolve_includes(ns, session.lookup_namespace) for ns in fetched)
        )
        for _, diagnostics in resolved:
            session.report(diagnostics)
        session.namespaces.update({ns.name: ns for ns, _ in resolved})

        session.advance(EnvironmentState.ANNOTATING_REACHABILITY)
        session.namespaces = annotate_reachability(session.namespaces)

        return self._finish(session, EnvironmentState.READY)

    def _finish(self, session: ResolutionSession, state: EnvironmentState) -> EnvironmentSnapshot:
        session.advance(state)
        self.snapshot = EnvironmentSnapshot(
            session_id=session.session_id,
            state=state,
            params=session.params,
            namespaces=session.namespaces,
            diagnostics=session.diagnostics,
        )
        self.state = state
        if state == EnvironmentState.READY:
            count = sum(len(ns.shortcuts) for ns in self.snapshot.namespaces.values())
            logger.info(
                f"✅ {session.session_id} ready: {count} shortcuts in "
                f"{len(self.snapshot.namespaces)} namespaces, {len(session.diagnostics)} diagnostics"
            )
        return self.snapshot

    async def _apply_user_config(self, params: SessionParams, session: ResolutionSession) -> SessionParams:
        """Fill parameters the caller left out from the account's config.yml."""
        config_url = self.settings.github_config_url_template.format(github=params.github)
        try:
            response = await self.fetcher.fetch(config_url, reload=params.reload)
            if not response.ok:
                raise FetchError(f"HTTP {response.status} for {config_url}")
            config = parse_collection(response.text)
            overrides = SessionParams.model_validate(config).model_dump(exclude_unset=True)
        except (FetchError, CollectionParseError, ValidationError) as exc:
            session.report([Diagnostic(
                kind="config_failed",
                namespace=params.github,
                message=f"Failed to read Github config from {config_url}: {exc}",
            )])
            return params

        overrides.pop("github", None)
        return SessionParams.model_validate({**overrides, **params.model_dump(exclude_unset=True)})

    def _with_defaults(self, params: SessionParams) -> SessionParams:
        language = (params.language or self.settings.default_language).lower()
        country = (params.country or self.settings.default_country).lower()
        namespaces = params.namespaces
        if namespaces is None:
            namespaces = ["o", language, "." + country]
        return params.model_copy(update={
            "language": language,
            "country": country,
            "namespaces": list(namespaces),
        })

    # Queries ============================================================

    def _ready_snapshot(self) -> EnvironmentSnapshot:
        if self.snapshot is None or self.snapshot.state != EnvironmentState.READY:
            raise EnvironmentNotReady(f"Environment is {self.state.value}")
        return self.snapshot

    def resolve(self, query: str) -> ResolveResult:
        return resolve_query(self._ready_snapshot(), self.query_parser.parse(query))

    def get_suggestions(self, partial_query: str) -> list[ShortcutEntry]:
        return get_suggestions(self._ready_snapshot(), partial_query)
