from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .config import settings
from .environment import Environment, EnvironmentNotReady
from .fetcher import Fetcher
from .logging_utils import log_resolution, setup_logger
from .models import EnvironmentSnapshot, EnvironmentState, ResolveResult, SessionParams
from .query_parser import parse_query
from .security import require_api_key

VERSION = "0.1.0"

app = FastAPI(title="Shortcut Resolver API", version=VERSION)

origins = (
    [o.strip() for o in settings.cors_origins.split(",")]
    if getattr(settings, "cors_origins", None)
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = setup_logger("shortcuts.api")


@dataclass
class EnvironmentRegistry:
    """One populated Environment per distinct parameter set.

    At most `max_size` environments are kept; the least recently used one
    is dropped first.
    """

    fetcher: Optional[Fetcher] = None
    max_size: int = settings.environment_cache_size
    environments: OrderedDict[str, Environment] = field(default_factory=OrderedDict)

    async def get(self, params: SessionParams) -> Environment:
        forced = parse_query(params.query).forced_namespace
        cache_key = params.model_dump_json(exclude={"query", "reload", "debug"}) + f"|{forced or ''}"
        env = self.environments.get(cache_key)
        if env is None:
            env = Environment(fetcher=self.fetcher)
            self.environments[cache_key] = env
            while len(self.environments) > max(1, self.max_size):
                evicted, _ = self.environments.popitem(last=False)
                logger.debug(f"🗑️ Evicted environment {evicted}")
        else:
            self.environments.move_to_end(cache_key)
        await env.populate(params)
        return env


REGISTRY = EnvironmentRegistry()


def session_params(
    q: str = Query(..., min_length=1, description="Query like 'w berlin' or 'de.w berlin'"),
    language: str | None = Query(default=None),
    country: str | None = Query(default=None),
    namespace: list[str] | None = Query(default=None, description="Namespace stack, lowest priority first"),
    github: str | None = Query(default=None),
    default_keyword: str | None = Query(default=None, alias="defaultKeyword"),
    debug: bool = False,
    reload: bool = False,
) -> SessionParams:
    given = {
        "language": language,
        "country": country,
        "namespaces": namespace,
        "github": github,
        "default_keyword": default_keyword,
    }
    # Unset fields stay unset so an account config can fill them in
    return SessionParams(
        query=q,
        debug=debug,
        reload=reload,
        **{k: v for k, v in given.items() if v is not None},
    )


async def ready_environment(params: SessionParams = Depends(session_params)) -> Environment:
    env = await REGISTRY.get(params)
    if env.snapshot is None or env.snapshot.state != EnvironmentState.READY:
        raise HTTPException(503, detail=_failure_detail(env.snapshot, params))
    return env


def _failure_detail(snapshot: EnvironmentSnapshot | None, params: SessionParams):
    detail = {"message": "No namespace could be loaded"}
    if params.debug and snapshot is not None:
        detail["diagnostics"] = [d.model_dump() for d in snapshot.diagnostics]
    return detail


def _with_diagnostics(payload: dict, env: Environment, params: SessionParams) -> dict:
    if params.debug:
        payload["diagnostics"] = [d.model_dump() for d in env.snapshot.diagnostics]
    return payload


def _resolve_logged(env: Environment, params: SessionParams) -> ResolveResult:
    start_time = time.time()
    try:
        result = env.resolve(params.query)
    except EnvironmentNotReady as e:
        raise HTTPException(503, detail=str(e))
    log_resolution(
        logger, env.snapshot.session_id, params.query, result.status,
        (time.time() - start_time) * 1000,
        namespace=result.namespace, key=result.key, url=result.url, reason=result.reason,
    )
    return result


@app.get("/health")
def health(response: Response):
    response.headers["Cache-Control"] = "no-store"
    return {
        "status": "ok",
        "service": "shortcut-api",
        "version": VERSION,
        "time": datetime.now().astimezone().isoformat()
    }


@app.get("/suggestions", dependencies=[Depends(require_api_key)])
def suggestions(
    params: SessionParams = Depends(session_params),
    env: Environment = Depends(ready_environment),
    limit: int = Query(default=50, ge=1, le=500),
):
    entries = env.get_suggestions(params.query)[:limit]
    return _with_diagnostics({
        "q": params.query,
        "suggestions": [e.model_dump(exclude={"include"}) for e in entries],
    }, env, params)


@app.get("/resolve", dependencies=[Depends(require_api_key)])
def resolve(
    params: SessionParams = Depends(session_params),
    env: Environment = Depends(ready_environment),
):
    result = _resolve_logged(env, params)
    return _with_diagnostics(result.model_dump(), env, params)


@app.get("/process", dependencies=[Depends(require_api_key)])
def process(
    params: SessionParams = Depends(session_params),
    env: Environment = Depends(ready_environment),
):
    result = _resolve_logged(env, params)
    if result.found:
        return RedirectResponse(result.url, status_code=302)
    return _with_diagnostics(result.model_dump(), env, params)
