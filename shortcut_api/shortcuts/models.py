from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

WILDCARD = "*"

NamespaceType = Literal["site", "user-url", "user-github"]
NamespaceSpec = Union[str, Dict[str, Any]]


class IncludeRef(BaseModel):
    """Points at the entry whose fields an including entry borrows."""

    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    namespace: Optional[str] = None


class ArgumentSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: int                           # 1-based
    label: Optional[str] = None


class ShortcutEntry(BaseModel):
    """One shortcut of a collection.

    Authored fields come from the collection document; `keyword`,
    `argument_count`, `namespace`, `arguments` and `reachable` are derived
    by the reachability stage. Unknown authored fields are kept.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    key: str
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    include: Optional[IncludeRef] = None
    tags: List[str] = Field(default_factory=list)
    examples: List[Any] = Field(default_factory=list)

    keyword: Optional[str] = None
    argument_count: Optional[Union[int, Literal["*"]]] = None
    namespace: Optional[str] = None
    arguments: List[ArgumentSlot] = Field(default_factory=list)
    reachable: bool = False

    @field_validator("include", mode="before")
    @classmethod
    def _include_must_be_mapping(cls, value):
        # Anything but a mapping cannot name a target key
        if value is None or isinstance(value, (dict, IncludeRef)):
            return value
        return {}

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("examples", mode="before")
    @classmethod
    def _examples_as_list(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            return [value]
        return value

    def authored_fields(self) -> dict:
        """Fields explicitly set on this entry, used for include merging."""
        return self.model_dump(exclude_unset=True)


class NamespaceDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: NamespaceType
    source_url: Optional[str] = None
    priority: int = 0                       # 1 = lowest; 0 = fetched on demand, not subscribed
    github: Optional[str] = None
    shortcuts: Dict[str, ShortcutEntry] = Field(default_factory=dict)

    @property
    def subscribed(self) -> bool:
        return self.priority > 0

    @property
    def defective(self) -> bool:
        return not self.source_url


class ResolvedQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str = ""
    keyword: str = ""
    forced_namespace: Optional[str] = None
    argument_string: str = ""
    argument_values: List[str] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.keyword


class Diagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[
        "defective_namespace",
        "fetch_failed",
        "parse_failed",
        "invalid_keys",
        "malformed_include",
        "missing_include",
        "config_failed",
    ]
    namespace: Optional[str] = None
    message: str
    details: List[str] = Field(default_factory=list)


class SessionParams(BaseModel):
    """Caller-supplied parameters of one resolution session."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    language: Optional[str] = None
    country: Optional[str] = None
    namespaces: Optional[List[NamespaceSpec]] = None
    github: Optional[str] = None
    default_keyword: Optional[str] = Field(default=None, alias="defaultKeyword")
    debug: bool = False
    reload: bool = False
    query: str = ""


class EnvironmentState(str, Enum):
    UNINITIALIZED = "uninitialized"
    FETCHING_USER_CONFIG = "fetching_user_config"
    FETCHING_COLLECTIONS = "fetching_collections"
    RESOLVING_INCLUDES = "resolving_includes"
    ANNOTATING_REACHABILITY = "annotating_reachability"
    READY = "ready"
    FAILED = "failed"


class EnvironmentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    state: EnvironmentState
    params: SessionParams
    namespaces: Dict[str, NamespaceDescriptor] = Field(default_factory=dict)
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.diagnostics)

    def by_priority(self) -> List[NamespaceDescriptor]:
        """Subscribed namespaces, highest precedence first."""
        subscribed = [ns for ns in self.namespaces.values() if ns.subscribed]
        return sorted(subscribed, key=lambda ns: ns.priority, reverse=True)


class ResolveResult(BaseModel):
    found: bool
    status: Literal["ok", "no_match", "argument_mismatch"]
    reason: Optional[str] = None
    url: Optional[str] = None
    namespace: Optional[str] = None
    key: Optional[str] = None
    title: Optional[str] = None
    missing_arguments: List[int] = Field(default_factory=list)
    extra_arguments: int = 0                # supplied values the URL has no slot for
    available_argument_counts: List[str] = Field(default_factory=list)
    used_default_keyword: bool = False
