"""Events, routing rules and delivery results."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

ChatId = Union[int, str]


class ConfigError(ValueError):
    """Raised when the configuration cannot be turned into a working setup."""


class EventKind(str, enum.Enum):
    PULL_REQUEST = "pull_request"
    ISSUE = "issues"
    PUSH = "push"
    WORKFLOW_RUN = "workflow_run"
    RELEASE = "release"
    UNKNOWN = "unknown"


def _key(kind: EventKind, action: Optional[str]) -> str:
    return f"{kind.value}.{action}" if action else kind.value


@dataclass(frozen=True)
class PullRequestEvent:
    kind: ClassVar[EventKind] = EventKind.PULL_REQUEST

    repository: str
    action: str
    actor: str
    number: int
    title: str
    url: str
    author: str = ""
    merged: bool = False
    head_ref: str = ""
    base_ref: str = ""
    actor_url: str = ""
    repository_url: str = ""

    @property
    def key(self) -> str:
        return _key(self.kind, self.action)


@dataclass(frozen=True)
class IssueEvent:
    kind: ClassVar[EventKind] = EventKind.ISSUE

    repository: str
    action: str
    actor: str
    number: int
    title: str
    url: str
    author: str = ""
    actor_url: str = ""
    repository_url: str = ""

    @property
    def key(self) -> str:
        return _key(self.kind, self.action)


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    url: str = ""


@dataclass(frozen=True)
class PushEvent:
    kind: ClassVar[EventKind] = EventKind.PUSH

    repository: str
    actor: str
    ref: str
    commit_count: int
    pusher: str
    compare_url: str = ""
    commits: tuple[Commit, ...] = ()
    deleted: bool = False
    forced: bool = False
    action: Optional[str] = None
    actor_url: str = ""
    repository_url: str = ""

    @property
    def key(self) -> str:
        return _key(self.kind, self.action)

    @property
    def is_tag(self) -> bool:
        return self.ref.startswith("refs/tags/")

    @property
    def ref_name(self) -> str:
        for prefix in ("refs/heads/", "refs/tags/"):
            if self.ref.startswith(prefix):
                return self.ref[len(prefix):]
        return self.ref


@dataclass(frozen=True)
class WorkflowRunEvent:
    kind: ClassVar[EventKind] = EventKind.WORKFLOW_RUN

    repository: str
    actor: str
    workflow_name: str
    url: str
    status: str = ""
    conclusion: Optional[str] = None
    head_branch: str = ""
    run_number: Optional[int] = None
    action: Optional[str] = None
    actor_url: str = ""
    repository_url: str = ""

    @property
    def key(self) -> str:
        return _key(self.kind, self.action)


@dataclass(frozen=True)
class ReleaseEvent:
    kind: ClassVar[EventKind] = EventKind.RELEASE

    repository: str
    actor: str
    tag_name: str
    url: str
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
    action: Optional[str] = None
    actor_url: str = ""
    repository_url: str = ""

    @property
    def key(self) -> str:
        return _key(self.kind, self.action)


@dataclass(frozen=True)
class UnknownEvent:
    """An event type this service does not forward. Never delivered."""

    kind: ClassVar[EventKind] = EventKind.UNKNOWN

    event_type: str

    @property
    def key(self) -> str:
        return self.kind.value


Event = Union[
    PullRequestEvent,
    IssueEvent,
    PushEvent,
    WorkflowRunEvent,
    ReleaseEvent,
    UnknownEvent,
]


class PatternShape(str, enum.Enum):
    GLOBAL = "global"
    ORG_WILDCARD = "org_wildcard"
    EXACT = "exact"


@dataclass(frozen=True)
class RepoPattern:
    """A parsed ``repo_pattern``: ``*``, ``org/*`` or ``org/repo``."""

    raw: str
    shape: PatternShape
    value: str = ""

    @classmethod
    def parse(cls, raw: str) -> RepoPattern:
        text = (raw or "").strip()
        if text == "*":
            return cls(raw=text, shape=PatternShape.GLOBAL)
        org, sep, name = text.partition("/")
        if not org or not sep or not name or "/" in name or "*" in org:
            raise ConfigError(f"invalid repo_pattern: {raw!r}")
        if name == "*":
            return cls(raw=text, shape=PatternShape.ORG_WILDCARD, value=org)
        if "*" in name:
            raise ConfigError(f"invalid repo_pattern: {raw!r}")
        return cls(raw=text, shape=PatternShape.EXACT, value=text)

    def matches(self, repository: str) -> bool:
        if self.shape is PatternShape.GLOBAL:
            return True
        if self.shape is PatternShape.ORG_WILDCARD:
            org, sep, name = repository.partition("/")
            return bool(sep and name) and org == self.value
        return repository == self.value


def normalize_chat_id(chat_id: ChatId) -> ChatId:
    """Numeric chat ids become ``int`` so ``"123"`` and ``123`` are one chat."""

    if isinstance(chat_id, bool):
        raise ConfigError(f"invalid chat_id: {chat_id!r}")
    if isinstance(chat_id, int):
        return chat_id
    text = str(chat_id).strip()
    if not text:
        raise ConfigError("chat_id must not be empty")
    try:
        return int(text)
    except ValueError:
        return text


@dataclass(frozen=True)
class RoutingRule:
    pattern: RepoPattern
    chat_id: ChatId
    events: frozenset[str]

    @property
    def repo_pattern(self) -> str:
        return self.pattern.raw

    @classmethod
    def build(cls, repo_pattern: str, chat_id: ChatId, events) -> RoutingRule:
        if isinstance(events, str):
            events = [events]
        cleaned = frozenset(str(e).strip() for e in (events or []) if str(e).strip())
        if not cleaned:
            raise ConfigError(f"routing rule for {repo_pattern!r} has no events")
        return cls(
            pattern=RepoPattern.parse(repo_pattern),
            chat_id=normalize_chat_id(chat_id),
            events=cleaned,
        )

    def accepts(self, kind: EventKind, key: str) -> bool:
        return "*" in self.events or key in self.events or kind.value in self.events


@dataclass(frozen=True)
class Destination:
    chat_id: ChatId
    rules: tuple[RoutingRule, ...] = ()


class DeliveryStatus(str, enum.Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable_failure"
    PERMANENT = "permanent_failure"
    ABANDONED = "abandoned"


@dataclass
class DeliveryOutcome:
    chat_id: ChatId
    status: DeliveryStatus
    attempts: int = 0
    error: Optional[str] = None
    response: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SUCCESS
