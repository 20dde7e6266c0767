"""Turn raw GitHub webhook deliveries into typed events."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from gh_forwarder.models import (
    Commit,
    Event,
    IssueEvent,
    PullRequestEvent,
    PushEvent,
    ReleaseEvent,
    UnknownEvent,
    WorkflowRunEvent,
)
from gh_forwarder.schemas import (
    GhUser,
    IssuesHook,
    PullRequestHook,
    PushHook,
    ReleaseHook,
    WorkflowRunHook,
)

MAX_COMMITS = 5  # Keep up to five commits for push summaries.
UNKNOWN = "unknown"


class MalformedPayload(ValueError):
    """Raised when a supported event's body is missing required fields."""


def _login(user: Optional[GhUser]) -> str:
    if user is None:
        return ""
    return user.login or user.name or ""


def _actor(hook: Any, *fallbacks: str) -> str:
    for candidate in (_login(hook.sender), *fallbacks):
        if candidate:
            return candidate
    return UNKNOWN


def _links(hook: Any) -> dict[str, str]:
    sender_url = hook.sender.html_url if hook.sender else None
    return {
        "actor_url": sender_url or "",
        "repository_url": hook.repository.html_url or "",
    }


def _first_line(text: str | None, limit: int = 120) -> str:
    if not text:
        return ""
    return text.splitlines()[0][:limit]


def _pull_request(hook: PullRequestHook) -> PullRequestEvent:
    pr = hook.pull_request
    author = _login(pr.user)
    return PullRequestEvent(
        repository=hook.repository.full_name,
        action=hook.action,
        actor=_actor(hook, author),
        number=pr.number,
        title=pr.title,
        url=pr.html_url,
        author=author,
        merged=bool(pr.merged),
        head_ref=(pr.head.ref if pr.head else None) or "",
        base_ref=(pr.base.ref if pr.base else None) or "",
        **_links(hook),
    )


def _issue(hook: IssuesHook) -> IssueEvent:
    issue = hook.issue
    author = _login(issue.user)
    return IssueEvent(
        repository=hook.repository.full_name,
        action=hook.action,
        actor=_actor(hook, author),
        number=issue.number,
        title=issue.title,
        url=issue.html_url,
        author=author,
        **_links(hook),
    )


def _push(hook: PushHook) -> PushEvent:
    pusher = _login(hook.pusher)
    commits = tuple(
        Commit(sha=c.id[:7], message=_first_line(c.message), url=c.url or "")
        for c in hook.commits[:MAX_COMMITS]
    )
    return PushEvent(
        repository=hook.repository.full_name,
        actor=_actor(hook, pusher),
        ref=hook.ref,
        commit_count=len(hook.commits),
        pusher=pusher or _actor(hook),
        compare_url=hook.compare or "",
        commits=commits,
        deleted=hook.deleted,
        forced=hook.forced,
        **_links(hook),
    )


def _workflow_run(hook: WorkflowRunHook) -> WorkflowRunEvent:
    run = hook.workflow_run
    return WorkflowRunEvent(
        repository=hook.repository.full_name,
        action=hook.action or None,
        actor=_actor(hook),
        workflow_name=run.name,
        url=run.html_url,
        status=run.status or "",
        conclusion=run.conclusion or None,
        head_branch=run.head_branch or "",
        run_number=run.run_number,
        **_links(hook),
    )


def _release(hook: ReleaseHook) -> ReleaseEvent:
    release = hook.release
    return ReleaseEvent(
        repository=hook.repository.full_name,
        action=hook.action or None,
        actor=_actor(hook),
        tag_name=release.tag_name,
        url=release.html_url,
        name=release.name or None,
        draft=release.draft,
        prerelease=release.prerelease,
        **_links(hook),
    )


PARSERS: dict[str, tuple[type[BaseModel], Callable[[Any], Event]]] = {
    "pull_request": (PullRequestHook, _pull_request),
    "issues": (IssuesHook, _issue),
    "push": (PushHook, _push),
    "workflow_run": (WorkflowRunHook, _workflow_run),
    "release": (ReleaseHook, _release),
}

SUPPORTED_EVENTS = frozenset(PARSERS)


def decode_body(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise MalformedPayload(f"body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedPayload("body must be a JSON object")
    return payload


def parse_event(event_type: str | None, body: bytes) -> Event:
    """
    Parse a webhook body for the given ``X-GitHub-Event`` value.

    Unsupported event types come back as :class:`UnknownEvent` without the body
    being looked at. Supported types whose body lacks required fields raise
    :class:`MalformedPayload`.
    """
    event_key = (event_type or "").strip().lower()
    entry = PARSERS.get(event_key)
    if entry is None:
        return UnknownEvent(event_type=event_key or UNKNOWN)

    schema, build = entry
    payload = decode_body(body)
    try:
        hook = schema.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise MalformedPayload(
            f"invalid {event_key} payload: {', '.join(fields) or 'unknown field'}"
        ) from exc
    return build(hook)
