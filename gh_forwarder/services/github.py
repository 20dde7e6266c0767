"""Summaries for GitHub webhook events."""

from __future__ import annotations

from html import escape as _esc
from typing import Any, Callable

from gh_forwarder.models import (
    Event,
    EventKind,
    IssueEvent,
    PullRequestEvent,
    PushEvent,
    ReleaseEvent,
    WorkflowRunEvent,
)
from gh_forwarder.services.parser import UNKNOWN

Handler = Callable[[Any], str]

CONCLUSION_ICONS = {
    "success": "✅",
    "failure": "❌",
    "cancelled": "🚫",
    "timed_out": "⌛",
}


def _esc_html(value: Any) -> str:
    return _esc(str(value or ""), quote=True)


def _link(url: str | None, text: str | None = None) -> str:
    if not url:
        return ""
    label = text or url
    return f'<a href="{_esc_html(url)}">{_esc_html(label)}</a>'


def _by(actor: str, url: str = "") -> str:
    if not actor or actor == UNKNOWN:
        return ""
    name = f"<b>{_esc_html(actor)}</b>"
    if url:
        name = f'<a href="{_esc_html(url)}">{name}</a>'
    return f" by {name}"


def _repo(event: Any) -> str:
    name = f"<code>{_esc_html(event.repository)}</code>"
    if event.repository_url:
        return f'<a href="{_esc_html(event.repository_url)}">{name}</a>'
    return name


def _summarize_push(event: PushEvent) -> str:
    target_label = "tag" if event.is_tag else "branch"
    repo = _repo(event)
    ref = _esc_html(event.ref_name or UNKNOWN)
    actor = event.pusher or event.actor
    # sender URL only describes the sender
    actor_url = event.actor_url if actor == event.actor else ""

    lines: list[str] = []
    if event.deleted:
        lines.append(
            f"<b>Deleted</b> {target_label} <code>{ref}</code>"
            f" from {repo}{_by(actor, actor_url)}"
        )
        return "\n".join(lines)

    plural = "commit" if event.commit_count == 1 else "commits"
    head = (
        f"<b>Push</b> to {target_label} <code>{ref}</code>"
        f" in {repo}{_by(actor, actor_url)}"
        f" ({event.commit_count} {plural})"
    )
    if event.forced:
        head += " <i>(forced)</i>"
    lines.append(head)
    if event.compare_url:
        lines.append(_link(event.compare_url, "Compare"))
    if event.commits:
        lines.append("")
        for commit in event.commits:
            line = f"<code>{_esc_html(commit.sha)}</code> {_esc_html(commit.message)}"
            if commit.url:
                line += " " + _link(commit.url, "view")
            lines.append(line)
        overflow = event.commit_count - len(event.commits)
        if overflow > 0:
            lines.append(f"<i>+{overflow} more commits</i>")
    return "\n".join(lines)


def _summarize_pull_request(event: PullRequestEvent) -> str:
    action = event.action
    if action == "closed" and event.merged:
        action = "merged"

    head = (
        f"<b>Pull request</b> {_repo(event)}"
        f" #{_esc_html(event.number)} <b>{_esc_html(action)}</b>{_by(event.actor, event.actor_url)}"
    )
    lines = [head, f"<b>{_esc_html(event.title)}</b>"]
    if event.head_ref and event.base_ref:
        lines.append(f"{_esc_html(event.head_ref)} → {_esc_html(event.base_ref)}")
    lines.append(_link(event.url, "View pull request"))
    return "\n".join(lines)


def _summarize_issues(event: IssueEvent) -> str:
    head = (
        f"<b>Issue</b> {_repo(event)}"
        f" #{_esc_html(event.number)} <b>{_esc_html(event.action)}</b>{_by(event.actor, event.actor_url)}"
    )
    lines = [head, f"<b>{_esc_html(event.title)}</b>", _link(event.url, "View issue")]
    return "\n".join(lines)


def _summarize_release(event: ReleaseEvent) -> str:
    name = event.name or event.tag_name
    label = "Release"
    if event.draft:
        label = "Draft release"
    elif event.prerelease:
        label = "Pre-release"

    head = f"<b>{label}</b> {_repo(event)}"
    if event.action:
        head += f" <b>{_esc_html(event.action)}</b>"
    head += f" → <b>{_esc_html(name)}</b>{_by(event.actor, event.actor_url)}"
    lines = [head]
    if event.tag_name != name:
        lines.append(f"tag: <code>{_esc_html(event.tag_name)}</code>")
    lines.append(_link(event.url, "View release"))
    return "\n".join(lines)


def _summarize_workflow_run(event: WorkflowRunEvent) -> str:
    icon = CONCLUSION_ICONS.get(event.conclusion or "", "⏳")
    title = (
        f"{icon} <b>Workflow run</b> {_repo(event)}:"
        f" <b>{_esc_html(event.workflow_name)}</b>"
    )
    if event.run_number:
        title += f" #{_esc_html(event.run_number)}"
    state = event.conclusion or event.status or event.action
    if state:
        title += f" - <b>{_esc_html(state)}</b>"
    title += _by(event.actor, event.actor_url)

    lines = [title]
    if event.head_branch:
        lines.append(f"branch: <code>{_esc_html(event.head_branch)}</code>")
    lines.append(_link(event.url, "View run"))
    return "\n".join(lines)


HANDLERS: dict[EventKind, Handler] = {
    EventKind.PULL_REQUEST: _summarize_pull_request,
    EventKind.ISSUE: _summarize_issues,
    EventKind.PUSH: _summarize_push,
    EventKind.WORKFLOW_RUN: _summarize_workflow_run,
    EventKind.RELEASE: _summarize_release,
}


def summarize_event(event: Event) -> str:
    """Render ``event`` as Telegram HTML. Unknown events have no summary."""
    handler = HANDLERS.get(event.kind)
    if handler is None:
        raise ValueError(f"no summary for {event.kind.value} events")
    return handler(event)
