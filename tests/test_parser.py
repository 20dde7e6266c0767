"""Tests for webhook payload parsing."""

import pytest

from conftest import (
    encode,
    issue_payload,
    pull_request_payload,
    push_payload,
    release_payload,
    workflow_run_payload,
)

from gh_forwarder.models import (
    EventKind,
    IssueEvent,
    PullRequestEvent,
    PushEvent,
    ReleaseEvent,
    UnknownEvent,
    WorkflowRunEvent,
)
from gh_forwarder.services.parser import MAX_COMMITS, MalformedPayload, parse_event

DEEPLY_NESTED = b"[" * 200000 + b"]" * 200000

SUPPORTED = [
    ("pull_request", pull_request_payload),
    ("issues", issue_payload),
    ("push", push_payload),
    ("workflow_run", workflow_run_payload),
    ("release", release_payload),
]


class TestPullRequest:
    @pytest.mark.parametrize("action", ["opened", "closed", "reopened"])
    def test_fields(self, action):
        event = parse_event("pull_request", encode(pull_request_payload(action)))
        assert isinstance(event, PullRequestEvent)
        assert event.kind is EventKind.PULL_REQUEST
        assert event.repository == "acme/widgets"
        assert event.action == action
        assert event.key == f"pull_request.{action}"
        assert event.number == 42
        assert event.title == "Add sprockets"
        assert event.url == "https://github.com/acme/widgets/pull/42"
        assert event.author == "octocat"
        assert event.actor == "octocat"
        assert event.head_ref == "feature/sprockets"
        assert event.base_ref == "main"
        assert event.merged is False

    def test_merged_flag(self):
        event = parse_event("pull_request", encode(pull_request_payload("closed", merged=True)))
        assert event.merged is True
        assert event.key == "pull_request.closed"

    def test_other_action_is_kept(self):
        event = parse_event("pull_request", encode(pull_request_payload("synchronize")))
        assert event.key == "pull_request.synchronize"

    def test_missing_action_is_malformed(self):
        payload = pull_request_payload()
        del payload["action"]
        with pytest.raises(MalformedPayload):
            parse_event("pull_request", encode(payload))

    def test_missing_title_is_malformed(self):
        payload = pull_request_payload()
        del payload["pull_request"]["title"]
        with pytest.raises(MalformedPayload, match="pull_request.title"):
            parse_event("pull_request", encode(payload))


class TestIssue:
    @pytest.mark.parametrize("action", ["opened", "closed", "reopened"])
    def test_fields(self, action):
        event = parse_event("issues", encode(issue_payload(action)))
        assert isinstance(event, IssueEvent)
        assert event.key == f"issues.{action}"
        assert event.repository == "acme/widgets"
        assert event.number == 7
        assert event.title == "Widgets wobble"
        assert event.url == "https://github.com/acme/widgets/issues/7"
        assert event.author == "hubot"


class TestPush:
    def test_fields(self):
        event = parse_event("push", encode(push_payload(commits=2)))
        assert isinstance(event, PushEvent)
        assert event.key == "push"
        assert event.action is None
        assert event.ref == "refs/heads/main"
        assert event.ref_name == "main"
        assert event.is_tag is False
        assert event.commit_count == 2
        assert event.pusher == "alice"
        assert event.compare_url == "https://github.com/acme/widgets/compare/a...b"
        assert event.commits[0].sha == "0000000"
        assert event.commits[1].message == "commit number 1"

    def test_commit_list_is_capped(self):
        event = parse_event("push", encode(push_payload(commits=MAX_COMMITS + 3)))
        assert event.commit_count == MAX_COMMITS + 3
        assert len(event.commits) == MAX_COMMITS

    def test_tag_push(self):
        event = parse_event("push", encode(push_payload(ref="refs/tags/v1.0", commits=0)))
        assert event.is_tag is True
        assert event.ref_name == "v1.0"
        assert event.commit_count == 0

    def test_pusher_falls_back_to_sender(self):
        payload = push_payload()
        del payload["pusher"]
        event = parse_event("push", encode(payload))
        assert event.pusher == "alice"


class TestWorkflowRun:
    def test_fields(self):
        event = parse_event("workflow_run", encode(workflow_run_payload()))
        assert isinstance(event, WorkflowRunEvent)
        assert event.key == "workflow_run.completed"
        assert event.workflow_name == "CI"
        assert event.conclusion == "failure"
        assert event.status == "completed"
        assert event.url == "https://github.com/acme/widgets/actions/runs/99"
        assert event.head_branch == "main"
        assert event.run_number == 99

    def test_pending_run_has_no_conclusion(self):
        event = parse_event("workflow_run", encode(workflow_run_payload(conclusion=None)))
        assert event.conclusion is None


class TestRelease:
    def test_fields(self):
        event = parse_event("release", encode(release_payload(prerelease=True)))
        assert isinstance(event, ReleaseEvent)
        assert event.key == "release.published"
        assert event.tag_name == "v1.2.0"
        assert event.name == "Sprocket release"
        assert event.url == "https://github.com/acme/widgets/releases/tag/v1.2.0"
        assert event.prerelease is True
        assert event.draft is False


class TestMalformedAndUnsupported:
    @pytest.mark.parametrize("event_type,factory", SUPPORTED)
    def test_missing_repository_is_malformed(self, event_type, factory):
        payload = factory()
        del payload["repository"]
        with pytest.raises(MalformedPayload, match="repository"):
            parse_event(event_type, encode(payload))

    @pytest.mark.parametrize("event_type,factory", SUPPORTED)
    def test_empty_full_name_is_malformed(self, event_type, factory):
        payload = factory()
        payload["repository"]["full_name"] = ""
        with pytest.raises(MalformedPayload):
            parse_event(event_type, encode(payload))

    @pytest.mark.parametrize(
        "body", [b"", b"not json", b"[1, 2]", b'"text"', b"\xff\xfe\x00", DEEPLY_NESTED]
    )
    def test_undecodable_body_is_malformed(self, body):
        with pytest.raises(MalformedPayload):
            parse_event("push", body)

    @pytest.mark.parametrize("event_type", ["deployment", "ping", "star", "", None])
    def test_unsupported_type_is_unknown(self, event_type):
        event = parse_event(event_type, b"not even json")
        assert isinstance(event, UnknownEvent)
        assert event.kind is EventKind.UNKNOWN

    def test_header_is_case_insensitive(self):
        event = parse_event(" Push ", encode(push_payload()))
        assert isinstance(event, PushEvent)


class TestLinks:
    def test_sender_and_repository_urls(self):
        event = parse_event("pull_request", encode(pull_request_payload()))
        assert event.actor_url == "https://github.com/octocat"
        assert event.repository_url == "https://github.com/acme/widgets"

    @pytest.mark.parametrize("event_type,factory", SUPPORTED[1:])
    def test_urls_default_to_empty(self, event_type, factory):
        event = parse_event(event_type, encode(factory()))
        assert event.actor_url == ""
        assert event.repository_url == ""
