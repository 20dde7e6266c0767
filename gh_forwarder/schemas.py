"""GitHub webhook payload schemas"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class GhUser(BaseModel):
    """Only the fields used for display are kept; GitHub sends many more."""

    login: Optional[str] = None
    name: Optional[str] = None
    html_url: Optional[str] = None


class GhRepository(BaseModel):
    full_name: str = Field(min_length=1)
    html_url: Optional[str] = None


class GhRef(BaseModel):
    ref: Optional[str] = None


class GhPullRequest(BaseModel):
    number: int
    title: str
    html_url: str
    user: Optional[GhUser] = None
    merged: Optional[bool] = None
    head: Optional[GhRef] = None
    base: Optional[GhRef] = None


class GhIssue(BaseModel):
    number: int
    title: str
    html_url: str
    user: Optional[GhUser] = None


class GhCommit(BaseModel):
    id: str = ""
    message: str = ""
    url: Optional[str] = None


class GhWorkflowRun(BaseModel):
    name: str
    html_url: str
    status: Optional[str] = None
    conclusion: Optional[str] = None
    head_branch: Optional[str] = None
    run_number: Optional[int] = None


class GhRelease(BaseModel):
    tag_name: str
    html_url: str
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False


class _Hook(BaseModel):
    repository: GhRepository
    sender: Optional[GhUser] = None


class PullRequestHook(_Hook):
    action: str = Field(min_length=1)
    pull_request: GhPullRequest


class IssuesHook(_Hook):
    action: str = Field(min_length=1)
    issue: GhIssue


class PushHook(_Hook):
    ref: str = Field(min_length=1)
    pusher: Optional[GhUser] = None
    compare: Optional[str] = None
    commits: list[GhCommit] = Field(default_factory=list)
    deleted: bool = False
    forced: bool = False


class WorkflowRunHook(_Hook):
    action: Optional[str] = None
    workflow_run: GhWorkflowRun


class ReleaseHook(_Hook):
    action: Optional[str] = None
    release: GhRelease
