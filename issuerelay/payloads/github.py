"""GitHub webhook payloads (``issues`` and ``issue_comment`` events)"""
from typing import Any, List, Literal, Optional, Union

from pydantic import Field, ValidationError

from issuerelay.payloads.common import Payload, UnhandledEvent
from issuerelay.services.errors import PayloadError


class GitHubUser(Payload):
    login: str


class GitHubLabel(Payload):
    name: str


class GitHubIssue(Payload):
    number: int
    title: str
    body: Optional[str] = None
    state: str = "open"
    labels: List[GitHubLabel] = Field(default_factory=list)
    assignee: Optional[GitHubUser] = None
    assignees: List[GitHubUser] = Field(default_factory=list)
    user: Optional[GitHubUser] = None
    pull_request: Optional[dict] = None

    @property
    def label_names(self) -> List[str]:
        return [label.name for label in self.labels]


class GitHubRepository(Payload):
    full_name: str


class GitHubComment(Payload):
    id: int
    body: Optional[str] = None
    user: Optional[GitHubUser] = None


class ChangedValue(Payload):
    previous: Optional[str] = Field(default=None, alias="from")


class GitHubChanges(Payload):
    title: Optional[ChangedValue] = None
    body: Optional[ChangedValue] = None


class GitHubIssueEvent(Payload):
    kind: Literal["issues"] = "issues"
    action: str
    issue: GitHubIssue
    repository: GitHubRepository
    sender: Optional[GitHubUser] = None
    label: Optional[GitHubLabel] = None
    assignee: Optional[GitHubUser] = None
    changes: Optional[GitHubChanges] = None


class GitHubCommentEvent(Payload):
    kind: Literal["issue_comment"] = "issue_comment"
    action: str
    issue: GitHubIssue
    comment: GitHubComment
    repository: GitHubRepository
    sender: Optional[GitHubUser] = None


GitHubEvent = Union[GitHubIssueEvent, GitHubCommentEvent, UnhandledEvent]

_EVENT_MODELS = {
    "issues": GitHubIssueEvent,
    "issue_comment": GitHubCommentEvent,
}


def parse_github_event(event_name: Optional[str], payload: Any) -> GitHubEvent:
    """Validate a delivery against the model for its ``X-GitHub-Event`` kind.

    Without the header the kind is inferred from the body (comment events carry
    a ``comment`` object).
    """
    if not isinstance(payload, dict):
        raise PayloadError("GitHub webhook body must be a JSON object")
    if not event_name:
        event_name = "issue_comment" if "comment" in payload else "issues"
    model = _EVENT_MODELS.get(event_name)
    if model is None:
        return UnhandledEvent(kind=event_name, action=payload.get("action"))
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise PayloadError(f"Malformed GitHub '{event_name}' payload: {e}") from e
