"""Jira webhook payloads (issue and comment events)"""
from typing import Any, List, Optional, Union

from pydantic import ConfigDict, Field, ValidationError, field_validator

from issuerelay.payloads.common import Payload, UnhandledEvent
from issuerelay.services.errors import PayloadError

ISSUE_EVENTS = ("jira:issue_created", "jira:issue_updated", "jira:issue_deleted")
COMMENT_EVENTS = ("comment_created", "comment_updated", "comment_deleted")


class JiraStatus(Payload):
    name: Optional[str] = None


class JiraUser(Payload):
    account_id: Optional[str] = Field(default=None, alias="accountId")
    display_name: Optional[str] = Field(default=None, alias="displayName")


class JiraIssueFields(Payload):
    # Custom fields (customfield_NNNNN) are kept as extras.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: str = ""
    description: Optional[Any] = None
    labels: List[str] = Field(default_factory=list)
    status: Optional[JiraStatus] = None
    assignee: Optional[JiraUser] = None

    @field_validator("labels", mode="before")
    @classmethod
    def _labels_default(cls, value):
        return value or []

    @property
    def description_text(self) -> str:
        # Only plain-text (API v2) descriptions are mirrored.
        return self.description if isinstance(self.description, str) else ""

    def custom(self, field_id: Optional[str]) -> Any:
        if not field_id:
            return None
        return (self.model_extra or {}).get(field_id)


class JiraIssue(Payload):
    id: Optional[str] = None
    key: str
    fields: JiraIssueFields = Field(default_factory=JiraIssueFields)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return None if value is None else str(value)


class JiraChangelogItem(Payload):
    field: str
    from_value: Optional[str] = Field(default=None, alias="from")
    from_string: Optional[str] = Field(default=None, alias="fromString")
    to_value: Optional[str] = Field(default=None, alias="to")
    to_string: Optional[str] = Field(default=None, alias="toString")


class JiraChangelog(Payload):
    items: List[JiraChangelogItem] = Field(default_factory=list)


class JiraComment(Payload):
    id: str
    body: Optional[str] = None
    author: Optional[JiraUser] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return None if value is None else str(value)


class JiraIssueEvent(Payload):
    webhook_event: str = Field(alias="webhookEvent")
    issue: JiraIssue
    changelog: Optional[JiraChangelog] = None
    user: Optional[JiraUser] = None

    @property
    def action(self) -> str:
        return self.webhook_event


class JiraCommentEvent(Payload):
    webhook_event: str = Field(alias="webhookEvent")
    issue: JiraIssue
    comment: JiraComment

    @property
    def action(self) -> str:
        return self.webhook_event


JiraEvent = Union[JiraIssueEvent, JiraCommentEvent, UnhandledEvent]


def parse_jira_event(payload: Any) -> JiraEvent:
    if not isinstance(payload, dict):
        raise PayloadError("Jira webhook body must be a JSON object")
    event_name = payload.get("webhookEvent")
    if not event_name:
        raise PayloadError("Jira webhook body has no webhookEvent")
    if event_name in ISSUE_EVENTS:
        model = JiraIssueEvent
    elif event_name in COMMENT_EVENTS:
        model = JiraCommentEvent
    else:
        return UnhandledEvent(kind="jira", action=event_name)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise PayloadError(f"Malformed Jira '{event_name}' payload: {e}") from e
