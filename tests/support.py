"""Shared fixtures: in-memory mapping store, mock tracker clients, payload builders"""
from unittest.mock import Mock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def make_store():
    from issuerelay.models import Base
    from issuerelay.services.mapping_store import MappingStore

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return MappingStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def make_github():
    github = Mock()
    github.create_issue.return_value = {"number": 42}
    github.create_comment.return_value = {"id": 555}
    github.update_issue.return_value = {}
    return github


def make_jira(status="In Progress"):
    jira = Mock()
    jira.create_issue.return_value = {"key": "PROJ-7"}
    jira.add_comment.return_value = {"id": "10001"}
    jira.get_issue.return_value = {"key": "PROJ-7", "fields": {"status": {"name": status}}}
    jira.find_issue_key_by_github.return_value = None
    return jira


def make_context(static_map=None, **overrides):
    from issuerelay.services.context import SyncContext
    from issuerelay.services.identity import AssigneeResolver
    from issuerelay.services.retry import RetryExecutor

    store = overrides.pop("store", None) or make_store()
    options = dict(
        github=make_github(),
        jira=make_jira(),
        store=store,
        resolver=AssigneeResolver(store, static_map or {}),
        retry=RetryExecutor(3, 1, sleep=lambda _seconds: None, on_retry=None),
        github_repository="acme/widgets",
        jira_project="PROJ",
    )
    options.update(overrides)
    return SyncContext(**options)


def github_issue_payload(
    action, *, number=42, title="Fix crash", body="", labels=(), assignee=None, event_assignee=None, **extra
):
    payload = {
        "action": action,
        "issue": {
            "number": number,
            "title": title,
            "body": body,
            "state": "closed" if action == "closed" else "open",
            "labels": [{"name": name} for name in labels],
            "assignee": {"login": assignee} if assignee else None,
            "assignees": [{"login": assignee}] if assignee else [],
        },
        "repository": {"full_name": "acme/widgets"},
        "sender": {"login": "octocat"},
    }
    if event_assignee:
        payload["assignee"] = {"login": event_assignee}
    payload.update(extra)
    return payload


def github_issue_event(action, **kwargs):
    from issuerelay.payloads import parse_github_event

    return parse_github_event("issues", github_issue_payload(action, **kwargs))


def github_comment_event(action, *, comment_id=900, body="looks good", title="PROJ-7 - Fix crash", **kwargs):
    from issuerelay.payloads import parse_github_event

    payload = github_issue_payload(action, title=title, **kwargs)
    payload["comment"] = {"id": comment_id, "body": body, "user": {"login": "octocat"}}
    return parse_github_event("issue_comment", payload)


def jira_issue_payload(event, *, key="PROJ-7", summary="Fix crash", description="", labels=(), status="To Do",
                       assignee=None, changelog=None, **fields):
    issue_fields = {
        "summary": summary,
        "description": description,
        "labels": list(labels),
        "status": {"name": status},
        "assignee": {"accountId": assignee} if assignee else None,
    }
    issue_fields.update(fields)
    payload = {
        "webhookEvent": event,
        "issue": {"id": "10042", "key": key, "fields": issue_fields},
    }
    if changelog is not None:
        payload["changelog"] = {"items": changelog}
    return payload


def jira_issue_event(event, **kwargs):
    from issuerelay.payloads import parse_jira_event

    return parse_jira_event(jira_issue_payload(event, **kwargs))


def jira_comment_event(event, *, comment_id="10001", body="ship it", key="PROJ-7", **fields):
    from issuerelay.payloads import parse_jira_event

    return parse_jira_event(
        {
            "webhookEvent": event,
            "issue": {"id": "10042", "key": key, "fields": dict(fields)},
            "comment": {"id": comment_id, "body": body, "author": {"accountId": "acc-1"}},
        }
    )
