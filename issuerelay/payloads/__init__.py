"""Webhook payload models"""

from issuerelay.payloads.github import (
    GitHubCommentEvent,
    GitHubIssueEvent,
    parse_github_event,
)
from issuerelay.payloads.jira import JiraCommentEvent, JiraIssueEvent, parse_jira_event
from issuerelay.payloads.common import UnhandledEvent

__all__ = [
    "GitHubIssueEvent",
    "GitHubCommentEvent",
    "JiraIssueEvent",
    "JiraCommentEvent",
    "UnhandledEvent",
    "parse_github_event",
    "parse_jira_event",
]
