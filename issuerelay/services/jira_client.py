"""Jira REST (v2) client"""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from issuerelay.services.errors import TrackerAPIError
from issuerelay.services.http_client import TrackerHTTPClient

logger = logging.getLogger(__name__)

_CUSTOM_FIELD_RE = re.compile(r"^customfield_(\d+)$")


def jql_field(field_id: str) -> str:
    """``customfield_10050`` -> ``cf[10050]``; other names are quoted."""
    m = _CUSTOM_FIELD_RE.match(field_id)
    if m:
        return f"cf[{m.group(1)}]"
    return f'"{field_id}"'


class JiraClient(TrackerHTTPClient):
    """Issue, comment, transition and search calls against one Jira site."""

    system = "jira"

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        *,
        project: str,
        issue_type_id: str = "10002",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(
            base_url,
            headers={"Accept": "application/json"},
            auth=(email, api_token),
            transport=transport,
        )
        self.project = project
        self.issue_type_id = issue_type_id

    def create_issue(
        self,
        *,
        summary: str,
        description: str = "",
        labels: Optional[List[str]] = None,
        assignee_account_id: Optional[str] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "project": {"key": self.project},
            "summary": summary,
            "description": description or "",
            "issuetype": {"id": self.issue_type_id},
            "labels": labels or [],
        }
        if assignee_account_id:
            fields["assignee"] = {"accountId": assignee_account_id}
        fields.update(extra_fields or {})
        created = self._json(self._request("POST", "/rest/api/2/issue", json={"fields": fields}))
        logger.info(f"Created Jira issue {created.get('key')}")
        return created

    def update_issue(self, issue_key: str, fields: Dict[str, Any]) -> None:
        self._request("PUT", f"/rest/api/2/issue/{issue_key}", json={"fields": fields})
        logger.info(f"Updated Jira issue {issue_key}: {sorted(fields)}")

    def get_issue(self, issue_key: str) -> Optional[Dict[str, Any]]:
        """Issue JSON, or ``None`` when Jira answers 404."""
        try:
            return self._json(self._request("GET", f"/rest/api/2/issue/{issue_key}"))
        except TrackerAPIError as e:
            if e.status_code == 404:
                return None
            raise

    def transition_issue(self, issue_key: str, transition_id: str) -> None:
        self._request(
            "POST",
            f"/rest/api/2/issue/{issue_key}/transitions",
            json={"transition": {"id": str(transition_id)}},
        )
        logger.info(f"Transitioned Jira issue {issue_key} (transition {transition_id})")

    def add_comment(self, issue_key: str, body: str) -> Dict[str, Any]:
        comment = self._json(
            self._request("POST", f"/rest/api/2/issue/{issue_key}/comment", json={"body": body})
        )
        logger.info(f"Added comment {comment.get('id')} to Jira issue {issue_key}")
        return comment

    def update_comment(self, issue_key: str, comment_id: str, body: str) -> Dict[str, Any]:
        return self._json(
            self._request(
                "PUT", f"/rest/api/2/issue/{issue_key}/comment/{comment_id}", json={"body": body}
            )
        )

    def delete_comment(self, issue_key: str, comment_id: str) -> None:
        self._request("DELETE", f"/rest/api/2/issue/{issue_key}/comment/{comment_id}")
        logger.info(f"Deleted Jira comment {comment_id} from {issue_key}")

    def find_issue_key_by_github(
        self,
        *,
        repository: str,
        issue_number: int,
        repository_field: str,
        issue_number_field: str,
    ) -> Optional[str]:
        """Search the project for the issue whose GitHub custom fields point at ``repository#issue_number``."""
        jql = (
            f'project = "{self.project}" AND {jql_field(repository_field)} ~ "{repository}" '
            f"AND {jql_field(issue_number_field)} = {int(issue_number)}"
        )
        results = self._json(
            self._request("GET", "/rest/api/2/search", params={"jql": jql, "maxResults": 1, "fields": "key"})
        )
        issues = results.get("issues") or []
        if issues:
            return issues[0].get("key")
        return None
