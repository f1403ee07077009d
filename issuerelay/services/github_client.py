"""GitHub REST client"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from issuerelay.services.http_client import TrackerHTTPClient

logger = logging.getLogger(__name__)


class GitHubClient(TrackerHTTPClient):
    """Issue, comment, label and assignee calls against one GitHub API host.

    ``repository`` arguments are ``owner/name``.
    """

    system = "github"

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(
            api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            transport=transport,
        )

    def create_issue(
        self,
        repository: str,
        *,
        title: str,
        body: str = "",
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "body": body or ""}
        if labels:
            payload["labels"] = labels
        if assignees:
            payload["assignees"] = assignees
        issue = self._json(self._request("POST", f"/repos/{repository}/issues", json=payload))
        logger.info(f"Created GitHub issue {repository}#{issue.get('number')}")
        return issue

    def update_issue(self, repository: str, issue_number: int, **fields: Any) -> Dict[str, Any]:
        """PATCH title / body / state; ``None`` values are not sent."""
        payload = {k: v for k, v in fields.items() if v is not None}
        issue = self._json(
            self._request("PATCH", f"/repos/{repository}/issues/{int(issue_number)}", json=payload)
        )
        logger.info(f"Updated GitHub issue {repository}#{issue_number}: {sorted(payload)}")
        return issue

    def replace_labels(self, repository: str, issue_number: int, labels: List[str]) -> List[Any]:
        return self._json(
            self._request(
                "PUT",
                f"/repos/{repository}/issues/{int(issue_number)}/labels",
                json={"labels": labels},
            )
        )

    def add_assignees(self, repository: str, issue_number: int, assignees: List[str]) -> Dict[str, Any]:
        return self._json(
            self._request(
                "POST",
                f"/repos/{repository}/issues/{int(issue_number)}/assignees",
                json={"assignees": assignees},
            )
        )

    def remove_assignees(self, repository: str, issue_number: int, assignees: List[str]) -> Dict[str, Any]:
        return self._json(
            self._request(
                "DELETE",
                f"/repos/{repository}/issues/{int(issue_number)}/assignees",
                json={"assignees": assignees},
            )
        )

    def create_comment(self, repository: str, issue_number: int, body: str) -> Dict[str, Any]:
        comment = self._json(
            self._request(
                "POST",
                f"/repos/{repository}/issues/{int(issue_number)}/comments",
                json={"body": body},
            )
        )
        logger.info(f"Created comment {comment.get('id')} on GitHub issue {repository}#{issue_number}")
        return comment

    def update_comment(self, repository: str, comment_id: int, body: str) -> Dict[str, Any]:
        return self._json(
            self._request(
                "PATCH", f"/repos/{repository}/issues/comments/{int(comment_id)}", json={"body": body}
            )
        )

    def delete_comment(self, repository: str, comment_id: int) -> None:
        self._request("DELETE", f"/repos/{repository}/issues/comments/{int(comment_id)}")
        logger.info(f"Deleted GitHub comment {comment_id} in {repository}")
