"""Jira -> GitHub event router"""

import logging
from typing import Any, Dict, Optional, Tuple

from issuerelay.payloads import JiraCommentEvent, JiraIssueEvent
from issuerelay.payloads.jira import JiraIssue
from issuerelay.services.dispatcher import WebhookDispatcher
from issuerelay.services.errors import TrackerAPIError
from issuerelay.services.loop_prevention import JIRA, prefix_title
from issuerelay.services.outcome import SyncOutcome, SyncResult
from issuerelay.services.reconciliation import TERMINAL_STATUS, SyncDirection

logger = logging.getLogger(__name__)

GitHubTarget = Tuple[str, int]


class JiraEventRouter(WebhookDispatcher):
    """Handles ``jira:issue_*`` and ``comment_*`` deliveries from Jira."""

    system = JIRA

    def build_dispatch_table(self):
        return {
            ("jira", "jira:issue_created"): self.handle_issue_created,
            ("jira", "jira:issue_updated"): self.handle_issue_updated,
            ("jira", "jira:issue_deleted"): self.handle_issue_deleted,
            ("jira", "comment_created"): self.handle_comment_created,
            ("jira", "comment_updated"): self.handle_comment_updated,
            ("jira", "comment_deleted"): self.handle_comment_deleted,
        }

    def event_key(self, event):
        return JIRA, event.action or ""

    def describe(self, event) -> str:
        return event.action or "unknown"

    def lock_key(self, event):
        issue = getattr(event, "issue", None)
        if issue is None:
            return None
        return JIRA, issue.key

    def screen(self, event) -> Optional[SyncResult]:
        markers = self.ctx.markers
        if isinstance(event, JiraIssueEvent) and event.action == "jira:issue_created":
            if markers.is_echo_issue(event.issue.fields.labels, JIRA):
                return self.conflict(event, f"{event.issue.key} was created from GitHub")
        if isinstance(event, JiraCommentEvent) and markers.is_sync_comment(event.comment.body):
            if event.action == "comment_deleted":
                self.ctx.store.delete_comment_link(comment_id_b=event.comment.id)
            return self.conflict(event, f"comment {event.comment.id} is a synced comment")
        return None

    # ==================== helpers ====================

    def _qualify_repository(self, repository: str) -> str:
        if "/" in repository:
            return repository
        owner = self.ctx.github_repository.partition("/")[0]
        return f"{owner}/{repository}" if owner else repository

    def resolve_github_target(self, issue: JiraIssue) -> Optional[GitHubTarget]:
        """GitHub ``(repository, number)`` for a Jira issue: custom fields first, then the link table."""
        ctx = self.ctx
        repository = issue.fields.custom(ctx.jira_field_repository)
        number = issue.fields.custom(ctx.jira_field_issue_number)
        if repository and number not in (None, ""):
            try:
                return self._qualify_repository(str(repository)), int(float(number))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed GitHub issue number {number!r} on {issue.key}")
        link = ctx.store.get_issue_link(issue.key)
        if link:
            return link.target_repository, link.target_issue_number
        return None

    def _status_snapshot(self, status_name: Optional[str]) -> str:
        return TERMINAL_STATUS if status_name == self.ctx.jira_done_status else "open"

    def changelog_snapshots(self, event: JiraIssueEvent) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Build (previous, current) from the changelog; current values come from the issue itself."""
        fields = event.issue.fields
        previous: Dict[str, Any] = {}
        current: Dict[str, Any] = {}
        items = event.changelog.items if event.changelog else []
        for item in items:
            name = item.field.lower()
            if name == "summary":
                previous["title"] = item.from_string
                current["title"] = fields.summary
            elif name == "description":
                previous["body"] = item.from_string or ""
                current["body"] = fields.description_text
            elif name == "labels":
                previous["labels"] = (item.from_string or "").split()
                current["labels"] = list(fields.labels)
            elif name == "assignee":
                previous["assignee"] = item.from_value
                current["assignee"] = fields.assignee.account_id if fields.assignee else None
            elif name == "status":
                previous["status"] = self._status_snapshot(item.from_string)
                current["status"] = self._status_snapshot(item.to_string)

        if not items and fields.status and fields.status.name == self.ctx.jira_done_status:
            previous["status"], current["status"] = "open", TERMINAL_STATUS
        return previous, current

    def apply_to_github(self, target: GitHubTarget, update: Dict[str, Any], result: SyncResult) -> None:
        github = self.ctx.github
        repository, number = target
        if "title" in update:
            result.attempt("title", lambda: self.call(github.update_issue, repository, number, title=update["title"]))
        if "body" in update:
            result.attempt("body", lambda: self.call(github.update_issue, repository, number, body=update["body"]))
        if "labels" in update:
            result.attempt("labels", lambda: self.call(github.replace_labels, repository, number, update["labels"]))
        if "assignee" in update:
            previous = update.get("previous_assignee")
            if update["assignee"] is None and not previous:
                result.warn("previous assignee has no GitHub mapping; unassignment not synced")
            else:
                result.attempt("assignee", lambda: self._reassign(repository, number, previous, update["assignee"]))
        if update.get("close"):
            result.attempt("close", lambda: self.call(github.update_issue, repository, number, state="closed"))

    def _reassign(self, repository: str, number: int, previous: Optional[str], new: Optional[str]) -> None:
        github = self.ctx.github
        if previous and previous != new:
            self.call(github.remove_assignees, repository, number, [previous])
        if new:
            self.call(github.add_assignees, repository, number, [new])

    # ==================== issues ====================

    def handle_issue_created(self, event: JiraIssueEvent) -> SyncResult:
        ctx, issue = self.ctx, event.issue
        fields = issue.fields

        target = self.resolve_github_target(issue)
        if target:
            return self.skip(event, SyncOutcome.NOOP, f"{issue.key} is already linked to {target[0]}#{target[1]}")
        if not ctx.github_repository:
            return self.skip(event, SyncOutcome.UNPROCESSABLE, "no GitHub repository configured")

        result = SyncResult(action=self.describe(event))
        if ctx.policy.labels:
            labels = ctx.reconciler.target_labels(fields.labels, JIRA)
        else:
            labels = [ctx.markers.origin_label(JIRA)]
        body = fields.description_text if ctx.policy.descriptions else ""

        assignees = []
        if ctx.policy.assignees and fields.assignee and fields.assignee.account_id:
            login = ctx.resolver.to_github(fields.assignee.account_id)
            if login:
                assignees.append(login)
            else:
                result.warn(f"assignee '{fields.assignee.account_id}' has no GitHub mapping; created unassigned")

        created = self.call(
            ctx.github.create_issue,
            ctx.github_repository,
            title=prefix_title(issue.key, fields.summary),
            body=body,
            labels=labels,
            assignees=assignees,
        )
        number = int(created["number"])
        result.succeeded.append("create_github_issue")
        logger.info(f"Created GitHub issue {ctx.github_repository}#{number} for Jira {issue.key}")

        ctx.store.save_issue_link(issue.key, ctx.github_repository, number)

        reference = ctx.github_reference_fields(ctx.github_repository, number)
        if reference:
            result.attempt("reference_fields", lambda: self.call(ctx.jira.update_issue, issue.key, reference))
        return result

    def handle_issue_updated(self, event: JiraIssueEvent) -> SyncResult:
        issue = event.issue
        target = self.resolve_github_target(issue)
        if not target:
            return self.skip(event, SyncOutcome.NOOP, f"no GitHub issue linked to {issue.key}")

        previous, current = self.changelog_snapshots(event)
        result = SyncResult(action=self.describe(event))
        rec = self.ctx.reconciler.reconcile(
            previous, current, direction=SyncDirection.JIRA_TO_GITHUB, native_key=issue.key
        )
        for warning in rec.warnings:
            result.warn(warning)
        self.apply_to_github(target, rec.update, result)
        return result

    def handle_issue_deleted(self, event: JiraIssueEvent) -> SyncResult:
        ctx, issue = self.ctx, event.issue
        target = self.resolve_github_target(issue)
        if not target:
            return self.skip(event, SyncOutcome.NOOP, f"no GitHub issue linked to deleted {issue.key}")

        repository, number = target
        result = SyncResult(action=self.describe(event))
        notice = f"The linked Jira issue {issue.key} has been deleted."
        result.attempt(
            "close", lambda: self.call(ctx.github.update_issue, repository, number, state="closed")
        )
        result.attempt(
            "deletion_notice",
            lambda: self.call(ctx.github.create_comment, repository, number, ctx.markers.tag_comment(notice, JIRA)),
        )
        removed = ctx.store.delete_comment_links_for_issue(issue.key)
        if removed:
            logger.info(f"Dropped {removed} comment link(s) of {issue.key}")
        return result

    # ==================== comments ====================

    def _comment_target(self, event: JiraCommentEvent) -> Tuple[Optional[GitHubTarget], Optional[SyncResult]]:
        target = self.resolve_github_target(event.issue)
        if target:
            return target, None
        # Comment payloads usually carry a trimmed issue; fetch the full one.
        data = self.call(self.ctx.jira.get_issue, event.issue.key)
        if data is None:
            return None, self.skip(event, SyncOutcome.NOT_FOUND, f"Jira issue {event.issue.key} not found")
        target = self.resolve_github_target(JiraIssue.model_validate(data))
        if not target:
            return None, self.skip(
                event, SyncOutcome.UNPROCESSABLE, f"no GitHub issue linked to {event.issue.key}"
            )
        return target, None

    def handle_comment_created(self, event: JiraCommentEvent) -> SyncResult:
        ctx, comment = self.ctx, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        if not (comment.body or "").strip():
            return self.skip(event, SyncOutcome.BAD_REQUEST, f"Jira comment {comment.id} has no body")
        existing = ctx.store.get_comment_link(comment_id_b=comment.id)
        if existing:
            return self.skip(
                event, SyncOutcome.NOOP, f"Jira comment {comment.id} is already mirrored as {existing.comment_id_a}"
            )

        target, skipped = self._comment_target(event)
        if skipped:
            return skipped
        repository, number = target

        result = SyncResult(action=self.describe(event))
        created = self.call(
            ctx.github.create_comment, repository, number, ctx.markers.tag_comment(comment.body, JIRA)
        )
        result.succeeded.append("create_github_comment")
        ctx.store.save_comment_link(
            comment_id_a=int(created["id"]),
            comment_id_b=comment.id,
            issue_number_a=number,
            repository_a=repository,
            issue_key_b=event.issue.key,
        )
        logger.info(f"Synced Jira comment {comment.id} to {repository}#{number}")
        return result

    def handle_comment_updated(self, event: JiraCommentEvent) -> SyncResult:
        ctx, comment = self.ctx, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        link = ctx.store.get_comment_link(comment_id_b=comment.id)
        if not link:
            return self.skip(event, SyncOutcome.NOOP, f"no GitHub comment linked to {comment.id}")

        result = SyncResult(action=self.describe(event))
        result.attempt(
            "update_github_comment",
            lambda: self.call(
                ctx.github.update_comment,
                link.repository_a,
                link.comment_id_a,
                ctx.markers.tag_comment(comment.body or "", JIRA),
            ),
        )
        return result

    def _delete_github_comment(self, repository: str, comment_id: int) -> None:
        try:
            self.call(self.ctx.github.delete_comment, repository, comment_id)
        except TrackerAPIError as e:
            if e.status_code != 404:
                raise
            logger.info(f"GitHub comment {comment_id} was already gone")

    def handle_comment_deleted(self, event: JiraCommentEvent) -> SyncResult:
        ctx, comment = self.ctx, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        link = ctx.store.get_comment_link(comment_id_b=comment.id)
        if not link:
            return self.skip(event, SyncOutcome.NOOP, f"no GitHub comment linked to {comment.id}")

        result = SyncResult(action=self.describe(event))
        result.attempt(
            "delete_github_comment", lambda: self._delete_github_comment(link.repository_a, link.comment_id_a)
        )
        if not result.failed:
            ctx.store.delete_comment_link(comment_id_b=comment.id)
        return result
