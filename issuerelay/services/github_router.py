"""GitHub -> Jira event router"""

import logging
from typing import Any, Dict, Optional

from issuerelay.payloads import GitHubCommentEvent, GitHubIssueEvent
from issuerelay.services.dispatcher import WebhookDispatcher
from issuerelay.services.errors import TrackerAPIError
from issuerelay.services.loop_prevention import GITHUB, extract_native_key, prefix_title, title_key
from issuerelay.services.outcome import SyncOutcome, SyncResult
from issuerelay.services.reconciliation import TERMINAL_STATUS, SyncDirection

logger = logging.getLogger(__name__)


class GitHubEventRouter(WebhookDispatcher):
    """Handles ``issues`` and ``issue_comment`` deliveries from GitHub."""

    system = GITHUB

    def build_dispatch_table(self):
        return {
            ("issues", "opened"): self.handle_opened,
            ("issues", "edited"): self.handle_edited,
            ("issues", "closed"): self.handle_closed,
            ("issues", "deleted"): self.handle_deleted,
            ("issues", "labeled"): self.handle_labels_changed,
            ("issues", "unlabeled"): self.handle_labels_changed,
            ("issues", "assigned"): self.handle_assignment_changed,
            ("issues", "unassigned"): self.handle_assignment_changed,
            ("issue_comment", "created"): self.handle_comment_created,
            ("issue_comment", "edited"): self.handle_comment_edited,
            ("issue_comment", "deleted"): self.handle_comment_deleted,
        }

    def event_key(self, event):
        return event.kind, event.action or ""

    def lock_key(self, event):
        issue = getattr(event, "issue", None)
        if issue is None:
            return None
        return GITHUB, f"{event.repository.full_name}#{issue.number}"

    def screen(self, event) -> Optional[SyncResult]:
        markers = self.ctx.markers
        if isinstance(event, GitHubIssueEvent) and event.action == "opened":
            if markers.is_echo_issue(event.issue.label_names, GITHUB):
                return self.conflict(event, f"issue #{event.issue.number} was created from Jira")
        if isinstance(event, GitHubCommentEvent) and markers.is_sync_comment(event.comment.body):
            if event.action == "deleted":
                self.ctx.store.delete_comment_link(comment_id_a=event.comment.id)
            return self.conflict(event, f"comment {event.comment.id} is a synced comment")
        return None

    # ==================== helpers ====================

    def key_from_title(self, repository: str, issue) -> Optional[str]:
        """Jira key in the title, trusted only for our project or when a link row agrees."""
        key = title_key(issue.title, self.ctx.jira_project)
        if key:
            return key
        key = extract_native_key(issue.title)
        if not key:
            return None
        link = self.ctx.store.get_issue_link(key)
        if link and link.target_repository == repository and link.target_issue_number == issue.number:
            return key
        logger.debug(f"Title of {repository}#{issue.number} starts with {key} but it is not a linked key")
        return None

    def resolve_issue_key(self, repository: str, issue) -> Optional[str]:
        """Jira key for a GitHub issue: title prefix, then the link table, then a Jira search."""
        key = self.key_from_title(repository, issue)
        if key:
            return key
        link = self.ctx.store.find_issue_link(repository, issue.number)
        if link:
            logger.info(f"Used stored link {link.source_key} for {repository}#{issue.number}")
            return link.source_key
        if self.ctx.has_github_reference_fields:
            logger.info(f"Jira key not in title of {repository}#{issue.number}, searching by custom fields")
            return self.call(
                self.ctx.jira.find_issue_key_by_github,
                repository=repository,
                issue_number=issue.number,
                repository_field=self.ctx.jira_field_repository,
                issue_number_field=self.ctx.jira_field_issue_number,
            )
        return None

    def close_jira_issue(self, issue_key: str) -> None:
        jira_issue = self.call(self.ctx.jira.get_issue, issue_key)
        if jira_issue is None:
            raise TrackerAPIError(404, f"Jira issue {issue_key} not found", system="jira")
        status = ((jira_issue.get("fields") or {}).get("status") or {}).get("name")
        if status == self.ctx.jira_done_status:
            logger.info(f"Jira issue {issue_key} is already {status}")
            return
        self.call(self.ctx.jira.transition_issue, issue_key, self.ctx.jira_done_transition_id)

    def apply_to_jira(self, issue_key: str, update: Dict[str, Any], result: SyncResult) -> None:
        """One remote call per field so a failing field does not block the rest."""
        jira = self.ctx.jira
        if "title" in update:
            result.attempt("summary", lambda: self.call(jira.update_issue, issue_key, {"summary": update["title"]}))
        if "body" in update:
            result.attempt(
                "description", lambda: self.call(jira.update_issue, issue_key, {"description": update["body"]})
            )
        if "labels" in update:
            result.attempt("labels", lambda: self.call(jira.update_issue, issue_key, {"labels": update["labels"]}))
        if "assignee" in update:
            value = {"accountId": update["assignee"]} if update["assignee"] else None
            result.attempt("assignee", lambda: self.call(jira.update_issue, issue_key, {"assignee": value}))
        if update.get("close"):
            result.attempt("close", lambda: self.close_jira_issue(issue_key))

    def sync_fields(
        self,
        event: GitHubIssueEvent,
        previous: Dict[str, Any],
        current: Dict[str, Any],
        *,
        missing_key: SyncOutcome = SyncOutcome.NOOP,
    ) -> SyncResult:
        repository, issue = event.repository.full_name, event.issue
        issue_key = self.resolve_issue_key(repository, issue)
        if not issue_key:
            return self.skip(event, missing_key, f"no Jira issue linked to {repository}#{issue.number}")

        result = SyncResult(action=self.describe(event))
        rec = self.ctx.reconciler.reconcile(
            previous, current, direction=SyncDirection.GITHUB_TO_JIRA, native_key=issue_key
        )
        for warning in rec.warnings:
            result.warn(warning)
        if rec.is_empty():
            logger.debug(f"No Jira updates needed for {repository}#{issue.number}")
        self.apply_to_jira(issue_key, rec.update, result)
        return result

    # ==================== issues ====================

    def handle_opened(self, event: GitHubIssueEvent) -> SyncResult:
        ctx, issue = self.ctx, event.issue
        repository = event.repository.full_name

        existing = self.key_from_title(repository, issue)
        if not existing:
            link = ctx.store.find_issue_link(repository, issue.number)
            existing = link.source_key if link else None
        if existing:
            return self.skip(event, SyncOutcome.NOOP, f"{repository}#{issue.number} is already linked to {existing}")

        result = SyncResult(action=self.describe(event))
        if ctx.policy.labels:
            labels = ctx.reconciler.target_labels(issue.label_names, GITHUB)
        else:
            labels = [ctx.markers.origin_label(GITHUB)]
        description = (issue.body or "") if ctx.policy.descriptions else ""

        assignee_id = None
        if ctx.policy.assignees and issue.assignee:
            assignee_id = ctx.resolver.to_jira(issue.assignee.login)
            if not assignee_id:
                result.warn(f"assignee '{issue.assignee.login}' has no Jira mapping; created unassigned")

        created = self.call(
            ctx.jira.create_issue,
            summary=issue.title,
            description=description,
            labels=labels,
            assignee_account_id=assignee_id,
            extra_fields=ctx.github_reference_fields(repository, issue.number),
        )
        issue_key = created["key"]
        result.succeeded.append("create_jira_issue")
        logger.info(f"Created Jira issue {issue_key} for GitHub {repository}#{issue.number}")

        ctx.store.save_issue_link(issue_key, repository, issue.number)

        result.attempt(
            "prefix_title",
            lambda: self.call(
                ctx.github.update_issue, repository, issue.number, title=prefix_title(issue_key, issue.title)
            ),
        )
        return result

    def handle_edited(self, event: GitHubIssueEvent) -> SyncResult:
        issue, changes = event.issue, event.changes
        current = {"title": issue.title, "body": issue.body or ""}
        previous = dict(current)
        if changes and changes.title is not None:
            previous["title"] = changes.title.previous
        if changes and changes.body is not None:
            previous["body"] = changes.body.previous or ""
        return self.sync_fields(event, previous, current)

    def handle_labels_changed(self, event: GitHubIssueEvent) -> SyncResult:
        labels = event.issue.label_names
        changed = event.label.name if event.label else None
        if event.action == "labeled":
            previous_labels = [label for label in labels if label != changed]
        else:
            previous_labels = labels + ([changed] if changed else [])
        return self.sync_fields(event, {"labels": previous_labels}, {"labels": labels})

    def handle_assignment_changed(self, event: GitHubIssueEvent) -> SyncResult:
        changed = event.assignee.login if event.assignee else None
        if event.action == "assigned":
            previous, current = {"assignee": None}, {"assignee": changed}
        else:
            remaining = [a.login for a in event.issue.assignees if a.login != changed]
            previous = {"assignee": changed}
            current = {"assignee": remaining[0] if remaining else None}
        return self.sync_fields(event, previous, current)

    def handle_closed(self, event: GitHubIssueEvent) -> SyncResult:
        return self.sync_fields(
            event,
            {"status": "open"},
            {"status": TERMINAL_STATUS},
            missing_key=SyncOutcome.UNPROCESSABLE,
        )

    def handle_deleted(self, event: GitHubIssueEvent) -> SyncResult:
        ctx = self.ctx
        repository, issue = event.repository.full_name, event.issue
        issue_key = self.resolve_issue_key(repository, issue)
        if not issue_key:
            return self.skip(event, SyncOutcome.NOOP, f"no Jira issue linked to deleted {repository}#{issue.number}")

        result = SyncResult(action=self.describe(event))
        notice = f"The linked GitHub issue {repository}#{issue.number} has been deleted."
        result.attempt("close", lambda: self.close_jira_issue(issue_key))
        result.attempt(
            "deletion_notice",
            lambda: self.call(ctx.jira.add_comment, issue_key, ctx.markers.tag_comment(notice, GITHUB)),
        )
        removed = ctx.store.delete_comment_links_for_issue(issue_key)
        if removed:
            logger.info(f"Dropped {removed} comment link(s) of {issue_key}")
        return result

    # ==================== comments ====================

    def handle_comment_created(self, event: GitHubCommentEvent) -> SyncResult:
        ctx = self.ctx
        repository, issue, comment = event.repository.full_name, event.issue, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        if issue.pull_request:
            return self.skip(event, SyncOutcome.NOOP, "pull request comment")
        existing = ctx.store.get_comment_link(comment_id_a=comment.id)
        if existing:
            return self.skip(
                event, SyncOutcome.NOOP, f"comment {comment.id} is already mirrored as {existing.comment_id_b}"
            )

        issue_key = self.resolve_issue_key(repository, issue)
        if not issue_key:
            return self.skip(
                event, SyncOutcome.UNPROCESSABLE, f"no Jira issue linked to {repository}#{issue.number}"
            )

        result = SyncResult(action=self.describe(event))
        created = self.call(ctx.jira.add_comment, issue_key, ctx.markers.tag_comment(comment.body, GITHUB))
        result.succeeded.append("create_jira_comment")
        ctx.store.save_comment_link(
            comment_id_a=comment.id,
            comment_id_b=str(created["id"]),
            issue_number_a=issue.number,
            repository_a=repository,
            issue_key_b=issue_key,
        )
        logger.info(f"Synced comment {comment.id} to Jira issue {issue_key}")
        return result

    def handle_comment_edited(self, event: GitHubCommentEvent) -> SyncResult:
        ctx, comment = self.ctx, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        link = ctx.store.get_comment_link(comment_id_a=comment.id)
        if not link:
            return self.skip(event, SyncOutcome.NOOP, f"no Jira comment linked to {comment.id}")

        result = SyncResult(action=self.describe(event))
        result.attempt(
            "update_jira_comment",
            lambda: self.call(
                ctx.jira.update_comment,
                link.issue_key_b,
                link.comment_id_b,
                ctx.markers.tag_comment(comment.body, GITHUB),
            ),
        )
        return result

    def _delete_jira_comment(self, issue_key: str, comment_id: str) -> None:
        try:
            self.call(self.ctx.jira.delete_comment, issue_key, comment_id)
        except TrackerAPIError as e:
            if e.status_code != 404:
                raise
            logger.info(f"Jira comment {comment_id} was already gone")

    def handle_comment_deleted(self, event: GitHubCommentEvent) -> SyncResult:
        ctx, comment = self.ctx, event.comment
        if not ctx.policy.comments:
            return self.skip(event, SyncOutcome.NOOP, "comment sync disabled")
        link = ctx.store.get_comment_link(comment_id_a=comment.id)
        if not link:
            return self.skip(event, SyncOutcome.NOOP, f"no Jira comment linked to {comment.id}")

        result = SyncResult(action=self.describe(event))
        result.attempt(
            "delete_jira_comment", lambda: self._delete_jira_comment(link.issue_key_b, link.comment_id_b)
        )
        if not result.failed:
            ctx.store.delete_comment_link(comment_id_a=comment.id)
        return result
