import unittest

from support import jira_comment_event, jira_issue_event, make_context

REFERENCE_FIELDS = dict(jira_field_repository="customfield_10050", jira_field_issue_number="customfield_10051")


def _router(**kwargs):
    from issuerelay.services.jira_router import JiraEventRouter

    ctx = make_context(**kwargs)
    return JiraEventRouter(ctx), ctx


def _linked_router(**kwargs):
    router, ctx = _router(**kwargs)
    ctx.store.save_issue_link("PROJ-7", "acme/widgets", 42)
    return router, ctx


class JiraIssueCreatedTests(unittest.TestCase):
    def test_created_opens_github_issue_and_links(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _router(static_map={"octocat": "acc-1"})
        event = jira_issue_event(
            "jira:issue_created", summary="Fix crash", description="boom", labels=["bug"], assignee="acc-1"
        )

        result = router.dispatch(event)

        self.assertEqual(result.outcome, SyncOutcome.SUCCESS)
        ctx.github.create_issue.assert_called_once_with(
            "acme/widgets",
            title="PROJ-7 - Fix crash",
            body="boom",
            labels=["bug", "source:jira"],
            assignees=["octocat"],
        )
        link = ctx.store.get_issue_link("PROJ-7")
        self.assertEqual((link.target_repository, link.target_issue_number), ("acme/widgets", 42))
        ctx.jira.update_issue.assert_not_called()

    def test_created_writes_reference_fields_back(self):
        router, ctx = _router(**REFERENCE_FIELDS)
        router.dispatch(jira_issue_event("jira:issue_created"))

        ctx.jira.update_issue.assert_called_once_with(
            "PROJ-7", {"customfield_10050": "acme/widgets", "customfield_10051": 42}
        )

    def test_echo_of_github_created_issue_is_a_conflict(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _router()
        result = router.dispatch(jira_issue_event("jira:issue_created", labels=["source:github"]))

        self.assertEqual(result.outcome, SyncOutcome.CONFLICT)
        ctx.github.create_issue.assert_not_called()

    def test_already_linked_is_a_noop(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        self.assertEqual(router.dispatch(jira_issue_event("jira:issue_created")).outcome, SyncOutcome.NOOP)
        ctx.github.create_issue.assert_not_called()

    def test_no_target_repository_is_unprocessable(self):
        from issuerelay.services.outcome import SyncOutcome

        router, _ = _router(github_repository="")
        self.assertEqual(
            router.dispatch(jira_issue_event("jira:issue_created")).outcome, SyncOutcome.UNPROCESSABLE
        )


class JiraIssueUpdatedTests(unittest.TestCase):
    def test_summary_change_updates_prefixed_title(self):
        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated",
            summary="Fix crash on start",
            changelog=[{"field": "summary", "fromString": "Fix crash", "toString": "Fix crash on start"}],
        )

        router.dispatch(event)

        ctx.github.update_issue.assert_called_once_with("acme/widgets", 42, title="PROJ-7 - Fix crash on start")

    def test_done_status_closes_github_issue(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated",
            status="Done",
            changelog=[{"field": "status", "fromString": "In Progress", "toString": "Done"}],
        )

        result = router.dispatch(event)

        self.assertEqual(result.outcome, SyncOutcome.SUCCESS)
        ctx.github.update_issue.assert_called_once_with("acme/widgets", 42, state="closed")

    def test_non_terminal_status_change_is_a_noop(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated",
            status="In Progress",
            changelog=[{"field": "status", "fromString": "To Do", "toString": "In Progress"}],
        )

        self.assertEqual(router.dispatch(event).outcome, SyncOutcome.NOOP)
        ctx.github.update_issue.assert_not_called()

    def test_label_change_replaces_github_labels(self):
        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated",
            labels=["bug", "ui"],
            changelog=[{"field": "labels", "fromString": "bug", "toString": "bug ui"}],
        )

        router.dispatch(event)

        ctx.github.replace_labels.assert_called_once_with("acme/widgets", 42, ["bug", "ui", "source:jira"])

    def test_label_change_on_issue_created_from_github_adds_no_control_label(self):
        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated",
            labels=["bug", "ui", "source:github"],
            changelog=[{"field": "labels", "fromString": "bug source:github", "toString": "bug source:github ui"}],
        )

        router.dispatch(event)

        ctx.github.replace_labels.assert_called_once_with("acme/widgets", 42, ["bug", "ui"])

    def test_reassignment_swaps_github_assignees(self):
        router, ctx = _linked_router(static_map={"octocat": "acc-1", "hubot": "acc-2"})
        event = jira_issue_event(
            "jira:issue_updated",
            assignee="acc-2",
            changelog=[{"field": "assignee", "from": "acc-1", "to": "acc-2"}],
        )

        router.dispatch(event)

        ctx.github.remove_assignees.assert_called_once_with("acme/widgets", 42, ["octocat"])
        ctx.github.add_assignees.assert_called_once_with("acme/widgets", 42, ["hubot"])

    def test_unassign_from_unknown_user_is_a_warning(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        event = jira_issue_event(
            "jira:issue_updated", changelog=[{"field": "assignee", "from": "acc-9", "to": None}]
        )

        result = router.dispatch(event)

        self.assertEqual(result.outcome, SyncOutcome.PARTIAL)
        self.assertEqual(len(result.warnings), 1)
        ctx.github.remove_assignees.assert_not_called()

    def test_target_from_reference_fields_adds_owner(self):
        router, ctx = _router(**REFERENCE_FIELDS)
        event = jira_issue_event(
            "jira:issue_updated",
            summary="New",
            changelog=[{"field": "summary", "fromString": "Old", "toString": "New"}],
            customfield_10050="widgets",
            customfield_10051=17.0,
        )

        router.dispatch(event)

        ctx.github.update_issue.assert_called_once_with("acme/widgets", 17, title="PROJ-7 - New")

    def test_unlinked_issue_is_a_noop(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _router()
        event = jira_issue_event(
            "jira:issue_updated", changelog=[{"field": "summary", "fromString": "a", "toString": "b"}]
        )
        self.assertEqual(router.dispatch(event).outcome, SyncOutcome.NOOP)
        self.assertEqual(ctx.github.mock_calls, [])

    def test_github_failure_on_every_call_propagates(self):
        from issuerelay.services.errors import TrackerAPIError

        router, ctx = _linked_router()
        ctx.github.update_issue.side_effect = TrackerAPIError(502, "bad gateway", system="github")
        event = jira_issue_event(
            "jira:issue_updated",
            summary="b",
            changelog=[{"field": "summary", "fromString": "a", "toString": "b"}],
        )

        with self.assertRaises(TrackerAPIError):
            router.dispatch(event)
        self.assertEqual(ctx.github.update_issue.call_count, 3)


class JiraIssueDeletedTests(unittest.TestCase):
    def test_deleted_closes_github_issue_and_drops_comment_links(self):
        router, ctx = _linked_router()
        ctx.store.save_comment_link(
            comment_id_a=555, comment_id_b="10001", issue_number_a=42, repository_a="acme/widgets", issue_key_b="PROJ-7"
        )

        router.dispatch(jira_issue_event("jira:issue_deleted"))

        ctx.github.update_issue.assert_called_once_with("acme/widgets", 42, state="closed")
        repository, number, body = ctx.github.create_comment.call_args.args
        self.assertEqual((repository, number), ("acme/widgets", 42))
        self.assertTrue(body.endswith("comment from jira"))
        self.assertEqual(ctx.store.list_comment_links("PROJ-7"), [])


class JiraCommentTests(unittest.TestCase):
    def test_comment_created_is_mirrored_and_linked(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        result = router.dispatch(jira_comment_event("comment_created", comment_id="10001", body="ship it"))

        self.assertEqual(result.outcome, SyncOutcome.SUCCESS)
        ctx.github.create_comment.assert_called_once_with("acme/widgets", 42, "ship it\n\ncomment from jira")
        link = ctx.store.get_comment_link(comment_id_b="10001")
        self.assertEqual((link.comment_id_a, link.issue_key_b), (555, "PROJ-7"))

    def test_redelivered_comment_is_mirrored_once(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        router.dispatch(jira_comment_event("comment_created", comment_id="10001"))
        result = router.dispatch(jira_comment_event("comment_created", comment_id="10001"))

        self.assertEqual(result.outcome, SyncOutcome.NOOP)
        ctx.github.create_comment.assert_called_once()
        self.assertEqual(len(ctx.store.list_comment_links("PROJ-7")), 1)

    def test_empty_comment_is_rejected(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        for body in (None, "", "   \n"):
            result = router.dispatch(jira_comment_event("comment_created", body=body))

            self.assertEqual(result.outcome, SyncOutcome.BAD_REQUEST)
            self.assertEqual(result.status_code, 400)
        ctx.github.create_comment.assert_not_called()
        self.assertEqual(ctx.store.list_comment_links(), [])

    def test_synced_comment_is_a_conflict(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        result = router.dispatch(jira_comment_event("comment_created", body="looks good\n\ncomment from github"))

        self.assertEqual(result.outcome, SyncOutcome.CONFLICT)
        self.assertEqual(ctx.github.mock_calls, [])

    def test_target_from_fetched_issue(self):
        router, ctx = _router(**REFERENCE_FIELDS)
        ctx.jira.get_issue.return_value = {
            "key": "PROJ-7",
            "fields": {"customfield_10050": "acme/widgets", "customfield_10051": 8},
        }

        router.dispatch(jira_comment_event("comment_created"))

        ctx.jira.get_issue.assert_called_once_with("PROJ-7")
        self.assertEqual(ctx.github.create_comment.call_args.args[:2], ("acme/widgets", 8))

    def test_missing_jira_issue_is_not_found(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _router()
        ctx.jira.get_issue.return_value = None

        result = router.dispatch(jira_comment_event("comment_created"))

        self.assertEqual(result.outcome, SyncOutcome.NOT_FOUND)
        self.assertEqual(result.status_code, 404)

    def test_issue_without_reference_is_unprocessable(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _router()
        result = router.dispatch(jira_comment_event("comment_created"))

        self.assertEqual(result.outcome, SyncOutcome.UNPROCESSABLE)
        ctx.github.create_comment.assert_not_called()

    def test_update_and_delete_follow_the_link(self):
        router, ctx = _linked_router()
        ctx.store.save_comment_link(
            comment_id_a=555, comment_id_b="10001", issue_number_a=42, repository_a="acme/widgets", issue_key_b="PROJ-7"
        )

        router.dispatch(jira_comment_event("comment_updated", comment_id="10001", body="edited"))
        ctx.github.update_comment.assert_called_once_with("acme/widgets", 555, "edited\n\ncomment from jira")

        router.dispatch(jira_comment_event("comment_deleted", comment_id="10001", body="edited"))
        ctx.github.delete_comment.assert_called_once_with("acme/widgets", 555)
        self.assertIsNone(ctx.store.get_comment_link(comment_id_b="10001"))

    def test_unknown_comment_update_is_a_noop(self):
        from issuerelay.services.outcome import SyncOutcome

        router, ctx = _linked_router()
        result = router.dispatch(jira_comment_event("comment_updated", comment_id="999"))

        self.assertEqual(result.outcome, SyncOutcome.NOOP)
        ctx.github.update_comment.assert_not_called()


class JiraUnhandledEventTests(unittest.TestCase):
    def test_unknown_webhook_event_is_a_noop(self):
        from issuerelay.payloads import parse_jira_event
        from issuerelay.services.outcome import SyncOutcome

        router, _ = _router()
        event = parse_jira_event({"webhookEvent": "jira:worklog_updated"})
        self.assertEqual(router.dispatch(event).outcome, SyncOutcome.NOOP)


if __name__ == "__main__":
    unittest.main()
