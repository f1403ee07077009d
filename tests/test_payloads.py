import unittest

from support import github_issue_payload, jira_issue_payload


class GitHubPayloadTests(unittest.TestCase):
    def test_issue_event(self):
        from issuerelay.payloads import GitHubIssueEvent, parse_github_event

        event = parse_github_event("issues", github_issue_payload("labeled", labels=["bug"], label={"name": "bug"}))

        self.assertIsInstance(event, GitHubIssueEvent)
        self.assertEqual(event.issue.label_names, ["bug"])
        self.assertEqual(event.label.name, "bug")
        self.assertEqual(event.repository.full_name, "acme/widgets")

    def test_kind_is_inferred_without_header(self):
        from issuerelay.payloads import GitHubCommentEvent, parse_github_event

        payload = github_issue_payload("created")
        payload["comment"] = {"id": 1, "body": "hi"}
        self.assertIsInstance(parse_github_event(None, payload), GitHubCommentEvent)

    def test_changes_from_alias(self):
        from issuerelay.payloads import parse_github_event

        event = parse_github_event("issues", github_issue_payload("edited", changes={"title": {"from": "Old"}}))
        self.assertEqual(event.changes.title.previous, "Old")
        self.assertIsNone(event.changes.body)

    def test_malformed_payload(self):
        from issuerelay.payloads import parse_github_event
        from issuerelay.services.errors import PayloadError

        with self.assertRaises(PayloadError):
            parse_github_event("issues", {"action": "opened"})
        with self.assertRaises(PayloadError):
            parse_github_event("issues", ["not", "an", "object"])


class JiraPayloadTests(unittest.TestCase):
    def test_issue_event_with_custom_fields(self):
        from issuerelay.payloads import JiraIssueEvent, parse_jira_event

        payload = jira_issue_payload(
            "jira:issue_updated",
            customfield_10050="acme/widgets",
            changelog=[{"field": "status", "fromString": "To Do", "toString": "Done", "from": "1", "to": "3"}],
        )
        payload["issue"]["fields"]["labels"] = None
        event = parse_jira_event(payload)

        self.assertIsInstance(event, JiraIssueEvent)
        self.assertEqual(event.action, "jira:issue_updated")
        self.assertEqual(event.issue.fields.labels, [])
        self.assertEqual(event.issue.fields.custom("customfield_10050"), "acme/widgets")
        self.assertIsNone(event.issue.fields.custom(None))
        self.assertEqual(event.changelog.items[0].to_string, "Done")

    def test_rich_text_description_is_not_mirrored(self):
        from issuerelay.payloads import parse_jira_event

        event = parse_jira_event(jira_issue_payload("jira:issue_created", description={"type": "doc"}))
        self.assertEqual(event.issue.fields.description_text, "")

    def test_numeric_comment_id_becomes_string(self):
        from issuerelay.payloads import JiraCommentEvent, parse_jira_event

        event = parse_jira_event(
            {"webhookEvent": "comment_created", "issue": {"key": "PROJ-7"}, "comment": {"id": 10001, "body": "x"}}
        )
        self.assertIsInstance(event, JiraCommentEvent)
        self.assertEqual(event.comment.id, "10001")

    def test_missing_webhook_event(self):
        from issuerelay.payloads import parse_jira_event
        from issuerelay.services.errors import PayloadError

        with self.assertRaises(PayloadError):
            parse_jira_event({"issue": {"key": "PROJ-7"}})


if __name__ == "__main__":
    unittest.main()
