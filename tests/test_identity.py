import unittest

from support import make_store


class StaticUserMapTests(unittest.TestCase):
    def test_parse_pairs(self):
        from issuerelay.services.identity import parse_static_user_map

        mapping = parse_static_user_map("octocat:acc-1; hubot:557058:abc-def ,")
        self.assertEqual(mapping, {"octocat": "acc-1", "hubot": "557058:abc-def"})

    def test_malformed_entries_are_skipped(self):
        from issuerelay.services.identity import parse_static_user_map

        with self.assertLogs("issuerelay.services.identity", level="WARNING"):
            mapping = parse_static_user_map("nocolon;:missinglogin;ok:acc")
        self.assertEqual(mapping, {"ok": "acc"})

    def test_empty(self):
        from issuerelay.services.identity import parse_static_user_map

        self.assertEqual(parse_static_user_map(""), {})
        self.assertEqual(parse_static_user_map(None), {})


class AssigneeResolverTests(unittest.TestCase):
    def test_stored_link_wins_over_static_table(self):
        from issuerelay.services.identity import AssigneeResolver

        store = make_store()
        store.save_user_link("octocat", "acc-db")
        resolver = AssigneeResolver(store, {"octocat": "acc-static"})

        self.assertEqual(resolver.to_jira("octocat"), "acc-db")
        self.assertEqual(resolver.to_github("acc-db"), "octocat")

    def test_static_hit_is_persisted(self):
        from issuerelay.services.identity import AssigneeResolver

        store = make_store()
        resolver = AssigneeResolver(store, {"octocat": "acc-1"})

        self.assertEqual(resolver.to_github("acc-1"), "octocat")
        self.assertEqual(store.get_user_link(username_a="octocat").account_id_b, "acc-1")

    def test_unknown_user_resolves_to_none(self):
        from issuerelay.services.identity import AssigneeResolver

        resolver = AssigneeResolver(make_store(), {})
        with self.assertLogs("issuerelay.services.identity", level="WARNING"):
            self.assertIsNone(resolver.to_jira("ghost"))
        self.assertIsNone(resolver.to_github(None))


if __name__ == "__main__":
    unittest.main()
