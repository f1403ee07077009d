"""Resolve assignees across GitHub logins and Jira account ids"""

import logging
import re
from typing import Dict, Optional

from issuerelay.services.mapping_store import MappingStore

logger = logging.getLogger(__name__)

_PAIR_SEPARATORS = re.compile(r"[;,]")


def parse_static_user_map(text: Optional[str]) -> Dict[str, str]:
    """Parse ``"login:accountId;login2:accountId2"`` (``,`` also accepted).

    Only the first ``:`` splits a pair; Jira account ids may contain colons.
    """
    mapping: Dict[str, str] = {}
    for chunk in _PAIR_SEPARATORS.split(text or ""):
        chunk = chunk.strip()
        if not chunk:
            continue
        login, sep, account_id = chunk.partition(":")
        login, account_id = login.strip(), account_id.strip()
        if not sep or not login or not account_id:
            logger.warning(f"Ignoring malformed user mapping entry '{chunk}'")
            continue
        mapping[login] = account_id
    return mapping


class AssigneeResolver:
    """UserLink table first, then the static table; static hits are persisted."""

    def __init__(self, store: MappingStore, static_map: Optional[Dict[str, str]] = None):
        self.store = store
        self.static_map = dict(static_map or {})
        self._reverse_static = {v: k for k, v in self.static_map.items()}

    def to_jira(self, login: Optional[str]) -> Optional[str]:
        """GitHub login -> Jira account id."""
        if not login:
            return None
        link = self.store.get_user_link(username_a=login)
        if link:
            return link.account_id_b
        account_id = self.static_map.get(login)
        if account_id:
            self.store.save_user_link(login, account_id)
            return account_id
        logger.warning(f"No Jira account mapping for GitHub user '{login}'")
        return None

    def to_github(self, account_id: Optional[str]) -> Optional[str]:
        """Jira account id -> GitHub login."""
        if not account_id:
            return None
        link = self.store.get_user_link(account_id_b=account_id)
        if link:
            return link.username_a
        login = self._reverse_static.get(account_id)
        if login:
            self.store.save_user_link(login, account_id)
            return login
        logger.warning(f"No GitHub username mapping for Jira account '{account_id}'")
        return None
