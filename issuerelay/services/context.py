"""Everything the routers need, constructed once at process start"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from issuerelay.services.concurrency import DeliveryLog, KeyedLocks
from issuerelay.services.github_client import GitHubClient
from issuerelay.services.identity import AssigneeResolver, parse_static_user_map
from issuerelay.services.jira_client import JiraClient
from issuerelay.services.loop_prevention import ControlMarkers
from issuerelay.services.mapping_store import MappingStore
from issuerelay.services.reconciliation import FieldReconciler, SyncPolicy
from issuerelay.services.retry import RetryExecutor


@dataclass
class SyncContext:
    github: Any
    jira: Any
    store: MappingStore
    resolver: AssigneeResolver
    retry: RetryExecutor
    policy: SyncPolicy = field(default_factory=SyncPolicy)
    markers: ControlMarkers = field(default_factory=ControlMarkers)
    github_repository: str = ""
    jira_project: str = ""
    jira_done_status: str = "Done"
    jira_done_transition_id: str = "41"
    jira_field_repository: Optional[str] = None
    jira_field_issue_number: Optional[str] = None
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    deliveries: DeliveryLog = field(default_factory=DeliveryLog)

    def __post_init__(self):
        self.reconciler = FieldReconciler(self.policy, self.markers, self.resolver)

    @property
    def has_github_reference_fields(self) -> bool:
        return bool(self.jira_field_repository and self.jira_field_issue_number)

    def github_reference_fields(self, repository: str, issue_number: int) -> Dict[str, Any]:
        """Jira custom-field values pointing at the mirrored GitHub issue."""
        if not self.has_github_reference_fields:
            return {}
        return {
            self.jira_field_repository: repository,
            self.jira_field_issue_number: int(issue_number),
        }


def build_context(settings, session_factory) -> SyncContext:
    store = MappingStore(session_factory)
    return SyncContext(
        github=GitHubClient(settings.github_token, settings.github_api_url),
        jira=JiraClient(
            settings.jira_base_url,
            settings.jira_email,
            settings.jira_api_token,
            project=settings.jira_project,
            issue_type_id=settings.jira_issue_type_id,
        ),
        store=store,
        resolver=AssigneeResolver(store, parse_static_user_map(settings.user_mappings)),
        retry=RetryExecutor(settings.retry_max_attempts, settings.retry_initial_delay_ms),
        policy=settings.sync_policy(),
        markers=settings.control_markers(),
        github_repository=settings.github_repository,
        jira_project=settings.jira_project,
        jira_done_status=settings.jira_done_status_name,
        jira_done_transition_id=settings.jira_done_transition_id,
        jira_field_repository=settings.jira_field_github_repository,
        jira_field_issue_number=settings.jira_field_github_issue_number,
    )
