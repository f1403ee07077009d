"""Application configuration"""

from pydantic_settings import BaseSettings

from issuerelay.services.loop_prevention import ControlMarkers
from issuerelay.services.reconciliation import SyncPolicy


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str = "sqlite:///./issuerelay.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # GitHub (system A)
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    # owner/name of the repository that receives issues mirrored from Jira
    github_repository: str = ""
    github_webhook_secret: str | None = None

    # Jira (system B)
    jira_base_url: str = ""
    jira_email: str = ""
    jira_api_token: str = ""
    jira_project: str = ""
    jira_issue_type_id: str = "10002"
    jira_done_transition_id: str = "41"
    jira_done_status_name: str = "Done"
    # Custom field ids (e.g. "customfield_10050") holding the GitHub reference.
    # When unset, the mapping table is the only link between the two issues.
    jira_field_github_repository: str | None = None
    jira_field_github_issue_number: str | None = None
    jira_webhook_secret: str | None = None

    # Sync policy
    sync_descriptions: bool = True
    sync_labels: bool = True
    sync_assignees: bool = True
    sync_attachments: bool = False
    sync_comments: bool = True

    # Control markers stamped on everything this service writes
    control_label_from_github: str = "source:github"
    control_label_from_jira: str = "source:jira"
    control_comment_from_github: str = "comment from github"
    control_comment_from_jira: str = "comment from jira"

    # Retry
    retry_max_attempts: int = 3
    retry_initial_delay_ms: int = 1000

    # Static identity table: "octocat:5b10a2844c20165700ede21g;hubot:5b10ac8d82e05b22cc7d4ef5"
    user_mappings: str = ""

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def sync_policy(self) -> SyncPolicy:
        return SyncPolicy(
            descriptions=self.sync_descriptions,
            labels=self.sync_labels,
            assignees=self.sync_assignees,
            attachments=self.sync_attachments,
            comments=self.sync_comments,
        )

    def control_markers(self) -> ControlMarkers:
        return ControlMarkers(
            label_from_github=self.control_label_from_github,
            label_from_jira=self.control_label_from_jira,
            comment_from_github=self.control_comment_from_github,
            comment_from_jira=self.control_comment_from_jira,
        )


settings = Settings()
