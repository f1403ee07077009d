"""Issue link model"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String

from issuerelay.models.base import Base


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class IssueLink(Base):
    """Jira issue key -> GitHub issue it is mirrored with"""

    __tablename__ = "issue_links"
    __table_args__ = (
        Index("ix_issue_links_target", "target_repository", "target_issue_number"),
    )

    source_key = Column(String, primary_key=True)  # Jira key, e.g. PROJ-123
    target_repository = Column(String, nullable=False)  # owner/name
    target_issue_number = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return (
            f"<IssueLink({self.source_key} -> "
            f"{self.target_repository}#{self.target_issue_number})>"
        )
