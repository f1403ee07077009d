"""User link model"""
from sqlalchemy import Column, DateTime, String

from issuerelay.models.base import Base
from issuerelay.models.issue_link import utcnow


class UserLink(Base):
    """GitHub login <-> Jira account id"""

    __tablename__ = "user_links"

    username_a = Column(String, primary_key=True)
    account_id_b = Column(String, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserLink({self.username_a} <-> {self.account_id_b})>"
