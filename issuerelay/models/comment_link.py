"""Comment link model"""
from sqlalchemy import Column, Integer, String

from issuerelay.models.base import Base


class CommentLink(Base):
    """One-to-one pairing of a GitHub comment and its Jira mirror"""

    __tablename__ = "comment_links"

    comment_id_a = Column(Integer, primary_key=True)  # GitHub comment id
    comment_id_b = Column(String, nullable=False, index=True)  # Jira comment id

    # Where the pair lives, so either side can be addressed without a lookup
    issue_number_a = Column(Integer, nullable=False)
    repository_a = Column(String, nullable=False)
    issue_key_b = Column(String, nullable=False, index=True)

    def __repr__(self):
        return f"<CommentLink(github={self.comment_id_a}, jira={self.comment_id_b})>"
