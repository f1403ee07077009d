"""Database models"""

from issuerelay.models.base import Base
from issuerelay.models.comment_link import CommentLink
from issuerelay.models.issue_link import IssueLink
from issuerelay.models.user_link import UserLink

__all__ = [
    "Base",
    "IssueLink",
    "CommentLink",
    "UserLink",
]
