"""Durable cross-system identity links (issues, comments, users)"""

import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from issuerelay.models import CommentLink, IssueLink, UserLink
from issuerelay.models.issue_link import utcnow
from issuerelay.services.errors import StorageError

logger = logging.getLogger(__name__)

# Dialects with a native INSERT .. ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class MappingStore:
    """Sole owner of link rows.

    Every write is a single-row insert-or-replace in its own transaction, so
    racing writers on the same key converge to the last write. Any database
    failure surfaces as ``StorageError``.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, *, write: bool = False):
        db: Session = self._session_factory()
        try:
            yield db
            if write:
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Mapping store failure: {e}")
            raise StorageError(str(e)) from e
        finally:
            db.close()

    @staticmethod
    def _upsert(db: Session, model, key: str, values: dict) -> None:
        insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
        if insert is None:
            db.merge(model(**values))
            return
        stmt = insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[key],
            set_={name: value for name, value in values.items() if name != key},
        )
        db.execute(stmt)

    # ==================== Issue links ====================

    def save_issue_link(self, source_key: str, target_repository: str, target_issue_number: int) -> None:
        with self._session(write=True) as db:
            self._upsert(
                db,
                IssueLink,
                "source_key",
                {
                    "source_key": source_key,
                    "target_repository": target_repository,
                    "target_issue_number": int(target_issue_number),
                },
            )
        logger.info(f"Linked {source_key} <-> {target_repository}#{target_issue_number}")

    def get_issue_link(self, source_key: str) -> Optional[IssueLink]:
        with self._session() as db:
            return db.get(IssueLink, source_key)

    def find_issue_link(self, repository: str, issue_number: int) -> Optional[IssueLink]:
        """Reverse lookup: which Jira key is mirrored with ``repository#issue_number``."""
        with self._session() as db:
            return (
                db.query(IssueLink)
                .filter(
                    IssueLink.target_repository == repository,
                    IssueLink.target_issue_number == int(issue_number),
                )
                .order_by(IssueLink.created_at.desc())
                .first()
            )

    # ==================== Comment links ====================

    def save_comment_link(
        self,
        *,
        comment_id_a: int,
        comment_id_b: str,
        issue_number_a: int,
        repository_a: str,
        issue_key_b: str,
    ) -> None:
        with self._session(write=True) as db:
            self._upsert(
                db,
                CommentLink,
                "comment_id_a",
                {
                    "comment_id_a": int(comment_id_a),
                    "comment_id_b": str(comment_id_b),
                    "issue_number_a": int(issue_number_a),
                    "repository_a": repository_a,
                    "issue_key_b": issue_key_b,
                },
            )

    @staticmethod
    def _comment_filter(query, comment_id_a: Optional[int], comment_id_b: Optional[str]):
        if (comment_id_a is None) == (comment_id_b is None):
            raise ValueError("Pass exactly one of comment_id_a / comment_id_b")
        if comment_id_a is not None:
            return query.filter(CommentLink.comment_id_a == int(comment_id_a))
        return query.filter(CommentLink.comment_id_b == str(comment_id_b))

    def get_comment_link(
        self, *, comment_id_a: Optional[int] = None, comment_id_b: Optional[str] = None
    ) -> Optional[CommentLink]:
        with self._session() as db:
            return self._comment_filter(db.query(CommentLink), comment_id_a, comment_id_b).first()

    def list_comment_links(self, issue_key_b: Optional[str] = None) -> List[CommentLink]:
        with self._session() as db:
            query = db.query(CommentLink)
            if issue_key_b:
                query = query.filter(CommentLink.issue_key_b == issue_key_b)
            return query.order_by(CommentLink.comment_id_a).all()

    def delete_comment_link(
        self, *, comment_id_a: Optional[int] = None, comment_id_b: Optional[str] = None
    ) -> int:
        with self._session(write=True) as db:
            return self._comment_filter(db.query(CommentLink), comment_id_a, comment_id_b).delete(
                synchronize_session=False
            )

    def delete_comment_links_for_issue(self, issue_key_b: str) -> int:
        """Drop links of every comment discarded together with a deleted issue."""
        with self._session(write=True) as db:
            return (
                db.query(CommentLink)
                .filter(CommentLink.issue_key_b == issue_key_b)
                .delete(synchronize_session=False)
            )

    # ==================== User links ====================

    def save_user_link(self, username_a: str, account_id_b: str) -> None:
        with self._session(write=True) as db:
            self._upsert(
                db,
                UserLink,
                "username_a",
                {"username_a": username_a, "account_id_b": account_id_b, "updated_at": utcnow()},
            )

    def list_user_links(self) -> List[UserLink]:
        with self._session() as db:
            return db.query(UserLink).order_by(UserLink.username_a).all()

    def get_user_link(
        self, *, username_a: Optional[str] = None, account_id_b: Optional[str] = None
    ) -> Optional[UserLink]:
        if (username_a is None) == (account_id_b is None):
            raise ValueError("Pass exactly one of username_a / account_id_b")
        with self._session() as db:
            if username_a is not None:
                return db.get(UserLink, username_a)
            return (
                db.query(UserLink)
                .filter(UserLink.account_id_b == account_id_b)
                .order_by(UserLink.updated_at.desc())
                .first()
            )
