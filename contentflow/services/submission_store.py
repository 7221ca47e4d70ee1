"""Persistence for content submissions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from contentflow.exceptions import StoreError
from contentflow.models.content_submission import ContentSubmission

logger = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    """Operations the pipeline needs from the submission store.

    The pipeline only calls ``insert`` and ``count_by_user_since``; the
    remaining methods back the history and usage endpoints.
    """

    def insert(self, submission: ContentSubmission) -> ContentSubmission:
        """Persist a new submission and return it with id and timestamps set."""
        ...

    def count_by_user_since(self, user_id: str, since: datetime) -> int:
        """Count a user's submissions created at or after ``since``."""
        ...

    def count_by_user(self, user_id: str) -> int:
        """Count all of a user's submissions."""
        ...

    def list_for_user(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> list[ContentSubmission]:
        """Return a user's submissions, newest first."""
        ...

    def get_for_user(self, user_id: str, submission_id: str) -> ContentSubmission | None:
        """Return one submission owned by the user, or None."""
        ...


def _as_utc(value: datetime) -> datetime:
    """Convert to UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlSubmissionStore:
    """SubmissionStore backed by a SQLAlchemy session.

    Timestamps are written and compared in UTC. Database errors are raised
    as StoreError after rolling the session back.
    """

    def __init__(self, db: DbSession) -> None:
        self.db = db

    def insert(self, submission: ContentSubmission) -> ContentSubmission:
        try:
            self.db.add(submission)
            self.db.commit()
            self.db.refresh(submission)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to insert submission for user %s: %s", submission.user_id, e)
            raise StoreError(f"Failed to insert submission: {e}") from e
        return submission

    def count_by_user_since(self, user_id: str, since: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(ContentSubmission)
            .where(
                ContentSubmission.user_id == user_id,
                ContentSubmission.created_at >= _as_utc(since),
            )
        )
        return self._scalar_count(stmt)

    def count_by_user(self, user_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(ContentSubmission)
            .where(ContentSubmission.user_id == user_id)
        )
        return self._scalar_count(stmt)

    def list_for_user(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> list[ContentSubmission]:
        stmt = (
            select(ContentSubmission)
            .where(ContentSubmission.user_id == user_id)
            .order_by(ContentSubmission.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to list submissions: {e}") from e

    def get_for_user(self, user_id: str, submission_id: str) -> ContentSubmission | None:
        stmt = select(ContentSubmission).where(
            ContentSubmission.id == submission_id,
            ContentSubmission.user_id == user_id,
        )
        try:
            return self.db.scalars(stmt).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to load submission: {e}") from e

    def _scalar_count(self, stmt) -> int:
        try:
            return int(self.db.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to count submissions: {e}") from e
