"""SQLAlchemy ORM model for content submissions."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.types import JSON

from contentflow.db.base import Base


# Column widths, also enforced on input before any row is built
MAX_URL_LENGTH = 2048
MAX_TITLE_LENGTH = 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionStatus(str, enum.Enum):
    """Lifecycle status of a content submission."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentSubmission(Base):
    """One URL a user submitted and the content package generated from it."""

    __tablename__ = "content_submissions"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Identity issued by the upstream auth provider
    user_id: str = Column(String(255), nullable=False)

    original_url: str = Column(String(MAX_URL_LENGTH), nullable=False)
    original_title: str = Column(String(MAX_TITLE_LENGTH), nullable=False)
    word_count: int = Column(Integer, nullable=False, default=0)

    # Serialized GeneratedPackage (platform fields + metadata)
    generated_content = Column(JSON, nullable=True, default=dict)

    status: str = Column(
        String(20), nullable=False, default=SubmissionStatus.PROCESSING.value
    )

    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_submission_user_created", "user_id", "created_at"),
        Index("idx_submission_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ContentSubmission {self.id}: "
            f"user={self.user_id} status={self.status}>"
        )
