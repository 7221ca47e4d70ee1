"""ORM models package."""

from contentflow.models.content_submission import (  # noqa: F401
    ContentSubmission,
    SubmissionStatus,
)
