"""Monthly per-user submission quota.

The count is always recomputed from the submission store; nothing is
cached. The check and the later insert are two separate operations, so two
concurrent requests from one user can both pass with a single slot left and
push ``used`` to ``limit + 1``. The limit is therefore a soft limit.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from contentflow.exceptions import QuotaExceededError, StoreError, UsageCheckError
from contentflow.services.submission_store import SubmissionStore

logger = logging.getLogger(__name__)

DEFAULT_MONTHLY_LIMIT = 50


def month_start(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Return 00:00:00.000 on the first day of ``now``'s month in ``tz``.

    ``tz`` None means the server's local timezone.
    """
    if tz is None:
        local = now.astimezone()
        # Naive first-of-month is read as local time, so DST offsets resolve
        return datetime(local.year, local.month, 1).astimezone()
    local = now.astimezone(tz)
    return datetime(local.year, local.month, 1, tzinfo=tz)


def next_month_start(start: datetime) -> datetime:
    """Return the first instant of the month after ``start``'s month."""
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def load_timezone(name: str | None) -> tzinfo | None:
    """Resolve an IANA zone name; None keeps server local time."""
    if not name:
        return None
    return ZoneInfo(name)


@dataclass(frozen=True)
class PlanLimits:
    """Monthly limit per plan with a default for unknown or missing plans."""

    default: int = DEFAULT_MONTHLY_LIMIT
    per_plan: Mapping[str, int] = field(default_factory=dict)

    def resolve(self, plan: str | None) -> int:
        if plan is not None and plan in self.per_plan:
            return self.per_plan[plan]
        return self.default


@dataclass(frozen=True)
class UsageWindow:
    """A user's usage in the current quota window."""

    month_start: datetime
    count: int
    limit: int

    @property
    def month_end(self) -> datetime:
        """Last instant of the window's month."""
        return next_month_start(self.month_start) - timedelta(microseconds=1)

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    @property
    def percentage(self) -> int:
        if self.limit <= 0:
            return 100
        return round(self.count / self.limit * 100)

    @property
    def exceeded(self) -> bool:
        return self.count >= self.limit


class UsageGuard:
    """Reject submissions once a user reaches the monthly limit.

    Usage:
        guard = UsageGuard(SqlSubmissionStore(db), PlanLimits(default=50))
        window = guard.check_quota("user-123")
    """

    def __init__(
        self,
        store: SubmissionStore,
        limits: PlanLimits | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.store = store
        self.limits = limits or PlanLimits()
        self.tz = tz

    def resolve_limit(self, plan: str | None = None) -> int:
        """Monthly limit for a plan, or the default when the plan is unknown."""
        return self.limits.resolve(plan)

    def usage_window(
        self,
        user_id: str,
        now: datetime | None = None,
        plan: str | None = None,
    ) -> UsageWindow:
        """Compute the user's current window without enforcing the limit.

        Raises:
            UsageCheckError: If the store cannot be read.
        """
        now = now or datetime.now(self.tz)
        start = month_start(now, self.tz)
        try:
            count = self.store.count_by_user_since(user_id, start)
        except StoreError as e:
            logger.error("Usage check failed for user %s: %s", user_id, e)
            raise UsageCheckError(e) from e

        return UsageWindow(month_start=start, count=count, limit=self.resolve_limit(plan))

    def check_quota(
        self,
        user_id: str,
        now: datetime | None = None,
        plan: str | None = None,
    ) -> UsageWindow:
        """Return the usage window when the user may submit again.

        Raises:
            QuotaExceededError: When count >= limit.
            UsageCheckError: If the store cannot be read.
        """
        window = self.usage_window(user_id, now=now, plan=plan)
        if window.exceeded:
            logger.info(
                "Quota exceeded for user %s (%d/%d)", user_id, window.count, window.limit
            )
            raise QuotaExceededError(limit=window.limit, used=window.count)
        return window
