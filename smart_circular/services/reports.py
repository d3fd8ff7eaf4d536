import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from smart_circular.core.exceptions import NotFound, ValidationError
from smart_circular.core.locks import KeyedLocks
from smart_circular.repositories.base import AccountRepository, ReportRepository
from smart_circular.schemas.schemas import (
    CategoryEnum,
    Location,
    Report,
    RewardSummary,
    StatusEnum,
)

logger = logging.getLogger(__name__)


def parse_category(value) -> CategoryEnum:
    try:
        return CategoryEnum(value)
    except ValueError:
        allowed = ", ".join(c.value for c in CategoryEnum)
        raise ValidationError(f"Unknown category {value!r}; expected one of: {allowed}.")


def _check_location(location: Optional[Location]) -> None:
    if location is None:
        return
    if location.latitude is not None and not -90.0 <= location.latitude <= 90.0:
        raise ValidationError("Latitude must be between -90 and 90.")
    if location.longitude is not None and not -180.0 <= location.longitude <= 180.0:
        raise ValidationError("Longitude must be between -180 and 180.")


class ReportStore:
    """Report records, scoped by owner for citizens and unscoped for admins."""

    def __init__(
        self,
        reports: ReportRepository,
        accounts: AccountRepository,
        locks: KeyedLocks,
        points_table: Dict[str, int],
    ):
        self._reports = reports
        self._accounts = accounts
        self._locks = locks
        self._points = dict(points_table)

    @property
    def points_table(self) -> Dict[str, int]:
        return dict(self._points)

    def submit(
        self,
        owner_id: str,
        category,
        description: str = "",
        label: Optional[str] = None,
        image_url: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> Report:
        category = parse_category(category)
        description = (description or "").strip()
        _check_location(location)

        with self._locks.hold(f"account:{owner_id}"):
            if self._accounts.get(owner_id) is None:
                raise ValidationError(f"Unknown report owner {owner_id}.")
            report = self._reports.add(Report(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                category=category,
                description=description,
                label=label,
                image_url=image_url,
                location=location,
                status=StatusEnum.pending,
                points=self._points[category.value],
                created_at=datetime.now(timezone.utc),
            ))

        logger.info("Report %s (%s, %d points) submitted by %s", report.id, category.value, report.points, owner_id)
        return report

    def get(self, report_id: str) -> Optional[Report]:
        return self._reports.get(report_id)

    def list_by_owner(self, owner_id: str) -> Sequence[Report]:
        return self._reports.list_by_owner(owner_id)

    def list_all(self) -> Sequence[Report]:
        return self._reports.list_all()

    def delete(self, report_id: str) -> None:
        """Remove a report. Points already awarded for it are kept."""
        with self._locks.hold(f"report:{report_id}"):
            if not self._reports.delete(report_id):
                raise NotFound(f"Report {report_id} not found.")
        logger.info("Report %s deleted", report_id)

    def summarize(self, owner_id: str) -> RewardSummary:
        account = self._accounts.get(owner_id)
        if account is None:
            raise NotFound(f"Account {owner_id} not found.")
        reports = self._reports.list_by_owner(owner_id)
        by_status = Counter(r.status.value for r in reports)
        by_category = Counter(r.category.value for r in reports)
        return RewardSummary(
            account_id=owner_id,
            reward_points=account.reward_points,
            reports_by_status={s.value: by_status.get(s.value, 0) for s in StatusEnum},
            reports_by_category={c.value: by_category.get(c.value, 0) for c in CategoryEnum},
        )
