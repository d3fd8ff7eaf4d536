"""Moderation: the pending -> approved | rejected state machine.

Approval spans two components. The status flip and the owner's point
credit succeed together or not at all: when the credit fails the report is
put back to ``pending`` before the error reaches the caller.
"""
import logging

from smart_circular.core.exceptions import AlreadyDecided, LedgerError, NotFound, ValidationError
from smart_circular.core.locks import KeyedLocks
from smart_circular.repositories.base import ReportRepository
from smart_circular.schemas.schemas import Report, StatusEnum
from smart_circular.services.directory import UserDirectory

logger = logging.getLogger(__name__)

DECISIONS = (StatusEnum.approved, StatusEnum.rejected)


def parse_decision(value) -> StatusEnum:
    try:
        decision = StatusEnum(value)
    except ValueError:
        decision = None
    if decision not in DECISIONS:
        raise ValidationError(f"Decision must be 'approved' or 'rejected', got {value!r}.")
    return decision


class ModerationEngine:

    def __init__(self, reports: ReportRepository, directory: UserDirectory, locks: KeyedLocks):
        self._reports = reports
        self._directory = directory
        self._locks = locks

    def decide(self, report_id: str, decision) -> Report:
        decision = parse_decision(decision)
        # Unknown ids never get a lock entry
        if self._reports.get(report_id) is None:
            raise NotFound(f"Report {report_id} not found.")

        with self._locks.hold(f"report:{report_id}"):
            current = self._reports.get(report_id)
            if current is None:
                raise NotFound(f"Report {report_id} not found.")
            if current.status != StatusEnum.pending:
                logger.warning("Report %s is already %s; refusing %s", report_id, current.status.value, decision.value)
                raise AlreadyDecided(f"Report {report_id} has already been {current.status.value}.")

            decided = self._reports.transition(report_id, StatusEnum.pending, decision)
            if decided is None:
                # Another process decided (or deleted) it between the read and the write
                latest = self._reports.get(report_id)
                if latest is None:
                    raise NotFound(f"Report {report_id} not found.")
                raise AlreadyDecided(f"Report {report_id} has already been {latest.status.value}.")

            if decision == StatusEnum.approved:
                try:
                    self._directory.credit_points(decided.owner_id, decided.points)
                except LedgerError:
                    self._compensate(decided)
                    raise
                except Exception:
                    logger.exception("Point credit failed for report %s", report_id)
                    self._compensate(decided)
                    raise

        logger.info("Report %s %s", report_id, decision.value)
        return decided

    def approve(self, report_id: str) -> Report:
        return self.decide(report_id, StatusEnum.approved)

    def reject(self, report_id: str) -> Report:
        return self.decide(report_id, StatusEnum.rejected)

    def _compensate(self, report: Report) -> None:
        try:
            restored = self._reports.transition(report.id, StatusEnum.approved, StatusEnum.pending)
        except Exception:
            # The caller re-raises the credit failure; this one is only logged
            logger.exception(
                "Could not roll report %s back to pending; it is approved without a credit", report.id
            )
            return
        logger.warning(
            "Approval of report %s rolled back to pending (restored=%s)", report.id, restored is not None
        )
