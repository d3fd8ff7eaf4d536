from datetime import datetime, timezone
from threading import RLock
from typing import Dict, Optional, Sequence, Tuple

from smart_circular.repositories.base import AccountRepository, ReportRepository, RevokedTokenRepository
from smart_circular.schemas.schemas import Account, Report, StatusEnum


class InMemoryAccountRepository(AccountRepository):
    """Accounts held in process memory; dict insertion order is creation order."""

    def __init__(self):
        self._lock = RLock()
        self._accounts: Dict[str, Account] = {}
        self._hashes: Dict[str, str] = {}
        self._by_email: Dict[str, str] = {}

    def add(self, account: Account, password_hash: str) -> Account:
        key = account.email.lower()
        with self._lock:
            if account.id in self._accounts:
                raise ValueError(f"account id {account.id} already exists")
            if key in self._by_email:
                raise ValueError(f"email {account.email} already registered")
            self._accounts[account.id] = account
            self._hashes[account.id] = password_hash
            self._by_email[key] = account.id
        return account

    def get(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def get_by_email(self, email: str) -> Optional[Tuple[Account, str]]:
        with self._lock:
            account_id = self._by_email.get(email.strip().lower())
            if account_id is None:
                return None
            return self._accounts[account_id], self._hashes[account_id]

    def list(self) -> Sequence[Account]:
        with self._lock:
            return list(self._accounts.values())

    def update_profile(self, account_id: str, changes: dict) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            account = account.model_copy(update=changes)
            self._accounts[account_id] = account
            return account

    def add_points(self, account_id: str, amount: int) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            account = account.model_copy(update={"reward_points": account.reward_points + amount})
            self._accounts[account_id] = account
            return account


class InMemoryReportRepository(ReportRepository):

    def __init__(self):
        self._lock = RLock()
        self._reports: Dict[str, Report] = {}

    def add(self, report: Report) -> Report:
        with self._lock:
            if report.id in self._reports:
                raise ValueError(f"report id {report.id} already exists")
            self._reports[report.id] = report
        return report

    def get(self, report_id: str) -> Optional[Report]:
        return self._reports.get(report_id)

    def list_by_owner(self, owner_id: str) -> Sequence[Report]:
        with self._lock:
            return [r for r in self._reports.values() if r.owner_id == owner_id]

    def list_all(self) -> Sequence[Report]:
        with self._lock:
            return list(self._reports.values())

    def transition(self, report_id: str, expected: StatusEnum, new: StatusEnum) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(report_id)
            if report is None or report.status != expected:
                return None
            report = report.model_copy(update={"status": new})
            self._reports[report_id] = report
            return report

    def delete(self, report_id: str) -> bool:
        with self._lock:
            return self._reports.pop(report_id, None) is not None


class InMemoryRevokedTokenRepository(RevokedTokenRepository):

    def __init__(self):
        self._lock = RLock()
        self._revoked: Dict[str, datetime] = {}

    def revoke(self, jti: str, expires_at: datetime) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            # Expired tokens fail signature checks anyway; forget them
            for stale in [k for k, exp in self._revoked.items() if exp <= now]:
                del self._revoked[stale]
            self._revoked[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._revoked
