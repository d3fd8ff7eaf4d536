"""Persistence interfaces for ``accounts``, ``reports`` and revoked session tokens.

Collections are keyed by opaque string ids. Implementations must keep
ids unique at write time and return immutable domain records.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence, Tuple

from smart_circular.schemas.schemas import Account, Report, StatusEnum


class AccountRepository(ABC):

    @abstractmethod
    def add(self, account: Account, password_hash: str) -> Account:
        """Store a new account. Raises ``ValueError`` if the id or email is taken."""

    @abstractmethod
    def get(self, account_id: str) -> Optional[Account]: ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Tuple[Account, str]]:
        """Case-insensitive lookup returning the account and its password hash."""

    @abstractmethod
    def list(self) -> Sequence[Account]:
        """All accounts in creation order."""

    @abstractmethod
    def update_profile(self, account_id: str, changes: dict) -> Optional[Account]: ...

    @abstractmethod
    def add_points(self, account_id: str, amount: int) -> Optional[Account]:
        """Increment the balance in place; ``None`` when the account is unknown."""


class ReportRepository(ABC):

    @abstractmethod
    def add(self, report: Report) -> Report:
        """Store a new report. Raises ``ValueError`` if the id is taken."""

    @abstractmethod
    def get(self, report_id: str) -> Optional[Report]: ...

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> Sequence[Report]: ...

    @abstractmethod
    def list_all(self) -> Sequence[Report]: ...

    @abstractmethod
    def transition(self, report_id: str, expected: StatusEnum, new: StatusEnum) -> Optional[Report]:
        """Compare-and-set the status. ``None`` unless the current status is ``expected``."""

    @abstractmethod
    def delete(self, report_id: str) -> bool: ...


class RevokedTokenRepository(ABC):
    """Ids (``jti``) of signed session tokens ended before their expiry."""

    @abstractmethod
    def revoke(self, jti: str, expires_at: datetime) -> None:
        """Record a revocation. Revoking the same id twice is a no-op."""

    @abstractmethod
    def is_revoked(self, jti: str) -> bool: ...
