import logging
from typing import Optional, Sequence

from smart_circular.core.exceptions import InvalidAmount, NotFound
from smart_circular.core.locks import KeyedLocks
from smart_circular.repositories.base import AccountRepository
from smart_circular.schemas.schemas import Account, ProfileUpdate

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "pincode", "address")


class UserDirectory:
    """Account records and the one balance-changing operation, ``credit_points``."""

    def __init__(self, accounts: AccountRepository, locks: KeyedLocks):
        self._accounts = accounts
        self._locks = locks

    def get(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def list(self) -> Sequence[Account]:
        return self._accounts.list()

    def update_profile(self, account_id: str, update: ProfileUpdate) -> Account:
        changes = {
            field: value
            for field, value in update.model_dump(exclude_unset=True).items()
            if field in PROFILE_FIELDS and value is not None
        }
        with self._locks.hold(f"account:{account_id}"):
            if not changes:
                account = self._accounts.get(account_id)
            else:
                account = self._accounts.update_profile(account_id, changes)
        if account is None:
            raise NotFound(f"Account {account_id} not found.")
        logger.info("Updated profile fields %s for account %s", sorted(changes), account_id)
        return account

    def credit_points(self, account_id: str, amount: int) -> Account:
        # bool is an int subclass; True is not a point amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Point credit must be a positive integer, got {amount!r}.")
        with self._locks.hold(f"account:{account_id}"):
            account = self._accounts.add_points(account_id, amount)
        if account is None:
            raise NotFound(f"Account {account_id} not found.")
        logger.info("Credited %d points to account %s (balance %d)", amount, account_id, account.reward_points)
        return account
