"""Session/identity provider: registration, login, logout and privilege checks.

Sessions are explicit. Callers hold the bearer token returned at login and
pass it back; nothing here keeps a process-wide "current user".
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Optional

from disposable_email_domains import blocklist
from passlib.context import CryptContext

from smart_circular.core.exceptions import (
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    Unauthorized,
    ValidationError,
)
from smart_circular.repositories.base import AccountRepository, RevokedTokenRepository
from smart_circular.schemas.schemas import Account, RegisterRequest, RoleEnum
from smart_circular.services.security import create_token, decode_token, make_password_context, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionGrant:
    token: str
    account: Account


class SessionStore:
    """Signed, expiring bearer tokens plus a shared revocation list.

    Any worker holding the same secret and revocation repository can
    resolve a token another worker issued.
    """

    def __init__(self, secret: str, ttl: timedelta, revoked: RevokedTokenRepository):
        self._secret = secret
        self._ttl = ttl
        self._revoked = revoked

    def open(self, account_id: str) -> str:
        return create_token(account_id, self._secret, self._ttl)

    def resolve(self, token: str) -> Optional[str]:
        claims = decode_token(token, self._secret)
        if not claims or not claims.get("sub") or not claims.get("jti"):
            return None
        if self._revoked.is_revoked(claims["jti"]):
            return None
        return claims["sub"]

    def close(self, token: str) -> None:
        claims = decode_token(token, self._secret, verify_exp=False)
        if not claims or not claims.get("jti"):
            return
        expires_at = datetime.fromtimestamp(claims.get("exp", 0), tz=timezone.utc)
        self._revoked.revoke(claims["jti"], expires_at)


class IdentityProvider:

    def __init__(
        self,
        accounts: AccountRepository,
        sessions: SessionStore,
        admin_emails=(),
        block_disposable_emails: bool = True,
        passwords: Optional[CryptContext] = None,
    ):
        self._accounts = accounts
        self._sessions = sessions
        self._admin_emails = {email.strip().lower() for email in admin_emails}
        self._block_disposable = block_disposable_emails
        self._passwords = passwords or make_password_context()
        self._register_lock = Lock()

    def current_session(self, token: Optional[str]) -> Optional[str]:
        """Account id behind ``token``, or ``None`` when the session is absent or over."""
        if not token:
            return None
        account_id = self._sessions.resolve(token)
        if account_id is None or self._accounts.get(account_id) is None:
            return None
        return account_id

    def authenticate(self, email: str, password: str) -> SessionGrant:
        found = self._accounts.get_by_email(email)
        if found is None or not verify_password(self._passwords, password, found[1]):
            logger.warning("Failed login attempt for %s", email)
            raise InvalidCredentials("Invalid email or password.")
        account = found[0]
        token = self._sessions.open(account.id)
        logger.info("Account %s signed in", account.id)
        return SessionGrant(token=token, account=account)

    def register(self, profile: RegisterRequest) -> SessionGrant:
        email = profile.email.strip().lower()
        self._verify_not_burner(email)

        account = Account(
            id=str(uuid.uuid4()),
            name=profile.name.strip(),
            email=email,
            pincode=profile.pincode,
            address=profile.address,
            reward_points=0,
            role=RoleEnum.admin if email in self._admin_emails else RoleEnum.citizen,
            created_at=datetime.now(timezone.utc),
        )
        password_hash = self._passwords.hash(profile.password)

        with self._register_lock:
            if self._accounts.get_by_email(email) is not None:
                logger.warning("Registration rejected, email already in use: %s", email)
                raise DuplicateEmail(f"An account with email {email} already exists.")
            try:
                account = self._accounts.add(account, password_hash)
            except ValueError as e:
                # Another process won the race on the unique email column
                raise DuplicateEmail(f"An account with email {email} already exists.") from e

        logger.info("Registered %s account %s", account.role.value, account.id)
        return SessionGrant(token=self._sessions.open(account.id), account=account)

    def end_session(self, token: Optional[str]) -> None:
        if token:
            self._sessions.close(token)

    def is_privileged(self, account_id: str) -> bool:
        account = self._accounts.get(account_id)
        return account is not None and account.role == RoleEnum.admin

    def require_privileged(self, account_id: str) -> None:
        if not self.is_privileged(account_id):
            raise Unauthorized("Administrator access is required.")

    def require_self_or_privileged(self, actor_id: str, account_id: str) -> None:
        if actor_id != account_id:
            self.require_privileged(actor_id)

    def get_account(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found.")
        return account

    def _verify_not_burner(self, email: str) -> None:
        if not self._block_disposable:
            return
        domain = email.split("@")[-1]
        if domain in blocklist:
            raise ValidationError("Disposable/temporary email addresses are not accepted.")
