import logging
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from smart_circular.models import AccountRow, ReportRow, RevokedTokenRow
from smart_circular.repositories.base import AccountRepository, ReportRepository, RevokedTokenRepository
from smart_circular.schemas.schemas import Account, Location, Report, StatusEnum

logger = logging.getLogger(__name__)


def _to_account(row: AccountRow) -> Account:
    return Account.model_validate(row)


def _to_report(row: ReportRow) -> Report:
    location = None
    if row.address is not None or row.latitude is not None or row.longitude is not None:
        location = Location(address=row.address or "", latitude=row.latitude, longitude=row.longitude)
    return Report(
        id=row.id,
        owner_id=row.owner_id,
        category=row.category,
        description=row.description,
        label=row.label,
        image_url=row.image_url,
        location=location,
        status=row.status,
        points=row.points,
        created_at=row.created_at,
    )


class SqlAccountRepository(AccountRepository):
    """Accounts stored in the ``accounts`` table; one short transaction per call."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(self, account: Account, password_hash: str) -> Account:
        row = AccountRow(
            id=account.id,
            name=account.name,
            email=account.email.lower(),
            password_hash=password_hash,
            pincode=account.pincode,
            address=account.address,
            reward_points=account.reward_points,
            role=account.role.value,
            created_at=account.created_at,
        )
        with self._session_factory() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ValueError(f"account {account.id} / {account.email} already exists") from e
            db.refresh(row)
            return _to_account(row)

    def get(self, account_id: str) -> Optional[Account]:
        with self._session_factory() as db:
            row = db.get(AccountRow, account_id)
            return _to_account(row) if row else None

    def get_by_email(self, email: str) -> Optional[Tuple[Account, str]]:
        with self._session_factory() as db:
            row = db.query(AccountRow).filter(func.lower(AccountRow.email) == email.strip().lower()).first()
            if not row:
                return None
            return _to_account(row), row.password_hash

    def list(self) -> Sequence[Account]:
        with self._session_factory() as db:
            rows = db.query(AccountRow).order_by(AccountRow.created_at, AccountRow.id).all()
            return [_to_account(row) for row in rows]

    def update_profile(self, account_id: str, changes: dict) -> Optional[Account]:
        with self._session_factory() as db:
            row = db.get(AccountRow, account_id)
            if not row:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            db.commit()
            db.refresh(row)
            return _to_account(row)

    def add_points(self, account_id: str, amount: int) -> Optional[Account]:
        with self._session_factory() as db:
            # Increment inside the database so concurrent writers never lose an update
            updated = (
                db.query(AccountRow)
                .filter(AccountRow.id == account_id)
                .update({AccountRow.reward_points: AccountRow.reward_points + amount}, synchronize_session=False)
            )
            if not updated:
                db.rollback()
                return None
            db.commit()
            return _to_account(db.get(AccountRow, account_id, populate_existing=True))


class SqlReportRepository(ReportRepository):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(self, report: Report) -> Report:
        location = report.location
        row = ReportRow(
            id=report.id,
            owner_id=report.owner_id,
            category=report.category.value,
            description=report.description,
            label=report.label,
            image_url=report.image_url,
            address=location.address if location else None,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            status=report.status.value,
            points=report.points,
            created_at=report.created_at,
        )
        with self._session_factory() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ValueError(f"report id {report.id} already exists") from e
            db.refresh(row)
            return _to_report(row)

    def get(self, report_id: str) -> Optional[Report]:
        with self._session_factory() as db:
            row = db.get(ReportRow, report_id)
            return _to_report(row) if row else None

    def list_by_owner(self, owner_id: str) -> Sequence[Report]:
        with self._session_factory() as db:
            rows = (
                db.query(ReportRow)
                .filter(ReportRow.owner_id == owner_id)
                .order_by(ReportRow.created_at, ReportRow.id)
                .all()
            )
            return [_to_report(row) for row in rows]

    def list_all(self) -> Sequence[Report]:
        with self._session_factory() as db:
            rows = db.query(ReportRow).order_by(ReportRow.created_at, ReportRow.id).all()
            return [_to_report(row) for row in rows]

    def transition(self, report_id: str, expected: StatusEnum, new: StatusEnum) -> Optional[Report]:
        with self._session_factory() as db:
            updated = (
                db.query(ReportRow)
                .filter(ReportRow.id == report_id, ReportRow.status == expected.value)
                .update({ReportRow.status: new.value}, synchronize_session=False)
            )
            if not updated:
                db.rollback()
                return None
            db.commit()
            return _to_report(db.get(ReportRow, report_id, populate_existing=True))

    def delete(self, report_id: str) -> bool:
        with self._session_factory() as db:
            deleted = db.query(ReportRow).filter(ReportRow.id == report_id).delete(synchronize_session=False)
            db.commit()
            if deleted:
                logger.info("Deleted report %s", report_id)
            return bool(deleted)


class SqlRevokedTokenRepository(RevokedTokenRepository):
    """Revocations shared by every worker on the same database."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def revoke(self, jti: str, expires_at: datetime) -> None:
        with self._session_factory() as db:
            db.query(RevokedTokenRow).filter(
                RevokedTokenRow.expires_at < datetime.now(timezone.utc)
            ).delete(synchronize_session=False)
            if db.get(RevokedTokenRow, jti) is None:
                db.add(RevokedTokenRow(jti=jti, expires_at=expires_at))
            try:
                db.commit()
            except IntegrityError:
                # Another worker recorded the same revocation first
                db.rollback()

    def is_revoked(self, jti: str) -> bool:
        with self._session_factory() as db:
            return db.get(RevokedTokenRow, jti) is not None
