"""Wires the four ledger components over one pair of repositories.

The storage backend is chosen here, once, from configuration.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from smart_circular.core.config import Settings
from smart_circular.core.database import create_tables, make_engine, make_session_factory
from smart_circular.core.locks import KeyedLocks
from smart_circular.repositories.base import AccountRepository, ReportRepository, RevokedTokenRepository
from smart_circular.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryReportRepository,
    InMemoryRevokedTokenRepository,
)
from smart_circular.repositories.sql import SqlAccountRepository, SqlReportRepository, SqlRevokedTokenRepository
from smart_circular.services.directory import UserDirectory
from smart_circular.services.identity import IdentityProvider, SessionStore
from smart_circular.services.moderation import ModerationEngine
from smart_circular.services.security import make_password_context
from smart_circular.services.reports import ReportStore

logger = logging.getLogger(__name__)


@dataclass
class Ledger:
    identity: IdentityProvider
    directory: UserDirectory
    reports: ReportStore
    moderation: ModerationEngine


def build_ledger(
    settings: Settings,
    accounts: AccountRepository,
    reports: ReportRepository,
    revoked_tokens: Optional[RevokedTokenRepository] = None,
) -> Ledger:
    locks = KeyedLocks()
    sessions = SessionStore(
        settings.JWT_SECRET,
        timedelta(minutes=settings.SESSION_TTL_MINUTES),
        revoked_tokens or InMemoryRevokedTokenRepository(),
    )
    directory = UserDirectory(accounts, locks)
    return Ledger(
        identity=IdentityProvider(
            accounts,
            sessions,
            admin_emails=settings.ADMIN_EMAILS,
            block_disposable_emails=settings.BLOCK_DISPOSABLE_EMAILS,
            passwords=make_password_context(settings.PASSWORD_HASH_ITERATIONS),
        ),
        directory=directory,
        reports=ReportStore(reports, accounts, locks, settings.points_table()),
        moderation=ModerationEngine(reports, directory, locks),
    )


def create_ledger(settings: Settings) -> Ledger:
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory storage backend")
        return build_ledger(settings, InMemoryAccountRepository(), InMemoryReportRepository())

    if backend == "database":
        # Fail fast on a missing URL
        if not settings.DATABASE_URL:
            raise RuntimeError("Missing required env var: DATABASE_URL (STORAGE_BACKEND=database)")
        engine = make_engine(settings.DATABASE_URL)
        if settings.AUTO_CREATE_TABLES:
            create_tables(engine)
        session_factory = make_session_factory(engine)
        logger.info("Using database storage backend (%s)", engine.url.render_as_string(hide_password=True))
        return build_ledger(
            settings,
            SqlAccountRepository(session_factory),
            SqlReportRepository(session_factory),
            SqlRevokedTokenRepository(session_factory),
        )

    raise RuntimeError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}; use 'memory' or 'database'")
