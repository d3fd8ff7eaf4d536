import pytest

from smart_circular.core.config import Settings
from smart_circular.ledger import build_ledger
from smart_circular.repositories.memory import InMemoryAccountRepository, InMemoryReportRepository
from smart_circular.schemas.schemas import RegisterRequest


@pytest.fixture
def ledger_settings():
    return Settings(
        STORAGE_BACKEND="memory",
        BLOCK_DISPOSABLE_EMAILS=False,
        PASSWORD_HASH_ITERATIONS=1000,
        ADMIN_EMAILS=["admin@example.com"],
    )


@pytest.fixture
def ledger(ledger_settings):
    return build_ledger(ledger_settings, InMemoryAccountRepository(), InMemoryReportRepository())


@pytest.fixture
def register():
    def _register(ledger, email, name="Alice", password="secret123"):
        return ledger.identity.register(RegisterRequest(name=name, email=email, password=password)).account
    return _register
