import pytest
from pydantic import ValidationError as PydanticValidationError

from smart_circular.core.config import Settings
from smart_circular.core.exceptions import AlreadyDecided, DuplicateEmail, NotFound
from smart_circular.ledger import create_ledger
from smart_circular.schemas.schemas import Location, ProfileUpdate, RegisterRequest, StatusEnum


def database_settings(tmp_path):
    return Settings(
        STORAGE_BACKEND="database",
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        AUTO_CREATE_TABLES=True,
        BLOCK_DISPOSABLE_EMAILS=False,
        PASSWORD_HASH_ITERATIONS=1000,
    )


@pytest.fixture
def sql_ledger(tmp_path):
    return create_ledger(database_settings(tmp_path))


def test_database_backend_full_lifecycle(sql_ledger, register):
    alice = register(sql_ledger, "alice@example.com")
    with pytest.raises(DuplicateEmail):
        register(sql_ledger, "Alice@Example.com")

    report = sql_ledger.reports.submit(
        alice.id, "flood", "Road flooded",
        label="Flash flood",
        image_url="https://example.com/x.jpg",
        location=Location(address="Ring Road", latitude=12.97, longitude=77.59),
    )
    stored = sql_ledger.reports.get(report.id)
    assert stored.location.address == "Ring Road"
    assert stored.label == "Flash flood"
    assert stored.status == StatusEnum.pending

    sql_ledger.moderation.decide(report.id, "approved")
    with pytest.raises(AlreadyDecided):
        sql_ledger.moderation.decide(report.id, "rejected")

    assert sql_ledger.reports.get(report.id).status == StatusEnum.approved
    assert sql_ledger.directory.get(alice.id).reward_points == 15
    assert [r.id for r in sql_ledger.reports.list_by_owner(alice.id)] == [report.id]


def test_database_backend_login_and_profile(sql_ledger, register):
    alice = register(sql_ledger, "alice@example.com")
    grant = sql_ledger.identity.authenticate("ALICE@EXAMPLE.COM", "secret123")
    assert grant.account.id == alice.id

    updated = sql_ledger.directory.update_profile(alice.id, ProfileUpdate(pincode="560001"))
    assert updated.pincode == "560001"
    assert updated.name == "Alice"

    with pytest.raises(NotFound):
        sql_ledger.directory.credit_points("missing", 5)
    assert sql_ledger.directory.credit_points(alice.id, 5).reward_points == 5


def test_database_backend_lists_in_creation_order(sql_ledger, register):
    first = register(sql_ledger, "first@example.com", name="First")
    second = register(sql_ledger, "second@example.com", name="Second")
    assert [a.id for a in sql_ledger.directory.list()] == [first.id, second.id]

    report = sql_ledger.reports.submit(first.id, "waste", "Litter")
    sql_ledger.reports.delete(report.id)
    assert sql_ledger.reports.list_all() == []


def test_database_backend_requires_url():
    with pytest.raises(RuntimeError):
        create_ledger(Settings(STORAGE_BACKEND="database", DATABASE_URL=None))
    with pytest.raises(RuntimeError):
        create_ledger(Settings(STORAGE_BACKEND="carrier-pigeon"))


def test_token_from_one_worker_is_accepted_by_another(tmp_path):
    # Two ledgers on one database file stand in for two server workers
    worker_a = create_ledger(database_settings(tmp_path))
    worker_b = create_ledger(database_settings(tmp_path))

    grant = worker_a.identity.register(RegisterRequest(name="Alice", email="alice@example.com", password="secret123"))
    token = grant.token
    account_id = worker_a.identity.current_session(token)

    assert account_id is not None
    assert worker_b.identity.current_session(token) == account_id

    worker_b.identity.end_session(token)
    assert worker_a.identity.current_session(token) is None
    worker_a.identity.end_session(token)


def test_decision_on_one_worker_blocks_the_other(tmp_path, register):
    worker_a = create_ledger(database_settings(tmp_path))
    worker_b = create_ledger(database_settings(tmp_path))
    alice = register(worker_a, "alice@example.com")
    report = worker_a.reports.submit(alice.id, "flood", "Road flooded")

    worker_a.moderation.decide(report.id, "approved")
    with pytest.raises(AlreadyDecided):
        worker_b.moderation.decide(report.id, "approved")

    assert worker_b.reports.get(report.id).status == StatusEnum.approved
    assert worker_b.directory.get(alice.id).reward_points == 15


def test_point_table_must_be_positive():
    with pytest.raises(PydanticValidationError):
        Settings(POINTS_WASTE=0)
    with pytest.raises(PydanticValidationError):
        Settings(POINTS_FLOOD=-15)
    assert Settings().points_table() == {"waste": 10, "flood": 15, "electricity": 12}
