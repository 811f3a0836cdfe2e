from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.engine.url import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.models.feature_request import (
    FeatureRequest,
    FeatureRequestStatus,
    PaymentStatus,
)
from app.services.errors import PersistenceError
from app.services.repositories import (
    InMemoryAwardeeRepository,
    SupabaseAwardeeRepository,
    SupabaseFeatureRequestRepository,
    _coerce_sync_database_url,
    build_awardee_repository,
)
from tests.helpers.collaborators import make_profile


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


def _request(index: int, **overrides) -> FeatureRequest:
    values = {
        "awardee_id": "awd-ada",
        "awardee_name": "Ada Obi",
        "contact_email": "ada@kora.africa",
        "whatsapp_number": "+2348012345678",
        "amount": 40000,
        "currency": "NGN",
        "needs_article_written": True,
        "created_at": datetime(2024, 11, 1, tzinfo=timezone.utc) + timedelta(minutes=index),
    }
    values.update(overrides)
    return FeatureRequest(**values)


def test_sql_awardee_repository_round_trip(engine):
    repository = SupabaseAwardeeRepository.from_engine(engine)
    repository.save(make_profile())

    loaded = repository.get("awd-ada")
    by_slug = repository.get_by_slug("ada-obi")

    assert loaded is not None
    assert loaded.email == "Ada.Obi@Example.com"
    assert loaded.social_links == {"linkedin": "https://linkedin.com/in/adaobi"}
    assert by_slug.id == "awd-ada"
    assert repository.get("awd-missing") is None


def test_sql_awardee_update_touches_only_given_fields(engine):
    repository = SupabaseAwardeeRepository.from_engine(engine)
    repository.save(make_profile())

    updated = repository.update("awd-ada", {"headline": "CEO", "social_links": {"github": "ada"}})

    assert updated.headline == "CEO"
    assert updated.social_links == {"github": "ada"}
    assert updated.email == "Ada.Obi@Example.com"
    assert repository.update("awd-missing", {"headline": "x"}) is None


def test_sql_awardee_slug_conflict_raises(engine):
    repository = SupabaseAwardeeRepository.from_engine(engine)
    repository.save(make_profile())

    with pytest.raises(PersistenceError) as excinfo:
        repository.save(make_profile(id="awd-other"))

    assert excinfo.value.code == "409_SLUG_TAKEN"


def test_in_memory_slug_conflict_raises():
    repository = InMemoryAwardeeRepository([make_profile()])

    with pytest.raises(PersistenceError):
        repository.save(make_profile(id="awd-other"))


def test_sql_feature_requests_list_newest_first_and_filter(engine):
    repository = SupabaseFeatureRequestRepository.from_engine(engine)
    first = repository.create(_request(0))
    second = repository.create(_request(1, status=FeatureRequestStatus.PAID))

    assert [r.id for r in repository.list()] == [second.id, first.id]
    assert [r.id for r in repository.list(status=FeatureRequestStatus.PAID)] == [second.id]


def test_sql_feature_request_update_stores_enum_values(engine):
    repository = SupabaseFeatureRequestRepository.from_engine(engine)
    created = repository.create(_request(0))

    updated = repository.update(
        created.id,
        {
            "status": FeatureRequestStatus.IN_PROGRESS,
            "payment_status": PaymentStatus.CONFIRMED,
            "admin_notes": "Writer assigned",
        },
    )

    assert updated.status is FeatureRequestStatus.IN_PROGRESS
    assert updated.payment_status is PaymentStatus.CONFIRMED
    assert repository.get(created.id).admin_notes == "Writer assigned"
    assert repository.update("fr-missing", {"admin_notes": "x"}) is None


def test_async_urls_are_coerced_to_sync_drivers():
    url, connect_args, driver = _coerce_sync_database_url(
        make_url("postgresql+asyncpg://user:pw@db.abc.supabase.co:5432/postgres")
    )
    assert driver == "postgresql+psycopg2"
    assert url.startswith("postgresql+psycopg2://")
    assert connect_args == {"sslmode": "require"}

    _, sqlite_args, sqlite_driver = _coerce_sync_database_url(make_url("sqlite+aiosqlite:///app.db"))
    assert sqlite_driver == "sqlite"
    assert sqlite_args == {"check_same_thread": False}


def test_build_repository_without_database_url_uses_memory(monkeypatch):
    monkeypatch.setattr("app.services.repositories.settings.database_url", None)

    assert isinstance(build_awardee_repository(), InMemoryAwardeeRepository)
