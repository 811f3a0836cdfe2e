"""Persistence backends for awardee profiles and feature requests."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from app.config import settings
from app.models.awardee import AwardeeProfile
from app.models.feature_request import FeatureRequest, FeatureRequestStatus
from app.models.records import AwardeeRecord, FeatureRequestRecord
from app.observability.metrics import metrics
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AwardeeRepository(Protocol):
    """Persistence contract for awardee profiles."""

    def get(self, awardee_id: str) -> AwardeeProfile | None:
        ...

    def get_by_slug(self, slug: str) -> AwardeeProfile | None:
        ...

    def save(self, profile: AwardeeProfile) -> AwardeeProfile:
        ...

    def update(self, awardee_id: str, changes: Mapping[str, Any]) -> AwardeeProfile | None:
        ...


class FeatureRequestRepository(Protocol):
    """Persistence contract for feature requests."""

    def create(self, request: FeatureRequest) -> FeatureRequest:
        ...

    def get(self, request_id: str) -> FeatureRequest | None:
        ...

    def list(self, *, status: FeatureRequestStatus | None = None) -> list[FeatureRequest]:
        ...

    def update(self, request_id: str, changes: Mapping[str, Any]) -> FeatureRequest | None:
        ...


class InMemoryAwardeeRepository(AwardeeRepository):
    """Thread-safe repository used for API/local development."""

    def __init__(self, profiles: list[AwardeeProfile] | None = None) -> None:
        self._profiles: dict[str, AwardeeProfile] = {}
        self._lock = Lock()
        for profile in profiles or []:
            self.save(profile)

    def get(self, awardee_id: str) -> AwardeeProfile | None:
        with self._lock:
            profile = self._profiles.get(awardee_id)
        return profile.model_copy(deep=True) if profile else None

    def get_by_slug(self, slug: str) -> AwardeeProfile | None:
        with self._lock:
            match = next((p for p in self._profiles.values() if p.slug == slug), None)
        return match.model_copy(deep=True) if match else None

    def save(self, profile: AwardeeProfile) -> AwardeeProfile:
        with self._lock:
            clash = next(
                (
                    p
                    for p in self._profiles.values()
                    if p.slug == profile.slug and p.id != profile.id
                ),
                None,
            )
            if clash is not None:
                raise PersistenceError(
                    f"Slug '{profile.slug}' is already taken.", code="409_SLUG_TAKEN"
                )
            self._profiles[profile.id] = profile.model_copy(deep=True)
        metrics.increment("awardees.persistence.saved", tags={"repository": "memory"})
        return profile

    def update(self, awardee_id: str, changes: Mapping[str, Any]) -> AwardeeProfile | None:
        with self._lock:
            current = self._profiles.get(awardee_id)
            if current is None:
                return None
            updated = current.model_copy(update={**changes, "updated_at": _utcnow()}, deep=True)
            self._profiles[awardee_id] = updated
        metrics.increment("awardees.persistence.updated", tags={"repository": "memory"})
        logger.info(
            "awardees.persistence.updated",
            extra={"awardee_id": awardee_id, "fields": sorted(changes), "backend": "memory"},
        )
        return updated.model_copy(deep=True)


class InMemoryFeatureRequestRepository(FeatureRequestRepository):
    """Thread-safe feature-request store used for API/local development."""

    def __init__(self) -> None:
        self._requests: dict[str, FeatureRequest] = {}
        self._lock = Lock()

    def create(self, request: FeatureRequest) -> FeatureRequest:
        with self._lock:
            if request.id in self._requests:
                raise PersistenceError(
                    "Feature request already exists.", code="409_FEATURE_REQUEST_EXISTS"
                )
            self._requests[request.id] = request.model_copy(deep=True)
        metrics.increment("feature_requests.persistence.created", tags={"repository": "memory"})
        logger.info(
            "feature_requests.persistence.created",
            extra={"request_id": request.id, "awardee_id": request.awardee_id, "backend": "memory"},
        )
        return request

    def get(self, request_id: str) -> FeatureRequest | None:
        with self._lock:
            request = self._requests.get(request_id)
        return request.model_copy(deep=True) if request else None

    def list(self, *, status: FeatureRequestStatus | None = None) -> list[FeatureRequest]:
        with self._lock:
            matches = [
                r for r in self._requests.values() if status is None or r.status == status
            ]
        return sorted(matches, key=lambda entry: entry.created_at, reverse=True)

    def update(self, request_id: str, changes: Mapping[str, Any]) -> FeatureRequest | None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                return None
            updated = current.model_copy(update={**changes, "updated_at": _utcnow()}, deep=True)
            self._requests[request_id] = updated
        return updated.model_copy(deep=True)


class _SqlModelRepository:
    """Shared engine/session plumbing for the Postgres/Supabase repositories."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for database-backed repositories.")

        parsed_url = make_url(database_url)
        sync_url, connect_args, drivername = _coerce_sync_database_url(parsed_url)
        pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
        pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {
            "echo": settings.debug,
            "connect_args": connect_args,
            "pool_pre_ping": not is_sqlite,
        }
        if not is_sqlite:
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)

        self._engine: Engine = create_engine(sync_url, **engine_kwargs)
        if auto_create_schema:
            SQLModel.metadata.create_all(self._engine)
        self._metrics_tags = {"repository": _resolve_metrics_tag(parsed_url, drivername)}

    @classmethod
    def from_engine(cls, engine: Engine, *, backend: str = "sqlite"):
        """Wrap an existing engine (used by tests with in-memory SQLite)."""
        repository = cls.__new__(cls)
        repository._engine = engine
        repository._metrics_tags = {"repository": backend}
        return repository

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session


class SupabaseAwardeeRepository(_SqlModelRepository, AwardeeRepository):
    """SQLModel-backed awardee repository."""

    def get(self, awardee_id: str) -> AwardeeProfile | None:
        try:
            with self._session() as session:
                record = session.get(AwardeeRecord, awardee_id)
                return record.to_profile() if record else None
        except SQLAlchemyError as exc:
            logger.exception(
                "awardees.persistence.error",
                extra={"awardee_id": awardee_id, "backend": self._metrics_tags["repository"]},
            )
            raise PersistenceError("Failed to load awardee.", code="500_INTERNAL") from exc

    def get_by_slug(self, slug: str) -> AwardeeProfile | None:
        try:
            with self._session() as session:
                statement = select(AwardeeRecord).where(AwardeeRecord.slug == slug)
                record = session.exec(statement).first()
                return record.to_profile() if record else None
        except SQLAlchemyError as exc:
            logger.exception(
                "awardees.persistence.error",
                extra={"slug": slug, "backend": self._metrics_tags["repository"]},
            )
            raise PersistenceError("Failed to load awardee.", code="500_INTERNAL") from exc

    def save(self, profile: AwardeeProfile) -> AwardeeProfile:
        record = AwardeeRecord.from_profile(profile)
        try:
            with self._session() as session:
                persisted = session.merge(record)
                session.commit()
                session.refresh(persisted)
                metrics.increment("awardees.persistence.saved", tags=self._metrics_tags)
                return persisted.to_profile()
        except IntegrityError as exc:
            logger.warning(
                "awardees.persistence.conflict",
                extra={"awardee_id": profile.id, "slug": profile.slug},
            )
            raise PersistenceError(
                f"Slug '{profile.slug}' is already taken.", code="409_SLUG_TAKEN"
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("awardees.persistence.error", extra={"awardee_id": profile.id})
            raise PersistenceError("Failed to persist awardee.", code="500_INTERNAL") from exc

    def update(self, awardee_id: str, changes: Mapping[str, Any]) -> AwardeeProfile | None:
        try:
            with self._session() as session:
                record = session.get(AwardeeRecord, awardee_id)
                if record is None:
                    return None
                for field, value in changes.items():
                    setattr(record, field, value)
                record.updated_at = _utcnow()
                session.add(record)
                session.commit()
                session.refresh(record)
                metrics.increment("awardees.persistence.updated", tags=self._metrics_tags)
                logger.info(
                    "awardees.persistence.updated",
                    extra={
                        "awardee_id": awardee_id,
                        "fields": sorted(changes),
                        "backend": self._metrics_tags["repository"],
                    },
                )
                return record.to_profile()
        except SQLAlchemyError as exc:
            logger.exception("awardees.persistence.error", extra={"awardee_id": awardee_id})
            raise PersistenceError("Failed to update awardee.", code="500_INTERNAL") from exc


class SupabaseFeatureRequestRepository(_SqlModelRepository, FeatureRequestRepository):
    """SQLModel-backed feature-request repository."""

    def create(self, request: FeatureRequest) -> FeatureRequest:
        record = FeatureRequestRecord.from_feature_request(request)
        try:
            with self._session() as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                metrics.increment("feature_requests.persistence.created", tags=self._metrics_tags)
                logger.info(
                    "feature_requests.persistence.created",
                    extra={
                        "request_id": record.id,
                        "awardee_id": record.awardee_id,
                        "backend": self._metrics_tags["repository"],
                    },
                )
                return record.to_feature_request()
        except IntegrityError as exc:
            raise PersistenceError(
                "Feature request already exists.", code="409_FEATURE_REQUEST_EXISTS"
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception(
                "feature_requests.persistence.error", extra={"awardee_id": request.awardee_id}
            )
            raise PersistenceError(
                "Failed to persist feature request.", code="500_INTERNAL"
            ) from exc

    def get(self, request_id: str) -> FeatureRequest | None:
        try:
            with self._session() as session:
                record = session.get(FeatureRequestRecord, request_id)
                return record.to_feature_request() if record else None
        except SQLAlchemyError as exc:
            logger.exception("feature_requests.persistence.error", extra={"request_id": request_id})
            raise PersistenceError("Failed to load feature request.", code="500_INTERNAL") from exc

    def list(self, *, status: FeatureRequestStatus | None = None) -> list[FeatureRequest]:
        try:
            with self._session() as session:
                statement = select(FeatureRequestRecord)
                if status is not None:
                    statement = statement.where(FeatureRequestRecord.status == status.value)
                statement = statement.order_by(FeatureRequestRecord.created_at.desc())
                return [record.to_feature_request() for record in session.exec(statement).all()]
        except SQLAlchemyError as exc:
            logger.exception("feature_requests.persistence.error", extra={"status": status})
            raise PersistenceError(
                "Failed to list feature requests.", code="500_INTERNAL"
            ) from exc

    def update(self, request_id: str, changes: Mapping[str, Any]) -> FeatureRequest | None:
        try:
            with self._session() as session:
                record = session.get(FeatureRequestRecord, request_id)
                if record is None:
                    return None
                for field, value in changes.items():
                    setattr(record, field, getattr(value, "value", value))
                record.updated_at = _utcnow()
                session.add(record)
                session.commit()
                session.refresh(record)
                return record.to_feature_request()
        except SQLAlchemyError as exc:
            logger.exception("feature_requests.persistence.error", extra={"request_id": request_id})
            raise PersistenceError(
                "Failed to update feature request.", code="500_INTERNAL"
            ) from exc


def _coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = "sqlite"
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = "ssl" in query
    query.pop("ssl", None)
    sync_url = sync_url.set(query=query) if query else sync_url.set(query={})

    host = (url.host or "").lower()
    if drivername.startswith("postgresql"):
        if "sslmode" not in query and (removed_ssl or "supabase.co" in host):
            connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def _resolve_metrics_tag(url: URL, drivername: str) -> str:
    host = (url.host or "").lower()
    if "supabase.co" in host:
        return "supabase"
    if drivername.startswith("sqlite"):
        return "sqlite"
    return "postgres"


def build_awardee_repository(database_url: str | None = None) -> AwardeeRepository:
    """Instantiate an AwardeeRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("awardees.repository.initialized", extra={"backend": "memory"})
        return InMemoryAwardeeRepository()
    try:
        repository = SupabaseAwardeeRepository(resolved_url)
        logger.info("awardees.repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("awardees.repository.init_failed", extra={"backend": "database"})
        raise


def build_feature_request_repository(
    database_url: str | None = None,
) -> FeatureRequestRepository:
    """Instantiate a FeatureRequestRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("feature_requests.repository.initialized", extra={"backend": "memory"})
        return InMemoryFeatureRequestRepository()
    try:
        repository = SupabaseFeatureRequestRepository(resolved_url)
        logger.info("feature_requests.repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("feature_requests.repository.init_failed", extra={"backend": "database"})
        raise
