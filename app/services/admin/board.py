"""Admin feature-request board: reducer-driven state with optimistic updates."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Protocol, Union

from app.clients.data_api import DataApiClient
from app.clients.errors import CollaboratorError, parse_response
from app.models.feature_request import (
    FeatureRequest,
    FeatureRequestStatus,
    FeatureRequestUpdate,
    PaymentStatus,
)
from app.services.errors import ServiceError
from app.services.repositories import FeatureRequestRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardState:
    requests: tuple[FeatureRequest, ...] = ()
    # Pre-change snapshots for in-flight optimistic updates, keyed by request id.
    snapshots: dict[str, FeatureRequest] = field(default_factory=dict)
    error: str | None = None
    notice: str | None = None

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self.snapshots)


@dataclass(frozen=True)
class Loaded:
    requests: Sequence[FeatureRequest]


@dataclass(frozen=True)
class StatusChangeRequested:
    request_id: str
    update: FeatureRequestUpdate


@dataclass(frozen=True)
class StatusChangeConfirmed:
    request: FeatureRequest


@dataclass(frozen=True)
class StatusChangeFailed:
    request_id: str
    message: str


@dataclass(frozen=True)
class RefreshFailed:
    message: str


BoardAction = Union[Loaded, StatusChangeRequested, StatusChangeConfirmed, StatusChangeFailed, RefreshFailed]


def _replace_request(
    requests: Iterable[FeatureRequest], request_id: str, new: FeatureRequest
) -> tuple[FeatureRequest, ...]:
    return tuple(new if r.id == request_id else r for r in requests)


def reduce(state: BoardState, action: BoardAction) -> BoardState:
    """Pure transition function for the board."""
    if isinstance(action, Loaded):
        # Keep optimistic values for rows whose mutation has not settled yet.
        incoming = []
        current = {r.id: r for r in state.requests}
        for request in action.requests:
            if request.id in state.snapshots and request.id in current:
                incoming.append(current[request.id])
            else:
                incoming.append(request)
        return replace(state, requests=tuple(incoming), notice=None)

    if isinstance(action, StatusChangeRequested):
        target = next((r for r in state.requests if r.id == action.request_id), None)
        if target is None:
            return replace(state, error=f"Feature request {action.request_id} is not loaded.")
        optimistic = target.model_copy(update=action.update.changes())
        snapshots = {**state.snapshots, action.request_id: state.snapshots.get(action.request_id, target)}
        return replace(
            state,
            requests=_replace_request(state.requests, action.request_id, optimistic),
            snapshots=snapshots,
            error=None,
        )

    if isinstance(action, StatusChangeConfirmed):
        snapshots = {k: v for k, v in state.snapshots.items() if k != action.request.id}
        return replace(
            state,
            requests=_replace_request(state.requests, action.request.id, action.request),
            snapshots=snapshots,
        )

    if isinstance(action, StatusChangeFailed):
        original = state.snapshots.get(action.request_id)
        snapshots = {k: v for k, v in state.snapshots.items() if k != action.request_id}
        requests = state.requests
        if original is not None:
            requests = _replace_request(requests, action.request_id, original)
        return replace(state, requests=requests, snapshots=snapshots, error=action.message)

    if isinstance(action, RefreshFailed):
        return replace(state, notice=action.message)

    raise TypeError(f"Unhandled board action: {type(action).__name__}")


def filter_requests(
    requests: Iterable[FeatureRequest],
    *,
    status: FeatureRequestStatus | str | None = None,
    query: str = "",
) -> list[FeatureRequest]:
    """Status filter (`None`/`"all"` keeps everything) plus a free-text search."""
    wanted = None if status in (None, "all") else FeatureRequestStatus(status)
    needle = query.strip().casefold()
    matches = []
    for request in requests:
        if wanted is not None and request.status is not wanted:
            continue
        if needle:
            haystack = " ".join(
                value
                for value in (request.awardee_name, request.contact_email, request.whatsapp_number)
                if value
            ).casefold()
            if needle not in haystack:
                continue
        matches.append(request)
    return matches


@dataclass(frozen=True)
class BoardStats:
    total: int
    pending: int
    paid: int
    published: int


def compute_stats(requests: Sequence[FeatureRequest]) -> BoardStats:
    return BoardStats(
        total=len(requests),
        pending=sum(1 for r in requests if r.status is FeatureRequestStatus.PENDING),
        paid=sum(
            1
            for r in requests
            if r.status is FeatureRequestStatus.PAID
            or r.payment_status is PaymentStatus.CONFIRMED
        ),
        published=sum(1 for r in requests if r.status is FeatureRequestStatus.PUBLISHED),
    )


class BoardBackend(Protocol):
    def list_feature_requests(self) -> list[FeatureRequest]:
        ...

    def update_feature_request(
        self, request_id: str, update: FeatureRequestUpdate
    ) -> FeatureRequest:
        ...


class RepositoryBoardBackend(BoardBackend):
    def __init__(self, requests: FeatureRequestRepository) -> None:
        self._requests = requests

    def list_feature_requests(self) -> list[FeatureRequest]:
        try:
            return self._requests.list()
        except ServiceError as exc:
            raise CollaboratorError(str(exc), code=exc.code) from exc

    def update_feature_request(
        self, request_id: str, update: FeatureRequestUpdate
    ) -> FeatureRequest:
        try:
            updated = self._requests.update(request_id, update.changes())
        except ServiceError as exc:
            raise CollaboratorError(str(exc), code=exc.code) from exc
        if updated is None:
            raise CollaboratorError("Feature request not found", code="404_FEATURE_REQUEST")
        return updated


class HttpBoardBackend(BoardBackend):
    def __init__(self, client: DataApiClient) -> None:
        self._client = client

    def list_feature_requests(self) -> list[FeatureRequest]:
        return [
            parse_response(FeatureRequest, entry, service="data API")
            for entry in self._client.list_feature_requests()
        ]

    def update_feature_request(
        self, request_id: str, update: FeatureRequestUpdate
    ) -> FeatureRequest:
        data = self._client.update_feature_request(request_id, update.model_dump(mode="json", exclude_unset=True))
        return parse_response(FeatureRequest, data, service="data API")


class FeatureRequestBoard:
    """Owns one BoardState and applies actions through `reduce`."""

    def __init__(self, backend: BoardBackend) -> None:
        self._backend = backend
        self.state = BoardState()

    def dispatch(self, action: BoardAction) -> BoardState:
        self.state = reduce(self.state, action)
        return self.state

    def refresh(self) -> BoardState:
        """Best-effort reload; a failure leaves a soft notice, never raises."""
        try:
            requests = self._backend.list_feature_requests()
        except CollaboratorError as exc:
            logger.warning("admin.board.refresh_failed", extra={"code": exc.code, "error": str(exc)})
            return self.dispatch(RefreshFailed("Refresh failed; showing cached requests."))
        return self.dispatch(Loaded(requests))

    def change_status(
        self,
        request_id: str,
        *,
        status: FeatureRequestStatus | None = None,
        payment_status: PaymentStatus | None = None,
        admin_notes: str | None = None,
    ) -> bool:
        """Apply optimistically, await the mutation, roll back on failure.

        Returns True when the mutation succeeded. The follow-up refresh is
        best-effort and cannot turn a successful mutation into a failure.
        """
        values = {
            key: value
            for key, value in (
                ("status", status),
                ("payment_status", payment_status),
                ("admin_notes", admin_notes),
            )
            if value is not None
        }
        update = FeatureRequestUpdate(**values)
        self.dispatch(StatusChangeRequested(request_id, update))
        if self.state.error:
            return False
        try:
            confirmed = self._backend.update_feature_request(request_id, update)
        except CollaboratorError as exc:
            logger.error(
                "admin.board.update_failed",
                extra={"request_id": request_id, "code": exc.code, "error": str(exc)},
            )
            self.dispatch(StatusChangeFailed(request_id, "Failed to update feature request"))
            return False
        self.dispatch(StatusChangeConfirmed(confirmed))
        self.refresh()
        return True

    def visible(self, *, status: FeatureRequestStatus | str | None = None, query: str = "") -> list[FeatureRequest]:
        return filter_requests(self.state.requests, status=status, query=query)

    def stats(self) -> BoardStats:
        return compute_stats(self.state.requests)
