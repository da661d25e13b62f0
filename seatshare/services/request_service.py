"""
Slot request use cases.

Validates a user's ask for a seat, records it as a request, runs the
assignment engine and keeps the request lifecycle up to date:

    PENDING --(engine finds capacity)--> ASSIGNED
    PENDING --(no capacity)-----------> PENDING   (picked up by process_pending)
    PENDING --(user / admin)----------> CANCELLED | REJECTED
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from loguru import logger

from seatshare.core.errors import (
    AlreadyAssignedError,
    DuplicateRequestError,
    InvalidTransitionError,
    NotFoundError,
    SeatshareError,
    UnsupportedError,
    ValidationError,
)
from seatshare.db.models import SlotAssignment, SlotRequest
from seatshare.domain.requests import RequestStatus, can_transition
from seatshare.domain.subscriptions import as_utc
from seatshare.repositories.catalog_repository import CatalogRepository, ProviderView
from seatshare.repositories.request_repository import DUPLICATE_REQUEST_MESSAGE, RequestRepository
from seatshare.repositories.slot_repository import SlotRepository
from seatshare.services.slot_engine import ALREADY_ASSIGNED_MESSAGE, SlotAssignmentEngine

DEFAULT_PENDING_BATCH = 100


def _iso(value: datetime | None) -> str | None:
    normalized = as_utc(value)
    return normalized.isoformat() if normalized else None


def request_to_dict(entity: SlotRequest) -> dict:
    return {
        "id": entity.id,
        "user_id": entity.user_id,
        "provider_id": entity.provider_id,
        "country_id": entity.country_id,
        "status": entity.status,
        "assigned_slot_id": entity.assigned_slot_id,
        "note": entity.note,
        "requested_at": _iso(entity.requested_at),
        "processed_at": _iso(entity.processed_at),
    }


@dataclass
class RequestResult:
    request: SlotRequest
    queued: bool

    def to_dict(self) -> dict:
        payload = request_to_dict(self.request)
        payload["queued"] = self.queued
        if self.queued:
            payload["message"] = (
                "No available slots right now. Your request is queued and will be "
                "assigned as soon as capacity is available."
            )
        return payload


@dataclass(frozen=True)
class SubscriptionSummary:
    """What a seat holder may see about the backing account (no credentials)."""

    id: str
    name: str
    provider_id: str
    country_id: Optional[str]
    expires_at: Optional[datetime]
    user_price: Optional[Decimal]
    currency_code: Optional[str]


@dataclass(frozen=True)
class UserSlotView:
    id: str
    user_id: str
    subscription_id: str
    assigned_at: datetime
    is_active: bool
    subscription: SubscriptionSummary

    @classmethod
    def from_entity(cls, slot: SlotAssignment) -> "UserSlotView":
        account = slot.subscription
        return cls(
            id=slot.id,
            user_id=slot.user_id,
            subscription_id=slot.subscription_id,
            assigned_at=slot.assigned_at,
            is_active=bool(slot.is_active),
            subscription=SubscriptionSummary(
                id=account.id,
                name=account.name,
                provider_id=account.provider_id,
                country_id=account.country_id,
                expires_at=account.expires_at,
                user_price=account.user_price,
                currency_code=account.currency_code,
            ),
        )

    def to_dict(self) -> dict:
        summary = self.subscription
        return {
            "id": self.id,
            "user_id": self.user_id,
            "subscription_id": self.subscription_id,
            "assigned_at": _iso(self.assigned_at),
            "is_active": self.is_active,
            "subscription": {
                "id": summary.id,
                "name": summary.name,
                "provider_id": summary.provider_id,
                "country_id": summary.country_id,
                "expires_at": _iso(summary.expires_at),
                "user_price": str(summary.user_price) if summary.user_price is not None else None,
                "currency_code": summary.currency_code,
            },
        }


class SlotRequestService:
    """Public entry point for requesting, listing and resolving seats."""

    def __init__(
        self,
        *,
        catalog: CatalogRepository,
        requests: RequestRepository,
        slots: SlotRepository,
        engine: SlotAssignmentEngine,
        pending_batch_size: int = DEFAULT_PENDING_BATCH,
    ) -> None:
        self.catalog = catalog
        self.requests = requests
        self.slots = slots
        self.engine = engine
        self.pending_batch_size = pending_batch_size

    # -------------------------------------- helpers --------------------------------------
    @staticmethod
    def _required(value: str | None, label: str) -> str:
        clean = (value or "").strip()
        if not clean:
            raise ValidationError(f"{label} is required")
        return clean

    def _validate_target(self, provider_id: str, country_id: str | None) -> ProviderView:
        provider = self.catalog.get_provider(provider_id)
        if not provider:
            raise NotFoundError("Service provider not found")
        if not provider.is_active:
            raise UnsupportedError("Service provider is not active")
        if country_id is None:
            return provider
        country = self.catalog.get_country(country_id)
        if not country:
            raise NotFoundError("Country not found")
        if not country.is_active:
            raise UnsupportedError("Country is not active")
        if not provider.supports(country_id):
            raise UnsupportedError("Service provider does not support the specified country")
        return provider

    def _mark_assigned(self, request: SlotRequest, slot_id: str) -> RequestResult:
        if not self.requests.mark_assigned(request.id, slot_id):
            raise InvalidTransitionError("Request is no longer pending")
        return RequestResult(request=self.requests.find_by_id(request.id), queued=False)

    def _resolve(self, request: SlotRequest) -> RequestResult:
        """Run the engine for a PENDING request and record the result."""
        try:
            outcome = self.engine.assign(request.user_id, request.provider_id, request.country_id)
        except AlreadyAssignedError:
            # the user's seat for this provider already satisfies the request
            existing = self.slots.find_active_for_provider(request.user_id, request.provider_id)
            if existing is None:
                raise
            return self._mark_assigned(request, existing.id)

        if outcome.queued:
            return RequestResult(request=request, queued=True)
        try:
            return self._mark_assigned(request, outcome.slot.id)
        except InvalidTransitionError:
            # cancelled or rejected while the seat was being claimed
            self.engine.release(outcome.slot.id)
            raise

    # -------------------------------------- use cases --------------------------------------
    def request_slot(self, user_id: str, provider_id: str, country_id: str | None = None) -> RequestResult:
        """
        Ask for a seat on `provider_id` (optionally in `country_id`).

        Returns an ASSIGNED request when a seat was claimed, or the PENDING
        request with queued=True when the pool is full. Validation and
        duplicate checks fail before anything is written.
        """
        user_id = self._required(user_id, "User ID")
        provider_id = self._required(provider_id, "Service provider ID")
        country_id = (country_id or "").strip() or None
        self._validate_target(provider_id, country_id)

        if self.slots.has_active_for_provider(user_id, provider_id):
            raise AlreadyAssignedError(ALREADY_ASSIGNED_MESSAGE)
        if self.requests.find_open_for(user_id, provider_id, country_id):
            raise DuplicateRequestError(DUPLICATE_REQUEST_MESSAGE)

        request = self.requests.create(user_id, provider_id, country_id)
        logger.info("request {} created for user {} provider {}", request.id, user_id, provider_id)
        return self._resolve(request)

    def get_user_slots(self, user_id: str) -> list[UserSlotView]:
        user_id = self._required(user_id, "User ID")
        return [UserSlotView.from_entity(slot) for slot in self.slots.list_active_for_user(user_id)]

    def list_user_requests(self, user_id: str) -> list[SlotRequest]:
        return self.requests.list_by_user(self._required(user_id, "User ID"))

    def get_request(self, request_id: str) -> SlotRequest:
        request = self.requests.find_by_id(request_id)
        if not request:
            raise NotFoundError("Slot request not found")
        return request

    def cancel_request(self, request_id: str, user_id: str) -> SlotRequest:
        request = self.requests.find_by_id(request_id)
        if not request or request.user_id != user_id:
            raise NotFoundError("Slot request not found")
        return self._close(request, RequestStatus.CANCELLED, note=None)

    def reject_request(self, request_id: str, note: str | None = None) -> SlotRequest:
        return self._close(self.get_request(request_id), RequestStatus.REJECTED, note=note)

    def _close(self, request: SlotRequest, target: RequestStatus, *, note: str | None) -> SlotRequest:
        if not can_transition(request.status, target):
            raise InvalidTransitionError(f"Cannot move a {request.status} request to {target.value}")
        if not self.requests.transition(request.id, RequestStatus.PENDING, target, note=note):
            raise InvalidTransitionError("Request is no longer pending")
        logger.info("request {} moved to {}", request.id, target.value)
        return self.requests.find_by_id(request.id)

    def release_slot(self, slot_id: str, user_id: str) -> SlotAssignment:
        slot = self.slots.find_by_id(slot_id)
        if not slot or slot.user_id != user_id or not slot.is_active:
            raise NotFoundError("Slot assignment not found")
        return self.engine.release(slot_id)

    def process_pending(self, limit: int | None = None) -> list[SlotRequest]:
        """
        One pass over queued requests, oldest first.

        Meant to be invoked by an out-of-band scheduler once new capacity
        exists. A pool that came back empty is not retried within the pass, so
        younger requests never overtake older ones for the same pool.
        """
        batch = self.requests.list_pending(limit if limit is not None else self.pending_batch_size)
        exhausted: set[tuple[str, str | None]] = set()
        assigned: list[SlotRequest] = []
        for request in batch:
            pool = (request.provider_id, request.country_id)
            if pool in exhausted:
                continue
            try:
                result = self._resolve(request)
            except InvalidTransitionError:
                logger.debug("request {} resolved elsewhere during processing", request.id)
                continue
            except SeatshareError as exc:
                logger.warning("request {} skipped: {}", request.id, exc.message)
                continue
            if result.queued:
                exhausted.add(pool)
            else:
                assigned.append(result.request)
        logger.info("processed {} pending requests, {} assigned", len(batch), len(assigned))
        return assigned
