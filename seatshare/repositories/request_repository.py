"""Slot requests and their status transitions."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError

from seatshare.core.errors import DuplicateRequestError
from seatshare.db.models import SlotAssignment, SlotRequest
from seatshare.domain.requests import RequestStatus
from seatshare.domain.subscriptions import utcnow

from .base import SQLStore

DUPLICATE_REQUEST_MESSAGE = "You already have a pending request for this service provider and country"


class RequestRepository(SQLStore):
    def create(
        self,
        user_id: str,
        provider_id: str,
        country_id: str | None = None,
        *,
        requested_at: datetime | None = None,
    ) -> SlotRequest:
        entity = SlotRequest(
            user_id=user_id,
            provider_id=provider_id,
            country_id=country_id,
            status=RequestStatus.PENDING.value,
            requested_at=requested_at or utcnow(),
        )
        with self._scope() as session:
            session.add(entity)
            try:
                session.flush()
            except IntegrityError:
                # a concurrent identical request got its PENDING row in first
                raise DuplicateRequestError(DUPLICATE_REQUEST_MESSAGE) from None
            return entity

    def find_by_id(self, request_id: str) -> Optional[SlotRequest]:
        with self._scope() as session:
            return session.get(SlotRequest, request_id)

    def find_open_for(self, user_id: str, provider_id: str, country_id: str | None) -> Optional[SlotRequest]:
        """
        Unresolved request for exactly this (user, provider, country) tuple:
        PENDING, or ASSIGNED while its seat is still held.
        """
        stmt = (
            select(SlotRequest)
            .outerjoin(SlotAssignment, SlotAssignment.id == SlotRequest.assigned_slot_id)
            .where(
                SlotRequest.user_id == user_id,
                SlotRequest.provider_id == provider_id,
                or_(
                    SlotRequest.status == RequestStatus.PENDING.value,
                    and_(
                        SlotRequest.status == RequestStatus.ASSIGNED.value,
                        SlotAssignment.is_active.is_(True),
                    ),
                ),
            )
        )
        if country_id is None:
            stmt = stmt.where(SlotRequest.country_id.is_(None))
        else:
            stmt = stmt.where(SlotRequest.country_id == country_id)
        with self._scope() as session:
            return session.execute(stmt.limit(1)).scalars().first()

    def list_by_user(self, user_id: str) -> list[SlotRequest]:
        with self._scope() as session:
            stmt = (
                select(SlotRequest)
                .where(SlotRequest.user_id == user_id)
                .order_by(SlotRequest.requested_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def list_pending(self, limit: int | None = None) -> list[SlotRequest]:
        """PENDING requests, oldest first."""
        stmt = (
            select(SlotRequest)
            .where(SlotRequest.status == RequestStatus.PENDING.value)
            .order_by(SlotRequest.requested_at.asc(), SlotRequest.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._scope() as session:
            return list(session.execute(stmt).scalars().all())

    def mark_assigned(self, request_id: str, slot_id: str, *, processed_at: datetime | None = None) -> bool:
        """PENDING -> ASSIGNED; False if the request was no longer PENDING."""
        with self._scope() as session:
            stmt = (
                update(SlotRequest)
                .where(SlotRequest.id == request_id, SlotRequest.status == RequestStatus.PENDING.value)
                .values(
                    status=RequestStatus.ASSIGNED.value,
                    assigned_slot_id=slot_id,
                    processed_at=processed_at or utcnow(),
                )
            )
            return session.execute(stmt).rowcount == 1

    def transition(
        self,
        request_id: str,
        source: RequestStatus,
        target: RequestStatus,
        *,
        note: str | None = None,
    ) -> bool:
        """Compare-and-set the status; False if the row was not in `source`."""
        with self._scope() as session:
            stmt = (
                update(SlotRequest)
                .where(SlotRequest.id == request_id, SlotRequest.status == source.value)
                .values(status=target.value, note=note, processed_at=utcnow())
            )
            return session.execute(stmt).rowcount == 1
