"""Seat assignments (user <-> subscription account)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from seatshare.db.models import SlotAssignment
from seatshare.domain.subscriptions import utcnow

from .base import SQLStore


class SlotRepository(SQLStore):
    def create(
        self,
        user_id: str,
        subscription_id: str,
        provider_id: str,
        *,
        session: Session,
        assigned_at: datetime | None = None,
    ) -> SlotAssignment:
        """Insert an active assignment; flushes so unique-index violations surface here."""
        entity = SlotAssignment(
            user_id=user_id,
            subscription_id=subscription_id,
            provider_id=provider_id,
            is_active=True,
            assigned_at=assigned_at or utcnow(),
        )
        session.add(entity)
        session.flush()
        return entity

    def find_by_id(self, slot_id: str) -> Optional[SlotAssignment]:
        with self._scope() as session:
            return session.get(SlotAssignment, slot_id)

    def has_active_for_provider(self, user_id: str, provider_id: str) -> bool:
        return self.find_active_for_provider(user_id, provider_id) is not None

    def find_active_for_provider(self, user_id: str, provider_id: str) -> Optional[SlotAssignment]:
        with self._scope() as session:
            stmt = select(SlotAssignment).where(
                SlotAssignment.user_id == user_id,
                SlotAssignment.provider_id == provider_id,
                SlotAssignment.is_active.is_(True),
            )
            return session.execute(stmt).scalars().first()

    def count_active_for(self, subscription_id: str) -> int:
        with self._scope() as session:
            stmt = select(func.count(SlotAssignment.id)).where(
                SlotAssignment.subscription_id == subscription_id,
                SlotAssignment.is_active.is_(True),
            )
            return int(session.execute(stmt).scalar_one())

    def list_active_for_user(self, user_id: str) -> list[SlotAssignment]:
        """Active seats with their subscription eagerly loaded."""
        with self._scope() as session:
            stmt = (
                select(SlotAssignment)
                .options(joinedload(SlotAssignment.subscription))
                .where(SlotAssignment.user_id == user_id, SlotAssignment.is_active.is_(True))
                .order_by(SlotAssignment.assigned_at.asc())
            )
            return list(session.execute(stmt).scalars().all())

    def deactivate(self, slot_id: str, *, session: Session) -> bool:
        stmt = (
            update(SlotAssignment)
            .where(SlotAssignment.id == slot_id, SlotAssignment.is_active.is_(True))
            .values(is_active=False, released_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1
