"""Subscription account pool: candidate lookup and seat counters."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from seatshare.db.models import SlotAssignment, SlotRequest, SubscriptionAccount
from seatshare.domain.subscriptions import utcnow

from .base import SQLStore


class SubscriptionRepository(SQLStore):
    """Reads the account pool and owns the available_slots counter."""

    def find_by_id(self, subscription_id: str, *, session: Session | None = None) -> Optional[SubscriptionAccount]:
        with self._scope(session) as s:
            return s.get(SubscriptionAccount, subscription_id)

    def find_usable_candidates(
        self, provider_id: str, country_id: str | None = None, *, now: datetime | None = None
    ) -> list[SubscriptionAccount]:
        """
        Active, unexpired accounts with at least one free seat, ordered by
        available_slots DESC then created_at ASC. A None country_id does not
        filter by country.
        """
        now = now or utcnow()
        stmt = select(SubscriptionAccount).where(
            SubscriptionAccount.provider_id == provider_id,
            SubscriptionAccount.is_active.is_(True),
            SubscriptionAccount.available_slots > 0,
            or_(SubscriptionAccount.expires_at.is_(None), SubscriptionAccount.expires_at > now),
        )
        if country_id is not None:
            stmt = stmt.where(SubscriptionAccount.country_id == country_id)
        stmt = stmt.order_by(SubscriptionAccount.available_slots.desc(), SubscriptionAccount.created_at.asc())
        with self._scope() as session:
            return list(session.execute(stmt).scalars().all())

    def commit_decrement(self, subscription_id: str, *, session: Session, now: datetime | None = None) -> bool:
        """
        Take one seat if the account is still usable and has one left.

        Returns False when a concurrent claim consumed the last seat (or the
        account stopped being usable) since it was read.
        """
        now = now or utcnow()
        stmt = (
            update(SubscriptionAccount)
            .where(
                SubscriptionAccount.id == subscription_id,
                SubscriptionAccount.available_slots > 0,
                SubscriptionAccount.is_active.is_(True),
                or_(SubscriptionAccount.expires_at.is_(None), SubscriptionAccount.expires_at > now),
            )
            .values(available_slots=SubscriptionAccount.available_slots - 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    def increment(self, subscription_id: str, *, session: Session) -> bool:
        """Give a seat back, never above the account's total capacity."""
        stmt = (
            update(SubscriptionAccount)
            .where(
                SubscriptionAccount.id == subscription_id,
                SubscriptionAccount.available_slots < SubscriptionAccount.total_slots,
            )
            .values(available_slots=SubscriptionAccount.available_slots + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount == 1

    # -------------------------- admin --------------------------
    def create(
        self,
        *,
        provider_id: str,
        name: str,
        email: str,
        password_hash: str,
        available_slots: int,
        country_id: str | None = None,
        expires_at: datetime | None = None,
        user_price: Decimal | None = None,
        currency_code: str | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
    ) -> SubscriptionAccount:
        now = created_at or utcnow()
        entity = SubscriptionAccount(
            provider_id=provider_id,
            country_id=country_id,
            name=name.strip(),
            email=email.strip().lower(),
            password_hash=password_hash,
            available_slots=available_slots,
            total_slots=available_slots,
            expires_at=expires_at,
            user_price=user_price,
            currency_code=(currency_code or "").upper() or None,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        with self._scope() as session:
            session.add(entity)
            session.flush()
            return entity

    def email_exists(self, email: str, *, exclude_id: str | None = None) -> bool:
        value = (email or "").strip().lower()
        if not value:
            return False
        stmt = select(SubscriptionAccount.id).where(SubscriptionAccount.email == value)
        if exclude_id:
            stmt = stmt.where(SubscriptionAccount.id != exclude_id)
        with self._scope() as session:
            return session.execute(stmt.limit(1)).first() is not None

    def find_many(
        self, provider_id: str | None = None, *, offset: int = 0, limit: int = 10
    ) -> tuple[list[SubscriptionAccount], int]:
        """One page of accounts (newest first) plus the total matching count."""
        count_stmt = select(func.count()).select_from(SubscriptionAccount)
        stmt = select(SubscriptionAccount)
        if provider_id:
            count_stmt = count_stmt.where(SubscriptionAccount.provider_id == provider_id)
            stmt = stmt.where(SubscriptionAccount.provider_id == provider_id)
        with self._scope() as session:
            total = session.execute(count_stmt).scalar_one()
            stmt = (
                stmt.order_by(SubscriptionAccount.created_at.desc(), SubscriptionAccount.id.asc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.execute(stmt).scalars().all()), int(total)

    def set_active(self, subscription_id: str, is_active: bool) -> bool:
        with self._scope() as session:
            stmt = (
                update(SubscriptionAccount)
                .where(SubscriptionAccount.id == subscription_id)
                .values(is_active=is_active, updated_at=utcnow())
            )
            return session.execute(stmt).rowcount == 1

    def update(self, subscription_id: str, values: dict, *, total_slots: int | None = None) -> bool:
        """
        Apply column changes in one statement.

        A new total_slots moves available_slots by the same delta, so seats
        already held stay accounted for. Returns False when that would leave
        fewer seats than are in use.
        """
        changes = dict(values)
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "currency_code" in changes:
            changes["currency_code"] = (changes["currency_code"] or "").upper() or None
        changes["updated_at"] = utcnow()

        stmt = update(SubscriptionAccount).where(SubscriptionAccount.id == subscription_id)
        if total_slots is not None:
            available = SubscriptionAccount.available_slots + (total_slots - SubscriptionAccount.total_slots)
            stmt = stmt.where(available >= 0)
            changes["total_slots"] = total_slots
            changes["available_slots"] = available
        stmt = stmt.values(**changes).execution_options(synchronize_session=False)
        with self._scope() as session:
            return session.execute(stmt).rowcount == 1

    def delete(self, subscription_id: str) -> bool:
        """
        Remove an account that backs no active seat, together with its
        released seat history. Returns False if the row is missing or a seat
        is still held.
        """
        held = select(SlotAssignment.id).where(
            SlotAssignment.subscription_id == subscription_id,
            SlotAssignment.is_active.is_(True),
        )
        history = select(SlotAssignment.id).where(SlotAssignment.subscription_id == subscription_id)
        with self._scope() as session:
            removed = session.execute(
                delete(SubscriptionAccount)
                .where(SubscriptionAccount.id == subscription_id, ~held.exists())
                .execution_options(synchronize_session=False)
            ).rowcount
            if removed != 1:
                return False
            session.execute(
                update(SlotRequest)
                .where(SlotRequest.assigned_slot_id.in_(history))
                .values(assigned_slot_id=None)
                .execution_options(synchronize_session=False)
            )
            session.execute(
                delete(SlotAssignment)
                .where(SlotAssignment.subscription_id == subscription_id)
                .execution_options(synchronize_session=False)
            )
            return True
