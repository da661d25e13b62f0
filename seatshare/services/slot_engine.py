"""
Slot assignment engine.

Decides, for one (user, provider, country) tuple, whether a seat is free right
now and claims it. The database is the only serialization point: the seat
counter is decremented with a conditional UPDATE and the assignment row is
inserted in the same transaction, so a claim either fully happens or not at
all. Losing a race on one account moves on to the next-best candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from seatshare.core.errors import AlreadyAssignedError, NotFoundError
from seatshare.db.models import SlotAssignment, SubscriptionAccount
from seatshare.db.session import SessionFactory
from seatshare.domain.subscriptions import pick_most_packed
from seatshare.repositories.slot_repository import SlotRepository
from seatshare.repositories.subscription_repository import SubscriptionRepository

ALREADY_ASSIGNED_MESSAGE = "You already have a slot assigned for this service provider"


@dataclass(frozen=True)
class AssignmentOutcome:
    """Either a claimed seat or "no capacity right now" (not an error)."""

    slot: Optional[SlotAssignment] = None

    @property
    def assigned(self) -> bool:
        return self.slot is not None

    @property
    def queued(self) -> bool:
        return self.slot is None

    @classmethod
    def no_capacity(cls) -> "AssignmentOutcome":
        return cls(slot=None)


class SlotAssignmentEngine:
    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        slots: SlotRepository,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.slots = slots
        self.session_factory = session_factory or subscriptions.session_factory

    def assign(self, user_id: str, provider_id: str, country_id: str | None = None) -> AssignmentOutcome:
        """
        Claim the most packed usable seat for the user.

        Raises AlreadyAssignedError when the user already holds an active seat
        for the provider (on any account or country). Returns a queued outcome
        when no candidate has capacity.
        """
        if self.slots.has_active_for_provider(user_id, provider_id):
            raise AlreadyAssignedError(ALREADY_ASSIGNED_MESSAGE)

        remaining = self.subscriptions.find_usable_candidates(provider_id, country_id)
        while remaining:
            target = pick_most_packed(remaining)
            if target is None:
                break
            slot = self._claim(user_id, provider_id, target)
            if slot is not None:
                logger.info(
                    "slot {} assigned to user {} on subscription {} (provider {})",
                    slot.id,
                    user_id,
                    target.id,
                    provider_id,
                )
                return AssignmentOutcome(slot=slot)
            logger.debug("subscription {} lost its last seat to a concurrent claim", target.id)
            remaining = [c for c in remaining if c.id != target.id]

        logger.info("no capacity for provider {} country {}; request queued", provider_id, country_id)
        return AssignmentOutcome.no_capacity()

    def _claim(self, user_id: str, provider_id: str, account: SubscriptionAccount) -> Optional[SlotAssignment]:
        """Decrement + insert in one transaction. None means the seat was taken."""
        with self.session_factory() as session:
            try:
                if not self.subscriptions.commit_decrement(account.id, session=session):
                    session.rollback()
                    return None
                slot = self.slots.create(user_id, account.id, provider_id, session=session)
                session.commit()
                return slot
            except IntegrityError:
                session.rollback()
                # a concurrent claim by the same user won the unique index
                if self.slots.has_active_for_provider(user_id, provider_id):
                    raise AlreadyAssignedError(ALREADY_ASSIGNED_MESSAGE) from None
                raise
            except Exception:
                session.rollback()
                raise

    def release(self, slot_id: str) -> SlotAssignment:
        """Deactivate an active seat and hand it back to its account."""
        slot = self.slots.find_by_id(slot_id)
        if not slot or not slot.is_active:
            raise NotFoundError("Slot assignment not found")
        with self.session_factory() as session:
            try:
                if not self.slots.deactivate(slot_id, session=session):
                    raise NotFoundError("Slot assignment not found")
                self.subscriptions.increment(slot.subscription_id, session=session)
                session.commit()
            except Exception:
                session.rollback()
                raise
        logger.info("slot {} released from subscription {}", slot_id, slot.subscription_id)
        return self.slots.find_by_id(slot_id)
