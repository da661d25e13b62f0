"""
Composition root.

Builds repositories and services around one session factory. The app factory
and the tests each build their own container; nothing is shared at module
level.
"""
from __future__ import annotations

from dataclasses import dataclass

from seatshare.core.config import Settings, get_settings
from seatshare.db.session import SessionFactory, get_session
from seatshare.repositories.catalog_repository import CatalogRepository
from seatshare.repositories.request_repository import RequestRepository
from seatshare.repositories.slot_repository import SlotRepository
from seatshare.repositories.subscription_repository import SubscriptionRepository
from seatshare.services.request_service import SlotRequestService
from seatshare.services.slot_engine import SlotAssignmentEngine
from seatshare.services.subscription_service import SubscriptionService


@dataclass
class Container:
    settings: Settings
    catalog: CatalogRepository
    subscriptions: SubscriptionRepository
    slots: SlotRepository
    requests: RequestRepository
    engine: SlotAssignmentEngine
    request_service: SlotRequestService
    subscription_service: SubscriptionService


def build_container(
    session_factory: SessionFactory = get_session,
    settings: Settings | None = None,
) -> Container:
    settings = settings or get_settings()
    catalog = CatalogRepository(session_factory)
    subscriptions = SubscriptionRepository(session_factory)
    slots = SlotRepository(session_factory)
    requests = RequestRepository(session_factory)
    engine = SlotAssignmentEngine(subscriptions, slots, session_factory)
    return Container(
        settings=settings,
        catalog=catalog,
        subscriptions=subscriptions,
        slots=slots,
        requests=requests,
        engine=engine,
        request_service=SlotRequestService(
            catalog=catalog,
            requests=requests,
            slots=slots,
            engine=engine,
            pending_batch_size=settings.pending_batch_size,
        ),
        subscription_service=SubscriptionService(catalog=catalog, subscriptions=subscriptions),
    )
