"""
Persistence adapters.

Each repository wraps one aggregate of the SQL schema. They receive a session
factory at construction time; methods that take part in a larger transaction
accept an explicit ``session`` and leave commit/rollback to the caller.
"""

from .catalog_repository import CatalogRepository
from .request_repository import RequestRepository
from .slot_repository import SlotRepository
from .subscription_repository import SubscriptionRepository

__all__ = ["CatalogRepository", "RequestRepository", "SlotRepository", "SubscriptionRepository"]
