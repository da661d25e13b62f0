"""Admin use cases for the subscription account pool."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from loguru import logger

from seatshare.core.errors import ConflictError, NotFoundError, UnsupportedError, ValidationError
from seatshare.core.security import hash_password
from seatshare.db.models import SubscriptionAccount
from seatshare.domain.subscriptions import account_update_errors, account_validation_errors, as_utc
from seatshare.repositories.catalog_repository import CatalogRepository, ProviderView
from seatshare.repositories.subscription_repository import SubscriptionRepository

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DUPLICATE_EMAIL_MESSAGE = "A subscription with this email already exists"


def account_to_dict(entity: SubscriptionAccount) -> dict:
    """Admin view of an account. The password hash never leaves the service."""
    expires_at = as_utc(entity.expires_at)
    created_at = as_utc(entity.created_at)
    return {
        "id": entity.id,
        "provider_id": entity.provider_id,
        "country_id": entity.country_id,
        "name": entity.name,
        "email": entity.email,
        "available_slots": int(entity.available_slots),
        "total_slots": int(entity.total_slots),
        "user_price": str(entity.user_price) if entity.user_price is not None else None,
        "currency_code": entity.currency_code,
        "is_active": bool(entity.is_active),
        "expires_at": expires_at.isoformat() if expires_at else None,
        "created_at": created_at.isoformat() if created_at else None,
    }


@dataclass
class AccountPage:
    accounts: list[SubscriptionAccount]
    total: int
    page: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict:
        return {
            "subscriptions": [account_to_dict(a) for a in self.accounts],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
        }


def _parse_price(user_price: Decimal | float | str | None) -> Decimal | None:
    if user_price is None:
        return None
    try:
        return Decimal(str(user_price))
    except InvalidOperation:
        raise ValidationError("User price must be a number") from None


class SubscriptionService:
    """Registers shared accounts, edits them and takes them in or out of the pool."""

    def __init__(self, *, catalog: CatalogRepository, subscriptions: SubscriptionRepository) -> None:
        self.catalog = catalog
        self.subscriptions = subscriptions

    def _check_country(self, provider: ProviderView, country_id: str) -> None:
        country = self.catalog.get_country(country_id)
        if not country:
            raise NotFoundError("Country not found")
        if not country.is_active:
            raise UnsupportedError("Country is not active")
        if not provider.supports(country_id):
            raise UnsupportedError("Service provider does not support the specified country")

    def create_account(
        self,
        provider_id: str,
        name: str,
        email: str,
        password: str,
        available_slots: int,
        *,
        country_id: str | None = None,
        expires_at: datetime | None = None,
        user_price: Decimal | float | str | None = None,
        currency_code: str | None = None,
        is_active: bool = True,
    ) -> SubscriptionAccount:
        price = _parse_price(user_price)
        errors = account_validation_errors(
            name=name,
            email=email,
            password=password,
            available_slots=available_slots,
            user_price=price,
            expires_at=expires_at,
        )
        if errors:
            raise ValidationError("; ".join(errors))

        provider = self.catalog.get_provider(provider_id)
        if not provider:
            raise NotFoundError("Service provider not found")
        if not provider.is_active:
            raise UnsupportedError("Service provider is not active")
        if country_id:
            self._check_country(provider, country_id)

        if self.subscriptions.email_exists(email):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        account = self.subscriptions.create(
            provider_id=provider_id,
            country_id=country_id or None,
            name=name,
            email=email,
            password_hash=hash_password(password),
            available_slots=available_slots,
            expires_at=as_utc(expires_at),
            user_price=price,
            currency_code=currency_code,
            is_active=is_active,
        )
        logger.info("subscription {} registered for provider {} with {} slots", account.id, provider_id, available_slots)
        return account

    def get_account(self, subscription_id: str) -> SubscriptionAccount:
        account = self.subscriptions.find_by_id(subscription_id)
        if not account:
            raise NotFoundError("Subscription not found")
        return account

    def list_accounts(
        self, provider_id: str | None = None, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> AccountPage:
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        accounts, total = self.subscriptions.find_many(provider_id, offset=(page - 1) * limit, limit=limit)
        return AccountPage(accounts=accounts, total=total, page=page, limit=limit)

    def update_account(
        self,
        subscription_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
        total_slots: int | None = None,
        country_id: str | None = None,
        expires_at: datetime | None = None,
        user_price: Decimal | float | str | None = None,
        currency_code: str | None = None,
        is_active: bool | None = None,
    ) -> SubscriptionAccount:
        """
        Change the given fields; None leaves a field as it is.

        total_slots is the account's seat capacity: raising it frees new seats
        for queued requests, lowering it below the seats in use is a conflict.
        """
        price = _parse_price(user_price)
        errors = account_update_errors(
            name=name,
            email=email,
            password=password,
            total_slots=total_slots,
            user_price=price,
            expires_at=expires_at,
        )
        if errors:
            raise ValidationError("; ".join(errors))

        account = self.get_account(subscription_id)
        if country_id:
            provider = self.catalog.get_provider(account.provider_id)
            if not provider:
                raise NotFoundError("Service provider not found")
            self._check_country(provider, country_id)
        if email is not None and self.subscriptions.email_exists(email, exclude_id=subscription_id):
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        values = {
            "name": name,
            "email": email,
            "country_id": country_id,
            "expires_at": as_utc(expires_at),
            "user_price": price,
            "currency_code": currency_code,
            "is_active": is_active,
        }
        values = {key: value for key, value in values.items() if value is not None}
        if password is not None:
            values["password_hash"] = hash_password(password)

        if not self.subscriptions.update(subscription_id, values, total_slots=total_slots):
            raise ConflictError("Total slots cannot drop below the seats currently in use")
        logger.info("subscription {} updated", subscription_id)
        return self.get_account(subscription_id)

    def delete_account(self, subscription_id: str) -> None:
        self.get_account(subscription_id)
        if not self.subscriptions.delete(subscription_id):
            raise ConflictError("Subscription still backs active seats; deactivate it and release them first")
        logger.info("subscription {} deleted", subscription_id)

    def deactivate_account(self, subscription_id: str) -> SubscriptionAccount:
        if not self.subscriptions.set_active(subscription_id, False):
            raise NotFoundError("Subscription not found")
        return self.get_account(subscription_id)
