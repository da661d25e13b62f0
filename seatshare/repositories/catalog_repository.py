"""Provider/country lookups consumed by the request flow, plus seeding helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select

from seatshare.core.errors import NotFoundError
from seatshare.db.models import Country, ServiceProvider

from .base import SQLStore


@dataclass(frozen=True)
class CountryView:
    id: str
    is_active: bool
    name: str = ""
    code: str = ""


@dataclass(frozen=True)
class ProviderView:
    id: str
    name: str
    is_active: bool = True
    supported_countries: list[CountryView] = field(default_factory=list)

    def supports(self, country_id: str) -> bool:
        return any(c.id == country_id for c in self.supported_countries)


def _country_view(entity: Country) -> CountryView:
    return CountryView(id=entity.id, is_active=bool(entity.is_active), name=entity.name, code=entity.code)


def _provider_view(entity: ServiceProvider) -> ProviderView:
    return ProviderView(
        id=entity.id,
        name=entity.name,
        is_active=bool(entity.is_active),
        supported_countries=[_country_view(c) for c in entity.supported_countries],
    )


class CatalogRepository(SQLStore):
    """Read access to providers and countries."""

    def get_provider(self, provider_id: str) -> Optional[ProviderView]:
        with self._scope() as session:
            entity = session.get(ServiceProvider, provider_id)
            return _provider_view(entity) if entity else None

    def get_country(self, country_id: str) -> Optional[CountryView]:
        with self._scope() as session:
            entity = session.get(Country, country_id)
            return _country_view(entity) if entity else None

    def list_providers(self) -> list[ProviderView]:
        with self._scope() as session:
            rows = session.execute(select(ServiceProvider).order_by(ServiceProvider.name)).scalars().all()
            return [_provider_view(p) for p in rows]

    # -------------------------- seeding --------------------------
    def create_provider(self, name: str, provider_id: str | None = None) -> ProviderView:
        entity = ServiceProvider(name=name.strip(), is_active=True)
        if provider_id:
            entity.id = provider_id
        with self._scope() as session:
            session.add(entity)
            session.flush()
            return ProviderView(id=entity.id, name=entity.name)

    def create_country(
        self, name: str, code: str, *, is_active: bool = True, country_id: str | None = None
    ) -> CountryView:
        entity = Country(name=name.strip(), code=code.strip().upper(), is_active=is_active)
        if country_id:
            entity.id = country_id
        with self._scope() as session:
            session.add(entity)
            session.flush()
            return _country_view(entity)

    def add_supported_country(self, provider_id: str, country_id: str) -> None:
        with self._scope() as session:
            provider = session.get(ServiceProvider, provider_id)
            country = session.get(Country, country_id)
            if not provider or not country:
                raise NotFoundError("Service provider or country not found")
            if country not in provider.supported_countries:
                provider.supported_countries.append(country)

    def set_provider_active(self, provider_id: str, is_active: bool) -> None:
        with self._scope() as session:
            provider = session.get(ServiceProvider, provider_id)
            if not provider:
                raise NotFoundError("Service provider not found")
            provider.is_active = is_active

    def set_country_active(self, country_id: str, is_active: bool) -> None:
        with self._scope() as session:
            country = session.get(Country, country_id)
            if not country:
                raise NotFoundError("Country not found")
            country.is_active = is_active
