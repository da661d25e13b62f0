"""SQLAlchemy models for the catalog, the account pool, seats and requests."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    func,
    literal_column,
    text,
)
from sqlalchemy.orm import relationship

from seatshare.domain.requests import RequestStatus

from .session import Base


def _uuid() -> str:
    return str(uuid.uuid4())


provider_countries = Table(
    "provider_countries",
    Base.metadata,
    Column("provider_id", String(36), ForeignKey("service_providers.id", ondelete="CASCADE"), primary_key=True),
    Column("country_id", String(36), ForeignKey("countries.id", ondelete="CASCADE"), primary_key=True),
)


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    supported_countries = relationship("Country", secondary=provider_countries, lazy="selectin")


class Country(Base):
    __tablename__ = "countries"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    code = Column(String(2), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SubscriptionAccount(Base):
    __tablename__ = "subscription_accounts"
    __table_args__ = (
        CheckConstraint("available_slots >= 0", name="ck_subscription_accounts_available_slots"),
        Index("ix_subscription_accounts_pool", "provider_id", "country_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    provider_id = Column(String(36), ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    country_id = Column(String(36), ForeignKey("countries.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    available_slots = Column(Integer, nullable=False)
    total_slots = Column(Integer, nullable=False)
    user_price = Column(Numeric(10, 2), nullable=True)
    currency_code = Column(String(3), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    slots = relationship("SlotAssignment", back_populates="subscription")


class SlotAssignment(Base):
    __tablename__ = "slot_assignments"
    __table_args__ = (
        # one active seat per (user, provider), whichever account backs it
        Index(
            "uq_slot_assignments_active_user_provider",
            "user_id",
            "provider_id",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_slot_assignments_subscription", "subscription_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)
    subscription_id = Column(
        String(36), ForeignKey("subscription_accounts.id", ondelete="CASCADE"), nullable=False
    )
    provider_id = Column(String(36), ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False)
    released_at = Column(DateTime(timezone=True), nullable=True)

    subscription = relationship("SubscriptionAccount", back_populates="slots")


class SlotRequest(Base):
    __tablename__ = "slot_requests"
    __table_args__ = (
        Index("ix_slot_requests_user", "user_id", "provider_id"),
        Index("ix_slot_requests_status_requested", "status", "requested_at"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False)
    provider_id = Column(String(36), ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False)
    country_id = Column(String(36), ForeignKey("countries.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(16), default=RequestStatus.PENDING.value, nullable=False)
    assigned_slot_id = Column(String(36), ForeignKey("slot_assignments.id", ondelete="SET NULL"), nullable=True)
    note = Column(Text, nullable=True)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)


# one PENDING request per (user, provider, country); a NULL country counts as its own value
Index(
    "uq_slot_requests_pending_tuple",
    SlotRequest.user_id,
    SlotRequest.provider_id,
    func.coalesce(SlotRequest.country_id, literal_column("''")),
    unique=True,
    sqlite_where=text("status = 'PENDING'"),
    postgresql_where=text("status = 'PENDING'"),
)
