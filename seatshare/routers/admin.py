from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from seatshare.services.request_service import request_to_dict
from seatshare.services.subscription_service import account_to_dict

from .deps import get_container, require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class SubscriptionIn(BaseModel):
    provider_id: str
    name: str
    email: str
    password: str
    available_slots: int
    country_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    user_price: Optional[Decimal] = None
    currency_code: Optional[str] = None
    is_active: bool = True


class SubscriptionUpdateIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    total_slots: Optional[int] = None
    country_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    user_price: Optional[Decimal] = None
    currency_code: Optional[str] = None
    is_active: Optional[bool] = None


class RejectIn(BaseModel):
    note: Optional[str] = None


@router.post("/subscriptions", status_code=status.HTTP_201_CREATED)
def create_subscription(payload: SubscriptionIn, request: Request):
    svc = get_container(request).subscription_service
    account = svc.create_account(
        payload.provider_id,
        payload.name,
        payload.email,
        payload.password,
        payload.available_slots,
        country_id=payload.country_id,
        expires_at=payload.expires_at,
        user_price=payload.user_price,
        currency_code=payload.currency_code,
        is_active=payload.is_active,
    )
    return account_to_dict(account)


@router.get("/subscriptions")
def list_subscriptions(request: Request, provider_id: Optional[str] = None, page: int = 1, limit: int = 10):
    svc = get_container(request).subscription_service
    return svc.list_accounts(provider_id, page=page, limit=limit).to_dict()


@router.get("/subscriptions/{subscription_id}")
def get_subscription(subscription_id: str, request: Request):
    svc = get_container(request).subscription_service
    return account_to_dict(svc.get_account(subscription_id))


@router.patch("/subscriptions/{subscription_id}")
def update_subscription(subscription_id: str, payload: SubscriptionUpdateIn, request: Request):
    svc = get_container(request).subscription_service
    return account_to_dict(svc.update_account(subscription_id, **payload.model_dump(exclude_unset=True)))


@router.delete("/subscriptions/{subscription_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subscription(subscription_id: str, request: Request):
    svc = get_container(request).subscription_service
    svc.delete_account(subscription_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/subscriptions/{subscription_id}/deactivate")
def deactivate_subscription(subscription_id: str, request: Request):
    svc = get_container(request).subscription_service
    return account_to_dict(svc.deactivate_account(subscription_id))


@router.post("/requests/{request_id}/reject")
def reject_request(request_id: str, request: Request, payload: Optional[RejectIn] = None):
    svc = get_container(request).request_service
    note = payload.note if payload else None
    return request_to_dict(svc.reject_request(request_id, note))


@router.post("/requests/process-pending")
def process_pending(request: Request, limit: Optional[int] = None):
    svc = get_container(request).request_service
    assigned = svc.process_pending(limit)
    return {"assigned": [request_to_dict(r) for r in assigned]}
