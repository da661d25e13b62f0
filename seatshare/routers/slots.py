from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from seatshare.services.request_service import request_to_dict

from .deps import current_user_id, get_container

router = APIRouter(prefix="/slots", tags=["slots"])


class SlotRequestIn(BaseModel):
    provider_id: str
    country_id: Optional[str] = None


@router.post("/requests")
def create_slot_request(
    payload: SlotRequestIn,
    request: Request,
    user_id: str = Depends(current_user_id),
):
    svc = get_container(request).request_service
    result = svc.request_slot(user_id, payload.provider_id, payload.country_id)
    # both outcomes are successes: 201 seat assigned, 202 queued
    code = status.HTTP_202_ACCEPTED if result.queued else status.HTTP_201_CREATED
    return JSONResponse(status_code=code, content=result.to_dict())


@router.get("/requests")
def list_slot_requests(request: Request, user_id: str = Depends(current_user_id)):
    svc = get_container(request).request_service
    return {"requests": [request_to_dict(r) for r in svc.list_user_requests(user_id)]}


@router.post("/requests/{request_id}/cancel")
def cancel_slot_request(request_id: str, request: Request, user_id: str = Depends(current_user_id)):
    svc = get_container(request).request_service
    return request_to_dict(svc.cancel_request(request_id, user_id))


@router.get("/me")
def my_slots(request: Request, user_id: str = Depends(current_user_id)):
    svc = get_container(request).request_service
    return {"slots": [view.to_dict() for view in svc.get_user_slots(user_id)]}


@router.post("/{slot_id}/release")
def release_slot(slot_id: str, request: Request, user_id: str = Depends(current_user_id)):
    svc = get_container(request).request_service
    slot = svc.release_slot(slot_id, user_id)
    return {"id": slot.id, "subscription_id": slot.subscription_id, "is_active": bool(slot.is_active)}
