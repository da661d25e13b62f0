"""Request-scoped helpers shared by the routers."""
from __future__ import annotations

import secrets

from fastapi import Header, HTTPException, Request

from seatshare.container import Container


def get_container(request: Request) -> Container:
    container = getattr(getattr(request.app, "state", None), "container", None)
    if not container:
        raise RuntimeError("Service container not configured")
    return container


def current_user_id(x_user_id: str = Header("", alias="X-User-Id")) -> str:
    """Identity injected by the authenticating gateway in front of this service."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(401, "Missing user identity")
    return user_id


def require_admin(request: Request, x_admin_token: str = Header("", alias="X-Admin-Token")) -> None:
    expected = get_container(request).settings.admin_token
    if not expected:
        raise HTTPException(403, "Admin API disabled")
    if not secrets.compare_digest(x_admin_token or "", expected):
        raise HTTPException(403, "Invalid admin token")
