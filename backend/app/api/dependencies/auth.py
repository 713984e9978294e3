# backend/app/api/dependencies/auth.py
"""
Caller identity dependencies.

Authentication happens upstream: the auth gateway forwards the verified user
id in the X-User-Id header. This module turns that id into an Actor with its
platform role and organization memberships.
"""

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ...core.config import settings
from ...principal import Actor
from ...services.organization_access_service import OrganizationAccessService
from .services import get_organization_access_service

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def get_current_actor(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    access_service: OrganizationAccessService = Depends(get_organization_access_service),
) -> Actor:
    """Resolve the forwarded user id into an Actor, or fail with 401."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    actor = access_service.resolve_actor(x_user_id.strip())
    if actor is None:
        logger.warning("Unknown user id forwarded", extra={"user_id": x_user_id})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return actor


def require_platform_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_platform_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform admin access required",
        )
    return actor


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Require "Bearer <CRON_SECRET>" on scheduler endpoints when a secret is configured."""
    expected = settings.cron_secret.get_secret_value() if settings.cron_secret else ""
    if not expected:
        return
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {expected}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")
