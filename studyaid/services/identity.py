from __future__ import annotations

import logging
from typing import Optional

import httpx

from studyaid.core.config import Settings
from studyaid.services.errors import AuthError

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError("No authorization header")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise AuthError("No authorization header")
    return token


def resolve_user_id(token: str, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> str:
    """
    Ask the identity provider who owns the access token.
    Only the opaque user id is used downstream.
    """
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise AuthError("Identity provider not configured")

    url = settings.supabase_url.rstrip("/") + "/auth/v1/user"
    headers = {"apikey": settings.supabase_anon_key, "Authorization": f"Bearer {token}"}
    try:
        with httpx.Client(timeout=httpx.Timeout(10.0), transport=transport) as client:
            r = client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.error("Identity provider unreachable: %s", e)
        raise AuthError("Invalid authentication") from e

    if r.status_code != 200:
        raise AuthError("Invalid authentication")
    user_id = (r.json() or {}).get("id")
    if not user_id:
        raise AuthError("Invalid authentication")
    return str(user_id)
