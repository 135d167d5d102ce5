from __future__ import annotations

import time
from typing import Any, Dict, Optional

from fastapi import Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from taskhouse.core.config import (
    SESSION_COOKIE_DOMAIN,
    SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_SECURE,
    SESSION_MAX_AGE_SECONDS,
    SESSION_SECRET,
)

SESSION_COOKIE = "taskhouse_session"
SESSION_SALT = "taskhouse-session"


def _serializer() -> URLSafeTimedSerializer:
    if not SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET não configurado.")
    return URLSafeTimedSerializer(SESSION_SECRET, salt=SESSION_SALT)


def create_session(email: str, user_id: int, tenant_id: int) -> str:
    payload = {
        "email": email.strip().lower(),
        "user_id": int(user_id),
        "tenant_id": int(tenant_id),
        "exp": int(time.time()) + SESSION_MAX_AGE_SECONDS,
    }
    return _serializer().dumps(payload)


def decode_session(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer().loads(token, max_age=SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload


def _cookie_options() -> dict[str, Any]:
    secure = SESSION_COOKIE_SECURE
    samesite = SESSION_COOKIE_SAMESITE
    # Browsers rejeitam SameSite=None sem Secure.
    if samesite == "none" and not secure:
        samesite = "lax"
    return {
        "domain": SESSION_COOKIE_DOMAIN,
        "httponly": True,
        "samesite": samesite,
        "path": "/",
        "secure": secure,
    }


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=SESSION_MAX_AGE_SECONDS,
        **_cookie_options(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE, **_cookie_options())
