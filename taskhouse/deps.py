from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from taskhouse.core.errors import AuthenticationRequired
from taskhouse.services.auth import decode_access_token
from taskhouse.services.identity import Identity, normalize_email
from taskhouse.services.sessions import SESSION_COOKIE, decode_session

# Swagger "Authorize" usa o login JSON; auto_error=False para aceitar também o cookie.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

logger = logging.getLogger(__name__)


def _identity_from_claims(payload: dict, email_key: str) -> Optional[Identity]:
    email = normalize_email(payload.get(email_key))
    try:
        user_id = int(payload["user_id"])
        tenant_id = int(payload["tenant_id"])
    except (KeyError, TypeError, ValueError):
        logger.info("Rejected credential without user/tenant binding")
        return None
    if not email:
        return None
    return Identity(user_id=user_id, tenant_id=tenant_id, email=email)


def _identity_from_bearer(token: str) -> Optional[Identity]:
    try:
        payload = decode_access_token(token)
    except ValueError:
        logger.info("Rejected bearer token: invalid or expired")
        return None
    return _identity_from_claims(payload, "sub")


def _identity_from_cookie(request: Request) -> Optional[Identity]:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    payload = decode_session(token)
    if not payload:
        return None
    return _identity_from_claims(payload, "email")


def get_identity(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[Identity]:
    """Identidade verificada do chamador (Bearer JWT ou cookie de sessão), ou None.

    A credencial carrega usuário e tenant; o papel é resolvido no banco por cada operação.
    """
    identity = _identity_from_bearer(token) if token else None
    if identity is None:
        identity = _identity_from_cookie(request)
    request.state.identity = identity
    return identity


def require_identity(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    if identity is None:
        raise AuthenticationRequired()
    return identity
