from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from taskhouse.core.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET_KEY


def create_access_token(
    email: str,
    user_id: int,
    tenant_id: int,
    extra: Optional[Dict[str, Any]] = None,
    expires_minutes: int = JWT_EXPIRE_MINUTES,
) -> str:
    """Emite um JWT preso ao usuário e ao tenant que o autenticaram.

    O papel nunca é lido do token: é resolvido no banco a cada requisição.
    """
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes)

    payload: Dict[str, Any] = {
        "sub": email.strip().lower(),
        "user_id": int(user_id),
        "tenant_id": int(tenant_id),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if extra:
        payload.update({key: value for key, value in extra.items() if key not in payload})

    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Retorna o payload do JWT ou levanta ValueError se inválido."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise ValueError("Token inválido ou expirado") from e
