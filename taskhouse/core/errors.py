from __future__ import annotations

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class AppError(HTTPException):
    """Base for every domain error surfaced to callers.

    Subclasses fix the HTTP status and a stable machine-readable ``code``; the
    message can be overridden per raise site.
    """

    http_status = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_detail = "Erro na requisição"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.http_status, detail=detail or self.default_detail)


class AuthenticationRequired(AppError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "authentication_required"
    default_detail = "Autenticação necessária"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class InvalidCredentials(AppError):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    default_detail = "Credenciais inválidas"


class UserNotFound(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "user_not_found"
    default_detail = "Usuário não encontrado neste tenant"


class AccountInactive(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "account_inactive"
    default_detail = "Conta de usuário inativa"


class InsufficientPermissions(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "insufficient_permissions"
    default_detail = "Permissão insuficiente"


class PermissionDenied(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_detail = "Acesso negado"


class NotFound(AppError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Registro não encontrado"


class Conflict(AppError):
    http_status = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflito com registro existente"


class InvalidReference(AppError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_reference"
    default_detail = "Referência inválida"


class InvalidAssignee(InvalidReference):
    code = "invalid_assignee"
    default_detail = "Responsável inválido"


class InvalidMention(InvalidReference):
    code = "invalid_mention"
    default_detail = "Menção de usuário inválida"


class InvalidToken(AppError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "invalid_token"
    default_detail = "Token de convite inválido"


class Expired(AppError):
    http_status = status.HTTP_410_GONE
    code = "expired"
    default_detail = "Convite expirado"


class AlreadyAccepted(AppError):
    http_status = status.HTTP_409_CONFLICT
    code = "already_accepted"
    default_detail = "Convite já aceito"


class ValidationFailed(AppError):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "validation_failed"
    default_detail = "Dados inválidos"


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=getattr(exc, "headers", None),
    )
