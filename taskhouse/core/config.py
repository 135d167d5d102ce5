import os
import re
from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskhouse.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_STAGE = ENV_NORMALIZED in {"stage", "staging", "homolog"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}
PUBLIC_BASE_DOMAIN = os.getenv("PUBLIC_BASE_DOMAIN", "taskhouse.app").strip().lower()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

_cors_origin_regex_env = os.getenv("CORS_ALLOW_ORIGIN_REGEX", "").strip()
if _cors_origin_regex_env:
    CORS_ALLOW_ORIGIN_REGEX = _cors_origin_regex_env
elif not IS_DEV and PUBLIC_BASE_DOMAIN:
    escaped_base_domain = re.escape(PUBLIC_BASE_DOMAIN)
    CORS_ALLOW_ORIGIN_REGEX = rf"^https://([a-z0-9-]+\.)?{escaped_base_domain}$"
else:
    CORS_ALLOW_ORIGIN_REGEX = None

# Auth (JWT)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-insecure-jwt-secret" if not IS_PROD else "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))

# Sessão via cookie assinado
SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-insecure-session-secret" if not IS_PROD else "")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", "604800"))
SESSION_COOKIE_SECURE = os.getenv(
    "SESSION_COOKIE_SECURE",
    "0" if IS_DEV else "1",
).strip().lower() in {"1", "true", "yes", "on"}
SESSION_COOKIE_SAMESITE = os.getenv(
    "SESSION_COOKIE_SAMESITE",
    "lax",
).strip().lower()
if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    SESSION_COOKIE_SAMESITE = "lax"
SESSION_COOKIE_DOMAIN = os.getenv("SESSION_COOKIE_DOMAIN", "").strip() or None

# Domínio
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "7"))
NOTIFICATIONS_PAGE_SIZE = int(os.getenv("NOTIFICATIONS_PAGE_SIZE", "50"))
ACTIVITY_PAGE_SIZE = int(os.getenv("ACTIVITY_PAGE_SIZE", "100"))
