"""
====================================================================
RATE LIMITING
====================================================================
Limites por IP para as rotas do pipeline e para a captação pública.
====================================================================
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse
import logging
import os

logger = logging.getLogger(__name__)


# Formato: "X/period" onde period pode ser: second, minute, hour, day
RATE_LIMITS = {
    # Captação pública (sem autenticação)
    "public": os.environ.get("RATE_LIMIT_PUBLIC", "5/minute"),

    # Leituras do quadro
    "read": os.environ.get("RATE_LIMIT_READ", "120/minute"),

    # Movimentações, edições, solicitações
    "write": os.environ.get("RATE_LIMIT_WRITE", "60/minute"),

    # Upload de documentos
    "upload": os.environ.get("RATE_LIMIT_UPLOAD", "10/minute"),

    "default": os.environ.get("RATE_LIMIT_DEFAULT", "200/minute"),
}


def _get_client_ip(request: Request) -> str:
    """
    Obtém o IP real do cliente, considerando proxies.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMITS["default"]],
    headers_enabled=False,
    strategy="fixed-window",
    enabled=os.environ.get("TESTING", "false").lower() != "true",
)


def limit_public():
    return limiter.limit(RATE_LIMITS["public"])

def limit_read():
    return limiter.limit(RATE_LIMITS["read"])

def limit_write():
    return limiter.limit(RATE_LIMITS["write"])

def limit_upload():
    return limiter.limit(RATE_LIMITS["upload"])


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Handler para quando o rate limit é excedido.
    Loga o evento e retorna resposta 429.
    """
    logger.warning(
        f"Rate limit excedido | IP: {_get_client_ip(request)} | Path: {request.url.path} | "
        f"Limite: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "Muitas requisições. Por favor aguarde.",
            "detail": str(exc.detail),
            "retry_after": "60 segundos"
        },
        headers={"Retry-After": "60"}
    )
