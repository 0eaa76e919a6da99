from typing import Any, Dict
import hashlib

from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from marketplace.utils.security import COOKIE_NAME


def rate_limit_key(request: Request) -> str:
    """
    Clé de comptage: jeton d'accès haché (Bearer ou cookie), sinon IP, par chemin.
    Le jeton n'est jamais stocké en clair dans Redis.
    """
    path = request.url.path
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else request.cookies.get(COOKIE_NAME)
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"


async def _identifier(request: Request) -> str:
    return rate_limit_key(request)


def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de limitation de débit (fastapi-limiter).
    Sans effet lorsque le limiteur n'a pas été initialisé par le lifespan
    (tests, Redis indisponible au démarrage).
    """
    limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)

    async def _dep(request: Request, response: Response):
        if getattr(request.app.state, "rate_limit_enabled", False) is not True:
            return
        await limiter(request, response)
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    return {
        "enabled": bool(getattr(request.app.state, "rate_limit_enabled", False)),
        "ready": getattr(FastAPILimiter, "redis", None) is not None,
    }
