"""
Gestionnaires d'exceptions.
- HTTPException: réponse JSON standard {"detail": ...}.
- Toute autre exception (stockage injoignable, réponse passerelle inattendue):
  journalisée puis convertie en 500 générique, sans détail interne.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from marketplace.errors import resolve_locale

logger = logging.getLogger(__name__)

_GENERIC_MESSAGE = {"fr": "Erreur interne, veuillez réessayer", "en": "Internal error, please retry"}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        locale = resolve_locale(request.headers.get("accept-language"))
        return JSONResponse(
            status_code=500,
            content={"detail": {"code": "internal_error", "message": _GENERIC_MESSAGE[locale]}},
        )
