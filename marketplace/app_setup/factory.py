"""
Factory d'application pour les entrypoints (marketplace.asgi, tests).
"""
from fastapi import FastAPI

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .logging_setup import configure_logging
from .middlewares import register_basic_middlewares, register_security_middleware
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - logs, middlewares de base et de sécurité
      - gestionnaires d'exceptions
      - tous les routers (API v1, admin, health)
    """
    configure_logging()
    app = FastAPI(title="Course Marketplace API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
