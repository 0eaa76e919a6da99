"""
Registre central des routers: panier, commandes, paiements (utilisateur + admin),
inscriptions et health.
"""
from fastapi import FastAPI

from marketplace.cart import views as cart_views
from marketplace.enrollments import views as enrollments_views
from marketplace.health.router import router as health_router
from marketplace.orders import views as orders_views
from marketplace.payments import views as payments_views


def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(cart_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(enrollments_views.router)
    # Admin
    app.include_router(payments_views.admin_router)
    # Health & monitoring
    app.include_router(health_router)
