"""
Registre central des routers (API discounts, paiements par famille, webhooks Stripe, costing, health).
"""
from fastapi import FastAPI

from parkpay.discounts.views import router as discounts_router
from parkpay.payments import views as payments_views
from parkpay.costing.views import router as costing_router
from parkpay.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(discounts_router)
    for router in payments_views.routers:
        app.include_router(router)
    app.include_router(payments_views.webhook_router)
    app.include_router(costing_router)
    app.include_router(health_router)
