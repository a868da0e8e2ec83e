"""
Factory d'application utilisée par les entrypoints (parkpay.asgi, parkpay.app, tests).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
import logging

from fastapi import FastAPI

from parkpay.config import LOG_LEVEL
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_security_middleware
from .exception_handlers import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base, sécurité, no-store
      - gestionnaires d'exceptions
      - tous les routers (discounts, payments, webhooks, costing, health)
    """
    logging.getLogger("parkpay").setLevel(LOG_LEVEL)
    app = FastAPI(title="ParkPay - Remises et paiements", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
