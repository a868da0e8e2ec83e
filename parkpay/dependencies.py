"""
Dépendances FastAPI: clients et stores construits explicitement puis mis en cache sur app.state.
- Aucun singleton module: un client est créé au premier besoin avec la configuration courante.
- Les tests remplacent ces fonctions via app.dependency_overrides (fakes en mémoire).
"""
from fastapi import Request
from supabase import Client

from parkpay.config import (
    COSTING_BASE_URL,
    COSTING_TIMEOUT_SECONDS,
    INTERNAL_API_TOKEN,
    STRIPE_CURRENCY,
    STRIPE_MAX_NETWORK_RETRIES,
    STRIPE_SECRET_KEY,
    STRIPE_TIMEOUT_SECONDS,
    STRIPE_WEBHOOK_SECRET,
)
from parkpay.costing.dispatcher import HttpCostingDispatcher, LocalCostingDispatcher
from parkpay.costing.repository import SupabaseCostingStore
from parkpay.infra.supabase_client import create_service_client
from parkpay.payments.repository import SupabaseBookingStore
from parkpay.payments.stripe_client import StripeGateway

def _cached(request: Request, name: str, factory):
    state = request.app.state
    value = getattr(state, name, None)
    if value is None:
        value = factory()
        setattr(state, name, value)
    return value

def get_supabase(request: Request) -> Client:
    return _cached(request, "supabase", create_service_client)

def get_booking_store(request: Request) -> SupabaseBookingStore:
    return _cached(request, "booking_store", lambda: SupabaseBookingStore(get_supabase(request)))

def get_stripe_gateway(request: Request) -> StripeGateway:
    return _cached(request, "stripe_gateway", lambda: StripeGateway(
        STRIPE_SECRET_KEY,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        currency=STRIPE_CURRENCY,
        timeout=STRIPE_TIMEOUT_SECONDS,
        max_network_retries=STRIPE_MAX_NETWORK_RETRIES,
    ))

def get_costing_store(request: Request) -> SupabaseCostingStore:
    return _cached(request, "costing_store", lambda: SupabaseCostingStore(get_supabase(request)))

def get_costing_dispatcher(request: Request):
    """COSTING_BASE_URL renseigné: service de costeo distant (HTTP); sinon traitement en process."""
    def _build():
        if COSTING_BASE_URL:
            return HttpCostingDispatcher(COSTING_BASE_URL, INTERNAL_API_TOKEN, timeout=COSTING_TIMEOUT_SECONDS)
        return LocalCostingDispatcher(get_costing_store(request))
    return _cached(request, "costing_dispatcher", _build)
