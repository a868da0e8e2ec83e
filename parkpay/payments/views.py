import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from parkpay.dependencies import get_booking_store, get_costing_dispatcher, get_stripe_gateway
from parkpay.utils.rate_limit import optional_rate_limit
from . import service as payments_service
from . import webhooks as payments_webhooks
from .errors import PaymentError
from .kinds import KINDS, BookingKind
from .schemas import ConfirmPaymentRequest, CreatePaymentIntentRequest

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Erreur interne du serveur"

# module parkpay.payments.views
def build_router(kind: BookingKind) -> APIRouter:
    """
    Router de paiement d'une famille réservable (/api/events/..., /api/spaces/...).
    - Les erreurs métier (PaymentError) remontent aux handlers: 4xx {success:false, error, code}
    - Toute autre exception est logguée avec le contexte puis masquée en 500
    """
    router = APIRouter(prefix=f"/api/{kind.segment}", tags=[f"Payments API ({kind.segment})"])

    @router.post(
        "/{entity_id}/create-payment-intent",
        dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
    )
    def create_payment_intent(
        entity_id: int,
        body: CreatePaymentIntentRequest,
        store=Depends(get_booking_store),
        gateway=Depends(get_stripe_gateway),
    ) -> Dict[str, Any]:
        """
        Crée un PaymentIntent Stripe après recalcul serveur du montant.
        - Entrée: {amount, originalAmount?, customerData, appliedDiscounts?}
        - 400: entité gratuite, montant incohérent, capacité atteinte, doublon; 404: entité absente
        """
        discounts = body.applied_discounts.as_categories() if body.applied_discounts else {}
        try:
            out = payments_service.create_payment_intent(
                kind=kind,
                entity_id=entity_id,
                client_amount=body.amount,
                client_original_amount=body.original_amount,
                customer=body.customer_data,
                client_discounts=discounts,
                store=store,
                gateway=gateway,
            )
        except PaymentError:
            raise
        except Exception:
            logger.exception("Erreur create_payment_intent kind=%s id=%s", kind.name, entity_id)
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
        return {
            "success": True,
            "clientSecret": out["client_secret"],
            "paymentIntentId": out["payment_intent_id"],
            "amount": out["final_amount"],
            "originalAmount": out["original_amount"],
            "discountBreakdown": out["discount_breakdown"],
            "totalDiscountPercentage": out["total_discount_percentage"],
            "appliedDiscounts": out["applied_discounts"],
        }

    @router.post("/{entity_id}/confirm-payment")
    def confirm_payment(
        entity_id: int,
        body: ConfirmPaymentRequest,
        background_tasks: BackgroundTasks,
        store=Depends(get_booking_store),
        gateway=Depends(get_stripe_gateway),
        dispatcher=Depends(get_costing_dispatcher),
    ) -> Dict[str, Any]:
        """
        Confirme un paiement réussi et crée l'inscription.
        - Le costeo est planifié en tâche de fond (après l'envoi de la réponse)
        - 400: paiement non complété, doublon, paiement d'une autre entité
        """
        try:
            registration = payments_service.confirm_payment(
                kind=kind,
                entity_id=entity_id,
                payment_intent_id=body.payment_intent_id,
                participant=body.participant_data,
                store=store,
                gateway=gateway,
                dispatch=lambda payload: background_tasks.add_task(dispatcher.dispatch, payload),
            )
        except PaymentError:
            raise
        except Exception:
            logger.exception("Erreur confirm_payment kind=%s id=%s pi=%s", kind.name, entity_id, body.payment_intent_id)
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
        return {
            "success": True,
            "data": registration,
            "message": "Paiement confirmé et inscription enregistrée",
        }

    @router.get("/{entity_id}/payment-status/{payment_intent_id}")
    def payment_status(
        entity_id: int,
        payment_intent_id: str,
        store=Depends(get_booking_store),
        gateway=Depends(get_stripe_gateway),
    ) -> Dict[str, Any]:
        """Statut Stripe du paiement et existence de l'inscription locale."""
        try:
            out = payments_service.get_payment_status(
                kind=kind,
                entity_id=entity_id,
                payment_intent_id=payment_intent_id,
                store=store,
                gateway=gateway,
            )
        except PaymentError:
            raise
        except Exception:
            logger.exception("Erreur payment_status kind=%s id=%s pi=%s", kind.name, entity_id, payment_intent_id)
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
        return {
            "success": True,
            "paymentStatus": out["payment_status"],
            "registrationExists": out["registration_exists"],
            "registration": out["registration"],
        }

    return router

def build_webhook_router() -> APIRouter:
    router = APIRouter(prefix="/api/webhooks/stripe", tags=["Stripe Webhooks"])

    def _register(kind: BookingKind) -> None:
        @router.post(f"/{kind.segment}", include_in_schema=False, name=f"stripe_webhook_{kind.name}")
        async def stripe_webhook(
            request: Request,
            store=Depends(get_booking_store),
            gateway=Depends(get_stripe_gateway),
        ):
            """
            Webhook Stripe (PaymentIntent) de la famille.
            - Signature vérifiée sur le corps brut avant tout parsing (400 sinon)
            - Réponse {received: true} y compris pour les types ignorés
            """
            payload = await request.body()
            event = gateway.parse_event(payload, request.headers.get("stripe-signature"))
            try:
                outcome = await run_in_threadpool(
                    payments_webhooks.handle_event, kind=kind, event=event, store=store
                )
            except Exception:
                logger.exception("Erreur stripe_webhook kind=%s event=%s", kind.name, event.get("id"))
                raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
            logger.info("payments.webhook kind=%s outcome=%s", kind.name, outcome.get("status"))
            return {"received": True}

    for kind in KINDS.values():
        _register(kind)
    return router

routers = [build_router(kind) for kind in KINDS.values()]
webhook_router = build_webhook_router()
