"""
Réconciliation asynchrone des événements Stripe (filet de sécurité de la confirmation synchrone).
- payment_intent.succeeded: passe la réservation en confirmed/paid (mise à jour, ou insertion si absente)
- payment_intent.payment_failed: journalisé uniquement (aucune action compensatoire)
- autres types: acquittés et ignorés
"""
import logging
from typing import Any, Dict

from parkpay.discounts import from_cents
from .errors import DuplicateConfirmationError
from .kinds import BookingKind
from .metadata import extract_metadata
from .service import confirmed_booking_row

logger = logging.getLogger(__name__)

SUCCEEDED_EVENT = "payment_intent.succeeded"
FAILED_EVENT = "payment_intent.payment_failed"

def _event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    return ((event or {}).get("data") or {}).get("object") or {}

def reconcile_succeeded(kind: BookingKind, intent: Dict[str, Any], store) -> Dict[str, Any]:
    meta = extract_metadata(intent)
    entity_id = meta["entity_id"]
    payment_intent_id = intent.get("id")
    if meta["entity_type"] != kind.name or entity_id is None or not payment_intent_id:
        logger.info("payments.webhooks ignored pi=%s entity_type=%s", payment_intent_id, meta["entity_type"])
        return {"status": "ignored"}

    paid_amount = from_cents(int(intent.get("amount_received") or intent.get("amount") or 0))
    booking = store.find_booking(kind, entity_id, payment_intent_id)
    if booking:
        if booking.get("status") == "confirmed" and booking.get("payment_status") == "paid":
            logger.info("payments.webhooks already confirmed pi=%s booking=%s", payment_intent_id, booking.get("id"))
            return {"status": "already_confirmed"}
        store.update_booking(kind, booking.get("id"), {
            "status": "confirmed",
            "payment_status": "paid",
            "payment_amount": paid_amount,
        })
        logger.info("payments.webhooks updated pi=%s booking=%s", payment_intent_id, booking.get("id"))
        return {"status": "updated"}

    if not store.get_entity(kind, entity_id):
        logger.warning("payments.webhooks entity not found kind=%s id=%s pi=%s", kind.name, entity_id, payment_intent_id)
        return {"status": "entity_not_found"}
    email = meta["customer_email"]
    if not email:
        logger.warning("payments.webhooks metadata without customer_email pi=%s", payment_intent_id)
        return {"status": "ignored"}

    row = confirmed_booking_row(
        kind,
        entity_id,
        payment_intent_id=payment_intent_id,
        customer_id=intent.get("customer"),
        full_name=meta["customer_name"] or email,
        email=email,
        payment_amount=paid_amount,
    )
    try:
        created = store.insert_booking(kind, row)
    except DuplicateConfirmationError:
        # La confirmation synchrone a inséré entre-temps
        logger.info("payments.webhooks already reconciled pi=%s", payment_intent_id)
        return {"status": "already_confirmed"}
    logger.info("payments.webhooks created pi=%s booking=%s", payment_intent_id, created.get("id"))
    return {"status": "created"}

# module parkpay.payments.webhooks
def handle_event(*, kind: BookingKind, event: Dict[str, Any], store) -> Dict[str, Any]:
    """Aiguille un événement Stripe déjà vérifié; retourne {'status': ...} pour les logs/tests."""
    event_type = (event or {}).get("type")
    logger.info("payments.webhooks received type=%s kind=%s id=%s", event_type, kind.name, (event or {}).get("id"))
    if event_type == SUCCEEDED_EVENT:
        return reconcile_succeeded(kind, _event_object(event), store)
    if event_type == FAILED_EVENT:
        intent = _event_object(event)
        error = (intent.get("last_payment_error") or {}).get("message")
        logger.warning(
            "payments.webhooks payment failed kind=%s pi=%s entity=%s error=%s",
            kind.name, intent.get("id"), (intent.get("metadata") or {}).get("entity_id"), error,
        )
        return {"status": "failed_logged"}
    return {"status": "ignored"}
