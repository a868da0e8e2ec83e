"""
Cas d'usage 'payments': orchestre repository, moteur de remises, stripe et metadata.
- Création de PaymentIntent: le montant facturé est recalculé côté serveur (plafonds par entité).
- Confirmation: idempotente par (entité, email, payment_intent_id), costeo en best-effort.
- Les dépendances (store, gateway, horloge) sont passées explicitement par la vue.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from parkpay.discounts import CATEGORIES, DiscountResult, calculate_discounts, from_cents, to_cents
from .errors import (
    AmountMismatchError,
    CapacityExceededError,
    DomainError,
    DuplicateConfirmationError,
    DuplicateRegistrationError,
    NotFoundError,
    PaymentNotCompletedError,
)
from .kinds import BookingKind, CEILING_COLUMNS, EARLY_BIRD_DEADLINE_COLUMN
from .metadata import extract_metadata, make_metadata
from .schemas import CustomerData, ParticipantData

logger = logging.getLogger(__name__)

# Écart toléré entre le montant affiché au client et le montant serveur (comparé sans arrondi)
AMOUNT_TOLERANCE = Decimal("0.01")
SUCCEEDED = "succeeded"

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _percent(value: Any) -> float:
    try:
        return max(0.0, float(value or 0))
    except (TypeError, ValueError):
        return 0.0

def load_entity(store, kind: BookingKind, entity_id: int) -> Dict[str, Any]:
    entity = store.get_entity(kind, entity_id)
    if not entity:
        raise NotFoundError(f"{kind.label}: entité {entity_id} introuvable")
    return entity

def is_free(kind: BookingKind, entity: Dict[str, Any]) -> bool:
    """Gratuit si le prix est absent/nul ou si le drapeau 'gratuit' de la famille est levé."""
    if kind.free_column and entity.get(kind.free_column):
        return True
    price = entity.get(kind.price_column)
    try:
        return price is None or to_cents(price) <= 0
    except (TypeError, ValueError, ArithmeticError):
        return True

def effective_discounts(entity: Dict[str, Any], client_discounts: Mapping[str, Optional[float]]) -> Dict[str, float]:
    """
    Plafonne chaque pourcentage demandé par le client au plafond configuré sur l'entité.
    Une catégorie sans plafond configuré vaut 0.
    """
    out: Dict[str, float] = {}
    for category in CATEGORIES:
        requested = _percent((client_discounts or {}).get(category))
        ceiling = _percent(entity.get(CEILING_COLUMNS[category]))
        out[category] = min(requested, ceiling)
    return out

def compute_entity_discounts(
    kind: BookingKind,
    entity: Dict[str, Any],
    client_discounts: Mapping[str, Optional[float]],
    clock: Callable[[], datetime] = _utcnow,
) -> DiscountResult:
    return calculate_discounts(
        entity.get(kind.price_column),
        effective_discounts(entity, client_discounts),
        entity.get(EARLY_BIRD_DEADLINE_COLUMN),
        clock=clock,
    )

# module parkpay.payments.service
def create_payment_intent(
    *,
    kind: BookingKind,
    entity_id: int,
    client_amount: float,
    customer: CustomerData,
    client_discounts: Mapping[str, Optional[float]],
    store,
    gateway,
    client_original_amount: Optional[float] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Dict[str, Any]:
    """
    Valide la réservation puis crée le PaymentIntent Stripe.
    Étapes:
      1) Charger l'entité (NotFoundError)
      2) Refuser une entité gratuite (DomainError)
      3) Plafonner les remises demandées aux plafonds de l'entité
      4) Calculer le montant autoritatif (moteur de remises)
      5) Comparer au montant client (AmountMismatchError au-delà d'1 centime)
      6) Capacité (CapacityExceededError) puis doublon par email (DuplicateRegistrationError)
      7) Customer Stripe (recherche puis création) et PaymentIntent avec métadonnées d'audit
    Aucune écriture côté Stripe avant l'étape 7.
    """
    entity = load_entity(store, kind, entity_id)
    if is_free(kind, entity):
        raise DomainError("Cette réservation est gratuite: aucun paiement requis", code="entity_is_free")

    result = compute_entity_discounts(kind, entity, client_discounts, clock=clock)

    expected = Decimal(result.final_cents) / 100
    if abs(Decimal(str(client_amount)) - expected) > AMOUNT_TOLERANCE:
        logger.warning(
            "payments.create_payment_intent amount mismatch kind=%s id=%s expected=%s received=%s original_client=%s",
            kind.name, entity_id, result.final_amount, client_amount, client_original_amount,
        )
        raise AmountMismatchError(expected=result.final_amount, received=client_amount)
    if result.final_cents <= 0:
        raise DomainError("Le montant remisé est nul: aucun paiement requis", code="payment_not_required")

    capacity = entity.get(kind.capacity_column)
    if capacity:
        booked = store.count_active_bookings(kind, entity_id)
        if booked >= int(capacity):
            raise CapacityExceededError("Capacité maximale atteinte", capacity=capacity, booked=booked)

    if store.find_booking_by_email(kind, entity_id, customer.email):
        raise DuplicateRegistrationError("Vous avez déjà une réservation pour cette entité avec cet email")

    title = entity.get(kind.title_column) or ""
    customer_id = gateway.find_or_create_customer(email=customer.email, name=customer.full_name, phone=customer.phone)
    intent = gateway.create_payment_intent(
        amount_cents=result.final_cents,
        customer_id=customer_id,
        metadata=make_metadata(
            kind=kind,
            entity_id=entity_id,
            entity_title=title,
            customer_name=customer.full_name,
            customer_email=customer.email,
            result=result,
        ),
        description=f"{kind.label}: {title}",
        receipt_email=customer.email,
    )
    logger.info(
        "payments.create_payment_intent kind=%s id=%s pi=%s cents=%s",
        kind.name, entity_id, intent.get("id"), result.final_cents,
    )
    return {
        "client_secret": intent.get("client_secret"),
        "payment_intent_id": intent.get("id"),
        "final_amount": result.final_amount,
        "original_amount": result.original_amount,
        "discount_breakdown": result.discount_breakdown,
        "total_discount_percentage": result.total_discount_percentage,
        "applied_discounts": result.applied_discounts,
    }

def build_costing_payload(kind: BookingKind, entity_id: int, intent: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reconstitue la charge utile du costeo depuis les métadonnées du PaymentIntent
    (la demande de remise n'est jamais persistée). Format camelCase du endpoint interne.
    """
    meta = extract_metadata(intent)
    paid_cents = intent.get("amount_received") or intent.get("amount") or 0
    final_amount = meta["final_amount"]
    if final_amount is None:
        final_amount = from_cents(int(paid_cents))
    original_amount = meta["original_amount"]
    if original_amount is None:
        original_amount = final_amount
    return {
        "entityType": kind.name,
        "entityId": entity_id,
        "originalAmount": original_amount,
        "finalAmount": final_amount,
        "discountPercentage": meta["discount_percentage"],
        "discountBreakdown": meta["discount_breakdown"],
        "paymentIntentId": intent.get("id"),
        "customerEmail": meta["customer_email"],
    }

def confirmed_booking_row(
    kind: BookingKind,
    entity_id: int,
    *,
    payment_intent_id: str,
    customer_id: Optional[str],
    full_name: str,
    email: str,
    payment_amount: float,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        kind.foreign_key: entity_id,
        "full_name": full_name,
        "email": email,
        "phone": phone,
        "notes": notes,
        "status": "confirmed",
        "payment_status": "paid",
        "payment_amount": payment_amount,
        "stripe_payment_intent_id": payment_intent_id,
        "stripe_customer_id": customer_id,
    }

def confirm_payment(
    *,
    kind: BookingKind,
    entity_id: int,
    payment_intent_id: str,
    participant: ParticipantData,
    store,
    gateway,
    dispatch: Optional[Callable[[Dict[str, Any]], Any]] = None,
) -> Dict[str, Any]:
    """
    Confirme un paiement réussi et crée l'inscription payée.
    - PaymentNotCompletedError si le PaymentIntent n'est pas 'succeeded'
    - DomainError si le PaymentIntent appartient à une autre entité
    - DuplicateConfirmationError si une inscription existe déjà pour (entité, email, intent)
    - dispatch: planifie le costeo; ses erreurs sont logguées, jamais propagées
    """
    intent = gateway.retrieve_payment_intent(payment_intent_id)
    status = intent.get("status")
    if status != SUCCEEDED:
        raise PaymentNotCompletedError(f"Le paiement n'a pas été complété (statut: {status})", status=status)

    meta = extract_metadata(intent)
    if meta["entity_type"] != kind.name or meta["entity_id"] != int(entity_id):
        logger.warning(
            "payments.confirm_payment entity mismatch kind=%s id=%s pi=%s meta=%s/%s",
            kind.name, entity_id, payment_intent_id, meta["entity_type"], meta["entity_id"],
        )
        raise DomainError("Ce paiement ne correspond pas à cette réservation", code="payment_entity_mismatch")

    entity = load_entity(store, kind, entity_id)

    if store.find_booking(kind, entity_id, payment_intent_id, email=participant.email):
        raise DuplicateConfirmationError("Une inscription existe déjà pour ce paiement")

    row = confirmed_booking_row(
        kind,
        entity_id,
        payment_intent_id=payment_intent_id,
        customer_id=intent.get("customer"),
        full_name=participant.full_name,
        email=participant.email,
        phone=participant.phone,
        notes=participant.additional_info,
        payment_amount=from_cents(to_cents(entity.get(kind.price_column) or 0)),
    )
    registration = store.insert_booking(kind, row)
    logger.info(
        "payments.confirm_payment kind=%s id=%s pi=%s booking=%s",
        kind.name, entity_id, payment_intent_id, registration.get("id"),
    )

    if dispatch is not None:
        try:
            dispatch(build_costing_payload(kind, entity_id, intent))
        except Exception:
            logger.exception("payments.confirm_payment costing dispatch failed pi=%s", payment_intent_id)
    return registration

def get_payment_status(
    *,
    kind: BookingKind,
    entity_id: int,
    payment_intent_id: str,
    store,
    gateway,
) -> Dict[str, Any]:
    """Statut Stripe du PaymentIntent + inscription locale éventuelle."""
    intent = gateway.retrieve_payment_intent(payment_intent_id)
    registration = store.find_booking(kind, entity_id, payment_intent_id)
    return {
        "payment_status": intent.get("status"),
        "registration_exists": registration is not None,
        "registration": registration,
    }
