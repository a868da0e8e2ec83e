"""
Module 'payments' (feature-first): PaymentIntent, confirmation et réconciliation Stripe
pour les familles réservables (événements, espaces).
"""

from .errors import (
    AmountMismatchError,
    CapacityExceededError,
    DomainError,
    DuplicateConfirmationError,
    DuplicateRegistrationError,
    NotFoundError,
    PaymentError,
    PaymentNotCompletedError,
    ValidationError,
    WebhookSignatureError,
)
from .kinds import EVENT, SPACE, KINDS, BookingKind, get_kind, get_kind_by_name
from .service import confirm_payment, create_payment_intent, get_payment_status
from .webhooks import handle_event

__all__ = [
    "AmountMismatchError",
    "CapacityExceededError",
    "DomainError",
    "DuplicateConfirmationError",
    "DuplicateRegistrationError",
    "NotFoundError",
    "PaymentError",
    "PaymentNotCompletedError",
    "ValidationError",
    "WebhookSignatureError",
    "EVENT",
    "SPACE",
    "KINDS",
    "BookingKind",
    "get_kind",
    "get_kind_by_name",
    "confirm_payment",
    "create_payment_intent",
    "get_payment_status",
    "handle_event",
]
