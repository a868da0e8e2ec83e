"""
Taxonomie d'erreurs du flux de paiement.
Chaque erreur porte un code stable (contrat front) et un statut HTTP; le message est affiché tel quel au client.
"""
from typing import Any, Dict, Optional

class PaymentError(Exception):
    status_code = 400
    code = "payment_error"

    def __init__(self, message: str, code: Optional[str] = None, **context: Any):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context: Dict[str, Any] = context

class ValidationError(PaymentError):
    code = "validation_error"

class NotFoundError(PaymentError):
    status_code = 404
    code = "not_found"

class DomainError(PaymentError):
    code = "domain_error"

class AmountMismatchError(PaymentError):
    code = "amount_mismatch"

    def __init__(self, expected: float, received: float):
        super().__init__(
            f"Montant invalide. Attendu: ${expected:.2f}, reçu: ${received:.2f}",
            expected=expected,
            received=received,
        )
        self.expected = expected
        self.received = received

class CapacityExceededError(PaymentError):
    code = "capacity_exceeded"

class DuplicateRegistrationError(PaymentError):
    code = "duplicate_registration"

class DuplicateConfirmationError(PaymentError):
    code = "duplicate_confirmation"

class PaymentNotCompletedError(PaymentError):
    code = "payment_not_completed"

class WebhookSignatureError(PaymentError):
    code = "invalid_signature"
