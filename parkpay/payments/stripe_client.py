"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
- Une instance StripeGateway construit son propre stripe.StripeClient (clé, timeout, retries)
  et est injectée dans les services; les tests la remplacent par un faux.
- Les objets Stripe sont normalisés en dict simples avant de quitter l'adaptateur.
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from .errors import WebhookSignatureError

logger = logging.getLogger(__name__)

# Champs PaymentIntent utiles au flux (jamais de données carte)
_INTENT_FIELDS = ("id", "status", "amount", "amount_received", "currency", "customer", "client_secret")

def _to_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return dict(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)

def normalize_intent(intent: Any) -> Dict[str, Any]:
    """Réduit un PaymentIntent Stripe à un dict {id, status, amount, ..., metadata}."""
    data = _to_dict(intent)
    out = {k: data.get(k) for k in _INTENT_FIELDS}
    customer = out.get("customer")
    if customer is not None and not isinstance(customer, str):
        out["customer"] = _to_dict(customer).get("id")
    out["metadata"] = {str(k): str(v) for k, v in _to_dict(data.get("metadata")).items()}
    return out

# module parkpay.payments.stripe_client
class StripeGateway:
    def __init__(
        self,
        api_key: str,
        webhook_secret: str = "",
        currency: str = "mxn",
        timeout: float = 10.0,
        max_network_retries: int = 2,
        client: Optional[stripe.StripeClient] = None,
    ):
        if not api_key:
            raise RuntimeError("STRIPE_SECRET_KEY manquant")
        self.webhook_secret = webhook_secret
        self.currency = currency
        # Client propre à la passerelle: timeout et retries bornent chaque requête (aucun réglage global du module stripe)
        self.client = client or stripe.StripeClient(
            api_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=max_network_retries,
        )

    def find_or_create_customer(self, *, email: str, name: str, phone: Optional[str] = None) -> str:
        """
        Retourne l'id du customer Stripe associé à l'email (recherche puis création).
        Non atomique: deux appels simultanés peuvent créer deux customers pour le même email.
        """
        existing = self.client.v1.customers.list(params={"email": email, "limit": 1})
        data = getattr(existing, "data", None) or []
        if data:
            return data[0].id
        params: Dict[str, Any] = {"email": email, "name": name}
        if phone:
            params["phone"] = phone
        customer = self.client.v1.customers.create(params=params)
        return customer.id

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        customer_id: str,
        metadata: Dict[str, str],
        description: str,
        receipt_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "amount": amount_cents,
            "currency": self.currency,
            "customer": customer_id,
            "metadata": metadata,
            "description": description,
            "automatic_payment_methods": {"enabled": True},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        intent = self.client.v1.payment_intents.create(params=params)
        return normalize_intent(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        intent = self.client.v1.payment_intents.retrieve(payment_intent_id)
        return normalize_intent(intent)

    def parse_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Valide la signature Stripe-Signature sur le corps brut puis retourne l'événement (dict).
        Lève WebhookSignatureError si la signature ou le payload sont invalides.
        """
        if not self.webhook_secret:
            raise WebhookSignatureError("STRIPE_WEBHOOK_SECRET non configuré")
        if not sig_header:
            raise WebhookSignatureError("En-tête stripe-signature manquant")
        try:
            stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("payments.stripe_client.parse_event signature invalide: %s", e)
            raise WebhookSignatureError("Signature Stripe invalide")
        except ValueError:
            raise WebhookSignatureError("Payload Stripe invalide")
        # Signature vérifiée: le corps brut est la source de vérité
        return json.loads(payload)
