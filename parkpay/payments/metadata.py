"""
Sérialisation/désérialisation des métadonnées Stripe d'un PaymentIntent.
Ces métadonnées sont la piste d'audit durable: la demande de remise du client n'est jamais persistée.
"""
import json
from typing import Any, Dict, Optional

from parkpay.discounts import DiscountResult
from .kinds import BookingKind

MODULE_NAME = "parkpay"

# module parkpay.payments.metadata
def make_metadata(
    *,
    kind: BookingKind,
    entity_id: int,
    entity_title: str,
    customer_name: str,
    customer_email: str,
    result: DiscountResult,
) -> Dict[str, str]:
    """
    Construit les métadonnées (valeurs str uniquement, contrainte Stripe).
    - discounts_applied: JSON du détail {catégorie: pourcentage}
    - entity_title tronqué à 500 caractères (limite Stripe par valeur)
    """
    return {
        "module": MODULE_NAME,
        "entity_type": kind.name,
        "entity_id": str(entity_id),
        "entity_title": (entity_title or "")[:500],
        "customer_name": customer_name,
        "customer_email": customer_email,
        "original_amount": f"{result.original_amount:.2f}",
        "final_amount": f"{result.final_amount:.2f}",
        "discounts_applied": json.dumps(result.discount_breakdown),
        "discount_percentage": f"{result.total_discount_percentage:g}",
    }

def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None

def extract_metadata(intent: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extrait les métadonnées typées d'un PaymentIntent normalisé (ou d'un event.data.object).
    - Tolérant: JSON invalide => breakdown {}, nombres invalides => None.
    """
    meta = (intent or {}).get("metadata") or {}
    try:
        breakdown = json.loads(meta.get("discounts_applied") or "{}")
    except (TypeError, ValueError):
        breakdown = {}
    if not isinstance(breakdown, dict):
        breakdown = {}
    entity_id = meta.get("entity_id")
    try:
        entity_id = int(entity_id) if entity_id not in (None, "") else None
    except (TypeError, ValueError):
        entity_id = None
    return {
        "entity_type": meta.get("entity_type"),
        "entity_id": entity_id,
        "entity_title": meta.get("entity_title"),
        "customer_name": meta.get("customer_name"),
        "customer_email": meta.get("customer_email"),
        "original_amount": _float_or_none(meta.get("original_amount")),
        "final_amount": _float_or_none(meta.get("final_amount")),
        "discount_percentage": _float_or_none(meta.get("discount_percentage")) or 0.0,
        "discount_breakdown": breakdown,
    }
