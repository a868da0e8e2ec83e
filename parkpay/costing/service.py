"""
Costeo financier des paiements confirmés.

- process_payment: écriture de revenu (compte 4001), écriture de remise (compte 6001) si remise > 0,
  puis ligne d'audit avec la cible de recouvrement et son atteinte.
- Idempotent par payment_intent_id: un second traitement renvoie les métriques déjà auditées.
- build_report / build_dashboard: agrégats calculés à partir du journal d'audit.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from parkpay.config import DEFAULT_COST_RECOVERY_PERCENTAGE
from parkpay.discounts import from_cents, to_cents
from parkpay.payments.errors import NotFoundError, ValidationError
from parkpay.payments.kinds import get_kind_by_name
from .schemas import CostingPayload

logger = logging.getLogger(__name__)

INCOME_ACCOUNT = "4001"
DISCOUNT_EXPENSE_ACCOUNT = "6001"
TOP_PERFORMERS_LIMIT = 10
TOP_PERFORMERS_MIN_PAYMENTS = 2

def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0

def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole > 0 else 0.0

def _metrics_from_audit(row: Dict[str, Any]) -> Dict[str, Any]:
    original = _num(row.get("original_amount"))
    final = _num(row.get("final_amount"))
    return {
        "originalAmount": original,
        "finalAmount": final,
        "discountAmount": _num(row.get("discount_amount")),
        "discountPercentage": _num((row.get("metadata") or {}).get("discount_percentage")),
        "targetRecoveryPercentage": _num(row.get("recovery_percentage_target")),
        "actualRecoveryPercentage": _pct(final, original),
        "recoveryAchieved": bool(row.get("recovery_achieved")),
    }

# module parkpay.costing.service
def process_payment(
    store,
    payload: CostingPayload,
    default_recovery_percentage: float = DEFAULT_COST_RECOVERY_PERCENTAGE,
) -> Dict[str, Any]:
    """
    Enregistre le costeo d'un paiement confirmé.
    - NotFoundError si l'entité n'existe plus
    - Cible de recouvrement: celle de l'entité, sinon celle du payload, sinon la valeur par défaut
    Retour: {duplicate, accountingEntryId, costingMetrics}
    """
    existing = store.find_audit(payload.payment_intent_id)
    if existing:
        logger.info("costing.process_payment already processed pi=%s", payload.payment_intent_id)
        return {"duplicate": True, "accountingEntryId": None, "costingMetrics": _metrics_from_audit(existing)}

    kind = get_kind_by_name(payload.entity_type)
    entity = store.get_entity(kind, payload.entity_id)
    if not entity:
        raise NotFoundError("Entité introuvable pour le costeo")

    target = entity.get("cost_recovery_percentage")
    if target is None:
        target = payload.cost_recovery_percentage
    if target is None:
        target = default_recovery_percentage
    target = float(target)

    original_cents = to_cents(payload.original_amount)
    final_cents = to_cents(payload.final_amount)
    discount_cents = max(0, original_cents - final_cents)
    original_amount = from_cents(original_cents)
    final_amount = from_cents(final_cents)
    discount_amount = from_cents(discount_cents)
    # Recouvrement atteint si le montant encaissé couvre la part cible du prix de base
    recovery_achieved = final_cents * 100 >= original_cents * target
    title = entity.get("title") or f"#{payload.entity_id}"

    income = store.insert_accounting_entry({
        "amount": final_amount,
        "description": f"Revenu {payload.entity_type} - {title}",
        "reference": payload.payment_intent_id,
        "account_code": INCOME_ACCOUNT,
        "transaction_type": "income",
        "entity_type": payload.entity_type,
        "entity_id": payload.entity_id,
        "metadata": {
            "original_amount": original_amount,
            "discount_amount": discount_amount,
            "discount_percentage": payload.discount_percentage,
            "discount_breakdown": payload.discount_breakdown,
            "cost_recovery_target": target,
            "cost_recovery_achieved": recovery_achieved,
            "customer_email": payload.customer_email,
        },
    })
    if discount_cents > 0:
        store.insert_accounting_entry({
            "amount": discount_amount,
            "description": f"Remises accordées - {title}",
            "reference": payload.payment_intent_id,
            "account_code": DISCOUNT_EXPENSE_ACCOUNT,
            "transaction_type": "expense",
            "entity_type": payload.entity_type,
            "entity_id": payload.entity_id,
            "metadata": {"discount_breakdown": payload.discount_breakdown},
        })

    store.insert_audit({
        "entity_type": payload.entity_type,
        "entity_id": payload.entity_id,
        "payment_intent_id": payload.payment_intent_id,
        "original_amount": original_amount,
        "final_amount": final_amount,
        "discount_amount": discount_amount,
        "recovery_percentage_target": target,
        "recovery_achieved": recovery_achieved,
        "metadata": {"discount_percentage": payload.discount_percentage},
    })
    logger.info(
        "costing.process_payment type=%s id=%s pi=%s final=%s achieved=%s",
        payload.entity_type, payload.entity_id, payload.payment_intent_id, final_amount, recovery_achieved,
    )
    return {
        "duplicate": False,
        "accountingEntryId": income.get("id"),
        "costingMetrics": {
            "originalAmount": original_amount,
            "finalAmount": final_amount,
            "discountAmount": discount_amount,
            "discountPercentage": payload.discount_percentage,
            "targetRecoveryPercentage": target,
            "actualRecoveryPercentage": _pct(final_amount, original_amount),
            "recoveryAchieved": recovery_achieved,
        },
    }

def _require_entity_type(entity_type: str) -> str:
    if not get_kind_by_name(entity_type):
        raise ValidationError("Type d'entité invalide")
    return entity_type.strip().lower()

def build_report(store, entity_type: str, entity_id: int) -> Dict[str, Any]:
    """Résumé et détail des paiements audités d'une entité."""
    entity_type = _require_entity_type(entity_type)
    rows = store.list_audit(entity_type=entity_type, entity_id=entity_id)
    total_revenue = round(sum(_num(r.get("final_amount")) for r in rows), 2)
    total_discounts = round(sum(_num(r.get("discount_amount")) for r in rows), 2)
    total_original = round(sum(_num(r.get("original_amount")) for r in rows), 2)
    successes = sum(1 for r in rows if r.get("recovery_achieved"))
    return {
        "entityType": entity_type,
        "entityId": entity_id,
        "summary": {
            "totalPayments": len(rows),
            "totalRevenue": total_revenue,
            "totalDiscounts": total_discounts,
            "totalOriginalValue": total_original,
            "averageRecoveryPercentage": _pct(total_revenue, total_original),
            "successfulRecoveries": successes,
            "recoverySuccessRate": _pct(successes, len(rows)),
        },
        "payments": [
            {
                "paymentIntentId": r.get("payment_intent_id"),
                "originalAmount": _num(r.get("original_amount")),
                "finalAmount": _num(r.get("final_amount")),
                "discountAmount": _num(r.get("discount_amount")),
                "recoveryTarget": _num(r.get("recovery_percentage_target")),
                "recoveryAchieved": bool(r.get("recovery_achieved")),
                "processedAt": r.get("processed_at"),
            }
            for r in rows
        ],
    }

def build_dashboard(store, start: Optional[str] = None, end: Optional[str] = None) -> Dict[str, Any]:
    """
    Tableau de bord global du recouvrement.
    - metricsByType: agrégats par type d'entité
    - topPerformers: entités avec au moins 2 paiements, triées par recouvrement moyen décroissant
    """
    rows = store.list_audit(start=start, end=end)
    by_type: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    by_entity: Dict[tuple, List[Dict[str, Any]]] = defaultdict(list)
    for r in rows:
        by_type[r.get("entity_type")].append(r)
        by_entity[(r.get("entity_type"), r.get("entity_id"))].append(r)

    def _avg_recovery(items: List[Dict[str, Any]]) -> float:
        values = [_pct(_num(r.get("final_amount")), _num(r.get("original_amount"))) for r in items]
        return round(sum(values) / len(values), 2) if values else 0.0

    metrics = []
    for entity_type in sorted(t for t in by_type if t):
        items = by_type[entity_type]
        successes = sum(1 for r in items if r.get("recovery_achieved"))
        metrics.append({
            "entityType": entity_type,
            "totalPayments": len(items),
            "totalOriginalValue": round(sum(_num(r.get("original_amount")) for r in items), 2),
            "totalRevenue": round(sum(_num(r.get("final_amount")) for r in items), 2),
            "totalDiscounts": round(sum(_num(r.get("discount_amount")) for r in items), 2),
            "avgTargetRecovery": round(sum(_num(r.get("recovery_percentage_target")) for r in items) / len(items), 2),
            "successfulRecoveries": successes,
            "successRate": _pct(successes, len(items)),
            "avgActualRecovery": _avg_recovery(items),
        })

    performers = []
    for (entity_type, entity_id), items in by_entity.items():
        if len(items) < TOP_PERFORMERS_MIN_PAYMENTS:
            continue
        performers.append({
            "entityType": entity_type,
            "entityId": entity_id,
            "paymentCount": len(items),
            "totalRevenue": round(sum(_num(r.get("final_amount")) for r in items), 2),
            "avgRecoveryPercentage": _avg_recovery(items),
        })
    performers.sort(key=lambda p: p["avgRecoveryPercentage"], reverse=True)
    performers = performers[:TOP_PERFORMERS_LIMIT]
    for p in performers:
        kind = get_kind_by_name(p["entityType"])
        entity = store.get_entity(kind, p["entityId"]) if kind else None
        p["title"] = (entity or {}).get("title") or f"#{p['entityId']}"

    return {
        "period": {"startDate": start or "all", "endDate": end or "all"},
        "metricsByType": metrics,
        "topPerformers": performers,
    }
