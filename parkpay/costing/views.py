import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from parkpay.dependencies import get_costing_store
from parkpay.payments.errors import PaymentError
from parkpay.utils.security import require_admin, require_internal_token
from . import service as costing_service
from .schemas import CostingPayload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/costing", tags=["Costing API"])

# module parkpay.costing.views
@router.post("/process-payment", dependencies=[Depends(require_internal_token)])
def process_payment(body: CostingPayload, store=Depends(get_costing_store)) -> Dict[str, Any]:
    """
    Traite le costeo d'un paiement confirmé (usage interne uniquement).
    - Sécurité: en-tête X-Internal-Token
    - 404 si l'entité n'existe pas; rejouer le même paymentIntentId renvoie duplicate=true
    """
    try:
        result = costing_service.process_payment(store, body)
    except PaymentError:
        raise
    except Exception:
        logger.exception("Erreur process_payment pi=%s", body.payment_intent_id)
        raise HTTPException(status_code=500, detail="Erreur interne lors du traitement du costeo")
    return {"success": True, **result}

@router.get("/report/{entity_type}/{entity_id}")
def costing_report(
    entity_type: str,
    entity_id: int,
    user: Dict[str, Any] = Depends(require_admin),
    store=Depends(get_costing_store),
) -> Dict[str, Any]:
    """Rapport de costeo d'une entité (admin)."""
    try:
        report = costing_service.build_report(store, entity_type, entity_id)
    except PaymentError:
        raise
    except Exception:
        logger.exception("Erreur costing_report type=%s id=%s", entity_type, entity_id)
        raise HTTPException(status_code=500, detail="Erreur lors de la génération du rapport de costeo")
    return {"success": True, **report}

@router.get("/dashboard")
def costing_dashboard(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    user: Dict[str, Any] = Depends(require_admin),
    store=Depends(get_costing_store),
) -> Dict[str, Any]:
    """Tableau de bord du recouvrement des coûts (admin), filtrable par période."""
    try:
        dashboard = costing_service.build_dashboard(
            store,
            start=start_date.isoformat() if start_date else None,
            end=end_date.isoformat() if end_date else None,
        )
    except Exception:
        logger.exception("Erreur costing_dashboard")
        raise HTTPException(status_code=500, detail="Erreur lors de la génération du tableau de bord")
    return {"success": True, **dashboard}
