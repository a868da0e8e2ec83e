"""Endpoint de prévisualisation des remises.
- Même algorithme que la création de PaymentIntent: le front affiche exactement ce qui sera facturé.
- Pas de plafond par entité ici (prévisualisation libre); les plafonds s'appliquent au paiement.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from parkpay.utils.rate_limit import optional_rate_limit
from .engine import calculate_discounts
from .schemas import ValidateDiscountsRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/discounts", tags=["Discounts API"])

@router.post("/validate-discounts", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def validate_discounts(body: ValidateDiscountsRequest):
    """Calcule les remises pour un prix de base.
    - 400 si la date limite early-bird est illisible.
    """
    try:
        result = calculate_discounts(
            body.base_price,
            body.discounts.as_categories(),
            body.early_bird_deadline,
        )
    except (ValueError, ArithmeticError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "data": result.model_dump(by_alias=True)}
