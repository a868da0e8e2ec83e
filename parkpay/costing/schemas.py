"""
DTO du costeo financier (format camelCase du endpoint interne /api/costing/process-payment).
"""
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class CostingPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    entity_type: Literal["event", "space"]
    entity_id: int = Field(gt=0)
    original_amount: float = Field(ge=0)
    final_amount: float = Field(gt=0)
    discount_percentage: float = Field(default=0, ge=0, le=100)
    discount_breakdown: Dict[str, float] = Field(default_factory=dict)
    cost_recovery_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    payment_intent_id: str = Field(min_length=1)
    customer_email: Optional[str] = None
