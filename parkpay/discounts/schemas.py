"""
DTO d'entrée pour les remises (format camelCase du front).
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

class AppliedDiscounts(BaseModel):
    """Pourcentages revendiqués par le client, par catégorie (jamais crus au-delà du plafond configuré)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)

    discount_seniors: float = Field(default=0, ge=0, le=100, alias="discountSeniors")
    discount_students: float = Field(default=0, ge=0, le=100, alias="discountStudents")
    discount_families: float = Field(default=0, ge=0, le=100, alias="discountFamilies")
    discount_disability: float = Field(default=0, ge=0, le=100, alias="discountDisability")
    discount_early_bird: float = Field(default=0, ge=0, le=100, alias="discountEarlyBird")

    def as_categories(self) -> Dict[str, float]:
        return {
            "seniors": self.discount_seniors,
            "students": self.discount_students,
            "families": self.discount_families,
            "disability": self.discount_disability,
            "early_bird": self.discount_early_bird,
        }

class ValidateDiscountsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    base_price: float = Field(gt=0, alias="basePrice")
    discounts: AppliedDiscounts = Field(default_factory=AppliedDiscounts)
    early_bird_deadline: Optional[str] = Field(default=None, alias="earlyBirdDeadline")
