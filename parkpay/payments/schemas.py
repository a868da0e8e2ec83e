"""
DTO des endpoints de paiement (corps JSON camelCase validés avant toute logique métier).
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from parkpay.discounts import AppliedDiscounts

class CustomerData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(min_length=2, alias="fullName")
    email: EmailStr
    phone: Optional[str] = None

    @field_validator("full_name")
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Le nom complet doit contenir au moins 2 caractères")
        return v

    @field_validator("email")
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

class ParticipantData(CustomerData):
    additional_info: Optional[str] = Field(default=None, alias="additionalInfo")

class CreatePaymentIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    amount: float = Field(ge=0.5, description="Montant final affiché au client (indicatif)")
    original_amount: Optional[float] = Field(default=None, alias="originalAmount")
    customer_data: CustomerData = Field(alias="customerData")
    applied_discounts: Optional[AppliedDiscounts] = Field(default=None, alias="appliedDiscounts")

class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: str = Field(min_length=1, alias="paymentIntentId")
    participant_data: ParticipantData = Field(alias="participantData")
