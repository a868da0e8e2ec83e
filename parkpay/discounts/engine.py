"""
Moteur de remises unifié (logique pure: pas de Stripe, pas de DB).

Utilisé à l'identique par la prévisualisation (/api/discounts/validate-discounts)
et par la création de PaymentIntent: le montant facturé est toujours celui calculé ici.
- Les montants sont manipulés en centimes (int) et convertis en unités monétaires
  (2 décimales) uniquement en sortie.
- La catégorie early_bird n'est retenue que si la date limite n'est pas dépassée.
- L'horloge est injectable (paramètre clock) pour les tests.
"""
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# module parkpay.discounts.engine
CATEGORIES = ("seniors", "students", "families", "disability", "early_bird")
EARLY_BIRD = "early_bird"
MAX_DISCOUNT_PERCENTAGE = Decimal("100")

# Clés exposées dans discountBreakdown (format historique du front)
BREAKDOWN_KEYS = {
    "seniors": "seniors",
    "students": "students",
    "families": "families",
    "disability": "disability",
    "early_bird": "earlyBird",
}

LABELS = {
    "seniors": "Seniors",
    "students": "Étudiants",
    "families": "Familles",
    "disability": "Personnes en situation de handicap",
    "early_bird": "Réservation anticipée",
}

Deadline = Union[str, date, datetime, None]

class DiscountResult(BaseModel):
    """Résultat éphémère d'un calcul de remises (jamais persisté ni mis en cache)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    original_amount: float
    final_amount: float
    discount_amount: float
    total_discount_percentage: float
    applied_discounts: List[str] = Field(default_factory=list)
    discount_breakdown: Dict[str, float] = Field(default_factory=dict)
    original_cents: int = Field(exclude=True)
    final_cents: int = Field(exclude=True)

def to_cents(amount: Union[int, float, str, Decimal]) -> int:
    """Convertit un montant (unités monétaires) en centimes, arrondi au plus proche."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def from_cents(cents: int) -> float:
    return float(Decimal(cents) / 100)

def parse_deadline(value: Deadline) -> Optional[datetime]:
    """
    Normalise une date limite early-bird en datetime UTC (aware).
    - str ISO 8601 (suffixe 'Z' accepté), date (minuit UTC) ou datetime.
    - Un datetime naïf est interprété en UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _format_percent(value: Decimal) -> str:
    return format(value.normalize(), "f")

def is_early_bird_open(deadline: Deadline, clock: Callable[[], datetime] = _utcnow) -> bool:
    parsed = parse_deadline(deadline)
    if parsed is None:
        return True
    now = clock()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now <= parsed

def calculate_discounts(
    base_price: Union[int, float, str, Decimal],
    discounts: Mapping[str, Optional[float]],
    early_bird_deadline: Deadline = None,
    clock: Callable[[], datetime] = _utcnow,
) -> DiscountResult:
    """
    Calcule les remises cumulées et le montant final.
    - Somme des pourcentages > 0 par catégorie (ordre: seniors, students, families, disability, early_bird).
    - early_bird ignoré (absent du détail) si la date limite est dépassée.
    - Total plafonné à [0, 100]; montant final jamais négatif.
    Lève ValueError si base_price <= 0 ou si un pourcentage est négatif.
    """
    original_cents = to_cents(base_price)
    if original_cents <= 0:
        raise ValueError("Le prix de base doit être positif")

    total = Decimal("0")
    applied: List[str] = []
    breakdown: Dict[str, float] = {}
    for category in CATEGORIES:
        raw = (discounts or {}).get(category)
        if raw is None:
            continue
        percent = Decimal(str(raw))
        if percent < 0:
            raise ValueError(f"Pourcentage de remise négatif pour {category}")
        if percent == 0:
            continue
        if category == EARLY_BIRD and not is_early_bird_open(early_bird_deadline, clock):
            continue
        total += percent
        applied.append(f"{LABELS[category]}: {_format_percent(percent)}%")
        breakdown[BREAKDOWN_KEYS[category]] = float(percent)

    total = max(Decimal("0"), min(total, MAX_DISCOUNT_PERCENTAGE))
    discount_cents = int((Decimal(original_cents) * total / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    final_cents = max(0, original_cents - discount_cents)

    return DiscountResult(
        original_amount=from_cents(original_cents),
        final_amount=from_cents(final_cents),
        discount_amount=from_cents(original_cents - final_cents),
        total_discount_percentage=float(total),
        applied_discounts=applied,
        discount_breakdown=breakdown,
        original_cents=original_cents,
        final_cents=final_cents,
    )
