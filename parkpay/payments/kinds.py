"""
Familles d'entités réservables (événements, espaces) et leur mapping vers les tables Supabase.
Les deux familles partagent les colonnes de remises et le format des lignes de réservation;
seuls les noms de tables/colonnes d'identité diffèrent.
"""
from typing import Dict, NamedTuple, Optional

from .errors import NotFoundError

class BookingKind(NamedTuple):
    name: str                    # valeur de metadata.entity_type
    segment: str                 # segment d'URL (/api/{segment}/...)
    label: str                   # libellé humain pour descriptions Stripe/messages
    entity_table: str
    title_column: str
    price_column: str
    free_column: Optional[str]
    capacity_column: str
    booking_table: str
    foreign_key: str

EVENT = BookingKind(
    name="event",
    segment="events",
    label="Inscription à l'événement",
    entity_table="events",
    title_column="title",
    price_column="price",
    free_column="is_free",
    capacity_column="capacity",
    booking_table="event_registrations",
    foreign_key="event_id",
)

SPACE = BookingKind(
    name="space",
    segment="spaces",
    label="Réservation de l'espace",
    entity_table="reservable_spaces",
    title_column="name",
    price_column="price",
    free_column=None,
    capacity_column="capacity",
    booking_table="space_reservations",
    foreign_key="space_id",
)

KINDS: Dict[str, BookingKind] = {k.segment: k for k in (EVENT, SPACE)}
KINDS_BY_NAME: Dict[str, BookingKind] = {k.name: k for k in (EVENT, SPACE)}

# Colonnes de plafonds de remise, par catégorie du moteur
CEILING_COLUMNS = {
    "seniors": "discount_seniors",
    "students": "discount_students",
    "families": "discount_families",
    "disability": "discount_disability",
    "early_bird": "discount_early_bird",
}
EARLY_BIRD_DEADLINE_COLUMN = "discount_early_bird_deadline"

def get_kind(segment: str) -> BookingKind:
    kind = KINDS.get((segment or "").strip().lower())
    if not kind:
        raise NotFoundError("Type de réservation inconnu")
    return kind

def get_kind_by_name(name: str) -> Optional[BookingKind]:
    return KINDS_BY_NAME.get((name or "").strip().lower())
