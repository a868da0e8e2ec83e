"""
Accès aux données pour la feature 'payments' (tables d'entités et de réservations).
- Client Supabase service-role injecté (aucun singleton module).
- Les erreurs de base de données remontent à l'appelant (logguées ici avec le contexte),
  sauf la violation d'unicité 23505 traduite en DuplicateConfirmationError.
"""
from typing import Any, Dict, Optional
import logging

from postgrest.exceptions import APIError
from supabase import Client

from .errors import DuplicateConfirmationError
from .kinds import BookingKind

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

def _first(res) -> Optional[Dict[str, Any]]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

def _is_unique_violation(e: APIError) -> bool:
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return str(code or "") == UNIQUE_VIOLATION

# module parkpay.payments.repository
class SupabaseBookingStore:
    """Lecture des entités réservables et écriture des inscriptions/réservations."""

    def __init__(self, client: Client):
        self.client = client

    def get_entity(self, kind: BookingKind, entity_id: int) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table(kind.entity_table)
                .select("*")
                .eq("id", entity_id)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("payments.repository.get_entity failed table=%s id=%s", kind.entity_table, entity_id)
            raise
        return _first(res)

    def count_active_bookings(self, kind: BookingKind, entity_id: int) -> int:
        """Nombre de réservations non annulées (pending + confirmed) pour l'entité."""
        try:
            res = (
                self.client
                .table(kind.booking_table)
                .select("id", count="exact")
                .eq(kind.foreign_key, entity_id)
                .neq("status", "cancelled")
                .execute()
            )
        except Exception:
            logger.exception("payments.repository.count_active_bookings failed table=%s id=%s", kind.booking_table, entity_id)
            raise
        count = getattr(res, "count", None)
        if count is None:
            count = len(getattr(res, "data", None) or [])
        return int(count)

    def find_booking_by_email(self, kind: BookingKind, entity_id: int, email: str) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table(kind.booking_table)
                .select("*")
                .eq(kind.foreign_key, entity_id)
                .eq("email", email)
                .neq("status", "cancelled")
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("payments.repository.find_booking_by_email failed table=%s id=%s", kind.booking_table, entity_id)
            raise
        return _first(res)

    def find_booking(
        self,
        kind: BookingKind,
        entity_id: int,
        payment_intent_id: str,
        email: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        try:
            query = (
                self.client
                .table(kind.booking_table)
                .select("*")
                .eq(kind.foreign_key, entity_id)
                .eq("stripe_payment_intent_id", payment_intent_id)
            )
            if email:
                query = query.eq("email", email)
            res = query.limit(1).execute()
        except Exception:
            logger.exception("payments.repository.find_booking failed table=%s id=%s pi=%s", kind.booking_table, entity_id, payment_intent_id)
            raise
        return _first(res)

    def insert_booking(self, kind: BookingKind, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insère une réservation et retourne la ligne créée.
        La contrainte unique (fk, stripe_payment_intent_id) départage deux confirmations concurrentes.
        """
        try:
            res = self.client.table(kind.booking_table).insert(row).execute()
        except APIError as e:
            if _is_unique_violation(e):
                logger.info("payments.repository.insert_booking duplicate table=%s pi=%s", kind.booking_table, row.get("stripe_payment_intent_id"))
                raise DuplicateConfirmationError("Une inscription existe déjà pour ce paiement")
            logger.exception("payments.repository.insert_booking failed table=%s", kind.booking_table)
            raise
        return _first(res) or dict(row)

    def update_booking(self, kind: BookingKind, booking_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table(kind.booking_table)
                .update(data)
                .eq("id", booking_id)
                .execute()
            )
        except Exception:
            logger.exception("payments.repository.update_booking failed table=%s id=%s data=%s", kind.booking_table, booking_id, data)
            raise
        return _first(res)
