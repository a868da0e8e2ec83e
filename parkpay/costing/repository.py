"""
Accès aux données du costeo: écritures comptables et journal d'audit (costing_audit_log).
Client Supabase service-role injecté; les erreurs sont logguées puis propagées.
"""
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from parkpay.payments.kinds import BookingKind

logger = logging.getLogger(__name__)

ACCOUNTING_TABLE = "accounting_entries"
AUDIT_TABLE = "costing_audit_log"

def _rows(res) -> List[Dict[str, Any]]:
    return list(getattr(res, "data", None) or [])

# module parkpay.costing.repository
class SupabaseCostingStore:
    def __init__(self, client: Client):
        self.client = client

    def get_entity(self, kind: BookingKind, entity_id: int) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table(kind.entity_table)
                .select(f"id, {kind.title_column}, cost_recovery_percentage")
                .eq("id", entity_id)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("costing.repository.get_entity failed table=%s id=%s", kind.entity_table, entity_id)
            raise
        rows = _rows(res)
        if not rows:
            return None
        row = dict(rows[0])
        row["title"] = row.get(kind.title_column)
        return row

    def find_audit(self, payment_intent_id: str) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.client
                .table(AUDIT_TABLE)
                .select("*")
                .eq("payment_intent_id", payment_intent_id)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("costing.repository.find_audit failed pi=%s", payment_intent_id)
            raise
        rows = _rows(res)
        return rows[0] if rows else None

    def insert_accounting_entry(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = self.client.table(ACCOUNTING_TABLE).insert(row).execute()
        except Exception:
            logger.exception("costing.repository.insert_accounting_entry failed ref=%s", row.get("reference"))
            raise
        rows = _rows(res)
        return rows[0] if rows else dict(row)

    def insert_audit(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = self.client.table(AUDIT_TABLE).insert(row).execute()
        except Exception:
            logger.exception("costing.repository.insert_audit failed pi=%s", row.get("payment_intent_id"))
            raise
        rows = _rows(res)
        return rows[0] if rows else dict(row)

    def list_audit(
        self,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Lignes d'audit filtrées, les plus récentes d'abord."""
        try:
            query = self.client.table(AUDIT_TABLE).select("*")
            if entity_type:
                query = query.eq("entity_type", entity_type)
            if entity_id is not None:
                query = query.eq("entity_id", entity_id)
            if start:
                query = query.gte("processed_at", start)
            if end:
                query = query.lte("processed_at", end)
            res = query.order("processed_at", desc=True).execute()
        except Exception:
            logger.exception("costing.repository.list_audit failed type=%s id=%s", entity_type, entity_id)
            raise
        return _rows(res)
