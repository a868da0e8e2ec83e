import logging
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from parkpay.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from parkpay.dependencies import get_supabase
from parkpay.utils.rate_limit import rate_limit_health_info

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])

CHECKED_TABLES = (
    "events",
    "event_registrations",
    "reservable_spaces",
    "space_reservations",
    "costing_audit_log",
)

def supabase_tables_info(request: Request) -> Dict[str, Any]:
    """Accessibilité des tables utilisées par le flux de paiement (select id limit 1)."""
    try:
        client = get_supabase(request)
    except Exception as e:
        return {"configured": False, "error": str(e)}
    tables: Dict[str, Any] = {}
    for table in CHECKED_TABLES:
        try:
            client.table(table).select("id").limit(1).execute()
            tables[table] = {"ok": True}
        except Exception as e:
            logger.warning("health.supabase table=%s error=%s", table, e)
            tables[table] = {"ok": False, "error": str(e)}
    return {"configured": True, "tables": tables}

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/dependencies")
def health_dependencies(request: Request):
    supabase = supabase_tables_info(request)
    tables = supabase.get("tables") or {}
    ok = supabase.get("configured", False) and all(t.get("ok") for t in tables.values())
    return JSONResponse({
        "ok": bool(ok),
        "supabase": supabase,
        "stripe": {
            "configured": bool(STRIPE_SECRET_KEY),
            "webhook_configured": bool(STRIPE_WEBHOOK_SECRET),
        },
        "rate_limit": rate_limit_health_info(request),
    })
