"""
Dispatch du costeo après confirmation d'un paiement (exécuté en BackgroundTasks).
- LocalCostingDispatcher: traitement en process via le store Supabase
- HttpCostingDispatcher: POST vers un service de costeo distinct (COSTING_BASE_URL)
Les deux journalisent les échecs sans jamais les propager: l'inscription est déjà payée.
"""
import logging
from typing import Any, Dict

import httpx

from .schemas import CostingPayload
from .service import process_payment

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

# module parkpay.costing.dispatcher
class LocalCostingDispatcher:
    def __init__(self, store):
        self.store = store

    def dispatch(self, payload: Dict[str, Any]) -> None:
        try:
            result = process_payment(self.store, CostingPayload.model_validate(payload))
            logger.info(
                "costing.dispatch local pi=%s duplicate=%s",
                payload.get("paymentIntentId"), result.get("duplicate"),
            )
        except Exception:
            logger.exception("costing.dispatch local failed pi=%s", payload.get("paymentIntentId"))

class HttpCostingDispatcher:
    def __init__(self, base_url: str, token: str, timeout: float = 10.0):
        self.url = f"{base_url.rstrip('/')}/api/costing/process-payment"
        self.token = token
        self.timeout = timeout

    def dispatch(self, payload: Dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers[INTERNAL_TOKEN_HEADER] = self.token
        try:
            resp = httpx.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning("costing.dispatch http failed pi=%s error=%s", payload.get("paymentIntentId"), e)
            return
        except Exception:
            # httpx.InvalidURL et autres erreurs hors HTTPError
            logger.exception("costing.dispatch http error pi=%s", payload.get("paymentIntentId"))
            return
        if 200 <= resp.status_code < 300:
            logger.info("costing.dispatch http pi=%s status=%s", payload.get("paymentIntentId"), resp.status_code)
            return
        logger.error(
            "costing.dispatch http rejected pi=%s status=%s body=%s",
            payload.get("paymentIntentId"), resp.status_code, resp.text,
        )
