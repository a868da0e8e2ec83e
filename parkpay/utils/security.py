import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from parkpay.config import ADMIN_EMAILS, INTERNAL_API_TOKEN
from parkpay.infra.supabase_client import create_anon_client

logger = logging.getLogger(__name__)

INTERNAL_TOKEN_HEADER = "X-Internal-Token"

def determine_role(email: Optional[str], metadata: Optional[Dict[str, Any]]) -> str:
    """admin si le rôle des métadonnées Supabase est 'admin' ou si l'email figure dans ADMIN_EMAILS."""
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    if email and email.strip().lower() in ADMIN_EMAILS:
        return "admin"
    return "user"

def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None

def get_user_from_token(request: Request, access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur renvoyé par supabase.auth.get_user(access_token)."""
    client = getattr(request.app.state, "supabase_auth", None)
    if client is None:
        client = create_anon_client()
        request.app.state.supabase_auth = client
    res = client.auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    metadata = user.get("user_metadata") or {}
    return {
        "id": user.get("id"),
        "email": user.get("email"),
        "metadata": metadata,
        "role": determine_role(user.get("email"), metadata),
    }

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = get_user_from_token(request, token)
    except Exception:
        logger.warning("utils.security.get_current_user token rejeté", exc_info=True)
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous reconnecter")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous reconnecter")
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user

def require_internal_token(request: Request) -> None:
    """Protège les endpoints internes (appel service-à-service) par un secret partagé."""
    if not INTERNAL_API_TOKEN:
        raise HTTPException(status_code=403, detail="Endpoint interne non configuré")
    provided = request.headers.get(INTERNAL_TOKEN_HEADER, "")
    if not provided or not secrets.compare_digest(provided, INTERNAL_API_TOKEN):
        raise HTTPException(status_code=403, detail="Jeton interne invalide")
