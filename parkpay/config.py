# parkpay.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du service de paiements.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, service de costeo)
- Expose les réglages transverses: CORS/hosts, cookies sécurisés (HSTS), niveau de logs
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _float_env(name: str, default: float) -> float:
    raw = _clean_env(os.getenv(name) or "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default

# Supabase: URL et clés
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON_KEY = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
# Clé service (opérations serveur, bypass RLS): utilisée pour toutes les écritures de paiement
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")
SUPABASE_TIMEOUT_SECONDS = _float_env("SUPABASE_TIMEOUT_SECONDS", 10.0)

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète, secret webhook, devise et bornes réseau
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "mxn").lower()
STRIPE_TIMEOUT_SECONDS = _float_env("STRIPE_TIMEOUT_SECONDS", 10.0)
STRIPE_MAX_NETWORK_RETRIES = int(_float_env("STRIPE_MAX_NETWORK_RETRIES", 2))

# Costeo financier (best-effort après confirmation)
# - COSTING_BASE_URL vide: traitement en process (LocalCostingDispatcher)
# - sinon: POST {COSTING_BASE_URL}/api/costing/process-payment (HttpCostingDispatcher)
COSTING_BASE_URL = _clean_env(os.getenv("COSTING_BASE_URL") or "").rstrip("/")
COSTING_TIMEOUT_SECONDS = _float_env("COSTING_TIMEOUT_SECONDS", 10.0)
INTERNAL_API_TOKEN = _clean_env(os.getenv("INTERNAL_API_TOKEN") or "")
DEFAULT_COST_RECOVERY_PERCENTAGE = _float_env("DEFAULT_COST_RECOVERY_PERCENTAGE", 30.0)

# Cookies/ Sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
ADMIN_EMAILS = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
# Proxies autorisés à réécrire l'IP cliente (x-forwarded-for), liste séparée par des virgules
FORWARDED_ALLOW_IPS = _clean_env(os.getenv("FORWARDED_ALLOW_IPS") or "127.0.0.1")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

LOG_LEVEL = _clean_env(os.getenv("LOG_LEVEL") or "info").upper()
