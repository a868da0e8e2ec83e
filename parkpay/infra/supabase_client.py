from supabase import create_client, Client
from supabase.client import ClientOptions

from parkpay.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, SUPABASE_ANON_KEY, SUPABASE_TIMEOUT_SECONDS

def create_service_client() -> Client:
    """
    Client Supabase service-role (bypass RLS) pour les écritures de paiement.
    Construit explicitement au démarrage (ou au premier usage) puis conservé sur app.state.
    """
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL manquant pour create_service_client()")
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour create_service_client()")
    options = ClientOptions(postgrest_client_timeout=SUPABASE_TIMEOUT_SECONDS)
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY, options=options)

def create_anon_client() -> Client:
    """
    Client Supabase 'anon', utilisé pour vérifier les jetons d'accès (auth.get_user).
    """
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise RuntimeError("SUPABASE_URL / SUPABASE_ANON_KEY manquants pour create_anon_client()")
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
