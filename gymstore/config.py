# gymstore.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend commerce.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), CORS/hosts
- Expose les règles de tarification du panier et les options du cycle de paiement
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_float(name: str, default: float) -> float:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default

def _env_flag(name: str, default: bool) -> bool:
    raw = _clean_env(os.getenv(name) or "").lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes")

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Paiements: devise, délai réseau de la passerelle, mode test (intent pré-confirmé)
CURRENCY = _clean_env(os.getenv("CURRENCY") or "usd").lower()
GATEWAY_TIMEOUT_SECONDS = _env_float("GATEWAY_TIMEOUT_SECONDS", 10.0)
STRIPE_TEST_PAYMENT_METHOD = _clean_env(os.getenv("STRIPE_TEST_PAYMENT_METHOD") or "pm_card_visa")
# Par défaut, le mode test n'est accepté qu'avec une clé Stripe de test
ALLOW_TEST_MODE = _env_flag("ALLOW_TEST_MODE", STRIPE_SECRET_KEY.startswith("sk_test_"))
PRICE_TOLERANCE = _env_float("PRICE_TOLERANCE", 0.01)

# Panier: taxe et frais de port forfaitaires
CART_TAX_RATE = _env_float("CART_TAX_RATE", 0.15)
CART_SHIPPING_FLAT = _env_float("CART_SHIPPING_FLAT", 10.0)

# Activation d'abonnement après paiement:
# - plan_flag: marque le plan partagé payment_status=paid (comportement historique)
# - entitlement: crée un droit par utilisateur (table entitlements)
# - both: les deux
SUBSCRIPTION_ACTIVATION_MODE = _clean_env(os.getenv("SUBSCRIPTION_ACTIVATION_MODE") or "both").lower()
if SUBSCRIPTION_ACTIVATION_MODE not in ("plan_flag", "entitlement", "both"):
    SUBSCRIPTION_ACTIVATION_MODE = "both"
