# marketplace.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Chemin du projet puis chargement explicite du .env racine
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend marketplace.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, webhook de notification)
- Expose les constantes métier du tunnel de paiement (devise, minimum passerelle, limites des justificatifs)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces, guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_bool(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

def _env_int(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    return int(raw) if raw else default

# Supabase: URL et clés (anon / service)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe (API Charges)
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")

# Paiement: devise et plancher imposé par la passerelle (unités majeures)
PAYMENT_CURRENCY = _clean_env(os.getenv("PAYMENT_CURRENCY") or "thb").lower()
GATEWAY_MINIMUM_CHARGE_AMOUNT = float(_clean_env(os.getenv("GATEWAY_MINIMUM_CHARGE_AMOUNT") or "20"))

# Durée au-delà de laquelle une réservation de paiement orpheline est libérée
PAYMENT_CLAIM_TTL_SECONDS = _env_int("PAYMENT_CLAIM_TTL_SECONDS", 900)

# Coupons: l'identifiant est enregistré sur la commande; la remise n'est appliquée que si activée
APPLY_COUPON_DISCOUNTS = _env_bool("APPLY_COUPON_DISCOUNTS")

# Justificatifs de virement (bucket Supabase Storage + contrôles)
PAYMENT_SLIP_BUCKET = _clean_env(os.getenv("PAYMENT_SLIP_BUCKET") or "payment-slips")
SLIP_MAX_BYTES = _env_int("SLIP_MAX_BYTES", 5 * 1024 * 1024)
SLIP_MIN_DIMENSION = _env_int("SLIP_MIN_DIMENSION", 200)
SLIP_MAX_DIMENSION = _env_int("SLIP_MAX_DIMENSION", 10000)

# Notifications sortantes (ex: workflow n8n). Vide => désactivé
NOTIFY_WEBHOOK_URL = _clean_env(os.getenv("NOTIFY_WEBHOOK_URL") or os.getenv("N8N_WEBHOOK_URL") or "")
NOTIFY_TIMEOUT_SECONDS = float(_clean_env(os.getenv("NOTIFY_TIMEOUT_SECONDS") or "5"))

# CORS / hosts
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]

# Cookies / logs
COOKIE_SECURE = _env_bool("COOKIE_SECURE")
LOG_LEVEL = _clean_env(os.getenv("LOG_LEVEL") or "info").upper()
DEFAULT_LOCALE = _clean_env(os.getenv("DEFAULT_LOCALE") or "fr").lower()
