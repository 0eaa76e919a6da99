"""
Stockage objet des justificatifs (Supabase Storage, bucket PAYMENT_SLIP_BUCKET).
"""
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Dict, Optional
import logging
import secrets

from marketplace import config
import marketplace.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)


def build_slip_path(order_id: str, filename: str, now: Optional[datetime] = None) -> str:
    """{order_id}/{order_id}_{timestamp_ms}_{aléa}{ext}: jamais de collision ni d'écrasement."""
    current = now or datetime.now(timezone.utc)
    ext = PurePosixPath(filename or "").suffix.lower()
    stamp = int(current.timestamp() * 1000)
    return f"{order_id}/{order_id}_{stamp}_{secrets.token_hex(6)}{ext}"


def upload(data: bytes, path: str, content_type: str) -> Dict[str, str]:
    """
    Envoie le fichier (sans upsert) et retourne {"path", "url"} (URL publique).
    Les erreurs du client Storage sont propagées.
    """
    bucket = supabase_client.get_service_supabase().storage.from_(config.PAYMENT_SLIP_BUCKET)
    bucket.upload(path, data, {"content-type": content_type, "upsert": "false"})
    url = bucket.get_public_url(path)
    logger.info("storage.upload ok bucket=%s path=%s size=%s", config.PAYMENT_SLIP_BUCKET, path, len(data))
    return {"path": path, "url": url}


def delete(path: str) -> bool:
    try:
        supabase_client.get_service_supabase().storage.from_(config.PAYMENT_SLIP_BUCKET).remove([path])
        return True
    except Exception:
        logger.exception("storage.delete failed path=%s", path)
        return False
