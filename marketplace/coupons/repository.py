from typing import Optional
import logging

import marketplace.infra.supabase_client as supabase_client
from .models import Coupon

logger = logging.getLogger(__name__)


def get_coupon(coupon_id: str) -> Optional[Coupon]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("coupons")
            .select("*")
            .eq("id", str(coupon_id))
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("coupons.repository.get_coupon failed coupon_id=%s", coupon_id)
        raise
    rows = res.data or []
    return Coupon.model_validate(rows[0]) if rows else None


def increment_usage(coupon_id: str) -> bool:
    """
    Incrément atomique côté base (fonction SQL increment_coupon_usage):
    jamais de lecture-modification-écriture côté application.
    """
    try:
        supabase_client.get_service_supabase().rpc(
            "increment_coupon_usage", {"p_coupon_id": str(coupon_id)}
        ).execute()
        return True
    except Exception:
        logger.exception("coupons.repository.increment_usage failed coupon_id=%s", coupon_id)
        return False
