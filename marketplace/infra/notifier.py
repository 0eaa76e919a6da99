"""
Notifications sortantes best-effort (webhook HTTP, ex: workflow n8n).

`send` ne bloque jamais l'appelant: l'envoi part sur un thread dédié avec son
propre timeout, et son résultat n'est observé que pour la journalisation.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import httpx

from marketplace import config

logger = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="notifier")
    return _executor


def build_body(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def deliver(url: str, body: Dict[str, Any], timeout: float) -> int:
    """Envoi synchrone (exécuté sur le thread du notifier). Lève en cas d'échec HTTP."""
    response = httpx.post(url, json=body, timeout=timeout)
    response.raise_for_status()
    return response.status_code


def _log_result(event: str, future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("notifier.send failed event=%s error=%s", event, exc)
    else:
        logger.info("notifier.sent event=%s status=%s", event, future.result())


def send(event: str, data: Dict[str, Any]) -> Optional[Future]:
    """
    Planifie l'envoi et rend la main immédiatement.
    Retourne None si aucun webhook n'est configuré ou si la planification échoue.
    """
    url = config.NOTIFY_WEBHOOK_URL
    if not url:
        logger.debug("notifier.send skipped (no webhook url) event=%s", event)
        return None
    try:
        future = _get_executor().submit(deliver, url, build_body(event, data), config.NOTIFY_TIMEOUT_SECONDS)
    except RuntimeError as e:
        # Exécuteur arrêté (fin de process)
        logger.warning("notifier.send not scheduled event=%s error=%s", event, e)
        return None
    future.add_done_callback(lambda f: _log_result(event, f))
    return future


def shutdown(wait: bool = False) -> None:
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=wait)
        _executor = None
