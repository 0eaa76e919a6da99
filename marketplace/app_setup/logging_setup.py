import logging

from marketplace.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Niveau et format des logs applicatifs (uvicorn garde ses propres handlers)."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    logging.getLogger("marketplace").setLevel(getattr(logging, level.upper(), logging.INFO))
    # Bruit des clients HTTP
    logging.getLogger("httpx").setLevel(logging.WARNING)
