import logging

from app.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configura el logger raíz de la app una sola vez."""
    logger = logging.getLogger("app")
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
