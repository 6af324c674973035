import logging

from autobridge.core.config import get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    settings = get_settings()
    level = getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)
    # SQL echo is too noisy for ledger debugging; keep it at warning.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
