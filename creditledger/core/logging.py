import logging

from creditledger.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    settings = get_settings()
    level = getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_creditledger", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._creditledger = True
        root.addHandler(handler)
    root.setLevel(level)

    # SQL echo is noisy at INFO; keep it for explicit debugging only.
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
