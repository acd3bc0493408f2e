from __future__ import annotations

import logging

from order_browser.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured
    resolved = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    if not _configured:
        logging.basicConfig(level=resolved, format=LOG_FORMAT)
        _configured = True
    root.setLevel(resolved)
    # SQL echo is controlled by the engine, keep sqlalchemy's own loggers quiet.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
