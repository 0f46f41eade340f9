from __future__ import annotations

import logging

from careerautomate.config import get_settings

_LOG_CONFIGURED = False

# outbound service calls and multipart parsing are chatty at INFO/DEBUG
QUIET_LOGGERS = ("urllib3", "multipart", "python_multipart")


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
