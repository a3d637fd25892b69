from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("notifier")

LEVEL_INFO = "info"
LEVEL_SUCCESS = "success"
LEVEL_ERROR = "error"


class Notifier(Protocol):
    def notify(self, level: str, message: str) -> None:
        ...


class LoggingNotifier:
    def notify(self, level: str, message: str) -> None:
        if level == LEVEL_ERROR:
            logger.warning("[NOTICE] %s", message)
        else:
            logger.info("[NOTICE %s] %s", level, message)
