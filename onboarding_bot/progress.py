from __future__ import annotations

import logging
from typing import Optional


class ProgressLogger:
    """Utility to report formatted progress information through ``logging``."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("onboarding_bot")

    def _emit(self, level: int, message: str) -> None:
        self._logger.log(level, message)

    def info(self, message: str) -> None:
        self._emit(logging.INFO, message)

    def debug(self, message: str) -> None:
        self._emit(logging.DEBUG, message)

    def step(self, message: str) -> None:
        self._emit(logging.INFO, f"➡️  {message}")

    def success(self, message: str) -> None:
        self._emit(logging.INFO, f"✅ {message}")

    def warning(self, message: str) -> None:
        self._emit(logging.WARNING, f"⚠️  {message}")

    def error(self, message: str, *, exc_info: bool = False) -> None:
        self._logger.error(f"❌ {message}", exc_info=exc_info)
