"""
Observer hooks for pipeline progress.

The pipeline never owns presentation state. It reports log events and
statistics changes to an injected observer; the default one forwards
everything to the standard logging module.
"""

import logging
from typing import Protocol

from .models import RunningStatistics

logger = logging.getLogger(__name__)


class PipelineObserver(Protocol):
    """Receives pipeline events."""

    def on_status_change(self, stats: RunningStatistics) -> None: ...

    def on_log_event(self, level: str, message: str) -> None: ...


class LoggingObserver:
    """Observer that maps pipeline events onto log records."""

    LEVELS: dict[str, int] = {
        'info': logging.INFO,
        'warn': logging.WARNING,
        'error': logging.ERROR,
        'success': logging.INFO,
        'loading': logging.INFO,
        'step': logging.INFO,
    }
    SYMBOLS: dict[str, str] = {
        'info': '[i]',
        'warn': '[!]',
        'error': '[x]',
        'success': '[✓]',
        'loading': '[⟳]',
        'step': '[→]',
    }

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def on_status_change(self, stats: RunningStatistics) -> None:
        self.log.debug(
            f"Stats: {stats.succeeded} succeeded, {stats.failed} failed, "
            f"{stats.pending} pending"
        )

    def on_log_event(self, level: str, message: str) -> None:
        level_no = self.LEVELS.get(level, logging.INFO)
        symbol = self.SYMBOLS.get(level, self.SYMBOLS['info'])
        self.log.log(level_no, f"{symbol} {message}")
