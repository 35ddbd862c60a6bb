"""Observers for asynchronous listener failures."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

LOGGER = logging.getLogger(__name__)


class RejectionObserver(Protocol):
    """Receives failures of asynchronous listener results."""

    def __call__(self, error: BaseException, context: Dict[str, Any]) -> None:
        """Record ``error``; must not raise."""


class LoggingRejectionObserver:
    """Log every observed failure at ERROR level and carry on."""

    def __init__(self, owner: str = "EventRegistry") -> None:
        self.owner = owner

    def __call__(self, error: BaseException, context: Dict[str, Any]) -> None:
        event = context.get("event")
        LOGGER.error(
            "[%s] Unhandled Rejection: %s",
            self.owner,
            error,
            exc_info=(type(error), error, error.__traceback__),
            extra={"event": event},
        )


def watch_loop(loop: asyncio.AbstractEventLoop, observer: Optional[RejectionObserver] = None) -> None:
    """Route ``loop``'s unhandled exceptions to ``observer``.

    Contexts without an exception (plain loop messages) are logged as warnings.
    """

    target = observer or LoggingRejectionObserver()

    def _handler(_: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        error = context.get("exception")
        if error is None:
            LOGGER.warning("Event loop reported: %s", context.get("message", "unknown error"))
            return
        target(error, context)

    loop.set_exception_handler(_handler)


__all__ = ["RejectionObserver", "LoggingRejectionObserver", "watch_loop"]
