"""
Cancel-and-replace debounce timer bound to the running asyncio loop.

A [Debouncer][flowgazer.core.debounce.Debouncer] owns at most one pending
``asyncio.TimerHandle``. Each [schedule()][flowgazer.core.debounce.Debouncer.schedule]
call cancels the previous handle and starts a fresh window, so a burst of
triggers collapses into a single callback fired ``delay`` seconds after
the last trigger. There is no way to extend a window without resetting it.

Examples:
    ```python
    render = Debouncer(0.3, surface.refresh, name="render")
    render.schedule()
    render.schedule()   # replaces the first window
    # ... 0.3 s later: surface.refresh() runs once
    ```
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from .logger import Logger


class Debouncer:
    """Single cancellable scheduled callback per coalescing group."""

    def __init__(self, delay: float, callback: Callable[[], Any], *, name: str) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self._delay = delay
        self._callback = callback
        self._name = name
        self._handle: asyncio.TimerHandle | None = None
        self._logger = Logger("flowgazer.debounce")

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """Whether a fire is currently scheduled."""
        return self._handle is not None

    def schedule(self) -> None:
        """Start (or restart) the debounce window.

        Must be called from inside a running event loop.
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Cancel the pending fire. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception as e:  # Intentionally broad: timer callbacks have no caller to propagate to
            self._logger.error("debounce_callback_failed", group=self._name, error=str(e))
