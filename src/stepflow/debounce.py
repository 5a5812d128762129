"""Keyed debouncer over the asyncio event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

DEFAULT_DELAY = 1.5
DEFAULT_KEY = "default"


class Debouncer:
    """At most one pending delayed action per key.

    Scheduling under a key that already has a pending action cancels it
    first, so a burst of calls fires once, ``delay`` after the last one.

        debouncer.schedule(lambda: setattr(box, "validation_message", None))
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def schedule(
        self,
        action: Callable[[], object],
        delay: float = DEFAULT_DELAY,
        key: str = DEFAULT_KEY,
    ) -> None:
        """Run ``action`` after ``delay`` seconds unless rescheduled first."""
        self.cancel(key)
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handles.pop(key, None)
            action()

        self._handles[key] = loop.call_later(delay, _fire)

    def cancel(self, key: str = DEFAULT_KEY) -> bool:
        """Cancel the pending action for ``key``. Returns True if one existed."""
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def pending(self, key: str = DEFAULT_KEY) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)


__all__ = (
    "DEFAULT_DELAY",
    "DEFAULT_KEY",
    "Debouncer",
)
