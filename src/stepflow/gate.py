"""Flow gate — explicit exclusivity for flow runs.

Ensures no two flows run under the same key at once (one per chat, one
per command, ...). Independent keys run concurrently.

    gate = FlowGate()
    result = await gate.run(start, surfaces, key=str(chat_id))
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from kungfu import Result

from stepflow.flow import FlowOptions, MultiStepInput, Step
from stepflow.signals import FlowSignal
from stepflow.surface import SurfaceFactory


class FlowBusy(ValueError):
    """Raised when a flow is already running under the requested key."""


@dataclass(frozen=True, slots=True, eq=False)
class FlowPermit:
    """Proof of holding a key. Hand it back to ``FlowGate.release``."""

    key: str


@dataclass
class FlowGate:
    """Registry of running flows, keyed.

    Mutable — acquire/release as flows start and finish.
    Validates eagerly: second acquire of a held key = immediate error.
    """

    _held: dict[str, FlowPermit] = field(default_factory=lambda: dict[str, FlowPermit]())

    def acquire(self, key: str = "default") -> FlowPermit:
        """Take the key. Raises FlowBusy if it is already held."""
        if key in self._held:
            raise FlowBusy(f"Flow '{key}' is already running")
        permit = FlowPermit(key=key)
        self._held[key] = permit
        return permit

    def release(self, permit: FlowPermit) -> None:
        """Give the key back. Releasing a stale permit is a no-op."""
        if self._held.get(permit.key) is permit:
            del self._held[permit.key]

    @contextmanager
    def hold(self, key: str = "default") -> Iterator[FlowPermit]:
        permit = self.acquire(key)
        try:
            yield permit
        finally:
            self.release(permit)

    async def run(
        self,
        start: Step,
        surfaces: SurfaceFactory,
        *,
        key: str = "default",
        options: FlowOptions | None = None,
    ) -> Result[None, FlowSignal]:
        """``MultiStepInput.run`` while holding ``key``."""
        with self.hold(key):
            return await MultiStepInput.run(start, surfaces, options=options)

    def is_running(self, key: str = "default") -> bool:
        return key in self._held

    @property
    def active(self) -> Sequence[str]:
        """Keys currently held, sorted."""
        return sorted(self._held)


__all__ = (
    "FlowBusy",
    "FlowGate",
    "FlowPermit",
)
