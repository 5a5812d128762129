"""In-memory surface backend — for tests and scripted runs.

Surfaces live only as Python objects. A driver coroutine plays the user:

    surfaces = MemorySurfaces()
    run = asyncio.create_task(MultiStepInput.run(start, surfaces))
    picker = await surfaces.next_shown()
    picker.select(picker.items[0])
    result = await run
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from stepflow.surface import ChoiceItem, ChoiceSurface, PromptSurface, TextSurface


class MemorySurfaces:
    """SurfaceFactory + SurfaceHost that keeps everything in memory."""

    def __init__(self) -> None:
        self._created: list[PromptSurface] = []
        self._visible: list[PromptSurface] = []
        self._shown: asyncio.Queue[PromptSurface] = asyncio.Queue()

    # ── SurfaceFactory ───────────────────────────────────────────────────

    def create_choice(self) -> ChoiceSurface[ChoiceItem]:
        surface: ChoiceSurface[ChoiceItem] = ChoiceSurface(self)
        self._created.append(surface)
        return surface

    def create_text(self) -> TextSurface:
        surface = TextSurface(self)
        self._created.append(surface)
        return surface

    # ── SurfaceHost ──────────────────────────────────────────────────────

    def surface_shown(self, surface: PromptSurface) -> None:
        self._visible.append(surface)
        self._shown.put_nowait(surface)

    def surface_changed(self, surface: PromptSurface, name: str) -> None:
        pass

    def surface_hidden(self, surface: PromptSurface) -> None:
        if surface in self._visible:
            self._visible.remove(surface)

    def surface_disposed(self, surface: PromptSurface) -> None:
        pass

    # ── inspection ───────────────────────────────────────────────────────

    @property
    def created(self) -> Sequence[PromptSurface]:
        return tuple(self._created)

    @property
    def visible(self) -> Sequence[PromptSurface]:
        """Surfaces currently shown, oldest first."""
        return tuple(self._visible)

    async def next_shown(self, timeout: float = 1.0) -> PromptSurface:
        """Wait for the next surface to be shown."""
        return await asyncio.wait_for(self._shown.get(), timeout)


__all__ = ("MemorySurfaces",)
