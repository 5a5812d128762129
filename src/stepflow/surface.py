"""Interactive surface API — the widgets a flow prompts through.

A surface is one live prompt: a choice list or a text box. Backends decide
where it is drawn (memory for tests, a Telegram chat, ...). The flow
engine only talks to this module:

- ``PromptSurface`` — shared attributes (title, step counter, buttons,
  busy/enabled) plus ``on_button`` / ``on_hide`` events
- ``ChoiceSurface`` — selectable items, ``on_selection``
- ``TextSurface`` — free text, ``on_change`` / ``on_accept``

User actions enter through ``select`` / ``change_value`` / ``accept`` /
``trigger_button`` / ``hide``. Backends get notified through the
``SurfaceHost`` protocol whenever a visible surface changes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol


# ═══════════════════════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════════════════════


class Subscription:
    """Handle for one listener. ``dispose()`` detaches it; idempotent."""

    __slots__ = ("_emitter", "_listener")

    def __init__(self, emitter: EventEmitter[object], listener: Callable[[object], object]) -> None:
        self._emitter: EventEmitter[object] | None = emitter
        self._listener = listener

    @property
    def disposed(self) -> bool:
        return self._emitter is None

    def dispose(self) -> None:
        if self._emitter is not None:
            self._emitter._detach(self)
            self._emitter = None


class EventEmitter[T]:
    """Synchronous fan-out to subscribed listeners, in subscription order."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self, listener: Callable[[T], object]) -> Subscription:
        sub = Subscription(self, listener)  # type: ignore[arg-type]
        self._subscriptions.append(sub)
        return sub

    def fire(self, value: T) -> None:
        for sub in list(self._subscriptions):
            if not sub.disposed:
                sub._listener(value)

    def clear(self) -> None:
        for sub in list(self._subscriptions):
            sub.dispose()

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def _detach(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)


# ═══════════════════════════════════════════════════════════════════════════════
# Buttons and items
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True, eq=False)
class Button:
    """Title-bar button on a surface.

    ``on_click`` receives the surface it was pressed on. It may be sync or
    async. Buttons compare by identity.

        refresh = Button("Refresh", on_click=reload_items)
    """

    label: str
    tooltip: str | None = None
    on_click: Callable[[PromptSurface], Awaitable[None] | None] | None = None


BACK_BUTTON = Button("Back", tooltip="Go to the previous step")


@dataclass(frozen=True, slots=True)
class ChoiceItem:
    """One selectable row of a choice list."""

    label: str
    description: str | None = None
    detail: str | None = None
    picked: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Backend protocols
# ═══════════════════════════════════════════════════════════════════════════════


class SurfaceHost(Protocol):
    """Backend callbacks for rendering a surface."""

    def surface_shown(self, surface: PromptSurface) -> None: ...
    def surface_changed(self, surface: PromptSurface, name: str) -> None: ...
    def surface_hidden(self, surface: PromptSurface) -> None: ...
    def surface_disposed(self, surface: PromptSurface) -> None: ...


class SurfaceFactory(Protocol):
    """What the flow engine needs from a backend."""

    def create_choice(self) -> ChoiceSurface[ChoiceItem]: ...
    def create_text(self) -> TextSurface: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Surfaces
# ═══════════════════════════════════════════════════════════════════════════════


class PromptSurface:
    """Common state and lifecycle of a choice list or text box.

    Assigning a public attribute while the surface is visible notifies the
    host, so backends can re-render.
    """

    def __init__(self, host: SurfaceHost | None = None) -> None:
        self._host = host
        self._visible = False
        self._disposed = False
        self.on_button: EventEmitter[Button] = EventEmitter()
        self.on_hide: EventEmitter[None] = EventEmitter()
        self.title: str = ""
        self.step: int | None = None
        self.total_steps: int | None = None
        self.placeholder: str | None = None
        self.buttons: tuple[Button, ...] = ()
        self.busy: bool = False
        self.enabled: bool = True
        self.ignore_focus_out: bool = False

    def __setattr__(self, name: str, value: object) -> None:
        object.__setattr__(self, name, value)
        if not name.startswith("_") and self._visible and self._host is not None:
            self._host.surface_changed(self, name)

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def interactive(self) -> bool:
        """Visible and enabled — accepts user actions."""
        return self._visible and self.enabled

    def show(self) -> None:
        if self._disposed:
            raise RuntimeError("Cannot show a disposed surface")
        if self._visible:
            return
        self._visible = True
        if self._host is not None:
            self._host.surface_shown(self)

    def hide(self) -> None:
        if not self._visible:
            return
        self._visible = False
        if self._host is not None:
            self._host.surface_hidden(self)
        self.on_hide.fire(None)

    def dispose(self) -> None:
        """Hide (if shown) and detach every listener. Idempotent."""
        if self._disposed:
            return
        self.hide()
        self._disposed = True
        for emitter in self._emitters():
            emitter.clear()
        if self._host is not None:
            self._host.surface_disposed(self)

    def trigger_button(self, button: Button) -> bool:
        if not self.interactive:
            return False
        self.on_button.fire(button)
        return True

    def _emitters(self) -> Sequence[EventEmitter[object]]:
        return (self.on_button, self.on_hide)  # type: ignore[return-value]

    def listener_count(self) -> int:
        """Total live subscriptions across all events of this surface."""
        return sum(e.listener_count for e in self._emitters())


class ChoiceSurface[T: ChoiceItem](PromptSurface):
    """Selectable list."""

    def __init__(self, host: SurfaceHost | None = None) -> None:
        super().__init__(host)
        self.on_selection: EventEmitter[Sequence[T]] = EventEmitter()
        self.items: tuple[T, ...] = ()
        self.active_items: tuple[T, ...] = ()
        self.selected_items: tuple[T, ...] = ()

    def select(self, *items: T) -> bool:
        if not self.interactive:
            return False
        self.selected_items = items
        self.on_selection.fire(items)
        return True

    def _emitters(self) -> Sequence[EventEmitter[object]]:
        return (self.on_button, self.on_hide, self.on_selection)  # type: ignore[return-value]


class TextSurface(PromptSurface):
    """Free-text input box with a validation message line."""

    def __init__(self, host: SurfaceHost | None = None) -> None:
        super().__init__(host)
        self.on_change: EventEmitter[str] = EventEmitter()
        self.on_accept: EventEmitter[None] = EventEmitter()
        self.value: str = ""
        self.prompt: str | None = None
        self.validation_message: str | None = None

    def change_value(self, text: str) -> bool:
        if not self.interactive:
            return False
        self.value = text
        self.on_change.fire(text)
        return True

    def accept(self) -> bool:
        if not self.interactive:
            return False
        self.on_accept.fire(None)
        return True

    def _emitters(self) -> Sequence[EventEmitter[object]]:
        return (self.on_button, self.on_hide, self.on_change, self.on_accept)  # type: ignore[return-value]


__all__ = (
    "BACK_BUTTON",
    "Button",
    "ChoiceItem",
    "ChoiceSurface",
    "EventEmitter",
    "PromptSurface",
    "Subscription",
    "SurfaceFactory",
    "SurfaceHost",
    "TextSurface",
)
