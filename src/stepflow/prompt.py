"""Prompt adapters — one surface, one step, one settled result.

ChoicePrompt and TextPrompt present a surface through the flow engine and
turn its events into a single ``Result``:

- ``Ok(value)`` — the user picked an item / submitted valid text
- ``Error(FlowSignal.BACK)`` — Back button
- ``Error(FlowSignal.RESUME | FlowSignal.CANCEL)`` — surface hidden
  before settling, depending on ``should_resume()``

Every subscription a prompt takes is released when ``present`` returns,
whatever the outcome.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import warnings
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from kungfu import Error, Ok, Result

from stepflow.signals import FlowSignal
from stepflow.surface import (
    BACK_BUTTON,
    Button,
    ChoiceItem,
    EventEmitter,
    PromptSurface,
)

if TYPE_CHECKING:
    from stepflow.flow import MultiStepInput

logger = logging.getLogger(__name__)

type ShouldResume = Callable[[], Awaitable[bool] | bool]
type Validator = Callable[[str], Awaitable[str | None]]


# ═══════════════════════════════════════════════════════════════════════════════
# In-flight prompt bookkeeping
# ═══════════════════════════════════════════════════════════════════════════════


class _PromptCall[T]:
    """Future + subscriptions + background tasks of one prompt call.

    Used as a context manager: leaving the block releases every
    subscription and cancels tasks that only matter while the prompt is
    pending (validation, hide handling).
    """

    def __init__(self) -> None:
        self.future: asyncio.Future[Result[T, FlowSignal]] = asyncio.get_running_loop().create_future()
        self._subscriptions = ExitStack()
        self._scoped: set[asyncio.Task[Any]] = set()
        self._detached: set[asyncio.Task[Any]] = set()

    def __enter__(self) -> _PromptCall[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._subscriptions.close()
        for task in list(self._scoped):
            task.cancel()

    def settle(self, result: Result[T, FlowSignal]) -> None:
        if not self.future.done():
            self.future.set_result(result)

    def fail(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)
        else:
            logger.error("Prompt handler failed after the prompt settled", exc_info=exc)

    def listen[E](self, emitter: EventEmitter[E], listener: Callable[[E], object]) -> None:
        def _guarded(value: E) -> None:
            try:
                listener(value)
            except Exception as exc:
                self.fail(exc)

        self._subscriptions.callback(emitter.subscribe(_guarded).dispose)

    def spawn(self, coro: Coroutine[Any, Any, object], *, scoped: bool = True) -> None:
        """Run ``coro`` in the background; its failure fails the prompt.

        Scoped tasks are cancelled when the prompt returns. Detached ones
        (button handlers) are left to finish.
        """
        task = asyncio.ensure_future(coro)
        bucket = self._scoped if scoped else self._detached
        bucket.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            bucket.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self.fail(exc)

        task.add_done_callback(_done)


class _ValidationRace:
    """Monotonic generation counter — only the latest request may apply."""

    __slots__ = ("latest",)

    def __init__(self) -> None:
        self.latest = 0

    def issue(self) -> int:
        self.latest += 1
        return self.latest

    def is_latest(self, token: int) -> bool:
        return token == self.latest


async def _await_value[V](value: Awaitable[V] | V) -> V:
    if inspect.isawaitable(value):
        return await value
    return value


def _with_back(flow: MultiStepInput, buttons: Sequence[Button]) -> tuple[Button, ...]:
    back = (BACK_BUTTON,) if flow.depth > 1 else ()
    return (*back, *buttons)


def _wire_navigation[T](
    call: _PromptCall[T],
    surface: PromptSurface,
    should_resume: ShouldResume | None,
) -> None:
    """Back button, custom buttons, and hide-without-settling."""

    def _on_button(button: Button) -> None:
        if button is BACK_BUTTON:
            call.settle(Error(FlowSignal.BACK))
        elif button.on_click is not None:
            outcome = button.on_click(surface)
            if inspect.iscoroutine(outcome):
                call.spawn(outcome, scoped=False)
            elif inspect.isawaitable(outcome):
                call.spawn(_await_value(outcome), scoped=False)

    async def _resolve_hide() -> None:
        resume = False
        if should_resume is not None:
            resume = bool(await _await_value(should_resume()))
        call.settle(Error(FlowSignal.RESUME if resume else FlowSignal.CANCEL))

    def _on_hide(_: None) -> None:
        if not call.future.done():
            call.spawn(_resolve_hide())

    call.listen(surface.on_button, _on_button)
    call.listen(surface.on_hide, _on_hide)


def _apply_metadata(
    surface: PromptSurface,
    flow: MultiStepInput,
    *,
    title: str,
    step: int,
    total_steps: int,
    placeholder: str | None,
    buttons: Sequence[Button],
) -> None:
    surface.title = title
    surface.step = step
    surface.total_steps = total_steps
    surface.placeholder = placeholder
    surface.buttons = _with_back(flow, buttons)
    surface.ignore_focus_out = flow.options.ignore_focus_out


# ═══════════════════════════════════════════════════════════════════════════════
# ChoicePrompt
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ChoicePrompt[T: ChoiceItem]:
    """Pick one item from a list.

        prompt = ChoicePrompt(
            title="New project", step=1, total_steps=3,
            items=[ChoiceItem("Python"), ChoiceItem("Rust")],
            placeholder="Pick a language",
        )
        result = await prompt.present(flow)
    """

    title: str
    step: int
    total_steps: int
    items: Sequence[T]
    placeholder: str
    active_item: T | None = None
    buttons: Sequence[Button] = ()
    should_resume: ShouldResume | None = None

    async def present(self, flow: MultiStepInput) -> Result[T, FlowSignal]:
        surface = flow.surfaces.create_choice()
        _apply_metadata(
            surface, flow,
            title=self.title,
            step=self.step,
            total_steps=self.total_steps,
            placeholder=self.placeholder,
            buttons=self.buttons,
        )
        surface.items = tuple(self.items)
        if self.active_item is not None:
            if self.active_item not in surface.items:
                warnings.warn(
                    f"active_item {self.active_item!r} is not one of the prompt items",
                    stacklevel=2,
                )
            surface.active_items = (self.active_item,)

        with _PromptCall[T]() as call:
            _wire_navigation(call, surface, self.should_resume)

            def _on_selection(items: Sequence[T]) -> None:
                if items:
                    call.settle(Ok(items[0]))

            call.listen(surface.on_selection, _on_selection)
            flow.install(surface)
            return await call.future


# ═══════════════════════════════════════════════════════════════════════════════
# TextPrompt
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TextPrompt:
    """Free-text entry with async validation.

    ``validate`` returns an error message, or None when the text is fine.
    Results of superseded validations are dropped.
    """

    title: str
    step: int
    total_steps: int
    value: str
    prompt: str
    validate: Validator
    placeholder: str | None = None
    buttons: Sequence[Button] = ()
    should_resume: ShouldResume | None = None

    async def present(self, flow: MultiStepInput) -> Result[str, FlowSignal]:
        surface = flow.surfaces.create_text()
        _apply_metadata(
            surface, flow,
            title=self.title,
            step=self.step,
            total_steps=self.total_steps,
            placeholder=self.placeholder,
            buttons=self.buttons,
        )
        surface.value = self.value or ""
        surface.prompt = self.prompt
        race = _ValidationRace()

        def _show(message: str | None) -> None:
            surface.validation_message = message or None
            if message:
                flow.debouncer.schedule(
                    lambda: setattr(surface, "validation_message", None),
                    flow.options.debounce_delay,
                    flow.options.debounce_key,
                )

        with _PromptCall[str]() as call:
            _wire_navigation(call, surface, self.should_resume)

            # Primes the race token; an empty box shows no error up front.
            race.issue()
            call.spawn(_await_value(self.validate("")))

            async def _apply_change(token: int, text: str) -> None:
                message = await self.validate(text)
                if race.is_latest(token):
                    surface.busy = False
                    _show(message)

            def _on_change(text: str) -> None:
                token = race.issue()
                surface.busy = True
                call.spawn(_apply_change(token, text))

            async def _submit(token: int, value: str) -> None:
                message = await self.validate(value)
                if message:
                    if race.is_latest(token):
                        _show(message)
                else:
                    call.settle(Ok(value))
                surface.enabled = True
                surface.busy = False

            def _on_accept(_: None) -> None:
                value = surface.value
                token = race.issue()
                surface.enabled = False
                surface.busy = True
                call.spawn(_submit(token, value))

            call.listen(surface.on_change, _on_change)
            call.listen(surface.on_accept, _on_accept)
            flow.install(surface)
            return await call.future


__all__ = (
    "ChoicePrompt",
    "ShouldResume",
    "TextPrompt",
    "Validator",
)
