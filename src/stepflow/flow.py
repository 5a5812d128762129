"""Multi-step input flow — chain prompts into a wizard.

A flow is a chain of steps. Each step shows one prompt through the engine
and returns the next step, ``None`` to finish, or a ``FlowSignal``:

    async def pick_language(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_choice(
            title="New project", step=1, total_steps=2,
            items=LANGUAGES, placeholder="Pick a language",
        ):
            case Ok(item):
                state.language = item.label
                return name_project
            case Error(signal):
                return signal

    result = await MultiStepInput.run(pick_language, MemorySurfaces())

The engine keeps the step history, so BACK re-runs the previous step,
RESUME re-runs the current one, CANCEL abandons the flow. Steps stay
linear: navigation lives here, once.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from kungfu import Error, Ok, Result

from stepflow.debounce import DEFAULT_DELAY, DEFAULT_KEY, Debouncer
from stepflow.prompt import ChoicePrompt, ShouldResume, TextPrompt, Validator
from stepflow.signals import FlowSignal
from stepflow.surface import Button, ChoiceItem, PromptSurface, SurfaceFactory

logger = logging.getLogger(__name__)


type StepOutcome = Step | FlowSignal | None
type Step = Callable[[MultiStepInput], Awaitable[StepOutcome]]


# ═══════════════════════════════════════════════════════════════════════════════
# Errors and options
# ═══════════════════════════════════════════════════════════════════════════════


class FlowUsageError(RuntimeError):
    """The step chain was put together incorrectly."""


class NoPreviousStep(FlowUsageError):
    """BACK was returned with no earlier step in the history."""


@dataclass(frozen=True, slots=True)
class FlowOptions:
    """Per-run engine settings.

    debounce_delay: seconds before a validation message clears itself.
    debounce_key: debouncer key shared by the prompts of one run.
    ignore_focus_out: keep surfaces open when focus moves elsewhere.
    """

    debounce_delay: float = DEFAULT_DELAY
    debounce_key: str = DEFAULT_KEY
    ignore_focus_out: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════════════════════


class MultiStepInput:
    """Runs a step chain and owns the single visible surface."""

    @classmethod
    async def run(
        cls,
        start: Step,
        surfaces: SurfaceFactory,
        *,
        options: FlowOptions | None = None,
    ) -> Result[None, FlowSignal]:
        """Run a flow to completion.

        Returns ``Ok(None)`` when the chain ends, ``Error(FlowSignal.CANCEL)``
        when it was abandoned. Errors raised by steps propagate.
        """
        flow = cls(surfaces, options=options)
        return await flow.step_through(start)

    def __init__(self, surfaces: SurfaceFactory, *, options: FlowOptions | None = None) -> None:
        self.surfaces = surfaces
        self.options = options or FlowOptions()
        self.debouncer = Debouncer()
        self._steps: list[Step] = []
        self._current: PromptSurface | None = None

    @property
    def depth(self) -> int:
        """Number of steps in the history, current one included."""
        return len(self._steps)

    @property
    def history(self) -> Sequence[Step]:
        return tuple(self._steps)

    @property
    def current(self) -> PromptSurface | None:
        return self._current

    def install(self, surface: PromptSurface) -> None:
        """Make ``surface`` the visible one, disposing the previous occupant."""
        previous = self._current
        if previous is not None and previous is not surface:
            previous.dispose()
        self._current = surface
        surface.show()

    async def step_through(self, start: Step) -> Result[None, FlowSignal]:
        step: Step | None = start
        try:
            while step is not None:
                self._steps.append(step)
                if self._current is not None:
                    self._current.enabled = False
                    self._current.busy = True

                outcome = await step(self)
                match outcome:
                    case None:
                        step = None
                    case FlowSignal.BACK:
                        step = self._previous_step()
                    case FlowSignal.RESUME:
                        logger.debug("Resuming step %s", _step_name(self._steps[-1]))
                        step = self._steps.pop()
                    case FlowSignal.CANCEL:
                        logger.debug("Flow cancelled at depth %d", self.depth)
                        return Error(FlowSignal.CANCEL)
                    case _ if callable(outcome):
                        step = outcome
                    case _:
                        raise FlowUsageError(
                            f"Step {_step_name(self._steps[-1])} returned {outcome!r}; "
                            "expected a step, a FlowSignal or None"
                        )
            return Ok(None)
        finally:
            self.debouncer.cancel_all()
            if self._current is not None:
                self._current.dispose()
                self._current = None

    def _previous_step(self) -> Step:
        if len(self._steps) < 2:
            raise NoPreviousStep(
                f"Step {_step_name(self._steps[-1])} returned BACK "
                "but there is no previous step"
            )
        self._steps.pop()
        previous = self._steps.pop()
        logger.debug("Going back to step %s", _step_name(previous))
        return previous

    # ── prompt shortcuts ─────────────────────────────────────────────────

    async def show_choice[T: ChoiceItem](
        self,
        *,
        title: str,
        step: int,
        total_steps: int,
        items: Sequence[T],
        placeholder: str,
        active_item: T | None = None,
        buttons: Sequence[Button] = (),
        should_resume: ShouldResume | None = None,
    ) -> Result[T, FlowSignal]:
        prompt = ChoicePrompt(
            title=title,
            step=step,
            total_steps=total_steps,
            items=items,
            placeholder=placeholder,
            active_item=active_item,
            buttons=buttons,
            should_resume=should_resume,
        )
        return await prompt.present(self)

    async def show_text(
        self,
        *,
        title: str,
        step: int,
        total_steps: int,
        value: str,
        prompt: str,
        validate: Validator,
        placeholder: str | None = None,
        buttons: Sequence[Button] = (),
        should_resume: ShouldResume | None = None,
    ) -> Result[str, FlowSignal]:
        text_prompt = TextPrompt(
            title=title,
            step=step,
            total_steps=total_steps,
            value=value,
            prompt=prompt,
            validate=validate,
            placeholder=placeholder,
            buttons=buttons,
            should_resume=should_resume,
        )
        return await text_prompt.present(self)


def _step_name(step: Step) -> str:
    return getattr(step, "__qualname__", repr(step))


__all__ = (
    "FlowOptions",
    "FlowUsageError",
    "MultiStepInput",
    "NoPreviousStep",
    "Step",
    "StepOutcome",
)
