"""Flow-control signals — redirect a running step chain.

A step returns one of these instead of its successor to tell the engine
where to go next. Prompts hand them back as ``Error(signal)``:

    match await flow.show_choice(...):
        case Ok(item):
            return next_step
        case Error(signal):
            return signal
"""

from __future__ import annotations

from enum import Enum


class FlowSignal(Enum):
    """Closed set of navigation signals.

    BACK: re-run the previous step.
    CANCEL: abandon the whole flow.
    RESUME: re-run the current step (prompt was dismissed, not abandoned).
    """

    BACK = "back"
    CANCEL = "cancel"
    RESUME = "resume"


Back = FlowSignal.BACK
Cancel = FlowSignal.CANCEL
Resume = FlowSignal.RESUME


__all__ = (
    "Back",
    "Cancel",
    "FlowSignal",
    "Resume",
)
