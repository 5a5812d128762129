"""UITheme — configurable labels for rendered prompts.

Icons, labels and format patterns live in frozen dataclasses with
sensible defaults.

    from stepflow.uilib import UITheme, NavUI

    # Override just what you need, the rest keeps its defaults
    theme = UITheme(nav=NavUI(back="◀ Назад", dismiss="✕ Закрыть"))
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class NavUI:
    """Navigation buttons."""

    back: str = "◀ Back"
    dismiss: str = "✕ Close"


@dataclass(frozen=True, slots=True)
class DisplayUI:
    """Formatting strings."""

    step_format: str = "Step {}/{}"
    title_separator: str = " · "
    busy: str = "⏳"
    active: str = "▸"
    disabled: str = "(please wait)"


@dataclass(frozen=True, slots=True)
class ErrorUI:
    """Validation message decoration."""

    validation_prefix: str = "⚠️ "


@dataclass(frozen=True, slots=True)
class UITheme:
    """Top-level theme container.

    Override sub-dataclasses to customize UI strings::

        theme = UITheme(display=DisplayUI(step_format="{} of {}"))
    """

    nav: NavUI = field(default_factory=NavUI)
    display: DisplayUI = field(default_factory=DisplayUI)
    errors: ErrorUI = field(default_factory=ErrorUI)


DEFAULT_THEME = UITheme()


__all__ = (
    "NavUI",
    "DisplayUI",
    "ErrorUI",
    "UITheme",
    "DEFAULT_THEME",
)
