"""uilib — configurable UI for rendered prompts."""

from .theme import (
    NavUI,
    DisplayUI,
    ErrorUI,
    UITheme,
    DEFAULT_THEME,
)

from .keyboard import (
    build_column_grid,
    build_prompt_keyboard,
    item_label,
)

__all__ = (
    "NavUI",
    "DisplayUI",
    "ErrorUI",
    "UITheme",
    "DEFAULT_THEME",
    "build_column_grid",
    "build_prompt_keyboard",
    "item_label",
)
