"""Inline keyboard builders for rendered prompts."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from telegrinder.tools.keyboard import InlineButton, InlineKeyboard

from stepflow.surface import BACK_BUTTON, ChoiceItem, ChoiceSurface, PromptSurface
from stepflow.uilib.theme import UITheme


def build_column_grid(
    kb: InlineKeyboard,
    items: Sequence[tuple[str, str]],
    columns: int,
) -> None:
    """Add items to keyboard in a column grid layout.

    Args:
        kb: Keyboard to add buttons to.
        items: (text, callback_data) pairs.
        columns: Buttons per row before wrapping.
    """
    col_count = 0
    for text, cb_data in items:
        kb.add(InlineButton(text=text, callback_data=cb_data))
        col_count += 1
        if col_count >= columns:
            kb.row()
            col_count = 0
    if col_count > 0:
        kb.row()


def item_label(item: ChoiceItem, active: bool, theme: UITheme) -> str:
    label = item.label if item.description is None else f"{item.label} ({item.description})"
    return f"{theme.display.active} {label}" if active else label


def build_prompt_keyboard(
    surface: PromptSurface,
    callback_data: Callable[[str], str],
    *,
    theme: UITheme,
    columns: int = 1,
) -> InlineKeyboard:
    """Build the keyboard for a surface: items grid, then a button row.

    Callback values: ``item:<index>``, ``button:<index>``, ``hide``.

    Args:
        surface: Surface to render.
        callback_data: Wraps a callback value into the routed payload.
        theme: UITheme for configurable strings.
        columns: Item buttons per row.
    """
    kb = InlineKeyboard()

    if isinstance(surface, ChoiceSurface):
        items = [
            (item_label(item, item in surface.active_items, theme), callback_data(f"item:{i}"))
            for i, item in enumerate(surface.items)
        ]
        build_column_grid(kb, items, columns)

    for i, button in enumerate(surface.buttons):
        label = theme.nav.back if button is BACK_BUTTON else button.label
        kb.add(InlineButton(text=label, callback_data=callback_data(f"button:{i}")))
    kb.add(InlineButton(text=theme.nav.dismiss, callback_data=callback_data("hide")))
    return kb


__all__ = (
    "build_column_grid",
    "build_prompt_keyboard",
    "item_label",
)
