"""Telegram surface backend — prompts as chat messages with inline keyboards.

Each surface becomes one message: title and step counter, the prompt or
placeholder, the validation message, and a keyboard with the items (choice
lists), the surface buttons and a dismiss button. The first render sends
the message, later renders edit it, hiding deletes it.

User input is fed in from the bot's handlers:

    surfaces = TelegramSurfaces(api, chat_id=message.chat.id)
    ...
    surfaces.feed_callback(callback.data.unwrap())   # inline button
    surfaces.feed_message(message.text.unwrap())     # text box submission

Callbacks addressed to a surface that is no longer visible are ignored.
"""

from __future__ import annotations

import asyncio
import json
import secrets
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from kungfu import Error, Ok

from stepflow.surface import ChoiceItem, ChoiceSurface, PromptSurface, TextSurface
from stepflow.uilib.keyboard import build_prompt_keyboard
from stepflow.uilib.theme import DEFAULT_THEME, UITheme

if TYPE_CHECKING:
    from telegrinder import API


EMPTY_TEXT = "…"


def callback_data(token: str, value: str) -> str:
    """Build callback_data JSON for a surface's inline buttons."""
    return json.dumps({"flow": token, "value": value})


def render_text(surface: PromptSurface, theme: UITheme = DEFAULT_THEME) -> str:
    """Message text for a surface."""
    header = surface.title
    if surface.step is not None and surface.total_steps:
        counter = theme.display.step_format.format(surface.step, surface.total_steps)
        header = f"{header}{theme.display.title_separator}{counter}" if header else counter

    body = surface.placeholder
    if isinstance(surface, TextSurface) and surface.prompt:
        body = surface.prompt

    lines: list[str] = [header] if header else []
    if body:
        if lines:
            lines.append("")
        lines.append(body)
    if isinstance(surface, TextSurface) and surface.validation_message:
        lines.append(f"{theme.errors.validation_prefix}{surface.validation_message}")
    if surface.busy:
        lines.append(theme.display.busy)
    elif not surface.enabled:
        lines.append(theme.display.disabled)
    return "\n".join(lines) or EMPTY_TEXT


@dataclass(slots=True)
class _Rendered:
    """Per-surface render bookkeeping."""

    token: str
    message_id: int = 0
    dirty: bool = False
    task: asyncio.Task[None] | None = None


class TelegramSurfaces:
    """SurfaceFactory + SurfaceHost drawing into one Telegram chat.

    Renders are coalesced per surface: any number of attribute changes
    between two API calls produce one edit.
    """

    def __init__(
        self,
        api: API,
        chat_id: int,
        *,
        theme: UITheme = DEFAULT_THEME,
        columns: int = 1,
    ) -> None:
        self.api = api
        self.chat_id = chat_id
        self.theme = theme
        self.columns = columns
        self._views: dict[PromptSurface, _Rendered] = {}
        self._visible: PromptSurface | None = None
        self._pending: set[asyncio.Task[None]] = set()

    # ── SurfaceFactory ───────────────────────────────────────────────────

    def create_choice(self) -> ChoiceSurface[ChoiceItem]:
        surface: ChoiceSurface[ChoiceItem] = ChoiceSurface(self)
        self._views[surface] = _Rendered(token=secrets.token_hex(4))
        return surface

    def create_text(self) -> TextSurface:
        surface = TextSurface(self)
        self._views[surface] = _Rendered(token=secrets.token_hex(4))
        return surface

    # ── SurfaceHost ──────────────────────────────────────────────────────

    def surface_shown(self, surface: PromptSurface) -> None:
        self._visible = surface
        self._schedule(surface)

    def surface_changed(self, surface: PromptSurface, name: str) -> None:
        self._schedule(surface)

    def surface_hidden(self, surface: PromptSurface) -> None:
        if self._visible is surface:
            self._visible = None
        self._schedule(surface)

    def surface_disposed(self, surface: PromptSurface) -> None:
        self._views.pop(surface, None)

    # ── user input ───────────────────────────────────────────────────────

    @property
    def visible(self) -> PromptSurface | None:
        return self._visible

    def message_id(self, surface: PromptSurface) -> int:
        """Message currently showing ``surface`` (0 if none)."""
        view = self._views.get(surface)
        return view.message_id if view is not None else 0

    def callback_for(self, surface: PromptSurface, value: str) -> str:
        """callback_data a keyboard button of ``surface`` carries for ``value``."""
        return callback_data(self._views[surface].token, value)

    def feed_callback(self, data: str) -> bool:
        """Route an inline-button press. Returns True if it was consumed."""
        surface = self._visible
        if surface is None:
            return False
        view = self._views.get(surface)
        try:
            payload: Any = json.loads(data)
        except ValueError:
            return False
        if view is None or not isinstance(payload, dict) or payload.get("flow") != view.token:
            return False

        kind, _, raw_index = str(payload.get("value", "")).partition(":")
        index = int(raw_index) if raw_index.isdigit() else -1
        match kind:
            case "item" if isinstance(surface, ChoiceSurface) and 0 <= index < len(surface.items):
                return surface.select(surface.items[index])
            case "button" if 0 <= index < len(surface.buttons):
                return surface.trigger_button(surface.buttons[index])
            case "hide":
                surface.hide()
                return True
            case _:
                return False

    def feed_message(self, text: str) -> bool:
        """Type ``text`` into the visible text box and submit it."""
        surface = self._visible
        if not isinstance(surface, TextSurface):
            return False
        if not surface.change_value(text):
            return False
        return surface.accept()

    async def drain(self) -> None:
        """Wait until every scheduled render has reached the API."""
        while self._pending:
            await asyncio.gather(*self._pending)

    # ── rendering ────────────────────────────────────────────────────────

    def _schedule(self, surface: PromptSurface) -> None:
        view = self._views.get(surface)
        if view is None:
            return
        view.dirty = True
        if view.task is None or view.task.done():
            view.task = asyncio.get_running_loop().create_task(self._sync(surface, view))
            self._pending.add(view.task)
            view.task.add_done_callback(self._pending.discard)

    async def _sync(self, surface: PromptSurface, view: _Rendered) -> None:
        while view.dirty:
            view.dirty = False
            if surface.visible:
                await self._render(surface, view)
            elif view.message_id:
                message_id, view.message_id = view.message_id, 0
                await self.api.delete_message(chat_id=self.chat_id, message_id=message_id)

    async def _render(self, surface: PromptSurface, view: _Rendered) -> None:
        text = render_text(surface, self.theme)
        markup = None
        if surface.enabled:
            kb = build_prompt_keyboard(
                surface,
                lambda value: callback_data(view.token, value),
                theme=self.theme,
                columns=self.columns,
            )
            markup = kb.get_markup()

        if view.message_id == 0:
            result = await self.api.send_message(chat_id=self.chat_id, text=text, reply_markup=markup)
            match result:
                case Ok(sent):
                    view.message_id = sent.message_id
                case Error(err):
                    warnings.warn(f"Could not send prompt message: {err}", stacklevel=2)
        else:
            await self.api.edit_message_text(
                chat_id=self.chat_id,
                message_id=view.message_id,
                text=text,
                reply_markup=markup,
            )


__all__ = (
    "TelegramSurfaces",
    "callback_data",
    "render_text",
)
