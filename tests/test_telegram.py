"""Tests for the Telegram backend — rendering, keyboards, input routing."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from kungfu import Error, Ok

from stepflow.flow import MultiStepInput, StepOutcome
from stepflow.surface import BACK_BUTTON, Button, ChoiceItem, ChoiceSurface, TextSurface
from stepflow.telegram import EMPTY_TEXT, TelegramSurfaces, callback_data, render_text
from stepflow.uilib import DEFAULT_THEME, NavUI, UITheme, build_prompt_keyboard


def _mock_api(message_id: int = 42) -> MagicMock:
    api = MagicMock()
    api.send_message = AsyncMock(return_value=Ok(MagicMock(message_id=message_id)))
    api.edit_message_text = AsyncMock()
    api.delete_message = AsyncMock()
    return api


def _texts(kb: object) -> list[str]:
    markup = kb.get_markup()  # type: ignore[attr-defined]
    texts = []
    for row in markup.inline_keyboard:
        for btn in row:
            texts.append(btn.text)
    return texts


def _choice(surfaces: TelegramSurfaces, *labels: str) -> ChoiceSurface[ChoiceItem]:
    surface = surfaces.create_choice()
    surface.title = "Pick"
    surface.items = tuple(ChoiceItem(label) for label in labels)
    return surface


# ═══════════════════════════════════════════════════════════════════════════════
# Text rendering
# ═══════════════════════════════════════════════════════════════════════════════


class TestRenderText:
    def test_full_text_box(self) -> None:
        surface = TextSurface()
        surface.title = "Name"
        surface.step = 1
        surface.total_steps = 2
        surface.prompt = "Your name"
        surface.validation_message = "Too short"
        assert render_text(surface) == "Name · Step 1/2\n\nYour name\n⚠️ Too short"

    def test_placeholder_for_choice(self) -> None:
        surface: ChoiceSurface[ChoiceItem] = ChoiceSurface()
        surface.title = "Pick"
        surface.placeholder = "Choose one"
        assert render_text(surface) == "Pick\n\nChoose one"

    def test_busy_and_disabled_markers(self) -> None:
        surface = TextSurface()
        surface.title = "Name"
        surface.busy = True
        assert render_text(surface).endswith(DEFAULT_THEME.display.busy)
        surface.busy = False
        surface.enabled = False
        assert render_text(surface).endswith(DEFAULT_THEME.display.disabled)

    def test_counter_without_title(self) -> None:
        surface = TextSurface()
        surface.step = 2
        surface.total_steps = 3
        assert render_text(surface) == "Step 2/3"

    def test_empty_surface(self) -> None:
        assert render_text(TextSurface()) == EMPTY_TEXT


# ═══════════════════════════════════════════════════════════════════════════════
# Keyboards
# ═══════════════════════════════════════════════════════════════════════════════


class TestPromptKeyboard:
    def test_items_then_buttons_then_dismiss(self) -> None:
        surface: ChoiceSurface[ChoiceItem] = ChoiceSurface()
        surface.items = (ChoiceItem("a", description="first"), ChoiceItem("b"))
        surface.active_items = (surface.items[1],)
        surface.buttons = (BACK_BUTTON, Button("Help"))
        kb = build_prompt_keyboard(surface, lambda v: v, theme=DEFAULT_THEME)
        assert _texts(kb) == ["a (first)", "▸ b", "◀ Back", "Help", "✕ Close"]

    def test_item_columns(self) -> None:
        surface: ChoiceSurface[ChoiceItem] = ChoiceSurface()
        surface.items = tuple(ChoiceItem(label) for label in "abc")
        kb = build_prompt_keyboard(surface, lambda v: v, theme=DEFAULT_THEME, columns=2)
        rows = [[btn.text for btn in row] for row in kb.get_markup().inline_keyboard]
        assert rows[:2] == [["a", "b"], ["c"]]

    def test_theme_labels(self) -> None:
        surface = TextSurface()
        surface.buttons = (BACK_BUTTON,)
        theme = UITheme(nav=NavUI(back="← Назад", dismiss="Закрыть"))
        kb = build_prompt_keyboard(surface, lambda v: v, theme=theme)
        assert _texts(kb) == ["← Назад", "Закрыть"]

    def test_callback_data_payload(self) -> None:
        assert json.loads(callback_data("abc", "item:3")) == {"flow": "abc", "value": "item:3"}


# ═══════════════════════════════════════════════════════════════════════════════
# Message lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class TestMessages:
    def test_changes_coalesce_into_one_send(self) -> None:
        api = _mock_api()

        async def scenario() -> int:
            surfaces = TelegramSurfaces(api, chat_id=7)
            surface = _choice(surfaces, "a", "b")
            surface.show()
            surface.placeholder = "Choose"
            surface.busy = True
            surface.busy = False
            await surfaces.drain()
            return surfaces.message_id(surface)

        assert asyncio.run(scenario()) == 42
        api.send_message.assert_awaited_once()
        api.edit_message_text.assert_not_called()
        assert api.send_message.await_args.kwargs["chat_id"] == 7
        assert api.send_message.await_args.kwargs["text"] == "Pick\n\nChoose"

    def test_later_change_edits(self) -> None:
        api = _mock_api()

        async def scenario() -> None:
            surfaces = TelegramSurfaces(api, chat_id=7)
            surface = _choice(surfaces, "a")
            surface.show()
            await surfaces.drain()
            surface.placeholder = "Again"
            await surfaces.drain()

        asyncio.run(scenario())
        api.send_message.assert_awaited_once()
        api.edit_message_text.assert_awaited_once()
        kwargs = api.edit_message_text.await_args.kwargs
        assert kwargs["message_id"] == 42
        assert kwargs["text"] == "Pick\n\nAgain"

    def test_disabled_surface_has_no_keyboard(self) -> None:
        api = _mock_api()

        async def scenario() -> None:
            surfaces = TelegramSurfaces(api, chat_id=7)
            surface = _choice(surfaces, "a")
            surface.show()
            await surfaces.drain()
            surface.enabled = False
            await surfaces.drain()

        asyncio.run(scenario())
        assert api.send_message.await_args.kwargs["reply_markup"] is not None
        assert api.edit_message_text.await_args.kwargs["reply_markup"] is None

    def test_hide_deletes_message(self) -> None:
        api = _mock_api(message_id=99)

        async def scenario() -> None:
            surfaces = TelegramSurfaces(api, chat_id=7)
            surface = _choice(surfaces, "a")
            surface.show()
            await surfaces.drain()
            surface.dispose()
            await surfaces.drain()
            assert surfaces.visible is None

        asyncio.run(scenario())
        api.delete_message.assert_awaited_once_with(chat_id=7, message_id=99)

    def test_send_failure_warns(self) -> None:
        api = _mock_api()
        api.send_message = AsyncMock(return_value=Error("bot was blocked"))

        async def scenario() -> int:
            surfaces = TelegramSurfaces(api, chat_id=7)
            surface = _choice(surfaces, "a")
            surface.show()
            await surfaces.drain()
            return surfaces.message_id(surface)

        with pytest.warns(UserWarning, match="Could not send prompt message"):
            assert asyncio.run(scenario()) == 0


# ═══════════════════════════════════════════════════════════════════════════════
# Input routing
# ═══════════════════════════════════════════════════════════════════════════════


class TestInput:
    def test_item_callback_selects(self) -> None:
        async def scenario() -> list[object]:
            surfaces = TelegramSurfaces(_mock_api(), chat_id=1)
            surface = _choice(surfaces, "a", "b")
            picked: list[object] = []
            surface.on_selection.subscribe(picked.append)
            surface.show()
            assert surfaces.feed_callback(surfaces.callback_for(surface, "item:1"))
            await surfaces.drain()
            return picked

        assert asyncio.run(scenario()) == [(ChoiceItem("b"),)]

    def test_button_and_hide_callbacks(self) -> None:
        async def scenario() -> tuple[list[Button], bool]:
            surfaces = TelegramSurfaces(_mock_api(), chat_id=1)
            surface = _choice(surfaces, "a")
            surface.buttons = (BACK_BUTTON,)
            pressed: list[Button] = []
            surface.on_button.subscribe(pressed.append)
            surface.show()
            surfaces.feed_callback(surfaces.callback_for(surface, "button:0"))
            surfaces.feed_callback(surfaces.callback_for(surface, "hide"))
            await surfaces.drain()
            return pressed, surface.visible

        pressed, visible = asyncio.run(scenario())
        assert pressed == [BACK_BUTTON]
        assert visible is False

    def test_rejected_callbacks(self) -> None:
        async def scenario() -> list[bool]:
            surfaces = TelegramSurfaces(_mock_api(), chat_id=1)
            first = _choice(surfaces, "a")
            first.show()
            stale = surfaces.callback_for(first, "item:0")
            results = [
                surfaces.feed_callback("not json"),
                surfaces.feed_callback(json.dumps(["item:0"])),
                surfaces.feed_callback(callback_data("other", "item:0")),
                surfaces.feed_callback(surfaces.callback_for(first, "item:5")),
                surfaces.feed_callback(surfaces.callback_for(first, "bogus")),
            ]
            first.dispose()
            second = _choice(surfaces, "a")
            second.show()
            results.append(surfaces.feed_callback(stale))
            await surfaces.drain()
            return results

        assert asyncio.run(scenario()) == [False] * 6

    def test_feed_message(self) -> None:
        async def scenario() -> tuple[bool, bool, str, int]:
            surfaces = TelegramSurfaces(_mock_api(), chat_id=1)
            choice = _choice(surfaces, "a")
            choice.show()
            on_choice = surfaces.feed_message("Ada")
            choice.dispose()

            box = surfaces.create_text()
            accepted: list[None] = []
            box.on_accept.subscribe(accepted.append)
            box.show()
            on_box = surfaces.feed_message("Ada")
            await surfaces.drain()
            return on_choice, on_box, box.value, len(accepted)

        assert asyncio.run(scenario()) == (False, True, "Ada", 1)


# ═══════════════════════════════════════════════════════════════════════════════
# Whole flow
# ═══════════════════════════════════════════════════════════════════════════════


class TestTelegramFlow:
    def test_choice_then_text(self) -> None:
        api = _mock_api()
        answers: list[str] = []

        async def _no_error(text: str) -> str | None:
            return None

        async def name(flow: MultiStepInput) -> StepOutcome:
            match await flow.show_text(
                title="Order", step=2, total_steps=2, value="", prompt="Your name",
                validate=_no_error,
            ):
                case Ok(value):
                    answers.append(value)
                    return None
                case Error(signal):
                    return signal

        async def size(flow: MultiStepInput) -> StepOutcome:
            match await flow.show_choice(
                title="Order", step=1, total_steps=2,
                items=[ChoiceItem("Small"), ChoiceItem("Large")], placeholder="Size",
            ):
                case Ok(item):
                    answers.append(item.label)
                    return name
                case Error(signal):
                    return signal

        async def scenario() -> None:
            surfaces = TelegramSurfaces(api, chat_id=5)
            run = asyncio.create_task(MultiStepInput.run(size, surfaces))
            await asyncio.sleep(0.01)
            picker = surfaces.visible
            assert isinstance(picker, ChoiceSurface)
            assert surfaces.feed_callback(surfaces.callback_for(picker, "item:1"))
            await asyncio.sleep(0.01)
            assert isinstance(surfaces.visible, TextSurface)
            assert surfaces.feed_message("Ada")
            await run
            await surfaces.drain()
            assert surfaces.visible is None

        asyncio.run(scenario())
        assert answers == ["Large", "Ada"]
        assert api.send_message.await_count == 2
        assert api.delete_message.await_count == 2
