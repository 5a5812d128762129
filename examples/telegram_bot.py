"""telegram_bot — run a stepflow wizard inside a Telegram chat.

    BOT_TOKEN=... uv run python examples/telegram_bot.py
"""

from __future__ import annotations

import asyncio
import os

from kungfu import Error, Ok, Some
from telegrinder import API, CallbackQuery, Message, Telegrinder, Token
from telegrinder.rules import Command

from stepflow.flow import MultiStepInput, StepOutcome
from stepflow.gate import FlowBusy, FlowGate
from stepflow.surface import ChoiceItem
from stepflow.telegram import TelegramSurfaces

SIZES = [ChoiceItem("Small"), ChoiceItem("Medium"), ChoiceItem("Large")]

gate = FlowGate()
chats: dict[int, TelegramSurfaces] = {}


async def validate_toppings(text: str) -> str | None:
    return None if text.strip() else "Tell me at least one topping"


def order_wizard(order: dict[str, str]):
    async def size(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_choice(
            title="Pizza", step=1, total_steps=2, items=SIZES, placeholder="Size?",
        ):
            case Ok(item):
                order["size"] = item.label
                return toppings
            case Error(signal):
                return signal

    async def toppings(flow: MultiStepInput) -> StepOutcome:
        match await flow.show_text(
            title="Pizza", step=2, total_steps=2, value="",
            prompt="Toppings (comma-separated):", validate=validate_toppings,
        ):
            case Ok(text):
                order["toppings"] = text
                return None
            case Error(signal):
                return signal

    return size


async def run_order(message: Message) -> None:
    chat_id = message.chat.id
    try:
        permit = gate.acquire(str(chat_id))
    except FlowBusy:
        await message.answer("An order is already in progress.")
        return

    surfaces = TelegramSurfaces(message.ctx_api, chat_id)
    chats[chat_id] = surfaces
    order: dict[str, str] = {}
    try:
        result = await MultiStepInput.run(order_wizard(order), surfaces)
    finally:
        gate.release(permit)
        await surfaces.drain()
        chats.pop(chat_id, None)
    match result:
        case Ok(_):
            await message.answer(f"Order placed: {order['size']} with {order['toppings']}")
        case Error(_):
            await message.answer("Order cancelled.")


if __name__ == "__main__":
    token = os.environ.get("BOT_TOKEN", "")
    if not token:
        print("Set BOT_TOKEN=... to run")
    else:
        bot = Telegrinder(API(Token(token)))

        @bot.on.message(Command("order"))
        async def order(message: Message) -> None:
            asyncio.get_running_loop().create_task(run_order(message))

        @bot.on.message()
        async def text(message: Message) -> None:
            surfaces = chats.get(message.chat.id)
            match message.text:
                case Some(txt) if surfaces is not None:
                    surfaces.feed_message(txt)
                case _:
                    pass

        @bot.on.callback_query()
        async def press(callback: CallbackQuery) -> None:
            match callback.chat_id, callback.data:
                case Some(chat_id), Some(data) if chat_id in chats:
                    chats[chat_id].feed_callback(data)
                case _:
                    pass
            await callback.answer()

        bot.run_forever()
