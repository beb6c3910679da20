"""
Subject prompt and button disclosure tests
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from telegram.error import BadRequest

from hwbot import PROMPT_TEXT, DisclosurePhase, DisclosureRegistry, HomeworkDisclosure

PROMPT_ID = 42
COMMAND_ID = 41


def make_bot() -> AsyncMock:
    bot = AsyncMock()
    bot.send_message.return_value = SimpleNamespace(message_id=PROMPT_ID)
    return bot


@pytest.fixture
def bot():
    return make_bot()


@pytest.fixture
def disclosure(bot, store, config):
    return HomeworkDisclosure(bot, store, config, DisclosureRegistry(config.IDLE_TIMEOUT_SECS))


@pytest.mark.asyncio
async def test_prompt_opens_collapsed_session(disclosure, bot, config):
    session = await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)

    args, kwargs = bot.send_message.call_args
    assert args == (config.CHAT_ID, PROMPT_TEXT)
    labels = [b.callback_data for line in kwargs["reply_markup"].inline_keyboard for b in line]
    assert labels == ["Math", "Physics", "History", "Eng", "Chem", "Bio"]
    assert session.phase is DisclosurePhase.COLLAPSED
    assert PROMPT_ID in disclosure.registry
    assert disclosure.registry.active_timers(PROMPT_ID) == 1
    disclosure.registry.cancel(PROMPT_ID)


@pytest.mark.asyncio
async def test_press_appends_subject_and_keeps_buttons(disclosure, bot, config):
    await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)

    assert await disclosure.press(config.CHAT_ID, PROMPT_ID, "Eng")

    args, kwargs = bot.edit_message_text.call_args
    assert args[0] == f"{PROMPT_TEXT}\n<b>English</b>: <i>ex. 3</i>"
    assert kwargs["message_id"] == PROMPT_ID
    assert kwargs["reply_markup"] is not None
    assert disclosure.registry.get(PROMPT_ID).phase is DisclosurePhase.REVEALING
    disclosure.registry.cancel(PROMPT_ID)


@pytest.mark.asyncio
async def test_repeated_presses_keep_a_single_timer(disclosure, bot, config):
    await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)
    registry = disclosure.registry

    await disclosure.press(config.CHAT_ID, PROMPT_ID, "Math")
    first_timer = registry.get(PROMPT_ID).timer
    await disclosure.press(config.CHAT_ID, PROMPT_ID, "Physics")
    await asyncio.sleep(0)

    assert first_timer.done()
    assert registry.active_timers(PROMPT_ID) == 1
    assert registry.active_timers() == 1

    # Only the latest timer finalizes the message, exactly once
    await asyncio.sleep(config.IDLE_TIMEOUT_SECS * 4)
    assert bot.edit_message_text.await_count == 3
    final_args, final_kwargs = bot.edit_message_text.call_args
    assert "reply_markup" not in final_kwargs
    assert final_args[0].count("\n") == 2
    assert PROMPT_ID not in registry
    bot.delete_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_reveal_cap_finalizes_immediately(disclosure, bot, config):
    session = await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)

    for label in ["Math", "Physics", "History", "Eng"]:
        await disclosure.press(config.CHAT_ID, PROMPT_ID, label)
        assert PROMPT_ID in disclosure.registry

    await disclosure.press(config.CHAT_ID, PROMPT_ID, "Chem")

    assert session.phase is DisclosurePhase.FINALIZED
    assert PROMPT_ID not in disclosure.registry
    assert disclosure.registry.active_timers() == 0
    _, kwargs = bot.edit_message_text.call_args
    assert "reply_markup" not in kwargs
    assert len(session.revealed) == config.REVEAL_CAP

    await asyncio.sleep(config.IDLE_TIMEOUT_SECS * 3)
    assert bot.edit_message_text.await_count == 5


@pytest.mark.asyncio
async def test_press_from_other_chat_is_ignored(disclosure, bot, config):
    handled = await disclosure.press(config.CHAT_ID + 1, PROMPT_ID, "Math")

    assert handled is False
    assert bot.mock_calls == []
    assert len(disclosure.registry) == 0


@pytest.mark.asyncio
async def test_unknown_label_is_ignored(disclosure, bot, config):
    assert await disclosure.press(config.CHAT_ID, PROMPT_ID, "Astronomy") is False
    assert bot.mock_calls == []


@pytest.mark.asyncio
async def test_idle_prompt_is_deleted_with_command(disclosure, bot, config):
    await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)

    await asyncio.sleep(config.IDLE_TIMEOUT_SECS * 3)

    deleted = [c.args for c in bot.delete_message.await_args_list]
    assert deleted == [(config.CHAT_ID, PROMPT_ID), (config.CHAT_ID, COMMAND_ID)]
    assert len(disclosure.registry) == 0
    bot.edit_message_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_idle_cleanup_survives_delete_failure(disclosure, bot, config):
    bot.delete_message.side_effect = BadRequest("Message to delete not found")
    await disclosure.send_prompt(config.CHAT_ID, COMMAND_ID)

    await asyncio.sleep(config.IDLE_TIMEOUT_SECS * 3)

    assert bot.delete_message.await_count == 2
    assert len(disclosure.registry) == 0


@pytest.mark.asyncio
async def test_press_on_unknown_message_adopts_it(disclosure, bot, config):
    text = f"{PROMPT_TEXT}\n<b>Math</b>: <i>p.12</i>"

    await disclosure.press(config.CHAT_ID, 77, "Physics", text_html=text, reply_markup="kb")

    session = disclosure.registry.get(77)
    assert len(session.revealed) == 2
    assert disclosure.registry.active_timers(77) == 1
    args, kwargs = bot.edit_message_text.call_args
    assert args[0] == f"{text}\n<b>Physics</b>: <i>read ch.4</i>"
    assert kwargs["reply_markup"] == "kb"
    disclosure.registry.cancel(77)
