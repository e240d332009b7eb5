"""Steps of the dialog in which a user picks a contest to register for."""

from __future__ import annotations

import logging
from typing import Any, Callable

from contestbot.markup import escape_markdown_v2 as esc
from contestbot.models import DialogState
from contestbot.registration import DIALOG_TYPE_REGISTRATION, REGISTRATION_STEP_ZERO
from contestbot.storage import StorageError
from contestbot.telegram import Message, TelegramError, remove_keyboard, reply_keyboard

DIALOG_TYPE_CHOOSE_CONTEST = "choose_contest"

CHOOSE_CONTEST_STEP_ZERO = "zero"
CHOOSE_CONTEST_STEP_CHOICE = "choice"

logger = logging.getLogger(__name__)


def _reply(bot: Any, message: Message, text: str) -> None:
    try:
        bot.msg(message, text)
    except TelegramError as exc:
        logger.error("dialog step error: %s", exc)


def choose_contest_start(bot: Any, message: Message, state: DialogState) -> bool:
    """Offer a keyboard of contests that are open for registration."""
    try:
        contests = bot.storage.get_contests()
    except StorageError as exc:
        logger.error("choose contest: unable to get contests: %s", exc)
        _reply(bot, message, esc("Не удалось найти контесты :("))
        return True

    names = [c.name for c in contests if not (c.hidden or c.closed)]
    if not names:
        _reply(bot, message, "Доступных для регистрации контестов нет")
        return True

    state.dialog_step = CHOOSE_CONTEST_STEP_CHOICE
    try:
        bot.client.send_message(
            message.chat_id,
            "Выберите доступный для регистрации контест.\n"
            "Нажмите на кнопку с названием контеста",
            reply_markup=reply_keyboard(names),
        )
    except TelegramError as exc:
        logger.error("dialog step error: %s", exc)
    return False


def choose_contest_choice(bot: Any, message: Message, state: DialogState) -> bool:
    """Check the chosen contest and hand over to the registration dialog."""
    try:
        bot.client.send_message(message.chat_id, "...", reply_markup=remove_keyboard())
    except TelegramError as exc:
        logger.error("choose contest: unable to remove keyboard: %s", exc)
        _reply(bot, message, esc("Что-то пошло не так :("))
        return True

    try:
        contest = bot.storage.get_contest_by_name(message.text)
    except StorageError as exc:
        logger.error("choose contest: %s", exc)
        _reply(bot, message, esc("Не удалось найти контест с указанным именем :("))
        return True
    if contest.hidden:
        logger.error("choose contest: request of hidden contest %d", contest.id)
        _reply(bot, message, esc("Этот контест больше не существует :("))
        return True
    if contest.closed:
        logger.error("choose contest: request of closed contest %d", contest.id)
        _reply(bot, message, esc("Регистрация на этот контест закрыта :("))
        return True

    participant_id = message.chat_id
    try:
        participation = bot.storage.get_participant_participation(participant_id)
    except StorageError as exc:
        logger.error("choose contest: unable to find participant's contests: %s", exc)
        _reply(bot, message, esc("Что-то пошло не так :("))
        return True
    if any(p.contest_id == contest.id for p in participation):
        logger.info(
            "choose contest: double registration of %d to %d",
            participant_id,
            contest.id,
        )
        _reply(bot, message, "На этот контест уже есть регистрация")
        return True

    state.dialog_type = DIALOG_TYPE_REGISTRATION
    state.dialog_step = REGISTRATION_STEP_ZERO
    state.values = {"contest_id": contest.id}
    bot.process_dialog(message, state)
    return False


CHOOSE_CONTEST_STEPS: dict[str, Callable[[Any, Message, DialogState], bool]] = {
    CHOOSE_CONTEST_STEP_ZERO: choose_contest_start,
    CHOOSE_CONTEST_STEP_CHOICE: choose_contest_choice,
}