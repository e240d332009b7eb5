"""Steps of the dialog that collects a participant's registration data."""

from __future__ import annotations

import logging
from typing import Any, Callable

from contestbot.markup import escape_markdown_v2 as esc
from contestbot.markup import trim
from contestbot.models import ContestParticipant, DialogState
from contestbot.storage import StorageError
from contestbot.telegram import Message, TelegramError

DIALOG_TYPE_REGISTRATION = "registration"

REGISTRATION_STEP_ZERO = "zero"
REGISTRATION_STEP_NAME = "name"
REGISTRATION_STEP_SCHOOL = "school"
REGISTRATION_STEP_CONTACTS = "contacts"
REGISTRATION_STEP_LANGUAGES = "languages"

logger = logging.getLogger(__name__)


def _reply(bot: Any, message: Message, text: str) -> bool:
    """Send a reply; report whether it went out."""
    try:
        bot.msg(message, text)
    except TelegramError as exc:
        logger.error("dialog step error: %s", exc)
        return False
    return True


def _prompt(question: str, example: str) -> str:
    return esc(question) + "_" + esc(example) + "_"


def registration_start(bot: Any, message: Message, state: DialogState) -> bool:
    """Explain the registration and ask for the full name."""
    text = (
        esc("Начинаем регистрацию на контест.\n")
        + esc("Чтобы отменить регистрацию, в любой момент введите /cancel\n\n")
        + _prompt(
            "Введите Ваши фамилию, имя и отчество\n",
            "например: Иванов Иван Иванович",
        )
    )
    if _reply(bot, message, text):
        state.dialog_step = REGISTRATION_STEP_NAME
    return False


def registration_name(bot: Any, message: Message, state: DialogState) -> bool:
    """Store the name and ask for the school."""
    name = trim(message.text, 100)
    if not name:
        _reply(bot, message, esc("Попробуйте ввести ФИО еще раз"))
        return False
    text = _prompt(
        "Введите название Вашей школы или ВУЗа, а также класс (или курс и группу)\n",
        "например: ПсковГУ, 1 курс, группа 081-0902",
    )
    if _reply(bot, message, text):
        state.values["name"] = name
        state.dialog_step = REGISTRATION_STEP_SCHOOL
    return False


def registration_school(bot: Any, message: Message, state: DialogState) -> bool:
    """Store the school and ask for contacts."""
    school = trim(message.text, 200)
    if not school:
        _reply(
            bot,
            message,
            esc("Попробуйте ввести название образовательной организации еще раз"),
        )
        return False
    text = _prompt(
        "Введите Ваши контактные данные, например номер телефона и адрес "
        "электронной почты, либо напишите, как в Вами можно связаться\n",
        "например: [phone], mail@example.com",
    )
    if _reply(bot, message, text):
        state.values["school"] = school
        state.dialog_step = REGISTRATION_STEP_CONTACTS
    return False


def registration_contacts(bot: Any, message: Message, state: DialogState) -> bool:
    """Store the contacts and ask for preferred languages."""
    contacts = trim(message.text, 100)
    if not contacts:
        _reply(bot, message, esc("Попробуйте ввести контакты еще раз"))
        return False
    text = _prompt(
        "И последний вопрос, какие предпочитаете языки и среды программирования\n",
        "например: C++, Visual Studio",
    )
    if _reply(bot, message, text):
        state.values["contacts"] = contacts
        state.dialog_step = REGISTRATION_STEP_LANGUAGES
    return False


def registration_languages(bot: Any, message: Message, state: DialogState) -> bool:
    """Store the registration and report the generated credentials."""
    participant = ContestParticipant(
        participant_id=state.participant_id,
        contest_id=state.values["contest_id"],
        name=state.values["name"],
        school=state.values["school"],
        contacts=state.values["contacts"],
        languages=trim(message.text, 200),
    )
    try:
        bot.storage.save_contest_participant(participant)
    except StorageError as exc:
        logger.error("registration: unable to save contest participant: %s", exc)
        _reply(
            bot,
            message,
            esc("Не удалось зарегистрироваться на контест. Попробуйте еще раз"),
        )
        return True
    text = (
        esc("Спасибо за ответы. Регистрация завершена :)\n")
        + "*Логин:* `" + esc(participant.login) + "`\n"
        + "*Пароль:* `" + esc(participant.password) + "`\n\n"
        + "Посмотреть сведения о контесте и проверить регистрационные данные "
        "можно через команду /contests"
    )
    _reply(bot, message, text)
    return True


REGISTRATION_STEPS: dict[str, Callable[[Any, Message, DialogState], bool]] = {
    REGISTRATION_STEP_ZERO: registration_start,
    REGISTRATION_STEP_NAME: registration_name,
    REGISTRATION_STEP_SCHOOL: registration_school,
    REGISTRATION_STEP_CONTACTS: registration_contacts,
    REGISTRATION_STEP_LANGUAGES: registration_languages,
}