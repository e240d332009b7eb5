"""Handlers of the commands a user can send outside of a dialog."""

from __future__ import annotations

import logging
from typing import Any

from contestbot.choose_contest import CHOOSE_CONTEST_STEP_ZERO, DIALOG_TYPE_CHOOSE_CONTEST
from contestbot.markup import escape_markdown_v2 as esc
from contestbot.models import Contest, ContestParticipant, DialogState
from contestbot.storage import StorageError
from contestbot.telegram import Message

logger = logging.getLogger(__name__)


def process_command(bot: Any, message: Message) -> None:
    """Dispatch a message to the handler of the command it carries."""
    if not message.is_command():
        bot.msg(message, esc("Пожалуйста, введите команду. Для справки введите /help"))
        return
    handler = _COMMANDS.get(message.command())
    if handler is None:
        bot.msg(message, esc("Не знаю такой команды :("))
        return
    handler(bot, message)


def command_start(bot: Any, message: Message) -> None:
    """Greet a user who has just started the bot."""
    bot.msg(
        message,
        esc("Этот бот поможет зарегистрироваться на олимпиаду. Для справки введите /help"),
    )


def command_help(bot: Any, message: Message) -> None:
    """List the available commands."""
    text = (
        esc("Этот бот поможет зарегистрироваться на контест. Доступные команды:\n")
        + esc("/help - справка\n")
        + esc("/contests - список контестов и сведения о регистрации\n")
        + esc("/registration - регистрация на контест\n")
    )
    bot.msg(message, text)


def _describe(
    bot: Any, contest: Contest, participant: ContestParticipant | None
) -> str:
    lines = [
        "",
        "*" + esc(contest.name) + "*",
        "*Что:* " + esc(contest.description),
        "*Где:* " + esc(contest.where),
        "*Когда:* " + esc(contest.when),
    ]
    if contest.closed:
        lines.append("_Регистрация на контест закрыта_")
    if participant is not None:
        lines += [
            "_Есть регистрация на контест_",
            "*Имя:* " + esc(participant.name),
            "*Школа/ВУЗ:* " + esc(participant.school),
            "*Логин:* `" + esc(participant.login) + "`",
            "*Пароль:* `" + esc(participant.password) + "`",
        ]
        try:
            notifications = bot.storage.get_contest_notifications(contest.id)
        except StorageError as exc:
            logger.error(
                "/contest: unable to get notifications of contest %d: %s",
                contest.id,
                exc,
            )
        else:
            if notifications:
                lines.append("_Оповещения участников:_")
                lines += [esc(">>> " + n.message) for n in notifications]
    return "\n".join(lines) + "\n"


def command_contests(bot: Any, message: Message) -> None:
    """Describe every visible contest and the user's registrations."""
    try:
        contests = bot.storage.get_contests()
    except StorageError as exc:
        logger.error("/contests: unable to get contests: %s", exc)
        bot.msg(message, esc("Не удалось найти контесты :("))
        return
    try:
        participation = bot.storage.get_participant_participation(message.chat_id)
    except StorageError as exc:
        logger.error("/contests: unable to get participation: %s", exc)
        bot.msg(message, esc("Не удалось найти регистрации на контесты :("))
        return

    registered = {p.contest_id: p for p in participation}
    visible = [contest for contest in contests if not contest.hidden]
    if not visible:
        bot.msg(message, "Сейчас контестов нет")
        return

    text = "Найдены контесты:\n" + "".join(
        _describe(bot, contest, registered.get(contest.id)) for contest in visible
    )
    bot.msg(message, text)


def command_registration(bot: Any, message: Message) -> None:
    """Begin the dialog in which the user picks a contest."""
    state = DialogState(
        participant_id=message.chat_id,
        dialog_type=DIALOG_TYPE_CHOOSE_CONTEST,
        dialog_step=CHOOSE_CONTEST_STEP_ZERO,
    )
    bot.process_dialog(message, state)


_COMMANDS = {
    "start": command_start,
    "help": command_help,
    "contests": command_contests,
    "registration": command_registration,
}