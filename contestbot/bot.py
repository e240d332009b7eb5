"""The chat bot: polls for updates and drives commands and dialogs."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from contestbot.choose_contest import CHOOSE_CONTEST_STEPS, DIALOG_TYPE_CHOOSE_CONTEST
from contestbot.commands import process_command
from contestbot.markup import escape_markdown_v2 as esc
from contestbot.models import DialogState
from contestbot.registration import DIALOG_TYPE_REGISTRATION, REGISTRATION_STEPS
from contestbot.storage import NotFoundError, Storage, StorageError
from contestbot.telegram import (
    MODE_MARKDOWN_V2,
    Message,
    TelegramClient,
    TelegramError,
    Update,
)

DEFAULT_UPDATE_TIMEOUT = 30

DIALOGS = {
    DIALOG_TYPE_REGISTRATION: REGISTRATION_STEPS,
    DIALOG_TYPE_CHOOSE_CONTEST: CHOOSE_CONTEST_STEPS,
}

logger = logging.getLogger(__name__)


@dataclass
class BotConfig:
    """Settings of the chat bot."""

    token: str = ""
    debug: bool = False
    update_timeout: int = DEFAULT_UPDATE_TIMEOUT


class RegistrationBot:
    """Answers users' messages and broadcasts contest notifications."""

    def __init__(
        self,
        config: BotConfig,
        storage: Storage,
        client: TelegramClient | None = None,
    ) -> None:
        if not config.token:
            raise ValueError("bot token required")
        if not config.update_timeout:
            config.update_timeout = DEFAULT_UPDATE_TIMEOUT
        self.config = config
        self.storage = storage
        self.client = client if client is not None else TelegramClient(config.token)
        self.client.get_me()
        if config.debug:
            logging.getLogger("contestbot").setLevel(logging.DEBUG)
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Process incoming updates on a background thread."""
        self._stopping.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the polling thread to finish and wait briefly for it."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def _run(self) -> None:
        for update in self.client.iter_updates(self.config.update_timeout):
            if self._stopping.is_set():
                break
            try:
                self.process_update(update)
            except (TelegramError, StorageError) as exc:
                logger.error("update error: %s", exc)

    def send_notifications(self, contest_id: int, text: str) -> threading.Thread | None:
        """Send a notification to every participant of a contest in the background.

        Returns the sending thread, or None when the participants could not be read.
        """
        contest = self.storage.get_contest(contest_id)
        try:
            participants = self.storage.get_contest_participants(contest_id)
        except StorageError:
            return None

        message_text = (
            '*Оповещение участников контеста "' + esc(contest.name) + '"*:\n\n'
            + esc(text)
        )
        recipients = [p.participant_id for p in participants if p.participant_id]

        def deliver() -> None:
            for chat_id in recipients:
                try:
                    self.client.send_message(
                        chat_id, message_text, parse_mode=MODE_MARKDOWN_V2
                    )
                except TelegramError:
                    logger.error(
                        "unable to send contest %d notification to %d",
                        contest_id,
                        chat_id,
                    )

        thread = threading.Thread(target=deliver, daemon=True)
        thread.start()
        return thread

    def process_update(self, update: Update) -> None:
        """Route an update to the user's current dialog or to the commands."""
        message = update.message
        if message is None:
            return
        state = self.storage.get_dialog_state(message.chat_id)
        if state is not None:
            self.process_dialog(message, state)
        else:
            process_command(self, message)

    def _drop_state(self, participant_id: int) -> None:
        try:
            self.storage.delete_dialog_state(participant_id)
        except NotFoundError:
            pass

    def process_dialog(self, message: Message, state: DialogState) -> None:
        """Run the current step of a dialog and store where it got to."""
        steps = DIALOGS.get(state.dialog_type)
        action = steps.get(state.dialog_step) if steps is not None else None
        if action is None:
            if steps is None:
                logger.error("found unknown dialog type: %s", state.dialog_type)
            else:
                logger.error(
                    "found unknown dialog step: %s.%s",
                    state.dialog_type,
                    state.dialog_step,
                )
            try:
                self._drop_state(state.participant_id)
            except StorageError as exc:
                logger.error(
                    "unable to delete dialog state: %d: %s", state.participant_id, exc
                )
            self.msg(message, esc("Произошла ошибка :( Попробуйте еще раз"))
            return

        if message.text == "/cancel":
            try:
                self._drop_state(state.participant_id)
            except StorageError as exc:
                logger.error(
                    "unable to delete dialog state %d: %s", state.participant_id, exc
                )
                self.msg(message, esc("Произошла ошибка :("))
            else:
                self.msg(message, esc("Отменено"))
            return

        try:
            done = action(self, message, state)
        except (TelegramError, StorageError) as exc:
            logger.error("dialog step error: %s", exc)
            done = False

        if done:
            try:
                self._drop_state(state.participant_id)
            except StorageError as exc:
                logger.error(
                    "unable to delete dialog state %d: %s", state.participant_id, exc
                )
                self.msg(message, esc("Произошла ошибка :("))
        else:
            try:
                self.storage.save_dialog_state(state)
            except StorageError as exc:
                logger.error(
                    "unable to save dialog state %d: %s", state.participant_id, exc
                )
                self.msg(
                    message,
                    esc("Не удалось сохранить данные :(\nПопробуйте еще раз"),
                )

    def msg(self, message: Message, text: str) -> None:
        """Reply with MarkdownV2 text in the chat the message came from."""
        self.client.send_message(message.chat_id, text, parse_mode=MODE_MARKDOWN_V2)