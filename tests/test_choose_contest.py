import pytest

from contestbot.choose_contest import choose_contest_choice, choose_contest_start
from contestbot.models import Contest, ContestParticipant, DialogState
from contestbot.storage import Storage
from contestbot.telegram import Message, TelegramError, remove_keyboard, reply_keyboard


class FakeClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_message(self, chat_id, text, parse_mode=None, reply_markup=None):
        if self.fail:
            raise TelegramError("send failed")
        self.sent.append({"chat_id": chat_id, "text": text, "reply_markup": reply_markup})
        return Message(chat_id=chat_id, text=text)


class FakeBot:
    def __init__(self, storage, client_fail=False):
        self.storage = storage
        self.client = FakeClient(client_fail)
        self.replies = []
        self.dialogs = []

    def msg(self, message, text):
        self.replies.append(text)

    def process_dialog(self, message, state):
        self.dialogs.append((state.dialog_type, state.dialog_step, dict(state.values)))


@pytest.fixture
def storage(tmp_path):
    with Storage(tmp_path / "bot.db") as store:
        yield store


def _add(storage, name, **flags):
    contest = Contest(name=name, description="d", when="w", where="x", **flags)
    storage.save_contest(contest)
    return contest


def _state(step):
    return DialogState(participant_id=42, dialog_type="choose_contest", dialog_step=step)


def test_start_without_contests(storage):
    bot = FakeBot(storage)
    assert choose_contest_start(bot, Message(chat_id=42), _state("zero")) is True
    assert bot.replies == ["Доступных для регистрации контестов нет"]


def test_start_offers_only_open_visible(storage):
    _add(storage, "Open")
    _add(storage, "Hidden", hidden=True)
    _add(storage, "Closed", closed=True)
    bot = FakeBot(storage)
    state = _state("zero")
    assert choose_contest_start(bot, Message(chat_id=42), state) is False
    assert state.dialog_step == "choice"
    assert bot.client.sent[0]["reply_markup"] == reply_keyboard(["Open"])


def test_start_storage_failure(tmp_path):
    store = Storage(tmp_path / "bot.db")
    store.close()
    bot = FakeBot(store)
    assert choose_contest_start(bot, Message(chat_id=42), _state("zero")) is True
    assert "Не удалось найти контесты" in bot.replies[0]


def test_choice_unknown_contest(storage):
    bot = FakeBot(storage)
    assert choose_contest_choice(bot, Message(chat_id=42, text="Nope"), _state("choice")) is True
    assert bot.client.sent[0]["reply_markup"] == remove_keyboard()
    assert "Не удалось найти контест с указанным именем" in bot.replies[0]


@pytest.mark.parametrize(
    "flags, fragment",
    [
        ({"hidden": True}, "Этот контест больше не существует"),
        ({"closed": True}, "Регистрация на этот контест закрыта"),
    ],
)
def test_choice_unavailable_contest(storage, flags, fragment):
    _add(storage, "Cup", **flags)
    bot = FakeBot(storage)
    assert choose_contest_choice(bot, Message(chat_id=42, text="Cup"), _state("choice")) is True
    assert fragment in bot.replies[0]
    assert bot.dialogs == []


def test_choice_double_registration(storage):
    contest = _add(storage, "Cup")
    storage.save_contest_participant(
        ContestParticipant(participant_id=42, contest_id=contest.id, name="n")
    )
    bot = FakeBot(storage)
    assert choose_contest_choice(bot, Message(chat_id=42, text="Cup"), _state("choice")) is True
    assert bot.replies == ["На этот контест уже есть регистрация"]


def test_choice_keyboard_removal_failure(storage):
    _add(storage, "Cup")
    bot = FakeBot(storage, client_fail=True)
    assert choose_contest_choice(bot, Message(chat_id=42, text="Cup"), _state("choice")) is True
    assert "Что-то пошло не так" in bot.replies[0]


def test_choice_starts_registration(storage):
    contest = _add(storage, "Cup")
    bot = FakeBot(storage)
    state = _state("choice")
    assert choose_contest_choice(bot, Message(chat_id=42, text="Cup"), state) is False
    assert state.dialog_type == "registration"
    assert state.dialog_step == "zero"
    assert state.values == {"contest_id": contest.id}
    assert bot.dialogs == [("registration", "zero", {"contest_id": contest.id})]