"""Persistent storage of contests, registrations, notifications and dialogs."""

from __future__ import annotations

import json
import random
import sqlite3
import threading
from dataclasses import asdict
from os import PathLike
from typing import Any, TypeVar

from contestbot.models import (
    Contest,
    ContestNotification,
    ContestParticipant,
    DialogState,
)

_VOWELS = "euioa"
_CONSONANTS = "qrtpsdghkzxvbnm"

_CONTESTS = "contests"
_PARTICIPANTS = "participants"
_NOTIFICATIONS = "notifications"
_DIALOG_STATES = "dialog_states"

_Record = TypeVar("_Record", Contest, ContestParticipant, ContestNotification)


class StorageError(Exception):
    """Raised when the storage cannot perform an operation."""


class NotFoundError(StorageError):
    """Raised when a requested record does not exist."""


def generate_random_string(length: int, rng: Any = None) -> str:
    """Build a pronounceable string of alternating consonants and vowels."""
    chooser = rng if rng is not None else random
    chars: list[str] = []
    for i in range(0, length, 2):
        chars.append(chooser.choice(_CONSONANTS))
        if i != length - 1:
            chars.append(chooser.choice(_VOWELS))
    return "".join(chars)


class Storage:
    """A small record store backed by an SQLite file, safe to share between threads."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self._lock = threading.RLock()
        self._connection: sqlite3.Connection | None = sqlite3.connect(
            str(path), check_same_thread=False
        )
        with self._lock, self._connection:
            for table in (_CONTESTS, _PARTICIPANTS, _NOTIFICATIONS):
                self._connection.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} "
                    "(id INTEGER PRIMARY KEY AUTOINCREMENT, data TEXT NOT NULL)"
                )
            self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {_DIALOG_STATES} "
                "(participant_id INTEGER PRIMARY KEY, data TEXT NOT NULL)"
            )

    def close(self) -> None:
        """Close the underlying database."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError("storage is closed")
        return self._connection

    # Generic record handling -------------------------------------------------

    def _load_all(self, table: str, cls: type[_Record]) -> list[_Record]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT id, data FROM {table} ORDER BY id"
            ).fetchall()
        return [cls(id=row_id, **json.loads(data)) for row_id, data in rows]

    def _load_one(self, table: str, cls: type[_Record], key: int) -> _Record:
        with self._lock:
            row = self._conn.execute(
                f"SELECT id, data FROM {table} WHERE id = ?", (key,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"{cls.__name__} {key} not found")
        return cls(id=row[0], **json.loads(row[1]))

    @staticmethod
    def _encode(record: Any) -> str:
        fields = asdict(record)
        fields.pop("id", None)
        return json.dumps(fields)

    def _save(self, table: str, record: Any) -> None:
        data = self._encode(record)
        with self._lock, self._conn as conn:
            if record.id:
                cursor = conn.execute(
                    f"UPDATE {table} SET data = ? WHERE id = ?", (data, record.id)
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(
                        f"{type(record).__name__} {record.id} not found"
                    )
            else:
                cursor = conn.execute(
                    f"INSERT INTO {table} (data) VALUES (?)", (data,)
                )
                record.id = cursor.lastrowid

    def _delete(self, table: str, key: int, kind: str, column: str = "id") -> None:
        with self._lock, self._conn as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE {column} = ?", (key,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"{kind} {key} not found")

    # Contests ----------------------------------------------------------------

    def get_contests(self) -> list[Contest]:
        """All contests, ordered by id."""
        return self._load_all(_CONTESTS, Contest)

    def get_contest(self, contest_id: int) -> Contest:
        """One contest by id."""
        return self._load_one(_CONTESTS, Contest, contest_id)

    def get_contest_by_name(self, name: str) -> Contest:
        """The first contest (by id) with exactly the given name."""
        for contest in self.get_contests():
            if contest.name == name:
                return contest
        raise NotFoundError(f"contest named {name!r} not found")

    def save_contest(self, contest: Contest) -> None:
        """Insert a new contest (assigning its id) or update an existing one."""
        self._save(_CONTESTS, contest)

    # Participants ------------------------------------------------------------

    def get_contest_participants(self, contest_id: int) -> list[ContestParticipant]:
        """Registrations for one contest, ordered by id."""
        return [
            participant
            for participant in self._load_all(_PARTICIPANTS, ContestParticipant)
            if participant.contest_id == contest_id
        ]

    def get_participant_participation(
        self, participant_id: int
    ) -> list[ContestParticipant]:
        """All registrations made by one chat user."""
        return [
            participant
            for participant in self._load_all(_PARTICIPANTS, ContestParticipant)
            if participant.participant_id == participant_id
        ]

    def get_contest_participant(self, participant_id: int) -> ContestParticipant:
        """One registration by its record id."""
        return self._load_one(_PARTICIPANTS, ContestParticipant, participant_id)

    def save_contest_participant(self, participant: ContestParticipant) -> None:
        """Insert or update a registration, generating missing credentials."""
        if not participant.login:
            participant.login = "p_" + generate_random_string(5)
        if not participant.password:
            participant.password = generate_random_string(10)
        self._save(_PARTICIPANTS, participant)

    def delete_contest_participant(self, participant_id: int) -> None:
        """Remove one registration by its record id."""
        self._delete(_PARTICIPANTS, participant_id, "ContestParticipant")

    # Dialog states -----------------------------------------------------------

    def get_dialog_state(self, participant_id: int) -> DialogState | None:
        """The user's current dialog state, or None when there is none."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT data FROM {_DIALOG_STATES} WHERE participant_id = ?",
                (participant_id,),
            ).fetchone()
        if row is None:
            return None
        return DialogState(participant_id=participant_id, **json.loads(row[0]))

    def save_dialog_state(self, state: DialogState) -> None:
        """Create or replace the dialog state of a user."""
        if not state.participant_id:
            raise StorageError("saving dialog state with empty participant_id")
        if not state.dialog_type:
            raise StorageError("saving dialog state with empty dialog_type")
        if not state.dialog_step:
            raise StorageError("saving dialog state with empty dialog_step")
        data = json.dumps(
            {
                "dialog_type": state.dialog_type,
                "dialog_step": state.dialog_step,
                "values": state.values,
            }
        )
        with self._lock, self._conn as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {_DIALOG_STATES} (participant_id, data) "
                "VALUES (?, ?)",
                (state.participant_id, data),
            )

    def delete_dialog_state(self, participant_id: int) -> None:
        """Remove the dialog state of a user."""
        self._delete(
            _DIALOG_STATES, participant_id, "DialogState", column="participant_id"
        )

    # Notifications -----------------------------------------------------------

    def get_contest_notifications(self, contest_id: int) -> list[ContestNotification]:
        """Notifications of one contest, ordered by id."""
        return [
            notification
            for notification in self._load_all(_NOTIFICATIONS, ContestNotification)
            if notification.contest_id == contest_id
        ]

    def get_contest_notification(self, notification_id: int) -> ContestNotification:
        """One notification by id."""
        return self._load_one(_NOTIFICATIONS, ContestNotification, notification_id)

    def save_contest_notification(self, notification: ContestNotification) -> None:
        """Insert a new notification (assigning its id) or update an existing one."""
        self._save(_NOTIFICATIONS, notification)

    def delete_contest_notification(self, notification_id: int) -> None:
        """Remove one notification."""
        self._delete(_NOTIFICATIONS, notification_id, "ContestNotification")