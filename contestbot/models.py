"""Records kept by the registration bot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Contest:
    """A contest participants can register for."""

    id: int = 0
    name: str = ""
    description: str = ""
    when: str = ""
    where: str = ""
    closed: bool = False
    hidden: bool = False


@dataclass
class ContestParticipant:
    """One registration of a chat user (or a manually added person) to a contest."""

    id: int = 0
    participant_id: int = 0
    contest_id: int = 0
    name: str = ""
    school: str = ""
    contacts: str = ""
    languages: str = ""
    login: str = ""
    password: str = ""


@dataclass
class DialogState:
    """Where a chat user currently is within a multi-step dialog."""

    participant_id: int = 0
    dialog_type: str = ""
    dialog_step: str = ""
    values: dict[str, Any] = field(default_factory=dict)


@dataclass
class ContestNotification:
    """A message broadcast to the participants of a contest."""

    id: int = 0
    contest_id: int = 0
    message: str = ""