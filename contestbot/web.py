"""Administrative web interface for contests, registrations and notifications."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import jinja2
from flask import Flask, Response, abort, redirect, request

from contestbot.models import Contest, ContestNotification, ContestParticipant
from contestbot.storage import Storage

_MAX_UINT64 = 2**64 - 1

logger = logging.getLogger(__name__)


@dataclass
class WebConfig:
    """Settings of the web interface."""

    debug_templates: bool = False
    listen: str = ":3000"
    template_dir: str = "templates"
    assets_dir: str = "assets"


class TemplateRenderer:
    """Renders named templates from a directory, caching them unless in debug mode."""

    def __init__(self, directory: str | os.PathLike[str] = "templates", debug: bool = False) -> None:
        self.debug = debug
        self._environment = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(directory)),
            autoescape=True,
            auto_reload=debug,
            cache_size=0 if debug else 400,
        )

    def render(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render the template ``name`` with the given context."""
        if context is not None and not isinstance(context, Mapping):
            raise TypeError("template context must be a mapping")
        template = self._environment.get_template(name)
        return template.render(dict(context or {}))


def _csv_field(field: str) -> str:
    needs_quotes = bool(field) and (
        field == "\\."
        or any(char in field for char in ';"\r\n')
        or field[0].isspace()
    )
    if needs_quotes:
        return '"' + field.replace('"', '""') + '"'
    return field


def participants_csv(participants: Iterable[ContestParticipant]) -> str:
    """Semicolon separated login, password and name of each participant."""
    rows = [["login", "password", "name"]]
    rows += [[p.login, p.password, p.name] for p in participants]
    return "".join(";".join(_csv_field(f) for f in row) + "\n" for row in rows)


def _uint(value: str | None, name: str) -> int:
    if value is None or value == "":
        return 0
    if not (value.isascii() and value.isdigit()) or int(value) > _MAX_UINT64:
        abort(400, description=f"invalid value of {name}: {value!r}")
    return int(value)


def _http_code(error: Exception) -> int | None:
    code = getattr(error, "code", None)
    if hasattr(error, "get_response") and isinstance(code, int):
        return code
    return None


def create_app(
    config: WebConfig,
    storage: Storage,
    bot: Any,
    renderer: TemplateRenderer | None = None,
) -> Flask:
    """Build the web application serving the administrative pages."""
    if renderer is None:
        renderer = TemplateRenderer(config.template_dir, config.debug_templates)

    app = Flask(
        __name__,
        static_folder=os.path.abspath(config.assets_dir),
        static_url_path="/assets",
    )

    def render(name: str, **context: Any) -> tuple[str, int]:
        return renderer.render(name, context), 200

    def form(key: str) -> str:
        return request.form.get(key, "")

    def find_contest(contest_id: str) -> Contest:
        return storage.get_contest(_uint(contest_id, "id"))

    def find_participant(contest_id: str, participant_id: str) -> ContestParticipant:
        participant = storage.get_contest_participant(
            _uint(participant_id, "participant_id")
        )
        if participant.contest_id != _uint(contest_id, "id"):
            raise ValueError("participant does not belong to contest")
        return participant

    def find_notification(contest_id: str, notification_id: str) -> ContestNotification:
        notification = storage.get_contest_notification(
            _uint(notification_id, "notification_id")
        )
        if notification.contest_id != _uint(contest_id, "id"):
            raise ValueError("notification belongs to other contest")
        return notification

    # Contests ---------------------------------------------------------------

    def contests_get():
        return render("contests.twig", contests=storage.get_contests())

    def contest_new():
        return render("contest.twig", contest=None)

    def contest_get(id: str):
        return render("contest.twig", contest=find_contest(id))

    def contest_save():
        contest_id = _uint(request.form.get("id"), "id")
        name, description = form("name"), form("description")
        where, when = form("where"), form("when")
        if not name:
            raise ValueError("contest name required")
        if not description:
            raise ValueError("contest description required")
        if not where:
            raise ValueError("contest location required")
        if not when:
            raise ValueError("contest date required")

        if contest_id:
            contest = storage.get_contest(contest_id)
            contest.name = name
            contest.description = description
            contest.when = when
            contest.where = where
        else:
            contest = Contest(name=name, description=description, when=when, where=where)
        storage.save_contest(contest)
        return redirect("/", 302)

    def update_contest(contest_id: str, **changes: bool):
        contest = find_contest(contest_id)
        for key, value in changes.items():
            setattr(contest, key, value)
        storage.save_contest(contest)
        return redirect("/", 302)

    def contest_hide(id: str):
        return update_contest(id, hidden=True)

    def contest_show(id: str):
        return update_contest(id, hidden=False)

    def contest_close(id: str):
        return update_contest(id, closed=True)

    def contest_open(id: str):
        return update_contest(id, closed=False)

    # Participants -----------------------------------------------------------

    def participants_list(id: str):
        contest = find_contest(id)
        return render(
            "participants.twig",
            contest=contest,
            participants=storage.get_contest_participants(contest.id),
        )

    def participants_export(id: str):
        contest = find_contest(id)
        body = participants_csv(storage.get_contest_participants(contest.id))
        response = Response(body, status=200, content_type="text/csv")
        response.headers["Content-Disposition"] = 'attachment; filename="participants.csv"'
        return response

    def participant_new(id: str):
        return render("participant.twig", contest=find_contest(id), participant=None)

    def participant_edit(id: str, participant_id: str):
        contest = find_contest(id)
        participant = find_participant(id, participant_id)
        return render("participant.twig", contest=contest, participant=participant)

    def participant_save(id: str):
        contest = find_contest(id)
        record_id = _uint(request.form.get("participant_id"), "participant_id")
        if not form("name"):
            raise ValueError("participant name required")
        fields = {
            key: form(key)
            for key in ("name", "school", "contacts", "languages", "login", "password")
        }
        if record_id:
            participant = storage.get_contest_participant(record_id)
            if participant.contest_id != contest.id:
                raise ValueError("participant does not belong to contest")
            for key, value in fields.items():
                setattr(participant, key, value)
        else:
            participant = ContestParticipant(contest_id=contest.id, **fields)
        storage.save_contest_participant(participant)
        return redirect(f"/contest/{contest.id}/participants", 302)

    def participant_delete(id: str, participant_id: str):
        participant = find_participant(id, participant_id)
        storage.delete_contest_participant(participant.id)
        return redirect(f"/contest/{participant.contest_id}/participants", 302)

    # Notifications ----------------------------------------------------------

    def contest_notifications(id: str):
        contest = find_contest(id)
        return render(
            "notifications.twig",
            contest=contest,
            notifications=storage.get_contest_notifications(contest.id),
        )

    def contest_notification_new(id: str):
        return render("notification.twig", contest=find_contest(id), notification=None)

    def contest_notification_edit(id: str, notification_id: str):
        contest = find_contest(id)
        notification = find_notification(id, notification_id)
        return render("notification.twig", contest=contest, notification=notification)

    def contest_notification_save(id: str):
        contest = find_contest(id)
        record_id = _uint(request.form.get("notification_id"), "notification_id")
        text = form("message")
        if not text:
            raise ValueError("notification message required")
        if record_id:
            notification = storage.get_contest_notification(record_id)
            if notification.contest_id != contest.id:
                raise ValueError("notification belongs to other contest")
            notification.message = text
        else:
            notification = ContestNotification(contest_id=contest.id, message=text)
        storage.save_contest_notification(notification)
        bot.send_notifications(contest.id, notification.message)
        return redirect(f"/contest/{contest.id}/notifications", 302)

    def contest_notification_delete(id: str, notification_id: str):
        contest = find_contest(id)
        notification = find_notification(id, notification_id)
        storage.delete_contest_notification(notification.id)
        return redirect(f"/contest/{contest.id}/notifications", 302)

    # Errors -----------------------------------------------------------------

    def handle_error(error: Exception):
        code = _http_code(error) or 500
        logger.error(
            "http error: %s, method=%s, url=%s", error, request.method, request.url
        )
        try:
            body = renderer.render("error.twig", {"error": error})
        except Exception as exc:  # the error page itself must never fail the request
            logger.error("error page render error: %s", exc)
            body = ""
        return body, code

    routes = [
        ("/", "GET", contests_get),
        ("/contest", "GET", contest_new),
        ("/contest/<id>", "GET", contest_get),
        ("/contest", "POST", contest_save),
        ("/contest/<id>/hide", "POST", contest_hide),
        ("/contest/<id>/show", "POST", contest_show),
        ("/contest/<id>/close", "POST", contest_close),
        ("/contest/<id>/open", "POST", contest_open),
        ("/contest/<id>/participants", "GET", participants_list),
        ("/contest/<id>/participants/export", "GET", participants_export),
        ("/contest/<id>/participant", "GET", participant_new),
        ("/contest/<id>/participant/<participant_id>", "GET", participant_edit),
        ("/contest/<id>/participant", "POST", participant_save),
        ("/contest/<id>/participant/<participant_id>/delete", "POST", participant_delete),
        ("/contest/<id>/notifications", "GET", contest_notifications),
        ("/contest/<id>/notification", "GET", contest_notification_new),
        ("/contest/<id>/notification/<notification_id>", "GET", contest_notification_edit),
        ("/contest/<id>/notification", "POST", contest_notification_save),
        (
            "/contest/<id>/notification/<notification_id>/delete",
            "POST",
            contest_notification_delete,
        ),
    ]
    for rule, method, view in routes:
        app.add_url_rule(rule, endpoint=view.__name__, view_func=view, methods=[method])
    app.register_error_handler(Exception, handle_error)
    return app