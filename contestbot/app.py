"""Command that starts the chat bot together with its administrative web interface."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sqlite3
import sys
from os import PathLike
from typing import Any, Mapping, TypeVar

import yaml

from contestbot.bot import BotConfig, RegistrationBot
from contestbot.storage import Storage, StorageError
from contestbot.telegram import TelegramError
from contestbot.web import WebConfig, create_app

DEFAULT_CONFIG = "application.yaml"
DEFAULT_DATABASE = "data/bolt.db"

_TRUE = {"true", "t", "1", "yes", "y", "on"}
_FALSE = {"false", "f", "0", "no", "n", "off", ""}

_Config = TypeVar("_Config", WebConfig, BotConfig)

logger = logging.getLogger(__name__)


def _normalise(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


def _coerce(value: Any, default: Any, key: str) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value != 0
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        raise ValueError(f"{key}: expected a boolean, got {value!r}")
    if isinstance(default, int):
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    if isinstance(value, (dict, list)):
        raise ValueError(f"{key}: expected a string, got {value!r}")
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _section(cls: type[_Config], data: Any, name: str) -> _Config:
    config = cls()
    if data is None:
        return config
    if not isinstance(data, Mapping):
        raise ValueError(f"{name}: expected a mapping, got {data!r}")
    by_key = {_normalise(f.name): f.name for f in dataclasses.fields(cls)}
    changes: dict[str, Any] = {}
    for key, value in data.items():
        field_name = by_key.get(_normalise(str(key)))
        if field_name is None:
            continue
        default = getattr(config, field_name)
        changes[field_name] = _coerce(value, default, f"{name}.{key}")
    return dataclasses.replace(config, **changes)


def load_config(path: str | PathLike[str] = DEFAULT_CONFIG) -> tuple[WebConfig, BotConfig]:
    """Read the web and bot settings from a YAML file.

    Keys are matched case-insensitively; unknown keys are ignored and missing
    ones keep their defaults.
    """
    with open(path, encoding="utf-8") as stream:
        document = yaml.safe_load(stream)
    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ValueError("configuration must be a mapping")
    sections = {_normalise(str(key)): value for key, value in document.items()}
    web_config = _section(WebConfig, sections.get("web"), "web")
    bot_config = _section(BotConfig, sections.get("bot"), "bot")
    return web_config, bot_config


def _parse_listen(listen: str) -> tuple[str, int]:
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address: {listen!r}")
    host = host.strip("[]") or "0.0.0.0"
    number = int(port)
    if number > 65535:
        raise ValueError(f"invalid listen port: {listen!r}")
    return host, number


def _setup_logging() -> logging.Handler:
    """Send INFO and above from every logger to standard output; return the handler."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return handler


def main(argv: list[str] | None = None) -> int:
    """Start the bot and serve the web interface; returns the exit status."""
    parser = argparse.ArgumentParser(
        prog="contestbot",
        description="Contest registration chat bot with an administrative web interface.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="YAML configuration file")
    parser.add_argument("--database", default=DEFAULT_DATABASE, help="database file")
    args = parser.parse_args(argv)

    _setup_logging()

    try:
        web_config, bot_config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.critical("Unable to read config file: %s", exc)
        return 1

    try:
        host, port = _parse_listen(web_config.listen)
    except ValueError as exc:
        logger.critical("Unable to read web configuration: %s", exc)
        return 1

    try:
        storage = Storage(args.database)
    except (sqlite3.Error, OSError, StorageError) as exc:
        logger.critical("unable to open storage: %s", exc)
        return 1

    with storage:
        try:
            registration_bot = RegistrationBot(bot_config, storage)
        except (ValueError, TelegramError) as exc:
            logger.critical("unable to create bot: %s", exc)
            return 1
        registration_bot.start()
        try:
            app = create_app(web_config, storage, registration_bot)
            app.run(host=host, port=port)
        except OSError as exc:
            logger.critical("web server error: %s", exc)
            return 1
        finally:
            registration_bot.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())