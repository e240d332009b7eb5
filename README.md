# contestbot

A Telegram bot that registers participants for programming contests, together
with a small web panel where organisers manage contests, participants and
notifications.

## What it does

Participants talk to the bot in Telegram (the bot's replies are in Russian):

- `/start` – greeting
- `/help` – list of commands
- `/contests` – every contest that is not hidden, with the participant's own
  registration details (name, school, login, password) and the notifications
  of contests they are registered for
- `/registration` – pick a contest that is neither hidden nor closed from a
  reply keyboard, then answer four questions (full name, school, contacts,
  preferred languages); a login (`p_` followed by five letters) and a
  ten-letter password are generated at the end. Registering twice for the
  same contest is refused.
- `/cancel` – abandon the current dialog at any step

Answers are stripped of surrounding whitespace and cut to 100 characters
(name, contacts) or 200 characters (school, languages).

Organisers use the web panel to:

- create and edit contests, open or close registration, hide or show them
- list, add, edit and delete participants, and export them from
  `/contest/<id>/participants/export` as a semicolon-separated CSV file with
  the header `login;password;name`
- write notifications; saving one stores it and sends it through the bot to
  every participant of the contest who registered via Telegram

Any error in the panel is logged and answered with the `error.twig` page,
with the HTTP status of the error or 500.

## Installation

```
pip install .
```

## Configuration

The `contestbot` command reads `application.yaml` from the current directory:

```yaml
bot:
  token: token
  debug: false
  updatetimeout: 30

web:
  listen: ":3000"
  debugtemplates: false
  templatedir: templates
  assetsdir: assets
```

Keys are matched without regard to case, underscores or hyphens
(`update_timeout` and `UpdateTimeout` work too); unknown keys are ignored and
missing ones keep the defaults shown above.

- `bot.token` is required; the bot checks it against Telegram at start-up.
- `bot.debug` turns on debug logging of the `contestbot` loggers.
- `bot.updatetimeout` is the long-polling timeout in seconds (0 means 30).
- `web.listen` is `host:port`; an empty host listens on all interfaces.
- `web.debugtemplates` makes templates reload from disk instead of being
  cached.
- `web.templatedir` and `web.assetsdir` name the template directory and the
  directory served under `/assets`.

## Running

```
contestbot [--config application.yaml] [--database data/bolt.db]
```

This opens the storage (an SQLite database file, `data/bolt.db` by default;
its directory must exist), starts polling Telegram for updates on a background
thread and serves the web panel on the configured address. Log messages go to
standard output. The command exits with status 1 if the configuration,
storage or bot cannot be set up.

## Using it as a library

The parts can be put together by hand:

```python
from contestbot.storage import Storage
from contestbot.telegram import TelegramClient
from contestbot.bot import BotConfig, RegistrationBot
from contestbot.web import WebConfig, TemplateRenderer, create_app

with Storage("data/bolt.db") as storage:
    config = BotConfig(token="token")
    bot = RegistrationBot(config, storage, TelegramClient(config.token))
    bot.start()
    app = create_app(WebConfig(), storage, bot, TemplateRenderer("templates"))
    app.run(port=3000)
```

Modules:

- `contestbot.models` – `Contest`, `ContestParticipant`, `DialogState`,
  `ContestNotification`
- `contestbot.storage` – `Storage`, `StorageError`, `NotFoundError`,
  `generate_random_string`
- `contestbot.telegram` – `TelegramClient`, `Message`, `Update`,
  `TelegramError`, `reply_keyboard`, `remove_keyboard`
- `contestbot.markup` – `escape_markdown_v2`, `trim`
- `contestbot.commands`, `contestbot.choose_contest`,
  `contestbot.registration` – command handlers and dialog steps
- `contestbot.bot` – `BotConfig`, `RegistrationBot`
- `contestbot.web` – `WebConfig`, `TemplateRenderer`, `participants_csv`,
  `create_app`
- `contestbot.app` – `load_config`, `main`

## What it does not include

The package ships no HTML templates and no static assets. The web panel
renders `contests.twig`, `contest.twig`, `participants.twig`,
`participant.twig`, `notifications.twig`, `notification.twig` and
`error.twig` (Jinja2, with autoescaping) from the template directory, which
you have to provide; without them every page answers with an error. The panel
has no authentication of its own.

## Tests

```
pip install .[test]
pytest
```