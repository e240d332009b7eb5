import pytest
import responses
import yaml

from contestbot.app import load_config, main


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def write_config(tmp_path, document):
    path = tmp_path / "application.yaml"
    path.write_text(yaml.safe_dump(document), encoding="utf-8")
    return path


def test_defaults_for_empty_file(tmp_path):
    path = tmp_path / "application.yaml"
    path.write_text("", encoding="utf-8")
    web_config, bot_config = load_config(path)
    assert web_config.listen == ":3000"
    assert web_config.debug_templates is False
    assert bot_config.debug is False
    assert bot_config.token == ""


def test_keys_are_case_insensitive(tmp_path):
    path = write_config(
        tmp_path,
        {
            "Web": {"DebugTemplates": True, "Listen": "127.0.0.1:8080"},
            "bot": {"Token": "token", "Debug": True, "UpdateTimeout": 15},
        },
    )
    web_config, bot_config = load_config(path)
    assert web_config.debug_templates is True
    assert web_config.listen == "127.0.0.1:8080"
    assert bot_config.token == "token"
    assert bot_config.debug is True
    assert bot_config.update_timeout == 15


def test_lowercase_and_underscore_keys(tmp_path):
    path = write_config(
        tmp_path, {"web": {"debug_templates": "yes"}, "bot": {"updatetimeout": "45"}}
    )
    web_config, bot_config = load_config(path)
    assert web_config.debug_templates is True
    assert bot_config.update_timeout == 45


def test_unknown_keys_are_ignored(tmp_path):
    path = write_config(tmp_path, {"web": {"colour": "blue"}, "other": {"x": 1}})
    web_config, _ = load_config(path)
    assert web_config.listen == ":3000"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_non_mapping_document_raises(tmp_path):
    path = tmp_path / "application.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_bad_boolean_raises(tmp_path):
    path = write_config(tmp_path, {"bot": {"debug": "maybe"}})
    with pytest.raises(ValueError):
        load_config(path)


def test_bad_integer_raises(tmp_path):
    path = write_config(tmp_path, {"bot": {"update_timeout": "soon"}})
    with pytest.raises(ValueError):
        load_config(path)


def test_main_fails_without_config(tmp_path):
    database = tmp_path / "bot.db"
    status = main(["--config", str(tmp_path / "absent.yaml"), "--database", str(database)])
    assert status == 1
    assert not database.exists()


def test_main_fails_on_bad_listen(tmp_path):
    path = write_config(tmp_path, {"web": {"listen": "nowhere"}, "bot": {"token": "token"}})
    database = tmp_path / "bot.db"
    assert main(["--config", str(path), "--database", str(database)]) == 1
    assert not database.exists()


def test_main_fails_without_token(tmp_path):
    path = write_config(tmp_path, {"web": {"listen": ":3000"}})
    database = tmp_path / "bot.db"
    assert main(["--config", str(path), "--database", str(database)]) == 1
    assert database.exists()


def test_main_fails_when_storage_cannot_open(tmp_path):
    path = write_config(tmp_path, {"bot": {"token": "token"}})
    database = tmp_path / "missing" / "bot.db"
    assert main(["--config", str(path), "--database", str(database)]) == 1


def test_main_fails_when_token_rejected(tmp_path, mocked):
    mocked.add(
        responses.POST,
        "https://api.telegram.org/bottoken/getMe",
        json={"ok": False, "error_code": 401, "description": "Unauthorized"},
        status=401,
    )
    path = write_config(tmp_path, {"bot": {"token": "token"}})
    database = tmp_path / "bot.db"
    assert main(["--config", str(path), "--database", str(database)]) == 1
    assert len(mocked.calls) == 1
    assert database.exists()