import pytest

from deckcord.config import (
    SETTINGS_SCHEMA,
    ConfigField,
    ConfigItems,
    Configuration,
    _find_similar_key,
    load_config,
    validate_config,
)
from deckcord.constants import DEFAULT_POLL_INTERVAL, DEFAULT_TITLE
from deckcord.models import ConfigError


def test_config_access(test_logger):
    conf = Configuration({"a": 1, "b": "test"}, logger=test_logger)
    assert conf["a"] == 1
    assert conf.get("b") == "test"
    assert conf.get("c", 3) == 3


def test_schema_defaults(test_logger):
    conf = Configuration({"title": "Chat"}, logger=test_logger, schema=SETTINGS_SCHEMA)
    assert conf.get_str("title") == "Chat"
    assert conf.get_float("poll_interval") == DEFAULT_POLL_INTERVAL
    assert conf.get_int("focus_attempts") == 20
    assert conf.get_float("key_timeout") == 30.0
    assert conf.get_bool("show_titles") is True
    assert conf.get("launcher") is None
    assert conf.get_list("launcher_args") is None


def test_get_bool(test_logger):
    conf = Configuration(
        {"t1": True, "t2": "yes", "t3": "1", "f1": False, "f2": "off", "f3": "0", "empty": "", "other": "foo"},
        logger=test_logger,
    )
    assert conf.get_bool("t1") is True
    assert conf.get_bool("t2") is True
    assert conf.get_bool("t3") is True

    assert conf.get_bool("f1") is False
    assert conf.get_bool("f2") is False
    assert conf.get_bool("f3") is False

    # Non-empty unrecognized strings are truthy
    assert conf.get_bool("other") is True
    assert conf.get_bool("empty") is False
    assert conf.get_bool("missing", default=True) is True


def test_get_numbers(test_logger):
    conf = Configuration({"a": 1, "b": "2", "c": "invalid", "d": 1.5}, logger=test_logger)
    assert conf.get_int("a") == 1
    assert conf.get_int("b") == 2
    assert conf.get_int("c", default=10) == 10
    assert conf.get_float("d") == 1.5
    assert conf.get_float("c", default=0.5) == 0.5
    assert conf.get_float("missing", default=5.5) == 5.5


def test_get_list(test_logger):
    conf = Configuration({"args": ["--processStart", "Discord.exe"], "line": "-a  -b"}, logger=test_logger)
    assert conf.get_list("args") == ["--processStart", "Discord.exe"]
    assert conf.get_list("line") == ["-a", "-b"]
    assert conf.get_list("missing", []) == []


def test_config_items_lookup():
    items = ConfigItems(ConfigField("a", int, default=1), ConfigField("b"))
    assert items.get("a").default == 1
    assert items.get("b").field_type is str
    assert items.get("c") is None
    assert items.names == ["a", "b"]
    assert ConfigField("x", (int, float)).type_name == "int or float"


def test_find_similar_key():
    assert _find_similar_key("poll_intervall", SETTINGS_SCHEMA.names) == "poll_interval"
    assert _find_similar_key("focus_atempts", SETTINGS_SCHEMA.names) == "focus_attempts"
    assert _find_similar_key("zzzz", SETTINGS_SCHEMA.names) is None


def test_validate_config():
    assert validate_config({"title": "Chat", "poll_interval": 2, "focus_delay": 0.5, "launcher_args": ["-a"]}) == []

    errors = validate_config({"poll_intervall": 2})
    assert errors == ["Unknown option 'poll_intervall', did you mean 'poll_interval'?"]

    assert validate_config({"zzzz": 1}) == ["Unknown option 'zzzz'"]


@pytest.mark.parametrize(
    ("key", "value", "fragment"),
    [
        ("poll_interval", "fast", "expected int or float, got str"),
        ("poll_interval", True, "got bool"),
        ("poll_interval", 0, "must be greater than 0"),
        ("focus_attempts", -1, "must be greater than 0"),
        ("focus_attempts", 2.5, "expected int, got float"),
        ("show_titles", "yes", "expected bool, got str"),
        ("launcher_args", ["-a", 1], "all items must be strings"),
        ("launcher_args", "-a", "expected list, got str"),
        ("title", 12, "expected str, got int"),
    ],
)
def test_validate_config_values(key, value, fragment):
    errors = validate_config({key: value})
    assert len(errors) == 1
    assert f"'{key}'" in errors[0]
    assert fragment in errors[0]


def test_load_missing_file(tmp_path, test_logger):
    conf = load_config(tmp_path / "nothing.toml", test_logger)
    assert conf == {}
    assert conf.get_str("title") == DEFAULT_TITLE


def test_load_file(tmp_path, test_logger):
    path = tmp_path / "deckcord.toml"
    path.write_text(
        """
[deckcord]
title = "Chat"
poll_interval = 1.5
launcher = "/opt/discord/Discord"
launcher_args = ["--start-minimized"]

[other]
ignored = true
"""
    )
    conf = load_config(path, test_logger)
    assert conf.get_str("title") == "Chat"
    assert conf.get_float("poll_interval") == 1.5
    assert conf.get_list("launcher_args") == ["--start-minimized"]
    assert "ignored" not in conf


def test_load_drops_invalid_entries(tmp_path, test_logger, mocker):
    path = tmp_path / "deckcord.toml"
    path.write_text('[deckcord]\npoll_interval = -1\nfocus_atempts = 3\ntitle = "Chat"\n')
    error = mocker.patch.object(test_logger, "error")

    conf = load_config(path, test_logger)

    assert conf == {"title": "Chat"}
    assert conf.get_float("poll_interval") == DEFAULT_POLL_INTERVAL
    assert error.call_count == 2


def test_load_invalid_toml(tmp_path, test_logger):
    path = tmp_path / "deckcord.toml"
    path.write_text("[deckcord\ntitle = ")
    with pytest.raises(ConfigError):
        load_config(path, test_logger)


def test_load_section_not_a_table(tmp_path, test_logger):
    path = tmp_path / "deckcord.toml"
    path.write_text('deckcord = "oops"\n')
    with pytest.raises(ConfigError):
        load_config(path, test_logger)
