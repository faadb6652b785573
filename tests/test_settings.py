import argparse

import pytest

from sherpa_scaler.config.settings import Settings


def _setup(environ, key, default, argv=()):
    parser = argparse.ArgumentParser()
    settings = Settings("sherpa", environ)
    settings.add_flag(parser, key, default, "description")
    settings.load(parser.parse_args(list(argv)))
    return settings


def test_default_is_used_when_nothing_is_set():
    settings = _setup({}, "bind-addr", "127.0.0.1")
    assert settings.get_str("bind-addr") == "127.0.0.1"


def test_environment_overrides_default():
    settings = _setup({"SHERPA_BIND_ADDR": "10.1.2.3"}, "bind-addr", "127.0.0.1")
    assert settings.get_str("bind-addr") == "10.1.2.3"


def test_flag_overrides_environment():
    settings = _setup(
        {"SHERPA_BIND_ADDR": "10.1.2.3"}, "bind-addr", "127.0.0.1", ["--bind-addr", "10.9.9.9"]
    )
    assert settings.get_str("bind-addr") == "10.9.9.9"


def test_empty_environment_value_is_ignored():
    settings = _setup({"SHERPA_BIND_ADDR": ""}, "bind-addr", "127.0.0.1")
    assert settings.get_str("bind-addr") == "127.0.0.1"


def test_env_name_uses_prefix_and_underscores():
    settings = Settings("sherpa", {})
    assert settings.env_name("client-cert-path") == "SHERPA_CLIENT_CERT_PATH"


def test_bare_bool_flag_is_true():
    settings = _setup({}, "ui", False, ["--ui"])
    assert settings.get_bool("ui") is True


def test_bool_flag_with_value():
    settings = _setup({}, "ui", True, ["--ui", "false"])
    assert settings.get_bool("ui") is False


def test_bool_from_environment():
    settings = _setup({"SHERPA_UI": "false"}, "ui", True)
    assert settings.get_bool("ui") is False


def test_invalid_bool_flag_is_rejected():
    parser = argparse.ArgumentParser()
    settings = Settings("sherpa", {})
    settings.add_flag(parser, "ui", False, "description")
    with pytest.raises(SystemExit):
        parser.parse_args(["--ui", "maybe"])


def test_int_from_environment():
    settings = _setup({"SHERPA_COUNT": "42"}, "count", 0)
    assert settings.get_int("count") == int("42")


def test_unparsable_int_is_zero():
    settings = _setup({"SHERPA_COUNT": "many"}, "count", 5)
    assert settings.get_int("count") == 0


def test_int_default_as_string():
    settings = _setup({}, "bind-port", 8000)
    assert settings.get_str("bind-port") == str(8000)
    assert settings.get_int("bind-port") == 8000


def test_unknown_key_gives_zero_values():
    settings = Settings("sherpa", {})
    assert settings.get_str("missing") == ""
    assert settings.get_int("missing") == 0
    assert settings.get_bool("missing") is False