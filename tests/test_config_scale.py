import argparse

import pytest

from sherpa_scaler.config.scale import get_config, register_config
from sherpa_scaler.config.settings import Settings


def _resolve(environ, argv=()):
    parser = argparse.ArgumentParser()
    settings = Settings("sherpa", environ)
    register_config(parser, settings)
    settings.load(parser.parse_args(list(argv)))
    return get_config(settings)


def test_defaults():
    cfg = _resolve({})
    assert cfg.count == 0
    assert cfg.group_name == ""


def test_flags():
    cfg = _resolve({}, ["--count", "3", "--group-name", "cache"])
    assert cfg.count == 3
    assert cfg.group_name == "cache"


def test_count_from_environment():
    assert _resolve({"SHERPA_COUNT": "7"}).count == 7


def test_non_numeric_count_flag_is_rejected():
    with pytest.raises(SystemExit):
        _resolve({}, ["--count", "lots"])