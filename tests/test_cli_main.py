import pytest
import responses

from sherpa_scaler.cli import main as cli_main
from sherpa_scaler.cli import policy, scale, system


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("SHERPA_ADDR", "SHERPA_CLIENT_CERT_PATH", "SHERPA_CLIENT_CERT_KEY_PATH",
                 "SHERPA_CLIENT_CA_PATH"):
        monkeypatch.delenv(name, raising=False)


def test_build_parser_dispatches_subcommands():
    parser = cli_main.build_parser({})
    assert parser.parse_args(["scale", "in", "job"]).func is scale.run_in
    assert parser.parse_args(["system", "metrics"]).func is system.run_metrics
    assert parser.parse_args(["policy", "init"]).func is policy.run_init


def test_main_policy_init(capsys):
    assert cli_main.main(["policy", "init"]) == 0
    assert capsys.readouterr().out == policy.example_policy() + "\n"


def test_main_without_command_prints_help(capsys):
    assert cli_main.main([]) == 0
    assert "Sherpa is a fast and flexible job scaler" in capsys.readouterr().out


def test_main_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli_main.main(["--version"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("sherpa version ")


def test_main_system_health(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET, "http://127.0.0.1:8000/v1/system/health", json={"Status": "ok"}
        )
        code = cli_main.main(["system", "health"])
    assert code == 0
    assert capsys.readouterr().out == "Sherpa server status: ok\n"


def test_main_status_usage_error(capsys):
    assert cli_main.main(["scale", "status", "a", "b"]) == 64
    assert "Too many arguments" in capsys.readouterr().out