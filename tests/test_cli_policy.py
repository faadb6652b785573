import argparse
import json

import pytest
import responses

from sherpa_scaler.api import JobGroupPolicy
from sherpa_scaler.cli.policy import (
    example_policy,
    format_job_policy,
    format_policy_list,
    register,
)
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config.settings import Settings
from sherpa_scaler.policy import GroupScalingPolicy, validate

ADDR = "http://127.0.0.1:8000"
LIST_HEADER = ["Job:Group", "Enabled", "MinCount", "MaxCount", "ScaleInCount", "ScaleOutCount"]
READ_HEADER = ["Group", "Enabled", "MinCount", "MaxCount", "ScaleInCount", "ScaleOutCount"]


def _run(argv):
    settings = Settings("sherpa", {})
    parser = argparse.ArgumentParser(prog="sherpa")
    client_config.register_config(parser, settings)
    subparsers = parser.add_subparsers()
    register(subparsers, settings)
    args = parser.parse_args(argv)
    return args.func(args)


def _policy_json(enabled, min_count, max_count, scale_in, scale_out):
    return {
        "Enabled": enabled,
        "MinCount": min_count,
        "MaxCount": max_count,
        "ScaleInCount": scale_in,
        "ScaleOutCount": scale_out,
    }


def test_example_policy_is_the_documented_document():
    text = example_policy()
    assert text == (
        "{\"Enabled\":true,\"MaxCount\":16,\"MinCount\":4,\"ScaleOutCount\":2,\"ScaleInCount\":2,"
        "\"ScaleOutCPUPercentageThreshold\":75,\"ScaleOutMemoryPercentageThreshold\":75,"
        "\"ScaleInCPUPercentageThreshold\":30,\"ScaleInMemoryPercentageThreshold\":30}"
    )


def test_example_policy_round_trips_and_validates():
    policy = GroupScalingPolicy.from_dict(json.loads(example_policy()))
    validate(policy)
    assert json.loads(example_policy()) == policy.to_dict()


def test_run_init_prints_example(capsys):
    assert _run(["policy", "init"]) == 0
    assert capsys.readouterr().out.strip() == example_policy()


def test_format_policy_list_rows():
    policies = {
        "web": {
            "cache": JobGroupPolicy(
                enabled=True, min_count=2, max_count=10, scale_in_count=1, scale_out_count=1
            )
        }
    }
    lines = format_policy_list(policies).splitlines()
    assert lines[0].split() == LIST_HEADER
    assert lines[1].split() == ["web:cache", "true", "2", "10", "1", "1"]


def test_format_policy_list_empty():
    assert format_policy_list({}) == ""


def test_format_job_policy_rows():
    policies = {
        "cache": JobGroupPolicy(enabled=False, min_count=3, max_count=9),
        "db": JobGroupPolicy(enabled=True, scale_in_count=4, scale_out_count=5),
    }
    lines = format_job_policy(policies).splitlines()
    assert lines[0].split() == READ_HEADER
    assert lines[1].split() == ["cache", "false", "3", "9", "0", "0"]
    assert lines[2].split() == ["db", "true", "0", "0", "4", "5"]
    widths = {len(line.split("  ")[0]) for line in lines}
    assert len(widths) == 1


def test_run_list_prints_table(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{ADDR}/v1/policies",
            json={"web": {"cache": _policy_json(True, 2, 10, 1, 1)}},
        )
        assert _run(["policy", "list"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].split() == LIST_HEADER
    assert lines[1].split() == ["web:cache", "true", "2", "10", "1", "1"]


def test_run_list_empty_prints_nothing(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{ADDR}/v1/policies", json={})
        assert _run(["policy", "list"]) == 0
    assert capsys.readouterr().out == ""


def test_run_list_rejects_arguments(capsys):
    assert _run(["policy", "list", "extra"]) == 64
    assert capsys.readouterr().out.strip() == "Too many arguments, expected 0 args got 1"


def test_run_list_server_error(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{ADDR}/v1/policies", body="boom", status=500)
        assert _run(["policy", "list"]) == 70
    assert capsys.readouterr().out.startswith("Error querying policy list:")


def test_run_read_normalises_job_name(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{ADDR}/v1/policy/web",
            json={"cache": _policy_json(True, 2, 10, 1, 1)},
        )
        assert _run(["policy", "read", "  WEB "]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].split() == READ_HEADER
    assert lines[1].split() == ["cache", "true", "2", "10", "1", "1"]


@pytest.mark.parametrize(
    "extra, message",
    [
        ([], "Not enough arguments, expected 1 got 0"),
        (["a", "b"], "Too many arguments, expected 1 got 2"),
    ],
)
def test_run_read_argument_count(capsys, extra, message):
    assert _run(["policy", "read", *extra]) == 64
    assert capsys.readouterr().out.strip() == message


def test_run_write_job_policy(tmp_path, capsys):
    document = tmp_path / "policy.json"
    document.write_text(json.dumps({"cache": {"Enabled": True, "MaxCount": 16}}))

    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{ADDR}/v1/policy/web", status=201)
        assert _run(["policy", "write", "Web", str(document)]) == 0
        sent = json.loads(rsps.calls[0].request.body)
    assert capsys.readouterr().out.strip() == "Successfully wrote job scaling policy"
    assert sent["cache"]["Enabled"] is True
    assert sent["cache"]["MaxCount"] == 16


def test_run_write_job_group_policy(tmp_path, capsys):
    document = tmp_path / "policy.json"
    document.write_text(example_policy())

    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, f"{ADDR}/v1/policy/web/cache", status=201)
        code = _run(["policy", "write", "--policy-group-name", "cache", "web", str(document)])
        sent = json.loads(rsps.calls[0].request.body)
    assert code == 0
    assert capsys.readouterr().out.strip() == "Successfully wrote job group scaling policy"
    assert sent == json.loads(example_policy())


def test_run_write_missing_file(tmp_path, capsys):
    missing = tmp_path / "absent.json"
    assert _run(["policy", "write", "web", str(missing)]) == 70
    assert capsys.readouterr().out.startswith("Error reading scaling policy file:")


def test_run_write_argument_count(capsys):
    assert _run(["policy", "write", "web"]) == 64
    assert capsys.readouterr().out.strip() == "Not enough arguments, expected 2 args got 1"


def test_run_delete_job_policy(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, f"{ADDR}/v1/policy/web", status=204)
        assert _run(["policy", "delete", " WEB"]) == 0
        call_count = len(rsps.calls)
    assert capsys.readouterr().out.strip() == "Successfully deleted job scaling policy"
    assert call_count == 1


def test_run_delete_job_group_policy(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, f"{ADDR}/v1/policy/web/cache", status=204)
        assert _run(["policy", "delete", "--policy-group-name", "cache", "web"]) == 0
    assert capsys.readouterr().out.strip() == "Successfully deleted job group scaling policy"


def test_run_delete_server_error(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, f"{ADDR}/v1/policy/web", body="boom", status=500)
        assert _run(["policy", "delete", "web"]) == 70
    assert capsys.readouterr().out.strip() == (
        "Error deleting job scaling policy: unexpected response code 500: boom"
    )


def test_run_delete_argument_count(capsys):
    assert _run(["policy", "delete"]) == 64
    assert capsys.readouterr().out.strip() == "Not enough arguments, expected 1 arg got 0"


def test_policy_without_subcommand_prints_usage(capsys):
    assert _run(["policy"]) == 0
    assert "usage:" in capsys.readouterr().out