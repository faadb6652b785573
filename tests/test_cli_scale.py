import argparse
import uuid

import pytest
import responses
from responses import matchers

from sherpa_scaler import api
from sherpa_scaler.cli import scale
from sherpa_scaler.config import client as client_config
from sherpa_scaler.config.settings import Settings

BASE = "http://127.0.0.1:8000"
SCALE_ID = "a11a6b4c-795e-4cd5-9fb1-56f7b9725875"
EVAL_ID = "a0a42e8d-4b96-9613-9a49-63d46a480bd9"


def _parse(argv):
    settings = Settings("SHERPA", {})
    parser = argparse.ArgumentParser(prog="sherpa")
    client_config.register_config(parser, settings)
    sub = parser.add_subparsers()
    scale.register(sub, settings)
    return parser.parse_args(argv)


def test_format_scale_response():
    resp = api.ScaleResponse(id=uuid.UUID(SCALE_ID), evaluation_id=EVAL_ID)
    assert scale.format_scale_response(resp) == (
        f"ID     = {SCALE_ID}\nEvalID = {EVAL_ID}"
    )


def test_format_status_list_matches_source_layout():
    event = api.ScalingEvent(status="Completed", time=1566554151009000000)
    events = {uuid.UUID("4db95964-8a45-415e-b9ac-3ec3a9748e00"): {"example1:cache": event}}
    expected = (
        "ID                                    Job:Group       Status     Time\n"
        "4db95964-8a45-415e-b9ac-3ec3a9748e00  example1:cache  Completed  "
        "2019-08-23 09:55:51.009 +0000 UTC"
    )
    assert scale.format_status_list(events) == expected


def test_format_status_list_empty():
    assert scale.format_status_list({}) == ""


def test_format_status_info():
    event = api.ScalingEvent(
        eval_id=EVAL_ID,
        source="InternalAutoscaler",
        time=1566482800109501000,
        status="Completed",
        details=api.EventDetails(count=2, direction="out"),
    )
    rendered = scale.format_status_info(SCALE_ID, {"example1:cache": event})
    header, table = rendered.split("\n\n")
    assert header.splitlines() == [
        f"ID     = {SCALE_ID}",
        f"EvalID = {EVAL_ID}",
        "Status = Completed",
        "Source = InternalAutoscaler",
        "Time   = 2019-08-22 14:06:40.11 +0000 UTC",
    ]
    lines = table.splitlines()
    assert lines[0].split() == ["Job:Group", "ChangeCount", "Direction"]
    assert lines[1].split() == ["example1:cache", "2", "out"]


def test_run_in_requires_group(capsys):
    assert scale.run_in(_parse(["scale", "in", "job"])) == 64
    assert "Please specify a job group to scale" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["scale", "in"], ["scale", "in", "a", "b"]])
def test_run_in_argument_count(argv, capsys):
    assert scale.run_in(_parse(argv)) == 64
    assert "arguments, expected 1 arg got" in capsys.readouterr().out


def test_run_in_sends_count(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.PUT,
            f"{BASE}/v1/scale/in/job/cache",
            json={"ID": SCALE_ID, "EvaluationID": EVAL_ID},
            match=[matchers.query_param_matcher({"count": "2"})],
        )
        code = scale.run_in(
            _parse(["scale", "in", "job", "--group-name", "cache", "--count", "2"])
        )
    assert code == 0
    out = capsys.readouterr().out
    assert f"ID     = {SCALE_ID}" in out
    assert f"EvalID = {EVAL_ID}" in out


def test_run_in_server_error(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, f"{BASE}/v1/scale/in/job/cache", body="boom", status=500)
        code = scale.run_in(_parse(["scale", "in", "job", "--group-name", "cache"]))
    assert code == 70
    assert "Error scaling in job group:" in capsys.readouterr().out


def test_run_status_empty_list_prints_nothing(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE}/v1/scale/status", json={})
        code = scale.run_status(_parse(["scale", "status"]))
    assert code == 0
    assert capsys.readouterr().out == ""


def test_run_status_info(capsys):
    payload = {
        "example1:cache": {
            "EvalID": EVAL_ID,
            "Source": "API",
            "Time": 1566482800109501000,
            "Status": "Completed",
            "Details": {"Count": 1, "Direction": "in"},
        }
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE}/v1/scale/status/{SCALE_ID}", json=payload)
        code = scale.run_status(_parse(["scale", "status", SCALE_ID]))
    assert code == 0
    out = capsys.readouterr().out
    assert f"ID     = {SCALE_ID}" in out
    assert "Source = API" in out


def test_run_status_too_many_args(capsys):
    assert scale.run_status(_parse(["scale", "status", "a", "b"])) == 64
    assert "Too many arguments, expected 1 or 0, got 2" in capsys.readouterr().out


def test_run_status_list_error(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{BASE}/v1/scale/status", body="down", status=500)
        code = scale.run_status(_parse(["scale", "status"]))
    assert code == 70
    assert "Error getting scaling list:" in capsys.readouterr().out