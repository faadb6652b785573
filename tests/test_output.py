from datetime import datetime, timezone

from sherpa_scaler.output import (
    format_kv,
    format_list,
    format_timestamp,
    generate_event_timestamp,
    unix_nano_to_human_utc,
)


def test_format_list():
    lines = [
        "ID|Job:Group|Status|Time",
        "4db95964-8a45-415e-b9ac-3ec3a9748e00|example1:cache|Completed|2019-08-23 09:55:51.009 +0000 UTC",
    ]
    expected = (
        "ID                                    Job:Group       Status     Time\n"
        "4db95964-8a45-415e-b9ac-3ec3a9748e00  example1:cache  Completed  2019-08-23 09:55:51.009 +0000 UTC"
    )
    assert format_list(lines) == expected


def test_format_kv():
    lines = [
        "ID|a11a6b4c-795e-4cd5-9fb1-56f7b9725875",
        "EvalID|a0a42e8d-4b96-9613-9a49-63d46a480bd9",
        "Status|Completed",
        "Source|InternalAutoscaler",
        "Time|2019-08-23 09:55:51.009 +0000 UTC",
    ]
    expected = (
        "ID     = a11a6b4c-795e-4cd5-9fb1-56f7b9725875\n"
        "EvalID = a0a42e8d-4b96-9613-9a49-63d46a480bd9\n"
        "Status = Completed\n"
        "Source = InternalAutoscaler\n"
        "Time   = 2019-08-23 09:55:51.009 +0000 UTC"
    )
    assert format_kv(lines) == expected


def test_format_list_fills_empty_cells():
    assert format_list(["a||c"]) == "a  <none>  c"


def test_format_list_empty_input():
    assert format_list([]) == ""


def test_unix_nano_to_human_utc():
    expected = datetime(2019, 8, 22, 14, 6, 40, 110000, tzinfo=timezone.utc)
    assert unix_nano_to_human_utc(1566482800109501000) == expected


def test_format_timestamp():
    assert format_timestamp(1566482800109501000) == "2019-08-22 14:06:40.11 +0000 UTC"


def test_generate_event_timestamp_has_nineteen_digits():
    assert len(str(generate_event_timestamp())) == 19


def test_generate_event_timestamp_is_monotonic_enough():
    first = generate_event_timestamp()
    second = generate_event_timestamp()
    assert second >= first