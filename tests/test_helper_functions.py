from __future__ import annotations

from datetime import datetime, timedelta, timezone

from n8n_inspector.extraction.accessors import (
    as_list,
    as_mapping,
    dig,
    find_run_data,
    first_item_json,
)
from n8n_inspector.extraction.time_utils import NOT_AVAILABLE, format_duration, to_epoch_ms
from n8n_inspector.models.inspection import AiDetails, Trace


def test_dig_follows_keys_and_indexes():
    doc = {"a": [{"b": {"c": 3}}, None]}
    assert dig(doc, "a", 0, "b", "c") == 3
    assert dig(doc, "a", -2, "b", "c") == 3
    assert dig(doc, "a", 5, "b", default="x") == "x"
    assert dig(doc, "a", 1, default="x") == "x"
    assert dig(doc, "a", "b") is None
    assert dig(doc, 0) is None
    assert dig("text", "a", default=0) == 0
    assert dig(doc) is doc


def test_as_mapping_and_as_list():
    assert as_mapping(None) == {}
    assert as_mapping([1]) == {}
    assert as_mapping({"k": 1}) == {"k": 1}
    assert as_list({"k": 1}) == []
    assert as_list([1]) == [1]


def test_first_item_json():
    run = {"data": {"main": [[{"json": {"x": 1}}, {"json": {"x": 2}}]]}}
    assert first_item_json(run, "main") == {"x": 1}
    assert first_item_json(run, "ai_tool") is None
    assert first_item_json({"data": {"main": [[{"json": "str"}]]}}, "main") is None


def test_find_run_data_prefers_primary_path():
    primary = {"A": []}
    execution = {
        "data": {"resultData": {"runData": primary}},
        "runData": {"B": []},
    }
    assert find_run_data(execution) is primary
    assert find_run_data({"resultData": {"runData": {"C": []}}}) == {"C": []}
    assert find_run_data({"data": {"resultData": {"runData": {}}}}) == {}
    assert find_run_data("not json") == {}


def test_to_epoch_ms_numbers():
    assert to_epoch_ms(1_700_000_000_000) == 1_700_000_000_000.0
    assert to_epoch_ms(1_700_000_000) == 1_700_000_000_000.0
    assert to_epoch_ms("1700000000000") == 1_700_000_000_000.0
    assert to_epoch_ms(float("nan")) is None
    assert to_epoch_ms(True) is None
    assert to_epoch_ms(None) is None


def test_to_epoch_ms_iso_strings_and_datetimes():
    expected = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() * 1000
    assert to_epoch_ms("2024-01-01T00:00:00.000Z") == expected
    assert to_epoch_ms("2024-01-01T00:00:00") == expected
    assert to_epoch_ms("2024-01-01T01:00:00+01:00") == expected
    assert to_epoch_ms(datetime(2024, 1, 1, tzinfo=timezone.utc)) == expected
    aware = datetime(2024, 1, 1, 2, tzinfo=timezone(timedelta(hours=2)))
    assert to_epoch_ms(aware) == expected
    assert to_epoch_ms("yesterday") is None
    assert to_epoch_ms("   ") is None
    assert to_epoch_ms(["2024"]) is None


def test_format_duration():
    start = "2024-01-01T00:00:00.000Z"
    assert format_duration(start, "2024-01-01T00:00:00.999Z") == "0s"
    assert format_duration(start, "2024-01-01T00:00:59.999Z") == "59s"
    assert format_duration(start, "2024-01-01T00:01:00.000Z") == "1m 0s"
    assert format_duration(start, "2024-01-01T01:02:03.000Z") == "62m 3s"
    assert format_duration(start, None) == "N/A"
    assert format_duration(None, start) == "N/A"
    assert format_duration(start, "garbage") == "N/A"
    assert format_duration(1_700_000_000_000, 1_700_000_042_000) == "42s"


def test_views_without_bounds_default_to_not_available():
    assert Trace().duration == NOT_AVAILABLE == "N/A"
    assert AiDetails().duration == NOT_AVAILABLE
