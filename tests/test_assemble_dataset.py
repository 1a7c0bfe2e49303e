import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from data_processing import (
    MS_PER_DAY,
    EmptyResultError,
    NoNumericColumnsError,
    NoTimeColumnError,
    assemble_dataset,
    parse_time_of_day,
)


def _rows(headers, *values):
    return [dict(zip(headers, row)) for row in values]


def test_vendor_prefixed_header_scenario():
    headers = ["Time", "IOITSecure447>Voltage R"]
    rows = _rows(headers, ["01/01/2024 09:15:00", "231,2"])

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["R phase voltage"]
    record = dataset.records[0]
    assert record.time == 33_300_000
    assert record.get("R phase voltage") == pytest.approx(231.2)
    assert record.as_dict()["originalTime"] == "01/01/2024 09:15:00"


def test_missing_time_column_fails_without_records():
    headers = ["Voltage R", "Current R"]
    rows = _rows(headers, ["230", "12"])

    with pytest.raises(NoTimeColumnError):
        assemble_dataset(rows, headers)


def test_all_rows_malformed_time_fails_with_empty_result():
    headers = ["Date", "kW"]
    rows = _rows(headers, ["2024-01-01", "1,0"], ["2024-01-02", "2,0"])

    with pytest.raises(EmptyResultError) as excinfo:
        assemble_dataset(rows, headers)

    message = str(excinfo.value)
    assert "time format" in message
    assert "numeric" in message


def test_equal_times_keep_file_order():
    headers = ["Time", "kW"]
    rows = _rows(
        headers,
        ["01/01/2024 10:00:00", "3"],
        ["01/01/2024 08:00:00", "1"],
        ["02/01/2024 08:00:00", "2"],
    )

    dataset = assemble_dataset(rows, headers)

    assert [r.time for r in dataset.records] == [28_800_000, 28_800_000, 36_000_000]
    assert [r.get("Active power") for r in dataset.records] == [1.0, 2.0, 3.0]
    assert [r.source_row for r in dataset.records] == [1, 2, 0]
    assert [r.index for r in dataset.records] == [0, 1, 2]


def test_unmapped_column_published_only_with_numeric_values():
    headers = ["Time", "kWh Total", "Comment"]
    rows = _rows(
        headers,
        ["01/01/2024 00:01:00", "", "meter ok"],
        ["01/01/2024 00:02:00", "12,5", "meter ok"],
    )

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["kwh total"]
    assert "kwh total" not in dataset.records[0].values
    assert dataset.records[1].get("kwh total") == 12.5


def test_no_numeric_columns_fails():
    headers = ["Time", "Comment"]
    rows = _rows(headers, ["01/01/2024 00:01:00", "hello"])

    with pytest.raises(NoNumericColumnsError):
        assemble_dataset(rows, headers)


def test_dropped_rows_and_surviving_times_are_consistent():
    headers = ["Timestamp", "PF"]
    raw_times = [
        "01/01/2024 23:59:59",
        "bad",
        "01/01/2024 00:00",
        "01/01/2024",
        "01/01/2024 12:30:15",
    ]
    rows = _rows(headers, *[[t, "0,95"] for t in raw_times])

    dataset = assemble_dataset(rows, headers)

    kept = {r.original_time for r in dataset.records}
    for text in raw_times:
        if text not in kept:
            assert parse_time_of_day(text) is None
    times = [r.time for r in dataset.records]
    assert times == sorted(times)
    assert all(0 <= t < MS_PER_DAY for t in times)


def test_duplicate_canonical_columns_published_once():
    headers = ["Time", "kW", "Active Power"]
    rows = _rows(headers, ["01/01/2024 01:00", "1", "2"])

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["Active power"]


def test_to_frame_has_one_column_per_parameter():
    headers = ["Time", "Voltage R", "Current R"]
    rows = _rows(
        headers,
        ["01/01/2024 00:01:00", "230", ""],
        ["01/01/2024 00:00:00", "231", "10"],
    )

    frame = assemble_dataset(rows, headers).to_frame()

    assert list(frame.columns) == [
        "index",
        "time",
        "originalTime",
        "Clock",
        "R phase voltage",
        "R phase line current",
    ]
    assert frame["time"].tolist() == [0, 60_000]
    assert frame["R phase line current"].isna().tolist() == [False, True]


def test_index_column_does_not_shadow_record_fields():
    headers = ["Index", "Timestamp", "Voltage R"]
    rows = _rows(
        headers,
        ["7", "01/01/2024 00:00:20", "231"],
        ["8", "01/01/2024 00:00:10", "230"],
    )

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["index (column)", "R phase voltage"]
    first = dataset.records[0].as_dict()
    assert first["index"] == 0
    assert first["index (column)"] == 8.0
    assert first["time"] == 10_000

    frame = dataset.to_frame()
    assert list(frame.columns) == [
        "index",
        "time",
        "originalTime",
        "Clock",
        "index (column)",
        "R phase voltage",
    ]
    assert frame["index"].tolist() == [0, 1]
    assert frame["index (column)"].tolist() == [8.0, 7.0]


def test_separate_time_column_is_kept_apart_from_detected_time():
    headers = ["Date Time", "Time", "kW"]
    rows = _rows(headers, ["01/01/2024 00:00:10", "5", "1,5"])

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["time (column)", "Active power"]
    assert dataset.records[0].as_dict()["time"] == 10_000
    assert dataset.to_frame()["time (column)"].tolist() == [5.0]


def test_columns_named_like_the_time_header_stay_excluded():
    headers = ["Time", "TIME", "kW"]
    rows = _rows(headers, ["01/01/2024 00:00:10", "01/01/2024 00:00:10", "1"])

    dataset = assemble_dataset(rows, headers)

    assert dataset.parameters == ["Active power"]
