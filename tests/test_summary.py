import copy
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from data_processing import assemble_dataset
from summary import (
    export_file_name,
    format_summary_report,
    parse_summary_report,
    summarize_parameter,
)


def _dataset():
    headers = ["Time", "kW", "Voltage R"]
    rows = [
        {"Time": "01/01/2024 00:00:00", "kW": "10", "Voltage R": "230,5"},
        {"Time": "01/01/2024 00:01:00", "kW": "20", "Voltage R": ""},
        {"Time": "01/01/2024 00:02:00", "kW": "30", "Voltage R": "231,5"},
    ]
    return assemble_dataset(rows, headers)


def test_summarize_parameter_ignores_missing_values():
    stats = summarize_parameter(_dataset(), "R phase voltage")
    assert stats["count"] == 2
    assert stats["min"] == pytest.approx(230.5)
    assert stats["max"] == pytest.approx(231.5)
    assert stats["avg"] == pytest.approx(231.0)


def test_summarize_unknown_parameter_is_empty():
    assert summarize_parameter(_dataset(), "nothing") == {
        "count": 0,
        "min": None,
        "max": None,
        "avg": None,
    }


def test_format_summary_report_primary_only():
    report = format_summary_report(_dataset(), "Active power")
    assert report.splitlines() == [
        "Summary Report for: Active power",
        "Data Points: 3",
        "---",
        "Minimum: 10.00 kW",
        "Maximum: 30.00 kW",
        "Average: 20.00 kW",
    ]


def test_format_summary_report_with_secondary_block():
    report = format_summary_report(_dataset(), "Active power", "R phase voltage")
    assert "Secondary Parameter: R phase voltage" in report
    assert report.endswith("Average: 231.00 V")


def test_summary_round_trip_reproduces_statistics_without_mutation():
    dataset = _dataset()
    before = copy.deepcopy(dataset)

    first = parse_summary_report(format_summary_report(dataset, "Active power", "R phase voltage"))
    second = parse_summary_report(format_summary_report(dataset, "Active power", "R phase voltage"))

    assert first == second
    assert first["Active power"]["avg"] == pytest.approx(20.0)
    assert first["R phase voltage"]["min"] == pytest.approx(230.5)
    assert dataset == before


def test_format_summary_report_rejects_empty_dataset():
    from data_processing import MeteringDataset

    with pytest.raises(ValueError):
        format_summary_report(MeteringDataset(), "Active power")


def test_export_file_name():
    day = date(2024, 5, 17)
    assert export_file_name("summary", "Active power", day) == (
        "circuitview_summary_Active_power_2024-05-17.txt"
    )
    assert export_file_name("chart", "R phase voltage", day, ext="html") == (
        "circuitview_chart_R_phase_voltage_2024-05-17.html"
    )
