import sys
from datetime import datetime
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from data_processing import CANONICAL_PARAMETERS, MS_PER_DAY
from sample_data import generate_sample_dataset


def test_sample_dataset_covers_every_parameter_and_is_sorted():
    dataset = generate_sample_dataset(points=120, now=datetime(2024, 1, 1, 0, 30), seed=7)

    assert len(dataset) == 120
    assert dataset.parameters == CANONICAL_PARAMETERS
    times = [r.time for r in dataset.records]
    assert times == sorted(times)
    assert all(0 <= t < MS_PER_DAY for t in times)
    assert [r.index for r in dataset.records] == list(range(120))
    for record in dataset.records:
        assert set(record.values) == set(CANONICAL_PARAMETERS)


def test_sample_dataset_is_reproducible_with_seed():
    now = datetime(2024, 6, 1, 15, 0)
    first = generate_sample_dataset(points=10, now=now, seed=3)
    second = generate_sample_dataset(points=10, now=now, seed=3)
    assert first == second


def test_sample_power_values_respect_caps():
    dataset = generate_sample_dataset(points=60, now=datetime(2024, 6, 1, 15, 0), seed=11)
    assert max(dataset.values_for("Active power")) <= 30.0
    assert max(dataset.values_for("Reactive power")) <= 15.0
    assert max(dataset.values_for("Apparent power")) <= 33.0
    assert all(0.8 <= pf <= 1.0 for pf in dataset.values_for("Power factor"))
