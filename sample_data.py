"""Synthetic one-day metering dataset shown before the first upload."""

from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from data_processing import CANONICAL_PARAMETERS, MeteringDataset, MeteringRecord


def _time_of_day_ms(moment: datetime) -> int:
    return (moment.hour * 3600 + moment.minute * 60 + moment.second) * 1000


def generate_sample_dataset(
    points: int = 1440, now: Optional[datetime] = None, seed: Optional[int] = None
) -> MeteringDataset:
    """Return ``points`` one-minute samples ending at ``now``.

    Currents follow a daily load curve peaking mid-afternoon and the power
    figures are derived from them, so the charts look like a real feeder.
    """

    rng = np.random.default_rng(seed)
    now = (now or datetime.now()).replace(microsecond=0)

    records = []
    for i in range(points):
        moment = now - timedelta(minutes=points - i)
        load = (np.sin((moment.hour - 9) * np.pi / 12) + 1) / 2

        volts = rng.uniform(225, 235, 3) + (rng.random(3) - 0.5) * 5
        amps = rng.uniform(10, 80, 3) * load + rng.uniform(0, 5, 3)
        pf = rng.uniform(0.92, 0.99) - (1 - load) * 0.1

        apparent = float(np.dot(volts, amps)) / 1000
        active = apparent * pf
        reactive = float(np.sqrt(max(apparent ** 2 - active ** 2, 0.0)))

        values = {
            "R phase voltage": volts[0],
            "Y phase voltage": volts[1],
            "B phase voltage": volts[2],
            "Average phase voltage": volts.mean(),
            "Power factor": pf,
            "R phase line current": amps[0],
            "Y phase line current": amps[1],
            "B phase line current": amps[2],
            "Neutral current": rng.uniform(1, 15),
            "Active power": min(30.0, active),
            "Reactive power": min(15.0, reactive),
            "Apparent power": min(33.0, apparent),
        }
        records.append(
            MeteringRecord(
                index=i,
                source_row=i,
                time=_time_of_day_ms(moment),
                original_time=moment.strftime("%H:%M:%S"),
                values={k: round(float(v), 2) for k, v in values.items()},
            )
        )

    # A window crossing midnight wraps onto the same 24h axis as uploads do.
    records.sort(key=lambda rec: rec.time)
    for position, record in enumerate(records):
        record.index = position

    return MeteringDataset(records=records, parameters=list(CANONICAL_PARAMETERS))
