from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..core.timeutil import to_local
from ..domain.models import HistoricalDataPoint, SnapshotRecord


DEFAULT_TEMPERATURE = 25.0
DEFAULT_HUMIDITY = 60.0
DEFAULT_MOISTURE_DROP = 10.0
DEFAULT_MOISTURE = 50.0


@dataclass(frozen=True)
class HistorySummary:
    average_temperature: float
    average_humidity: float
    average_soil_moisture_drop: float
    days: int


def _mean(values: Iterable[Optional[float]]) -> Optional[float]:
    vals = [v for v in values if v is not None]
    if not vals:
        return None
    return sum(vals) / len(vals)


def daily_points(records: Sequence[SnapshotRecord], days: int) -> list[HistoricalDataPoint]:
    """Average stored snapshots per local calendar day, newest ``days`` days, oldest first."""
    buckets: dict[str, list[SnapshotRecord]] = defaultdict(list)
    for r in records:
        buckets[to_local(r.ts_utc).date().isoformat()].append(r)

    out: list[HistoricalDataPoint] = []
    for day in sorted(buckets)[-days:]:
        rows = buckets[day]
        out.append(
            HistoricalDataPoint(
                day=day,
                temperature=_mean(r.temperature for r in rows),
                humidity=_mean(r.humidity for r in rows),
                soil_moisture=_mean(r.soil_moisture for r in rows),
                light_intensity=_mean(r.light_intensity for r in rows),
                samples=len(rows),
            )
        )
    return out


def preprocess_history(points: Sequence[HistoricalDataPoint]) -> HistorySummary:
    """Averages fed to the schedule and outlook flows.

    Missing values fall back to typical greenhouse conditions; the moisture
    drop only counts days where moisture fell.
    """
    if not points:
        return HistorySummary(DEFAULT_TEMPERATURE, DEFAULT_HUMIDITY, DEFAULT_MOISTURE_DROP, 0)

    temps = [p.temperature if p.temperature is not None else DEFAULT_TEMPERATURE for p in points]
    hums = [p.humidity if p.humidity is not None else DEFAULT_HUMIDITY for p in points]
    avg_temp = round(sum(temps) / len(temps), 1)
    avg_hum = round(sum(hums) / len(hums), 1)

    if len(points) > 1:
        moist = [p.soil_moisture if p.soil_moisture is not None else DEFAULT_MOISTURE for p in points]
        total_drop = sum(max(0.0, prev - cur) for prev, cur in zip(moist, moist[1:]))
        drop = round(total_drop / (len(points) - 1), 1)
    else:
        drop = DEFAULT_MOISTURE_DROP

    return HistorySummary(
        average_temperature=avg_temp or DEFAULT_TEMPERATURE,
        average_humidity=avg_hum or DEFAULT_HUMIDITY,
        average_soil_moisture_drop=drop or DEFAULT_MOISTURE_DROP,
        days=len(points),
    )
