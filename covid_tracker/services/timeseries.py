"""
timeseries.py — Turn the provider's sparse historical maps into an ordered series.

The historical endpoint returns three parallel maps (cases / deaths /
recovered), each keyed by a "M/D/YY" date string. Only the cases map is
authoritative for which days exist: deaths and recovered are looked up per
case-day and default to 0 when missing.

Ordering
────────
The provider emits keys chronologically and the output keeps that order.
Nothing here re-sorts; the date-key set of the cases map is the canonical
day sequence.

Empty input
───────────
A missing or empty cases map is a legitimate answer ("no history for this
scope in this window") and yields an empty series with status EMPTY. It is
not an error. Network and parse failures never reach this module — they are
handled by the orchestrator, which builds a FAILED series via failed_series().

USAGE
─────
    payload = HistoricalPayload.model_validate(raw_json)
    series = normalize_history(payload, "Germany", HistoryRange.LAST_30)
    series.points[-1].active_cases
    series.summary.point_count
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from covid_tracker.models.stats import (
    HistoricalPayload,
    HistoryRange,
    HistoryStatus,
    HistorySummary,
    TimeSeries,
    TimeSeriesPoint,
    parse_provider_date,
)

# Weekday prefix goes on every Nth point (and the last one) so the axis stays readable.
LABEL_STRIDE = 5


def _short_label(day: dt.date) -> str:
    return f"{day:%b} {day.day}"


def _full_label(day: dt.date) -> str:
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def _axis_label(day: dt.date, index: int, total: int) -> str:
    if index % LABEL_STRIDE == 0 or index == total - 1:
        return f"{day:%a}\n{_short_label(day)}"
    return _short_label(day)


def _count(series: dict[str, Optional[int]], key: str) -> int:
    return series.get(key) or 0


def normalize_history(
    payload: Optional[HistoricalPayload],
    scope: str,
    history_range: HistoryRange,
) -> TimeSeries:
    """
    Build a TimeSeries from a validated historical payload.

    Pure: the same payload always yields an equal series, and the payload
    is never modified.
    """
    if payload is None or not payload.cases:
        return TimeSeries(scope=scope, range=history_range, status=HistoryStatus.EMPTY)

    keys = list(payload.cases)
    total = len(keys)
    points: list[TimeSeriesPoint] = []

    for index, key in enumerate(keys):
        day = parse_provider_date(key)
        cases = _count(payload.cases, key)
        deaths = _count(payload.deaths, key)
        recovered = _count(payload.recovered, key)

        points.append(TimeSeriesPoint(
            date=day,
            cases=cases,
            deaths=deaths,
            recovered=recovered,
            # Not clamped: lagging recovered/deaths updates can push this below 0.
            active_cases=cases - recovered - deaths,
            label=_axis_label(day, index, total),
            short_label=_short_label(day),
            full_label=_full_label(day),
        ))

    return TimeSeries(
        scope=scope,
        range=history_range,
        points=tuple(points),
        summary=HistorySummary(last_date=points[-1].date, point_count=total),
        status=HistoryStatus.OK,
    )


def failed_series(scope: str, history_range: HistoryRange) -> TimeSeries:
    """The series published after a failed historical fetch. Renders like an empty one."""
    return TimeSeries(scope=scope, range=history_range, status=HistoryStatus.FAILED)
