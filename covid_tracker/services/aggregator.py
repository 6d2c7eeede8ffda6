"""
aggregator.py — Derived metrics for a single point-in-time Snapshot.

Everything here is computed on read and never stored on the Snapshot, so
calling it twice on the same object gives the same answer and has no side
effects. The ranker reuses active_cases() so a country's "active" value in
the top-10 list always matches its stat card.

USAGE
─────
    from covid_tracker.services.aggregator import compute_metrics, describe_snapshot

    snap = Snapshot(scope="Global", cases=1000, deaths=50, recovered=800)
    m = compute_metrics(snap)
    # m.active_cases   → 150
    # m.recovery_rate  → "80.0"
    # m.fatality_rate  → "5.0"

Zero cases
──────────
Every ratio degrades to "0.0" when cases == 0 instead of propagating a
division error.

Negative active cases
─────────────────────
active_cases is NOT clamped. When recovered + deaths > cases (the provider
updates those counters on different schedules) the value goes negative and
is passed through as-is.
"""

from __future__ import annotations

from typing import Optional

from covid_tracker.models.stats import BreakdownSlice, Snapshot, SnapshotMetrics, SnapshotView
from covid_tracker.services.formatting import format_grouped, percentage


def active_cases(snapshot: Snapshot) -> int:
    return snapshot.cases - snapshot.recovered - snapshot.deaths


def compute_metrics(snapshot: Snapshot) -> SnapshotMetrics:
    active = active_cases(snapshot)
    return SnapshotMetrics(
        active_cases=active,
        recovery_rate=percentage(snapshot.recovered, snapshot.cases),
        fatality_rate=percentage(snapshot.deaths, snapshot.cases),
        active_cases_ratio=percentage(active, snapshot.cases),
    )


def compute_trend(today_cases: int) -> Optional[str]:
    """'up' when new cases were reported today, 'down' for a negative correction, else None."""
    if today_cases > 0:
        return "up"
    if today_cases < 0:
        return "down"
    return None


def compute_breakdown(snapshot: Snapshot) -> list[BreakdownSlice]:
    """Recovered / Active / Deaths split of the cumulative case count."""
    return [
        BreakdownSlice(name="Recovered", value=snapshot.recovered),
        BreakdownSlice(name="Active",    value=active_cases(snapshot)),
        BreakdownSlice(name="Deaths",    value=snapshot.deaths),
    ]


def describe_snapshot(snapshot: Snapshot) -> SnapshotView:
    """Bundle a Snapshot with all of its derived views for the stat cards."""
    return SnapshotView(
        snapshot=snapshot,
        metrics=compute_metrics(snapshot),
        breakdown=compute_breakdown(snapshot),
        trend=compute_trend(snapshot.today_cases),
        today_label=f"+{format_grouped(snapshot.today_cases)} today",
    )
