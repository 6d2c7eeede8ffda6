"""
stats.py — Pydantic models for the epidemiological counters pipeline.

Provider-facing models
──────────────────────
Snapshot           — point-in-time counters for one scope (global or a country)
HistoricalPayload  — raw date-keyed counter maps from the historical endpoint

Both validate raw provider JSON. A payload that does not fit them is
rejected at the client boundary and never reaches the derivation code.

Derived models
──────────────
TimeSeriesPoint / TimeSeries — one calendar day / an ordered run of days
SnapshotMetrics              — active cases + the three rates (read-only view)
RankedEntity                 — one row of the "top countries" list

State + API models
──────────────────
Selection, HistoryRange, LoadState, Notification and the response shapes
served to the dashboard front-end.

All domain objects are frozen: the orchestrator replaces them wholesale,
nobody downstream mutates them.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

GLOBAL_SCOPE = "Global"

# Historical endpoint keys look like "1/22/20" (month/day/two-digit year).
PROVIDER_DATE_FORMAT = "%m/%d/%y"


def parse_provider_date(raw: str) -> dt.date:
    return dt.datetime.strptime(raw, PROVIDER_DATE_FORMAT).date()


# ── Selection + range ─────────────────────────────────────────────────────────

class HistoryRange(str, Enum):
    """Requested look-back window for the historical endpoint."""

    LAST_7 = "7"
    LAST_30 = "30"
    LAST_90 = "90"
    LAST_180 = "180"
    LAST_365 = "365"
    ALL = "all"

    @property
    def label(self) -> str:
        return _RANGE_LABELS[self]


_RANGE_LABELS = {
    HistoryRange.LAST_7:   "Last 7 days",
    HistoryRange.LAST_30:  "Last 30 days",
    HistoryRange.LAST_90:  "Last 90 days",
    HistoryRange.LAST_180: "Last 6 months",
    HistoryRange.LAST_365: "Last year",
    HistoryRange.ALL:      "All time",
}


class Selection(BaseModel):
    """The currently focused scope. Replaced wholesale on every user event."""

    model_config = ConfigDict(frozen=True)

    scope: str = Field(default=GLOBAL_SCOPE, min_length=1, max_length=100)

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE


# ── Provider payloads ─────────────────────────────────────────────────────────

class Snapshot(BaseModel):
    """
    Cumulative counters for one scope at one point in time.

    Accepts the provider's camelCase keys (todayCases, countryInfo.flag, …)
    and serialises with snake_case field names.
    """

    model_config = ConfigDict(frozen=True)

    scope: str = Field(min_length=1)
    cases: int = Field(ge=0)
    deaths: int = Field(ge=0)
    recovered: int = Field(default=0, ge=0)   # not every country reports it
    today_cases: int = Field(default=0, validation_alias=AliasChoices("today_cases", "todayCases"))
    today_deaths: int = Field(default=0, validation_alias=AliasChoices("today_deaths", "todayDeaths"))
    flag_ref: Optional[str] = None            # opaque; an image URL for disease.sh
    updated: Optional[int] = None             # provider epoch milliseconds

    @model_validator(mode="before")
    @classmethod
    def _lift_provider_fields(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "scope" not in data and "country" in data:
            data["scope"] = data["country"]
        info = data.get("countryInfo")
        if "flag_ref" not in data and isinstance(info, dict):
            data["flag_ref"] = info.get("flag")
        for key in ("recovered", "todayCases", "todayDeaths"):
            if key in data and data[key] is None:
                data.pop(key)
        return data

    @model_validator(mode="after")
    def _check_counters(self):
        if self.deaths > self.cases:
            raise ValueError(f"deaths ({self.deaths}) exceed cases ({self.cases})")
        if self.recovered > self.cases:
            raise ValueError(f"recovered ({self.recovered}) exceed cases ({self.cases})")
        return self


class HistoricalPayload(BaseModel):
    """
    Three parallel, possibly sparse, date → cumulative count maps.

    The global endpoint returns them at the top level; the per-country
    endpoint nests them under "timeline". Both shapes are accepted.
    Key order is the provider's order and is preserved (dicts keep it).
    """

    cases: dict[str, Optional[int]] = Field(default_factory=dict)
    deaths: dict[str, Optional[int]] = Field(default_factory=dict)
    recovered: dict[str, Optional[int]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _unwrap_timeline(cls, data):
        if isinstance(data, dict) and isinstance(data.get("timeline"), dict):
            return data["timeline"]
        return data

    @field_validator("cases", "deaths", "recovered", mode="before")
    @classmethod
    def _null_map_is_empty(cls, value):
        return {} if value is None else value

    @field_validator("cases", "deaths", "recovered")
    @classmethod
    def _keys_are_dates(cls, value: dict[str, Optional[int]]):
        for key in value:
            try:
                parse_provider_date(key)
            except ValueError as exc:
                raise ValueError(f"unparseable date key {key!r}") from exc
        return value


# ── Derived time series ───────────────────────────────────────────────────────

class TimeSeriesPoint(BaseModel):
    """One calendar day of cumulative counters."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    cases: int
    deaths: int
    recovered: int
    active_cases: int   # cases - recovered - deaths, may be negative

    # Presentation hints for axis thinning; not correctness-bearing.
    label: str          # "Mon\nJan 22" on every 5th point + the last, else "Jan 22"
    short_label: str    # "Jan 22"
    full_label: str     # "Wednesday, January 22, 2020"


class HistorySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    last_date: Optional[dt.date] = None
    point_count: int = 0


class HistoryStatus(str, Enum):
    OK = "ok"           # at least one point
    EMPTY = "empty"     # provider answered, nothing to plot
    FAILED = "failed"   # provider call failed; rendered like EMPTY


class TimeSeries(BaseModel):
    """An ordered, date-unique run of points for one (scope, range) pair."""

    model_config = ConfigDict(frozen=True)

    scope: str
    range: HistoryRange
    points: tuple[TimeSeriesPoint, ...] = ()
    summary: HistorySummary = HistorySummary()
    status: HistoryStatus = HistoryStatus.EMPTY


# ── Derived snapshot views ────────────────────────────────────────────────────

class SnapshotMetrics(BaseModel):
    """Derived metrics for one Snapshot. Rates are one-decimal percentage strings."""

    model_config = ConfigDict(frozen=True)

    active_cases: int
    recovery_rate: str
    fatality_rate: str
    active_cases_ratio: str


class BreakdownSlice(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str    # Recovered | Active | Deaths
    value: int


class SnapshotView(BaseModel):
    """A Snapshot plus everything the stat cards derive from it."""

    model_config = ConfigDict(frozen=True)

    snapshot: Snapshot
    metrics: SnapshotMetrics
    breakdown: list[BreakdownSlice]
    trend: Optional[str] = None   # "up" | "down" | None (no change today)
    today_label: str              # "+1,234 today"


# ── Ranking ───────────────────────────────────────────────────────────────────

class RankMetric(str, Enum):
    CASES = "cases"
    DEATHS = "deaths"
    RECOVERED = "recovered"
    ACTIVE = "active"


class RankedEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int
    name: str
    flag_ref: Optional[str] = None
    value: int                  # value of the sort metric
    value_label: str            # compact rendering of value, e.g. "1.2M"
    today_cases_label: str      # "+3.4K"
    today_deaths_label: str     # "12 deaths"
    trend: Optional[str] = None
    selected: bool = False      # row is the current selection


class RankingResponse(BaseModel):
    """Response shape for GET /api/v1/countries."""

    query: str
    sort_by: RankMetric
    match_count: int
    entries: list[RankedEntity]
    message: Optional[str] = None   # set when nothing matched


# ── Orchestrator state ────────────────────────────────────────────────────────

class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


class Notification(BaseModel):
    """A user-visible, dismissible error banner."""

    model_config = ConfigDict(frozen=True)

    message: str
    scope: Optional[str] = None   # None for the combined initial load
    dismissible: bool = True


# ── API shapes ────────────────────────────────────────────────────────────────

class DashboardResponse(BaseModel):
    """Response shape for GET /api/v1/dashboard."""

    selection: Selection
    history_range: HistoryRange
    snapshot_state: LoadState
    history_state: LoadState
    loading: bool
    current: Optional[SnapshotView] = None
    notification: Optional[Notification] = None


class HistoryResponse(BaseModel):
    """Response shape for GET /api/v1/dashboard/history."""

    selection: Selection
    state: LoadState
    series: TimeSeries


class RangeOption(BaseModel):
    value: HistoryRange
    label: str


class SelectionOptions(BaseModel):
    current: Selection
    options: list[str]   # "Global" first, then entity names in provider order


class SelectionChange(BaseModel):
    """Request body for PUT /api/v1/dashboard/selection."""

    scope: str = Field(default=GLOBAL_SCOPE, min_length=1, max_length=100)
    range: Optional[HistoryRange] = None


class RangeChange(BaseModel):
    """Request body for PUT /api/v1/dashboard/range."""

    range: HistoryRange
