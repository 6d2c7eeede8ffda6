"""
orchestrator.py — Owns every fetch and the lifecycle of the data it publishes.

The orchestrator is the single writer of dashboard state. Route handlers
only read its properties or emit events (mount / select / set_range /
dismiss_notification) into it. Published objects are frozen pydantic models
that are replaced wholesale, never mutated.

SLOTS
─────
Two independent slots, each with its own LoadState (idle → loading →
success | failed):

  snapshot slot — current Snapshot (+ the EntityCollection on mount/refresh)
  history slot  — current TimeSeries for (selection, range)

Both may be in flight at the same time.

STALE COMPLETIONS
─────────────────
There is no cancellation. Every dispatch takes a ticket: a per-slot sequence
number plus the Selection (and, for history, the range) at dispatch time.
When the call returns, its result is applied only if the ticket is still the
newest for that slot AND its Selection equals the current Selection.
Anything else is logged and dropped, so a slow answer for country A can
never overwrite the answer for country B that the user picked afterwards.

FAILURE POLICY
──────────────
  mount / refresh   both-or-neither: snapshot + entity list are joined, a
                    failure of either publishes nothing and raises a
                    "Failed to fetch data" notification. Only a newer mount
                    supersedes a country-list failure; a selection made
                    meanwhile does not hide it.
  select            the previous Snapshot stays visible; a notification
                    naming the scope is raised.
  history           the series is cleared to an empty FAILED series (logged
                    at ERROR, whereas a genuine empty answer is a WARNING).

Nothing is retried automatically. Every failure leaves the orchestrator in a
state the next event can move out of.

The provider is anything with the DiseaseShClient coroutine methods
get_snapshot(scope), get_entities() and get_history(scope, range), each
raising ProviderError on failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from covid_tracker.core.config import settings
from covid_tracker.models.stats import (
    GLOBAL_SCOPE,
    HistoryRange,
    LoadState,
    Notification,
    Selection,
    Snapshot,
    TimeSeries,
)
from covid_tracker.services.provider_client import ProviderError
from covid_tracker.services.timeseries import failed_series, normalize_history

logger = logging.getLogger(__name__)

INITIAL_LOAD_ERROR = "Failed to fetch data. Please try again later."
GLOBAL_LOAD_ERROR = "Failed to fetch global data."


def selection_load_error(selection: Selection) -> str:
    if selection.is_global:
        return GLOBAL_LOAD_ERROR
    return f"Failed to fetch data for {selection.scope}."


@dataclass(frozen=True)
class _Ticket:
    seq: int
    selection: Selection
    history_range: Optional[HistoryRange] = None


class FetchOrchestrator:
    """Coordinates provider calls and publishes Snapshot / EntityCollection / TimeSeries."""

    def __init__(self, provider, history_range: Optional[HistoryRange] = None) -> None:
        self._provider = provider

        self._selection = Selection()
        self._history_range = history_range or settings.default_history_range

        self._snapshot: Optional[Snapshot] = None
        self._entities: Mapping[str, Snapshot] = MappingProxyType({})
        self._history = TimeSeries(scope=GLOBAL_SCOPE, range=self._history_range)

        self._snapshot_state = LoadState.IDLE
        self._history_state = LoadState.IDLE
        self._notification: Optional[Notification] = None

        self._snapshot_seq = 0
        self._history_seq = 0
        self._entities_seq = 0

    # ── Read-only views ─────────────────────────────────────────────────────

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def history_range(self) -> HistoryRange:
        return self._history_range

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def entities(self) -> Mapping[str, Snapshot]:
        return self._entities

    @property
    def history(self) -> TimeSeries:
        return self._history

    @property
    def snapshot_state(self) -> LoadState:
        return self._snapshot_state

    @property
    def history_state(self) -> LoadState:
        return self._history_state

    @property
    def loading(self) -> bool:
        return LoadState.LOADING in (self._snapshot_state, self._history_state)

    @property
    def notification(self) -> Optional[Notification]:
        return self._notification

    # ── Events ──────────────────────────────────────────────────────────────

    async def mount(self) -> None:
        """Initial load: snapshot + entity list (joined) alongside the history fetch."""
        await asyncio.gather(self._load_initial(), self._load_history())

    async def select(self, selection: Selection, history_range: Optional[HistoryRange] = None) -> None:
        """Replace the Selection (and optionally the range), then refetch snapshot + history."""
        self._selection = selection
        if history_range is not None:
            self._history_range = history_range
        logger.info("Selection changed to %s (range=%s)", selection.scope, self._history_range.value)
        await asyncio.gather(self._load_snapshot(), self._load_history())

    async def set_range(self, history_range: HistoryRange) -> None:
        """Change the history window for the current Selection. The snapshot is untouched."""
        self._history_range = history_range
        await self._load_history()

    def dismiss_notification(self) -> None:
        self._notification = None

    # ── Tickets ─────────────────────────────────────────────────────────────

    def _snapshot_ticket(self) -> _Ticket:
        self._snapshot_seq += 1
        self._snapshot_state = LoadState.LOADING
        return _Ticket(seq=self._snapshot_seq, selection=self._selection)

    def _history_ticket(self) -> _Ticket:
        self._history_seq += 1
        self._history_state = LoadState.LOADING
        return _Ticket(seq=self._history_seq, selection=self._selection, history_range=self._history_range)

    def _snapshot_current(self, ticket: _Ticket) -> bool:
        return ticket.seq == self._snapshot_seq and ticket.selection == self._selection

    def _history_current(self, ticket: _Ticket) -> bool:
        return (
            ticket.seq == self._history_seq
            and ticket.selection == self._selection
            and ticket.history_range == self._history_range
        )

    # ── Loaders ─────────────────────────────────────────────────────────────

    async def _load_initial(self) -> None:
        ticket = self._snapshot_ticket()
        self._entities_seq += 1
        entities_seq = self._entities_seq
        scope = ticket.selection.scope
        snapshot, entities = await asyncio.gather(
            self._provider.get_snapshot(scope),
            self._provider.get_entities(),
            return_exceptions=True,
        )
        for result in (snapshot, entities):
            if isinstance(result, BaseException) and not isinstance(result, ProviderError):
                raise result

        # The entity list does not depend on the Selection; only a newer
        # mount/refresh supersedes it.
        entities_current = entities_seq == self._entities_seq
        snapshot_failed = isinstance(snapshot, ProviderError)
        entities_failed = isinstance(entities, ProviderError)

        if snapshot_failed or entities_failed:
            snapshot_current = self._snapshot_current(ticket)
            if not (snapshot_current or (entities_failed and entities_current)):
                logger.info("Discarding stale initial-load failure (seq=%d)", ticket.seq)
                return
            logger.error("Error fetching data: %s", snapshot if snapshot_failed else entities)
            if snapshot_current:
                self._snapshot_state = LoadState.FAILED
            self._notification = Notification(message=INITIAL_LOAD_ERROR)
            return

        if entities_current:
            self._entities = MappingProxyType(dict(entities))
        if not self._snapshot_current(ticket):
            logger.info("Discarding stale initial snapshot for %s (seq=%d)", scope, ticket.seq)
            return
        self._snapshot = snapshot
        self._snapshot_state = LoadState.SUCCESS
        logger.info("Loaded %s snapshot and %d entities", scope, len(entities))

    async def _load_snapshot(self) -> None:
        ticket = self._snapshot_ticket()
        scope = ticket.selection.scope
        try:
            snapshot = await self._provider.get_snapshot(scope)
        except ProviderError as exc:
            if not self._snapshot_current(ticket):
                logger.info("Discarding stale snapshot failure for %s (seq=%d)", scope, ticket.seq)
                return
            logger.error("Error fetching snapshot for %s: %s", scope, exc)
            self._snapshot_state = LoadState.FAILED
            self._notification = Notification(message=selection_load_error(ticket.selection), scope=scope)
            return

        if not self._snapshot_current(ticket):
            logger.info("Discarding stale snapshot for %s (seq=%d)", scope, ticket.seq)
            return
        self._snapshot = snapshot
        self._snapshot_state = LoadState.SUCCESS

    async def _load_history(self) -> None:
        ticket = self._history_ticket()
        scope = ticket.selection.scope
        history_range = ticket.history_range
        try:
            payload = await self._provider.get_history(scope, history_range)
        except ProviderError as exc:
            if not self._history_current(ticket):
                logger.info("Discarding stale history failure for %s (seq=%d)", scope, ticket.seq)
                return
            logger.error("Error fetching historical data for %s (range=%s): %s", scope, history_range.value, exc)
            self._history = failed_series(scope, history_range)
            self._history_state = LoadState.FAILED
            return

        if not self._history_current(ticket):
            logger.info("Discarding stale history for %s (seq=%d)", scope, ticket.seq)
            return
        series = normalize_history(payload, scope, history_range)
        if not series.points:
            logger.warning("No historical data available for %s in range %s", scope, history_range.value)
        self._history = series
        self._history_state = LoadState.SUCCESS
