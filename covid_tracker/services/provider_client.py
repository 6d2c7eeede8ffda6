"""
provider_client.py — Read-only client for the disease.sh v3 COVID-19 API.

This is the only network boundary in the service. Every method returns a
validated model from covid_tracker.models.stats or raises ProviderError;
raw JSON never leaves this module.

Endpoints used:
  GET /all                              → global Snapshot
  GET /countries/{name}                 → one country's Snapshot
  GET /countries                        → every country's Snapshot
  GET /historical/all?lastdays=N        → {cases, deaths, recovered}
  GET /historical/{name}?lastdays=N     → {country, timeline: {cases, deaths, recovered}}

Failure mapping: timeouts, connection errors, non-2xx statuses, bodies
that are not JSON and bodies that fail model validation all become
ProviderError. There is no retry here; the dashboard re-triggers on the
next user event.

To swap to a different provider: implement the same three public
methods (get_snapshot / get_entities / get_history) and hand the new
client to FetchOrchestrator.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from covid_tracker.core.config import settings
from covid_tracker.models.stats import GLOBAL_SCOPE, HistoricalPayload, HistoryRange, Snapshot

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Any failure of an outbound provider call: transport, status or payload shape."""

    def __init__(self, message: str, scope: Optional[str] = None) -> None:
        super().__init__(message)
        self.scope = scope


class DiseaseShClient:
    """
    Thin async wrapper around the disease.sh REST API.

    A fresh httpx.AsyncClient is opened per call. Pass `transport` to route
    requests somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.provider_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.transport = transport

    # ── Public API ──────────────────────────────────────────────────────────

    async def get_snapshot(self, scope: str = GLOBAL_SCOPE) -> Snapshot:
        """Current counters for the world (scope "Global") or one named country."""
        if scope == GLOBAL_SCOPE:
            data = await self._get_json("/all", scope=scope)
            if isinstance(data, dict):
                data = {**data, "scope": GLOBAL_SCOPE}
        else:
            data = await self._get_json(f"/countries/{_path_segment(scope)}", scope=scope)
        return self._parse(Snapshot, data, scope)

    async def get_entities(self) -> dict[str, Snapshot]:
        """
        Current counters for every country, keyed by country name.

        Rows that fail validation are skipped with a warning; a body that is
        not a list at all is a ProviderError. Provider order is preserved.
        """
        data = await self._get_json("/countries")
        if not isinstance(data, list):
            raise ProviderError(f"expected a list of countries, got {type(data).__name__}")

        collection: dict[str, Snapshot] = {}
        for row in data:
            try:
                snap = Snapshot.model_validate(row)
            except ValidationError as exc:
                logger.warning("Skipping malformed country row: %s", _first_error(exc))
                continue
            if snap.scope in collection:
                logger.warning("Duplicate country %r in provider list, keeping the first", snap.scope)
                continue
            collection[snap.scope] = snap
        return collection

    async def get_history(self, scope: str, history_range: HistoryRange) -> HistoricalPayload:
        """Historical cumulative counters for a scope over the requested window."""
        target = "all" if scope == GLOBAL_SCOPE else _path_segment(scope)
        data = await self._get_json(
            f"/historical/{target}",
            params={"lastdays": history_range.value},
            scope=scope,
        )
        return self._parse(HistoricalPayload, data, scope)

    # ── Internals ───────────────────────────────────────────────────────────

    async def _get_json(
        self,
        path: str,
        params: Optional[dict[str, str]] = None,
        scope: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    url,
                    params=params,
                    headers={"User-Agent": settings.provider_user_agent, "Accept": "application/json"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise ProviderError(
                    f"provider returned {exc.response.status_code} for {path}: {exc.response.text[:200]}",
                    scope=scope,
                ) from exc
            except httpx.HTTPError as exc:
                raise ProviderError(
                    f"provider request failed for {path}: {exc.__class__.__name__}: {exc}",
                    scope=scope,
                ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"provider returned non-JSON body for {path}", scope=scope) from exc

    @staticmethod
    def _parse(model, data: Any, scope: Optional[str]):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ProviderError(
                f"unexpected {model.__name__} payload: {_first_error(exc)}",
                scope=scope,
            ) from exc


def _path_segment(name: str) -> str:
    return quote(name, safe="")


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
