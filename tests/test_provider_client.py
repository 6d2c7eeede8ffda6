"""
test_provider_client.py — DiseaseShClient against httpx.MockTransport.

No network: every request is answered by a handler function, which also
lets us assert on the URLs the client builds.
"""

import httpx
import pytest

from covid_tracker.models.stats import HistoryRange
from covid_tracker.services.provider_client import DiseaseShClient, ProviderError

BASE = "https://provider.test/v3/covid-19"

_GLOBAL = {"updated": 1700000000000, "cases": 1000, "todayCases": 5, "deaths": 50,
           "todayDeaths": 1, "recovered": 800}
_GERMANY = {"country": "Germany", "countryInfo": {"flag": "de.png"}, "cases": 500,
            "todayCases": 0, "deaths": 10, "todayDeaths": 0, "recovered": 400}


def _client(handler) -> DiseaseShClient:
    return DiseaseShClient(base_url=BASE, timeout=1.0, transport=httpx.MockTransport(handler))


class TestSnapshots:

    async def test_global_snapshot(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=_GLOBAL)

        snap = await _client(handler).get_snapshot()
        assert seen == ["/v3/covid-19/all"]
        assert snap.scope == "Global"
        assert (snap.cases, snap.deaths, snap.recovered, snap.today_cases) == (1000, 50, 800, 5)

    async def test_country_snapshot_escapes_name(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.raw_path.decode())
            return httpx.Response(200, json={**_GERMANY, "country": "Bosnia and Herzegovina"})

        snap = await _client(handler).get_snapshot("Bosnia and Herzegovina")
        assert seen == ["/v3/covid-19/countries/Bosnia%20and%20Herzegovina"]
        assert snap.scope == "Bosnia and Herzegovina"

    async def test_http_error_becomes_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Country not found"})

        with pytest.raises(ProviderError) as excinfo:
            await _client(handler).get_snapshot("Atlantis")
        assert excinfo.value.scope == "Atlantis"
        assert "404" in str(excinfo.value)

    async def test_transport_error_becomes_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(ProviderError):
            await _client(handler).get_snapshot()

    async def test_non_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(ProviderError):
            await _client(handler).get_snapshot()

    async def test_invalid_shape(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"cases": "lots"})

        with pytest.raises(ProviderError):
            await _client(handler).get_snapshot()


class TestEntities:

    async def test_collection_keyed_by_name_in_provider_order(self):
        rows = [_GERMANY, {**_GERMANY, "country": "Austria", "countryInfo": {"flag": "at.png"}}]

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v3/covid-19/countries"
            return httpx.Response(200, json=rows)

        coll = await _client(handler).get_entities()
        assert list(coll) == ["Germany", "Austria"]
        assert coll["Austria"].flag_ref == "at.png"

    async def test_malformed_rows_skipped(self):
        rows = [_GERMANY, {"country": "Broken", "cases": 1, "deaths": 9}, "junk"]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=rows)

        coll = await _client(handler).get_entities()
        assert list(coll) == ["Germany"]

    async def test_non_list_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "oops"})

        with pytest.raises(ProviderError):
            await _client(handler).get_entities()


class TestHistory:

    async def test_global_history(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.url.path, dict(request.url.params)))
            return httpx.Response(200, json={"cases": {"1/1/24": 10}, "deaths": {}, "recovered": {}})

        payload = await _client(handler).get_history("Global", HistoryRange.LAST_7)
        assert seen == [("/v3/covid-19/historical/all", {"lastdays": "7"})]
        assert payload.cases == {"1/1/24": 10}

    async def test_country_history_all_time(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.url.path, dict(request.url.params)))
            return httpx.Response(200, json={
                "country": "Italy",
                "timeline": {"cases": {"1/1/24": 3}, "deaths": {"1/1/24": 1}, "recovered": {}},
            })

        payload = await _client(handler).get_history("Italy", HistoryRange.ALL)
        assert seen == [("/v3/covid-19/historical/Italy", {"lastdays": "all"})]
        assert payload.deaths == {"1/1/24": 1}

    async def test_bad_date_keys(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"cases": {"not-a-date": 1}})

        with pytest.raises(ProviderError):
            await _client(handler).get_history("Global", HistoryRange.LAST_30)
