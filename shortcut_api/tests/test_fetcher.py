import asyncio

import httpx
import pytest

from conftest import FakeFetcher, site_url

from shortcuts.fetcher import FetchError, HttpxFetcher, fetch_collections
from shortcuts.namespaces import describe_namespace, resolve_namespaces


class TestFetchCollections:
    def test_fetches_and_parses_each_namespace(self, fetcher, run):
        descriptors, _ = resolve_namespaces(["o", "de"])
        outcomes = run(fetch_collections(descriptors.values(), fetcher))
        assert set(outcomes) == {"o", "de"}
        assert outcomes["o"].parsed
        assert "g 1" in outcomes["o"].descriptor.shortcuts
        assert "db 2" in outcomes["de"].descriptor.shortcuts
        assert outcomes["de"].descriptor.priority == 2

    def test_failures_degrade_single_namespaces(self, run):
        fetcher = FakeFetcher({
            site_url("o"): "g 0: https://google.com/\n",
            site_url("de"): "g 0: [broken\n",
            site_url("fr"): FetchError("connection reset"),
            site_url("it"): 500,
        })
        descriptors, _ = resolve_namespaces(["o", "de", "fr", "it", "nl"])
        outcomes = run(fetch_collections(descriptors.values(), fetcher))

        assert outcomes["o"].parsed
        assert outcomes["o"].diagnostics == []
        kinds = {name: [d.kind for d in outcomes[name].diagnostics] for name in ["de", "fr", "it", "nl"]}
        assert kinds == {
            "de": ["parse_failed"],
            "fr": ["fetch_failed"],
            "it": ["fetch_failed"],
            "nl": ["fetch_failed"],
        }
        for name in ["de", "fr", "it", "nl"]:
            assert not outcomes[name].parsed
            assert outcomes[name].descriptor.shortcuts == {}

    def test_defective_namespace_is_not_fetched(self, fetcher, run):
        broken = describe_namespace({"github": "."}, priority=1)
        outcomes = run(fetch_collections([broken], fetcher))
        assert fetcher.calls == []
        assert not outcomes[broken.name].parsed

    def test_results_keyed_by_namespace_not_completion_order(self, run):
        class SlowFirstFetcher(FakeFetcher):
            async def fetch(self, url, reload=False):
                if url == site_url("o"):
                    await asyncio.sleep(0.01)
                return await super().fetch(url, reload)

        fetcher = SlowFirstFetcher({
            site_url("o"): "a 0: https://o.test/\n",
            site_url("de"): "a 0: https://de.test/\n",
        })
        descriptors, _ = resolve_namespaces(["o", "de"])
        outcomes = run(fetch_collections(descriptors.values(), fetcher, concurrency=2))
        assert outcomes["o"].descriptor.shortcuts["a 0"].url == "https://o.test/"
        assert outcomes["de"].descriptor.shortcuts["a 0"].url == "https://de.test/"

    def test_reload_flag_is_passed_through(self, fetcher, run):
        descriptors, _ = resolve_namespaces(["o"])
        run(fetch_collections(descriptors.values(), fetcher, reload=True))
        assert fetcher.calls == [(site_url("o"), True)]


class TestHttpxFetcher:
    def _client(self, handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def test_success(self, run):
        seen = {}

        def handler(request):
            seen["cache"] = request.headers.get("cache-control")
            return httpx.Response(200, text="g 0: https://google.com/\n")

        async def go():
            async with self._client(handler) as client:
                return await HttpxFetcher(client=client).fetch("https://data.test/o.yml", reload=True)

        response = run(go())
        assert response.ok
        assert response.text.startswith("g 0")
        assert seen["cache"] == "no-cache"

    def test_non_success_status_is_returned(self, run):
        async def go():
            async with self._client(lambda request: httpx.Response(404)) as client:
                return await HttpxFetcher(client=client).fetch("https://data.test/missing.yml")

        response = run(go())
        assert response.status == 404
        assert not response.ok

    def test_transport_error_becomes_fetch_error(self, run):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async def go():
            async with self._client(handler) as client:
                return await HttpxFetcher(client=client).fetch("https://data.test/o.yml")

        with pytest.raises(FetchError):
            run(go())

    def test_invalid_url_becomes_fetch_error(self, run):
        async def go():
            async with self._client(lambda request: httpx.Response(200)) as client:
                return await HttpxFetcher(client=client).fetch("https://[::1/x")

        with pytest.raises(FetchError):
            run(go())
