"""
Tests for Paginator.fetch_all.
"""

import asyncio

import httpx
import pytest

from channeladvisor.errors import AuthError, ChannelAdvisorError, ErrorKind
from channeladvisor.rest import Paginator
from channeladvisor.services import Fulfillment

from conftest import PRODUCTS_URL, FakeChannelAdvisor, make_records


def _skips(fake: FakeChannelAdvisor):
    return sorted(int(r.url.params.get("$skip", 0)) for r in fake.data_requests)


class TestPageSizeFromLink:
    """Tests for reading the server page size from the next link."""

    def setup_method(self):
        self.paginator = Paginator(fetcher=None)

    def test_skip_parameter(self):
        link = "https://api.test/v1/Products?$skip=100"
        assert self.paginator.page_size_from_link(link) == 100

    def test_skip_among_other_parameters(self):
        link = "https://api.test/v1/Products?$filter=IsActive%20eq%20true&$count=true&$skip=50"
        assert self.paginator.page_size_from_link(link) == 50

    def test_missing_skip_uses_minimum(self):
        link = "https://api.test/v1/Products?$top=10"
        assert self.paginator.page_size_from_link(link) == 20

    def test_unparseable_skip_uses_minimum(self):
        link = "https://api.test/v1/Products?$skip=abc"
        assert self.paginator.page_size_from_link(link) == 20

    def test_zero_skip_uses_minimum(self):
        link = "https://api.test/v1/Products?$skip=0"
        assert self.paginator.page_size_from_link(link) == 20


class TestFetchAll:
    """Tests for fetching complete collections."""

    def test_single_page_issues_one_call(self, make_client):
        fake = FakeChannelAdvisor(make_records(7))
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == 7
        assert len(fake.data_requests) == 1

    def test_empty_collection(self, make_client):
        fake = FakeChannelAdvisor([])
        client = make_client(fake)

        assert asyncio.run(client.get_all(PRODUCTS_URL)) == []
        assert len(fake.data_requests) == 1

    def test_partial_last_page(self, make_client):
        """57 records in pages of 20: page 1 then pages 2 and 3."""
        fake = FakeChannelAdvisor(make_records(57), page_size=20)
        client = make_client(fake)

        items = asyncio.run(client.get_all(f"{PRODUCTS_URL}?$filter=IsActive eq true"))

        assert len(items) == 57
        assert sorted(item["ID"] for item in items) == list(range(1, 58))
        assert _skips(fake) == [0, 20, 40]
        first = fake.data_requests[0]
        assert first.url.params["$count"] == "true"
        assert first.url.params["$filter"] == "IsActive eq true"
        assert "$skip" not in first.url.params
        assert all(
            "$count" not in r.url.params and r.url.params["$filter"] == "IsActive eq true"
            for r in fake.data_requests[1:]
        )

    @pytest.mark.parametrize("total", [40, 100, 200])
    def test_exact_division_returns_total_count(self, make_client, total):
        fake = FakeChannelAdvisor(make_records(total), page_size=20)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == total
        assert len({item["ID"] for item in items}) == total
        assert len(fake.data_requests) == total // 20

    def test_exact_division_stops_at_last_page(self, make_client):
        fake = FakeChannelAdvisor(make_records(40), page_size=20)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == 40
        assert _skips(fake) == [0, 20]

    def test_server_page_size_is_used(self, make_client):
        fake = FakeChannelAdvisor(make_records(250), page_size=100)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == 250
        assert _skips(fake) == [0, 100, 200]

    def test_items_merged_in_page_order(self, make_client):
        fake = FakeChannelAdvisor(make_records(95), page_size=20)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert [item["ID"] for item in items] == list(range(1, 96))

    def test_records_after_short_page_are_discarded(self, make_client):
        """A short page ends the data even if later pages return records."""
        fake = FakeChannelAdvisor(make_records(80), page_size=20)
        client = make_client(fake)
        original = fake._collection

        def short_third_page(request):
            if request.url.params.get("$skip") == "40":
                return httpx.Response(200, json={"Value": fake.records[40:45]})
            return original(request)

        fake._collection = short_third_page

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert [item["ID"] for item in items] == list(range(1, 46))
        assert _skips(fake) == [0, 20, 40, 60]

    def test_first_page_failure_propagates(self, make_client):
        fake = FakeChannelAdvisor(make_records(57))
        fake.fail(0, 404)
        client = make_client(fake)

        with pytest.raises(ChannelAdvisorError) as exc_info:
            asyncio.run(client.get_all(PRODUCTS_URL))

        assert exc_info.value.kind is ErrorKind.CLIENT_ERROR
        assert len(fake.data_requests) == 1

    def test_failed_page_fails_whole_fetch(self, make_client):
        fake = FakeChannelAdvisor(make_records(57))
        fake.fail(40, 500)
        client = make_client(fake)

        with pytest.raises(ChannelAdvisorError) as exc_info:
            asyncio.run(client.get_all(PRODUCTS_URL))

        assert exc_info.value.kind is ErrorKind.CLIENT_ERROR
        assert exc_info.value.status_code == 500
        assert client.throttle.in_flight == 0

    def test_transient_page_failure_is_retried(self, make_client, sleep):
        fake = FakeChannelAdvisor(make_records(57))
        fake.fail(20, 503, 503)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == 57
        assert sleep.delays == [2.0, 4.0]

    def test_token_expiry_mid_sequence_refreshes_once(self, make_client):
        fake = FakeChannelAdvisor(make_records(100), page_size=20)
        fake.expire_after = 1
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(items) == 100
        assert len(fake.token_requests) == 1
        assert client.tokens.refresh_count == 1
        retried = [
            r for r in fake.data_requests[1:]
            if r.headers["Authorization"] == "Bearer token-2"
        ]
        assert len(retried) == 4

    def test_refresh_failure_mid_sequence(self, make_client):
        fake = FakeChannelAdvisor(make_records(100), page_size=20)
        fake.expire_after = 1
        fake.token_error = "invalid_grant"
        client = make_client(fake)

        with pytest.raises(AuthError):
            asyncio.run(client.get_all(PRODUCTS_URL))

        assert len(fake.token_requests) == 1
        assert client.throttle.in_flight == 0

    def test_model_items(self, make_client):
        records = [{"ID": i, "OrderID": 7, "TrackingNumber": f"T{i}"} for i in range(1, 4)]
        fake = FakeChannelAdvisor(records)
        client = make_client(fake)

        items = asyncio.run(client.get_all(PRODUCTS_URL, model=Fulfillment))

        assert [item.tracking_number for item in items] == ["T1", "T2", "T3"]

    def test_cancellation_releases_slots(self, make_client):
        fake = FakeChannelAdvisor(make_records(200), page_size=20)
        fake.delay = 0.05
        client = make_client(fake)

        async def main():
            task = asyncio.ensure_future(client.get_all(PRODUCTS_URL))
            await asyncio.sleep(0.08)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            return client.throttle.in_flight, client.throttle.waiting

        assert asyncio.run(main()) == (0, 0)
