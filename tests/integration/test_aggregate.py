from __future__ import annotations

import logging

import pytest

from malta_addresses.common.http import RetriesExhaustedError
from malta_addresses.harvest.directory import DirectoryClient
from malta_addresses.harvest.geocode import GeocodeCache
from malta_addresses.pipeline.aggregate import TraversalCounts, aggregate, iter_records

BASE_URL = "https://directory.test/api/"
GEOCODE_URL = "https://geocoder.test/json"


class FakeUpstream:
    """Answers fetch() from in-memory towns/streets/addresses."""

    def __init__(self, towns, streets, addresses, locations=None, fail_on=None):
        self.towns = towns
        self.streets = streets
        self.addresses = addresses
        self.locations = locations or {}
        self.fail_on = fail_on
        self.calls: list[tuple[str, dict | None]] = []

    def fetch(self, url: str, params=None):
        self.calls.append((url, params))
        if self.fail_on is not None and self.fail_on == (url, params):
            raise RetriesExhaustedError(f"Maximum retries reached for {url}")
        if url == f"{BASE_URL}GetAllTowns":
            return self.towns
        if url == f"{BASE_URL}GetAllStreets":
            return self.streets.get(params["townId"], [])
        if url == f"{BASE_URL}GetAddresses":
            return self.addresses.get(params["streetId"], [])
        if url == GEOCODE_URL:
            location = self.locations.get(params["address"])
            if location is None:
                return {"results": []}
            return {"results": [{"geometry": {"location": {"lat": location[0], "lng": location[1]}}}]}
        raise AssertionError(f"unexpected url {url}")

    def geocode_calls(self):
        return [params["address"] for url, params in self.calls if url == GEOCODE_URL]


def _run(upstream: FakeUpstream, api_key: str | None = None, counts=None):
    directory = DirectoryClient(upstream, BASE_URL)
    geocoder = GeocodeCache(upstream, GEOCODE_URL, api_key)
    return aggregate(directory, geocoder, logging.getLogger("test_aggregate"), counts)


@pytest.mark.integration
def test_single_address_without_geocoding():
    upstream = FakeUpstream(
        towns=[{"id": 1, "name": "A"}],
        streets={1: [{"id": 10, "name": "Main"}]},
        addresses={
            10: [{"id": 100, "houseNo": "5", "street": "Main", "postCode": "X1", "locality": "A", "country": "M"}]
        },
    )

    records = _run(upstream)

    assert [record.to_dict() for record in records] == [
        {
            "id": 100,
            "houseName": None,
            "houseAlpha": None,
            "houseNo": "5",
            "flatNo": None,
            "street": "Main",
            "postCode": "X1",
            "locality": "A",
            "country": "M",
            "latitude": None,
            "longitude": None,
        }
    ]
    assert upstream.geocode_calls() == []


@pytest.mark.integration
def test_output_order_is_depth_first_upstream_order():
    upstream = FakeUpstream(
        towns=[{"id": 2, "name": "Zebbug"}, {"id": 1, "name": "Attard"}],
        streets={
            2: [{"id": 21, "name": "Z1"}, {"id": 20, "name": "Z0"}],
            1: [{"id": 11, "name": "A1"}],
        },
        addresses={
            21: [{"id": 213, "street": "Z1"}, {"id": 211, "street": "Z1"}],
            20: [{"id": 200, "street": "Z0"}],
            11: [{"id": 112, "street": "A1"}, {"id": 111, "street": "A1"}],
        },
    )

    records = _run(upstream)

    assert [record.id for record in records] == [213, 211, 200, 112, 111]


@pytest.mark.integration
def test_empty_levels_contribute_no_records():
    upstream = FakeUpstream(
        towns=[{"id": 1, "name": "Empty town"}, {"id": 2, "name": "Town"}],
        streets={2: [{"id": 20, "name": "Empty street"}, {"id": 21, "name": "Street"}]},
        addresses={21: [{"id": 210, "street": "Street"}]},
    )
    counts = TraversalCounts()

    records = _run(upstream, counts=counts)

    assert [record.id for record in records] == [210]
    assert counts.to_dict() == {"towns": 2, "streets": 2, "records": 1, "with_coordinates": 0}


@pytest.mark.integration
def test_no_towns_yields_no_records():
    assert _run(FakeUpstream(towns=[], streets={}, addresses={})) == []


@pytest.mark.integration
def test_repeated_addresses_are_geocoded_once():
    same = {"houseNo": "5", "street": "Main", "locality": "Valletta", "country": "Malta"}
    upstream = FakeUpstream(
        towns=[{"id": 1, "name": "Valletta"}],
        streets={1: [{"id": 10, "name": "Main"}, {"id": 11, "name": "Main"}]},
        addresses={
            10: [{"id": 100, "flatNo": "1", **same}, {"id": 101, "flatNo": "2", **same}],
            11: [{"id": 110, "postCode": "VLT", **same}, {"id": 111, "houseNo": "6", "street": "Main"}],
        },
        locations={"5, Main, Valletta, Malta": (35.89, 14.51)},
    )
    counts = TraversalCounts()

    records = _run(upstream, api_key="real-key", counts=counts)

    assert upstream.geocode_calls() == ["5, Main, Valletta, Malta", "6, Main"]
    assert records[0].geocode is records[1].geocode is records[2].geocode
    assert records[0].to_dict()["latitude"] == 35.89
    assert records[3].to_dict()["latitude"] is None
    assert counts.with_coordinates == 3


@pytest.mark.integration
def test_fatal_fetch_aborts_traversal():
    upstream = FakeUpstream(
        towns=[{"id": 1, "name": "A"}, {"id": 2, "name": "B"}],
        streets={1: [{"id": 10, "name": "Main"}], 2: [{"id": 20, "name": "Other"}]},
        addresses={10: [{"id": 100, "street": "Main"}]},
        fail_on=(f"{BASE_URL}GetAllStreets", {"townId": 2}),
    )

    with pytest.raises(RetriesExhaustedError):
        _run(upstream)


@pytest.mark.integration
def test_iter_records_is_lazy():
    upstream = FakeUpstream(
        towns=[{"id": 1, "name": "A"}],
        streets={1: [{"id": 10, "name": "Main"}]},
        addresses={10: [{"id": 100, "street": "Main"}, {"id": 101, "street": "Main"}]},
    )
    directory = DirectoryClient(upstream, BASE_URL)
    geocoder = GeocodeCache(upstream, GEOCODE_URL, None)

    records = iter_records(directory, geocoder, logging.getLogger("test_aggregate"))
    assert upstream.calls == []

    assert next(records).id == 100
    assert len(upstream.calls) == 3
    assert [record.id for record in records] == [101]
