"""Depth-first town -> street -> address traversal with geocode enrichment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from malta_addresses.common.address_format import format_address_key
from malta_addresses.common.logging import log_event
from malta_addresses.common.models import AggregatedRecord
from malta_addresses.harvest.directory import DirectoryClient
from malta_addresses.harvest.geocode import GeocodeCache


@dataclass
class TraversalCounts:
    towns: int = 0
    streets: int = 0
    records: int = 0
    with_coordinates: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "towns": self.towns,
            "streets": self.streets,
            "records": self.records,
            "with_coordinates": self.with_coordinates,
        }


def iter_records(
    directory: DirectoryClient,
    geocoder: GeocodeCache,
    logger: logging.Logger,
    counts: TraversalCounts | None = None,
) -> Iterator[AggregatedRecord]:
    """Yield records in upstream town x street x address order.

    Fetch failures propagate out of the generator and end the traversal.
    """
    counts = counts if counts is not None else TraversalCounts()
    towns = directory.list_towns()
    counts.towns = len(towns)

    for town_index, town in enumerate(towns, start=1):
        log_event(logger, f"[{town_index}/{len(towns)}] [TOWN] {town.name}", stage="aggregate", event="TOWN")
        streets = directory.list_streets(town.id)
        counts.streets += len(streets)

        for street_index, street in enumerate(streets, start=1):
            log_event(
                logger,
                f"[{street_index}/{len(streets)}] [STREET] {street.name}",
                stage="aggregate",
                event="STREET",
            )
            for address in directory.list_addresses(street.id):
                geocode = geocoder.resolve(format_address_key(address))
                counts.records += 1
                if geocode.has_coordinates:
                    counts.with_coordinates += 1
                yield AggregatedRecord(address=address, geocode=geocode)


def aggregate(
    directory: DirectoryClient,
    geocoder: GeocodeCache,
    logger: logging.Logger,
    counts: TraversalCounts | None = None,
) -> list[AggregatedRecord]:
    records = list(iter_records(directory, geocoder, logger, counts))
    log_event(logger, "aggregation complete", stage="aggregate", event="AGGREGATE_END", rows_out=len(records))
    return records
