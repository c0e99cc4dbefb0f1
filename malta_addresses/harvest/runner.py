"""Harvest orchestration: one context per run, all-or-nothing traversal."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from malta_addresses.common.config_loader import AppConfig
from malta_addresses.common.http import HostRateLimiter, HttpClient, host_of
from malta_addresses.common.logging import log_event, log_warning
from malta_addresses.common.models import AggregatedRecord
from malta_addresses.harvest.directory import DirectoryClient
from malta_addresses.harvest.geocode import GeocodeCache
from malta_addresses.pipeline.aggregate import TraversalCounts, aggregate


@dataclass
class RunContext:
    config: AppConfig
    client: HttpClient
    directory: DirectoryClient
    geocoder: GeocodeCache
    logger: logging.Logger

    def close(self) -> None:
        self.client.close()


def build_context(
    config: AppConfig,
    logger: logging.Logger,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> RunContext:
    host_rates = {}
    if config.directory_rate_per_sec:
        host_rates[host_of(config.directory_base_url)] = config.directory_rate_per_sec
    if config.geocode_rate_per_sec:
        host_rates[host_of(config.geocode_url)] = config.geocode_rate_per_sec

    client = HttpClient(
        timeout=config.timeout,
        retry=config.retry,
        rate_limiter=HostRateLimiter(host_rates=host_rates),
        logger=logger,
        sleep=sleep,
    )
    return RunContext(
        config=config,
        client=client,
        directory=DirectoryClient(client, config.directory_base_url),
        geocoder=GeocodeCache(client, config.geocode_url, config.api_key, logger=logger),
        logger=logger,
    )


def warn_if_geocoding_disabled(context: RunContext) -> None:
    if context.config.geocoding_enabled:
        return
    log_warning(
        context.logger,
        "Google Geocoding API key has not been set; latitude and longitude will not be loaded",
        event="GEOCODING_DISABLED",
        status="degraded",
        error_code="CONFIG_MISSING",
    )


def run_harvest(context: RunContext) -> tuple[list[AggregatedRecord], dict[str, int]]:
    warn_if_geocoding_disabled(context)
    counts = TraversalCounts()
    started = time.monotonic()
    records = aggregate(context.directory, context.geocoder, context.logger, counts)

    summary = counts.to_dict()
    summary["geocode_cache_entries"] = len(context.geocoder)
    summary["geocode_cache_hits"] = context.geocoder.hits
    summary["geocode_cache_misses"] = context.geocoder.misses
    log_event(
        context.logger,
        "harvest complete",
        stage="harvest",
        event="HARVEST_END",
        status="ok",
        rows_out=len(records),
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return records, summary
