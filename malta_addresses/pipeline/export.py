"""JSON and CSV export of aggregated records."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from malta_addresses.common.constants import RECORD_FIELDS
from malta_addresses.common.fs import write_csv, write_json
from malta_addresses.common.models import AggregatedRecord


def _serialize_row(record: AggregatedRecord) -> dict:
    out = {}
    for key, value in record.to_dict().items():
        out[key] = "" if value is None else value
    return out


def write_records_json(path: Path, records: Iterable[AggregatedRecord]) -> Path:
    write_json(path, [record.to_dict() for record in records], sort_keys=False)
    return path


def write_records_csv(path: Path, records: Iterable[AggregatedRecord]) -> Path:
    write_csv(path, list(RECORD_FIELDS), (_serialize_row(record) for record in records), with_bom=True)
    return path
