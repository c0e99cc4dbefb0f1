"""Run report."""

from __future__ import annotations

from pathlib import Path

from malta_addresses.common.fs import write_json
from malta_addresses.common.time_utils import utc_timestamp_iso


def write_run_summary(
    data_dir: Path,
    run_id: str,
    *,
    geocoding_enabled: bool,
    counts: dict[str, int],
    outputs: list[Path],
) -> Path:
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "completed_at": utc_timestamp_iso(),
        "status": "success",
        "geocoding_enabled": geocoding_enabled,
        "counts": counts,
        "outputs": [str(path) for path in outputs],
    }
    write_json(summary_path, payload)
    return summary_path
