"""CLI entrypoint for the MaltaPost address harvest."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Callable

from malta_addresses.common.config_loader import load_app_config
from malta_addresses.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from malta_addresses.common.errors import PipelineError
from malta_addresses.common.ids import generate_run_id
from malta_addresses.common.logging import build_logger, close_logger, log_event
from malta_addresses.harvest.runner import build_context, run_harvest
from malta_addresses.pipeline.export import write_records_csv, write_records_json
from malta_addresses.pipeline.reports import write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--env-file", default=".env")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, *, sleep: Callable[[float], None] = time.sleep) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)

    try:
        config = load_app_config(
            Path(args.config_dir),
            overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
            env_file=Path(args.env_file) if args.env_file else None,
        )
        context = build_context(config, logger, sleep=sleep)
        log_event(logger, "Starting data aggregation...", run_id=run_id, event="RUN_START", status="ok")
        try:
            records, counts = run_harvest(context)
        finally:
            context.close()

        # Nothing is written until the whole traversal has succeeded.
        out_dir = data_dir / "out"
        outputs = [
            write_records_json(out_dir / config.json_filename, records),
            write_records_csv(out_dir / config.csv_filename, records),
        ]
        write_run_summary(
            data_dir,
            run_id,
            geocoding_enabled=config.geocoding_enabled,
            counts=counts,
            outputs=outputs,
        )
        log_event(
            logger,
            "Data aggregation completed.",
            run_id=run_id,
            event="RUN_END",
            status="ok",
            rows_out=len(records),
        )
        return EXIT_SUCCESS
    except PipelineError as exc:
        logger.exception(
            "run failed: %s",
            exc,
            extra={"run_id": run_id, "event": "RUN_FAIL", "status": "error", "error_code": exc.error_code},
        )
        return EXIT_HARD_FAIL
    except Exception:
        logger.exception(
            "unexpected failure",
            extra={"run_id": run_id, "event": "RUN_FAIL", "status": "error", "error_code": "UNEXPECTED_ERROR"},
        )
        return EXIT_HARD_FAIL
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    return run_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
