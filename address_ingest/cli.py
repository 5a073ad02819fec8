"""CLI entrypoint for the address ingestion pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from address_ingest.common.config_loader import ConfigBundle, load_all_configs
from address_ingest.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS, STAGES
from address_ingest.common.errors import ConfigError, PipelineError
from address_ingest.common.ids import generate_run_id
from address_ingest.common.logging import build_logger, close_logger, log_event
from address_ingest.common.names import make_name_generator
from address_ingest.common.store import open_store
from address_ingest.fetch.fetcher import run_fetch
from address_ingest.pipeline.index import create_index
from address_ingest.pipeline.queries import search, suggest
from address_ingest.pipeline.reports import write_run_summary
from address_ingest.pipeline.runner import build_gate, build_http_client, purge_artifacts, run_pipeline
from address_ingest.pipeline.transform import run_stage

QUERY_COMMANDS = ("suggest", "search")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "reset", *QUERY_COMMANDS])
    parser.add_argument("text", nargs="?", default=None, help="address text for suggest/search")
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default=None)
    parser.add_argument("--redis-url", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--force", action="store_true", help="clear the completion flag before loading")
    parser.add_argument("--purge", action="store_true", help="with reset, also delete extracts and staging")
    return parser.parse_args(argv)


def _apply_overrides(bundle: ConfigBundle, args: argparse.Namespace) -> ConfigBundle:
    pipeline = dict(bundle.pipeline)
    if args.data_dir:
        pipeline["data_dir"] = args.data_dir
    if args.redis_url:
        pipeline["store"] = {**pipeline["store"], "url": args.redis_url}
    return replace(bundle, pipeline=pipeline)


def execute_command(args: argparse.Namespace, bundle: ConfigBundle, logger, run_id: str) -> int:
    cfg = bundle.pipeline
    if args.command == "fetch":
        with build_http_client(bundle) as http:
            run_fetch(bundle.catalog, bundle.data_dir, http, logger, run_id)
        return EXIT_SUCCESS

    if args.command == "stage":
        run_stage(
            bundle.catalog,
            bundle.data_dir,
            bundle.staging_path,
            make_name_generator(),
            logger=logger,
            run_id=run_id,
            key=cfg["staging"]["key"],
            encoding=cfg["csv"]["encoding"],
            delimiter=cfg["csv"]["delimiter"],
        )
        return EXIT_SUCCESS

    if args.command in QUERY_COMMANDS and not args.text:
        raise ConfigError(f"{args.command} needs address text")

    with open_store(bundle.store_url) as client:
        if args.command == "index":
            create_index(client, logger=logger, run_id=run_id)
        elif args.command == "load":
            with build_http_client(bundle) as http:
                result = run_pipeline(bundle, client, http, logger=logger, run_id=run_id, force=args.force)
            write_run_summary(bundle.data_dir, run_id, result)
        elif args.command == "reset":
            build_gate(bundle, client).reset()
            removed = purge_artifacts(bundle) if args.purge else []
            log_event(
                logger,
                f"completion flag cleared, removed {len(removed)} local artifacts",
                run_id=run_id,
                event="RESET",
                status="ok",
            )
        elif args.command == "suggest":
            print(json.dumps(suggest(client, args.text), ensure_ascii=False))
        elif args.command == "search":
            print(json.dumps(search(client, args.text), ensure_ascii=False))
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    bundle = _apply_overrides(
        load_all_configs(
            Path(args.config_dir),
            overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
        ),
        args,
    )
    logger = build_logger(run_id, data_dir=bundle.data_dir, level=args.log_level)
    try:
        return execute_command(args, bundle, logger, run_id)
    except PipelineError as exc:
        log_event(
            logger,
            f"{args.command} failed: {exc}",
            run_id=run_id,
            stage=args.command,
            event="COMMAND_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    except Exception as exc:
        log_event(
            logger,
            f"unexpected failure in {args.command}: {exc}",
            run_id=run_id,
            stage=args.command,
            event="COMMAND_FAIL",
            status="error",
            error_code="UNEXPECTED_ERROR",
        )
        return EXIT_HARD_FAIL
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
