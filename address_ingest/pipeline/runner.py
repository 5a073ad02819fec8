"""Gated fetch, stage, index and load orchestration."""

from __future__ import annotations

import threading
import time
from logging import Logger
from typing import Callable

import redis

from address_ingest.common.config_loader import ConfigBundle
from address_ingest.common.errors import PipelineError
from address_ingest.common.http import HttpClient, RetryConfig, TimeoutConfig
from address_ingest.common.logging import log_event
from address_ingest.common.names import NameGenerator, make_name_generator
from address_ingest.common.time_utils import elapsed_ms
from address_ingest.fetch.fetcher import run_fetch
from address_ingest.pipeline.gate import CompletionGate
from address_ingest.pipeline.index import create_index
from address_ingest.pipeline.load import run_load
from address_ingest.pipeline.staging import staging_is_complete
from address_ingest.pipeline.transform import run_stage


def build_http_client(bundle: ConfigBundle) -> HttpClient:
    http_cfg = bundle.pipeline["http"]
    return HttpClient(
        timeout=TimeoutConfig(connect=float(http_cfg["connect_timeout"]), read=float(http_cfg["read_timeout"])),
        retry=RetryConfig(max_attempts=int(http_cfg["max_attempts"])),
    )


def build_gate(bundle: ConfigBundle, client: redis.Redis) -> CompletionGate:
    return CompletionGate(client, lease_seconds=int(bundle.pipeline["load"]["lease_seconds"]))


def _timed(logger: Logger, run_id: str, stage: str, fn: Callable[[], object]):
    started = time.monotonic()
    log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
    try:
        out = fn()
    except PipelineError as exc:
        log_event(
            logger,
            f"stage failed: {exc}",
            run_id=run_id,
            stage=stage,
            event="STAGE_FAIL",
            status="error",
            error_code=exc.error_code,
            duration_ms=elapsed_ms(started),
        )
        raise
    log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok", duration_ms=elapsed_ms(started))
    return out


def prepare_staging(
    bundle: ConfigBundle,
    http: HttpClient,
    *,
    logger: Logger,
    run_id: str,
    name_generator: NameGenerator | None = None,
) -> dict:
    """Fetch and stage unless a complete staging artifact is already on disk."""
    cfg = bundle.pipeline
    staging_path = bundle.staging_path
    if staging_is_complete(staging_path):
        log_event(
            logger,
            f"reusing staging artifact {staging_path.name}",
            run_id=run_id,
            stage="stage",
            event="STAGING_REUSED",
            status="ok",
        )
        return {"fetched_regions": [], "staged_records": None}

    if staging_path.exists():
        log_event(
            logger,
            f"discarding incomplete staging artifact {staging_path.name}",
            run_id=run_id,
            stage="stage",
            event="STAGING_DISCARDED",
            status="ok",
        )
        staging_path.unlink()

    fetched = _timed(
        logger, run_id, "fetch", lambda: run_fetch(bundle.catalog, bundle.data_dir, http, logger, run_id)
    )
    staged = _timed(
        logger,
        run_id,
        "stage",
        lambda: run_stage(
            bundle.catalog,
            bundle.data_dir,
            staging_path,
            name_generator or make_name_generator(),
            logger=logger,
            run_id=run_id,
            key=cfg["staging"]["key"],
            encoding=cfg["csv"]["encoding"],
            delimiter=cfg["csv"]["delimiter"],
        ),
    )
    return {"fetched_regions": fetched, "staged_records": staged}


def run_pipeline(
    bundle: ConfigBundle,
    client: redis.Redis,
    http: HttpClient,
    *,
    logger: Logger,
    run_id: str,
    name_generator: NameGenerator | None = None,
    force: bool = False,
) -> dict:
    gate = build_gate(bundle, client)
    if force:
        gate.reset()
    if gate.is_complete():
        log_event(logger, "load already complete, nothing to do", run_id=run_id, event="LOAD_SKIPPED", status="ok")
        return {"status": "skipped_complete"}
    if not gate.claim(run_id):
        owner = gate.lease_owner()
        log_event(
            logger,
            f"load lease held by {owner}, not starting",
            run_id=run_id,
            event="LOAD_LOCKED",
            status="ok",
        )
        return {"status": "skipped_locked", "lease_owner": owner}

    try:
        result = prepare_staging(bundle, http, logger=logger, run_id=run_id, name_generator=name_generator)
        gate.renew()
        _timed(logger, run_id, "index", lambda: create_index(client, logger=logger, run_id=run_id))
        loaded = _timed(
            logger,
            run_id,
            "load",
            lambda: run_load(
                client,
                bundle.staging_path,
                logger=logger,
                run_id=run_id,
                key=bundle.pipeline["staging"]["key"],
                progress_interval=int(bundle.pipeline["load"]["progress_interval"]),
                heartbeat=gate.renew,
            ),
        )
        gate.renew()
    except BaseException:
        gate.release()
        raise

    gate.mark_complete()
    return {"status": "loaded", "loaded_documents": loaded, **result}


def purge_artifacts(bundle: ConfigBundle) -> list[str]:
    """Delete the staging artifact and every region extract."""
    removed = []
    paths = [bundle.staging_path] + [bundle.data_dir / d.extract_name for d in bundle.catalog]
    for path in paths:
        if path.exists():
            path.unlink()
            removed.append(path.name)
    return removed


class BackgroundLoad(threading.Thread):
    """Runs the pipeline off the caller's thread; ``result`` or ``error`` is set when done."""

    def __init__(
        self,
        bundle: ConfigBundle,
        client: redis.Redis,
        *,
        logger: Logger,
        run_id: str,
        name_generator: NameGenerator | None = None,
    ) -> None:
        super().__init__(name=f"address-load-{run_id}", daemon=True)
        self.bundle = bundle
        self.client = client
        self.logger = logger
        self.run_id = run_id
        self.name_generator = name_generator
        self.result: dict | None = None
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            with build_http_client(self.bundle) as http:
                self.result = run_pipeline(
                    self.bundle,
                    self.client,
                    http,
                    logger=self.logger,
                    run_id=self.run_id,
                    name_generator=self.name_generator,
                )
        except Exception as exc:
            self.error = exc
            log_event(
                self.logger,
                f"background load failed: {exc}",
                run_id=self.run_id,
                event="LOAD_FAIL",
                status="error",
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )


def start_background_load(
    bundle: ConfigBundle,
    client: redis.Redis,
    *,
    logger: Logger,
    run_id: str,
    name_generator: NameGenerator | None = None,
) -> BackgroundLoad:
    worker = BackgroundLoad(bundle, client, logger=logger, run_id=run_id, name_generator=name_generator)
    worker.start()
    return worker
