"""Staging artifact into documents, suggestion dictionaries and the index."""

from __future__ import annotations

import time
from logging import Logger
from pathlib import Path
from typing import Callable

import redis
from redis.commands.search.suggestion import Suggestion

from address_ingest.common.constants import (
    DOC_PREFIX,
    FULL_DICTIONARY,
    PARTIAL_DICTIONARY,
    PROGRESS_INTERVAL,
    STAGING_KEY,
    SUGGESTION_WEIGHT,
)
from address_ingest.common.errors import StageError, StoreUnavailableError
from address_ingest.common.logging import log_event
from address_ingest.common.models import AddressRecord
from address_ingest.common.store import STORE_CONNECTION_ERRORS
from address_ingest.common.time_utils import elapsed_ms
from address_ingest.pipeline.staging import iter_staged_records
from address_ingest.pipeline.transform import partial_address


def document_key(record: AddressRecord) -> str:
    return f"{DOC_PREFIX}{record.id}"


def insert_record(client: redis.Redis, record: AddressRecord) -> None:
    """Write one document and its two suggestion entries, one round trip at a time."""
    try:
        client.json().set(document_key(record), "$", record.to_dict())
        if record.address:
            client.ft().sugadd(FULL_DICTIONARY, Suggestion(record.address, SUGGESTION_WEIGHT))
            client.ft().sugadd(PARTIAL_DICTIONARY, Suggestion(partial_address(record.address), SUGGESTION_WEIGHT))
    except STORE_CONNECTION_ERRORS as exc:
        raise StoreUnavailableError(f"store lost while inserting record {record.id}: {exc}") from exc
    except redis.exceptions.RedisError as exc:
        raise StageError(f"insert failed for record {record.id}: {exc}") from exc


def run_load(
    client: redis.Redis,
    staging_path: Path,
    *,
    logger: Logger,
    run_id: str,
    key: str = STAGING_KEY,
    progress_interval: int = PROGRESS_INTERVAL,
    heartbeat: Callable[[], None] | None = None,
) -> int:
    """Insert every staged record. ``heartbeat`` runs at each progress mark and may raise to stop the load."""
    started = time.monotonic()
    log_event(logger, "inserting documents", run_id=run_id, stage="load", event="LOAD_START", status="ok")
    num_docs = 0
    for record in iter_staged_records(staging_path, key=key):
        insert_record(client, record)
        num_docs += 1
        if num_docs % progress_interval == 0:
            log_event(
                logger,
                f"{num_docs} documents inserted",
                run_id=run_id,
                stage="load",
                event="LOAD_PROGRESS",
                status="ok",
                rows_out=num_docs,
            )
            if heartbeat is not None:
                heartbeat()
    log_event(
        logger,
        f"{num_docs} documents inserted into store",
        run_id=run_id,
        stage="load",
        event="LOAD_END",
        status="ok",
        rows_out=num_docs,
        duration_ms=elapsed_ms(started),
    )
    return num_docs
