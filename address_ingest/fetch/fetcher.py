"""Region archive download and extraction."""

from __future__ import annotations

import shutil
import time
import zipfile
from logging import Logger
from pathlib import Path

from address_ingest.common.errors import DataFormatError, FetchError
from address_ingest.common.fs import ensure_dir
from address_ingest.common.http import HttpClient
from address_ingest.common.logging import log_event
from address_ingest.common.models import SourceDescriptor
from address_ingest.common.time_utils import elapsed_ms
from address_ingest.fetch.catalog import SourceCatalog


def extract_entry(archive_path: Path, entry_name: str, target_path: Path, region: str) -> Path:
    """Copy one named member out of ``archive_path`` to ``target_path``.

    The member is streamed to a ``.part`` file and renamed once complete, so a
    crash never leaves a half-written extract that later runs would skip.
    """
    partial_path = target_path.with_name(target_path.name + ".part")
    try:
        with zipfile.ZipFile(archive_path) as zf:
            try:
                member = zf.getinfo(entry_name)
            except KeyError:
                raise DataFormatError(f"[{region}] archive has no entry named {entry_name!r}") from None
            with zf.open(member) as src, partial_path.open("wb") as dst:
                shutil.copyfileobj(src, dst)
    except zipfile.BadZipFile as exc:
        partial_path.unlink(missing_ok=True)
        raise DataFormatError(f"[{region}] corrupt archive {archive_path.name}: {exc}") from exc
    except OSError as exc:
        partial_path.unlink(missing_ok=True)
        raise FetchError(f"[{region}] could not extract {entry_name}: {exc}") from exc
    partial_path.replace(target_path)
    return target_path


def fetch_source(descriptor: SourceDescriptor, data_dir: Path, http: HttpClient, logger: Logger, run_id: str) -> bool:
    """Download and extract one region. Returns False when the extract already exists."""
    target_path = data_dir / descriptor.extract_name
    if target_path.exists():
        log_event(
            logger,
            f"extract present, skipping {descriptor.region}",
            run_id=run_id,
            stage="fetch",
            region=descriptor.region,
            event="FETCH_SKIP",
            status="ok",
        )
        return False

    ensure_dir(data_dir)
    archive_path = data_dir / descriptor.archive_name
    started = time.monotonic()
    log_event(
        logger,
        f"fetching {descriptor.url}",
        run_id=run_id,
        stage="fetch",
        region=descriptor.region,
        source=descriptor.url,
        event="FETCH_START",
        status="ok",
    )
    try:
        try:
            http.download_to_file(descriptor.url, archive_path)
        except FetchError as exc:
            raise type(exc)(f"[{descriptor.region}] {exc}") from exc
        extract_entry(archive_path, descriptor.file, target_path, descriptor.region)
    finally:
        archive_path.unlink(missing_ok=True)

    log_event(
        logger,
        f"extracted {descriptor.file} as {target_path.name}",
        run_id=run_id,
        stage="fetch",
        region=descriptor.region,
        source=descriptor.url,
        event="FETCH_END",
        status="ok",
        duration_ms=elapsed_ms(started),
    )
    return True


def run_fetch(catalog: SourceCatalog, data_dir: Path, http: HttpClient, logger: Logger, run_id: str) -> list[str]:
    """Fetch every region in catalog order; the first failure aborts the run."""
    fetched: list[str] = []
    for descriptor in catalog:
        try:
            if fetch_source(descriptor, data_dir, http, logger, run_id):
                fetched.append(descriptor.region)
        except (FetchError, DataFormatError) as exc:
            log_event(
                logger,
                f"fetch failed for region {descriptor.region}: {exc}",
                run_id=run_id,
                stage="fetch",
                region=descriptor.region,
                source=descriptor.url,
                event="FETCH_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            raise
    return fetched
