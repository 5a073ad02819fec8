"""CSV rows to normalised, anonymised address records."""

from __future__ import annotations

import csv
import re
import time
from logging import Logger
from pathlib import Path
from typing import Iterator

from address_ingest.common.constants import ID_COLUMN, STREET_NAME_COLUMN, STREET_NUMBER_COLUMN
from address_ingest.common.errors import DataFormatError, StagingError
from address_ingest.common.logging import log_event
from address_ingest.common.models import AddressRecord
from address_ingest.common.names import NameGenerator
from address_ingest.common.time_utils import elapsed_ms
from address_ingest.fetch.catalog import SourceCatalog
from address_ingest.pipeline.staging import StagingWriter

MIN_COLUMNS = max(ID_COLUMN, STREET_NUMBER_COLUMN, STREET_NAME_COLUMN) + 1
WHITESPACE_RUN = re.compile(r"\s+")


def normalize_address(street_number: str, street_name: str, region: str) -> str:
    # Hyphens become separators so "Main-St" reads as "Main St".
    raw = f"{street_number} {street_name} {region}".replace("-", " ")
    return WHITESPACE_RUN.sub(" ", raw).strip()


def starts_with_number(text: str) -> bool:
    return text[:1].isdigit()


def partial_address(address: str) -> str:
    """Drop the leading street-number token from a full address.

    Rows without a street number already start at the street name and are
    returned unchanged.
    """
    head, sep, rest = address.partition(" ")
    if sep and starts_with_number(head):
        return rest
    return address


def iter_rows(path: Path, region: str, *, encoding: str = "utf-8", delimiter: str = ",") -> Iterator[list[str]]:
    with path.open("r", encoding=encoding, newline="") as f:
        reader = csv.reader(f, delimiter=delimiter)
        header = next(reader, None)
        if header is None:
            return
        width = len(header)
        if width < MIN_COLUMNS:
            raise DataFormatError(f"[{region}] {path.name} has {width} columns, expected at least {MIN_COLUMNS}")
        for row in reader:
            if not row:
                continue
            if len(row) != width:
                raise DataFormatError(
                    f"[{region}] {path.name} line {reader.line_num}: {len(row)} columns, expected {width}"
                )
            yield row


def iter_address_records(
    path: Path,
    region: str,
    name_generator: NameGenerator,
    *,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> Iterator[AddressRecord]:
    for row in iter_rows(path, region, encoding=encoding, delimiter=delimiter):
        yield AddressRecord(
            id=row[ID_COLUMN],
            name=name_generator(),
            address=normalize_address(row[STREET_NUMBER_COLUMN], row[STREET_NAME_COLUMN], region),
        )


def run_stage(
    catalog: SourceCatalog,
    data_dir: Path,
    staging_path: Path,
    name_generator: NameGenerator,
    *,
    logger: Logger,
    run_id: str,
    key: str,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> int:
    """Transform every region's extract straight into the staging artifact."""
    total = 0
    with StagingWriter(staging_path, key=key) as writer:
        for descriptor in catalog:
            extract_path = data_dir / descriptor.extract_name
            if not extract_path.exists():
                raise StagingError(f"[{descriptor.region}] extract {extract_path.name} is missing")
            started = time.monotonic()
            count = 0
            for record in iter_address_records(
                extract_path,
                descriptor.region,
                name_generator,
                encoding=encoding,
                delimiter=delimiter,
            ):
                writer.write(record)
                count += 1
            total += count
            log_event(
                logger,
                f"staged {count} records from {extract_path.name}",
                run_id=run_id,
                stage="stage",
                region=descriptor.region,
                event="STAGE_REGION_END",
                status="ok",
                rows_out=count,
                duration_ms=elapsed_ms(started),
            )
    return total
