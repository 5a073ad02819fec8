"""Append-only JSON array artifact between transform and load.

Layout, one record per line so the file can be streamed back without a
streaming JSON parser::

    {"accounts":[
    {"id": "1", ...},
    {"id": "2", ...}
    ]}

The closing line is written last; its absence marks an artifact left behind by
an interrupted run.
"""

from __future__ import annotations

import enum
import json
from pathlib import Path
from types import TracebackType
from typing import IO, Iterator

from address_ingest.common.constants import STAGING_KEY
from address_ingest.common.errors import StagingError
from address_ingest.common.fs import ensure_dir, tail_bytes
from address_ingest.common.models import AddressRecord

TRAILER = "]}"


class WriterState(enum.Enum):
    OPENED = "opened"
    WRITING = "writing"
    CLOSED = "closed"


def _header(key: str) -> str:
    return "{" + json.dumps(key) + ":["


class StagingWriter:
    def __init__(self, path: Path, *, key: str = STAGING_KEY) -> None:
        self.path = path
        self.key = key
        self.count = 0
        ensure_dir(path.parent)
        self._fh: IO[str] | None = path.open("w", encoding="utf-8")
        self._fh.write(_header(key))
        self.state = WriterState.OPENED

    def write(self, record: AddressRecord) -> None:
        if self.state is WriterState.CLOSED or self._fh is None:
            raise StagingError(f"write after close on {self.path}")
        separator = "\n" if self.state is WriterState.OPENED else ",\n"
        self._fh.write(separator + json.dumps(record.to_dict(), ensure_ascii=False))
        self.state = WriterState.WRITING
        self.count += 1

    def close(self) -> None:
        if self.state is WriterState.CLOSED:
            return
        assert self._fh is not None
        self._fh.write("\n" + TRAILER + "\n")
        self._fh.close()
        self._fh = None
        self.state = WriterState.CLOSED

    def abandon(self) -> None:
        """Release the file handle without the trailer, leaving an incomplete artifact."""
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        self.state = WriterState.CLOSED

    def __enter__(self) -> "StagingWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abandon()


def staging_is_complete(path: Path) -> bool:
    if not path.exists():
        return False
    return tail_bytes(path, len(TRAILER) + 3).rstrip().endswith(("\n" + TRAILER).encode("utf-8"))


def iter_staged_records(path: Path, *, key: str = STAGING_KEY) -> Iterator[AddressRecord]:
    if not path.exists():
        raise StagingError(f"staging artifact {path} does not exist")
    with path.open("r", encoding="utf-8") as f:
        header = f.readline().rstrip("\n")
        if header != _header(key):
            raise StagingError(f"unexpected staging header in {path}: {header[:40]!r}")
        for line_num, line in enumerate(f, start=2):
            text = line.strip()
            if text == TRAILER:
                return
            if not text:
                continue
            try:
                payload = json.loads(text.rstrip(","))
            except json.JSONDecodeError as exc:
                raise StagingError(f"{path.name} line {line_num}: invalid record") from exc
            yield AddressRecord.from_dict(payload)
    raise StagingError(f"staging artifact {path} is incomplete (no closing bracket)")
