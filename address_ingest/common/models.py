"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import PurePosixPath
from typing import Any


@dataclass(frozen=True)
class SourceDescriptor:
    url: str
    region: str
    file: str

    @property
    def extract_name(self) -> str:
        suffix = PurePosixPath(self.file).suffix or ".csv"
        return f"{self.region}{suffix}"

    @property
    def archive_name(self) -> str:
        return f"{self.region}.zip"


@dataclass(frozen=True)
class AddressRecord:
    id: str
    name: str
    address: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AddressRecord":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            address=str(payload.get("address", "")),
        )
