"""Static catalog of remote region archives."""

from __future__ import annotations

from typing import Iterable, Iterator

from address_ingest.common.errors import ConfigError
from address_ingest.common.models import SourceDescriptor


class SourceCatalog:
    def __init__(self, descriptors: Iterable[SourceDescriptor]) -> None:
        self._descriptors = tuple(descriptors)
        self._by_region = {descriptor.region: descriptor for descriptor in self._descriptors}

    def __iter__(self) -> Iterator[SourceDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def regions(self) -> list[str]:
        return [descriptor.region for descriptor in self._descriptors]

    def get(self, region: str) -> SourceDescriptor:
        try:
            return self._by_region[region]
        except KeyError:
            raise ConfigError(f"Unknown region: {region}") from None
