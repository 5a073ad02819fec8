"""Shared store connection handling."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import redis

from address_ingest.common.errors import StoreUnavailableError

STORE_CONNECTION_ERRORS = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


@contextmanager
def open_store(url: str) -> Iterator[redis.Redis]:
    """Yield a connected client, closing it on every exit path."""
    client = redis.Redis.from_url(url, decode_responses=True)
    try:
        try:
            client.ping()
        except STORE_CONNECTION_ERRORS as exc:
            raise StoreUnavailableError(f"Store unreachable at {url}: {exc}") from exc
        yield client
    finally:
        client.close()
