"""Full-text index definition over the loaded account documents."""

from __future__ import annotations

from logging import Logger

import redis
from redis.commands.search.field import TextField
from redis.commands.search.index_definition import IndexDefinition, IndexType

from address_ingest.common.constants import DOC_PREFIX, INDEX_NAME
from address_ingest.common.errors import IndexDefinitionError, StoreUnavailableError
from address_ingest.common.logging import log_event
from address_ingest.common.store import STORE_CONNECTION_ERRORS

MISSING_INDEX_MARKERS = ("unknown index name", "no such index")


def _is_missing_index(exc: redis.exceptions.ResponseError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in MISSING_INDEX_MARKERS)


def address_schema() -> list[TextField]:
    return [TextField("$.address", as_name="address", sortable=True)]


def drop_index(client: redis.Redis, index_name: str = INDEX_NAME) -> bool:
    """Drop the index if present. Documents are left in place."""
    try:
        client.ft(index_name).dropindex(delete_documents=False)
    except STORE_CONNECTION_ERRORS as exc:
        raise StoreUnavailableError(f"store lost while dropping {index_name}: {exc}") from exc
    except redis.exceptions.ResponseError as exc:
        if _is_missing_index(exc):
            return False
        raise IndexDefinitionError(f"could not drop index {index_name}: {exc}") from exc
    return True


def create_index(client: redis.Redis, *, logger: Logger, run_id: str, index_name: str = INDEX_NAME) -> None:
    dropped = drop_index(client, index_name)
    try:
        client.ft(index_name).create_index(
            address_schema(),
            definition=IndexDefinition(prefix=[DOC_PREFIX], index_type=IndexType.JSON),
        )
    except STORE_CONNECTION_ERRORS as exc:
        raise StoreUnavailableError(f"store lost while creating {index_name}: {exc}") from exc
    except redis.exceptions.ResponseError as exc:
        raise IndexDefinitionError(f"could not create index {index_name}: {exc}") from exc
    log_event(
        logger,
        f"index {index_name} created" + (" (replaced existing)" if dropped else ""),
        run_id=run_id,
        stage="index",
        event="INDEX_CREATED",
        status="ok",
    )
