"""Read-side lookups over the loaded store: autocomplete and address search."""

from __future__ import annotations

import json
import re

import redis
from redis.commands.search.query import Query

from address_ingest.common.constants import (
    FULL_DICTIONARY,
    INDEX_NAME,
    PARTIAL_DICTIONARY,
    SEARCH_LIMIT,
    SUGGEST_LIMIT,
)
from address_ingest.common.errors import StageError, StoreUnavailableError
from address_ingest.common.store import STORE_CONNECTION_ERRORS
from address_ingest.pipeline.transform import starts_with_number

QUERY_SPECIAL_CHARS = re.compile(r"([,.<>{}\[\]\"':;!@#$%^&*()\-+=~|/\\])")


def dictionary_for(text: str) -> str:
    """Inputs that start with a street number complete against full addresses."""
    return FULL_DICTIONARY if starts_with_number(text) else PARTIAL_DICTIONARY


def escape_query(text: str) -> str:
    return QUERY_SPECIAL_CHARS.sub(r"\\\1", text.strip())


def suggest(client: redis.Redis, text: str, *, num: int = SUGGEST_LIMIT) -> list[dict[str, str]]:
    try:
        hits = client.ft().sugget(dictionary_for(text), text, num=num)
    except STORE_CONNECTION_ERRORS as exc:
        raise StoreUnavailableError(f"store lost during suggest: {exc}") from exc
    return [{"address": hit.string} for hit in hits]


def search(client: redis.Redis, text: str, *, limit: int = SEARCH_LIMIT, index_name: str = INDEX_NAME) -> dict:
    """Full-text match on ``address``, ascending by address, first ``limit`` hits."""
    query = Query(f"@address:({escape_query(text)})").sort_by("address", asc=True).paging(0, limit)
    try:
        result = client.ft(index_name).search(query)
    except STORE_CONNECTION_ERRORS as exc:
        raise StoreUnavailableError(f"store lost during search: {exc}") from exc
    except redis.exceptions.ResponseError as exc:
        raise StageError(f"search failed for {text!r}: {exc}") from exc
    accounts = [json.loads(doc.json) for doc in result.docs]
    return {"accounts": accounts, "total": result.total}
