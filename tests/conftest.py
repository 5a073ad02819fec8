from __future__ import annotations

import copy
import io
import json
import logging
import re
import zipfile
from pathlib import Path
from types import SimpleNamespace

import pytest
import redis
from redis.commands.search.suggestion import Suggestion

from address_ingest.common.http import HttpRequestError

HEADER = [
    "latitude",
    "longitude",
    "source_id",
    "id",
    "group_id",
    "street_no",
    "street",
    "str_name",
    "str_type",
    "str_dir",
    "unit",
    "city",
    "postal_code",
    "full_addr",
    "city_pcs",
    "provider",
]


def csv_text(rows: list[tuple[str, str, str]]) -> str:
    """Build a CSV with the address schema from (id, number, street) tuples."""
    lines = [",".join(HEADER)]
    for row_id, number, street in rows:
        fields = [""] * len(HEADER)
        fields[3] = row_id
        fields[13] = number
        fields[14] = street
        lines.append(",".join(fields))
    return "\n".join(lines) + "\n"


def zip_bytes(entries: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in entries.items():
            zf.writestr(name, text)
    return buf.getvalue()


class FakeDownloader:
    """Stands in for HttpClient; serves archive bytes by URL."""

    def __init__(self, archives: dict[str, bytes]) -> None:
        self.archives = archives
        self.calls: list[str] = []

    def download_to_file(self, url: str, target_path: Path) -> int:
        self.calls.append(url)
        if url not in self.archives:
            raise HttpRequestError(f"HTTP status 404 for {url}")
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_bytes(self.archives[url])
        return len(self.archives[url])

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        self.close()


class FakeJson:
    def __init__(self, store: "FakeStore") -> None:
        self.store = store

    def set(self, key, path, obj):
        self.store._maybe_fail(key)
        self.store.docs[key] = copy.deepcopy(obj)
        return True


class FakeSearch:
    def __init__(self, store: "FakeStore", index_name: str) -> None:
        self.store = store
        self.index_name = index_name

    def dropindex(self, delete_documents=False):
        if self.store.drop_error is not None:
            raise self.store.drop_error
        if self.index_name not in self.store.indexes:
            raise redis.exceptions.ResponseError("Unknown Index name")
        del self.store.indexes[self.index_name]
        return "OK"

    def create_index(self, fields, definition=None, **_kwargs):
        self.store.indexes[self.index_name] = {"fields": list(fields), "definition": definition}
        return "OK"

    def sugadd(self, key, *suggestions, increment=False, **_kwargs):
        self.store._maybe_fail(key)
        entries = self.store.dictionaries.setdefault(key, {})
        for suggestion in suggestions:
            if increment:
                entries[suggestion.string] = entries.get(suggestion.string, 0) + suggestion.score
            else:
                entries[suggestion.string] = suggestion.score
        return len(entries)

    def sugget(self, key, prefix, fuzzy=False, num=10, **_kwargs):
        entries = self.store.dictionaries.get(key, {})
        hits = [text for text in entries if text.lower().startswith(prefix.lower())]
        return [Suggestion(text) for text in hits[:num]]

    def search(self, query):
        index = self.store.indexes.get(self.index_name)
        if index is None:
            raise redis.exceptions.ResponseError("no such index")
        args = query.get_args()
        match = re.search(r"@address:\((.*)\)", str(args[0]))
        term = re.sub(r"\\(.)", r"\1", match.group(1)) if match else ""
        tokens = [token.lower() for token in term.split()]
        def_args = index["definition"].args
        prefix = def_args[def_args.index("PREFIX") + 2]

        hits = []
        for key, doc in self.store.docs.items():
            if not key.startswith(prefix):
                continue
            words = doc.get("address", "").lower().split()
            if all(token in words for token in tokens):
                hits.append((key, doc))
        hits.sort(key=lambda item: item[1]["address"])

        offset, num = 0, 10
        if "LIMIT" in args:
            at = args.index("LIMIT")
            offset, num = int(args[at + 1]), int(args[at + 2])
        page = hits[offset : offset + num]
        docs = [SimpleNamespace(id=key, json=json.dumps(doc)) for key, doc in page]
        return SimpleNamespace(total=len(hits), docs=docs)


class FakeScript:
    """Evaluates the two owner-checked lease scripts against the fake key space."""

    def __init__(self, store: "FakeStore", source: str) -> None:
        self.store = store
        self.deletes = '"del"' in source

    def __call__(self, keys=(), args=(), client=None):
        key, owner = keys[0], args[0]
        if self.store.kv.get(key) != owner:
            return 0
        if self.deletes:
            del self.store.kv[key]
        return 1


class FakeStore:
    """In-memory double for the redis-py calls the pipeline makes."""

    def __init__(self) -> None:
        self.kv: dict[str, str] = {}
        self.docs: dict[str, dict] = {}
        self.dictionaries: dict[str, dict[str, float]] = {}
        self.indexes: dict[str, dict] = {}
        self.drop_error: Exception | None = None
        self.fail_key: str | None = None
        self.fail_with: Exception | None = None

    def _maybe_fail(self, key: str) -> None:
        if self.fail_key is not None and self.fail_key == key and self.fail_with is not None:
            raise self.fail_with

    def ping(self):
        return True

    def close(self):
        pass

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.kv)

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.kv:
            return None
        self.kv[key] = value
        return True

    def get(self, key):
        return self.kv.get(key)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.kv.pop(key, None) is not None:
                removed += 1
        return removed

    def register_script(self, source):
        return FakeScript(self, source)

    def json(self):
        return FakeJson(self)

    def ft(self, index_name="idx"):
        return FakeSearch(self, index_name)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_downloader():
    return FakeDownloader


@pytest.fixture
def make_csv():
    return csv_text


@pytest.fixture
def make_zip():
    return zip_bytes


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("address_ingest.tests")


@pytest.fixture
def write_config(tmp_path: Path):
    """Write sources.yml and pipeline.yml for the given regions; returns the config dir."""

    def _write(regions: list[str], *, data_dir: Path | None = None, progress_interval: int = 1000) -> Path:
        config_dir = tmp_path / "config"
        config_dir.mkdir(exist_ok=True)
        lines = ["sources:"]
        for region in regions:
            lines += [
                f"  - url: https://example.test/{region}.zip",
                f"    region: {region}",
                f"    file: addresses_{region}.csv",
            ]
        (config_dir / "sources.yml").write_text("\n".join(lines) + "\n", encoding="utf-8")
        (config_dir / "pipeline.yml").write_text(
            f"""data_dir: {data_dir or tmp_path / 'data'}
store:
  url: redis://localhost:6379
staging:
  filename: accounts.json
  key: accounts
csv:
  encoding: utf-8
  delimiter: ","
load:
  progress_interval: {progress_interval}
  lease_seconds: 60
http:
  connect_timeout: 5
  read_timeout: 5
  max_attempts: 1
""",
            encoding="utf-8",
        )
        return config_dir

    return _write
