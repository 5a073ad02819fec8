import json
import logging

from address_ingest.common.constants import JSON_LOG_FIELDS
from address_ingest.common.ids import generate_run_id
from address_ingest.common.models import AddressRecord, SourceDescriptor
from address_ingest.common.logging import JsonLineFormatter
from address_ingest.common.names import make_name_generator
from address_ingest.fetch.catalog import SourceCatalog


def test_seeded_name_generator_is_reproducible():
    first = make_name_generator(seed=7)
    second = make_name_generator(seed=7)
    assert [first() for _ in range(5)] == [second() for _ in range(5)]


def test_generated_names_are_two_capitalised_words():
    generate = make_name_generator()
    for _ in range(20):
        words = generate().split(" ")
        assert len(words) == 2
        assert all(word[0].isupper() for word in words)


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_source_descriptor_extract_name_keeps_inner_extension():
    assert SourceDescriptor(url="u", region="ON", file="ODA_ON_v1.csv").extract_name == "ON.csv"
    assert SourceDescriptor(url="u", region="ON", file="data/ODA_ON").extract_name == "ON.csv"


def test_catalog_lookup_and_order():
    catalog = SourceCatalog([SourceDescriptor("u1", "B", "b.csv"), SourceDescriptor("u2", "A", "a.csv")])
    assert catalog.regions() == ["B", "A"]
    assert catalog.get("A").url == "u2"


def test_address_record_round_trips_through_dict():
    record = AddressRecord(id="1", name="A B", address="1 A St ON")
    assert AddressRecord.from_dict(record.to_dict()) == record


def test_json_log_line_has_exactly_the_declared_fields():
    record = logging.LogRecord("address_ingest.test", logging.WARNING, __file__, 1, "slow region", None, None)
    record.run_id = "run-1"

    payload = json.loads(JsonLineFormatter().format(record))

    assert list(payload) == list(JSON_LOG_FIELDS)
    assert payload["level"] == "WARNING"
    assert payload["rows_in"] is None
