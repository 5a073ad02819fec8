from pathlib import Path

import pytest

from address_ingest.common.errors import DataFormatError
from address_ingest.common.names import make_name_generator
from address_ingest.pipeline.transform import iter_address_records, normalize_address, partial_address


def test_normalize_address_turns_hyphens_into_spaces_and_appends_region():
    assert normalize_address("123", "Main-St", "ON") == "123 Main St ON"


def test_normalize_address_collapses_whitespace_runs():
    assert normalize_address("12 ", "  Rue   Saint-Denis", "QC") == "12 Rue Saint Denis QC"


def test_partial_address_drops_leading_token():
    assert partial_address("123 Main St ON") == "Main St ON"
    assert partial_address("ON") == "ON"


def test_partial_address_keeps_street_when_number_is_empty():
    assert normalize_address("", "Range Rd", "NB") == "Range Rd NB"
    assert partial_address(normalize_address("", "Range Rd", "NB")) == "Range Rd NB"
    assert partial_address("12B Range Rd NB") == "Range Rd NB"


def test_iter_address_records_skips_header_and_maps_columns(tmp_path: Path, make_csv):
    path = tmp_path / "ON.csv"
    path.write_text(make_csv([("id-1", "123", "Main-St"), ("id-2", "7", "King  St W")]), encoding="utf-8")

    records = list(iter_address_records(path, "ON", make_name_generator(seed=1)))

    assert [r.id for r in records] == ["id-1", "id-2"]
    assert [r.address for r in records] == ["123 Main St ON", "7 King St W ON"]
    assert all(len(r.name.split(" ")) == 2 for r in records)


def test_iter_address_records_uses_injected_name_generator(tmp_path: Path, make_csv):
    path = tmp_path / "ON.csv"
    path.write_text(make_csv([("1", "1", "A St"), ("2", "2", "B St")]), encoding="utf-8")

    records = list(iter_address_records(path, "ON", lambda: "Fixed Name"))

    assert {r.name for r in records} == {"Fixed Name"}


def test_iter_address_records_rejects_wrong_column_count(tmp_path: Path, make_csv):
    path = tmp_path / "ON.csv"
    text = make_csv([("1", "1", "A St")]) + "short,row\n"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(DataFormatError, match=r"\[ON\].*line 3"):
        list(iter_address_records(path, "ON", lambda: "X Y"))


def test_iter_address_records_rejects_narrow_header(tmp_path: Path):
    path = tmp_path / "ON.csv"
    path.write_text("a,b,c\n1,2,3\n", encoding="utf-8")

    with pytest.raises(DataFormatError):
        list(iter_address_records(path, "ON", lambda: "X Y"))


def test_iter_address_records_empty_file_yields_nothing(tmp_path: Path):
    path = tmp_path / "ON.csv"
    path.write_text("", encoding="utf-8")

    assert list(iter_address_records(path, "ON", lambda: "X Y")) == []


def test_iter_address_records_row_without_street_number(tmp_path: Path, make_csv):
    path = tmp_path / "NB.csv"
    path.write_text(make_csv([("r-1", "", "Range Rd")]), encoding="utf-8")

    [record] = iter_address_records(path, "NB", lambda: "X Y")

    assert record.address == "Range Rd NB"
    assert partial_address(record.address) == "Range Rd NB"
