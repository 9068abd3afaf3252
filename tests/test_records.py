import json

import pytest

from listing_photos.errors import RecordLoadError
from listing_photos.models import ListingRecord
from listing_photos.records import (
    filter_viable,
    load_records,
    parse_csv,
    parse_gviz,
    parse_records,
)

CSV_TEXT = (
    "Address, Zillow URL ,Notes\n"
    '"1 Main St, Apt 2",https://www.zillow.com/homedetails/x/111_zpid/,"said ""hi"""\n'
    ",,\n"
    "2 Oak Ave,https://www.zillow.com/homedetails/y/222_zpid/\n"
)


def _gviz(payload):
    return "/*O_o*/\ngoogle.visualization.Query.setResponse(" + json.dumps(payload) + ");"


def test_parse_csv_handles_quotes_and_blank_rows():
    records = parse_csv(CSV_TEXT)
    assert len(records) == 2
    first, second = records
    assert first.fields["Address"] == "1 Main St, Apt 2"
    assert first.fields["Notes"] == 'said "hi"'
    assert first.zpid == "111"
    assert second.fields["Notes"] == ""
    assert second.zpid == "222"


def test_parse_csv_empty():
    assert parse_csv("") == []


def test_parse_gviz_prefers_formatted_values():
    payload = {
        "status": "ok",
        "table": {
            "cols": [{"id": "A", "label": "Address"}, {"id": "B", "label": ""}],
            "rows": [
                {"c": [{"v": "1 Main St"}, {"v": 2500, "f": "$2,500"}]},
                {"c": [None, None]},
                {"c": [{"v": "3 Elm"}]},
            ],
        },
    }
    records = parse_gviz(_gviz(payload))
    assert [r.fields for r in records] == [
        {"Address": "1 Main St", "B": "$2,500"},
        {"Address": "3 Elm", "B": ""},
    ]


def test_parse_gviz_error_status():
    payload = {"status": "error", "errors": [{"reason": "access_denied"}]}
    with pytest.raises(RecordLoadError, match="access_denied"):
        parse_gviz(_gviz(payload))


def test_parse_records_dispatches_on_format():
    payload = {"status": "ok", "table": {"cols": [{"label": "URL"}], "rows": []}}
    assert parse_records(_gviz(payload)) == []
    assert len(parse_records(CSV_TEXT)) == 2


def test_load_records_from_file(tmp_path):
    path = tmp_path / "homes.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    assert [r.zpid for r in load_records(path)] == ["111", "222"]


def test_load_records_missing_file_is_fatal(tmp_path):
    with pytest.raises(RecordLoadError):
        load_records(tmp_path / "nope.csv")


def test_filter_viable():
    keep_yes = ListingRecord({"Address": "1 A", "Viable?": "Yes", "Rent": "1"})
    keep_maybe = ListingRecord({"Address": "2 B", "Viable?": "maybe", "Rent": ""})
    drop_no = ListingRecord({"Address": "3 C", "Viable?": "No", "Rent": "1"})
    drop_blank = ListingRecord({"Address": "4 D", "Viable?": "", "Rent": "1"})
    drop_sparse = ListingRecord({"Address": "5 E", "Viable?": "yes", "a": "", "b": "", "c": ""})
    drop_no_address = ListingRecord({"Address": "", "Viable?": "yes", "Rent": "1"})
    records = [keep_yes, keep_maybe, drop_no, drop_blank, drop_sparse, drop_no_address]
    assert filter_viable(records) == [keep_yes, keep_maybe]


def test_load_records_non_utf8_file_is_fatal(tmp_path):
    path = tmp_path / "homes.csv"
    path.write_bytes("Address,Zillow URL\nCaf\xe9 Row,x\n".encode("latin-1"))
    with pytest.raises(RecordLoadError, match="Failed to read"):
        load_records(path)


@pytest.mark.parametrize(
    "payload",
    [
        "google.visualization.Query.setResponse([1,2]);",
        'google.visualization.Query.setResponse("ok");',
        'google.visualization.Query.setResponse({"status": "ok", "table": [1]});',
    ],
)
def test_parse_gviz_rejects_non_object_payloads(payload):
    with pytest.raises(RecordLoadError):
        parse_gviz(payload)


def test_parse_gviz_skips_malformed_rows():
    payload = {
        "status": "ok",
        "table": {
            "cols": [{"label": "Address"}, None],
            "rows": [None, "junk", {"c": "junk"}, {"c": [{"v": "1 Main"}, 7]}],
        },
    }
    records = parse_gviz(_gviz(payload))
    assert [r.fields for r in records] == [{"Address": "1 Main", "": ""}]
