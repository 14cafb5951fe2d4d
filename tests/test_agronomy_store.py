import io
import json

import pytest
from openpyxl import load_workbook

from farm_records.agronomy import AgronomyFilters, AgronomyStore
from farm_records.errors import BadRequest, NotFound
from farm_records.json_store import JsonFileStore
from farm_records.models import AGRONOMY_FIELDS
from farm_records.spreadsheets import read_rows


@pytest.fixture
def store(tmp_path):
    return AgronomyStore(JsonFileStore(tmp_path / "agronomist_data.json"))


def _row(**fields):
    base = {"farm": "North", "gh": "GH1", "crop": "Rose", "variety": "Red", "time": "AM"}
    base.update(fields)
    return base


def test_add_assigns_increasing_ids(store):
    ids = [store.add(_row(gh=f"GH{i}")) for i in range(5)]
    assert ids == [1, 2, 3, 4, 5]
    assert [r["id"] for r in store.search()] == ids


def test_add_ignores_client_id_and_defaults_remarks(store):
    store.add(_row(id=99))
    rows = store.search()
    assert rows[0]["id"] == 1
    assert rows[0]["supervisorRemarks"] == ""


def test_add_rejects_non_object(store):
    with pytest.raises(BadRequest):
        store.add(["not", "an", "object"])


def test_search_filters(store):
    store.add(_row(farm="North", gh="GH1", target="Aphids"))
    store.add(_row(farm="south", gh="GH2", time="PM"))
    store.add(_row(farm="South", gh="GH1"))

    assert [r["id"] for r in store.search(AgronomyFilters(farm="SOUTH"))] == [2, 3]
    assert [r["id"] for r in store.search(AgronomyFilters(farm="south", gh="gh1"))] == [3]
    assert [r["id"] for r in store.search(AgronomyFilters(time="pm"))] == [2]
    assert [r["id"] for r in store.search(AgronomyFilters(q="aphid"))] == [1]
    # q matches the id too
    assert [r["id"] for r in store.search(AgronomyFilters(q="3"))] == [3]


def test_filters_from_args_accepts_greenhouse_alias():
    filters = AgronomyFilters.from_args({"greenhouse": " GH4 ", "q": ""})
    assert filters.gh == "GH4"
    assert filters.q == ""


def test_bulk_set_merges_and_appends(store):
    first = store.add(_row(crop="Rose"))
    count = store.bulk_set([{"id": first, "crop": "Carnation"}, _row(gh="GH9"), {"id": "10", "farm": "East"}])
    assert count == 3

    rows = {r["id"]: r for r in store.search()}
    assert rows[first]["crop"] == "Carnation"
    assert rows[first]["farm"] == "North"
    assert rows[10]["farm"] == "East"
    # Counter starts above the highest stored or incoming id
    assert rows[11]["gh"] == "GH9"
    assert sorted(rows) == [1, 10, 11]


def test_bulk_set_keeps_supervisor_remarks(store):
    row_id = store.add(_row())
    store.patch_supervisor_remarks(row_id, "Checked")
    for _ in range(2):
        store.bulk_set([{"id": row_id, "crop": "Lily"}])
    row = store.search()[0]
    assert row["supervisorRemarks"] == "Checked"
    assert row["crop"] == "Lily"


def test_bulk_set_requires_array_of_objects(store):
    with pytest.raises(BadRequest):
        store.bulk_set({"id": 1})
    with pytest.raises(BadRequest):
        store.bulk_set([1, 2])


def test_patch_supervisor_remarks(store):
    row_id = store.add(_row())
    store.patch_supervisor_remarks(str(row_id), "Looks good")
    assert store.search()[0]["supervisorRemarks"] == "Looks good"
    store.patch_supervisor_remarks(row_id, None)
    assert store.search()[0]["supervisorRemarks"] == ""


def test_patch_supervisor_remarks_errors_leave_file_untouched(store):
    store.add(_row())
    before = store.store.path.read_bytes()
    with pytest.raises(NotFound):
        store.patch_supervisor_remarks(42, "nope")
    with pytest.raises(BadRequest):
        store.patch_supervisor_remarks(None, "nope")
    assert store.store.path.read_bytes() == before


def test_import_replaces_matches_and_appends(store):
    kept = store.add(_row(gh="GH1", target="Mites"))
    matched = store.add(_row(gh="GH2", target="Thrips"))
    store.patch_supervisor_remarks(matched, "Approved")
    untouched = store.add(_row(gh="GH3"))

    result = store.import_rows(
        [
            {"ID": str(kept), "Farm": "North", "Greenhouse": "GH1", "Crop": "Rose"},
            {"Farm": "north", "GH": "gh2", "Crop": "ROSE", "Variety": "red", "Time": "am", "Target": "Whitefly"},
            {"Farm": "West", "Greenhouse": "GH7"},
        ]
    )
    assert (result.count, result.created, result.replaced, result.duplicates) == (3, 1, 2, 0)

    rows = {r["id"]: r for r in store.search()}
    # Replaced, not merged: fields absent from the import are cleared
    assert rows[kept]["target"] == ""
    assert rows[kept]["crop"] == "Rose"
    # Composite-key match adopts the stored id and keeps the remark
    assert rows[matched]["target"] == "Whitefly"
    assert rows[matched]["supervisorRemarks"] == "Approved"
    assert rows[untouched]["gh"] == "GH3"
    assert rows[4]["farm"] == "West"


def test_import_claims_each_stored_row_once(store):
    existing = store.add(_row())
    result = store.import_rows([_row(target="A"), _row(target="B")])
    assert (result.created, result.replaced) == (1, 1)
    rows = {r["id"]: r for r in store.search()}
    assert rows[existing]["target"] == "A"
    assert rows[2]["target"] == "B"


def test_import_row_named_by_id_is_not_taken_by_key_match(store):
    existing = store.add(_row())
    result = store.import_rows([_row(target="by key"), dict(_row(target="by id"), id=str(existing))])
    assert (result.count, result.created, result.replaced, result.duplicates) == (2, 1, 1, 0)
    rows = {r["id"]: r for r in store.search()}
    assert rows[existing]["target"] == "by id"
    assert rows[2]["target"] == "by key"


def test_import_reports_repeated_ids(store):
    existing = store.add(_row())
    result = store.import_rows([{"id": str(existing), "target": "first"}, {"id": str(existing), "target": "second"}])
    assert (result.count, result.created, result.replaced, result.duplicates) == (2, 0, 1, 1)
    assert store.search()[0]["target"] == "second"


def test_export_then_import_reproduces_rows(store, tmp_path):
    full = {name: f"{name}-value" for name in AGRONOMY_FIELDS}
    full["monRate"] = "007"
    store.add(full)
    store.add(_row(gh="GH5", crop="", farm="North ", target="  spaced  ", supervisorRemarks="=not a formula"))
    store.add({"farm": "Sparse"})
    before = store.store.path.read_text(encoding="utf-8")

    path = tmp_path / "export.xlsx"
    path.write_bytes(store.export())
    wb = load_workbook(io.BytesIO(path.read_bytes()))
    ws = wb["AgronomistData"]
    assert [c.value for c in ws[1]] == ["id"] + list(AGRONOMY_FIELDS)

    result = store.import_rows(read_rows(path, "excel"))
    assert (result.created, result.replaced) == (0, 3)
    assert store.store.path.read_text(encoding="utf-8") == before
    rows = {r["id"]: r for r in store.search()}
    assert rows[2]["crop"] == ""
    assert rows[2]["farm"] == "North "
    assert rows[2]["target"] == "  spaced  "


def test_export_filtered(store):
    store.add(_row(farm="North"))
    store.add(_row(farm="South"))
    ws = load_workbook(io.BytesIO(store.export(AgronomyFilters(farm="south")))).active
    assert ws.max_row == 2
    assert ws.cell(row=2, column=1).value == 2


def test_persisted_file_is_json_array(store):
    store.add(_row())
    data = json.loads(store.store.path.read_text(encoding="utf-8"))
    assert isinstance(data, list) and data[0]["id"] == 1
