"""
Worker CSV template, parsing and import.
"""

import io

import pytest

from siteledger.core.exceptions import ValidationError
from siteledger.models.labour import Worker
from siteledger.services.worker_import_service import (
    BOM,
    bulk_insert_workers,
    generate_csv_template,
    parse_rate,
    parse_worker_csv,
    preview,
)

SAMPLE = (
    "Name*,Trade/Skill,Daily Rate,Contractor,Phone\n"
    "\n"
    "Ravi Kumar,Mason,800,ABC Contractors,9876543210\n"
    ",Helper,500,,\n"
    "\"Meena Devi\",Helper,five hundred,XYZ Labour,\n"
)


class TestTemplate:
    def test_exact_bytes(self):
        expected = (
            BOM
            + "Name*,Trade/Skill,Daily Rate,Contractor,Phone\n"
            + '"Ravi Kumar","Mason","800","ABC Contractors","9876543210"\n'
            + '"Suresh Yadav","Carpenter","750","","9123456789"\n'
            + '"Meena Devi","Helper","500","XYZ Labour",""'
        )
        assert generate_csv_template() == expected

    def test_template_parses_back(self):
        rows = parse_worker_csv(generate_csv_template())
        assert [r.name for r in rows] == ["Ravi Kumar", "Suresh Yadav", "Meena Devi"]
        assert all(r.valid for r in rows)


class TestParsing:
    def test_scenario(self):
        rows = parse_worker_csv(SAMPLE)
        assert len(rows) == 3
        ravi, blank, meena = rows
        assert ravi.valid and ravi.daily_rate == 800 and ravi.phone == "9876543210"
        assert not blank.valid and blank.error == "Name is required"
        assert meena.valid and meena.daily_rate == 0 and meena.phone == ""

    def test_header_only_is_empty(self):
        assert parse_worker_csv("Name*,Trade/Skill\n\n") == []
        assert parse_worker_csv("") == []

    def test_crlf_and_bom(self):
        rows = parse_worker_csv(BOM + "Name*,Trade\r\nAsha,Fitter\r\n")
        assert rows[0].name == "Asha"
        assert rows[0].trade == "Fitter"

    @pytest.mark.parametrize("value,expected", [
        ("800", 800), ("750.50", 750.5), ("800/day", 800), ("abc", 0), ("", 0), (None, 0),
    ])
    def test_parse_rate(self, value, expected):
        assert parse_rate(value) == expected

    def test_preview_counts(self):
        result = preview(SAMPLE)
        assert result["valid_count"] == 2
        assert result["invalid_count"] == 1

    def test_preview_empty_file(self):
        with pytest.raises(ValidationError, match="No data rows found in file"):
            preview("Name*\n")


class TestImport:
    def test_inserts_only_valid_rows(self, org_tree):
        workers = bulk_insert_workers(org_tree.parent.id, parse_worker_csv(SAMPLE))
        assert [w.name for w in workers] == ["Ravi Kumar", "Meena Devi"]
        meena = workers[1]
        assert meena.phone is None
        assert meena.contractor == "XYZ Labour"
        assert Worker.query.count() == 2

    def test_no_valid_rows(self, org_tree):
        with pytest.raises(ValidationError, match="No valid workers to import"):
            bulk_insert_workers(org_tree.parent.id, parse_worker_csv("Name*\n,Mason\n"))

    def test_template_endpoint(self, client, org_tree, auth_header):
        res = client.get("/api/v1/workers/import-template", headers=auth_header(org_tree.engineer))
        assert res.status_code == 200
        assert res.mimetype == "text/csv"
        assert "workers_template.csv" in res.headers["Content-Disposition"]
        assert res.get_data(as_text=True).startswith(BOM + "Name*,")

    def test_import_endpoint_upload(self, client, org_tree, auth_header):
        res = client.post(
            "/api/v1/workers/import",
            data={"file": (io.BytesIO(SAMPLE.encode("utf-8")), "workers.csv")},
            content_type="multipart/form-data",
            headers=auth_header(org_tree.manager),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["imported"] == 2
        assert body["skipped"] == 1

    def test_import_forbidden_for_engineer(self, client, org_tree, auth_header):
        res = client.post(
            "/api/v1/workers/import/preview", json={"csv": SAMPLE},
            headers=auth_header(org_tree.engineer),
        )
        assert res.status_code == 403
