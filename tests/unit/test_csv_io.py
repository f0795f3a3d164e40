"""
Tests for import parsing and export writing.
"""
import csv
from datetime import datetime, timezone

import pytest

from skillconnect.bulk.csv_io import format_cell, parse_import_csv, write_export_csv
from skillconnect.errors import JobFatalError


def test_parse_import_csv_trims_keys_and_values(tmp_path):
    path = tmp_path / "users.csv"
    path.write_text(" firstName , lastName,email ,roles\n Ana ,Lee, ana@example.com ,\"mentor,mentee\"\n", encoding="utf-8")

    rows = parse_import_csv(path)

    assert rows == [{"firstName": "Ana", "lastName": "Lee", "email": "ana@example.com", "roles": "mentor,mentee"}]


def test_parse_import_csv_tolerates_bom_and_extra_cells(tmp_path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufefffirstName,lastName,email\nAna,Lee,ana@example.com,surplus\n".encode("utf-8"))

    rows = parse_import_csv(path)

    assert rows == [{"firstName": "Ana", "lastName": "Lee", "email": "ana@example.com"}]


def test_parse_import_csv_keeps_file_order(tmp_path):
    path = tmp_path / "order.csv"
    path.write_text("firstName,lastName,email\nA,1,a@x.io\nB,2,b@x.io\nC,3,c@x.io\n", encoding="utf-8")
    assert [r["firstName"] for r in parse_import_csv(path)] == ["A", "B", "C"]


def test_parse_import_csv_missing_file_is_fatal(tmp_path):
    with pytest.raises(JobFatalError, match="Unable to read import file"):
        parse_import_csv(tmp_path / "nope.csv")


def test_parse_import_csv_empty_file_is_fatal(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(JobFatalError, match="no header row"):
        parse_import_csv(path)


def test_parse_import_csv_undecodable_file_is_fatal(tmp_path):
    path = tmp_path / "binary.csv"
    path.write_bytes(b"\xff\xfe\x00\x81\x9f garbage")
    with pytest.raises(JobFatalError):
        parse_import_csv(path)


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (["mentee", "mentor"], "mentee,mentor"),
        (datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc), "2024-01-02T03:04:05+00:00"),
        (42, "42"),
    ],
)
def test_format_cell(value, expected):
    assert format_cell(value) == expected


def test_write_export_csv_uses_requested_column_order(tmp_path):
    docs = [
        {"email": "a@x.io", "firstName": "A", "account": {"status": "active"}, "roles": ["mentor"]},
        {"email": "b@x.io", "firstName": "B", "account": {"status": "inactive"}, "roles": []},
    ]
    path = tmp_path / "nested" / "out.csv"

    count = write_export_csv(path, docs, ["account.status", "email", "roles", "phone"])

    assert count == 2
    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))
    assert rows == [
        ["account.status", "email", "roles", "phone"],
        ["active", "a@x.io", "mentor", ""],
        ["inactive", "b@x.io", "", ""],
    ]
