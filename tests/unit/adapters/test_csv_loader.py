"""Tests for CSV loader functions."""

import csv
import tempfile
from pathlib import Path

from ackflow.adapters.csv_loader.loader import load_documents, load_users
from ackflow.adapters.csv_loader.normalizer import (
    normalize_column_name,
    parse_bool,
    parse_tags,
)


def _write_csv(
    rows: list[dict], path: Path, encoding: str = "utf-8-sig", delimiter: str = ","
) -> None:
    """Helper to write a test CSV file."""
    if not rows:
        return
    with open(path, "w", encoding=encoding, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys(), delimiter=delimiter)
        writer.writeheader()
        writer.writerows(rows)


def test_load_documents_basic():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "documents.csv"
        _write_csv([
            {"ID": "sop-1", "Title": "Cleanroom Gowning", "Version": "2.1",
             "Department": "Lab", "Type": "SOP", "Tags": "Safety; GMP"},
            {"ID": "pol-7", "Title": "Data Retention", "Version": "",
             "Department": "", "Type": "policy", "Tags": ""},
        ], csv_path)

        documents = load_documents(csv_path, "org-1")
        assert len(documents) == 2
        assert documents[0]["id"] == "sop-1"
        assert documents[0]["organization_id"] == "org-1"
        assert documents[0]["tags"] == ["gmp", "safety"]
        assert documents[1]["document_type"] == "Policy"
        assert documents[1]["version"] == "1.0"
        assert documents[1]["department"] is None


def test_load_documents_skips_rows_without_title():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "documents.csv"
        _write_csv([
            {"id": "sop-1", "title": "", "type": "SOP"},
            {"id": "sop-2", "title": "Spill Response", "type": "Checklist"},
        ], csv_path)

        documents = load_documents(csv_path, "org-1")
        assert [d["id"] for d in documents] == ["sop-2"]
        assert documents[0]["document_type"] == "SOP"


def test_load_users_semicolon_delimited():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "users.csv"
        _write_csv([
            {"User ID": "u1", "Name": "Ari", "Email": "ari@example.com",
             "Department": "Lab", "Manager ID": "boss", "Active": "yes"},
            {"User ID": "u2", "Name": "", "Email": "",
             "Department": "QA", "Manager ID": "", "Active": "no"},
        ], csv_path, delimiter=";")

        users = load_users(csv_path, "org-1")
        assert len(users) == 2
        assert users[0]["id"] == "u1"
        assert users[0]["manager_id"] == "boss"
        assert users[0]["active"] is True
        assert users[1]["name"] == "u2"
        assert users[1]["manager_id"] is None
        assert users[1]["active"] is False


def test_normalize_column_name():
    assert normalize_column_name("\ufeffManager ID ") == "manager_id"
    assert normalize_column_name("Document-Type") == "document_type"


def test_parse_tags():
    assert parse_tags("Safety; onboarding, lab|lab") == {"safety", "onboarding", "lab"}
    assert parse_tags(None) == frozenset()


def test_parse_bool_defaults():
    assert parse_bool(None) is True
    assert parse_bool("maybe", default=False) is False
    assert parse_bool(" Inactive ") is False
