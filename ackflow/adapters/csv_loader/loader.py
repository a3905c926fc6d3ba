"""CSV loader — reads document and user directory exports."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from ackflow.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    parse_bool,
    parse_tags,
)
from ackflow.domain.value_objects.enums import DocumentType

logger = logging.getLogger(__name__)

_DOCUMENT_TYPES = {t.value.lower(): t for t in DocumentType}


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Pick the delimiter (comma, semicolon or tab) used in the header row."""
    first_line = sample.splitlines()[0] if sample else ""
    counts = {d: first_line.count(d) for d in (",", ";", "\t")}
    best = max(counts, key=counts.get)
    if counts[best] == 0:
        return csv.excel

    class DynamicDialect(csv.excel):
        delimiter = best

    return DynamicDialect


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file into dicts keyed by normalized column name."""
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw.items() if k is not None}
            for raw in reader
        ]

    logger.info("Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values()))
    return rows


def load_documents(file_path: Path, organization_id: str) -> list[dict]:
    """Load the documents CSV.

    Expected columns: id, title, version, department, type, tags.
    Rows without an id or title are skipped.
    """
    documents = []
    for row in _read_csv(file_path):
        doc_id = row.get("id") or row.get("document_id")
        title = row.get("title") or row.get("name")
        if not doc_id or not title:
            logger.warning("Skipping document row without id/title: %s", row)
            continue
        raw_type = (row.get("type") or row.get("document_type") or "SOP").lower()
        document_type = _DOCUMENT_TYPES.get(raw_type)
        if document_type is None:
            logger.warning("Unknown document type '%s' for %s, using SOP", raw_type, doc_id)
            document_type = DocumentType.SOP
        documents.append({
            "id": doc_id,
            "organization_id": row.get("organization_id") or organization_id,
            "title": title,
            "version": row.get("version") or "1.0",
            "department": row.get("department"),
            "document_type": document_type.value,
            "tags": sorted(parse_tags(row.get("tags"))),
        })
    logger.info("Parsed %d documents", len(documents))
    return documents


def load_users(file_path: Path, organization_id: str) -> list[dict]:
    """Load the users CSV.

    Expected columns: id, name, email, department, manager_id, active.
    """
    users = []
    for row in _read_csv(file_path):
        user_id = row.get("id") or row.get("user_id")
        if not user_id:
            logger.warning("Skipping user row without id: %s", row)
            continue
        users.append({
            "id": user_id,
            "organization_id": row.get("organization_id") or organization_id,
            "name": row.get("name") or user_id,
            "email": row.get("email"),
            "department": row.get("department"),
            "manager_id": row.get("manager_id") or row.get("supervisor_id"),
            "active": parse_bool(row.get("active")),
        })
    logger.info("Parsed %d users", len(users))
    return users
