"""
CSV reading and writing for user import and export.

Import files carry a header row with required ``firstName,lastName,email``
and optional ``phone,password,roles`` columns. Export files use the
requested document paths as the header, in the requested order.
"""
from __future__ import annotations

import csv
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from skillconnect.db.filters import get_path
from skillconnect.errors import JobFatalError

IMPORT_REQUIRED_COLUMNS = ("firstName", "lastName", "email")
IMPORT_OPTIONAL_COLUMNS = ("phone", "password", "roles")

# Header occupies line 1; the first data row is line 2.
FIRST_DATA_LINE = 2


def parse_import_csv(path: str | os.PathLike) -> List[Dict[str, Any]]:
    """Read an import file into row dicts with trimmed keys and values.

    Rows are returned in file order. Any fault reading the file ends the job.
    """
    try:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            reader = csv.DictReader(fh)
            if not reader.fieldnames:
                raise JobFatalError("Import file has no header row")
            rows = []
            for raw in reader:
                row = {}
                for key, value in raw.items():
                    # Surplus cells land under the None key
                    if key is None:
                        continue
                    row[key.strip()] = value.strip() if isinstance(value, str) else value
                rows.append(row)
            return rows
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise JobFatalError(f"Unable to read import file: {e}") from e


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(format_cell(v) for v in value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    return str(value)


def write_export_csv(
    path: str | os.PathLike,
    documents: Iterable[Dict[str, Any]],
    fields: Sequence[str],
) -> int:
    """Write documents projected onto ``fields``; returns the row count."""
    target = Path(path)
    count = 0
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(list(fields))
            for document in documents:
                writer.writerow([format_cell(get_path(document, field)) for field in fields])
                count += 1
    except OSError as e:
        raise JobFatalError(f"Unable to write export file: {e}") from e
    return count
