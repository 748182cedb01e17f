"""Persist and parse the CSV result sets of a finished job."""

from __future__ import annotations

import csv
import io
from pathlib import Path

from ..exceptions import FileSystemError
from .bulk_models import FailedRecord, SuccessfulRecord

ID_COLUMN = "sf__Id"
CREATED_COLUMN = "sf__Created"
ERROR_COLUMN = "sf__Error"


def write_results(body: str, path: Path) -> Path:
    """Write the raw response body to ``path`` without re-encoding rows."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(body)
    except OSError as exc:
        raise FileSystemError(f"Job results not saved to '{path}': {exc}", path=str(path)) from exc
    return path


def _rows(body: str) -> list[dict[str, str]]:
    if not body.strip():
        return []
    reader = csv.DictReader(io.StringIO(body, newline=""))
    return [{key: value or "" for key, value in row.items() if key is not None} for row in reader]


def _split_error(raw: str) -> tuple[str, str]:
    code, sep, message = raw.partition(":")
    if not sep:
        return "UNKNOWN_ERROR", raw.strip()
    return code.strip(), message.strip()


def parse_successful_results(body: str) -> list[SuccessfulRecord]:
    records: list[SuccessfulRecord] = []
    for row in _rows(body):
        record_id = row.pop(ID_COLUMN, "")
        created = row.pop(CREATED_COLUMN, "").strip().lower() == "true"
        records.append(SuccessfulRecord(record_id=record_id, created=created, fields=row))
    return records


def parse_failed_results(body: str) -> list[FailedRecord]:
    records: list[FailedRecord] = []
    for row in _rows(body):
        record_id = row.pop(ID_COLUMN, "") or None
        code, message = _split_error(row.pop(ERROR_COLUMN, ""))
        records.append(
            FailedRecord(record_id=record_id, error_code=code, error_message=message, fields=row)
        )
    return records
