from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.http import HttpResponse
from django.utils import timezone

from bulk_import.models import ImportErrorLog, ImportSession
from bulk_import.schemas import RowSchema, get_schema


logger = logging.getLogger(__name__)

ERROR_REPORT_COLUMNS = ("row_number", "field", "value", "message")

VALIDATION_ERROR = ImportErrorLog.ErrorType.VALIDATION
STORE_ERROR = ImportErrorLog.ErrorType.STORE


class ImportRejected(Exception):
    """The file as a whole cannot be imported."""


@dataclass(frozen=True, slots=True)
class ImportRowError:
    row_number: int
    field: str
    value: str
    message: str
    error_type: str = VALIDATION_ERROR


def _flatten_errors(detail: Any, prefix: str = "") -> Iterable[tuple[str, str]]:
    if isinstance(detail, dict):
        for key, value in detail.items():
            name = "" if key in ("non_field_errors", "__all__") else str(key)
            yield from _flatten_errors(value, name or prefix)
    elif isinstance(detail, (list, tuple)):
        for item in detail:
            yield from _flatten_errors(item, prefix)
    else:
        yield prefix, str(detail)


def _django_errors(exc: DjangoValidationError) -> Iterable[tuple[str, str]]:
    if hasattr(exc, "error_dict"):
        return _flatten_errors(exc.message_dict)
    return (("", message) for message in exc.messages)


def _decode(uploaded) -> str:
    raw = uploaded.read()
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportRejected("File must be UTF-8 encoded CSV.") from exc


def _normalize_header(name: str | None) -> str:
    return (name or "").strip().lower().replace(" ", "_")


def read_rows(uploaded, schema: type[RowSchema]) -> list[tuple[int, dict[str, str]]]:
    """Parse and pre-check the file; returns (row_number, row) pairs.

    Row numbers are physical line numbers, the header being line 1.
    """

    max_bytes = settings.BULK_IMPORT_MAX_FILE_BYTES
    size = getattr(uploaded, "size", None)
    if size is not None and size > max_bytes:
        raise ImportRejected(f"File exceeds the {max_bytes} byte limit.")

    text = _decode(uploaded)
    if len(text.encode("utf-8")) > max_bytes:
        raise ImportRejected(f"File exceeds the {max_bytes} byte limit.")

    reader = csv.DictReader(io.StringIO(text, newline=""))
    try:
        header = [_normalize_header(name) for name in (reader.fieldnames or [])]
    except csv.Error as exc:
        raise ImportRejected(f"Malformed CSV: {exc}") from exc
    if not any(header):
        raise ImportRejected("File is empty or has no header row.")
    reader.fieldnames = header

    missing = [column for column in schema.required_columns() if column not in header]
    if missing:
        raise ImportRejected(f"Missing required columns: {', '.join(missing)}.")

    known = set(schema.columns())
    unknown = [column for column in header if column and column not in known]
    if unknown:
        logger.info("bulk_import.unknown_columns columns=%s", unknown)

    max_rows = settings.BULK_IMPORT_MAX_ROWS
    rows: list[tuple[int, dict[str, str]]] = []
    try:
        for raw in reader:
            values = {
                key: (value or "").strip()
                for key, value in raw.items()
                if key in known and isinstance(value, str)
            }
            if not any(values.values()):
                continue
            rows.append((reader.line_num, values))
            if len(rows) > max_rows:
                raise ImportRejected(f"File exceeds the {max_rows} row limit.")
    except csv.Error as exc:
        raise ImportRejected(f"Malformed CSV at line {reader.line_num}: {exc}") from exc
    return rows


def _import_row(schema_class, company, row_number: int, row: dict[str, str]):
    """Returns (created, errors) for one row."""

    data = {key: value for key, value in row.items() if value != ""}
    schema = schema_class(data=data, context={"company": company})
    if not schema.is_valid():
        return None, [
            ImportRowError(row_number, field, row.get(field, ""), message)
            for field, message in _flatten_errors(schema.errors)
        ]

    try:
        with transaction.atomic():
            _, created = schema.persist()
    except DjangoValidationError as exc:
        return None, [
            ImportRowError(row_number, field, row.get(field, ""), message)
            for field, message in _django_errors(exc)
        ]
    except DatabaseError as exc:
        logger.warning("bulk_import.store_error row=%s error=%s", row_number, exc)
        return None, [ImportRowError(row_number, "", "", str(exc), STORE_ERROR)]
    return created, []


def import_csv(company, entity_type: str, uploaded, *, user=None, file_name: str = "") -> ImportSession:
    """Import one CSV file into the tenant and persist the session.

    A file-level problem (size, encoding, header, row limit) rejects the file
    before any row is written. Otherwise every row is validated and saved on
    its own; failing rows are logged as `ImportErrorLog` entries.
    """

    schema_class = get_schema(entity_type)
    if schema_class is None:
        raise ValueError(f"Unknown entity type '{entity_type}'.")

    session = ImportSession.all_objects.create(
        company=company,
        entity_type=str(entity_type).strip().lower(),
        file_name=(file_name or getattr(uploaded, "name", "") or "")[:255],
        uploaded_by=user if getattr(user, "is_authenticated", False) else None,
    )

    try:
        rows = read_rows(uploaded, schema_class)
    except ImportRejected as exc:
        session.status = ImportSession.Status.REJECTED
        session.rejection_reason = str(exc)
        session.finished_at = timezone.now()
        session.save(update_fields=["status", "rejection_reason", "finished_at", "updated_at"])
        logger.warning(
            "bulk_import.rejected tenant=%s entity=%s session=%s reason=%s",
            company.tenant_code,
            session.entity_type,
            session.pk,
            exc,
        )
        return session

    errors: list[ImportRowError] = []
    seen_keys: dict[str, int] = {}
    key_reader = schema_class()
    for row_number, row in rows:
        session.total_rows += 1

        key = key_reader.natural_key(row)
        if key is not None and key in seen_keys:
            errors.append(
                ImportRowError(
                    row_number,
                    schema_class.key_field,
                    row.get(schema_class.key_field, ""),
                    f"Duplicate key; already used on row {seen_keys[key]}.",
                )
            )
            session.failed_rows += 1
            continue

        created, row_errors = _import_row(schema_class, company, row_number, row)
        if row_errors:
            errors.extend(row_errors)
            session.failed_rows += 1
            continue

        # only rows that were saved claim their key
        if key is not None:
            seen_keys[key] = row_number
        if created:
            session.created_rows += 1
        else:
            session.updated_rows += 1

    ImportErrorLog.all_objects.bulk_create(
        [
            ImportErrorLog(
                company=company,
                session=session,
                row_number=error.row_number,
                field=error.field,
                value=error.value,
                message=error.message,
                error_type=error.error_type,
            )
            for error in errors
        ]
    )

    session.status = ImportSession.Status.COMPLETED
    session.finished_at = timezone.now()
    session.save()
    logger.info(
        "bulk_import.completed tenant=%s entity=%s session=%s total=%s created=%s updated=%s failed=%s",
        company.tenant_code,
        session.entity_type,
        session.pk,
        session.total_rows,
        session.created_rows,
        session.updated_rows,
        session.failed_rows,
    )
    return session


def write_error_report(stream, errors: Iterable) -> int:
    writer = csv.writer(stream)
    writer.writerow(ERROR_REPORT_COLUMNS)
    count = 0
    for error in errors:
        writer.writerow([error.row_number, error.field, error.value, error.message])
        count += 1
    return count


def write_template(stream, entity_type: str) -> None:
    schema_class = get_schema(entity_type)
    if schema_class is None:
        raise ValueError(f"Unknown entity type '{entity_type}'.")
    csv.writer(stream).writerow(schema_class.columns())


def csv_response(filename: str) -> HttpResponse:
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}.csv"'
    return response
