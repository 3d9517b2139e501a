"""
Coercion of raw record snapshots into validation records.

The persistence layer hands over JSON-like mappings. Field names may use
snake_case or camelCase, and enumeration values may use the legacy
Spanish vocabulary of older storage. Anything that cannot be understood
is recorded as a data-quality warning and left empty; nothing here raises
for bad data.
"""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from dateutil import parser as date_parser

from .diagnostics import Diagnostics
from .exceptions import RecordLoadError
from .models import (
    ProductRef,
    ProductType,
    Subcategory,
    ValidationRecord,
    ValidationStatus,
    ValidationType,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", ValidationType, ValidationStatus, Subcategory, ProductType)

_FIELD_ALIASES = {
    "validation_type": ("validation_type", "validationType"),
    "equipment_type": ("equipment_type", "equipmentType"),
    "created_at": ("created_at", "createdAt"),
    "expiry_date": ("expiry_date", "expiryDate"),
}

# Fixed fill-in values for free-form parsing, never the current date
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def _get(data: Mapping, name: str) -> Any:
    for key in _FIELD_ALIASES.get(name, (name,)):
        if key in data:
            return data[key]
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp.

    Args:
        value: ``datetime``, ``date`` or ISO-8601 / free-form string

    Returns:
        Parsed datetime, or None if the value is missing, unparseable or
        lacks a full calendar date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        pass
    # Parse against two different defaults; a value that leaves the year,
    # month or day to the default gives two different results.
    try:
        first = date_parser.parse(text, default=_DEFAULT_A)
        second = date_parser.parse(text, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return first


def _coerce_enum(
    enum_type: Type[E],
    value: Any,
    record_id: str,
    field: str,
    diagnostics: Diagnostics,
) -> Optional[E]:
    if value is None or value == "":
        return None
    try:
        return enum_type(value)
    except ValueError:
        diagnostics.warn(record_id, field, f"unknown {field} value", value)
        return None


def _coerce_product(
    value: Any, record_id: str, diagnostics: Diagnostics
) -> Optional[ProductRef]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        diagnostics.warn(record_id, "product", "product is not an object", value)
        return None
    product_id = value.get("id")
    if product_id is None or product_id == "":
        diagnostics.warn(record_id, "product", "product reference has no id", value)
        return None
    product_type = _coerce_enum(
        ProductType, value.get("type"), record_id, "product.type", diagnostics
    )
    return ProductRef(id=str(product_id), type=product_type)


def _coerce_files(value: Any, record_id: str, diagnostics: Diagnostics) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        diagnostics.warn(record_id, "files", "files is not a list", value)
        return ()
    return tuple(value)


def _coerce_existing(record: ValidationRecord, diagnostics: Diagnostics) -> ValidationRecord:
    updates: Dict[str, Any] = {}
    for name, enum_type in (
        ("validation_type", ValidationType),
        ("status", ValidationStatus),
        ("subcategory", Subcategory),
    ):
        value = getattr(record, name)
        if value is not None and not isinstance(value, enum_type):
            updates[name] = _coerce_enum(enum_type, value, record.id, name, diagnostics)

    product = record.product
    if (
        product is not None
        and product.type is not None
        and not isinstance(product.type, ProductType)
    ):
        updates["product"] = replace(
            product,
            type=_coerce_enum(
                ProductType, product.type, record.id, "product.type", diagnostics
            ),
        )

    if record.created_at is None:
        diagnostics.warn(record.id, "created_at", "missing timestamp")
    return replace(record, **updates) if updates else record


def coerce_record(
    data: Union[ValidationRecord, Mapping], diagnostics: Diagnostics, index: int = 0
) -> Optional[ValidationRecord]:
    """
    Convert one raw mapping into a ``ValidationRecord``.

    Args:
        data: Raw record mapping or an existing record
        diagnostics: Collector for data-quality warnings
        index: Position in the snapshot, used when the record has no id

    Returns:
        The record, or None if ``data`` is not a mapping at all. Record
        instances are returned as-is unless a category field holds a raw
        value, which is coerced like a stored one
    """
    if isinstance(data, ValidationRecord):
        return _coerce_existing(data, diagnostics)
    if not isinstance(data, Mapping):
        diagnostics.warn(None, "record", f"item {index} is not an object", data)
        return None

    raw_id = data.get("id")
    if raw_id is None or raw_id == "":
        record_id = f"#{index}"
        diagnostics.warn(record_id, "id", "record has no id")
    else:
        record_id = str(raw_id)

    raw_created = _get(data, "created_at")
    created_at = parse_timestamp(raw_created)
    if created_at is None:
        diagnostics.warn(
            record_id, "created_at", "missing or unparseable timestamp", raw_created
        )

    raw_expiry = _get(data, "expiry_date")
    expiry = parse_timestamp(raw_expiry)
    if raw_expiry not in (None, "") and expiry is None:
        diagnostics.warn(record_id, "expiry_date", "unparseable expiry date", raw_expiry)

    equipment = _get(data, "equipment_type")
    if equipment is not None:
        equipment = str(equipment).strip() or None

    return ValidationRecord(
        id=record_id,
        validation_type=_coerce_enum(
            ValidationType,
            _get(data, "validation_type"),
            record_id,
            "validation_type",
            diagnostics,
        ),
        status=_coerce_enum(
            ValidationStatus, data.get("status"), record_id, "status", diagnostics
        ),
        subcategory=_coerce_enum(
            Subcategory, data.get("subcategory"), record_id, "subcategory", diagnostics
        ),
        equipment_type=equipment,
        created_at=created_at,
        product=_coerce_product(data.get("product"), record_id, diagnostics),
        files=_coerce_files(data.get("files"), record_id, diagnostics),
        expiry_date=expiry.date() if expiry else None,
    )


def normalize_records(records: Any, diagnostics: Diagnostics) -> Tuple[ValidationRecord, ...]:
    """
    Normalize a record snapshot into a tuple of records.

    A ``None`` or non-sequence snapshot is treated as empty and flagged on
    ``diagnostics``; items that are not mappings are skipped with a warning.

    Args:
        records: Snapshot supplied by the persistence layer
        diagnostics: Collector for data-quality warnings

    Returns:
        Tuple of validation records
    """
    if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
        diagnostics.mark_input_missing(records)
        return ()

    normalized: List[ValidationRecord] = []
    for index, item in enumerate(records):
        record = coerce_record(item, diagnostics, index)
        if record is not None:
            normalized.append(record)
    return tuple(normalized)


def load_records(
    raw: Any, diagnostics: Optional[Diagnostics] = None
) -> Tuple[ValidationRecord, ...]:
    """
    Load validation records from a raw snapshot.

    Args:
        raw: Sequence of mappings, as decoded from storage
        diagnostics: Optional collector; a fresh one is used if omitted

    Returns:
        Tuple of validation records
    """
    diagnostics = diagnostics or Diagnostics()
    records = normalize_records(raw, diagnostics)
    logger.debug(
        f"Loaded {len(records)} validation records "
        f"({len(diagnostics.warnings)} warnings)"
    )
    return records


def read_records_file(
    path: Union[str, Path], diagnostics: Optional[Diagnostics] = None
) -> Tuple[ValidationRecord, ...]:
    """
    Read a JSON snapshot of validation records from disk.

    The file may contain a list of records or an object with a
    ``systemValidations`` / ``validations`` list.

    Args:
        path: JSON file path
        diagnostics: Optional collector for data-quality warnings

    Returns:
        Tuple of validation records

    Raises:
        RecordLoadError: If the file cannot be read or is not valid JSON
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except OSError as e:
        raise RecordLoadError(str(path), e.strerror or str(e)) from e
    except json.JSONDecodeError as e:
        raise RecordLoadError(str(path), f"invalid JSON ({e.msg})") from e

    if isinstance(payload, Mapping):
        for key in ("systemValidations", "validations", "records"):
            if key in payload:
                payload = payload[key]
                break

    return load_records(payload, diagnostics)
