"""
Data-quality diagnostics for validation analytics.

Bad input never aborts an aggregation. Instead, problems are collected
here so a caller can tell a degraded result apart from an empty data set.
"""

import logging
from typing import Any, List, Optional, Tuple

from .models import DataQualityWarning

logger = logging.getLogger(__name__)


class Diagnostics:
    """Collector for data-quality warnings raised during one call."""

    def __init__(self) -> None:
        """Initialize an empty collector."""
        self.warnings: List[DataQualityWarning] = []
        self.input_missing = False

    def warn(
        self,
        record_id: Optional[str],
        field: str,
        message: str,
        value: Any = None,
    ) -> DataQualityWarning:
        """
        Record a data-quality warning.

        Args:
            record_id: Identifier of the offending record, if known
            field: Name of the field at fault
            message: Human readable description
            value: Offending raw value

        Returns:
            The recorded warning
        """
        warning = DataQualityWarning(
            record_id=record_id,
            field=field,
            message=message,
            value=None if value is None else repr(value),
        )
        self.warnings.append(warning)
        logger.warning(f"Data quality: record={record_id} field={field}: {message}")
        return warning

    def mark_input_missing(self, received: Any) -> None:
        """Note that the record set was not a sequence and was treated as empty."""
        self.input_missing = True
        logger.warning(
            f"Record set of type {type(received).__name__} is not a sequence; "
            "treating it as empty"
        )

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def snapshot(self) -> Tuple[DataQualityWarning, ...]:
        """Return warnings collected so far as an immutable tuple."""
        return tuple(self.warnings)
