"""
Filter stage for validation analytics.

A record passes a ``FilterSpec`` when its type matches (or the filter is
``"all"``), its creation year equals the filter year, and its creation
month matches (or the filter month is ``"all"``). Records without a usable
``created_at`` never match.
"""

import logging
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Tuple, Union

from .config import AnalyticsConfig, MonthLabelLocale, get_config
from .labels import ALL_MONTHS_LABEL, month_label
from .models import ALL, FilterSpec, ValidationRecord

logger = logging.getLogger(__name__)


def calendar_fields(
    created_at: Optional[datetime], tz: Optional[tzinfo] = None
) -> Optional[Tuple[int, int]]:
    """
    Calendar year and zero-based month of a timestamp.

    Timezone-aware values are converted to ``tz`` first; naive values are
    read as they are.

    Args:
        created_at: Record creation timestamp
        tz: Reporting timezone for aware timestamps

    Returns:
        ``(year, month_index)`` or None for a missing timestamp
    """
    if created_at is None:
        return None
    if tz is not None and created_at.utcoffset() is not None:
        created_at = created_at.astimezone(tz)
    return created_at.year, created_at.month - 1


def matches(
    record: ValidationRecord, spec: FilterSpec, tz: Optional[tzinfo] = None
) -> bool:
    """Check whether a single record passes the filter."""
    if spec.validation_type != ALL and record.validation_type != spec.validation_type:
        return False

    fields = calendar_fields(record.created_at, tz)
    if fields is None:
        return False
    year, month = fields
    if year != spec.year_number:
        return False
    return spec.month == ALL or month == spec.month


def filter_records(
    records: Iterable[ValidationRecord],
    spec: FilterSpec,
    config: Optional[AnalyticsConfig] = None,
) -> Tuple[ValidationRecord, ...]:
    """
    Apply a filter specification to a record set.

    The input is never modified and the output keeps input order, so
    filtering an already filtered subset with the same spec returns it
    unchanged.

    Args:
        records: Validation records
        spec: Filter to apply
        config: Analytics configuration (defaults to global)

    Returns:
        Records passing the filter
    """
    config = config or get_config()
    tz = config.tzinfo
    subset = tuple(r for r in records if matches(r, spec, tz))
    logger.debug(f"Filter {spec.to_dict()} kept {len(subset)} records")
    return subset


def available_years(
    records: Iterable[ValidationRecord], config: Optional[AnalyticsConfig] = None
) -> List[str]:
    """
    Distinct creation years present in the record set, newest first.

    Args:
        records: Validation records
        config: Analytics configuration (defaults to global)

    Returns:
        Four-digit year strings
    """
    config = config or get_config()
    tz = config.tzinfo
    years = set()
    for record in records:
        fields = calendar_fields(record.created_at, tz)
        if fields is not None:
            years.add(f"{fields[0]:04d}")
    return sorted(years, reverse=True)


def available_months(
    locale: Union[MonthLabelLocale, str, None] = None,
) -> List[Tuple[Union[int, str], str]]:
    """
    Month filter options: ``"all"`` followed by 0-11.

    Args:
        locale: Label locale (defaults to configured locale)

    Returns:
        List of ``(value, label)`` pairs
    """
    locale = MonthLabelLocale(locale or get_config().month_label_locale)
    options: List[Tuple[Union[int, str], str]] = [(ALL, ALL_MONTHS_LABEL[locale])]
    options.extend((i, month_label(i, locale, short=False)) for i in range(12))
    return options
