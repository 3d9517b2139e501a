"""
Expiry watch-list for validation records.

Produces the data consumed by expiry notifications. Delivering those
notifications is left to the caller.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from .config import AnalyticsConfig, get_config
from .models import ExpiryNotice, ValidationRecord, ValidationStatus

logger = logging.getLogger(__name__)

_FLAGGED_STATUSES = frozenset({ValidationStatus.NEAR_EXPIRY, ValidationStatus.EXPIRED})


def days_until_expiry(expiry_date: Optional[date], today: date) -> Optional[int]:
    """Days from ``today`` to ``expiry_date``; negative once expired."""
    if expiry_date is None:
        return None
    return (expiry_date - today).days


def expiry_watchlist(
    subset: Iterable[ValidationRecord],
    today: date,
    warning_days: Optional[int] = None,
    config: Optional[AnalyticsConfig] = None,
) -> Tuple[ExpiryNotice, ...]:
    """
    Records that are expired or due to expire soon.

    A record is listed when its status is near-expiry or expired, or when
    its expiry date falls within ``warning_days`` of ``today`` (or has
    passed). Records are ordered most urgent first; records without an
    expiry date follow those with one.

    Args:
        subset: Validation records
        today: Current date
        warning_days: Look-ahead window (defaults to configuration)
        config: Analytics configuration (defaults to global)

    Returns:
        Tuple of expiry notices
    """
    if warning_days is None:
        warning_days = (config or get_config()).expiry_warning_days
    if warning_days < 0:
        raise ValueError("warning_days must not be negative")

    notices: List[ExpiryNotice] = []
    for record in subset:
        days = days_until_expiry(record.expiry_date, today)
        due = days is not None and days <= warning_days
        if not due and record.status not in _FLAGGED_STATUSES:
            continue
        notices.append(
            ExpiryNotice(
                record_id=record.id,
                status=record.status,
                expiry_date=record.expiry_date,
                days_until_expiry=days,
                product_id=record.product_id,
                equipment_type=record.equipment_type,
            )
        )

    def urgency(notice: ExpiryNotice) -> Tuple[int, int, int]:
        if notice.days_until_expiry is not None:
            return (0, notice.days_until_expiry, 0)
        # Undated: expired before near-expiry
        return (1, 0, 0 if notice.status == ValidationStatus.EXPIRED else 1)

    notices.sort(key=urgency)
    logger.debug(f"Expiry watch-list has {len(notices)} records as of {today}")
    return tuple(notices)
