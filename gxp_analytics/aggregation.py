"""
Aggregation engine for validation records.

Turns a filtered subset of validation records into counts, grouped
breakdowns, ratios and monthly trend series. Every function here is pure:
it reads its arguments, never the clock or storage, and never mutates the
records it is given.

Two consumers shape the results differently:

* the dashboard keeps zero-count categories, shows the top 5 equipment
  and charts January-December of the filtered year;
* the analytics panel omits zero-count categories, shows the top 6
  equipment and charts the most recent months up to the current date,
  regardless of the year filter.
"""

import hashlib
import logging
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from dateutil.relativedelta import relativedelta

from .config import AnalyticsConfig, MonthLabelLocale, get_config
from .diagnostics import Diagnostics
from .filtering import calendar_fields, filter_records
from .labels import month_label
from .models import (
    AggregateResult,
    FilterSpec,
    GroupCount,
    PeriodStat,
    ProductType,
    Ratios,
    ScalarStats,
    Subcategory,
    ValidationRecord,
    ValidationStatus,
    ValidationType,
)
from .records import normalize_records

logger = logging.getLogger(__name__)

DASHBOARD_VIEW = "dashboard"
ANALYTICS_VIEW = "analytics"

DASHBOARD_SERIES_MONTHS = 12

UNSPECIFIED_COLOR = "#9ca3af"

TYPE_COLORS: Dict[ValidationType, str] = {
    ValidationType.PROCESS: "#3b82f6",
    ValidationType.ANALYTICAL_METHOD: "#10b981",
    ValidationType.CLEANING: "#f59e0b",
    ValidationType.COMPUTERIZED_SYSTEM: "#8b5cf6",
}

SUBCATEGORY_COLORS: Dict[Subcategory, str] = {
    Subcategory.ASSAY: "#3b82f6",
    Subcategory.DISSOLUTION: "#10b981",
    Subcategory.IMPURITIES: "#f59e0b",
    Subcategory.MANUFACTURING: "#8b5cf6",
    Subcategory.PACKAGING: "#ef4444",
    Subcategory.IDENTIFICATION: "#06b6d4",
}

STATUS_COLORS: Dict[ValidationStatus, str] = {
    ValidationStatus.VALIDATED: "#10b981",
    ValidationStatus.IN_VALIDATION: "#3b82f6",
    ValidationStatus.NEAR_EXPIRY: "#f59e0b",
    ValidationStatus.EXPIRED: "#ef4444",
    ValidationStatus.IN_REVALIDATION: "#8b5cf6",
    ValidationStatus.FIRST_REVIEW: "#06b6d4",
    ValidationStatus.SECOND_REVIEW: "#6366f1",
}

PRODUCT_TYPE_COLORS: Dict[ProductType, str] = {
    ProductType.FINISHED_PRODUCT: "#10b981",
    ProductType.RAW_MATERIAL: "#f59e0b",
    ProductType.PACKAGING_MATERIAL: "#8b5cf6",
    ProductType.BULK: "#3b82f6",
}

GENERAL_STATS_COLORS = {
    "validated_products": "#10b981",
    "total_validations": "#3b82f6",
    "protocols": "#f59e0b",
    "reports": "#8b5cf6",
}

KeyFn = Callable[[ValidationRecord], Any]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def percentage(numerator: int, denominator: int) -> float:
    """Percentage rounded to one decimal; 0.0 when the denominator is zero."""
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 1)


def palette_color(key: str, palette: Sequence[str]) -> str:
    """
    Deterministic palette colour for a free-form group key.

    The key's SHA-256 digest picks the palette slot, so a group keeps its
    colour across calls and processes.
    """
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return palette[int.from_bytes(digest[:4], "big") % len(palette)]


def _key_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def compute_scalars(subset: Iterable[ValidationRecord]) -> ScalarStats:
    """
    Compute headline counts over a subset.

    Args:
        subset: Filtered validation records

    Returns:
        Scalar statistics
    """
    total = validated = protocols = reports = expiring = expired = 0
    validated_products = set()

    for record in subset:
        total += 1
        if record.has_protocol:
            protocols += 1
        if record.is_report:
            reports += 1
        if record.status == ValidationStatus.VALIDATED:
            validated += 1
            if record.product_id is not None:
                validated_products.add(record.product_id)
        elif record.status == ValidationStatus.NEAR_EXPIRY:
            expiring += 1
        elif record.status == ValidationStatus.EXPIRED:
            expired += 1

    return ScalarStats(
        total=total,
        validated_count=validated,
        protocols_count=protocols,
        reports_count=reports,
        expiring_count=expiring,
        expired_count=expired,
        unique_validated_product_count=len(validated_products),
    )


def compute_ratios(scalars: ScalarStats, total_products: int = 0) -> Ratios:
    """
    Derive percentage ratios from scalar counts.

    Args:
        scalars: Headline counts
        total_products: Size of the product catalogue

    Returns:
        Ratios; any ratio with a zero denominator is 0.0
    """
    return Ratios(
        validated_products=percentage(
            scalars.unique_validated_product_count, total_products
        ),
        protocols=percentage(scalars.protocols_count, scalars.total),
        reports=percentage(scalars.reports_count, scalars.total),
    )


def general_stats(scalars: ScalarStats) -> Tuple[GroupCount, ...]:
    """Headline figures with their share of the combined headline sum."""
    values = [
        ("validated_products", scalars.unique_validated_product_count),
        ("total_validations", scalars.total),
        ("protocols", scalars.protocols_count),
        ("reports", scalars.reports_count),
    ]
    combined = sum(v for _, v in values)
    return tuple(
        GroupCount(
            key=key,
            count=value,
            color=GENERAL_STATS_COLORS[key],
            percentage=percentage(value, combined),
        )
        for key, value in values
    )


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def group_by(
    subset: Iterable[ValidationRecord],
    key_fn: KeyFn,
    unspecified: str = "unspecified",
) -> Dict[str, int]:
    """
    Count records per group key.

    Keys are returned in first-encountered order. Records whose key is
    missing are counted under ``unspecified`` so that the counts always
    add up to the subset size.

    Args:
        subset: Validation records
        key_fn: Function returning the group key of a record
        unspecified: Bucket for records without a key

    Returns:
        Mapping of key to count
    """
    counts: Dict[str, int] = {}
    for record in subset:
        key = _key_text(key_fn(record)) or unspecified
        counts[key] = counts.get(key, 0) + 1
    return counts


def rank_groups(counts: Mapping[str, int], top_n: int) -> List[Tuple[str, int]]:
    """
    Rank groups by count, descending, keeping the first ``top_n``.

    Ties keep first-encountered order.
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:top_n]


def category_breakdown(
    subset: Sequence[ValidationRecord],
    key_fn: KeyFn,
    categories: Type[Enum],
    colors: Mapping[Any, str],
    keep_zero: bool,
    unspecified: str = "unspecified",
    with_percentage: bool = False,
) -> Tuple[GroupCount, ...]:
    """
    Breakdown of a subset over a fixed set of enum categories.

    Categories appear in enum order. Zero-count categories are kept only
    when ``keep_zero`` is set. Records with no key, or a key outside the
    category set, go to the ``unspecified`` bucket, appended whenever it
    is non-empty.

    Args:
        subset: Filtered validation records
        key_fn: Function returning the record's category
        categories: Enum of all categories
        colors: Fixed colour per category
        keep_zero: Keep categories with no records
        unspecified: Bucket for records without a category
        with_percentage: Annotate each group with its share of the subset

    Returns:
        Tuple of group counts
    """
    counts = group_by(subset, key_fn, unspecified)
    total = len(subset)
    groups: List[GroupCount] = []

    for category in categories:
        count = counts.get(category.value, 0)
        if count == 0 and not keep_zero:
            continue
        groups.append(
            GroupCount(
                key=category.value,
                count=count,
                color=colors.get(category, UNSPECIFIED_COLOR),
                percentage=percentage(count, total) if with_percentage else None,
            )
        )

    # Keys outside the category set are counted as unspecified
    known = {category.value for category in categories}
    missing = sum(count for key, count in counts.items() if key not in known)
    if missing:
        groups.append(
            GroupCount(
                key=unspecified,
                count=missing,
                color=UNSPECIFIED_COLOR,
                percentage=percentage(missing, total) if with_percentage else None,
            )
        )
    return tuple(groups)


def equipment_breakdown(
    subset: Sequence[ValidationRecord],
    top_n: int,
    palette: Sequence[str],
    unspecified: str = "unspecified",
) -> Tuple[GroupCount, ...]:
    """
    Most used equipment types.

    Args:
        subset: Filtered validation records
        top_n: Number of equipment groups to keep
        palette: Colours for equipment groups
        unspecified: Bucket for records without equipment

    Returns:
        Up to ``top_n`` groups, most used first
    """
    counts = group_by(subset, lambda r: r.equipment_type, unspecified)
    return tuple(
        GroupCount(
            key=key,
            count=count,
            color=(
                UNSPECIFIED_COLOR if key == unspecified else palette_color(key, palette)
            ),
        )
        for key, count in rank_groups(counts, top_n)
    )


# ---------------------------------------------------------------------------
# Time series
# ---------------------------------------------------------------------------


def _period_stat(
    subset: Sequence[ValidationRecord],
    year: int,
    month_index: int,
    locale: MonthLabelLocale,
    tz: Optional[tzinfo],
) -> PeriodStat:
    in_period = [
        r for r in subset if calendar_fields(r.created_at, tz) == (year, month_index)
    ]
    return PeriodStat(
        period_label=month_label(month_index, locale),
        year=year,
        month=month_index,
        total_count=len(in_period),
        validated_count=sum(
            1 for r in in_period if r.status == ValidationStatus.VALIDATED
        ),
        protocol_count=sum(1 for r in in_period if r.has_protocol),
    )


def monthly_series(
    subset: Sequence[ValidationRecord],
    window_months: int,
    anchor: Union[date, datetime],
    locale: Union[MonthLabelLocale, str] = MonthLabelLocale.EN,
    tz: Optional[tzinfo] = None,
) -> Tuple[PeriodStat, ...]:
    """
    Month-by-month counts ending at the anchor's month.

    Each period re-filters ``subset`` to its own calendar month and year.

    Args:
        subset: Validation records (usually already filtered)
        window_months: Number of consecutive months
        anchor: Date whose month closes the window
        locale: Locale of period labels
        tz: Reporting timezone for aware timestamps

    Returns:
        ``window_months`` period statistics, oldest first
    """
    if window_months <= 0:
        raise ValueError("window_months must be positive")
    locale = MonthLabelLocale(locale)
    last = date(anchor.year, anchor.month, 1)

    series = []
    for offset in range(window_months - 1, -1, -1):
        period = last - relativedelta(months=offset)
        series.append(_period_stat(subset, period.year, period.month - 1, locale, tz))
    return tuple(series)


def year_series(
    subset: Sequence[ValidationRecord],
    year: int,
    locale: Union[MonthLabelLocale, str] = MonthLabelLocale.EN,
    tz: Optional[tzinfo] = None,
) -> Tuple[PeriodStat, ...]:
    """January-December counts of one year."""
    return monthly_series(
        subset, DASHBOARD_SERIES_MONTHS, date(year, 12, 1), locale=locale, tz=tz
    )


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class Aggregator:
    """Filter-then-aggregate pipeline over a validation record snapshot.

    The aggregator holds configuration and a clock but no record state;
    each call works only on the snapshot it is given.

    Example:
        >>> aggregator = Aggregator(clock=lambda: date(2024, 6, 15))
        >>> spec = FilterSpec(year="2024")
        >>> result = aggregator.dashboard(records, spec, total_products=12)
        >>> result.scalars.validated_count
    """

    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            config: Analytics configuration (defaults to global)
            clock: Callable returning the current date; used only when
                ``today`` is not passed to :meth:`analytics`. The
                aggregator never reads the system clock itself.
        """
        self.config = config or get_config()
        self.clock = clock

    def _prepare(
        self, records: Any, spec: FilterSpec
    ) -> Tuple[Tuple[ValidationRecord, ...], Diagnostics]:
        diagnostics = Diagnostics()
        snapshot = normalize_records(records, diagnostics)
        return filter_records(snapshot, spec, self.config), diagnostics

    def _build(
        self,
        view: str,
        spec: FilterSpec,
        subset: Tuple[ValidationRecord, ...],
        diagnostics: Diagnostics,
        series: Tuple[PeriodStat, ...],
        keep_zero: bool,
        top_equipment: int,
        total_products: int,
    ) -> AggregateResult:
        unspecified = self.config.unspecified_label
        scalars = compute_scalars(subset)

        def breakdown(
            key_fn: KeyFn,
            categories: Type[Enum],
            colors: Mapping[Any, str],
            with_percentage: bool = False,
        ) -> Tuple[GroupCount, ...]:
            return category_breakdown(
                subset,
                key_fn,
                categories,
                colors,
                keep_zero=keep_zero,
                unspecified=unspecified,
                with_percentage=with_percentage,
            )

        result = AggregateResult(
            view=view,
            filter_spec=spec,
            scalars=scalars,
            ratios=compute_ratios(scalars, total_products),
            by_type=breakdown(
                lambda r: r.validation_type, ValidationType, TYPE_COLORS, True
            ),
            by_subcategory=breakdown(
                lambda r: r.subcategory, Subcategory, SUBCATEGORY_COLORS
            ),
            by_status=breakdown(lambda r: r.status, ValidationStatus, STATUS_COLORS),
            by_equipment=equipment_breakdown(
                subset, top_equipment, self.config.palette, unspecified
            ),
            by_product_type=breakdown(
                lambda r: r.product.type if r.product else None,
                ProductType,
                PRODUCT_TYPE_COLORS,
            ),
            general_stats=general_stats(scalars),
            monthly_series=series,
            warnings=diagnostics.snapshot(),
            input_missing=diagnostics.input_missing,
        )

        logger.debug(
            f"Aggregated {view} view: total={scalars.total} "
            f"validated={scalars.validated_count} warnings={len(result.warnings)}"
        )
        return result

    def dashboard(
        self, records: Any, spec: FilterSpec, total_products: int = 0
    ) -> AggregateResult:
        """
        Aggregate for the dashboard.

        The series covers January-December of ``spec.year``; every category
        is listed even when it has no records.

        Args:
            records: Record snapshot (records or raw mappings)
            spec: Active filter
            total_products: Size of the product catalogue

        Returns:
            Aggregate result
        """
        subset, diagnostics = self._prepare(records, spec)
        series = year_series(
            subset,
            spec.year_number,
            locale=self.config.month_label_locale,
            tz=self.config.tzinfo,
        )
        return self._build(
            DASHBOARD_VIEW,
            spec,
            subset,
            diagnostics,
            series,
            keep_zero=True,
            top_equipment=self.config.dashboard_top_equipment,
            total_products=total_products,
        )

    def analytics(
        self,
        records: Any,
        spec: FilterSpec,
        today: Optional[date] = None,
        total_products: int = 0,
    ) -> AggregateResult:
        """
        Aggregate for the analytics panel.

        The series covers the configured number of months up to ``today``,
        independent of the year filter; categories without records are
        left out.

        Args:
            records: Record snapshot (records or raw mappings)
            spec: Active filter
            today: Current date (defaults to the aggregator's clock)
            total_products: Size of the product catalogue

        Returns:
            Aggregate result

        Raises:
            ValueError: If neither ``today`` nor a clock is available
        """
        if today is None:
            if self.clock is None:
                raise ValueError("analytics view needs today or an injected clock")
            today = self.clock()
        subset, diagnostics = self._prepare(records, spec)
        series = monthly_series(
            subset,
            self.config.trend_window_months,
            today,
            locale=self.config.month_label_locale,
            tz=self.config.tzinfo,
        )
        return self._build(
            ANALYTICS_VIEW,
            spec,
            subset,
            diagnostics,
            series,
            keep_zero=False,
            top_equipment=self.config.analytics_top_equipment,
            total_products=total_products,
        )


def summarize_dashboard(
    records: Any,
    spec: FilterSpec,
    total_products: int = 0,
    config: Optional[AnalyticsConfig] = None,
) -> AggregateResult:
    """
    Dashboard aggregate of a record snapshot.

    Args:
        records: Record snapshot
        spec: Active filter
        total_products: Size of the product catalogue
        config: Analytics configuration (defaults to global)

    Returns:
        Aggregate result
    """
    return Aggregator(config).dashboard(records, spec, total_products)


def summarize_analytics(
    records: Any,
    spec: FilterSpec,
    today: date,
    config: Optional[AnalyticsConfig] = None,
) -> AggregateResult:
    """
    Analytics-panel aggregate of a record snapshot.

    Args:
        records: Record snapshot
        spec: Active filter
        today: Current date anchoring the trend series
        config: Analytics configuration (defaults to global)

    Returns:
        Aggregate result
    """
    return Aggregator(config).analytics(records, spec, today=today)
