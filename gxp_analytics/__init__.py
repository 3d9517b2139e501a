"""
GxP Validation Analytics - statistics over pharmaceutical validation records.

This package derives the figures shown on validation dashboards for the
pharmaceutical industry: process, analytical-method, cleaning and
computerized-system validations, their lifecycle status, protocol and
report coverage, equipment usage and monthly trends.

Key Features
------------
* **Filtering**: By validation type, year and month, with calendar fields
  read consistently in a configured reporting timezone
* **Scalar statistics**: Totals, validated products, protocols, reports,
  near-expiry and expired records
* **Breakdowns**: By type (with percentages), subcategory, status,
  product type and most used equipment
* **Trends**: Year-anchored and recent monthly series
* **Expiry watch-list**: Records expired or about to expire
* **Diagnostics**: Malformed records are reported, never fatal

Quick Start
-----------
>>> from datetime import date
>>> from gxp_analytics import Aggregator, FilterSpec, load_records
>>>
>>> records = load_records(snapshot)  # list of dicts from storage
>>> aggregator = Aggregator()
>>> spec = FilterSpec(year="2024", validation_type="all", month="all")
>>> dashboard = aggregator.dashboard(records, spec, total_products=40)
>>> recent = aggregator.analytics(records, spec, today=date.today())
>>> dashboard.scalars.unique_validated_product_count

Note
----
Results are computed on every call from the snapshot passed in; the
package keeps no record state, reads no storage and never reads the
system clock. The analytics view takes the current date from the caller,
either as ``today`` or through a clock injected into the ``Aggregator``.
"""

__version__ = "1.0.0"

from .aggregation import (
    Aggregator,
    compute_ratios,
    compute_scalars,
    group_by,
    monthly_series,
    summarize_analytics,
    summarize_dashboard,
    year_series,
)
from .config import AnalyticsConfig, configure, get_config, set_config
from .diagnostics import Diagnostics
from .exceptions import AnalyticsError, InvalidFilterError, RecordLoadError
from .expiry import expiry_watchlist
from .filtering import available_months, available_years, filter_records
from .models import (
    ALL,
    AggregateResult,
    DataQualityWarning,
    ExpiryNotice,
    FilterSpec,
    GroupCount,
    PeriodStat,
    ProductRef,
    ProductType,
    Ratios,
    ScalarStats,
    Subcategory,
    ValidationRecord,
    ValidationStatus,
    ValidationType,
)
from .records import load_records, read_records_file

__all__ = [
    # Engine
    "Aggregator",
    "summarize_dashboard",
    "summarize_analytics",
    "compute_scalars",
    "compute_ratios",
    "group_by",
    "monthly_series",
    "year_series",
    "expiry_watchlist",
    # Filtering
    "filter_records",
    "available_years",
    "available_months",
    # Records
    "load_records",
    "read_records_file",
    "Diagnostics",
    # Models
    "ALL",
    "AggregateResult",
    "DataQualityWarning",
    "ExpiryNotice",
    "FilterSpec",
    "GroupCount",
    "PeriodStat",
    "ProductRef",
    "ProductType",
    "Ratios",
    "ScalarStats",
    "Subcategory",
    "ValidationRecord",
    "ValidationStatus",
    "ValidationType",
    # Errors
    "AnalyticsError",
    "InvalidFilterError",
    "RecordLoadError",
    # Configuration
    "AnalyticsConfig",
    "configure",
    "get_config",
    "set_config",
]
