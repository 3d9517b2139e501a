"""
Domain model for validation analytics.

Validation records are owned by the persistence layer and are read-only
here. Filter specifications and aggregate results are created per query.
"""

from dataclasses import dataclass, field
from datetime import MINYEAR, date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .exceptions import InvalidFilterError

ALL = "all"


class _AliasedEnum(str, Enum):
    """String enum that also accepts legacy storage values."""

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {}

    @classmethod
    def _missing_(cls, value: object) -> Optional["_AliasedEnum"]:
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == key or member.name.lower() == key:
                return member
        target = cls._aliases().get(key)
        if target is not None:
            return cls(target)
        # camelCase values, e.g. "analyticalMethod"
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in value.strip())
        for member in cls:
            if member.value == snake.lstrip("_"):
                return member
        return None


class ValidationType(_AliasedEnum):
    """Kinds of validation activity."""

    PROCESS = "process"
    ANALYTICAL_METHOD = "analytical_method"
    CLEANING = "cleaning"
    COMPUTERIZED_SYSTEM = "computerized_system"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {
            "procesos": "process",
            "metodos_analiticos": "analytical_method",
            "limpieza": "cleaning",
            "sistemas_computarizados": "computerized_system",
        }


class Subcategory(_AliasedEnum):
    """Analytical or manufacturing subcategory of a validation."""

    ASSAY = "assay"
    DISSOLUTION = "dissolution"
    IMPURITIES = "impurities"
    MANUFACTURING = "manufacturing"
    PACKAGING = "packaging"
    IDENTIFICATION = "identification"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {
            "valoracion": "assay",
            "disolucion": "dissolution",
            "impurezas": "impurities",
            "fabricacion": "manufacturing",
            "empaque": "packaging",
            "identificacion": "identification",
        }


class ValidationStatus(_AliasedEnum):
    """Lifecycle state of a validation record."""

    VALIDATED = "validated"
    IN_VALIDATION = "in_validation"
    NEAR_EXPIRY = "near_expiry"
    EXPIRED = "expired"
    IN_REVALIDATION = "in_revalidation"
    FIRST_REVIEW = "first_review"
    SECOND_REVIEW = "second_review"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {
            "validado": "validated",
            "en_validacion": "in_validation",
            "proximo_vencer": "near_expiry",
            "vencido": "expired",
            "en_revalidacion": "in_revalidation",
            "primera_revision": "first_review",
            "segunda_revision": "second_review",
        }


class ProductType(_AliasedEnum):
    """Material class of a validated product."""

    FINISHED_PRODUCT = "finished_product"
    RAW_MATERIAL = "raw_material"
    PACKAGING_MATERIAL = "packaging_material"
    BULK = "bulk"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {
            "producto_terminado": "finished_product",
            "materia_prima": "raw_material",
            "material_empaque": "packaging_material",
            "granel": "bulk",
        }


# Statuses that mean a report exists or is under review
REPORT_STATUSES = frozenset(
    {
        ValidationStatus.VALIDATED,
        ValidationStatus.FIRST_REVIEW,
        ValidationStatus.SECOND_REVIEW,
    }
)


@dataclass(frozen=True)
class ProductRef:
    """Reference to the product covered by a validation."""

    id: str
    type: Optional[ProductType] = None


@dataclass(frozen=True)
class ValidationRecord:
    """Single pharmaceutical validation activity.

    ``created_at`` is ``None`` when the stored value was missing or could
    not be parsed; such records still count towards totals but never match
    a date filter.
    """

    id: str
    validation_type: Optional[ValidationType] = None
    status: Optional[ValidationStatus] = None
    subcategory: Optional[Subcategory] = None
    equipment_type: Optional[str] = None
    created_at: Optional[datetime] = None
    product: Optional[ProductRef] = None
    files: Tuple[Any, ...] = ()
    expiry_date: Optional[date] = None

    @property
    def has_protocol(self) -> bool:
        """True when protocol documentation is attached."""
        return len(self.files) > 0

    @property
    def is_report(self) -> bool:
        """True when the status indicates a completed or in-review report."""
        return self.status in REPORT_STATUSES

    @property
    def product_id(self) -> Optional[str]:
        return self.product.id if self.product else None


def _parse_month(value: Union[int, str]) -> Union[int, str]:
    if isinstance(value, str):
        text = value.strip().lower()
        if text == ALL:
            return ALL
        if not text.lstrip("-").isdigit():
            raise InvalidFilterError("month", value, "expected 0-11 or 'all'")
        value = int(text)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFilterError("month", value, "expected 0-11 or 'all'")
    if not 0 <= value <= 11:
        raise InvalidFilterError("month", value, "month index must be 0-11")
    return value


def _parse_year(value: Union[int, str]) -> str:
    text = str(value).strip()
    if len(text) != 4 or not text.isdigit():
        raise InvalidFilterError("year", value, "expected a 4-digit year")
    if int(text) < MINYEAR:
        raise InvalidFilterError("year", value, f"year must be at least {MINYEAR}")
    return text


def _parse_type(value: Union[ValidationType, str]) -> Union[ValidationType, str]:
    if isinstance(value, str) and value.strip().lower() == ALL:
        return ALL
    try:
        return ValidationType(value)
    except ValueError:
        raise InvalidFilterError(
            "validation_type", value, "unknown validation type"
        ) from None


@dataclass(frozen=True)
class FilterSpec:
    """Filter applied to the record set before aggregation.

    Args:
        year: Four-digit year, as string or int
        validation_type: A ``ValidationType`` (or its value) or ``"all"``
        month: Zero-based month index (0 = January) or ``"all"``
    """

    year: str
    validation_type: Union[ValidationType, str] = ALL
    month: Union[int, str] = ALL

    def __post_init__(self) -> None:
        object.__setattr__(self, "year", _parse_year(self.year))
        object.__setattr__(self, "validation_type", _parse_type(self.validation_type))
        object.__setattr__(self, "month", _parse_month(self.month))

    @property
    def year_number(self) -> int:
        return int(self.year)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "validation_type": (
                self.validation_type.value
                if isinstance(self.validation_type, ValidationType)
                else self.validation_type
            ),
            "year": self.year,
            "month": self.month,
        }


@dataclass(frozen=True)
class DataQualityWarning:
    """Problem found in an input record that reduced what could be counted."""

    record_id: Optional[str]
    field: str
    message: str
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "record_id": self.record_id,
            "field": self.field,
            "message": self.message,
            "value": self.value,
        }


@dataclass(frozen=True)
class ScalarStats:
    """Headline counts over a filtered subset."""

    total: int = 0
    validated_count: int = 0
    protocols_count: int = 0
    reports_count: int = 0
    expiring_count: int = 0
    expired_count: int = 0
    unique_validated_product_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "validated_count": self.validated_count,
            "protocols_count": self.protocols_count,
            "reports_count": self.reports_count,
            "expiring_count": self.expiring_count,
            "expired_count": self.expired_count,
            "unique_validated_product_count": self.unique_validated_product_count,
        }


@dataclass(frozen=True)
class Ratios:
    """Percentages derived from the headline counts."""

    validated_products: float = 0.0
    protocols: float = 0.0
    reports: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "validated_products": self.validated_products,
            "protocols": self.protocols,
            "reports": self.reports,
        }


@dataclass(frozen=True)
class GroupCount:
    """Count of records sharing one group key."""

    key: str
    count: int
    color: str
    percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {"key": self.key, "count": self.count, "color": self.color}
        if self.percentage is not None:
            data["percentage"] = self.percentage
        return data


@dataclass(frozen=True)
class PeriodStat:
    """Counts for one calendar month of a trend series."""

    period_label: str
    year: int
    month: int
    total_count: int = 0
    validated_count: int = 0
    protocol_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "period_label": self.period_label,
            "year": self.year,
            "month": self.month,
            "total_count": self.total_count,
            "validated_count": self.validated_count,
            "protocol_count": self.protocol_count,
        }


@dataclass(frozen=True)
class ExpiryNotice:
    """Record that is expired or approaching expiry."""

    record_id: str
    status: Optional[ValidationStatus]
    expiry_date: Optional[date]
    days_until_expiry: Optional[int]
    product_id: Optional[str] = None
    equipment_type: Optional[str] = None

    @property
    def is_expired(self) -> bool:
        if self.days_until_expiry is not None:
            return self.days_until_expiry < 0
        return self.status == ValidationStatus.EXPIRED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "record_id": self.record_id,
            "status": self.status.value if self.status else None,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "days_until_expiry": self.days_until_expiry,
            "expired": self.is_expired,
            "product_id": self.product_id,
            "equipment_type": self.equipment_type,
        }


@dataclass(frozen=True)
class AggregateResult:
    """Immutable statistics derived from one filtered record set.

    ``view`` names the consumer the result was shaped for (``"dashboard"``
    or ``"analytics"``); it decides the series window, the equipment cut-off
    and whether zero-count categories are kept.
    """

    view: str
    filter_spec: FilterSpec
    scalars: ScalarStats
    ratios: Ratios
    by_type: Tuple[GroupCount, ...]
    by_subcategory: Tuple[GroupCount, ...]
    by_status: Tuple[GroupCount, ...]
    by_equipment: Tuple[GroupCount, ...]
    by_product_type: Tuple[GroupCount, ...]
    general_stats: Tuple[GroupCount, ...]
    monthly_series: Tuple[PeriodStat, ...]
    warnings: Tuple[DataQualityWarning, ...] = field(default_factory=tuple)
    input_missing: bool = False

    @property
    def total(self) -> int:
        return self.scalars.total

    @property
    def is_degraded(self) -> bool:
        """True when bad input may have reduced the counts."""
        return self.input_missing or bool(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "view": self.view,
            "filter": self.filter_spec.to_dict(),
            "scalars": self.scalars.to_dict(),
            "ratios": self.ratios.to_dict(),
            "by_type": [g.to_dict() for g in self.by_type],
            "by_subcategory": [g.to_dict() for g in self.by_subcategory],
            "by_status": [g.to_dict() for g in self.by_status],
            "by_equipment": [g.to_dict() for g in self.by_equipment],
            "by_product_type": [g.to_dict() for g in self.by_product_type],
            "general_stats": [g.to_dict() for g in self.general_stats],
            "monthly_series": [p.to_dict() for p in self.monthly_series],
            "diagnostics": {
                "input_missing": self.input_missing,
                "warnings": [w.to_dict() for w in self.warnings],
            },
        }
