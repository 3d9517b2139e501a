"""
Tests for the aggregation engine.
"""

from datetime import date, datetime

import pytest

from gxp_analytics.aggregation import (
    ANALYTICS_VIEW,
    DASHBOARD_VIEW,
    UNSPECIFIED_COLOR,
    Aggregator,
    category_breakdown,
    compute_ratios,
    compute_scalars,
    equipment_breakdown,
    general_stats,
    group_by,
    palette_color,
    percentage,
    rank_groups,
    summarize_analytics,
    summarize_dashboard,
)
from gxp_analytics.config import DEFAULT_PALETTE, AnalyticsConfig
from gxp_analytics.models import (
    FilterSpec,
    ProductRef,
    ProductType,
    ScalarStats,
    Subcategory,
    ValidationRecord,
    ValidationStatus,
    ValidationType,
)


def make_record(
    record_id,
    validation_type=ValidationType.PROCESS,
    status=ValidationStatus.IN_VALIDATION,
    created_at=datetime(2024, 1, 15),
    product_id=None,
    product_type=None,
    equipment=None,
    subcategory=None,
    files=(),
):
    """Build a validation record for tests."""
    product = ProductRef(id=product_id, type=product_type) if product_id else None
    return ValidationRecord(
        id=record_id,
        validation_type=validation_type,
        status=status,
        subcategory=subcategory,
        equipment_type=equipment,
        created_at=created_at,
        product=product,
        files=tuple(files),
    )


@pytest.fixture
def config():
    """Deterministic configuration."""
    return AnalyticsConfig(timezone="UTC")


@pytest.fixture
def scenario_records():
    """Two validated process records for one product and an expired cleaning."""
    return [
        make_record(
            "V1",
            status=ValidationStatus.VALIDATED,
            product_id="P1",
            created_at=datetime(2024, 3, 10),
        ),
        make_record(
            "V2",
            status=ValidationStatus.VALIDATED,
            product_id="P1",
            created_at=datetime(2024, 4, 2),
        ),
        make_record(
            "V3",
            validation_type=ValidationType.CLEANING,
            status=ValidationStatus.EXPIRED,
            created_at=datetime(2024, 4, 15),
        ),
    ]


@pytest.fixture
def mixed_records():
    """Records covering every status, some with files and products."""
    statuses = list(ValidationStatus)
    types = list(ValidationType)
    records = []
    for i in range(21):
        records.append(
            make_record(
                f"M{i}",
                validation_type=types[i % len(types)],
                status=statuses[i % len(statuses)],
                created_at=datetime(2024, (i % 12) + 1, 5),
                product_id=f"P{i % 4}" if i % 3 else None,
                product_type=list(ProductType)[i % 4] if i % 3 else None,
                equipment=["HPLC", "Dissolution Bath", "Tablet Press", None][i % 4],
                subcategory=list(Subcategory)[i % 6] if i % 2 else None,
                files=["protocol.pdf"] if i % 2 == 0 else [],
            )
        )
    return records


def as_dict(groups):
    return {g.key: g.count for g in groups}


class TestHelpers:
    """Test small helper functions."""

    def test_percentage(self):
        """Test rounding to one decimal."""
        assert percentage(2, 3) == 66.7
        assert percentage(1, 3) == 33.3
        assert percentage(3, 3) == 100.0

    def test_percentage_zero_denominator(self):
        """Test a zero denominator yields 0.0."""
        assert percentage(0, 0) == 0.0
        assert percentage(5, 0) == 0.0

    def test_palette_color_deterministic(self):
        """Test palette colours are stable and from the palette."""
        first = palette_color("HPLC-01", DEFAULT_PALETTE)

        assert first == palette_color("HPLC-01", DEFAULT_PALETTE)
        assert first in DEFAULT_PALETTE

    def test_palette_color_single_colour(self):
        """Test a one-colour palette always returns that colour."""
        assert palette_color("anything", ["#000000"]) == "#000000"

    def test_rank_groups_ties_keep_insertion_order(self):
        """Test ranking is stable for equal counts."""
        counts = {"A": 2, "B": 3, "C": 2, "D": 1}
        assert rank_groups(counts, 3) == [("B", 3), ("A", 2), ("C", 2)]


class TestComputeScalars:
    """Test scalar statistics."""

    def test_scenario(self, scenario_records):
        """Test the reference scenario counts."""
        scalars = compute_scalars(scenario_records)

        assert scalars.total == 3
        assert scalars.validated_count == 2
        assert scalars.unique_validated_product_count == 1
        assert scalars.expired_count == 1
        assert scalars.expiring_count == 0
        assert scalars.reports_count == 2
        assert scalars.protocols_count == 0

    def test_empty(self):
        """Test an empty subset gives all zeros."""
        assert compute_scalars([]) == ScalarStats()

    def test_reports_and_protocols(self):
        """Test report and protocol counting."""
        records = [
            make_record("A", status=ValidationStatus.FIRST_REVIEW, files=["a.pdf"]),
            make_record("B", status=ValidationStatus.SECOND_REVIEW),
            make_record("C", status=ValidationStatus.NEAR_EXPIRY, files=["c.pdf"]),
            make_record("D", status=None),
        ]
        scalars = compute_scalars(records)

        assert scalars.total == 4
        assert scalars.reports_count == 2
        assert scalars.protocols_count == 2
        assert scalars.expiring_count == 1
        assert scalars.validated_count == 0

    def test_validated_without_product(self):
        """Test validated records without product count as validated only."""
        records = [
            make_record("A", status=ValidationStatus.VALIDATED),
            make_record("B", status=ValidationStatus.VALIDATED, product_id="P9"),
        ]
        scalars = compute_scalars(records)

        assert scalars.validated_count == 2
        assert scalars.unique_validated_product_count == 1

    def test_invariants(self, mixed_records):
        """Test ordering invariants between counts."""
        scalars = compute_scalars(mixed_records)

        assert scalars.validated_count <= scalars.total
        assert scalars.unique_validated_product_count <= scalars.validated_count
        assert scalars.reports_count >= scalars.validated_count


class TestRatios:
    """Test derived ratios."""

    def test_ratios(self):
        """Test ratios over counts."""
        scalars = ScalarStats(
            total=8, protocols_count=2, reports_count=6, unique_validated_product_count=3
        )
        ratios = compute_ratios(scalars, total_products=12)

        assert ratios.validated_products == 25.0
        assert ratios.protocols == 25.0
        assert ratios.reports == 75.0

    def test_zero_denominators(self):
        """Test ratios never divide by zero."""
        ratios = compute_ratios(ScalarStats(), total_products=0)
        assert ratios.to_dict() == {
            "validated_products": 0.0,
            "protocols": 0.0,
            "reports": 0.0,
        }

    def test_general_stats(self):
        """Test headline figures and their shares."""
        scalars = ScalarStats(
            total=5, protocols_count=3, reports_count=1, unique_validated_product_count=1
        )
        stats = general_stats(scalars)

        assert [g.key for g in stats] == [
            "validated_products",
            "total_validations",
            "protocols",
            "reports",
        ]
        assert [g.count for g in stats] == [1, 5, 3, 1]
        assert [g.percentage for g in stats] == [10.0, 50.0, 30.0, 10.0]

    def test_general_stats_empty(self):
        """Test headline shares are zero without data."""
        assert all(g.percentage == 0.0 for g in general_stats(ScalarStats()))


class TestGrouping:
    """Test group-by helpers."""

    def test_group_by_first_encountered_order(self, scenario_records):
        """Test keys keep first-encountered order."""
        counts = group_by(scenario_records, lambda r: r.validation_type)
        assert list(counts.items()) == [("process", 2), ("cleaning", 1)]

    def test_group_by_unspecified_bucket(self):
        """Test missing keys are counted, not lost."""
        records = [
            make_record("A", equipment="HPLC"),
            make_record("B", equipment=None),
            make_record("C", equipment=""),
        ]
        counts = group_by(records, lambda r: r.equipment_type, unspecified="n/a")

        assert counts == {"HPLC": 1, "n/a": 2}
        assert sum(counts.values()) == len(records)

    def test_category_breakdown_keep_zero(self, scenario_records):
        """Test all categories are listed when zeros are kept."""
        groups = category_breakdown(
            scenario_records,
            lambda r: r.validation_type,
            ValidationType,
            {},
            keep_zero=True,
        )
        assert as_dict(groups) == {
            "process": 2,
            "analytical_method": 0,
            "cleaning": 1,
            "computerized_system": 0,
        }

    def test_category_breakdown_omit_zero(self, scenario_records):
        """Test zero categories are dropped when requested."""
        groups = category_breakdown(
            scenario_records,
            lambda r: r.validation_type,
            ValidationType,
            {},
            keep_zero=False,
        )
        assert as_dict(groups) == {"process": 2, "cleaning": 1}

    def test_category_breakdown_percentages(self, scenario_records):
        """Test type percentages."""
        groups = category_breakdown(
            scenario_records,
            lambda r: r.validation_type,
            ValidationType,
            {},
            keep_zero=False,
            with_percentage=True,
        )
        assert {g.key: g.percentage for g in groups} == {
            "process": 66.7,
            "cleaning": 33.3,
        }

    def test_category_breakdown_unspecified_appended(self):
        """Test records without a category land in the unspecified bucket."""
        records = [
            make_record("A", subcategory=Subcategory.ASSAY),
            make_record("B", subcategory=None),
        ]
        groups = category_breakdown(
            records, lambda r: r.subcategory, Subcategory, {}, keep_zero=False
        )

        assert [g.key for g in groups] == ["assay", "unspecified"]
        assert groups[-1].color == UNSPECIFIED_COLOR

    def test_category_breakdown_unknown_key_is_unspecified(self):
        """Test keys outside the category set still add up to the subset size."""
        records = [
            make_record("A", validation_type=ValidationType.CLEANING),
            make_record("B", validation_type="sterilization"),
        ]
        groups = category_breakdown(
            records, lambda r: r.validation_type, ValidationType, {}, keep_zero=False
        )

        assert as_dict(groups) == {"cleaning": 1, "unspecified": 1}
        assert sum(g.count for g in groups) == len(records)

    def test_equipment_breakdown_ranking(self):
        """Test equipment ranking, ties and truncation."""
        records = [
            make_record(str(i), equipment=name)
            for i, name in enumerate(["A", "B", "B", "C", "A", "D", "E", "F", "G"])
        ]
        groups = equipment_breakdown(records, top_n=3, palette=DEFAULT_PALETTE)

        assert [(g.key, g.count) for g in groups] == [("A", 2), ("B", 2), ("C", 1)]
        assert all(g.color in DEFAULT_PALETTE for g in groups)

    def test_equipment_breakdown_deterministic(self, mixed_records):
        """Test identical input gives identical equipment output."""
        first = equipment_breakdown(mixed_records, 6, DEFAULT_PALETTE)
        second = equipment_breakdown(list(mixed_records), 6, DEFAULT_PALETTE)
        assert first == second


class TestAggregatorDashboard:
    """Test the dashboard view."""

    def test_scenario(self, scenario_records, config):
        """Test the reference scenario through the full pipeline."""
        result = Aggregator(config).dashboard(scenario_records, FilterSpec(year="2024"))

        assert result.view == DASHBOARD_VIEW
        assert result.total == 3
        assert result.scalars.validated_count == 2
        assert result.scalars.unique_validated_product_count == 1
        assert result.scalars.expired_count == 1
        assert as_dict(result.by_type) == {
            "process": 2,
            "analytical_method": 0,
            "cleaning": 1,
            "computerized_system": 0,
        }
        assert len(result.monthly_series) == 12
        assert not result.is_degraded

    def test_month_filter(self, scenario_records, config):
        """Test an April filter keeps only April records."""
        result = Aggregator(config).dashboard(
            scenario_records, FilterSpec(year="2024", month="3")
        )

        assert result.total == 2
        assert {g.key for g in result.by_type if g.count} == {"process", "cleaning"}

    def test_keeps_zero_statuses(self, scenario_records, config):
        """Test every status is listed on the dashboard."""
        result = Aggregator(config).dashboard(scenario_records, FilterSpec(year="2024"))

        assert [g.key for g in result.by_status] == [s.value for s in ValidationStatus]
        assert as_dict(result.by_status)["validated"] == 2

    def test_totals_match_partitions(self, mixed_records, config):
        """Test type and status groupings add up to the total."""
        result = Aggregator(config).dashboard(mixed_records, FilterSpec(year="2024"))

        assert sum(g.count for g in result.by_type) == result.total
        assert sum(g.count for g in result.by_status) == result.total
        assert sum(g.count for g in result.by_product_type) == result.total
        assert sum(g.count for g in result.by_subcategory) == result.total
        assert sum(g.percentage for g in result.by_type) <= 100.1

    def test_top_five_equipment(self, config):
        """Test the dashboard keeps five equipment groups."""
        records = [
            make_record(str(i), equipment=f"EQ-{i}", created_at=datetime(2024, 2, 1))
            for i in range(8)
        ]
        result = Aggregator(config).dashboard(records, FilterSpec(year="2024"))

        assert [g.key for g in result.by_equipment] == [f"EQ-{i}" for i in range(5)]

    def test_series_covers_filter_year(self, scenario_records, config):
        """Test the dashboard series is January-December of the filter year."""
        result = Aggregator(config).dashboard(scenario_records, FilterSpec(year="2024"))
        series = result.monthly_series

        assert [p.month for p in series] == list(range(12))
        assert all(p.year == 2024 for p in series)
        assert series[2].total_count == 1
        assert series[3].total_count == 2
        assert series[3].validated_count == 1
        assert sum(p.total_count for p in series) == result.total

    def test_ratios_use_catalogue_size(self, scenario_records, config):
        """Test validated product ratio uses the catalogue size."""
        result = Aggregator(config).dashboard(
            scenario_records, FilterSpec(year="2024"), total_products=4
        )
        assert result.ratios.validated_products == 25.0

    def test_raw_mappings_accepted(self, config):
        """Test raw storage mappings go through the pipeline."""
        snapshot = [
            {
                "id": "R1",
                "validation_type": "procesos",
                "status": "validado",
                "created_at": "2024-06-01",
                "product": {"id": "P1", "type": "granel"},
            },
            {"id": "R2", "status": "vencido", "created_at": "garbage"},
        ]
        result = Aggregator(config).dashboard(snapshot, FilterSpec(year="2024"))

        assert result.total == 1
        assert as_dict(result.by_product_type)["bulk"] == 1
        assert result.is_degraded
        assert result.warnings[0].record_id == "R2"

    def test_raw_category_values_on_records(self, config):
        """Test record instances holding raw strings are counted in their category."""
        records = [
            ValidationRecord(
                id="A", validation_type="Process", created_at=datetime(2024, 3, 1)
            ),
            ValidationRecord(
                id="B",
                validation_type="limpieza",
                status="validado",
                created_at=datetime(2024, 3, 2),
            ),
        ]
        result = Aggregator(config).dashboard(records, FilterSpec(year="2024"))

        assert result.total == 2
        assert as_dict(result.by_type) == {
            "process": 1,
            "analytical_method": 0,
            "cleaning": 1,
            "computerized_system": 0,
        }
        assert sum(g.count for g in result.by_type) == result.total
        assert result.scalars.validated_count == 1

    def test_to_dict(self, scenario_records, config):
        """Test dictionary conversion of the full result."""
        data = Aggregator(config).dashboard(
            scenario_records, FilterSpec(year="2024")
        ).to_dict()

        assert data["view"] == "dashboard"
        assert data["filter"] == {"validation_type": "all", "year": "2024", "month": "all"}
        assert data["scalars"]["total"] == 3
        assert len(data["monthly_series"]) == 12
        assert data["diagnostics"] == {"input_missing": False, "warnings": []}


class TestAggregatorAnalytics:
    """Test the analytics view."""

    def test_omits_zero_categories(self, scenario_records, config):
        """Test zero-count categories are left out."""
        result = Aggregator(config).analytics(
            scenario_records, FilterSpec(year="2024"), today=date(2024, 5, 20)
        )

        assert result.view == ANALYTICS_VIEW
        assert as_dict(result.by_type) == {"process": 2, "cleaning": 1}
        assert as_dict(result.by_status) == {"validated": 2, "expired": 1}
        assert all(g.count > 0 for g in result.by_subcategory)

    def test_recent_series(self, scenario_records, config):
        """Test the series ends at the current month."""
        result = Aggregator(config).analytics(
            scenario_records, FilterSpec(year="2024"), today=date(2024, 5, 20)
        )
        series = result.monthly_series

        assert len(series) == 6
        assert [(p.year, p.month) for p in series] == [
            (2023, 11),
            (2024, 0),
            (2024, 1),
            (2024, 2),
            (2024, 3),
            (2024, 4),
        ]
        assert series[3].total_count == 1
        assert series[4].total_count == 2
        assert series[4].validated_count == 1

    def test_series_independent_of_filter_year(self, scenario_records, config):
        """Test the recent series is anchored to today, not the filter year."""
        result = Aggregator(config).analytics(
            scenario_records, FilterSpec(year="2024"), today=date(2026, 10, 19)
        )

        assert result.total == 3
        assert result.monthly_series[-1].year == 2026
        assert all(p.total_count == 0 for p in result.monthly_series)

    def test_clock_is_injected(self, scenario_records, config):
        """Test the aggregator's clock is used when today is omitted."""
        aggregator = Aggregator(config, clock=lambda: date(2024, 4, 30))
        result = aggregator.analytics(scenario_records, FilterSpec(year="2024"))

        assert (result.monthly_series[-1].year, result.monthly_series[-1].month) == (
            2024,
            3,
        )

    def test_requires_today_or_clock(self, scenario_records, config):
        """Test the analytics view does not fall back to the system clock."""
        with pytest.raises(ValueError):
            Aggregator(config).analytics(scenario_records, FilterSpec(year="2024"))

    def test_top_six_equipment(self, config):
        """Test the analytics panel keeps six equipment groups."""
        records = [
            make_record(str(i), equipment=f"EQ-{i}", created_at=datetime(2024, 2, 1))
            for i in range(8)
        ]
        result = Aggregator(config).analytics(
            records, FilterSpec(year="2024"), today=date(2024, 2, 1)
        )
        assert len(result.by_equipment) == 6

    def test_repeatable_output(self, mixed_records, config):
        """Test identical input yields identical results."""
        spec = FilterSpec(year="2024")
        today = date(2024, 12, 31)
        aggregator = Aggregator(config)

        assert aggregator.analytics(mixed_records, spec, today) == aggregator.analytics(
            mixed_records, spec, today
        )


class TestEmptyInput:
    """Test empty and missing snapshots."""

    @pytest.mark.parametrize("snapshot", [[], None, "not-a-list", 3])
    def test_all_zero(self, snapshot, config):
        """Test empty or invalid snapshots give all-zero results."""
        aggregator = Aggregator(config)
        spec = FilterSpec(year="2024")

        for result in (
            aggregator.dashboard(snapshot, spec),
            aggregator.analytics(snapshot, spec, today=date(2024, 6, 1)),
        ):
            assert result.scalars == ScalarStats()
            assert all(v == 0.0 for v in result.ratios.to_dict().values())
            assert all(g.percentage == 0.0 for g in result.by_type)
            assert all(p.total_count == 0 for p in result.monthly_series)
            assert result.by_equipment == ()

    def test_missing_input_is_distinguishable(self, config):
        """Test a missing snapshot is flagged, an empty one is not."""
        aggregator = Aggregator(config)
        spec = FilterSpec(year="2024")

        assert aggregator.dashboard(None, spec).input_missing is True
        assert aggregator.dashboard([], spec).input_missing is False

    def test_series_lengths(self, config):
        """Test series lengths do not depend on data."""
        aggregator = Aggregator(config)
        spec = FilterSpec(year="2024")

        assert len(aggregator.dashboard([], spec).monthly_series) == 12
        assert len(aggregator.analytics([], spec, date(2024, 1, 1)).monthly_series) == 6


class TestConvenienceFunctions:
    """Test module-level helpers."""

    def test_summarize_dashboard(self, scenario_records, config):
        """Test dashboard helper."""
        result = summarize_dashboard(
            scenario_records, FilterSpec(year="2024"), config=config
        )
        assert result.view == DASHBOARD_VIEW
        assert result.total == 3

    def test_summarize_analytics(self, scenario_records, config):
        """Test analytics helper."""
        result = summarize_analytics(
            scenario_records, FilterSpec(year="2024"), date(2024, 4, 1), config=config
        )
        assert result.view == ANALYTICS_VIEW
        assert result.monthly_series[-1].total_count == 2
