#!/usr/bin/env python3
"""
Dashboard Report Example - GxP Validation Analytics

Builds the dashboard and analytics-panel statistics for a small snapshot
of validation records, as a web dashboard would on every filter change.

Run with:

    python examples/dashboard_report.py
"""

from datetime import date

from gxp_analytics import (
    Aggregator,
    AnalyticsConfig,
    FilterSpec,
    available_years,
    expiry_watchlist,
    filter_records,
    load_records,
)

# Snapshot as exported by the validation tracking front end
SNAPSHOT = [
    {
        "id": "VAL-2024-001",
        "validationType": "procesos",
        "subcategory": "fabricacion",
        "status": "validado",
        "equipmentType": "Tablet Press TP-01",
        "createdAt": "2024-03-10T09:30:00Z",
        "product": {"id": "PRD-100", "type": "producto_terminado"},
        "files": [{"name": "PV-protocol.pdf"}],
    },
    {
        "id": "VAL-2024-002",
        "validationType": "metodos_analiticos",
        "subcategory": "disolucion",
        "status": "primera_revision",
        "equipmentType": "Dissolution Bath DB-02",
        "createdAt": "2024-04-02T14:00:00Z",
        "product": {"id": "PRD-100", "type": "producto_terminado"},
        "files": [],
    },
    {
        "id": "VAL-2024-003",
        "validationType": "limpieza",
        "status": "proximo_vencer",
        "equipmentType": "Tablet Press TP-01",
        "createdAt": "2024-04-15T08:00:00Z",
        "expiryDate": "2024-06-20",
        "files": [{"name": "CV-protocol.pdf"}],
    },
    {
        "id": "VAL-2023-014",
        "validationType": "sistemas_computarizados",
        "status": "vencido",
        "equipmentType": "LIMS",
        "createdAt": "2023-11-20T10:00:00Z",
        "expiryDate": "2024-05-01",
    },
    {
        "id": "VAL-BROKEN",
        "validationType": "procesos",
        "status": "validado",
        "createdAt": "not recorded",
    },
]


def main() -> None:
    """Print dashboard and analytics statistics."""
    config = AnalyticsConfig(timezone="Europe/Madrid", month_label_locale="es")
    today = date(2024, 6, 1)
    records = load_records(SNAPSHOT)

    print(f"Years with data: {', '.join(available_years(records, config))}")

    aggregator = Aggregator(config, clock=lambda: today)
    spec = FilterSpec(year="2024")

    dashboard = aggregator.dashboard(records, spec, total_products=5)
    scalars = dashboard.scalars
    print("\nDashboard 2024")
    print(f"  Total validations:  {scalars.total}")
    print(
        f"  Validated products: {scalars.unique_validated_product_count} "
        f"({dashboard.ratios.validated_products}% of catalogue)"
    )
    print(f"  Protocols:          {scalars.protocols_count} ({dashboard.ratios.protocols}%)")
    print(f"  Reports:            {scalars.reports_count} ({dashboard.ratios.reports}%)")
    print("  Material type:")
    for group in dashboard.by_product_type:
        print(f"    {group.key:<20} {group.count}")
    print("  Most used equipment:")
    for group in dashboard.by_equipment:
        print(f"    {group.key:<24} {group.count}  {group.color}")

    analytics = aggregator.analytics(records, spec)
    print("\nAnalytics panel - last months")
    for period in analytics.monthly_series:
        print(
            f"  {period.period_label:>5} {period.year}: "
            f"{period.total_count} total, {period.validated_count} validated, "
            f"{period.protocol_count} protocols"
        )
    print("  By type:")
    for group in analytics.by_type:
        print(f"    {group.key:<20} {group.count} ({group.percentage}%)")

    print("\nExpiry watch-list")
    for notice in expiry_watchlist(records, today, warning_days=30):
        print(f"  {notice.record_id}: {notice.days_until_expiry} days")

    if dashboard.is_degraded:
        print(f"\n{len(dashboard.warnings)} data quality warnings:")
        for warning in dashboard.warnings:
            print(f"  {warning.record_id} {warning.field}: {warning.message}")

    # Narrow to April only
    april = filter_records(records, FilterSpec(year="2024", month=3), config)
    print(f"\nApril 2024 validations: {[r.id for r in april]}")


if __name__ == "__main__":
    main()
