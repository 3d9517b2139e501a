#!/usr/bin/env python3
"""
Command-line interface for GxP Validation Analytics.

Reads a JSON snapshot of validation records and prints or exports the
dashboard statistics derived from it.
"""

import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import pandas as pd  # type: ignore[import-untyped]
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .aggregation import ANALYTICS_VIEW, DASHBOARD_VIEW, Aggregator
from .config import get_config
from .diagnostics import Diagnostics
from .exceptions import AnalyticsError
from .expiry import expiry_watchlist
from .filtering import available_years, filter_records
from .models import ALL, AggregateResult, FilterSpec, GroupCount, ValidationType
from .records import read_records_file

console = Console()

TYPE_CHOICES = [ALL] + [t.value for t in ValidationType]


def _today() -> date:
    return datetime.now(get_config().tzinfo).date()


def _build_spec(validation_type: str, year: Optional[str], month: str) -> FilterSpec:
    return FilterSpec(
        year=year or str(_today().year), validation_type=validation_type, month=month
    )


def _aggregate(
    records_file: str,
    validation_type: str,
    year: Optional[str],
    month: str,
    view: str,
    total_products: int,
) -> AggregateResult:
    diagnostics = Diagnostics()
    records = read_records_file(records_file, diagnostics)
    spec = _build_spec(validation_type, year, month)
    aggregator = Aggregator(clock=_today)
    if view == ANALYTICS_VIEW:
        result = aggregator.analytics(records, spec, total_products=total_products)
    else:
        result = aggregator.dashboard(records, spec, total_products=total_products)
    if diagnostics.has_warnings:
        console.print(
            f"[yellow]⚠ {len(diagnostics.warnings)} data quality warnings while "
            f"loading {records_file}[/yellow]"
        )
    return result


def _groups_table(title: str, groups: List[GroupCount]) -> Table:
    table = Table(title=title)
    table.add_column("Group", style="cyan")
    table.add_column("Count", style="green", justify="right")
    show_percentage = any(g.percentage is not None for g in groups)
    if show_percentage:
        table.add_column("Percentage", style="yellow", justify="right")
    for group in groups:
        row = [group.key, str(group.count)]
        if show_percentage:
            row.append(f"{group.percentage or 0.0:.1f}%")
        table.add_row(*row)
    return table


def _series_table(result: AggregateResult) -> Table:
    table = Table(title=f"Monthly Trend ({result.view})")
    table.add_column("Month", style="cyan")
    table.add_column("Year", style="dim")
    table.add_column("Validations", style="blue", justify="right")
    table.add_column("Validated", style="green", justify="right")
    table.add_column("Protocols", style="yellow", justify="right")
    for period in result.monthly_series:
        table.add_row(
            period.period_label,
            str(period.year),
            str(period.total_count),
            str(period.validated_count),
            str(period.protocol_count),
        )
    return table


def _result_rows(result: AggregateResult) -> Dict[str, List[Dict[str, Any]]]:
    sections: Dict[str, List[Dict[str, Any]]] = {
        "scalars": [
            {"key": key, "count": value}
            for key, value in result.scalars.to_dict().items()
        ],
        "ratios": [
            {"key": key, "percentage": value}
            for key, value in result.ratios.to_dict().items()
        ],
    }
    for name in (
        "by_type",
        "by_subcategory",
        "by_status",
        "by_equipment",
        "by_product_type",
        "general_stats",
    ):
        sections[name] = [g.to_dict() for g in getattr(result, name)]
    sections["monthly_series"] = [p.to_dict() for p in result.monthly_series]
    return sections


def filter_options(func: Any) -> Any:
    """Shared record-file and filter options."""
    func = click.option(
        "--total-products",
        type=int,
        default=0,
        help="Size of the product catalogue",
    )(func)
    func = click.option(
        "--view",
        type=click.Choice([DASHBOARD_VIEW, ANALYTICS_VIEW]),
        default=DASHBOARD_VIEW,
        help="Consumer the statistics are shaped for",
    )(func)
    func = click.option(
        "--month", default=ALL, help="Month index 0-11 (0 = January) or 'all'"
    )(func)
    func = click.option("--year", default=None, help="Four-digit year (default: current)")(
        func
    )
    func = click.option(
        "--type",
        "validation_type",
        type=click.Choice(TYPE_CHOICES),
        default=ALL,
        help="Validation type",
    )(func)
    func = click.argument("records_file", type=click.Path(exists=True, dir_okay=False))(
        func
    )
    return func


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """GxP Validation Analytics - Statistics over validation records."""
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]GxP Validation Analytics[/bold blue] v{__version__}\n"
                "[dim]Statistics over pharmaceutical validation records[/dim]\n\n"
                "Use [bold]gxp-analytics --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.command("summary")
@filter_options
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def summary(
    records_file: str,
    validation_type: str,
    year: Optional[str],
    month: str,
    view: str,
    total_products: int,
    format: str,
) -> None:
    """Show headline statistics and breakdowns."""
    try:
        result = _aggregate(
            records_file, validation_type, year, month, view, total_products
        )
    except (AnalyticsError, ValueError) as e:
        console.print(f"[red]Error computing statistics: {e}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=result.to_dict())
        return

    scalars = result.scalars
    ratios = result.ratios
    spec = result.filter_spec.to_dict()
    console.print(
        Panel.fit(
            f"[bold]Validation Statistics[/bold] ({result.view})\n"
            f"Type: {spec['validation_type']}  Year: {spec['year']}  "
            f"Month: {spec['month']}\n\n"
            f"Total validations: [cyan]{scalars.total:,}[/cyan]\n"
            f"Validated: [green]{scalars.validated_count:,}[/green]\n"
            f"Validated products: [green]{scalars.unique_validated_product_count:,}"
            f"[/green] ({ratios.validated_products:.1f}%)\n"
            f"Protocols: [yellow]{scalars.protocols_count:,}[/yellow] "
            f"({ratios.protocols:.1f}%)\n"
            f"Reports: [magenta]{scalars.reports_count:,}[/magenta] "
            f"({ratios.reports:.1f}%)\n"
            f"Near expiry: [yellow]{scalars.expiring_count:,}[/yellow]  "
            f"Expired: [red]{scalars.expired_count:,}[/red]",
            border_style="blue",
        )
    )
    console.print(_groups_table("Validations by Type", list(result.by_type)))
    console.print(_groups_table("Validations by Status", list(result.by_status)))
    console.print(
        _groups_table("Validations by Subcategory", list(result.by_subcategory))
    )
    console.print(_groups_table("Material Type", list(result.by_product_type)))
    console.print(_groups_table("Most Used Equipment", list(result.by_equipment)))

    if result.is_degraded:
        console.print(
            f"[yellow]⚠ Result may be incomplete: "
            f"{len(result.warnings)} data quality warnings[/yellow]"
        )


@cli.command("trend")
@filter_options
def trend(
    records_file: str,
    validation_type: str,
    year: Optional[str],
    month: str,
    view: str,
    total_products: int,
) -> None:
    """Show the monthly trend series."""
    try:
        result = _aggregate(
            records_file, validation_type, year, month, view, total_products
        )
    except (AnalyticsError, ValueError) as e:
        console.print(f"[red]Error computing trend: {e}[/red]")
        sys.exit(1)

    console.print(_series_table(result))


@cli.command("years")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False))
def years(records_file: str) -> None:
    """List years present in a record snapshot, newest first."""
    try:
        records = read_records_file(records_file)
    except AnalyticsError as e:
        console.print(f"[red]Error loading records: {e}[/red]")
        sys.exit(1)

    found = available_years(records)
    if not found:
        console.print("[yellow]No dated validation records found[/yellow]")
        return
    for value in found:
        console.print(value)


@cli.command("expiring")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--year", default=None, help="Restrict to records created in this year")
@click.option("--days", type=int, default=None, help="Look-ahead window in days")
def expiring(records_file: str, year: Optional[str], days: Optional[int]) -> None:
    """List validations that are expired or about to expire."""
    try:
        records = read_records_file(records_file)
        if year:
            records = filter_records(records, FilterSpec(year=year))
        notices = expiry_watchlist(records, _today(), warning_days=days)
    except (AnalyticsError, ValueError) as e:
        console.print(f"[red]Error building expiry list: {e}[/red]")
        sys.exit(1)

    if not notices:
        console.print("[green]✓ No validations expired or near expiry[/green]")
        return

    table = Table(title=f"Expiry Watch-list ({len(notices)})")
    table.add_column("Validation", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Expiry Date", style="dim")
    table.add_column("Days Left", justify="right")
    table.add_column("Product", style="green")
    for notice in notices:
        days_left = notice.days_until_expiry
        if days_left is None:
            days_text = "-"
        elif days_left < 0:
            days_text = f"[red]{days_left}[/red]"
        else:
            days_text = f"[yellow]{days_left}[/yellow]"
        table.add_row(
            notice.record_id,
            notice.status.value if notice.status else "-",
            notice.expiry_date.isoformat() if notice.expiry_date else "-",
            days_text,
            notice.product_id or "-",
        )
    console.print(table)


@cli.command("export")
@filter_options
@click.option("--output", type=click.Path(), required=True, help="Output file path")
@click.option("--format", type=click.Choice(["json", "csv", "excel"]), default="csv")
def export(
    records_file: str,
    validation_type: str,
    year: Optional[str],
    month: str,
    view: str,
    total_products: int,
    output: str,
    format: str,
) -> None:
    """Export statistics for reporting."""
    try:
        result = _aggregate(
            records_file, validation_type, year, month, view, total_products
        )
        sections = _result_rows(result)
        output_path = Path(output)

        if format == "json":
            with output_path.open("w", encoding="utf-8") as fh:
                json.dump(result.to_dict(), fh, indent=2)
        elif format == "excel":
            with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
                for name, rows in sections.items():
                    pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
        else:  # csv
            df = pd.concat(
                [pd.DataFrame(rows).assign(section=name) for name, rows in sections.items()],
                ignore_index=True,
            )
            columns = ["section"] + [c for c in df.columns if c != "section"]
            df[columns].to_csv(output_path, index=False)

    except (AnalyticsError, ValueError, OSError) as e:
        console.print(f"[red]Error exporting statistics: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ Exported {result.view} statistics to {output_path}[/green]")


@cli.group()
def config() -> None:
    """Inspect analytics configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    config_dict = get_config().to_dict()

    if format == "json":
        console.print_json(data=config_dict)
    elif format == "yaml":
        import yaml  # type: ignore[import-untyped]

        console.print(yaml.dump(config_dict, default_flow_style=False))
    else:
        table = Table(title="Analytics Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for key, value in config_dict.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            table.add_row(key, str(value))
        console.print(table)


if __name__ == "__main__":
    cli()
