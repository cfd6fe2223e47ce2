"""
Command-Line Interface for Perpetuity.

Purpose
-------
Run legacy simulations, success-rate aggregations and quick perpetuity
checks from the shell, without writing Python code.

Commands
--------
- check: Closed-form perpetuity test for one fund
- simulate: Simulate a legacy (single run or three-percentile analysis)
- aggregate: Success rate over a batch of end-of-life estates
- config: Validate, display and create configuration files
- info: Package and dependency versions

Example Usage
-------------
    # Is $2M enough for $40k/yr to each of 2 heirs at 5% real?
    $ perpetuity check --fund 2000000 --return 5 --per-beneficiary 40000 -b 2

    # Simulate from a config file
    $ perpetuity simulate --config legacy.json --output result.json

    # Success rate over Monte Carlo estates
    $ perpetuity aggregate --estates estates.csv --return 5 --per-beneficiary 40000 -b 2

    # Create a starter config
    $ perpetuity config create legacy.json --template legacy
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import numpy as np
import pandas as pd
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import PRESETS, AppSettings, apply_preset
from .logging_setup import configure_logging
from .utils import format_currency, format_years, summary_frame

__version__ = "0.1.0"


def _percent(value: float) -> str:
    if not np.isfinite(value):
        return "n/a"
    return f"{value * 100:.2f}%"


def _currency_or_na(value: float) -> str:
    return format_currency(value) if np.isfinite(value) else "n/a"


@click.group()
@click.version_option(version=__version__, prog_name="perpetuity")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override PERPETUITY_LOG_LEVEL",
)
@click.pass_context
def main(ctx: click.Context, quiet: bool, log_level: Optional[str]) -> None:
    """
    Perpetuity - Generational Wealth Perpetuity Simulator.

    Estimates whether an estate can fund constant real payouts to a growing
    lineage of heirs forever, or for how many years.

    Use 'perpetuity COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    configure_logging(log_level, settings=settings)
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = Console()


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

@main.command()
@click.option("--fund", "-f", type=float, required=True, help="Fund in real dollars")
@click.option("--return", "-r", "real_return_pct", type=float, required=True,
              help="Annual real return in percent (e.g., 5)")
@click.option("--per-beneficiary", "-p", type=float, required=True,
              help="Real payout per beneficiary per year")
@click.option("--beneficiaries", "-b", type=int, default=1, show_default=True,
              help="Starting beneficiary count")
@click.option("--tfr", type=float, default=2.1, show_default=True,
              help="Total fertility rate")
@click.option("--generation-length", "-g", type=int, default=30, show_default=True,
              help="Years per generation")
@click.pass_context
def check(
    ctx: click.Context,
    fund: float,
    real_return_pct: float,
    per_beneficiary: float,
    beneficiaries: int,
    tfr: float,
    generation_length: int,
) -> None:
    """
    Closed-form perpetuity test.

    Compares the distribution rate with the safe threshold
    (real return minus lineage growth, less a 5% margin).

    Example:
        perpetuity check -f 1000000 -r 5 -p 10000 -b 2
    """
    console = ctx.obj.get("console")
    quiet = ctx.obj.get("quiet", False)

    from .exceptions import PerpetuityError
    from .oracle import SustainabilityParameters, describe, is_perpetual

    try:
        params = SustainabilityParameters(
            real_return_rate=real_return_pct / 100.0,
            total_fertility_rate=tfr,
            generation_length_years=generation_length,
            per_beneficiary_annual_real=per_beneficiary,
            initial_fund_real=fund,
            starting_beneficiary_count=beneficiaries,
        )
    except PerpetuityError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    perpetual = is_perpetual(params)
    values = describe(params)
    verdict = "Perpetual" if perpetual else "Not perpetual"

    if quiet:
        click.echo(verdict)
        return

    table = Table(title="Perpetuity Check", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Annual distribution", format_currency(values["annual_distribution"]))
    table.add_row("Distribution rate", _percent(values["distribution_rate"]))
    table.add_row("Population growth", _percent(values["population_growth_rate"]))
    table.add_row("Perpetual threshold", _percent(values["perpetual_threshold"]))
    table.add_row("Safe threshold", _percent(values["safe_threshold"]))
    table.add_row("Safe minimum estate", _currency_or_na(values["safe_minimum_estate"]))
    table.add_row("", "")
    table.add_row("Verdict", f"[bold]{verdict}[/bold]")
    console.print(table)


# ---------------------------------------------------------------------------
# simulate
# ---------------------------------------------------------------------------

def _print_outcome_table(console: Console, title: str, outcome) -> None:
    table = Table(title=title, show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Outcome", outcome.label)
    table.add_row("Years", format_years(outcome.years))
    table.add_row("Fund left (real)", format_currency(outcome.fund_left_real))
    table.add_row("Living beneficiaries", f"{outcome.last_living_count:,.1f}")
    cause = getattr(outcome, "cause", None) or getattr(outcome, "reason", None)
    if cause:
        table.add_row("Reason", cause)
    console.print(table)


def _generations_frame(outcome) -> Optional[pd.DataFrame]:
    generations = getattr(outcome, "generations", ())
    if not generations:
        return None
    return summary_frame(
        (
            {
                "generation": g.generation,
                "year": g.year,
                "estate_nominal": g.estate_value_nominal,
                "estate_tax": g.estate_tax,
                "net_to_heirs": g.net_to_heirs,
                "fund_real": g.fund_real,
                "beneficiaries": g.living_beneficiaries,
            }
            for g in generations
        ),
        index="generation",
    )


def _print_generations(console: Console, frame: pd.DataFrame) -> None:
    table = Table(title="Generations")
    table.add_column("Gen", style="cyan", justify="right")
    table.add_column("Year", justify="right")
    table.add_column("Estate (nominal)", justify="right")
    table.add_column("Estate tax", justify="right")
    table.add_column("Net to heirs", justify="right")
    table.add_column("Beneficiaries", justify="right")
    for generation, row in frame.iterrows():
        table.add_row(
            str(generation),
            str(int(row["year"])),
            format_currency(row["estate_nominal"]),
            format_currency(row["estate_tax"]),
            format_currency(row["net_to_heirs"]),
            f"{row['beneficiaries']:,.1f}",
        )
    console.print(table)


@main.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to legacy or analysis configuration file (JSON)"
)
@click.option(
    "--preset", "-p",
    type=click.Choice(sorted(PRESETS)),
    default=None,
    help="Replace lineage assumptions with a named preset"
)
@click.option(
    "--cap-years",
    type=int,
    default=None,
    help="Simulation horizon (default: config value, else PERPETUITY_DEFAULT_CAP_YEARS)"
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Save the result as JSON"
)
@click.option(
    "--generations-csv",
    type=click.Path(path_type=Path),
    default=None,
    help="Save the median run's generation table as CSV"
)
@click.pass_context
def simulate(
    ctx: click.Context,
    config: Path,
    preset: Optional[str],
    cap_years: Optional[int],
    output: Optional[Path],
    generations_csv: Optional[Path],
) -> None:
    """
    Simulate a legacy.

    A LegacyInput config runs one simulation; an AnalysisInput config runs
    the three percentile paths plus the success rate over every estate.

    Example:
        perpetuity simulate -c legacy.json --preset moderate -o result.json
    """
    console = ctx.obj.get("console")
    quiet = ctx.obj.get("quiet", False)
    settings: AppSettings = ctx.obj.get("settings")

    from pydantic import ValidationError as PydanticValidationError

    from .config import AggregateInput, AnalysisInput, LegacyInput
    from .exceptions import PerpetuityError
    from .legacy import analyze_legacy, run_legacy
    from .serialization import load_config, save_result

    try:
        cfg = load_config(config)
    except (OSError, ValueError, PydanticValidationError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)

    if isinstance(cfg, AggregateInput):
        click.echo("Error: aggregate configs are run with 'perpetuity aggregate'", err=True)
        sys.exit(1)

    legacy: LegacyInput = cfg.assumptions if isinstance(cfg, AnalysisInput) else cfg
    try:
        if preset:
            legacy = apply_preset(legacy, preset)
        if cap_years is not None:
            legacy = legacy.model_copy(update={"cap_years": cap_years})
        elif "cap_years" not in legacy.model_fields_set:
            legacy = legacy.model_copy(update={"cap_years": settings.default_cap_years})
        legacy = LegacyInput.model_validate(legacy.model_dump())
    except PydanticValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        if isinstance(cfg, AnalysisInput):
            analysis = cfg.model_copy(update={"assumptions": legacy})

            def on_progress(stage: str, completed: int, total: int) -> None:
                if not quiet:
                    console.print(f"[dim]{stage} run complete ({completed}/{total})[/dim]")

            report = analyze_legacy(analysis, on_progress=on_progress)
            median = report.outcome
            result: Any = report
        else:
            report = None
            median = run_legacy(legacy).outcome
            result = median
    except PerpetuityError as e:
        click.echo(f"Error during simulation: {e}", err=True)
        sys.exit(1)

    frame = _generations_frame(median)

    if quiet:
        click.echo(report.card_label if report is not None else median.label)
    else:
        if report is not None:
            table = Table(title="Percentile Runs", show_header=True)
            table.add_column("Percentile", style="cyan")
            table.add_column("Years", justify="right")
            table.add_column("Fund left (real)", justify="right")
            for key, p in report.percentile_outcomes.items():
                table.add_row(key, format_years(p.years), format_currency(p.fund_left_real))
            console.print(table)
            rate = (
                f"{report.aggregate.success_rate_percent}%"
                if report.aggregate is not None else "n/a"
            )
            console.print(Panel(
                f"[bold]{report.card_label}[/bold]\nSuccess rate: {rate}",
                title="Legacy",
                border_style="green" if report.outcome.is_perpetual else "yellow",
            ))
        _print_outcome_table(console, "Median Legacy" if report is not None else "Legacy", median)
        if frame is not None:
            _print_generations(console, frame)

    if output:
        save_result(result, output)
        if not quiet:
            click.echo(f"Results saved to {output}")

    if generations_csv:
        if frame is None:
            click.echo("No generation snapshots were recorded", err=True)
            sys.exit(1)
        generations_csv.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(generations_csv)
        if not quiet:
            click.echo(f"Generation table saved to {generations_csv}")


# ---------------------------------------------------------------------------
# aggregate
# ---------------------------------------------------------------------------

def _read_estates(path: Path) -> List[float]:
    """Estates from a CSV (first column), a JSON list, or {"estates": [...]}."""
    if path.suffix.lower() == ".csv":
        frame = pd.read_csv(path)
        return frame.iloc[:, 0].astype(float).tolist()
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("estates", data.get("estates_after_tax"))
    if not isinstance(data, list):
        raise ValueError("expected a list of estates or an object with an 'estates' list")
    return [float(x) for x in data]


@main.command()
@click.option(
    "--estates", "-e",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Post-tax estates: CSV (first column) or JSON list"
)
@click.option("--return", "-r", "real_return_pct", type=float, required=True,
              help="Annual real return in percent")
@click.option("--per-beneficiary", "-p", type=float, required=True,
              help="Real payout per beneficiary per year")
@click.option("--beneficiaries", "-b", type=int, default=1, show_default=True)
@click.option("--tfr", type=float, default=2.1, show_default=True)
@click.option("--generation-length", "-g", type=int, default=30, show_default=True)
@click.option("--inflation", type=float, default=None,
              help="Annual inflation in percent; estates are then treated as nominal")
@click.option("--years", type=int, default=0, show_default=True,
              help="Years from the base year to the estates (with --inflation)")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Save the result as JSON")
@click.pass_context
def aggregate(
    ctx: click.Context,
    estates: Path,
    real_return_pct: float,
    per_beneficiary: float,
    beneficiaries: int,
    tfr: float,
    generation_length: int,
    inflation: Optional[float],
    years: int,
    output: Optional[Path],
) -> None:
    """
    Probability of a perpetual legacy over a batch of estates.

    Example:
        perpetuity aggregate -e estates.csv -r 5 -p 40000 -b 2
    """
    console = ctx.obj.get("console")
    quiet = ctx.obj.get("quiet", False)

    from pydantic import ValidationError as PydanticValidationError

    from .aggregator import aggregate_from_input
    from .config import AggregateInput
    from .exceptions import PerpetuityError
    from .serialization import save_result

    try:
        values = _read_estates(estates)
        agg = AggregateInput(
            estates_after_tax=values,
            real_return_rate=real_return_pct / 100.0,
            per_beneficiary_real_annual=per_beneficiary,
            starting_beneficiary_count=beneficiaries,
            total_fertility_rate=tfr,
            generation_length_years=generation_length,
            inflation_rate_percent=inflation,
            years_from_base_year=years,
        )
        result = aggregate_from_input(agg)
    except (OSError, ValueError, PydanticValidationError, PerpetuityError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if quiet:
        click.echo(f"{result.success_rate_percent}%")
    else:
        table = Table(title="Success Rate", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green", justify="right")
        table.add_row("Paths", f"{result.n_paths:,}")
        table.add_row("Perpetual paths", f"{result.success_count:,}")
        table.add_row("Success rate", f"{result.success_rate_percent}%")
        table.add_row("Safe minimum estate", _currency_or_na(result.safe_min_estate))
        table.add_row("", "")
        for p, value in result.estate_percentiles.items():
            table.add_row(f"P{p} estate (real)", format_currency(value))
        console.print(table)

    if output:
        save_result(result, output)
        if not quiet:
            click.echo(f"Results saved to {output}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@main.group()
def config() -> None:
    """Configuration file management."""
    pass


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def config_validate(ctx: click.Context, config_file: Path) -> None:
    """
    Validate a configuration file.

    Example:
        perpetuity config validate legacy.json
    """
    console = ctx.obj.get("console")
    quiet = ctx.obj.get("quiet", False)

    from pydantic import ValidationError as PydanticValidationError

    from .serialization import load_config

    try:
        cfg = load_config(config_file)
    except (OSError, ValueError, PydanticValidationError) as e:
        click.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    if quiet:
        click.echo("Configuration is valid")
        return
    console.print(Panel(
        f"[bold]{type(cfg).__name__} configuration valid[/bold]",
        title="Configuration Summary",
        border_style="green",
    ))


@config.command("show")
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
@click.option("--format", "-f", type=click.Choice(["json", "table"]), default="table")
@click.pass_context
def config_show(ctx: click.Context, config_file: Path, format: str) -> None:
    """
    Display configuration details.

    Example:
        perpetuity config show legacy.json --format table
    """
    console = ctx.obj.get("console")

    with open(config_file, "r") as f:
        config_data = json.load(f)

    if format == "json":
        click.echo(json.dumps(config_data, indent=2))
        return

    table = Table(title=f"Configuration ({config_data.get('type', 'unknown')})")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    def add_rows(data: Dict[str, Any], prefix: str = "") -> None:
        for key, value in data.items():
            if key in ("schema_version", "type"):
                continue
            if isinstance(value, dict):
                add_rows(value, prefix=f"{prefix}{key}.")
            elif isinstance(value, list) and len(value) > 10:
                table.add_row(f"{prefix}{key}", f"[{len(value)} values]")
            else:
                table.add_row(f"{prefix}{key}", str(value))

    add_rows(config_data)
    console.print(table)


def _template(name: str) -> Dict[str, Any]:
    legacy = {
        "eol_nominal_estate": 5_000_000,
        "years_from_base_year": 30,
        "nominal_return_rate": 7.0,
        "inflation_rate_percent": 2.5,
        "per_beneficiary_real_annual": 50_000,
        "starting_beneficiary_count": 2,
        "total_fertility_rate": 2.1,
        "generation_length_years": 30,
        "initial_beneficiary_ages": [5, 8],
        "fertility_window": [25, 35],
        "marital_status": "married",
    }
    if name == "legacy":
        return {"type": "LegacyInput", **legacy}
    if name == "analysis":
        return {
            "type": "AnalysisInput",
            "assumptions": legacy,
            "p25": {"eol_nominal_estate": 3_000_000, "nominal_return_rate": 5.5},
            "p50": {"eol_nominal_estate": 5_000_000, "nominal_return_rate": 7.0},
            "p75": {"eol_nominal_estate": 8_000_000, "nominal_return_rate": 8.5},
            "estates_after_tax": [2_500_000, 3_000_000, 4_200_000, 5_000_000,
                                  6_100_000, 8_000_000, 9_500_000],
        }
    return {
        "type": "AggregateInput",
        "estates_after_tax": [1_000_000, 2_000_000, 3_000_000],
        "real_return_rate": 0.05,
        "per_beneficiary_real_annual": 40_000,
        "starting_beneficiary_count": 2,
        "total_fertility_rate": 2.1,
    }


@config.command("create")
@click.argument("output_file", type=click.Path(path_type=Path))
@click.option("--template", "-t", type=click.Choice(["legacy", "analysis", "aggregate"]),
              default="legacy")
@click.pass_context
def config_create(ctx: click.Context, output_file: Path, template: str) -> None:
    """
    Create a new configuration file from template.

    Example:
        perpetuity config create my_legacy.json --template analysis
    """
    console = ctx.obj.get("console")
    quiet = ctx.obj.get("quiet", False)

    from .serialization import SCHEMA_VERSION

    config_data = {"schema_version": SCHEMA_VERSION, **_template(template)}

    output_file.parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, "w") as f:
        json.dump(config_data, f, indent=2)

    if not quiet:
        console.print(f"[green]Created configuration file: {output_file}[/green]")


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Display package and dependency information.
    """
    console = ctx.obj.get("console")
    settings: AppSettings = ctx.obj.get("settings")

    from importlib.metadata import PackageNotFoundError, version

    info_lines = [
        f"Perpetuity Version: {__version__}",
        f"Python: {sys.version.split()[0]}",
        f"Log level: {settings.effective_log_level}",
        f"Default horizon: {settings.default_cap_years:,} years",
    ]

    for dist in ("numpy", "pandas", "pydantic", "pydantic-settings", "click", "rich"):
        try:
            info_lines.append(f"{dist}: {version(dist)}")
        except PackageNotFoundError:
            info_lines.append(f"{dist}: not installed")

    console.print(Panel("\n".join(info_lines), title="System Information"))


if __name__ == "__main__":
    main()
