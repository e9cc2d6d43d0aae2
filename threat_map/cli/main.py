"""
Main CLI entry point for Threat Map.

Usage:
    threat-map analyze --diagram <path>
    threat-map info
    threat-map templates --dir <path>
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from threat_map import __version__
from threat_map.core.errors import DiagramFormatError, RuleLoadError
from threat_map.models.schemas import EngineConfig

console = Console()

rules_dir_option = click.option(
    "--rules-dir",
    "-r",
    type=click.Path(path_type=Path),
    default=None,
    help="Rule-set directory (default: THREAT_MAP_RULES_DIR or the bundled rules)",
)


@click.group()
@click.version_option(version=__version__, prog_name="threat-map")
@click.option("--verbose", "-v", is_flag=True, help="Show engine log output")
def cli(verbose: bool) -> None:
    """
    Threat Map - Rule-driven threat analysis for data-flow diagrams.

    Run 'threat-map analyze --help' for analysis options.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@cli.command()
@click.option(
    "--diagram",
    "-d",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to diagram JSON file",
)
@rules_dir_option
@click.option(
    "--supplemental/--no-supplemental",
    default=None,
    help="Apply supplemental rules (default: THREAT_MAP_SUPPLEMENTAL_RULES, enabled)",
)
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file path (format inferred from extension: .json, otherwise text)",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "text"]),
    default=None,
    help="Output format (default: inferred from --out, or text)",
)
def analyze(
    diagram: Path,
    rules_dir: Path | None,
    supplemental: bool | None,
    out: Path | None,
    format: str | None,
) -> None:
    """
    Analyze a data-flow diagram for threats.

    Examples:

        threat-map analyze --diagram ./diagram.json

        threat-map analyze -d ./diagram.json --out report.json

        threat-map analyze -d ./diagram.json --no-supplemental
    """
    from threat_map.core.analyzer import analyze as run_analysis

    console.print(f"\n[bold]Threat Map[/bold] v{__version__}\n")
    console.print(f"Analyzing: [cyan]{diagram}[/cyan]\n")

    config = EngineConfig.from_env(rules_dir=rules_dir, supplemental_enabled=supplemental)

    with console.status("[bold green]Analyzing diagram..."):
        try:
            report = run_analysis(diagram, config=config)
        except DiagramFormatError as e:
            raise click.UsageError(str(e)) from e
        except RuleLoadError as e:
            console.print(f"[red]Error loading rules:[/red] {e}")
            sys.exit(1)

    _display_report(report)

    if out:
        output_format = format or _infer_format(out)
        _write_output(report, out, output_format)
        console.print(f"\n[green]Report saved to:[/green] {out}")


@cli.command()
@rules_dir_option
def info(rules_dir: Path | None) -> None:
    """
    Show the rule catalog the engine would run.
    """
    from threat_map.core.analyzer import ThreatEngine

    engine = ThreatEngine(EngineConfig.from_env(rules_dir=rules_dir))
    try:
        engine.initialize()
    except RuleLoadError as e:
        console.print(f"[red]Error loading rules:[/red] {e}")
        sys.exit(1)

    engine_info = engine.info()
    table = Table(title="Threat Engine")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Rules directory", str(engine.config.rules_dir))
    table.add_row("Baseline rules", str(engine_info.baseline_rule_count))
    table.add_row("Supplemental rules", str(engine_info.supplemental_rule_count))
    table.add_row(
        "Supplemental enabled",
        "[green]yes[/green]" if engine_info.supplemental_enabled else "[yellow]no[/yellow]",
    )
    table.add_row("Total active rules", str(engine_info.total_rule_count))
    console.print(table)

    for result in engine.store.load_results:
        if not result.ok:
            console.print(f"[yellow]Skipped:[/yellow] {result.path.name} ({result.error})")


@cli.command()
@click.option(
    "--dir",
    "templates_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Templates directory (default: THREAT_MAP_TEMPLATES_DIR)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the templates as JSON")
def templates(templates_dir: Path | None, as_json: bool) -> None:
    """
    List architecture templates found in a directory.
    """
    from threat_map.core.templates import list_templates, templates_dir_from_env

    templates_dir = templates_dir or templates_dir_from_env()
    if templates_dir is None:
        raise click.UsageError("Pass --dir or set THREAT_MAP_TEMPLATES_DIR")

    found = list_templates(templates_dir)
    if as_json:
        click.echo(json.dumps(found, indent=2))
        return

    if not found:
        console.print("[yellow]No templates found.[/yellow]")
        return

    table = Table(title=f"Templates ({len(found)})")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("File", style="dim")
    for template in found:
        summary = template["summary"]
        title = summary.get("title", "") if isinstance(summary, dict) else str(summary)
        table.add_row(template["id"], title, template["fileName"])
    console.print(table)


def _display_report(report) -> None:
    """Display report in terminal."""
    from threat_map.core.findings import Severity

    summary_text = (
        f"Diagram: {report.diagram.title or 'Untitled'}\n"
        f"Cells: {len(report.diagram.cells)}\n"
        f"Rules: {report.engine.baseline_rule_count} baseline, "
        f"{report.engine.supplemental_rule_count} supplemental "
        f"({'enabled' if report.engine.supplemental_enabled else 'disabled'})"
    )
    console.print(Panel(summary_text, title="Summary", border_style="blue"))

    if not report.threat_count:
        console.print("\n[green]No threats generated.[/green]")
        return

    console.print(f"\n[bold]Threats ({report.threat_count} total)[/bold]\n")

    severity_colors = {
        Severity.CRITICAL.value: "red",
        Severity.HIGH.value: "red",
        Severity.MEDIUM.value: "yellow",
        Severity.LOW.value: "blue",
    }

    for cell, finding in report.sorted_by_severity():
        color = severity_colors.get(finding.severity, "white")
        label = escape(f"[{finding.severity}]")
        console.print(f"[{color}]{label}[/{color}] {escape(finding.title)}")
        console.print(f"  [dim]{escape(cell.name or cell.id)} - {escape(finding.category)}[/dim]")
        if finding.mitigation:
            console.print(f"  [green]Mitigation:[/green] {escape(finding.mitigation)}")
        console.print()


def _infer_format(path: Path) -> str:
    """Infer output format from file extension."""
    return "json" if path.suffix.lower() == ".json" else "text"


def _write_output(report, path: Path, format: str) -> None:
    """Write report to file."""
    if format == "json":
        report.to_json(path)
    else:
        path.write_text(report.summary())


if __name__ == "__main__":
    cli()
