#!/usr/bin/env python3
"""Repair Watch - CLI Entry Point."""
import sys
import json
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
import yaml
from rich.console import Console
from rich.table import Table

from __version__ import __version__
from models.enums import AlertStatus, AlertType, Severity
from models.errors import AlertEngineError

console = Console()

SEVERITY_STYLES = {"HIGH": "bold red", "MEDIUM": "yellow", "LOW": "blue"}
STATUS_STYLES = {"OPEN": "bold", "ACKNOWLEDGED": "cyan", "RESOLVED": "dim"}


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from models.database import Database
    from alerts.settings import SettingsManager
    from alerts.coordinator import AlertCoordinator
    from alerts.lifecycle import AlertLifecycle
    from alerts.engine import AlertEngine
    from alerts.channels import ConsoleChannel, FileChannel

    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"]["level"],
                  config["logging"].get("file"))

    db = Database(config["database"]["path"])
    db.connect()

    alerts_cfg = config["alerts"]
    channels = [FileChannel(alerts_cfg.get("log_path", "data/alerts.jsonl"))]
    # Console only if running interactively
    if alerts_cfg.get("console", True) and sys.stdout.isatty():
        channels.append(ConsoleChannel())

    settings = SettingsManager(db)
    coordinator = AlertCoordinator(db)
    engine = AlertEngine(
        settings, db, coordinator, channels=channels,
        max_workers=config["evaluator"].get("max_workers", 1),
    )

    return {
        "config": config, "db": db, "settings": settings,
        "coordinator": coordinator, "engine": engine,
        "lifecycle": AlertLifecycle(db),
    }


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="repairwatch")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Repair Watch - Operational alerts for warranty and repair tickets."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


def _fail(message):
    console.print(f"[red]✗[/red] {message}")
    sys.exit(1)


# ──────────────────────────────────────────────────────
# EVALUATE
# ──────────────────────────────────────────────────────
@cli.group()
def evaluate():
    """Run alert evaluation passes."""
    pass


@evaluate.command("run")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def evaluate_run(ctx, as_json):
    """Run one evaluation pass over all detectors."""
    c = _get_components(ctx)
    result = c["engine"].run_pass()
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        console.print(f"[green]✓[/green] {c['engine'].format_pass_summary(result)}")
    else:
        console.print(f"[yellow]![/yellow] {c['engine'].format_pass_summary(result)}")
    if result.error:
        sys.exit(1)


@evaluate.command("schedule")
@click.option("--interval", default=None, type=int, help="Seconds between passes")
@click.pass_context
def evaluate_schedule(ctx, interval):
    """Evaluate periodically until interrupted."""
    from alerts.scheduler import EvaluationScheduler
    c = _get_components(ctx)
    interval = interval or c["config"]["evaluator"]["interval_seconds"]
    scheduler = EvaluationScheduler(c["engine"], interval_seconds=interval)
    scheduler.on_pass(lambda r: console.print(f"[dim]{r.started_at:%H:%M:%S}[/dim] "
                                              f"{c['engine'].format_pass_summary(r)}"))
    console.print(f"Evaluating every {interval}s. Ctrl+C to stop.")
    scheduler.run_forever()


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Alert management."""
    pass


@alerts.command("list")
@click.option("--status", type=click.Choice([s.value for s in AlertStatus]), default=None)
@click.option("--type", "rule_type", type=click.Choice([t.value for t in AlertType]), default=None)
@click.option("--severity", type=click.Choice([s.value for s in Severity]), default=None)
@click.option("--limit", default=50, type=int, help="Max rows")
@click.pass_context
def alerts_list(ctx, status, rule_type, severity, limit):
    """List alerts, newest first."""
    from utils.formatters import format_metric, time_ago
    c = _get_components(ctx)
    rows = c["db"].list_alerts(status=status, rule_type=rule_type, severity=severity, limit=limit)
    if not rows:
        console.print("[dim]No matching alerts[/dim]")
        return
    table = Table(title="Alerts", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Created", style="dim")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Title")
    table.add_column("Metric", justify="right")
    table.add_column("Description")
    for a in rows:
        sev = a.severity.value
        st = a.status.value
        table.add_row(
            str(a.id), time_ago(a.created_at),
            f"[{SEVERITY_STYLES.get(sev, '')}]{sev}[/]",
            f"[{STATUS_STYLES.get(st, '')}]{st}[/]",
            a.title, format_metric(a.rule_type, a.metric_value), (a.description or "")[:60],
        )
    console.print(table)
    console.print(f"[dim]{c['db'].count_open_alerts()} open alert(s) in total[/dim]")


@alerts.command("ack")
@click.argument("alert_id", type=int)
@click.pass_context
def alerts_ack(ctx, alert_id):
    """Acknowledge an alert."""
    c = _get_components(ctx)
    try:
        alert = c["lifecycle"].acknowledge(alert_id)
    except AlertEngineError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Alert {alert.id} is {alert.status.value}")


@alerts.command("resolve")
@click.argument("alert_id", type=int)
@click.option("--note", default=None, help="Resolution note")
@click.pass_context
def alerts_resolve(ctx, alert_id, note):
    """Resolve an alert."""
    c = _get_components(ctx)
    try:
        alert = c["lifecycle"].resolve(alert_id, note)
    except AlertEngineError as e:
        _fail(str(e))
    console.print(f"[green]✓[/green] Alert {alert.id} is {alert.status.value}")


# ──────────────────────────────────────────────────────
# SETTINGS
# ──────────────────────────────────────────────────────
@cli.group()
def settings():
    """Evaluator windows and thresholds."""
    pass


@settings.command("show")
@click.pass_context
def settings_show(ctx):
    """Show the current evaluator settings."""
    c = _get_components(ctx)
    try:
        cfg = c["settings"].load()
    except AlertEngineError as e:
        _fail(f"{e}. Run 'repairwatch settings init' to install defaults.")
    table = Table(title="Evaluator Settings", show_header=True)
    table.add_column("Section", style="dim")
    table.add_column("Key")
    table.add_column("Value", justify="right")
    for section, values in cfg.to_dict().items():
        for key, value in values.items():
            table.add_row(section, key, str(value))
    console.print(table)


@settings.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing record")
@click.pass_context
def settings_init(ctx, force):
    """Install the bundled default settings."""
    c = _get_components(ctx)
    cfg = c["settings"].install_defaults(overwrite=force)
    if cfg is None:
        console.print("[dim]Settings already present (use --force to overwrite)[/dim]")
    else:
        console.print("[green]✓[/green] Default settings installed")


@settings.command("set")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def settings_set(ctx, path):
    """Replace the settings from a YAML or JSON file."""
    c = _get_components(ctx)
    try:
        c["settings"].replace_from_file(path)
    except (ValueError, yaml.YAMLError) as e:
        _fail(f"Invalid settings: {e}")
    console.print("[green]✓[/green] Settings replaced")


# ──────────────────────────────────────────────────────
# DATA
# ──────────────────────────────────────────────────────
@cli.group()
def data():
    """Ticket snapshot management."""
    pass


@data.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def data_import(ctx, path):
    """Import products, repair centers and tickets from YAML/JSON."""
    from models.importer import SnapshotImporter
    c = _get_components(ctx)
    counts = SnapshotImporter(c["db"]).import_file(path)
    console.print(f"[green]✓[/green] Imported {counts['products']} products, "
                  f"{counts['repair_centers']} repair centers, {counts['tickets']} tickets")


if __name__ == "__main__":
    cli()
