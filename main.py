#!/usr/bin/env python3
"""Spot Alerts - CLI Entry Point."""
import sys
import os
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()
logger = logging.getLogger("spotalerts.cli")


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from service.components import build_components

    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"]["level"], config["logging"].get("file"))
    return build_components(config)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="spot-alerts")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Spot Alerts - Weather and golden-hour alerts for photo locations."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


def _rules_manager(c):
    from alerts.rules_manager import RulesManager
    return RulesManager(c["config"]["alerts"].get("rules_path", "config/alert_rules.yaml"))


# ──────────────────────────────────────────────────────
# SETUP
# ──────────────────────────────────────────────────────
@cli.command()
@click.pass_context
def setup(ctx):
    """First-time setup: initialize DB, import rules, test the weather API."""
    c = _get_components(ctx)
    console.print("[bold #F5A623]Spot Alerts - Setup[/bold #F5A623]\n")
    console.print("[green]✓[/green] Database initialized")

    counts = _rules_manager(c).load().import_into(c["db"])
    console.print(f"[green]✓[/green] Imported {counts['locations']} locations, {counts['rules']} rules")

    console.print("Testing weather API...")
    locations = {r.location.id: r.location for r in c["db"].list_active_rules()}
    if not locations:
        console.print("  [dim]No active rules, skipping[/dim]")
    for loc in list(locations.values())[:1]:
        try:
            w = c["weather"].get_current_weather(loc.lat, loc.lng)
            console.print(f"  [green]✓[/green] {loc.name}: {w.description}, "
                          f"{w.cloud_cover:.0f}% clouds, {w.wind_speed:.0f} mph")
        except Exception as e:
            console.print(f"  [red]✗[/red] Weather fetch failed: {e}")

    console.print("\n[bold]Setup complete![/bold] Run [bold]python main.py alerts test[/bold] to preview rules.\n")


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Alert management."""
    pass


@alerts.command("check")
@click.pass_context
def alerts_check(ctx):
    """Run one alert cycle over every active rule."""
    from alerts.errors import AlertEngineError
    from alerts.engine import format_cycle_summary

    c = _get_components(ctx)
    try:
        summary = c["orchestrator"].run_cycle()
    except AlertEngineError as e:
        console.print(f"[red]Alert cycle failed: {e}[/red]")
        sys.exit(1)

    if summary.triggered:
        console.print(f"[bold yellow]{summary.triggered} alert(s) triggered:[/bold yellow]")
    else:
        console.print("[green]Nothing triggered[/green]")
    console.print(format_cycle_summary(summary))

    if ctx.obj.get("verbose"):
        table = Table(title="Cycle Results", show_header=True)
        table.add_column("Rule", style="dim")
        table.add_column("Location")
        table.add_column("Triggered")
        table.add_column("Sent")
        table.add_column("Reason / Error")
        for o in summary.outcomes:
            table.add_row(o.rule_id, o.location_id,
                          "[green]YES[/green]" if o.triggered else "[dim]no[/dim]",
                          "✓" if o.notification_sent else "",
                          o.error or o.reason or "")
        console.print(table)


@alerts.command("test")
@click.pass_context
def alerts_test(ctx):
    """Evaluate all active rules now, ignoring cooldowns and sending nothing."""
    c = _get_components(ctx)
    results = c["orchestrator"].dry_run()
    if not results:
        console.print("[dim]No active rules[/dim]")
        return

    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Location")
    table.add_column("Type")
    table.add_column("Would Fire")
    table.add_column("Cooldown")
    table.add_column("Reason")
    for r in results:
        if r["error"]:
            fire_str, reason = "[red]error[/red]", r["error"]
        else:
            fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
            reason = r["reason"] or ""
        table.add_row(r["name"], r["location"], r["alert_type"], fire_str,
                      "yes" if r["in_cooldown"] else "", reason)
    console.print(table)


@alerts.command("rules")
@click.option("--user", "user_id", default=None, help="Only rules owned by this user")
@click.pass_context
def alerts_rules(ctx, user_id):
    """List stored alert rules."""
    from utils.formatters import format_conditions, format_days, format_hour_range, time_ago

    c = _get_components(ctx)
    rules = c["db"].list_rules(user_id)
    if not rules:
        console.print("[dim]No rules stored. Run 'python main.py alerts import' first.[/dim]")
        return
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Type")
    table.add_column("Conditions")
    table.add_column("Window")
    table.add_column("Days")
    table.add_column("Last Fired")
    table.add_column("Active")
    for r in rules:
        window = r.time_window
        table.add_row(
            r.id, r.name, r.location.name, r.alert_type.value,
            format_conditions(r.conditions),
            format_hour_range(window.start_hour, window.end_hour) if window else "Any time",
            format_days(r.days_of_week),
            time_ago(r.last_triggered_at),
            "[green]✓[/green]" if r.is_active else "[red]✗[/red]",
        )
    console.print(table)


@alerts.command("history")
@click.option("--limit", default=20, type=int, help="Number of entries")
@click.option("--user", "user_id", default=None, help="Only this user's history")
@click.pass_context
def alerts_history(ctx, limit, user_id):
    """Show past triggers."""
    c = _get_components(ctx)
    entries = c["db"].get_recent_history(limit=limit, user_id=user_id)
    if not entries:
        console.print("[dim]No alerts in history[/dim]")
        return
    table = Table(title="Alert History", show_header=True)
    table.add_column("Time", style="dim")
    table.add_column("Rule")
    table.add_column("User")
    table.add_column("Sent")
    table.add_column("Conditions")
    for e in entries:
        s = e.snapshot
        cond = f"{s.cloud_cover:.0f}% clouds, {s.wind_speed:.0f} mph"
        if s.sun_event:
            cond += f", {s.sun_event}"
        sent = e.notification_channel.value if e.notification_sent and e.notification_channel else "-"
        table.add_row(e.triggered_at.isoformat()[:16], e.rule_id, e.user_id, sent, cond)
    console.print(table)


@alerts.command("import")
@click.option("--file", "rules_path", default=None, help="Rules YAML (default: alerts.rules_path)")
@click.pass_context
def alerts_import(ctx, rules_path):
    """Import locations, rules, preferences and subscriptions from YAML."""
    from alerts.rules_manager import RulesManager

    c = _get_components(ctx)
    manager = RulesManager(rules_path) if rules_path else _rules_manager(c)
    counts = manager.load().import_into(c["db"])
    console.print(
        f"[green]✓[/green] Imported {counts['locations']} locations, {counts['rules']} rules, "
        f"{counts['preferences']} preference sets, {counts['subscriptions']} subscriptions"
    )


# ──────────────────────────────────────────────────────
# SCHEDULER / WEB
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--interval", default=None, type=int, help="Minutes between cycles (default: config)")
@click.pass_context
def schedule(ctx, interval):
    """Run alert cycles in the foreground at a fixed cadence."""
    from alerts.engine import format_cycle_summary
    from service.scheduler import CycleScheduler

    c = _get_components(ctx)
    minutes = interval or c["config"]["scheduler"]["interval_minutes"]
    scheduler = CycleScheduler(c["orchestrator"], interval_minutes=minutes)
    scheduler.on_cycle(lambda summary: console.print(format_cycle_summary(summary)))

    console.print(f"[bold #F5A623]Checking alerts every {minutes} minutes.[/bold #F5A623] Ctrl+C to stop.\n")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


@cli.command()
@click.option("--port", default=5000, type=int, help="Port to bind to")
@click.option("--host", default="0.0.0.0", type=str, help="Host to bind to")
@click.pass_context
def web(ctx, port, host):
    """Serve the cron endpoint for an external scheduler."""
    from web.app import create_app

    c = _get_components(ctx)
    app = create_app(c["config"], c)
    if not c["config"].get("web", {}).get("cron_secret"):
        console.print("[yellow]CRON_SECRET is not set; cron requests will be rejected[/yellow]")

    console.print(f"\n[bold #F5A623]Spot Alerts -- Cron Endpoint[/bold #F5A623]\n")
    console.print(f"  POST http://localhost:{port}/api/cron/check-alerts")
    console.print(f"  GET  http://localhost:{port}/api/health")
    console.print(f"\n  Press Ctrl+C to stop.\n")
    app.run(host=host, port=port, debug=False)


# ──────────────────────────────────────────────────────
# SERVICE
# ──────────────────────────────────────────────────────
@cli.group()
def service():
    """Manage background automation (macOS launchd)."""
    pass


def _launchd_manager(ctx):
    from service.launchd import LaunchdManager

    project_dir = os.path.dirname(os.path.abspath(__file__))
    config_path = ctx.obj.get("config_path")
    return LaunchdManager(project_dir, python_path=sys.executable,
                          config_path=os.path.abspath(config_path) if config_path else None)


@service.command("install")
@click.option("--interval", default=15, type=int, help="Check interval in minutes (default: 15)")
@click.pass_context
def service_install(ctx, interval):
    """Install the launchd job that runs one alert cycle per interval."""
    manager = _launchd_manager(ctx)
    status = manager.install(interval_minutes=interval)
    if status == "installed":
        console.print(f"[green]✓[/green] Installed, checking every {interval} minutes")
        console.print(f"  Plist: {manager.plist_path}")
        console.print("  Logs: ~/Library/Logs/spot-alerts/")
    else:
        console.print(f"[red]✗[/red] {status}")
        sys.exit(1)


@service.command("uninstall")
@click.pass_context
def service_uninstall(ctx):
    """Remove the launchd job."""
    status = _launchd_manager(ctx).uninstall()
    if status == "removed":
        console.print("[green]✓[/green] Removed")
    elif status == "not installed":
        console.print("[dim]Not installed[/dim]")
    else:
        console.print(f"[red]✗[/red] {status}")


@service.command("status")
@click.pass_context
def service_status(ctx):
    """Show launchd job status."""
    info = _launchd_manager(ctx).status()
    if not info["loaded"]:
        console.print("[dim]Not loaded[/dim]")
        return
    state = f"running (pid {info['pid']})" if info["running"] else "idle"
    console.print(f"[green]Loaded[/green], {state}, last exit: {info['last_exit']}")
    if info.get("last_log_line"):
        console.print(f"  [dim]{info['last_log_line']}[/dim]")


@service.command("logs")
@click.option("--lines", default=50, type=int, help="Number of lines to show")
@click.pass_context
def service_logs(ctx, lines):
    """Show recent check output, rotating the log if it has grown large."""
    from service.launchd import rotate_logs

    if rotate_logs():
        console.print("[dim]Log rotated[/dim]")
    console.print(_launchd_manager(ctx).get_logs(lines))


if __name__ == "__main__":
    cli()
