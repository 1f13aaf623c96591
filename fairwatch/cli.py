"""
FairWatch Command Line Interface

Provides CLI commands for evaluating hiring processes for bias, managing
alerts and thresholds, and reading dashboards, reports and the audit trail.
"""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from fairwatch.utils.exceptions import FairWatchError

app = typer.Typer(
    name="fairwatch",
    help="Fairness metrics and bias monitoring CLI",
    add_completion=False,
)
console = Console()

_service = None

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}

STATUS_STYLES = {
    "compliant": "green",
    "partially_compliant": "yellow",
    "non_compliant": "bold red",
    "under_review": "cyan",
}


def get_service():
    """Build the monitoring service once per process."""
    global _service
    if _service is None:
        from fairwatch.core.monitoring import build_monitoring_service

        _service = build_monitoring_service()
    return _service


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _styled(value: Optional[str], styles: dict[str, str]) -> str:
    if value is None:
        return "-"
    style = styles.get(value, "white")
    return f"[{style}]{value}[/{style}]"


def _load_json(path: Path) -> Any:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _load_requests(path: Path) -> list:
    """Read one evaluation request, or a list of them, from a JSON file."""
    from fairwatch.core.monitoring import EvaluationRequest
    from fairwatch.data.models import ProcessEventData
    from fairwatch.utils.constants import ProcessType

    data = _load_json(path)
    items = data if isinstance(data, list) else [data]
    requests = []
    try:
        for item in items:
            requests.append(
                EvaluationRequest(
                    process_id=item["process_id"],
                    process_type=ProcessType(item["process_type"]),
                    event_data=ProcessEventData.model_validate(item),
                )
            )
    except (KeyError, ValueError, ValidationError) as e:
        _fail(f"Invalid evaluation request in {path}: {e}")
    return requests


def _print_outcome(outcome) -> None:
    console.print(
        f"\n[bold]{outcome.process_id}[/bold] ({outcome.process_type.value}, {outcome.mode.value})"
    )
    console.print(f"  Compliance: {_styled(outcome.compliance_status.value, STATUS_STYLES)}")
    if outcome.bias_score is not None:
        console.print(f"  Bias score: [cyan]{outcome.bias_score:.3f}[/cyan]")
    if outcome.fairness_score is not None:
        console.print(f"  Fairness score: [cyan]{outcome.fairness_score:.3f}[/cyan]")
    if outcome.message:
        console.print(f"  [dim]{outcome.message}[/dim]")
    if not outcome.persisted:
        console.print("  [yellow]Result computed but not persisted[/yellow]")

    if outcome.violations:
        table = Table(title="Violations")
        table.add_column("Severity")
        table.add_column("Metric", style="cyan")
        table.add_column("Attribute")
        table.add_column("Type")
        table.add_column("Observed", justify="right")
        table.add_column("Affected groups")
        for violation in outcome.violations:
            table.add_row(
                _styled(violation.severity, SEVERITY_STYLES),
                violation.metric,
                violation.attribute,
                violation.violation_type,
                f"{violation.observed_value:.3f}",
                ", ".join(violation.affected_groups),
            )
        console.print(table)

    for pattern in outcome.detected_patterns:
        console.print(f"  [magenta]Pattern:[/magenta] {pattern}")
    for reason in outcome.not_applicable:
        console.print(f"  [dim]Not applicable: {reason}[/dim]")
    if outcome.quick_check is not None:
        for flag in outcome.quick_check.term_flags:
            console.print(f"  [yellow]Flag:[/yellow] {flag.category} ({', '.join(flag.terms)})")
    for recommendation in outcome.recommendations:
        console.print(f"  [green]→[/green] {recommendation}")
    if outcome.alert_ids:
        console.print(f"  Alerts: [cyan]{', '.join(outcome.alert_ids)}[/cyan]")


def _parse_assignments(assignments: list[str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for assignment in assignments:
        key, sep, raw = assignment.partition("=")
        if not sep or not key:
            _fail(f"Expected KEY=VALUE, got '{assignment}'")
        try:
            changes[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            changes[key.strip()] = raw
    return changes


@app.command()
def version():
    """Show application version."""
    from fairwatch import __app_name__, __version__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show system information and configuration."""
    from fairwatch.utils.config import get_settings

    settings = get_settings()
    monitoring = settings.monitoring

    table = Table(title="FairWatch Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Storage Backend", settings.storage_backend)
    table.add_row("Database Host", settings.database.host)
    table.add_row("Database Name", settings.database.name)
    table.add_row("Warning / Critical", f"{monitoring.warning_threshold} / {monitoring.critical_threshold}")
    table.add_row(
        "Parity Warning / Critical",
        f"{monitoring.parity_warning_threshold} / {monitoring.parity_critical_threshold}",
    )
    table.add_row("Escalation Owner", monitoring.escalation_owner)
    table.add_row("Alert Minimum Severity", monitoring.alert_min_severity)
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def init_db():
    """Initialize the document store with required indexes."""
    from fairwatch.utils.config import get_settings

    settings = get_settings()
    console.print("[yellow]Initializing document store...[/yellow]")

    if settings.storage_backend == "mongodb":
        from fairwatch.data.database import DatabaseManager

        console.print("  Checking database connection...")
        db_manager = DatabaseManager(settings.database)
        try:
            if not db_manager.check_connection():
                console.print("[red]Error: Could not connect to MongoDB.[/red]")
                console.print("[dim]Make sure MongoDB is running and connection settings are correct.[/dim]")
                raise typer.Exit(1)
        finally:
            db_manager.close()
        console.print("  [green]✓[/green] Connected to MongoDB")
    else:
        console.print("  [dim]Using the in-memory store; data lasts for this process only.[/dim]")

    try:
        console.print("  Creating indexes...")
        get_service().ensure_indexes()
    except FairWatchError as e:
        _fail(e.message)
    console.print("  [green]✓[/green] Indexes created")
    console.print("\n[green]Document store initialized successfully![/green]")


@app.command()
def evaluate(
    path: Path = typer.Argument(..., help="JSON file with one evaluation request or a list of them"),
):
    """Run a full fairness evaluation for one or more processes."""
    requests = _load_requests(path)
    console.print(f"[yellow]Evaluating {len(requests)} process(es)...[/yellow]")

    try:
        outcomes = get_service().evaluate_many(requests)
    except FairWatchError as e:
        _fail(e.message)

    for outcome in outcomes:
        _print_outcome(outcome)


@app.command()
def quick_check(
    path: Path = typer.Argument(..., help="JSON file with one process event"),
):
    """Run a provisional real-time check of a single process event."""
    requests = _load_requests(path)
    if len(requests) != 1:
        _fail("quick-check takes exactly one process event")

    request = requests[0]
    outcome = get_service().quick_check(request.process_id, request.process_type, request.event_data)
    _print_outcome(outcome)
    if outcome.quick_check is not None:
        console.print(
            f"  Provisional score [cyan]{outcome.quick_check.provisional_score:.2f}[/cyan] "
            f"(confidence {outcome.quick_check.confidence:.0%})"
        )


@app.command()
def alerts(
    status: Optional[str] = typer.Option(None, "--status", "-s", help="active, acknowledged or resolved"),
    severity: Optional[str] = typer.Option(None, "--severity", help="low, medium, high or critical"),
    process_type: Optional[str] = typer.Option(None, "--process-type", "-t", help="Process type"),
    process_id: Optional[str] = typer.Option(None, "--process", "-p", help="Process ID"),
    assignee: Optional[str] = typer.Option(None, "--assignee", "-a", help="Assigned owner"),
    limit: int = typer.Option(20, "--limit", "-n", help="Page size (1-100)"),
    offset: int = typer.Option(0, "--offset", help="Number of alerts to skip"),
):
    """List alerts matching the given filters."""
    from fairwatch.data.models import AlertQuery

    try:
        query = AlertQuery(
            status=status,
            severity=severity,
            process_type=process_type,
            process_id=process_id,
            assigned_to=assignee,
            limit=limit,
            offset=offset,
        )
    except ValidationError as e:
        _fail(str(e))

    page = get_service().list_alerts(query)
    if not page.alerts:
        console.print("[yellow]No alerts found.[/yellow]")
        return

    table = Table(title=f"Alerts ({page.offset + 1}-{page.offset + len(page.alerts)} of {page.total})")
    table.add_column("Alert ID", style="cyan")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Process")
    table.add_column("Metric / Attribute")
    table.add_column("Seen", justify="right")
    table.add_column("Assignee")
    for alert in page.alerts:
        table.add_row(
            alert.alert_id,
            _styled(alert.priority, SEVERITY_STYLES),
            alert.status,
            f"{alert.process_id} ({alert.process_type})",
            f"{alert.metric} / {alert.attribute}",
            str(alert.occurrence_count),
            alert.assigned_to or "-",
        )
    console.print(table)
    if page.has_more:
        console.print(f"[dim]More alerts available; use --offset {page.offset + len(page.alerts)}[/dim]")


@app.command()
def acknowledge(
    alert_id: str = typer.Argument(..., help="Alert ID"),
    actor: str = typer.Option(..., "--actor", "-u", help="Who is acknowledging"),
):
    """Acknowledge an active alert."""
    try:
        alert = get_service().acknowledge_alert(alert_id, actor)
    except FairWatchError as e:
        _fail(e.message)
    console.print(f"[green]✓[/green] Alert [cyan]{alert.alert_id}[/cyan] acknowledged by {actor}")


@app.command()
def resolve(
    alert_id: str = typer.Argument(..., help="Alert ID"),
    actor: str = typer.Option(..., "--actor", "-u", help="Who is resolving"),
    action: str = typer.Option(..., "--action", help="Action taken"),
    description: str = typer.Option(..., "--description", "-d", help="Resolution details"),
):
    """Resolve an active or acknowledged alert."""
    try:
        alert = get_service().resolve_alert(alert_id, actor, action, description)
    except FairWatchError as e:
        _fail(e.message)
    except ValidationError as e:
        _fail(f"Resolution requires an action and a description ({e.error_count()} error(s))")
    console.print(f"[green]✓[/green] Alert [cyan]{alert.alert_id}[/cyan] resolved by {actor}")


@app.command()
def dashboard(
    time_range: str = typer.Option("24h", "--range", "-r", help="1h, 24h, 7d or 30d"),
):
    """Show the monitoring dashboard for a time range."""
    from fairwatch.utils.constants import TimeRange

    try:
        parsed_range = TimeRange(time_range)
    except ValueError:
        _fail(f"Unknown time range '{time_range}'")

    snapshot = get_service().get_dashboard_snapshot(parsed_range)

    summary = snapshot.summary
    table = Table(title=f"Bias Monitoring ({snapshot.time_range})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Evaluations", str(summary.total_evaluations))
    table.add_row("Violations", str(summary.violation_count))
    table.add_row(
        "Compliance Rate",
        f"{summary.compliance_rate:.1%}" if summary.compliance_rate is not None else "no data",
    )
    table.add_row(
        "Average Bias Score",
        f"{summary.average_bias_score:.3f}" if summary.average_bias_score is not None else "no data",
    )
    table.add_row("Threshold Version", str(snapshot.threshold_version))
    console.print(table)

    alerts_table = Table(title="Open Alerts by Severity")
    alerts_table.add_column("Severity")
    alerts_table.add_column("Count", justify="right")
    for severity, count in snapshot.active_alerts_by_severity.items():
        alerts_table.add_row(_styled(severity, SEVERITY_STYLES), str(count))
    console.print(alerts_table)

    for process_type, rate in snapshot.compliance_by_process_type.items():
        shown = f"{rate:.1%}" if rate is not None else "no data"
        console.print(f"  {process_type}: [green]{shown}[/green] compliant")


@app.command()
def thresholds(
    assignments: Optional[list[str]] = typer.Option(
        None, "--set", help="KEY=VALUE, e.g. demographic_parity.warning=0.85"
    ),
    actor: str = typer.Option("admin", "--actor", "-u", help="Who is changing thresholds"),
):
    """Show the active thresholds, or update them with --set."""
    service = get_service()
    if assignments:
        try:
            config = service.update_thresholds(_parse_assignments(assignments), actor)
        except FairWatchError as e:
            console.print(f"[red]Error: {e.message}[/red]")
            for error in e.details or []:
                console.print(f"  [dim]{error}[/dim]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Thresholds updated to version {config.version}")
    else:
        config = service.get_thresholds()

    console.print_json(data=config.model_dump(mode="json"))


@app.command()
def audit(
    action: Optional[str] = typer.Option(None, "--action", help="Audit action"),
    actor_id: Optional[str] = typer.Option(None, "--actor", "-u", help="Actor ID"),
    resource_type: Optional[str] = typer.Option(None, "--resource-type", help="alert, process, thresholds, ..."),
    resource_id: Optional[str] = typer.Option(None, "--resource-id", help="Resource ID"),
    min_impact: Optional[str] = typer.Option(None, "--min-impact", help="Minimum ethical impact level"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum entries"),
):
    """Query the compliance audit trail."""
    from fairwatch.data.models import AuditQuery

    try:
        query = AuditQuery(
            action=action,
            actor_id=actor_id,
            resource_type=resource_type,
            resource_id=resource_id,
            min_ethical_impact=min_impact,
            limit=limit,
        )
    except ValidationError as e:
        _fail(str(e))

    entries = get_service().audit.query(query)
    if not entries:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title="Audit Trail")
    table.add_column("Timestamp", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Actor")
    table.add_column("Resource")
    table.add_column("Impact")
    table.add_column("Description")
    for entry in entries:
        resource = f"{entry.resource.resource_type}:{entry.resource.resource_id}" if entry.resource else "-"
        table.add_row(
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S}",
            entry.action,
            entry.actor.actor_id or entry.actor.actor_type,
            resource,
            entry.ethical_impact,
            entry.action_description,
        )
    console.print(table)


@app.command()
def report(
    report_type: str = typer.Argument(..., help="compliance, trend_analysis, violation_summary or process_performance"),
    time_range: str = typer.Option("7d", "--range", "-r", help="1h, 24h, 7d or 30d"),
):
    """Generate a monitoring report as JSON."""
    from fairwatch.utils.constants import ReportType, TimeRange

    try:
        parsed_type, parsed_range = ReportType(report_type), TimeRange(time_range)
    except ValueError as e:
        _fail(str(e))

    generated = get_service().generate_report(parsed_type, parsed_range)
    console.print_json(data=generated.model_dump(mode="json"))


@app.command()
def analysis(
    process_id: str = typer.Argument(..., help="Process ID"),
    limit: int = typer.Option(10, "--limit", "-n", help="Evaluations to include"),
):
    """Show the recent bias trend and recommendations for one process."""
    result = get_service().get_process_analysis(process_id, limit=limit)
    if result is None:
        console.print(f"[yellow]No monitoring history for {process_id}.[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold]Process {process_id}[/bold] (trend: [cyan]{result.bias_score_trend}[/cyan])")
    table = Table(title="Compliance History")
    table.add_column("Evaluated", style="dim")
    table.add_column("Mode")
    table.add_column("Bias Score", justify="right")
    table.add_column("Status")
    for point in result.historical_trend:
        score = f"{point.bias_score:.3f}" if point.bias_score is not None else "-"
        table.add_row(
            f"{point.timestamp:%Y-%m-%d %H:%M:%S}",
            point.mode,
            score,
            _styled(point.compliance_status, STATUS_STYLES),
        )
    console.print(table)

    for pattern in result.bias_patterns:
        console.print(f"  [magenta]Pattern:[/magenta] {pattern}")
    for improvement in result.improvements:
        console.print(f"  [green]→[/green] {improvement}")


@app.command()
def purge():
    """Purge resolved alerts and audit entries past their retention windows."""
    try:
        removed = get_service().purge_expired_records()
    except FairWatchError as e:
        _fail(e.message)
    console.print(
        f"[green]✓[/green] Purged {removed['alerts']} alert(s) and "
        f"{removed['audit_entries']} audit entr(ies)"
    )


if __name__ == "__main__":
    app()
