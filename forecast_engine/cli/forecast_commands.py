"""
Forecast CLI Commands - Management commands for project forecasts.

Provides command-line interface for:
- Listing records and totals
- Adding records and changing method or weight
- Resolving AI forecast reviews
- Committing the previous-forecast snapshot
- CSV export
"""
import click
import logging
from typing import Optional

from forecast_engine.models import get_db
from forecast_engine.infrastructure import SqlAlchemyForecastPersistence
from forecast_engine.domain.entities import ForecastRecord, ForecastType, month_label
from forecast_engine.domain.services import ForecastSession, ForecastExportService
from forecast_engine.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def _open_session(project_id: str) -> ForecastSession:
    db = next(get_db())
    return ForecastSession.open(project_id, SqlAlchemyForecastPersistence(db))


def _fail(e: DomainError):
    click.echo(click.style(f"✗ {e.message}", fg='red'), err=True)
    raise click.Abort()


def _warn_unsynced(session: ForecastSession):
    if session.unsynced:
        click.echo(click.style("Warning: changes not persisted, run again to resync", fg='yellow'))


@click.group()
def forecast():
    """Forecast management commands."""
    pass


@forecast.command('list')
@click.argument('project_id')
@click.option('--type', 'forecast_type', default=None, help='GC_GR or DRAW')
def list_records(project_id: str, forecast_type: Optional[str]):
    """List forecast records for a project."""
    session = _open_session(project_id)
    try:
        records = session.list_records(ForecastType.parse(forecast_type) if forecast_type else None)
    except DomainError as e:
        _fail(e)

    if not records:
        click.echo("No forecast records")
        return

    click.echo(f"{'Record':<12} {'Code':<12} {'Method':<12} {'Wt':>3} {'Budget':>14} {'Variance':>14}  State")
    click.echo("-" * 80)
    for r in records:
        code = r.cost_code if r.forecast_type == ForecastType.GC_GR else r.csi_code
        click.echo(
            f"{r.id:<12} {code:<12} {r.method.label:<12} {r.weight:>3} "
            f"${r.budget:>13,.2f} ${r.variance:>13,.2f}  {session.state(r.id).value}"
        )


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
@click.option('--type', 'forecast_type', required=True, help='GC_GR or DRAW')
@click.option('--code', required=True, help='Cost code (GC_GR) or CSI code (DRAW)')
@click.option('--description', default='', help='Code description')
@click.option('--budget', type=float, default=0.0)
@click.option('--eac', type=float, default=0.0, help='Estimated at completion')
@click.option('--ctc', type=float, default=0.0, help='Cost to complete')
@click.option('--method', default=None, help='Defaults to the configured record method')
@click.option('--weight', type=int, default=None)
def add(project_id: str, record_id: str, forecast_type: str, code: str, description: str,
        budget: float, eac: float, ctc: float, method: Optional[str], weight: Optional[int]):
    """Add or replace a forecast record."""
    session = _open_session(project_id)
    try:
        ftype = ForecastType.parse(forecast_type)
        fields = {'cost_code': code, 'cost_code_description': description}
        if ftype == ForecastType.DRAW:
            fields = {'csi_code': code, 'csi_description': description}
        record = ForecastRecord(
            id=record_id,
            forecast_type=ftype,
            project_id=project_id,
            budget=budget,
            estimated_at_completion=eac,
            cost_to_complete=ctc,
            method=method or session.config.default_method,
            weight=weight if weight is not None else session.config.default_weight,
            **fields,
        )
        result = session.upsert(record)
    except DomainError as e:
        _fail(e)

    click.echo(click.style(f"✓ Saved {result.record.display_name}", fg='green'))
    if result.review_opened:
        click.echo(click.style("AI forecast review pending - acknowledge or reject it", fg='yellow'))
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
@click.argument('method')
def method(project_id: str, record_id: str, method: str):
    """Change a record's distribution method."""
    session = _open_session(project_id)
    try:
        result = session.set_method(record_id, method)
    except DomainError as e:
        _fail(e)

    click.echo(f"{record_id}: {result.record.method.label} ({result.state.value})")
    if result.review_opened:
        rationale = session.workflow.rationale(record_id)
        click.echo(click.style("\nAI forecast review required", fg='yellow', bold=True))
        click.echo(f"  {rationale.reasoning}")
        for factor in rationale.factors:
            click.echo(f"  - {factor}")
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
@click.argument('weight')
def weight(project_id: str, record_id: str, weight: str):
    """Change a record's weight (1-10)."""
    session = _open_session(project_id)
    try:
        result = session.set_weight(record_id, weight)
    except DomainError as e:
        _fail(e)
    click.echo(f"{record_id}: weight {result.record.weight}")
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.option('--type', 'forecast_type', default=None, help='GC_GR or DRAW')
def totals(project_id: str, forecast_type: Optional[str]):
    """Show footer totals."""
    session = _open_session(project_id)
    try:
        result = session.totals(ForecastType.parse(forecast_type) if forecast_type else None)
    except DomainError as e:
        _fail(e)

    click.echo(click.style(f"Totals for {project_id}", fg='cyan', bold=True))
    click.echo(f"  Records:          {result.record_count}")
    click.echo(f"  Budget:           ${result.budget:,.2f}")
    click.echo(f"  Cost to Complete: ${result.cost_to_complete:,.2f}")
    click.echo(f"  EAC:              ${result.estimated_at_completion:,.2f}")
    click.echo(f"  Variance:         ${result.variance:,.2f}")
    click.echo("\n  Month              Actual        Previous        Variance")
    for key, actual in result.monthly_actual.items():
        click.echo(
            f"  {month_label(key):<12} {actual:>13,.2f} "
            f"{result.monthly_previous.get(key, 0.0):>15,.2f} "
            f"{result.monthly_variance.get(key, 0.0):>15,.2f}"
        )


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
@click.option('--user', 'user_id', default=None, help='Acknowledging user')
def acknowledge(project_id: str, record_id: str, user_id: Optional[str]):
    """Acknowledge a pending AI forecast."""
    session = _open_session(project_id)
    try:
        entry = session.acknowledge(record_id, user_id)
    except DomainError as e:
        _fail(e)
    click.echo(click.style(f"✓ AI forecast acknowledged by {entry.user_id}", fg='green'))
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
@click.option('--user', 'user_id', default=None, help='Rejecting user')
def reject(project_id: str, record_id: str, user_id: Optional[str]):
    """Reject a pending AI forecast and revert the method."""
    session = _open_session(project_id)
    try:
        entry = session.reject(record_id, user_id)
    except DomainError as e:
        _fail(e)
    click.echo(click.style(
        f"✓ AI forecast rejected, reverted to {entry.previous_method.label}", fg='green'
    ))
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.argument('record_id')
def close(project_id: str, record_id: str):
    """Leave a record's AI forecast review."""
    session = _open_session(project_id)
    try:
        session.get(record_id)
        session.request_close(record_id)
    except DomainError as e:
        _fail(e)
    click.echo(f"Review closed for {record_id}")


@forecast.command()
@click.argument('project_id')
@click.option('--record', 'record_ids', multiple=True, help='Limit to these records')
def commit(project_id: str, record_ids):
    """Save the current forecast as the previous forecast."""
    session = _open_session(project_id)
    try:
        committed = session.commit(list(record_ids) or None)
    except DomainError as e:
        _fail(e)
    click.echo(click.style(f"✓ Committed {len(committed)} record(s)", fg='green'))
    _warn_unsynced(session)


@forecast.command('roll-forward')
@click.argument('project_id')
def roll_forward(project_id: str):
    """Move the forecast window to start at the current month."""
    session = _open_session(project_id)
    keys = session.roll_forward()
    click.echo(f"Window: {month_label(keys[0])} - {month_label(keys[-1])}")
    _warn_unsynced(session)


@forecast.command()
@click.argument('project_id')
@click.option('--output', '-o', default=None, help='Output CSV path (stdout if omitted)')
@click.option('--type', 'forecast_type', default=None, help='GC_GR or DRAW')
def export(project_id: str, output: Optional[str], forecast_type: Optional[str]):
    """Export the forecast grid to CSV."""
    session = _open_session(project_id)
    try:
        ftype = ForecastType.parse(forecast_type) if forecast_type else None
    except DomainError as e:
        _fail(e)

    exporter = ForecastExportService(session.snapshot())
    csv_text = exporter.to_csv(output, forecast_type=ftype)
    if output:
        click.echo(f"Exported to {output}")
    else:
        click.echo(csv_text)


# Register with main CLI if exists
def register_commands(cli):
    """Register forecast commands with main CLI."""
    cli.add_command(forecast)
