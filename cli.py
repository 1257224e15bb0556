#!/usr/bin/env python3
"""
CLI for the Forecast Distribution & Acknowledgment Engine.

Usage:
    python cli.py init-db
    python cli.py distribute --budget 1200000 --method S_CURVE --weight 5
    python cli.py forecast list my-project
    python cli.py serve --port 8000

Commands:
    init-db     Create the forecast tables
    distribute  Preview a budget distribution without saving anything
    forecast    Project forecast management (list, add, method, acknowledge, ...)
    serve       Start the API server
    version     Display version information
"""
import click
import logging

from forecast_engine import __version__
from forecast_engine.cli import register_commands

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Forecast Distribution & Acknowledgment Engine CLI.

    Spread budgets across a rolling 12-month window and review
    AI forecast recommendations before they are accepted.
    """
    pass


@cli.command('init-db')
def init_db_command():
    """Create the forecast database tables."""
    from forecast_engine.models import init_db, DATABASE_URL

    init_db()
    click.echo(click.style(f"✓ Database ready: {DATABASE_URL}", fg='green'))


@cli.command()
@click.option('--budget', type=float, required=True, help='Budget to distribute')
@click.option('--method', default='LINEAR', help='MANUAL, LINEAR, S_CURVE, BELL_CURVE, AI_FORECAST')
@click.option('--weight', type=int, default=None, help='1 (back-loaded) to 10 (front-loaded)')
@click.option('--seed', default='preview', help='Seed for AI_FORECAST noise')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
def distribute(budget: float, method: str, weight: int, seed: str, output_json: bool):
    """Preview a budget distribution across the current window.

    Example:
        python cli.py distribute --budget 1200000 --method S_CURVE --weight 5
    """
    import json
    from forecast_engine.config import get_config
    from forecast_engine.domain.entities import ForecastMethod, rolling_month_keys, month_label
    from forecast_engine.domain.services import CurveParameters, distribute_to_months
    from forecast_engine.domain.exceptions import DomainError

    config = get_config()
    try:
        parsed = ForecastMethod.parse(method)
    except DomainError as e:
        click.echo(click.style(e.message, fg='red'), err=True)
        raise click.Abort()

    keys = rolling_month_keys(count=config.month_count)
    amounts = distribute_to_months(
        budget,
        parsed,
        weight if weight is not None else config.default_weight,
        keys,
        seed=seed,
        params=CurveParameters.from_config(config),
    )

    if output_json:
        click.echo(json.dumps(amounts, indent=2))
        return

    click.echo(click.style(f"{parsed.label} distribution of ${budget:,.2f}", fg='cyan', bold=True))
    for key, amount in amounts.items():
        click.echo(f"  {month_label(key):<14} ${amount:>15,.2f}")
    click.echo(f"  {'Total':<14} ${sum(amounts.values()):>15,.2f}")


@cli.command()
@click.option('--host', default='0.0.0.0', help='Host to bind to')
@click.option('--port', default=8000, type=int, help='Port to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
def serve(host: str, port: int, reload: bool):
    """Start the FastAPI server.

    Example:
        python cli.py serve --port 8000 --reload
    """
    import uvicorn

    click.echo(click.style('Forecast Engine - API Server', fg='cyan', bold=True))
    click.echo(f"Starting server at http://{host}:{port}")
    click.echo(f"API docs: http://{host}:{port}/docs")

    uvicorn.run("forecast_engine.main:app", host=host, port=port, reload=reload)


@cli.command()
def version():
    """Display version information."""
    click.echo(click.style('Forecast Distribution & Acknowledgment Engine', fg='cyan', bold=True))
    click.echo(f"Version: {__version__}")
    click.echo("")
    click.echo("Components:")
    click.echo("  - Distribution Calculator (Linear, S-Curve, Bell Curve, AI Forecast)")
    click.echo("  - Variance Engine (monthly and summary totals)")
    click.echo("  - Acknowledgment Workflow (AI forecast review gate)")
    click.echo("")
    click.echo("Dependencies:")

    import numpy as np
    import pandas as pd
    import sqlalchemy
    click.echo(f"  - NumPy: {np.__version__}")
    click.echo(f"  - Pandas: {pd.__version__}")
    click.echo(f"  - SQLAlchemy: {sqlalchemy.__version__}")


register_commands(cli)


if __name__ == '__main__':
    cli()
