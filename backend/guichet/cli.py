# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/guichet/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Agencies:
# - python -m flask agencies create --name "Ouagadougou Gare" --code "OUA"
# - python -m flask agencies list
#
# Tills:
# - python -m flask tills create --agency-id 1 --name "Guichet 1"
# - python -m flask tills list --agency-id 1
# - python -m flask tills retire 4
#
# Sessions:
# - python -m flask sessions list --status OPEN --limit 20
#
# Settings:
# - python -m flask settings get-threshold
# - python -m flask settings set-threshold 5000

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import TillError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('agencies')
def agencies_group():
    """Agency bootstrap commands."""


@agencies_group.command('create')
@click.option('--name', required=True, help='Agency name')
@click.option('--code', required=True, help='Unique agency code')
@with_appcontext
def create_agency_cli(name, code):
    """Create an agency."""
    from .models import Agency

    if db.session.query(Agency).filter_by(code=code).first():
        click.echo(f"FAIL Error: Agency code '{code}' already exists")
        return

    agency = Agency(name=name, code=code, is_active=True)
    db.session.add(agency)
    db.session.commit()
    click.echo(f"PASS Created agency {agency.id}: {agency.code} - {agency.name}")


@agencies_group.command('list')
@with_appcontext
def list_agencies_cli():
    """List agencies."""
    from .models import Agency

    agencies = db.session.query(Agency).order_by(Agency.name).all()
    if not agencies:
        click.echo("No agencies found.")
        return

    click.echo(f"{'ID':<5} {'Code':<10} {'Name':<40} {'Active':<8}")
    for agency in agencies:
        click.echo(f"{agency.id:<5} {agency.code:<10} {agency.name:<40} {'Yes' if agency.is_active else 'No':<8}")


@click.group('tills')
def tills_group():
    """Till inspection and bootstrap commands."""


@tills_group.command('create')
@click.option('--agency-id', type=int, required=True, help='Agency ID')
@click.option('--name', required=True, help='Till name')
@with_appcontext
def create_till_cli(agency_id, name):
    """
    Create a till.

    Example:
        flask tills create --agency-id 1 --name "Guichet 1"
    """
    from .services import till_service

    try:
        till = till_service.create_till(name=name, agency_id=agency_id)
        click.echo(f"PASS Created till {till.id}: {till.name} (agency {till.agency_id})")
    except TillError as e:
        click.echo(f"FAIL Error: {str(e)}")


@tills_group.command('list')
@click.option('--agency-id', type=int, required=True, help='Agency ID')
@with_appcontext
def list_tills_cli(agency_id):
    """List active tills of an agency."""
    from .services import till_service
    from .models import TillSession, SESSION_OPEN

    tills = till_service.list_active_tills(agency_id)
    if not tills:
        click.echo("No tills found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Open session':<14}")
    for till in tills:
        current = db.session.query(TillSession).filter_by(till_id=till.id, status=SESSION_OPEN).first()
        click.echo(f"{till.id:<5} {till.name:<30} {str(current.id) if current else '-':<14}")


@tills_group.command('retire')
@click.argument('till_id', type=int)
@with_appcontext
def retire_till_cli(till_id):
    """Retire a till (no new sessions)."""
    from .services import till_service

    try:
        till = till_service.retire_till(till_id)
        click.echo(f"PASS Retired till {till.id}: {till.name}")
    except TillError as e:
        click.echo(f"FAIL Error: {str(e)}")


@click.group('sessions')
def sessions_group():
    """Till session inspection commands."""


@sessions_group.command('list')
@click.option('--operator-id', help='Filter by operator')
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def list_sessions_cli(operator_id, status, limit):
    """
    List till sessions, newest first.

    Example:
        flask sessions list --status CLOSED --limit 10
    """
    from .models import TillSession

    query = db.session.query(TillSession)
    if operator_id:
        query = query.filter_by(operator_id=operator_id)
    if status:
        query = query.filter_by(status=status)

    sessions = query.order_by(TillSession.opened_at.desc()).limit(limit).all()
    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo(f"{'ID':<6} {'Till':<6} {'Operator':<20} {'Status':<8} {'Opening':>10} {'Expected':>10} {'Declared':>10} {'Diff':>8}")
    for s in sessions:
        click.echo(
            f"{s.id:<6} {s.till_id:<6} {s.operator_id:<20} {s.status:<8} {s.opening_cash:>10} "
            f"{s.expected_cash if s.expected_cash is not None else '-':>10} "
            f"{s.declared_cash if s.declared_cash is not None else '-':>10} "
            f"{s.difference if s.difference is not None else '-':>8}"
        )


@click.group('settings')
def settings_group():
    """Settings commands."""


@settings_group.command('get-threshold')
@with_appcontext
def get_threshold_cli():
    """Show the cash discrepancy threshold."""
    from .services import settings_service

    click.echo(str(settings_service.get_threshold()))


@settings_group.command('set-threshold')
@click.argument('value')
@with_appcontext
def set_threshold_cli(value):
    """Set the cash discrepancy threshold (minor units)."""
    from .services import settings_service

    try:
        threshold = settings_service.set_threshold(value, updated_by="cli")
        click.echo(f"PASS Threshold set to {threshold}")
    except TillError as e:
        click.echo(f"FAIL Error: {str(e)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(agencies_group)
    app.cli.add_command(tills_group)
    app.cli.add_command(sessions_group)
    app.cli.add_command(settings_group)
