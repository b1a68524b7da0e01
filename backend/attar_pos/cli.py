# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/attar_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin/cashier users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username sana --display-name "Sana" --password "secret1" --role cashier
# - python -m flask users permissions
#   Capabilities per role.
#
# Invoice numbering:
# - python -m flask invoices show
#   Stored sequence per year.
# - python -m flask invoices peek [--year 2026]
#   Next invoice number (not reserved).

import click
from flask.cli import with_appcontext

from . import permissions
from .errors import PosError
from .extensions import db
from .models import ROLES, User
from .services import auth_service, invoice_service


DEFAULT_USERS = (
    # username, password, display name, role
    ("admin", "admin123", "Admin", "admin"),
    ("cashier", "cashier123", "Cashier", "cashier"),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed default users (safe to re-run)."""
    db.create_all()
    click.echo("Tables ready.")

    for username, password, display_name, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"  = {username} already exists")
            continue
        auth_service.create_user(username, password, display_name, role)
        click.echo(f"  + {username} ({role}) created with password '{password}'")

    click.echo("Change the default passwords before going live.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--display-name', prompt=True, help='Name shown on receipts')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'cashier']), default='cashier', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, display_name, password, role):
    """Create a staff account."""
    try:
        user = auth_service.create_user(username, password, display_name, role)
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"Created user {user.username} (id={user.id}, role={user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<8} {status}")


@users_group.command('permissions')
def list_permissions():
    """Show each capability and the roles that hold it."""
    for code, name, description, category in permissions.PERMISSION_DEFINITIONS:
        roles = [role for role in ROLES if permissions.role_has_permission(role, code)]
        click.echo(f"[{category}] {code:<18} {name:<18} {', '.join(roles)}")
        click.echo(f"    {description}")


@click.group('invoices')
def invoices_group():
    """Invoice sequence inspection."""


@invoices_group.command('show')
@with_appcontext
def show_sequences():
    """Print the stored sequence per year."""
    sequences = invoice_service.get_sequences()
    if not sequences:
        click.echo("No invoice sequences yet.")
        return
    for seq in sequences:
        last = invoice_service.format_invoice_number(seq.year, seq.sequence) if seq.sequence else "-"
        click.echo(f"{seq.year}: sequence={seq.sequence} last={last}")


@invoices_group.command('peek')
@click.option('--year', type=int, help='Calendar year (defaults to current)')
@with_appcontext
def peek_invoice(year):
    """Show the next invoice number without reserving it."""
    invoice_number, _ = invoice_service.peek_next(year)
    click.echo(invoice_number)


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invoices_group)
