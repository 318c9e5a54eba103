# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tablepos/cli.py
# Commands Legend (run from the backend directory, FLASK_APP=wsgi.py):
#
# System bootstrap/repair:
# - flask system init
#   Idempotent first run: creates tables and the default administrator.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - flask users list
# - flask users create --username ana --full-name "Ana" --password "Password123!" --role cashier
#
# Registers:
# - flask registers list [--all]
#   Open registers (or every instance with --all).
# - flask registers closures --number 1 --limit 10
#
# Stock:
# - flask stock low [--critical]

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import CashRegister, User, UserRole
from .services import auth_service, product_service, register_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create missing tables and the default administrator.

    Safe to run on every start: an existing user base is left untouched.
    SECURITY: change the default password immediately in production!
    """
    click.echo("START Initializing tablepos...")
    db.create_all()
    user, created = auth_service.ensure_default_admin()
    if created:
        click.echo(f"PASS Created default administrator: {user.username}")
    else:
        click.echo(f"PASS Users already exist, skipping administrator ({user.username})")
    click.echo("DONE System initialized")


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
    click.echo("PASS Database reset complete. Run 'flask system init' to bootstrap.")


@click.group('users')
def users_group():
    """User inspection and creation."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.username).all()
    if not users:
        click.echo("No users found.")
        return
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<10} {'Active'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.role.value:<10} {'yes' if user.is_active else 'no'}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--full-name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice([r.value.lower() for r in UserRole]), default='waiter')
@click.option('--email', default=None)
@with_appcontext
def create_user_cli(username, full_name, password, role, email):
    try:
        user = auth_service.create_user(
            username=username, password=password, full_name=full_name, role=role, email=email,
        )
    except PosError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.username} with role {user.role.value}")


@click.group('registers')
def registers_group():
    """Register inspection commands."""


@registers_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Include closed register instances')
@with_appcontext
def list_registers_cli(show_all):
    if show_all:
        registers = db.session.query(CashRegister).order_by(CashRegister.opened_at.desc()).all()
    else:
        registers = register_service.list_open_registers()

    if not registers:
        click.echo("No registers found.")
        return

    click.echo(f"{'ID':<5} {'Number':<8} {'Shift':<10} {'Cash':>12} {'Transfers':>12} {'Status'}")
    for r in registers:
        status = "OPEN" if r.is_open else "CLOSED"
        click.echo(f"{r.id:<5} {r.register_number:<8} {r.shift.value:<10} {r.cash_cents:>12} {r.transfer_cents:>12} {status}")


@registers_group.command('closures')
@click.option('--number', type=int, default=None, help='Filter by register number')
@click.option('--limit', type=int, default=20)
@with_appcontext
def list_closures_cli(number, limit):
    closures = register_service.list_closures(number)[:limit]
    if not closures:
        click.echo("No closures found.")
        return
    for c in closures:
        click.echo(
            f"#{c.id} register {c.register_number} {c.shift.value} "
            f"sales={c.total_sales_cents} expenses={c.total_expenses_cents} closed_by={c.closed_by}"
        )


@click.group('stock')
def stock_group():
    """Stock alerts."""


@stock_group.command('low')
@click.option('--critical', is_flag=True, help='Only products under the critical threshold')
@with_appcontext
def low_stock_cli(critical):
    products = product_service.critical_stock_products() if critical else product_service.low_stock_products()
    if not products:
        click.echo("No products below threshold.")
        return
    for p in products:
        click.echo(f"{p.id:<5} {p.name:<30} {p.stock:>6} (min {p.min_stock})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(registers_group)
    app.cli.add_command(stock_group)
