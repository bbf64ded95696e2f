# Overview: Flask CLI command groups for bootstrap, user management and cash reports.

# backend/orderdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap:
# - flask --app wsgi system init
#   Open the store (creating tables when AUTO_CREATE_SCHEMA is on) and seed the
#   default catalog when it is empty.
#
# Users:
# - flask --app wsgi users list
# - flask --app wsgi users create --name ana --role Admin
#
# Cash:
# - flask --app wsgi cash summary [--start 2026-01-01 --end 2026-01-31]

from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from .domain import ProductInput, Role, format_money
from .errors import ConflictError, ValidationError
from .validation import parse_date_range

DEFAULT_PRODUCTS = [
    ProductInput(name="SUPORTE_PEQUENO", sale_price=Decimal("20.00"), unit_cost=Decimal("8.00")),
    ProductInput(name="SUPORTE_GRANDE", sale_price=Decimal("35.00"), unit_cost=Decimal("15.00")),
]


def _services():
    return current_app.extensions["orderdesk"]


def seed_default_products(catalog) -> int:
    """Create the default products when the catalog is empty. Returns how many were created."""
    if catalog.list_all():
        return 0
    for data in DEFAULT_PRODUCTS:
        catalog.create(data)
    return len(DEFAULT_PRODUCTS)


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Open the store and seed the default catalog (idempotent)."""
    services = _services()
    click.echo(f"START Initializing orderdesk ({services.store.backend_name} store)...")
    services.store.open()

    created = seed_default_products(services.catalog)
    if created:
        click.echo(f"PASS Seeded {created} products")
    else:
        click.echo("PASS Catalog already populated, skipping seed")

    for product in services.catalog.list_all():
        click.echo(f"   {product.id:<5} {product.name:<20} {format_money(product.sale_price):>10} {format_money(product.unit_cost):>10}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = _services().users.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 50)
    click.echo(f"{'ID':<5} {'Name':<30} {'Role'}")
    click.echo("=" * 50)
    for user in users:
        click.echo(f"{user.id:<5} {user.name:<30} {user.role.value}")
    click.echo("=" * 50 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Unique user name (sent as X-User-Name)')
@click.option(
    '--role',
    type=click.Choice([r.value for r in Role], case_sensitive=False),
    default=Role.REGULAR.value,
    show_default=True,
)
@with_appcontext
def create_user_cli(name, role):
    """Create a user."""
    try:
        user = _services().users.create_user(name, Role.parse(role))
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.name} (ID: {user.id}) with role '{user.role.value}'")


@click.group('cash')
def cash_group():
    """Cash ledger reports."""


@cash_group.command('summary')
@click.option('--start', default=None, help='ISO date or datetime, inclusive')
@click.option('--end', default=None, help='ISO date or datetime, inclusive')
@with_appcontext
def cash_summary(start, end):
    """Print inflows, outflows and balance for a date range."""
    try:
        start_dt, end_dt = parse_date_range(start, end)
    except ValidationError as e:
        raise click.BadParameter(e.message)
    summary = _services().cash.summary(start=start_dt, end=end_dt)
    click.echo(f"Inflows:  {format_money(summary.inflows):>12}")
    click.echo(f"Outflows: {format_money(summary.outflows):>12}")
    click.echo(f"Balance:  {format_money(summary.balance):>12}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(cash_group)
