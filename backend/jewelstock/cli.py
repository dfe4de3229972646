# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/jewelstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shops (tenants):
# - python -m flask shops create --name "Gold House" --owner-name "Asha" --owner-email asha@example.com
#   Create a shop with its owner, settings and zero metal rates.
# - python -m flask shops list
#
# Users / sessions:
# - python -m flask users create-super-admin --name "Admin" --email admin@example.com
# - python -m flask users token admin@example.com
#   Issue a bearer session token for a user (prints it once).
#
# Rates:
# - python -m flask rates set --shop-id 1 --gold 6000 --silver 75
#
# Ledger:
# - python -m flask ledger audit --shop-id 1
#   Compare cached product totals with the stock ledger and report drift.

import click
from flask.cli import with_appcontext

from .extensions import db
from .repository import InventoryRepository
from .services import metal_rate_service, session_service, shop_service, stock_service, user_service
from .errors import NotFound
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('shops')
def shops_group():
    """Shop (tenant) management."""


@shops_group.command('create')
@click.option('--name', required=True, help='Shop name')
@click.option('--owner-name', required=True, help='Owner display name')
@click.option('--owner-email', required=True, help='Owner email (unique)')
@with_appcontext
def create_shop_cli(name, owner_name, owner_email):
    try:
        created = shop_service.create_shop(name, owner_name, owner_email)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))

    shop = created["shop"]
    owner = created["owner"]
    click.echo(f"PASS Created shop {shop['name']} (ID: {shop['id']}), owner {owner['email']} (ID: {owner['id']})")


@shops_group.command('list')
@with_appcontext
def list_shops_cli():
    shops = shop_service.list_shops()
    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Owner'}")
    click.echo("="*80)
    for shop in shops:
        owner = shop.get("owner") or {}
        click.echo(f"{shop['id']:<5} {shop['name']:<30} {owner.get('email', '-')}")
    click.echo("="*80 + "\n")


@click.group('users')
def users_group():
    """User bootstrap and session tokens."""


@users_group.command('create-super-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@with_appcontext
def create_super_admin_cli(name, email):
    try:
        user = user_service.create_super_admin(name, email)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created super admin {user.email} (ID: {user.id})")


@users_group.command('token')
@click.argument('email')
@with_appcontext
def issue_token_cli(email):
    """Issue a session token for EMAIL."""
    user = user_service.get_user_by_email(email)
    if not user:
        raise click.ClickException(f"No user with email {email}")
    try:
        _session, token = session_service.create_session(user.id, user_agent="flask-cli")
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(token)


@click.group('rates')
def rates_group():
    """Metal rate maintenance."""


@rates_group.command('set')
@click.option('--shop-id', type=int, required=True)
@click.option('--gold', type=float, default=None, help='Gold rate per gram')
@click.option('--silver', type=float, default=None, help='Silver rate per gram')
@with_appcontext
def set_rates_cli(shop_id, gold, silver):
    try:
        rate = metal_rate_service.update_metal_rates(
            InventoryRepository(db.session),
            shop_id=shop_id,
            gold_rate=gold,
            silver_rate=silver,
        )
    except (ValidationError, NotFound) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Shop {shop_id}: gold={rate['gold_rate']} silver={rate['silver_rate']}")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection."""


@ledger_group.command('audit')
@click.option('--shop-id', type=int, required=True)
@with_appcontext
def audit_ledger_cli(shop_id):
    """Report products whose cached quantity/weight differ from the ledger."""
    try:
        report = stock_service.audit_shop_ledger(InventoryRepository(db.session), shop_id=shop_id)
    except NotFound as e:
        raise click.ClickException(str(e))

    click.echo(f"Checked {report['products_checked']} products in shop {shop_id}")
    if report["consistent"]:
        click.echo("PASS Ledger and cached totals agree.")
        return

    for row in report["drift"]:
        click.echo(
            f"FAIL product {row['product_id']} ({row['name']}): "
            f"quantity {row['cached_quantity']} vs ledger {row['ledger_quantity']}, "
            f"weight {row['cached_weight']} vs ledger {row['ledger_weight']}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(users_group)
    app.cli.add_command(rates_group)
    app.cli.add_command(ledger_group)
