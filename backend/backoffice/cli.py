# Overview: Flask CLI command groups for bootstrap, ledger inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Restaurants:
# - python -m flask restaurants list
#   List restaurants with opening balances and deduction mode.
# - python -m flask restaurants create --name "Kaloum" --cash 100000 --mode deferred
#   Create a restaurant (tenant) with opening balances.
#
# Ledger inspection:
# - python -m flask ledger verify-stock --restaurant-id 1
#   Report items whose current stock disagrees with their movement history.
# - python -m flask ledger balances --restaurant-id 1
#   Print current balances per payment method.
#
# Debts:
# - python -m flask debts refresh-statuses --restaurant-id 1
#   Re-derive debt statuses (marks partially paid debts past due as Overdue).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Restaurant
from .services import inventory_service, balance_service, debt_service
from .services.production_service import VALID_DEDUCTION_MODES
from .validation import LedgerError


# =============================================================================
# RESTAURANT COMMANDS
# =============================================================================

@click.group('restaurants')
def restaurants_group():
    """Restaurant (tenant) management commands."""


@restaurants_group.command('list')
@with_appcontext
def list_restaurants():
    """List all restaurants."""
    restaurants = db.session.query(Restaurant).order_by(Restaurant.id.asc()).all()

    if not restaurants:
        click.echo("No restaurants found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<30} {'Cash':>12} {'Orange':>12} {'Card':>12}  {'Mode'}")
    click.echo("="*90)

    for r in restaurants:
        click.echo(
            f"{r.id:<5} {r.name:<30} {r.initial_cash_balance:>12} {r.initial_orange_balance:>12} "
            f"{r.initial_card_balance:>12}  {r.stock_deduction_mode}"
        )

    click.echo("="*90 + "\n")


@restaurants_group.command('create')
@click.option('--name', required=True, help='Restaurant name')
@click.option('--cash', type=int, default=0, show_default=True, help='Opening cash balance (GNF)')
@click.option('--orange', type=int, default=0, show_default=True, help='Opening Orange Money balance (GNF)')
@click.option('--card', type=int, default=0, show_default=True, help='Opening card balance (GNF)')
@click.option('--mode', type=click.Choice(VALID_DEDUCTION_MODES), default=None, help='Stock deduction mode')
@with_appcontext
def create_restaurant_cli(name, cash, orange, card, mode):
    """Create a new restaurant."""
    existing = db.session.query(Restaurant).filter_by(name=name).first()
    if existing:
        click.echo(f"FAIL Restaurant '{name}' already exists (ID: {existing.id})")
        return

    restaurant = Restaurant(
        name=name,
        initial_cash_balance=cash,
        initial_orange_balance=orange,
        initial_card_balance=card,
        stock_deduction_mode=mode or current_app.config["DEFAULT_STOCK_DEDUCTION_MODE"],
    )
    db.session.add(restaurant)
    db.session.commit()

    click.echo(f"PASS Created restaurant: {restaurant.name} (ID: {restaurant.id}, mode: {restaurant.stock_deduction_mode})")


# =============================================================================
# LEDGER INSPECTION COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Bank and stock ledger inspection commands."""


@ledger_group.command('verify-stock')
@click.option('--restaurant-id', type=int, required=True, help='Restaurant ID')
@with_appcontext
def verify_stock(restaurant_id):
    """Compare cached stock against the sum of movements."""
    mismatches = inventory_service.verify_stock_ledger(restaurant_id)

    if not mismatches:
        click.echo("PASS Stock ledger consistent: every item matches its movements")
        return

    click.echo(f"WARN  {len(mismatches)} item(s) drift from their movement history:")
    for row in mismatches:
        click.echo(
            f"   #{row['item_id']:<5} {row['name']:<30} stock={row['current_stock']:g} "
            f"movements={row['movement_total']:g} drift={row['drift']:+g}"
        )


@ledger_group.command('balances')
@click.option('--restaurant-id', type=int, required=True, help='Restaurant ID')
@with_appcontext
def show_balances(restaurant_id):
    """Print current balances (opening + confirmed transactions)."""
    try:
        balances = balance_service.current_balances(restaurant_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"Restaurant {restaurant_id} balances (GNF):")
    click.echo(f"   Cash:         {balances['cash']:>14,}")
    click.echo(f"   Orange Money: {balances['orange_money']:>14,}")
    click.echo(f"   Card:         {balances['card']:>14,}")
    click.echo(f"   Total:        {balances['total']:>14,}")


# =============================================================================
# DEBT MAINTENANCE COMMANDS
# =============================================================================

@click.group('debts')
def debts_group():
    """Customer debt maintenance commands."""


@debts_group.command('refresh-statuses')
@click.option('--restaurant-id', type=int, required=True, help='Restaurant ID')
@with_appcontext
def refresh_statuses(restaurant_id):
    """Re-derive debt statuses for the current date."""
    changed = debt_service.refresh_statuses(restaurant_id)
    click.echo(f"PASS Refreshed debt statuses: {changed} debt(s) changed")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(restaurants_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(debts_group)
