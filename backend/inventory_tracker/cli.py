# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/inventory_tracker/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent). Use 'flask db upgrade' for migrated databases.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username admin@example.com --password "Password123!" --role Admin
#   Create a user with any role (self-registration always yields User).
# - python -m flask users list
#   List all users with roles.
#
# Items:
# - python -m flask items seed [--replace]
#   Insert sample inventory items (skips codes that already exist).
# - python -m flask items list [--search widget] [--sort-by quantity --sort-order desc]
#   Print the inventory as the list view sorts and filters it.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Item, User
from .permissions import Role, DEFAULT_ROLE_CAPABILITIES
from .services.auth_service import CredentialStore
from .services.item_service import ItemStore
from .services.list_controller import filter_items, sort_items, VALID_SORT_FIELDS, VALID_SORT_ORDERS
from .validation import InventoryError


SAMPLE_ITEMS = [
    ("A1", "Widget", 3),
    ("A2", "Gadget", 12),
    ("B1", "Sprocket", 0),
    ("B2", "Flange", 25),
    ("C1", "Bolt (M6)", 140),
    ("C2", "Washer", 90),
    ("D1", "Hinge", 7),
    ("D2", "Bracket", 1),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo(f"PASS Database ready at {current_app.config['SQLALCHEMY_DATABASE_URI']}")


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

    click.echo("PASS Database reset complete. Run 'python -m flask items seed' for sample data.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username or email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option(
    '--role',
    type=click.Choice(list(DEFAULT_ROLE_CAPABILITIES), case_sensitive=False),
    default=Role.USER,
    show_default=True,
    help='Role',
)
@with_appcontext
def create_user_cli(username, password, role):
    """Create a user with an explicit role."""
    store = CredentialStore(bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"])
    try:
        user = store.register(username, password, role=role)
    except InventoryError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user['username']} with role '{user['role']}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<35} {'Role':<12} {'Last login'}")
    click.echo("="*70)

    for user in users:
        data = user.to_dict()
        click.echo(f"{user.id:<5} {user.username:<35} {user.role:<12} {data['last_login_at'] or '-'}")

    click.echo("")


@click.group('items')
def items_group():
    """Inventory inspection and sample data commands."""


@items_group.command('seed')
@click.option('--replace', is_flag=True, help='Delete every item first')
@with_appcontext
def seed_items(replace):
    """Insert sample inventory items."""
    if replace:
        deleted = db.session.query(Item).delete()
        db.session.commit()
        click.echo(f"DELETE  Removed {deleted} items")

    store = ItemStore()
    created = 0
    for code, name, quantity in SAMPLE_ITEMS:
        if store.find_by_code(code):
            click.echo(f"WARN  Item '{code}' already exists, skipping...")
            continue
        store.create(name=name, quantity=quantity, code=code)
        created += 1

    click.echo(f"PASS Seeded {created} items")


@items_group.command('list')
@click.option('--search', default='', help='Case-insensitive name filter')
@click.option('--sort-by', type=click.Choice(sorted(VALID_SORT_FIELDS)), default='name', show_default=True)
@click.option('--sort-order', type=click.Choice(sorted(VALID_SORT_ORDERS)), default='asc', show_default=True)
@with_appcontext
def list_items(search, sort_by, sort_order):
    """Print inventory items."""
    items = sort_items(filter_items(ItemStore().list(), search), sort_by, sort_order)

    if not items:
        click.echo("No items found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Code':<12} {'Name':<35} {'Qty':>8}")
    click.echo("="*70)
    for item in items:
        click.echo(f"{item['id']:<5} {item['code'] or '-':<12} {item['name']:<35} {item['quantity']:>8}")
    click.echo("")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(items_group)
