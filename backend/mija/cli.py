# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/mija/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default master, warehouse and customer accounts.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role customer]
#   List all users with roles and active status.
# - python -m flask users create --email staff@shop.com --name "Staff" --password "secret" --role second
#   Create a user (prompts if options are omitted).
#
# Orders:
# - python -m flask orders expire-overdue
#   Cancel every unpaid order (pending or ready_for_payment) whose deposit deadline
#   has passed and release its stock.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Order, Role, User
from .models.orders import TERMINAL_STATUSES
from .services.auth_service import create_user, DuplicateEmailError
from .services.expiry_service import expire_orders
from .validation import ValidationError


DEFAULT_USERS = [
    # (email, password, name, role)
    ("admin@shop.com", "admin123", "Master Admin", Role.MASTER),
    ("warehouse@shop.com", "warehouse123", "Warehouse Staff", Role.SECOND),
    ("customer@shop.com", "customer123", "Test Customer", Role.CUSTOMER),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the shop: schema and default accounts.

    Creates (skipping any that already exist):
    - admin@shop.com      / admin123      (master)
    - warehouse@shop.com  / warehouse123  (second)
    - customer@shop.com   / customer123   (customer)

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing shop...")
    db.create_all()

    click.echo("\nUSERS Creating default users...")
    for email, password, name, role in DEFAULT_USERS:
        try:
            create_user(email=email, password=password, name=name, role=role)
            click.echo(f"PASS Created user: {email} with role '{role.value}'")
        except DuplicateEmailError:
            click.echo(f"WARN  User '{email}' already exists, skipping...")
        except ValidationError as e:
            click.echo(f"FAIL Failed to create user '{email}': {str(e)}")

    click.echo("\n" + "="*60)
    click.echo("DONE Shop Initialized Successfully!")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for email, password, _, role in DEFAULT_USERS:
        click.echo(f"   {role.value:<9} -> {email:<20} / {password}")
    click.echo("")


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
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete. Run 'flask system init' to recreate default users.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == Role(role))
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<30} {'Name':<25} {'Role':<10} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<30} {user.name:<25} {user.role.value:<10} {active_str}")
    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Login email')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.CUSTOMER.value, show_default=True)
@with_appcontext
def create_user_cli(email, name, password, role):
    """Create a user account."""
    try:
        user = create_user(email=email, password=password, name=name, role=Role(role))
    except DuplicateEmailError:
        click.echo(f"FAIL User '{email}' already exists")
        raise SystemExit(1)
    except ValidationError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{user.role.value}'")


@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('expire-overdue')
@with_appcontext
def expire_overdue():
    """Run the deposit-expiry sweep over every open order that has a deadline."""
    candidates = (
        db.session.query(Order)
        .filter(Order.deposit_deadline.isnot(None))
        .filter(Order.status.notin_(TERMINAL_STATUSES))
        .all()
    )
    cancelled = expire_orders(candidates)
    if not cancelled:
        click.echo("PASS No overdue orders.")
        return
    for order in cancelled:
        click.echo(f"CANCEL Order {order.id} (deadline {order.deposit_deadline})")
    click.echo(f"PASS Expired {len(cancelled)} order(s).")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
