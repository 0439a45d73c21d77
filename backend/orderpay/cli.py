# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/orderpay/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to orderpay (PowerShell: $env:FLASK_APP="orderpay").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the demo user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with active status.
# - python -m flask users create --name "Jane Doe" --email jane@example.com --password "Password123!"
#   Create a user (prompts if options are omitted).
# - python -m flask users deactivate jane@example.com
#   Deactivate a user and revoke all of their sessions.
#
# Gateways / orders:
# - python -m flask gateways list
#   Show every registered gateway, whether it is enabled and configured.
# - python -m flask orders list --status confirmed --per-page 20
#   List orders in a given status.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, gateway_factory, order_service
from .models import User
from .services import session_service
from .services.auth_service import PasswordValidationError, UserExistsError, create_user
from .statuses import OrderStatus

DEMO_USER = ("Demo User", "demo@orderpay.local", "Password123!")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables (if missing) and a demo user.

    Demo credentials: demo@orderpay.local / Password123!
    SECURITY: Change the password or deactivate the user in production!
    """
    click.echo("START Initializing orderpay...")
    db.create_all()
    click.echo("PASS Tables ready")

    name, email, password = DEMO_USER
    try:
        create_user(name, email, password, rounds=current_app.config["BCRYPT_ROUNDS"])
        click.echo(f"PASS Created user: {email} / {password}")
    except UserExistsError:
        click.echo(f"WARN  User '{email}' already exists, skipping...")

    click.echo("DONE orderpay initialized")


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

    click.echo("DONE Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        state = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.email:<35} {user.name:<25} {state}")


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_command(name, email, password):
    try:
        user = create_user(name, email, password, rounds=current_app.config["BCRYPT_ROUNDS"])
    except (UserExistsError, PasswordValidationError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('deactivate')
@click.argument('email')
@with_appcontext
def deactivate_user(email):
    user = db.session.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        raise click.ClickException(f"User '{email}' not found")

    user.is_active = False
    db.session.commit()
    revoked = session_service.revoke_all_user_sessions(user.id, reason="User deactivated")
    click.echo(f"PASS Deactivated {user.email}; revoked {revoked} session(s)")


@click.group('gateways')
def gateways_group():
    """Payment gateway inspection."""


@gateways_group.command('list')
@with_appcontext
def list_gateways():
    factory = gateway_factory()
    for key in factory.registered():
        gateway = factory.resolve(key)
        flags = [
            "enabled" if gateway.is_enabled() else "disabled",
            "sandbox" if gateway.is_sandbox() else "live",
            "configured" if gateway.validate_configuration() else "MISSING CREDENTIALS",
        ]
        default = " (default)" if key == factory.default_gateway else ""
        click.echo(f"{key:<15} {gateway.display_name:<15} {', '.join(flags)}{default}")


@click.group('orders')
def orders_group():
    """Order inspection."""


@orders_group.command('list')
@click.option('--status', type=click.Choice(OrderStatus.values()), default=OrderStatus.PENDING.value)
@click.option('--page', type=int, default=1)
@click.option('--per-page', type=int, default=15)
@with_appcontext
def list_orders(status, page, per_page):
    result = order_service().get_orders_by_status(OrderStatus(status), per_page, page)
    for order in result.items:
        click.echo(f"{order.order_number}  {order.status.value:<10} {order.total_amount:>12}  user={order.user_id}")
    click.echo(f"Page {result.page}/{result.last_page} ({result.total} orders)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(gateways_group)
    app.cli.add_command(orders_group)
