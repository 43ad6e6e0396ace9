# Overview: Flask CLI command groups for bootstrap and user inspection.

# backend/stockdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create missing tables and the default admin account (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and status.
# - python -m flask users create --username jane --email jane@company.com --password secret1 --role user
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, ensure_default_admin
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and the default admin account."""
    click.echo("START Initializing database...")
    db.create_all()
    click.echo("PASS Tables ready: users, products, sales, sale_items")

    admin = ensure_default_admin()
    if admin is not None:
        click.echo(f"PASS Created default admin: {admin.username} ({admin.email})")
        click.echo("WARN  Change the default admin password immediately!")
    else:
        click.echo("INFO  Admin user already exists")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    ensure_default_admin()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        click.echo(f"{user.id:>4}  {user.username:<20} {user.email:<32} {user.role:<6} {user.status}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(['admin', 'user']), default='user', show_default=True)
@click.option('--branch', default='Main', show_default=True)
@with_appcontext
def create_user_command(username, email, password, role, branch):
    try:
        user = create_user(username=username, email=email, password=password, role=role, branch=branch)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
