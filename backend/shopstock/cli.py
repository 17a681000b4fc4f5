# Overview: Flask CLI command groups for bootstrap and user administration.

# backend/shopstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@shopstock.local] [--admin-password ...]
#   Create all tables and seed an ADMIN user if no users exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --email a@b.c --name "Ann" --password "secret1" --role MANAGER
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .cache import cache
from .extensions import db
from .models import User, ROLES, ROLE_ADMIN
from .services.auth_service import create_user
from .validation import ConflictError, ValidationError


def _describe(e: ValidationError) -> str:
    if e.issues:
        return "; ".join(issue.message for issue in e.issues)
    return str(e)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@shopstock.local', help='Seed admin email')
@click.option('--admin-name', default='Administrator', help='Seed admin name')
@click.option('--admin-password', default='Password123!', help='Seed admin password')
@with_appcontext
def init_system(admin_email, admin_name, admin_password):
    """
    Create the schema and a first ADMIN account. Idempotent.

    SECURITY: Change the seeded password immediately in production!
    """
    click.echo("START Initializing ShopStock...")
    db.create_all()
    click.echo("PASS Tables created")

    if db.session.query(User).count() > 0:
        click.echo("PASS Users already exist; no admin seeded")
        return

    user = create_user(name=admin_name, email=admin_email, password=admin_password, role=ROLE_ADMIN)
    click.echo(f"PASS Created admin: {user.email} / {admin_password}")


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
    cache.clear()
    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address (login)')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, name, password, role):
    """Create a staff account (password hashed with bcrypt)."""
    try:
        user = create_user(name=name, email=email, password=password, role=role.upper())
    except ValidationError as e:
        click.echo(f"FAIL {_describe(e)}")
        raise SystemExit(1)
    except ConflictError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with roles and active status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.email:<32} {u.name:<24} {u.role:<8} {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
