# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cylinderhub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Run migrations first: python -m flask db upgrade
#
# System bootstrap/repair:
# - python -m flask system init [--password "Password123!"]
#   Idempotent bootstrap: default factory, default filling lines, and one user per role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --password "Password123!" --role ADMIN
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list [--role SELLER] [--category SALES]
#   List permissions (optionally filtered by role or category).
# - python -m flask perms check admin CREATE_SALE
#   Check whether a user has a permission.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .errors import CylinderHubError
from .extensions import db
from .models import Factory, FillingLine, User
from .models.cylinders import CylinderType
from .permissions import (
    PERMISSION_DEFINITIONS,
    PermissionCategory,
    RoleName,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permissions,
)
from .services import auth_service, permission_service, session_service
from .services.auth_service import PasswordValidationError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--factory', 'factory_name', default='Main Factory', help='Default factory name')
@click.option('--password', default=DEFAULT_PASSWORD, help='Password for the seeded users')
@with_appcontext
def init_system(factory_name, password):
    """
    Initialize the system: a factory, one filling line per cylinder type,
    and one user per role (admin, manager, filler, inspector, seller, viewer).

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing CylinderHub...")

    factory = db.session.query(Factory).filter_by(name=factory_name).first()
    if not factory:
        factory = Factory(name=factory_name, is_active=True)
        db.session.add(factory)
        db.session.commit()
        click.echo(f"PASS Created factory: {factory.name} (ID: {factory.id})")
    else:
        click.echo(f"PASS Using existing factory: {factory.name} (ID: {factory.id})")

    for cylinder_type in CylinderType.ALL:
        name = f"{cylinder_type.title()} Line 1"
        if db.session.query(FillingLine).filter_by(name=name).first():
            continue
        db.session.add(FillingLine(
            name=name,
            factory_id=factory.id,
            capacity=10,
            cylinder_type=cylinder_type,
        ))
        db.session.commit()
        click.echo(f"PASS Created filling line: {name}")

    for role in RoleName:
        username = role.value.lower()
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User '{username}' already exists")
            continue
        try:
            auth_service.create_user(username=username, password=password, role=role.value)
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {e.message}")
            return
        click.echo(f"PASS Created user: {username} ({role.value})")

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

    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in RoleName], case_sensitive=False), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(
            username=username,
            password=password,
            role=role,
            email=email,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except CylinderHubError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = auth_service.list_users(include_inactive=True)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {(user.email or '-'):<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@click.option('--category', help='Filter by category')
@with_appcontext
def list_permissions_cli(role, category):
    """List all permissions, optionally filtered by role or category."""
    if role:
        codes = get_role_permissions(role.upper())
        if not codes:
            click.echo(f"FAIL Role '{role}' not found or has no permissions")
            return

        click.echo(f"\n{'='*80}")
        click.echo(f"Permissions for role: {role.upper()}")
        click.echo(f"{'='*80}\n")

        click.echo(f"{'Code':<30} {'Name':<35} {'Category'}")
        click.echo("-"*80)

        for code in codes:
            perm = get_permission_definition(code)
            click.echo(f"{perm['code']:<30} {perm['name']:<35} {perm['category']}")

        click.echo(f"\n Total: {len(codes)} permissions\n")

    elif category:
        perms = get_permissions_by_category(category.upper())

        click.echo(f"\n{'='*80}")
        click.echo(f"Permissions in category: {category.upper()}")
        click.echo(f"{'='*80}\n")

        for code, name, _description, _category in perms:
            click.echo(f"{code.value:<30} {name}")

        click.echo(f"\n Total: {len(perms)} permissions\n")

    else:
        click.echo(f"\n{'='*80}")
        click.echo("All Permissions")
        click.echo(f"{'='*80}\n")

        for cat in PermissionCategory.ALL:
            perms = get_permissions_by_category(cat)
            if not perms:
                continue
            click.echo(f"CATEGORY {cat}")
            click.echo("-"*80)
            for code, name, _description, _category in perms:
                click.echo(f"  {code.value:<28} {name}")
            click.echo("")

        click.echo(f" Total: {len(PERMISSION_DEFINITIONS)} permissions\n")


@perms_group.command('check')
@click.argument('username')
@click.argument('permission_code')
@with_appcontext
def check_permission_cli(username, permission_code):
    """Check if a user has a specific permission."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    code = permission_code.upper()
    if permission_service.user_has_permission(user.id, code):
        click.echo(f"PASS {username} ({user.role}) HAS permission: {code}")
    else:
        click.echo(f"FAIL {username} ({user.role}) DOES NOT HAVE permission: {code}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} old sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
