# Overview: Flask CLI command groups for bootstrap, users, the budget sweep and backups.

# backend/vendascontrol/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default settings documents and the admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@loja.local --password "segredo" --role seller
#
# Budgets:
# - python -m flask budgets sync
#   Convert every approved budget that has no Sale yet (safe to re-run).
#
# Backups:
# - python -m flask backup export [--output backup.json]
# - python -m flask backup import backup.json --yes

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import backup_service, reconciliation_service
from .services import document_store as store
from .services.auth_service import ROLES, create_user
from .services.settings_service import (
    COMPANY_DOC,
    REGISTRATION_DOC,
    CompanyProfile,
    RegistrationSettings,
)
from .validation import ValidationError


DEFAULT_ADMIN_EMAIL = "admin@vendascontrol.local"
DEFAULT_ADMIN_PASSWORD = "admin123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables, the default settings documents and a first admin user.

    Existing data is left alone, so this is safe to run on every deploy.
    SECURITY: change the default admin password immediately.
    """
    click.echo("START Initializing VendasControl...")
    db.create_all()

    if store.get_document(store.SETTINGS, COMPANY_DOC) is None:
        store.set_document(store.SETTINGS, COMPANY_DOC, CompanyProfile().to_dict())
        click.echo("PASS Created default company profile")
    if store.get_document(store.SETTINGS, REGISTRATION_DOC) is None:
        store.set_document(store.SETTINGS, REGISTRATION_DOC, RegistrationSettings().to_dict())
        click.echo("PASS Created default registration settings")

    if db.session.query(User).filter_by(role="admin").first():
        click.echo("WARN  An admin user already exists, skipping...")
    else:
        create_user("Administrador", DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, role="admin")
        click.echo(f"PASS Created admin user: {DEFAULT_ADMIN_EMAIL} / {DEFAULT_ADMIN_PASSWORD}")

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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default='seller', show_default=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a user account (password: 6+ characters)."""
    try:
        user = create_user(name, email, password, role=role)
    except ValidationError as e:
        raise click.ClickException(f"{e}: {e.field_errors}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<32} {'Role':<8} {'Active'}")
    click.echo("="*80)
    for user in users:
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<32} {user.role:<8} {'yes' if user.is_active else 'no'}")


@click.group('budgets')
def budgets_group():
    """Budget maintenance commands."""


@budgets_group.command('sync')
@with_appcontext
def sync_budgets():
    """Convert approved budgets that have no Sale (idempotent)."""
    report = reconciliation_service.sync_approved_budgets()

    click.echo(f"PASS Created {report.created} sale(s)")
    for budget_id, sale_id in report.sales.items():
        click.echo(f"   {budget_id} -> {sale_id}")
    if report.skipped:
        click.echo(f"WARN  Skipped {report.skipped} budget(s)")
        for entry in report.skipped_budgets:
            click.echo(f"   {entry['budget_id']}: {entry['reason']}")
    if report.errors:
        click.echo(f"FAIL {len(report.errors)} budget(s) failed: {', '.join(report.errors)}")


@click.group('backup')
def backup_group():
    """Backup export/import commands."""


@backup_group.command('export')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), help='Target file (default: dated name)')
@with_appcontext
def export_backup_cli(output):
    """Write every collection to a JSON file."""
    path = output or backup_service.backup_filename()
    data = backup_service.export_backup()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2)

    total = sum(len(docs) for docs in data.values())
    click.echo(f"PASS Exported {total} document(s) to {path}")


@backup_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_backup_cli(path, yes):
    """Restore a JSON backup. Documents with the same id are overwritten."""
    if not yes:
        click.confirm("WARN Documents with the same id will be OVERWRITTEN. Continue?", abort=True)

    with open(path, encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"Invalid JSON: {e}")

    try:
        result = backup_service.import_backup(data)
    except ValidationError as e:
        raise click.ClickException(f"{e}: {e.field_errors}" if e.field_errors else str(e))

    click.echo(f"PASS Restored: {result['restored']} (skipped {result['skipped']} without _id)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(budgets_group)
    app.cli.add_command(backup_group)
