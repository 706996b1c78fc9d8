# Overview: Flask CLI command groups for bootstrap, tenant inspection, ownership repair and maintenance.

# backend/tillsup/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants provision --email owner@shop.co.ke --business "Duka Ltd"
#   Create identity + business + owner profile + default branch atomically.
# - python -m flask tenants list
#   List businesses with owner, branch and staff counts.
#
# Ownership repair:
# - python -m flask ownership scan
#   Report owner linkage state (valid/orphaned/dangling) for every business.
# - python -m flask ownership repair --business-id 3
#   Repair one business (or --all broken ones); exit code 1 if any is unrepairable.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired/revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import AccessControlError
from .extensions import db
from .models import Branch, Business, Profile
from .services import ownership_service, provisioning_service, session_service
from .services.ownership_service import OwnershipState


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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


# =============================================================================
# TENANT COMMANDS
# =============================================================================

@click.group('tenants')
def tenants_group():
    """Tenant (business) provisioning and inspection."""


@tenants_group.command('provision')
@click.option('--email', prompt=True, help='Owner email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Owner password')
@click.option('--business', 'business_name', prompt=True, help='Business name')
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def provision_tenant_cli(email, password, business_name, first_name, last_name):
    """Register a new tenant with its owner and default branch."""
    try:
        bundle = provisioning_service.register_tenant(
            email,
            password,
            business_name,
            first_name=first_name,
            last_name=last_name,
        )
    except AccessControlError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)

    click.echo(
        f"PASS Provisioned business '{bundle.business.name}' (ID: {bundle.business.id}), "
        f"owner {bundle.owner_profile.email} (ID: {bundle.owner_profile.id}), "
        f"branch '{bundle.default_branch.name}' (ID: {bundle.default_branch.id})"
    )


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all businesses."""
    businesses = db.session.query(Business).order_by(Business.id).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Owner':<8} {'Active':<8} {'Branches':<10} {'Staff'}")
    click.echo("="*80)

    for business in businesses:
        branch_count = db.session.query(Branch).filter_by(business_id=business.id).count()
        staff_count = db.session.query(Profile).filter_by(business_id=business.id, is_active=True).count()
        active_str = "Yes" if business.is_active else "No"
        owner_str = str(business.owner_id) if business.owner_id is not None else "-"

        click.echo(
            f"{business.id:<5} {business.name[:30]:<30} {owner_str:<8} {active_str:<8} "
            f"{branch_count:<10} {staff_count}"
        )

    click.echo("="*80 + "\n")


# =============================================================================
# OWNERSHIP COMMANDS
# =============================================================================

@click.group('ownership')
def ownership_group():
    """Business ownership linkage inspection and repair."""


@ownership_group.command('scan')
@with_appcontext
def scan_ownership_cli():
    """Report owner linkage state for every business."""
    results = ownership_service.scan_ownership()
    if not results:
        click.echo("No businesses found.")
        return

    broken = 0
    for business, state in results:
        marker = "PASS" if state is OwnershipState.VALID else "WARN"
        if state is not OwnershipState.VALID:
            broken += 1
        click.echo(f"{marker} {business.id:<5} {business.name[:40]:<40} {state.value} (owner_id={business.owner_id})")

    click.echo(f"\n{len(results)} businesses scanned, {broken} need repair.")


@ownership_group.command('repair')
@click.option('--business-id', type=int, help='Business to repair')
@click.option('--all', 'repair_all', is_flag=True, help='Repair every business that is not valid')
@with_appcontext
def repair_ownership_cli(business_id, repair_all):
    """
    Repair owner linkage. Never guesses: a business with zero or several
    active owners is reported as unrepairable and left unchanged.
    """
    if not business_id and not repair_all:
        raise click.UsageError("Pass --business-id or --all")

    if repair_all:
        targets = [
            business.id
            for business, state in ownership_service.scan_ownership()
            if state is not OwnershipState.VALID
        ]
    else:
        targets = [business_id]

    failed = 0
    for target in targets:
        try:
            result = ownership_service.repair_ownership(target, triggered_by="cli")
        except AccessControlError as exc:
            click.echo(f"FAIL Business {target}: {exc.message}")
            failed += 1
            continue

        if result.ok:
            action = "repaired" if result.changed else "already valid"
            click.echo(f"PASS Business {target} {action} (owner_id={result.owner_id_after})")
        else:
            click.echo(f"FAIL Business {target} unrepairable: {result.reason}")
            failed += 1

    if not targets:
        click.echo("PASS Nothing to repair.")
    if failed:
        raise SystemExit(1)


# =============================================================================
# MAINTENANCE COMMANDS
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """
    Delete expired and revoked sessions.

    Default retention: 30 days.
    """
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(ownership_group)
    app.cli.add_command(maintenance_group)
