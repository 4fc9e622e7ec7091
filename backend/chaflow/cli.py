# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/chaflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Apply migrations first: python -m flask db upgrade
#
# System bootstrap:
# - python -m flask system init
#   Create the bootstrap admin (ADMIN_EMAIL / ADMIN_NAME / ADMIN_PASSWORD) if no admin exists.
# - python -m flask system seed
#   Upsert the starter products and create default COST / SALE price profiles.
#
# Seller inspection/bootstrap:
# - python -m flask sellers list
#   List all sellers with role and enabled flag.
# - python -m flask sellers create --name "Seller A" --email a@gc.vn --password "secret123" --role SELLER
#   Create a seller (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired seller sessions.
# - python -m flask maintenance expire-links
#   Deactivate customer order links past their expiry.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Seller
from .constants import ROLE_ADMIN, SELLER_ROLES
from .errors import ChaflowError
from .services import seller_service
from .services import price_profile_service
from .services import maintenance_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create the bootstrap admin account when none exists."""
    click.echo("START Initializing CHAFLOW...")
    admin = seller_service.ensure_default_admin()
    if admin:
        click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")
        click.echo("WARN  Change the bootstrap password immediately in production!")
    else:
        click.echo("PASS An admin account already exists, nothing to do")


@system_group.command('seed')
@with_appcontext
def seed_catalog():
    """Seed starter products and default price profiles."""
    seller_service.ensure_default_admin()
    admin = db.session.query(Seller).filter_by(role=ROLE_ADMIN, is_enabled=True).order_by(Seller.id.asc()).first()
    if not admin:
        click.echo("FAIL No enabled admin account found")
        raise SystemExit(1)

    result = price_profile_service.seed_initial_catalog(admin)
    click.echo(f"PASS Products created: {result['products_created']}")
    if result["profiles_created"]:
        click.echo(f"PASS Profiles created: {', '.join(result['profiles_created'])}")
    else:
        click.echo("PASS Price profiles already present, skipped")


@click.group('sellers')
def sellers_group():
    """Seller inspection and bootstrap commands."""


@sellers_group.command('list')
@with_appcontext
def list_sellers():
    sellers = db.session.query(Seller).order_by(Seller.id.asc()).all()
    if not sellers:
        click.echo("No sellers found.")
        return
    for seller in sellers:
        state = "enabled" if seller.is_enabled else "disabled"
        click.echo(f"{seller.id:>4}  {seller.role:<6}  {state:<8}  {seller.email}  ({seller.name})")


@sellers_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(SELLER_ROLES)), default='SELLER', show_default=True, help='Role')
@with_appcontext
def create_seller_cli(name, email, password, role):
    seller_service.ensure_default_admin()
    admin = db.session.query(Seller).filter_by(role=ROLE_ADMIN, is_enabled=True).order_by(Seller.id.asc()).first()
    if not admin:
        click.echo("FAIL No enabled admin account found")
        raise SystemExit(1)
    try:
        seller = seller_service.create_seller(admin, name=name, email=email, password=password, role=role)
    except ChaflowError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created {seller.role.lower()}: {seller.email} (ID: {seller.id})")


@click.group('maintenance')
def maintenance_group():
    """Expiry sweeps."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = maintenance_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired session(s)")


@maintenance_group.command('expire-links')
@with_appcontext
def expire_links():
    updated = maintenance_service.deactivate_expired_order_links()
    click.echo(f"PASS Deactivated {updated} expired order link(s)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(sellers_group)
    app.cli.add_command(maintenance_group)
