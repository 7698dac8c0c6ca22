# Overview: Flask CLI command groups for bootstrap, inspection, and demo data.

# backend/loggas/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to loggas (PowerShell: $env:FLASK_APP="loggas").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the platform super admin and a demo distributor.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Gás Central" --email admin@gascentral.com --password "Password123!" --role admin
# - python -m flask users list
#
# Catalog:
# - python -m flask catalog seed --email admin@loggas.local
#   Load the starter catalog, customers and an operating expense for a distributor.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .constants import UserRole, values
from .validation import ValidationError, ConflictError, NotFoundError
from .services.auth_service import create_user
from .services import catalog_service, customer_service, ledger_service


DEFAULT_PASSWORD = "Password123!"

STARTER_PRODUCTS = [
    {"name": "Botijão P13", "category": "gas", "sku": "GAS-P13", "stock": 45, "min_stock": 20,
     "cost_price_cents": 8500, "sell_price_cents": 11000, "show_online": True},
    {"name": "Galão Água 20L", "category": "water", "sku": "AGU-20L", "stock": 12, "min_stock": 30,
     "cost_price_cents": 650, "sell_price_cents": 1400, "show_online": True},
    {"name": "Cerveja Lata 350ml", "category": "beverage", "sku": "BEV-CERV", "stock": 120, "min_stock": 50,
     "cost_price_cents": 280, "sell_price_cents": 450, "show_online": True},
    {"name": "Botijão P45", "category": "gas", "sku": "GAS-P45", "stock": 5, "min_stock": 8,
     "cost_price_cents": 32000, "sell_price_cents": 45000, "show_online": False},
]

STARTER_CUSTOMERS = [
    {"id": "1", "name": "João Silva", "document": "123.456.789-00", "address": "Rua das Flores, 123",
     "phone": "(11) 98888-7777", "credit_limit_cents": 50000, "status": "active"},
    {"id": "2", "name": "Maria Santos", "document": "987.654.321-11", "address": "Av. Paulista, 1000",
     "phone": "(11) 97777-6666", "credit_limit_cents": 20000, "status": "debtor"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize LogGas: tables, a super admin and a demo distributor.

    Creates (when missing):
    - super@loggas.local (super_admin)
    - admin@loggas.local (admin, tenant "Distribuidora Demo")
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing LogGas...")
    db.create_all()

    for email, name, role, company in (
        ("super@loggas.local", "Platform Admin", UserRole.SUPER_ADMIN.value, None),
        ("admin@loggas.local", "Demo Admin", UserRole.ADMIN.value, "Distribuidora Demo"),
    ):
        existing = db.session.query(User).filter_by(email=email).first()
        if existing:
            click.echo(f"PASS Using existing {role}: {email}")
            continue
        user = create_user(name=name, email=email, password=DEFAULT_PASSWORD, role=role, company_name=company)
        click.echo(f"PASS Created {role}: {email} (tenant: {user.tenant_id or '-'})")

    click.echo("DONE Initialization complete")


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
@click.option('--role', type=click.Choice(values(UserRole)), default=UserRole.ADMIN.value, help='Role')
@click.option('--tenant-id', default=None, help='Distributor id (required for customers)')
@click.option('--company', default=None, help='Company name (admins)')
@with_appcontext
def create_user_cli(name, email, password, role, tenant_id, company):
    """
    Create a user.

    Admins become their own tenant. Customers need --tenant-id.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            name=name,
            email=email,
            password=password,
            role=role,
            tenant_id=tenant_id,
            company_name=company,
        )
        click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
        click.echo(f"     Tenant: {user.tenant_id or '-'}")
    except ValidationError as e:
        click.echo(f"FAIL Validation failed: {str(e)}")
    except (ConflictError, NotFoundError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--tenant-id', default=None, help='Filter by tenant')
@with_appcontext
def list_users(tenant_id):
    """List all users."""
    query = db.session.query(User)
    if tenant_id:
        query = query.filter_by(tenant_id=tenant_id)

    users = query.order_by(User.created_at.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 110)
    click.echo(f"{'ID':<34} {'Tenant':<34} {'Email':<30} {'Role':<12}")
    click.echo("=" * 110)
    for user in users:
        click.echo(f"{user.id:<34} {(user.tenant_id or '-'):<34} {user.email:<30} {user.role:<12}")
    click.echo("=" * 110 + "\n")


@click.group('catalog')
def catalog_group():
    """Catalog and demo data commands."""


@catalog_group.command('seed')
@click.option('--email', required=True, help='Distributor admin email')
@with_appcontext
def seed_catalog(email):
    """
    Load the starter catalog for one distributor.

    Idempotent: products are matched by SKU and customers by id.
    """
    admin = db.session.query(User).filter_by(email=email.strip().lower(), role=UserRole.ADMIN.value).first()
    if not admin:
        click.echo(f"FAIL No distributor admin with email {email}")
        return
    tenant_id = admin.tenant_id

    created = 0
    for data in STARTER_PRODUCTS:
        exists = db.session.query(Product.id).filter_by(tenant_id=tenant_id, sku=data["sku"]).first()
        if exists:
            continue
        catalog_service.add_product(tenant_id, dict(data))
        created += 1
    click.echo(f"PASS Products created: {created}")

    created = 0
    for data in STARTER_CUSTOMERS:
        try:
            customer_service.get_customer(tenant_id, data["id"])
            continue
        except NotFoundError:
            customer_service.create_customer(tenant_id, dict(data))
            created += 1
    click.echo(f"PASS Customers created: {created}")

    if not ledger_service.list_transactions(tenant_id, limit=1):
        ledger_service.record_expense(
            tenant_id=tenant_id,
            description="Aluguel Galpão",
            amount_cents=300000,
        )
        click.echo("PASS Operating expense recorded")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
