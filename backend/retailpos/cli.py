# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the default admin and the site settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username ana --name "Ana" --email ana@store.local --password secret1 --role user
#
# Customers:
# - python -m flask customers recalc --customer-id 3
# - python -m flask customers recalc --all
#   Re-derive points, total spent and purchase count from sales.
#
# Demo data:
# - python -m flask seed demo

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Product, Supplier, User
from .models.auth import ROLE_ADMIN, VALID_ROLES
from .services import customers_service, settings_service
from .services.auth_service import PasswordValidationError, create_user
from .validation import ConflictError, NotFoundError, ValidationError

DEFAULT_ADMIN_PASSWORD = "admin123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the store: tables, default admin user and site settings.

    Creates:
    - Admin user: admin / admin@retailpos.local, password "admin123"

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing RetailPOS...")
    db.create_all()

    settings_service.ensure_settings()
    click.echo("PASS Site settings ready")

    if db.session.query(User).filter_by(username="admin").first():
        click.echo("WARN  User 'admin' already exists, skipping...")
    else:
        create_user({
            "username": "admin",
            "name": "Administrator",
            "email": "admin@retailpos.local",
            "role": ROLE_ADMIN,
            "password": DEFAULT_ADMIN_PASSWORD,
        })
        click.echo("PASS Created user: admin (admin@retailpos.local) with role 'admin'")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin -> admin@retailpos.local / {DEFAULT_ADMIN_PASSWORD}")


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
    click.echo("PASS Database reset. Run 'python -m flask system init' to bootstrap.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, email, password, role):
    """Create a new user interactively (password: 6+ characters)."""
    try:
        create_user({
            "username": username,
            "name": name,
            "email": email,
            "role": role,
            "password": password,
        })
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.username.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<8} {'Active'}")
    click.echo("=" * 70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<8} {active_str}")
    click.echo("=" * 70 + "\n")


# =============================================================================
# CUSTOMER MAINTENANCE COMMANDS
# =============================================================================

@click.group('customers')
def customers_group():
    """Customer maintenance commands."""


@customers_group.command('recalc')
@click.option('--customer-id', type=int, help='Recalculate a single customer')
@click.option('--all', 'all_customers', is_flag=True, help='Recalculate every customer')
@with_appcontext
def recalc_customers(customer_id, all_customers):
    """Re-derive loyalty totals from each customer's sale history."""
    if customer_id is None and not all_customers:
        raise click.UsageError("Pass --customer-id N or --all")

    if all_customers:
        ids = [row.id for row in db.session.query(Customer.id).order_by(Customer.id.asc()).all()]
    else:
        ids = [customer_id]

    for cid in ids:
        try:
            totals = customers_service.recalculate_totals(cid)
        except NotFoundError:
            click.echo(f"FAIL Customer ID {cid} not found")
            continue
        click.echo(
            f"PASS Customer {cid}: purchases={totals['total_purchases']} "
            f"spent={totals['total_spent_cents'] / 100:.2f} points={totals['points']}"
        )


# =============================================================================
# DEMO DATA
# =============================================================================

@click.group('seed')
def seed_group():
    """Demo data commands."""


DEMO_SUPPLIERS = [
    {"name": "Distribuidora Central", "contact_name": "Marcos", "phone": "+55 11 4000-1000", "email": "vendas@central.example"},
    {"name": "Atacado Bom Preco", "phone": "+55 11 4000-2000"},
]

DEMO_PRODUCTS = [
    {"name": "Coffee 500g", "price_cents": 1890, "cost_cents": 1100, "stock": 40, "min_stock": 10, "category": "Groceries", "barcode": "7890000000011"},
    {"name": "Whole Milk 1L", "price_cents": 549, "cost_cents": 350, "stock": 60, "min_stock": 20, "category": "Dairy", "barcode": "7890000000028"},
    {"name": "Notebook A5", "price_cents": 1500, "cost_cents": 700, "stock": 4, "min_stock": 5, "category": "Stationery", "barcode": "7890000000035"},
    {"name": "Chocolate Bar", "price_cents": 699, "cost_cents": 380, "stock": 80, "min_stock": 15, "category": "Groceries", "custom_category": "Sweets"},
]

DEMO_CUSTOMERS = [
    {"name": "Maria Souza", "phone": "+55 11 98888-0001", "email": "maria@example.com"},
    {"name": "Joao Lima", "phone": "+55 11 98888-0002", "email": "joao@example.com", "address": "Rua A, 100"},
]


@seed_group.command('demo')
@with_appcontext
def seed_demo():
    """Insert a small demo catalog, suppliers and customers (skips existing names)."""
    created = 0
    suppliers = []
    for row in DEMO_SUPPLIERS:
        supplier = db.session.query(Supplier).filter_by(name=row["name"]).first()
        if not supplier:
            supplier = Supplier(**row)
            db.session.add(supplier)
            created += 1
        suppliers.append(supplier)
    db.session.flush()

    for index, row in enumerate(DEMO_PRODUCTS):
        if db.session.query(Product).filter_by(name=row["name"]).first():
            continue
        db.session.add(Product(**row, supplier_id=suppliers[index % len(suppliers)].id))
        created += 1

    for row in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(email=row["email"]).first():
            continue
        db.session.add(Customer(**row))
        created += 1

    db.session.commit()
    click.echo(f"PASS Demo data ready ({created} records created)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(customers_group)
    app.cli.add_command(seed_group)
