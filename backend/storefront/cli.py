# Overview: Flask CLI command groups for bootstrap, demo data and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create-admin --name "Store Admin" --email admin@store.local --phone 9999999999
#   Create an admin, or promote an existing account (prompts for the password).
#
# Catalog:
# - python -m flask products seed-demo
#   Insert a small demo grocery catalog when the products table is empty.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .services.auth_service import create_user

DEFAULT_ADMIN_EMAIL = "admin@storefront.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"

DEMO_PRODUCTS = [
    {"name": "Alphonso Mangoes", "category": "Fruits", "price": 49900, "mrp_cents": 59900,
     "stock": 40, "unit": "1 kg", "brand": "Farm Fresh", "is_veg": True, "origin": "Ratnagiri",
     "tags": ["seasonal"]},
    {"name": "Toned Milk", "category": "Dairy", "price": 2800, "mrp_cents": 2800,
     "stock": 120, "unit": "500 ml", "brand": "Amul", "is_veg": True, "origin": "Gujarat",
     "tags": ["daily"]},
    {"name": "Basmati Rice", "category": "Staples", "price": 18900, "mrp_cents": 21500,
     "stock": 60, "unit": "1 kg", "brand": "India Gate", "is_veg": True, "origin": "Punjab",
     "tags": []},
    {"name": "Free Range Eggs", "category": "Dairy", "price": 9900, "mrp_cents": 10900,
     "stock": 50, "unit": "6 pcs", "brand": "Country Farms", "is_veg": False, "origin": None,
     "tags": ["protein"]},
    {"name": "Tomatoes", "category": "Vegetables", "price": 3500, "mrp_cents": None,
     "stock": 200, "unit": "500 g", "brand": None, "is_veg": True, "origin": "Nashik",
     "tags": []},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the storefront: schema and the default admin account.

    Default admin: admin@storefront.local / "Password123!"
    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing storefront...")

    db.create_all()
    click.echo("PASS Tables ready")

    admin = db.session.query(User).filter_by(email=DEFAULT_ADMIN_EMAIL).first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.email} (ID: {admin.id})")
    else:
        admin = create_user(
            name="Store Admin",
            email=DEFAULT_ADMIN_EMAIL,
            password=DEFAULT_ADMIN_PASSWORD,
            phone="0000000000",
            role="admin",
        )
        db.session.commit()
        click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")
        click.echo(f"WARN Default password is {DEFAULT_ADMIN_PASSWORD!r}; change it.")

    click.echo("DONE Storefront initialized")


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

    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create-admin')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--phone', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin(name, email, phone, password):
    """Create an admin account, or promote an existing one to admin."""
    email = email.strip().lower()
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        existing.role = "admin"
        existing.is_active = True
        db.session.commit()
        click.echo(f"PASS Promoted {existing.email} (ID: {existing.id}) to admin")
        return

    user = create_user(name=name, email=email, password=password, phone=phone, role="admin")
    db.session.commit()
    click.echo(f"PASS Created admin {user.email} (ID: {user.id})")


@click.group('products')
def products_group():
    """Catalog helpers."""


@products_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Insert the demo catalog. Skipped when any product exists."""
    if db.session.query(Product.id).first():
        click.echo("SKIP Products table is not empty")
        return

    for data in DEMO_PRODUCTS:
        db.session.add(Product(is_active=True, **data))
    db.session.commit()
    click.echo(f"PASS Seeded {len(DEMO_PRODUCTS)} products")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
