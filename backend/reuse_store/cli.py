# Overview: Flask CLI command groups for bootstrap, demo data, and the verification queue.

# backend/reuse_store/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Store bootstrap/repair:
# - python -m flask store init-db
#   Create all tables (idempotent; use "flask db upgrade" for migrated databases).
# - python -m flask store seed-verification [--reset] [--yes]
#   Load sample donation sessions that need photo verification.
#
# Verification queue:
# - python -m flask verification stats [--window-days 30]
#   Print session counts per derived status.
# - python -m flask verification set-status 12 approved --actor "reviewer@school.edu"
#   Approve or flag every item of a checkout session.

import click
from datetime import timedelta
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Checkout, Item
from .services import verification_service
from .services.donation_service import academic_year_range
from .services.verification_service import SessionStatusUpdate
from .time_utils import utcnow
from .validation import NotFoundError, ValidationError


SAMPLE_CHECKOUTS = [
    {
        "owner_name": "John Smith",
        "email": "jsmith@haverford.edu",
        "housing_assignment": "Lloyd 201",
        "graduation_year": "2025",
        "items": [
            ("Mini Fridge", 1, "White mini fridge, works perfectly"),
            ("Desk Lamp", 2, "Two reading lamps with adjustable necks"),
        ],
    },
    {
        "owner_name": "Sarah Johnson",
        "email": "sjohnson@haverford.edu",
        "housing_assignment": "Gummere 104",
        "graduation_year": "2024",
        "items": [
            ("Hangers", 25, "Plastic hangers in good condition"),
            ("Kitchen Utensils", 1, "Set of spatulas, spoons, and whisks"),
            ("Desk Fan", 1, "Small oscillating fan"),
        ],
    },
    {
        "owner_name": "Michael Chen",
        "email": "mchen@haverford.edu",
        "housing_assignment": "Barclay 305",
        "graduation_year": "2026",
        "items": [
            ("Office Supplies", 1, "Notebooks, pens, folders, and organizers"),
        ],
    },
    {
        "owner_name": "Emily Davis",
        "email": "edavis@haverford.edu",
        "housing_assignment": "Comfort 212",
        "graduation_year": "2025",
        "items": [
            ("Floor Lamp", 1, "Tall standing lamp with three brightness settings"),
            ("Storage Bins", 3, "Plastic storage containers with lids"),
        ],
    },
    {
        "owner_name": "David Park",
        "email": "dpark@haverford.edu",
        "housing_assignment": "HPA 401",
        "graduation_year": "2024",
        "items": [
            ("Microwave", 1, "700W microwave, barely used"),
        ],
    },
]


@click.group('store')
def store_group():
    """Database bootstrap and demo data commands."""


@store_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@store_group.command('seed-verification')
@click.option('--reset', is_flag=True, help='Delete existing checkouts and items first')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def seed_verification(reset, yes):
    """
    Load sample donation sessions needing approval.

    Sessions are staggered three hours apart so the queue has a stable order.
    """
    if reset:
        if not yes:
            click.confirm("WARN This will DELETE ALL checkouts and items. Are you sure?", abort=True)
        db.session.query(Item).delete()
        db.session.query(Checkout).delete()
        db.session.commit()
        click.echo("DELETE Cleared existing checkout data")

    now = utcnow()
    for index, sample in enumerate(SAMPLE_CHECKOUTS):
        created_at = now - timedelta(hours=index * 3)
        year_range = academic_year_range(created_at, current_app.config["ACADEMIC_TIMEZONE"])
        checkout = Checkout(
            year_range=year_range,
            date=created_at,
            owner_name=sample["owner_name"],
            email=sample["email"],
            housing_assignment=sample["housing_assignment"],
            graduation_year=sample["graduation_year"],
            needs_approval=True,
        )
        for name, quantity, description in sample["items"]:
            checkout.items.append(Item(
                year_range=year_range,
                item_name=name,
                item_quantity=quantity,
                description=description,
            ))
        db.session.add(checkout)
        db.session.flush()
        click.echo(f"PASS Created checkout {checkout.id} for {checkout.owner_name} ({len(sample['items'])} items)")

    db.session.commit()

    stats = verification_service.session_stats()
    click.echo(f"Pending checkouts: {stats['pending']}")
    click.echo(f"Total items: {db.session.query(Item).count()}")


@click.group('verification')
def verification_group():
    """Verification queue inspection and bulk actions."""


@verification_group.command('stats')
@click.option('--window-days', type=click.IntRange(min=0), default=None, help='Approved window in days (default: APPROVED_WINDOW_DAYS)')
@with_appcontext
def verification_stats(window_days):
    """Print session counts per derived status."""
    if window_days is None:
        window_days = current_app.config["APPROVED_WINDOW_DAYS"]
    stats = verification_service.session_stats(approved_window_days=window_days)

    click.echo("\n" + "=" * 40)
    click.echo(f"{'STATUS':<12} {'SESSIONS':>10}")
    click.echo("=" * 40)
    for status in ("pending", "approved", "flagged"):
        click.echo(f"{status:<12} {stats[status]:>10}")
    click.echo("=" * 40)
    click.echo(f"(approved counts sessions verified in the last {window_days} days)\n")


@verification_group.command('set-status')
@click.argument('checkout_id', type=int)
@click.argument('status', type=click.Choice(['approved', 'flagged']))
@click.option('--actor', default=None, help='Reviewer identity stored in verified_by')
@with_appcontext
def set_status_cli(checkout_id, status, actor):
    """Approve or flag every item of a checkout session."""
    try:
        result = verification_service.set_session_status(
            checkout_id, SessionStatusUpdate(status=status, actor=actor)
        )
    except (ValidationError, NotFoundError) as e:
        raise click.ClickException(str(e))

    if result.is_empty:
        click.echo(f"WARN Checkout {checkout_id} has no items; nothing updated.")
    else:
        click.echo(f"PASS Checkout {checkout_id}: {result.items_updated} items marked {status}.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(verification_group)
