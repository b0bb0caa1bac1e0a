# Overview: Flask CLI groups for setting up, seeding and clearing a POS database.

# backend/posapp/cli.py
# Usage, from backend/ with FLASK_APP=wsgi.py:
#
#   flask system init               tables + admin/admin123 (if no admin) + default settings
#   flask system seed-sample        sample menu items and two customers
#   flask system reset-db --yes     drop and recreate every table (development only)
#   flask system wipe --yes         remove business data and images, keep the first admin
#   flask system check-images       list products whose image file is missing (--clear to unset)
#
#   flask users list
#   flask users create --username jane --password secret1 --full-name "Jane Doe" --role cashier
#       any omitted option is prompted for

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, ROLES
from .services import maintenance_service, user_service
from .validation import ServiceError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the POS system.

    SECURITY: Change the default admin password immediately in production!
    """
    click.echo("START Initializing POS system...")
    result = maintenance_service.init_system()

    if result["admin_created"]:
        click.echo("PASS Default admin created - Username: admin, Password: admin123")
    else:
        click.echo("PASS Admin account already present")

    for key in result["settings_created"]:
        click.echo(f"PASS Default setting created: {key}")

    click.echo("DONE System initialized.")


@system_group.command('seed-sample')
@with_appcontext
def seed_sample():
    """Add the sample menu (Espresso, Cappuccino, Chocolate Cake) and two customers."""
    admin = db.session.query(User).filter_by(role="admin").order_by(User.id.asc()).first()
    created = maintenance_service.seed_sample_data(user_id=admin.id if admin else None)
    click.echo(f"PASS Created {created['products']} products and {created['customers']} customers")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate the schema. Every row is lost."""
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DROP  Removing schema...")
    db.drop_all()

    click.echo("BUILD  Recreating schema...")
    db.create_all()

    click.echo("PASS Schema recreated. Run 'flask system init' next.")


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """Delete sales, products, customers and every user but the first admin; keep the schema."""
    if not yes:
        click.confirm("WARN This will DELETE ALL BUSINESS DATA. Are you sure?", abort=True)

    counts = maintenance_service.wipe_data()
    for name, count in counts.items():
        click.echo(f"DELETE  {name}: {count}")
    click.echo("PASS Wipe complete.")


@system_group.command('check-images')
@click.option('--clear', is_flag=True, help='Unset image_path on the affected products')
@with_appcontext
def check_images(clear):
    """Report products whose image_path points at a file that no longer exists."""
    missing = maintenance_service.find_missing_images(clear=clear)

    if not missing:
        click.echo("PASS Every product image is present.")
        return

    for entry in missing:
        click.echo(f"MISSING  #{entry['id']} {entry['name']}: {entry['image_path']}")
    if clear:
        click.echo(f"PASS Cleared {len(missing)} image paths.")
    else:
        click.echo(f"FAIL {len(missing)} products reference missing images. Re-run with --clear to unset them.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--email', default='', help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), default='cashier', prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, email, password, role):
    """Create a new user (password must be at least 6 characters)."""
    try:
        user = user_service.create_user({
            "username": username,
            "full_name": full_name,
            "email": email or None,
            "password": password,
            "role": role,
        })
    except ServiceError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user['username']} (ID: {user['id']}, Role: {user['role']})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<30} {'Role':<10} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        click.echo(
            f"{user['id']:<5} {user['username']:<20} {user['full_name']:<30} "
            f"{user['role']:<10} {'yes' if user['is_active'] else 'no'}"
        )
    click.echo("=" * 80 + "\n")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
