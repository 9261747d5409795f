import click
from flask.cli import with_appcontext

from portal.extensions import db
from portal.models import User
from portal.services import account_service, content_service, notification_service, progress_service


@click.command('create-admin')
@click.option('--email', prompt=True, help='Admin email')
@click.option(
    '--password',
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help='Admin password (will not be echoed)'
)
@click.option('--first-name', default='Admin', show_default=True)
@with_appcontext
def create_admin_command(email: str, password: str, first_name: str) -> None:
    """Create (or update) an admin user."""
    email = (email or '').strip().lower()
    if not email:
        raise click.ClickException('Email is required.')
    if len(password or '') < 6:
        raise click.ClickException('Password must be at least 6 characters.')

    existed = User.query.filter_by(email=email).first() is not None
    user = account_service.create_admin(email, password, first_name=first_name)
    click.echo(f"{'Updated' if existed else 'Created'} admin user '{user.email}'.")


@click.command('init-db')
@with_appcontext
def init_db_command() -> None:
    """Create all tables that do not exist yet (never drops)."""
    db.create_all()
    click.echo('Database tables are up to date.')


@click.command('seed-content')
@with_appcontext
def seed_content_command() -> None:
    """Insert the starter checklist if no categories exist."""
    created = content_service.seed_default_content()
    if created:
        click.echo(f'Seeded {created} categories with their tasks.')
    else:
        click.echo('Content already present; nothing seeded.')


@click.command('cleanup-notifications')
@with_appcontext
def cleanup_notifications_command() -> None:
    """Delete notifications older than the retention period."""
    deleted = notification_service.cleanup_expired_notifications()
    click.echo(f'Deleted {deleted} notification(s).')


@click.command('reset-progress')
@click.option('--email', default=None, help='Only reset this user')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@with_appcontext
def reset_progress_command(email, yes) -> None:
    """Clear completed tasks and cached progress."""
    query = User.query
    if email:
        query = query.filter_by(email=email.strip().lower())
    users = query.all()
    if not users:
        raise click.ClickException('No matching users.')

    if not yes:
        click.confirm(f'Reset progress for {len(users)} user(s)?', abort=True)

    for user in users:
        progress_service.reset_progress(user)
    click.echo(f'Reset progress for {len(users)} user(s).')
