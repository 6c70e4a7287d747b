"""
Flask CLI commands for catalog and account management.

Commands:
- flask init-db: Create all tables
- flask import-products FILE: Import an Excel product sheet
- flask create-user: Create a staff or dealer account
- flask set-role: Change a user's pricing role
"""

import click
import re
from flask import current_app
from dealerdesk.database import create_all, get_session, get_session_factory
from dealerdesk.exceptions import ValidationError
from dealerdesk.models import AppUser, Role


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create database tables."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('import-products')
    @click.argument('file', type=click.Path(exists=True, dir_okay=False))
    def import_products(file):
        """Import products from an Excel workbook."""
        from dealerdesk.services.import_service import get_or_create_unit, parse_product_sheet, run_import

        try:
            parsed = parse_product_sheet(file)
        except ValidationError as e:
            click.echo(click.style(f'Could not import {file}: {e.message}', fg='red'))
            return

        click.echo(f'{len(parsed.rows)} valid rows, {parsed.invalid_count} skipped')

        session = get_session()
        try:
            unit_id = get_or_create_unit(session, current_app.config['DEFAULT_UNIT_NAME']).id
            session.commit()
        except Exception:
            session.rollback()
            raise

        def report(progress):
            click.echo(f'  {progress.processed}/{progress.total} processed')

        summary = run_import(
            get_session_factory(),
            parsed.rows,
            unit_id=unit_id,
            location=current_app.config['STOCK_LOCATION'],
            batch_size=current_app.config['IMPORT_BATCH_SIZE'],
            max_workers=current_app.config['IMPORT_MAX_WORKERS'],
            on_progress=report,
        )

        click.echo(click.style('\nImport finished', fg='green', bold=True))
        click.echo(f'   New products:   {len(summary.new_items)}')
        click.echo(f'   Prices updated: {len(summary.prices_updated)}')
        click.echo(f'   Stock updated:  {len(summary.stock_updated)}')
        if summary.errors:
            click.echo(click.style(f'   Errors:         {summary.errors}', fg='red'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--role', type=click.Choice([role.value for role in Role]), default=None,
                  help='Pricing role (omit for no tier)')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='User password')
    def create_user(email, role, password):
        """Create a user account."""

        # Validate email format
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            click.echo(click.style('Invalid email. Use the format user@example.com', fg='red'))
            return

        if len(password) < 6:
            click.echo(click.style('Password must be at least 6 characters long.', fg='red'))
            return

        session = get_session()
        if session.query(AppUser).filter_by(email=email).first():
            click.echo(click.style(f'A user with email {email} already exists', fg='red'))
            return

        try:
            user = AppUser(email=email, role=role)
            user.set_password(password)

            session.add(user)
            session.commit()

            click.echo(click.style('\nUser created', fg='green', bold=True))
            click.echo(f'   Email: {email}')
            click.echo(f'   Role:  {role or "-"}')
            click.echo(f'   ID:    {user.id}')

        except Exception as e:
            session.rollback()
            click.echo(click.style(f'Error creating user: {str(e)}', fg='red'))

    @app.cli.command('set-role')
    @click.option('--email', required=True, help='User email address')
    @click.option('--role', required=True, type=click.Choice([role.value for role in Role]), help='New pricing role')
    def set_role(email, role):
        """Assign or change a user's pricing role."""
        from dealerdesk.services.user_service import assign_role

        session = get_session()
        user = session.query(AppUser).filter_by(email=email).first()
        if not user:
            click.echo(click.style(f'No user with email {email}', fg='red'))
            return

        user = assign_role(session, user.id, role)
        click.echo(click.style(f'{user.email} is now {user.role}', fg='green'))
