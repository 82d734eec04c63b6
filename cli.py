import logging

import click
from flask.cli import with_appcontext
from app import db
from models import User, Company

logger = logging.getLogger(__name__)

@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create tables and seed the default company, units and conversions."""
    db.create_all()

    from models.uom import UnitOfMeasure, UOMConversion

    Company.create_default_company()
    units = UnitOfMeasure.ensure_default_units()
    conversions = UOMConversion.ensure_default_conversions()
    logger.info(f"Seeded {units or 0} units and {conversions or 0} global conversions")

    click.echo('Initialized the database with default data.')

@click.command('create-admin')
@click.option('--username', prompt=True, help='Admin username')
@click.option('--email', prompt=True, help='Admin email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
@click.option('--company-code', default=None, help='Company the admin belongs to (default company if omitted)')
@with_appcontext
def create_admin_command(username, email, password, company_code):
    """Create an admin user."""
    if User.query.filter_by(username=username).first():
        click.echo(f'User {username} already exists.')
        return

    if company_code:
        company = Company.query.filter_by(code=company_code).first()
        if not company:
            raise click.ClickException(f'Company {company_code} not found.')
    else:
        company = Company.create_default_company()

    admin = User(
        username=username,
        email=email,
        role='admin',
        company_id=company.id
    )
    admin.set_password(password)

    db.session.add(admin)
    db.session.commit()
    click.echo(f'Admin user {username} created successfully.')

@click.command('uom-convert')
@click.argument('quantity', type=float)
@click.argument('from_unit')
@click.argument('to_unit')
@click.option('--company-code', default=None, help='Tenant whose conversion factors apply (default company if omitted)')
@with_appcontext
def uom_convert_command(quantity, from_unit, to_unit, company_code):
    """Convert QUANTITY from FROM_UNIT to TO_UNIT (unit codes)."""
    from services.uom_converter import InvalidQuantity
    from services.uom_service import UOMService

    company = Company.query.filter_by(code=company_code).first() if company_code else Company.get_default_company()
    if not company:
        raise click.ClickException('Company not found.')

    try:
        result = UOMService.quick_test(company.id, quantity, from_unit, to_unit, transaction_type='cli')
    except InvalidQuantity as e:
        raise click.BadParameter(str(e), param_hint='QUANTITY')
    if result is None:
        click.echo(f'No conversion path between {from_unit.upper()} and {to_unit.upper()}.', err=True)
        raise SystemExit(1)

    click.echo(f'{result.quantity:g} {result.from_unit.code} = {result.converted_quantity:g} {result.to_unit.code}')
    click.echo(f'Path: {" -> ".join(result.path)} (factor {result.factor:g})')
