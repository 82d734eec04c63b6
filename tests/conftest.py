# tests/conftest.py
import pytest

from app import create_app, db as _db


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed(db):
    """
    Two tenants sharing the global units BOX, DOZEN, EACH, KG and the global
    conversions 1 BOX = 2 DOZEN, 1 DOZEN = 12 EACH.
    """
    from models import Company, User, Item
    from models.uom import UnitOfMeasure, UOMConversion

    acme = Company(name='Acme', code='ACME', is_default=True)
    globex = Company(name='Globex', code='GLOBEX')
    db.session.add_all([acme, globex])
    db.session.flush()

    units = {}
    for code, name, family in [('BOX', 'Box', 'count'), ('DOZEN', 'Dozen', 'count'),
                               ('EACH', 'Each', 'count'), ('KG', 'Kilogram', 'mass')]:
        units[code] = UnitOfMeasure(code=code, name=name, family=family)
        db.session.add(units[code])
    db.session.flush()

    db.session.add_all([
        UOMConversion(from_unit_id=units['BOX'].id, to_unit_id=units['DOZEN'].id, factor=2),
        UOMConversion(from_unit_id=units['DOZEN'].id, to_unit_id=units['EACH'].id, factor=12),
    ])

    admin = User(username='admin', email='admin@acme.test', role='admin', company_id=acme.id)
    admin.set_password('secret')
    staff = User(username='staff', email='staff@acme.test', role='staff', company_id=acme.id)
    staff.set_password('secret')
    globex_admin = User(username='globex', email='admin@globex.test', role='admin', company_id=globex.id)
    globex_admin.set_password('secret')
    db.session.add_all([admin, staff, globex_admin])

    widget = Item(company_id=acme.id, code='W-1', name='Widget', base_unit_id=units['EACH'].id)
    db.session.add(widget)
    db.session.commit()

    return {
        'acme': acme,
        'globex': globex,
        'units': units,
        'admin': admin,
        'staff': staff,
        'globex_admin': globex_admin,
        'widget': widget,
    }


@pytest.fixture
def login(client):
    def _login(username, password='secret'):
        return client.post('/auth/login', data={'username': username, 'password': password})
    return _login
