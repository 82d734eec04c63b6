from models import StockMovement
from models.uom import UnitOfMeasure, UOMConversion, UOMConversionLog
from services.uom_service import UOMService


def test_pages_require_login(client, seed):
    response = client.get('/uom/quick-test')
    assert response.status_code == 302
    assert '/auth/login' in response.headers['Location']


def test_login_and_dashboard(client, seed, login):
    response = login('admin')
    assert response.status_code == 302

    response = client.get('/uom/dashboard')
    assert response.status_code == 200
    assert b'Units &amp; Conversions' in response.data


def test_login_rejects_wrong_password(client, seed, login):
    response = login('admin', 'wrong')
    assert response.status_code == 200
    assert b'Invalid username or password' in response.data


def test_list_pages_render(client, seed, login):
    login('staff')
    for url in ('/uom/units', '/uom/conversions', '/uom/quick-test', '/stock/movements', '/stock/movements/add'):
        assert client.get(url).status_code == 200, url


def test_quick_test_page_shows_result(client, seed, login):
    units = seed['units']
    login('staff')
    response = client.post('/uom/quick-test', data={
        'quantity': '1', 'from_unit': units['BOX'].id, 'to_unit': units['EACH'].id,
    })
    assert response.status_code == 200
    assert b'1 BOX = 24 EACH' in response.data


def test_quick_test_page_no_path(client, seed, login):
    units = seed['units']
    login('staff')
    response = client.post('/uom/quick-test', data={
        'quantity': '1', 'from_unit': units['BOX'].id, 'to_unit': units['KG'].id,
    })
    assert b'No path found' in response.data


def test_api_convert_by_code_and_id(client, seed, login):
    units = seed['units']
    login('staff')

    response = client.post('/uom/api/convert', json={'quantity': 24, 'from_unit': 'each', 'to_unit': 'BOX'})
    assert response.status_code == 200
    assert abs(response.get_json()['converted_quantity'] - 1) < 1e-9
    assert response.get_json()['path'] == ['EACH', 'DOZEN', 'BOX']

    response = client.post('/uom/api/convert', json={
        'quantity': 1, 'from_unit_id': units['BOX'].id, 'to_unit_id': str(units['EACH'].id),
    })
    assert response.get_json()['converted_quantity'] == 24


def test_api_convert_errors(client, seed, login):
    login('staff')
    response = client.post('/uom/api/convert', json={'quantity': 1, 'from_unit': 'BOX', 'to_unit': 'KG'})
    assert response.status_code == 400
    assert 'add a conversion factor' in response.get_json()['error']

    response = client.post('/uom/api/convert', json={'quantity': 1, 'from_unit': 'BOX'})
    assert response.status_code == 400

    response = client.post('/uom/api/convert', json={'quantity': 'lots', 'from_unit': 'BOX', 'to_unit': 'EACH'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Enter a number to test'

    response = client.post('/uom/api/convert', json={'quantity': 'nan', 'from_unit': 'BOX', 'to_unit': 'EACH'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Enter a number to test'


def test_api_can_convert(client, seed, login):
    login('staff')
    assert client.get('/uom/api/can-convert?from_unit=BOX&to_unit=each').get_json() == {'can_convert': True}
    assert client.get('/uom/api/can-convert?from_unit=BOX&to_unit=KG').get_json() == {'can_convert': False}


def test_admin_adds_tenant_conversion(client, seed, login):
    units = seed['units']
    login('admin')
    response = client.post('/uom/conversions/add', data={
        'from_unit': units['BOX'].id, 'to_unit': units['EACH'].id, 'factor': '10', 'notes': '',
    })
    assert response.status_code == 302

    row = UOMConversion.query.filter_by(company_id=seed['acme'].id).one()
    assert row.factor == 10

    response = client.post('/uom/api/convert', json={'quantity': 1, 'from_unit': 'BOX', 'to_unit': 'EACH'})
    assert response.get_json()['converted_quantity'] == 10


def test_conversion_form_rejects_same_units(client, seed, login):
    units = seed['units']
    login('admin')
    response = client.post('/uom/conversions/add', data={
        'from_unit': units['BOX'].id, 'to_unit': units['BOX'].id, 'factor': '3',
    })
    assert response.status_code == 200
    assert b'From and To must be different' in response.data
    assert UOMConversion.query.filter_by(company_id=seed['acme'].id).count() == 0


def test_staff_cannot_manage_conversions(client, seed, login):
    units = seed['units']
    login('staff')
    response = client.post('/uom/conversions/add', data={
        'from_unit': units['BOX'].id, 'to_unit': units['EACH'].id, 'factor': '10',
    })
    assert response.status_code == 302
    assert UOMConversion.query.filter_by(company_id=seed['acme'].id).count() == 0


def test_delete_global_conversion_is_refused(client, seed, login):
    login('admin')
    global_row = UOMConversion.query.filter(UOMConversion.company_id.is_(None)).first()
    client.post(f'/uom/conversions/delete/{global_row.id}')
    assert UOMConversion.query.filter(UOMConversion.company_id.is_(None)).count() == 2


def test_add_unit_with_duplicate_code(client, seed, login):
    login('admin')
    response = client.post('/uom/units/add', data={'code': 'box', 'name': 'Box again', 'family': 'count'})
    assert response.status_code == 200
    assert b'already exists' in response.data

    response = client.post('/uom/units/add', data={'code': 'crate', 'name': 'Crate', 'family': 'count'})
    assert response.status_code == 302
    assert UnitOfMeasure.query.filter_by(code='CRATE', company_id=seed['acme'].id).count() == 1


def test_record_movement_form(client, seed, login):
    units, widget = seed['units'], seed['widget']
    login('staff')
    response = client.post('/stock/movements/add', data={
        'item': widget.id, 'movement_type': 'receive', 'quantity': '2', 'uom': units['DOZEN'].id,
        'reference': 'PO-1',
    })
    assert response.status_code == 302
    assert StockMovement.query.one().quantity_base == 24


def test_record_movement_form_without_path(client, seed, login):
    units, widget = seed['units'], seed['widget']
    login('staff')
    response = client.post('/stock/movements/add', data={
        'item': widget.id, 'movement_type': 'receive', 'quantity': '2', 'uom': units['KG'].id,
    })
    assert response.status_code == 200
    assert b'add a conversion factor' in response.data
    assert StockMovement.query.count() == 0


def test_api_preview(client, seed, login):
    units, widget = seed['units'], seed['widget']
    login('staff')
    response = client.post('/stock/api/preview', json={'item_id': widget.id, 'quantity': 1, 'uom_id': units['BOX'].id})
    assert response.status_code == 200
    assert response.get_json()['base'] == 24
    assert response.get_json()['invalid'] is False

    response = client.post('/stock/api/preview', json={'item_id': 9999, 'quantity': 1})
    assert response.status_code == 404


def test_quick_test_page_rejects_nan(client, seed, login):
    units = seed['units']
    login('staff')
    response = client.post('/uom/quick-test', data={
        'quantity': 'nan', 'from_unit': units['BOX'].id, 'to_unit': units['EACH'].id,
    })
    assert response.status_code == 200
    assert b'Enter a number to test' in response.data
    assert b'No path found' not in response.data


def test_api_convert_cannot_reach_another_tenants_unit(client, seed, login):
    secret = UOMService.create_unit(seed['globex'].id, 'SECRETPK', 'Secret pack', 'count')
    login('admin')

    response = client.post('/uom/api/convert', json={'quantity': 1, 'from_unit': secret.id, 'to_unit': secret.id})
    assert response.status_code == 400
    assert b'SECRETPK' not in response.data
    assert UOMConversionLog.query.filter_by(company_id=seed['acme'].id).count() == 0


def test_api_convert_addresses_numeric_unit_codes(client, seed, login):
    acme, units = seed['acme'], seed['units']
    ten = UOMService.create_unit(acme.id, '10', 'Ten pack', 'count')
    UOMService.save_tenant_conversion(acme.id, ten.id, units['EACH'].id, 10)
    login('staff')

    response = client.post('/uom/api/convert', json={'quantity': 2, 'from_unit': '10', 'to_unit': 'EACH'})
    assert response.status_code == 200
    assert response.get_json()['converted_quantity'] == 20
    assert response.get_json()['path'] == ['10', 'EACH']

    assert client.get('/uom/api/can-convert?from_unit=10&to_unit=BOX').get_json() == {'can_convert': True}
