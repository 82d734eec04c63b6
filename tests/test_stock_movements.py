import pytest

from models import StockMovement
from models.uom import UOMConversionLog
from services.stock_movement_service import NoConversionToBaseUnit, StockMovementError, StockMovementService


def test_record_movement_converts_to_base_unit(seed):
    acme, units, widget = seed['acme'], seed['units'], seed['widget']
    movement = StockMovementService.record_movement(acme.id, widget.id, 'receive', 3, uom_id=units['BOX'].id,
                                                    user_id=seed['admin'].id, reference='PO-2026-0001')

    assert movement.quantity == 3
    assert movement.quantity_base == 72
    assert movement.uom_id == units['BOX'].id

    log = UOMConversionLog.query.one()
    assert log.transaction_type == 'stock_movement'
    assert log.transaction_id == str(movement.id)
    assert log.item_id == widget.id
    assert log.conversion_factor == 24


def test_record_movement_in_base_unit(seed):
    acme, widget = seed['acme'], seed['widget']
    movement = StockMovementService.record_movement(acme.id, widget.id, 'issue', 5)

    assert movement.uom_id == widget.base_unit_id
    assert movement.quantity_base == 5
    assert movement.signed_base_quantity == -5
    assert UOMConversionLog.query.count() == 0


def test_record_movement_without_path_is_rejected(seed):
    acme, units, widget = seed['acme'], seed['units'], seed['widget']
    with pytest.raises(NoConversionToBaseUnit):
        StockMovementService.record_movement(acme.id, widget.id, 'receive', 1, uom_id=units['KG'].id)
    assert StockMovement.query.count() == 0


@pytest.mark.parametrize('quantity', [0, -1, 'x', float('nan')])
def test_record_movement_rejects_bad_quantity(seed, quantity):
    acme, widget = seed['acme'], seed['widget']
    with pytest.raises(StockMovementError):
        StockMovementService.record_movement(acme.id, widget.id, 'receive', quantity)


def test_record_movement_rejects_unknown_type_and_foreign_item(seed):
    acme, globex, widget = seed['acme'], seed['globex'], seed['widget']
    with pytest.raises(StockMovementError):
        StockMovementService.record_movement(acme.id, widget.id, 'teleport', 1)
    with pytest.raises(StockMovementError, match='Item not found'):
        StockMovementService.record_movement(globex.id, widget.id, 'receive', 1)


def test_preview_movement(seed):
    acme, units, widget = seed['acme'], seed['units'], seed['widget']

    preview = StockMovementService.preview_movement(acme.id, widget.id, 2, units['DOZEN'].id)
    assert preview.base == 24
    assert not preview.invalid

    preview = StockMovementService.preview_movement(acme.id, widget.id, 2, units['KG'].id)
    assert preview.invalid
    assert preview.base == 2
