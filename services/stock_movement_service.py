"""
Stock movement recording
Quantities may be entered in any unit; they are converted to the item's base
unit before the movement is stored.
"""
from collections import namedtuple
import logging
import math

from app import db
from models import Item, StockMovement
from models.stock import MOVEMENT_TYPES
from models.uom import UOMConversionLog
from services.uom_converter import UOMConversionError, find_path
from services.uom_service import UOMService

logger = logging.getLogger(__name__)

MovementPreview = namedtuple('MovementPreview', ['entered', 'base', 'uom_id', 'base_uom_id', 'invalid'])


class StockMovementError(Exception):
    pass


class NoConversionToBaseUnit(StockMovementError):
    def __init__(self, item, uom_id):
        self.item = item
        self.uom_id = uom_id
        super().__init__(f'No conversion available from the entered unit to the base unit of {item.code}; '
                         f'add a conversion factor in UoM settings')


class StockMovementService:

    @staticmethod
    def _get_item(company_id, item_id):
        item = Item.query.filter_by(id=item_id, company_id=company_id).first()
        if not item:
            raise StockMovementError('Item not found')
        return item

    @staticmethod
    def to_base_quantity(item, quantity, uom_id, graph=None):
        """Return (base_quantity, factor) or raise NoConversionToBaseUnit"""
        uom_id = uom_id or item.base_unit_id
        if graph is None:
            graph = UOMService.load_graph(item.company_id)
        try:
            _, factor = find_path(uom_id, item.base_unit_id, graph)
        except UOMConversionError:
            raise NoConversionToBaseUnit(item, uom_id)
        return quantity * factor, factor

    @staticmethod
    def preview_movement(company_id, item_id, quantity, uom_id=None):
        """Preview of the base quantity while the operator is typing"""
        item = StockMovementService._get_item(company_id, item_id)
        uom_id = uom_id or item.base_unit_id
        try:
            base, _ = StockMovementService.to_base_quantity(item, quantity, uom_id)
        except NoConversionToBaseUnit:
            return MovementPreview(quantity, quantity, uom_id, item.base_unit_id, True)
        return MovementPreview(quantity, base, uom_id, item.base_unit_id, False)

    @staticmethod
    def record_movement(company_id, item_id, movement_type, quantity, uom_id=None, user_id=None,
                        reference=None, notes=None):
        if movement_type not in MOVEMENT_TYPES:
            raise StockMovementError(f'Unknown movement type: {movement_type}')
        try:
            quantity = float(quantity)
        except (TypeError, ValueError):
            raise StockMovementError('Quantity must be a number')
        if not math.isfinite(quantity) or quantity <= 0:
            raise StockMovementError('Quantity must be greater than 0')

        item = StockMovementService._get_item(company_id, item_id)
        uom_id = uom_id or item.base_unit_id

        try:
            quantity_base, factor = StockMovementService.to_base_quantity(item, quantity, uom_id)
        except NoConversionToBaseUnit:
            logger.warning(f"Rejected {movement_type} of {quantity} for item {item.code}: "
                           f"no conversion from unit {uom_id} to base unit {item.base_unit_id}")
            raise

        movement = StockMovement(
            company_id=company_id,
            item_id=item.id,
            movement_type=movement_type,
            uom_id=uom_id,
            quantity=quantity,
            quantity_base=quantity_base,
            reference=reference,
            notes=notes,
            user_id=user_id,
        )
        try:
            db.session.add(movement)
            db.session.flush()

            if uom_id != item.base_unit_id:
                db.session.add(UOMConversionLog(
                    company_id=company_id,
                    item_id=item.id,
                    transaction_type='stock_movement',
                    transaction_id=str(movement.id),
                    original_quantity=quantity,
                    original_unit_id=uom_id,
                    converted_quantity=quantity_base,
                    converted_unit_id=item.base_unit_id,
                    conversion_factor=factor,
                    created_by=user_id,
                ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Recorded {movement_type} of {quantity} (base {quantity_base}) for item {item.code}")
        return movement
