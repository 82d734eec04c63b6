"""
UOM settings service
Loads the tenant's visible units and conversion factors, builds a fresh
conversion graph per call, and handles the settings screen write paths.
"""
from collections import namedtuple
import logging

from app import db
from models import Item, StockMovement
from models.uom import UnitOfMeasure, UOMConversion, UOMConversionLog
from services.uom_converter import (
    UNIT_FAMILIES, NoConversionPath,
    build_graph, check_quantity, find_path, normalize_code, validate_factor,
)

logger = logging.getLogger(__name__)

QuickTestResult = namedtuple('QuickTestResult', [
    'quantity', 'from_unit', 'to_unit', 'converted_quantity', 'factor', 'path',
])


class UOMServiceError(Exception):
    pass


class DuplicateUnitCode(UOMServiceError):
    pass


class UnitInUse(UOMServiceError):
    pass


class UOMService:
    """Database-facing side of unit conversion for one tenant at a time"""

    @staticmethod
    def visible_units(company_id):
        return UnitOfMeasure.visible_to(company_id)\
                            .order_by(UnitOfMeasure.family, UnitOfMeasure.code).all()

    @staticmethod
    def visible_conversions(company_id):
        return UOMConversion.visible_to(company_id).all()

    @staticmethod
    def load_graph(company_id):
        """Build a new conversion graph from the current snapshot; never cached"""
        records = [c.to_record() for c in UOMService.visible_conversions(company_id)]
        units = [u.to_ref() for u in UOMService.visible_units(company_id)]
        return build_graph(records, units)

    @staticmethod
    def describe_conversion(from_unit, to_unit, factor=None):
        """Preview text for the conversion form, e.g. '1 BOX × 12 = EACH'"""
        from_code = from_unit.code if from_unit else '?'
        to_code = to_unit.code if to_unit else '?'
        if not factor:
            return f'1 {from_code} × ? = {to_code}'
        return f'1 {from_code} × {factor:g} = {to_code}'

    @staticmethod
    def resolve_unit_ref(graph, ref):
        """
        Map a unit reference from a form, JSON body or command line to a unit id.

        Strings are matched against unit codes first, so a unit coded "10" is
        reachable by its code; an all-digit string that is not a code is taken
        as an id.
        """
        if isinstance(ref, str):
            ref = ref.strip()
            unit_id = graph.resolve(ref)
            if unit_id != ref:
                return unit_id
            if ref.isdigit():
                return int(ref)
        return ref

    @staticmethod
    def quick_test(company_id, quantity, from_unit, to_unit, user_id=None, graph=None,
                   transaction_type='quick_test'):
        """
        Ad-hoc conversion from the settings screen.

        from_unit / to_unit may be unit ids or codes. Returns a
        QuickTestResult, or None when the units cannot be converted or are
        not visible to the company. Raises InvalidQuantity when quantity is
        not a finite number. Successful conversions are written to the
        audit log.
        """
        quantity = check_quantity(quantity)

        if graph is None:
            graph = UOMService.load_graph(company_id)
        from_unit = UOMService.resolve_unit_ref(graph, from_unit)
        to_unit = UOMService.resolve_unit_ref(graph, to_unit)

        try:
            path, factor = find_path(from_unit, to_unit, graph)
        except NoConversionPath as e:
            logger.info(f"Quick test for company {company_id}: {e}")
            return None

        source, target = path[0], path[-1]
        if len(path) == 1:
            # same unit, or two units sharing a code
            target = graph.resolve(to_unit)
            converted = quantity
        else:
            converted = quantity * factor

        unit_ids = [u for u in set(path) | {target} if isinstance(u, int)]
        units = {u.id: u for u in UnitOfMeasure.visible_to(company_id).filter(UnitOfMeasure.id.in_(unit_ids)).all()}
        from_obj = units.get(source)
        to_obj = units.get(target)
        if not from_obj or not to_obj:
            logger.info(f"Quick test for company {company_id}: unit {from_unit} or {to_unit} not visible")
            return None
        path_codes = [units[p].code if p in units else str(p) for p in path]

        log_entry = UOMConversionLog(
            company_id=company_id,
            transaction_type=transaction_type,
            original_quantity=quantity,
            original_unit_id=from_obj.id,
            converted_quantity=converted,
            converted_unit_id=to_obj.id,
            conversion_factor=factor,
            created_by=user_id,
        )
        db.session.add(log_entry)
        db.session.commit()

        return QuickTestResult(quantity, from_obj, to_obj, converted, factor, path_codes)

    @staticmethod
    def create_unit(company_id, code, name, family='other', description=None):
        code = normalize_code(code)
        if not code or not (name or '').strip():
            raise UOMServiceError('Code and Name are required')
        if family not in UNIT_FAMILIES:
            family = 'other'
        if UnitOfMeasure.find_by_code(company_id, code):
            raise DuplicateUnitCode(f'Unit code "{code}" already exists')

        unit = UnitOfMeasure(code=code, name=name.strip(), family=family,
                             company_id=company_id, description=description)
        db.session.add(unit)
        db.session.commit()
        logger.info(f"Created unit {code} for company {company_id}")
        return unit

    @staticmethod
    def delete_unit(company_id, unit_id):
        unit = UnitOfMeasure.query.filter_by(id=unit_id, company_id=company_id).first()
        if not unit:
            raise UOMServiceError('Only units created by your company can be deleted')

        in_conversions = UOMConversion.query.filter(
            (UOMConversion.from_unit_id == unit.id) | (UOMConversion.to_unit_id == unit.id)
        ).first()
        in_items = Item.query.filter_by(base_unit_id=unit.id).first()
        in_movements = StockMovement.query.filter_by(uom_id=unit.id).first()
        if in_conversions or in_items or in_movements:
            raise UnitInUse(f'Unit "{unit.code}" is used by conversions, items or stock movements')

        db.session.delete(unit)
        db.session.commit()
        logger.info(f"Deleted unit {unit.code} for company {company_id}")

    @staticmethod
    def save_tenant_conversion(company_id, from_unit_id, to_unit_id, factor, notes=None):
        """
        Create or update the tenant's factor for an ordered unit pair.

        Returns (conversion, created, cross_family). cross_family is a warning
        only; conversions across families are allowed.
        """
        if not from_unit_id or not to_unit_id:
            raise UOMServiceError('Pick both From and To units')
        if from_unit_id == to_unit_id:
            raise UOMServiceError('From and To must be different')
        factor = validate_factor(factor)

        visible = UnitOfMeasure.visible_to(company_id)
        from_unit = visible.filter(UnitOfMeasure.id == from_unit_id).first()
        to_unit = visible.filter(UnitOfMeasure.id == to_unit_id).first()
        if not from_unit or not to_unit:
            raise UOMServiceError('Unknown unit')

        cross_family = from_unit.family != to_unit.family
        if cross_family:
            logger.warning(f"Company {company_id} converting across families: "
                           f"{from_unit.code} ({from_unit.family}) -> {to_unit.code} ({to_unit.family})")

        conversion = UOMConversion.query.filter_by(
            from_unit_id=from_unit_id, to_unit_id=to_unit_id, company_id=company_id
        ).first()
        created = conversion is None
        if created:
            conversion = UOMConversion(from_unit_id=from_unit_id, to_unit_id=to_unit_id, company_id=company_id)
            db.session.add(conversion)
        conversion.factor = factor
        conversion.notes = notes

        db.session.commit()
        logger.info(f"Saved conversion 1 {from_unit.code} = {factor:g} {to_unit.code} for company {company_id}")
        return conversion, created, cross_family

    @staticmethod
    def delete_tenant_conversion(company_id, conversion_id):
        conversion = db.session.get(UOMConversion, conversion_id)
        if not conversion or conversion.company_id not in (None, company_id):
            raise UOMServiceError('Conversion not found')
        if conversion.company_id is None:
            raise UOMServiceError('Global conversions cannot be deleted')

        db.session.delete(conversion)
        db.session.commit()
        logger.info(f"Deleted conversion {conversion_id} for company {company_id}")


