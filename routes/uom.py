from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from app import db
from models.uom import UnitOfMeasure, UOMConversionLog
from forms_uom import UnitOfMeasureForm, UOMConversionForm, UOMQuickTestForm
from services.uom_converter import InvalidFactor, InvalidQuantity, can_convert
from services.uom_service import UOMService, UOMServiceError
import logging

logger = logging.getLogger(__name__)

uom_bp = Blueprint('uom', __name__)

def _unit_ref(value):
    """Unit references from JSON/query strings: ints are ids, strings are resolved by UOMService.resolve_unit_ref"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    return str(value).strip() or None

INVALID_QUANTITY_MESSAGE = 'Enter a number to test'

def _no_path_message(from_code, to_code):
    return f'No conversion available between {from_code} and {to_code}; add a conversion factor.'

@uom_bp.route('/dashboard')
@login_required
def dashboard():
    """UOM management dashboard"""
    company_id = current_user.company_id
    conversions = UOMService.visible_conversions(company_id)

    # Statistics
    total_units = UnitOfMeasure.visible_to(company_id).count()
    global_conversions = sum(1 for c in conversions if c.company_id is None)
    tenant_conversions = len(conversions) - global_conversions

    # Unit families
    unit_families = db.session.query(UnitOfMeasure.family, db.func.count(UnitOfMeasure.id))\
                              .filter((UnitOfMeasure.company_id.is_(None)) | (UnitOfMeasure.company_id == company_id))\
                              .group_by(UnitOfMeasure.family).all()

    recent_logs = UOMConversionLog.query.filter_by(company_id=company_id)\
                                        .order_by(UOMConversionLog.created_at.desc()).limit(10).all()

    return render_template('uom/dashboard.html',
                           total_units=total_units,
                           global_conversions=global_conversions,
                           tenant_conversions=tenant_conversions,
                           unit_families=unit_families,
                           recent_logs=recent_logs)

@uom_bp.route('/units')
@login_required
def units_list():
    """List all units of measure visible to the current company"""
    units = UOMService.visible_units(current_user.company_id)
    return render_template('uom/units_list.html', units=units)

@uom_bp.route('/units/add', methods=['GET', 'POST'])
@login_required
def add_unit():
    """Add new unit of measure"""
    if not current_user.is_admin():
        flash('Only administrators can manage units', 'danger')
        return redirect(url_for('uom.units_list'))

    form = UnitOfMeasureForm(company_id=current_user.company_id)

    if form.validate_on_submit():
        try:
            unit = UOMService.create_unit(current_user.company_id, form.code.data, form.name.data,
                                          form.family.data, form.description.data)
            flash(f'Unit "{unit.code}" created successfully!', 'success')
            return redirect(url_for('uom.units_list'))
        except UOMServiceError as e:
            flash(str(e), 'error')
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error creating unit: {e}")
            flash(f'Error creating unit: {str(e)}', 'error')

    return render_template('uom/unit_form.html', form=form, title='Add Unit of Measure')

@uom_bp.route('/units/delete/<int:unit_id>', methods=['POST'])
@login_required
def delete_unit(unit_id):
    if not current_user.is_admin():
        flash('Only administrators can manage units', 'danger')
        return redirect(url_for('uom.units_list'))

    try:
        UOMService.delete_unit(current_user.company_id, unit_id)
        flash('Unit deleted', 'success')
    except UOMServiceError as e:
        flash(str(e), 'error')

    return redirect(url_for('uom.units_list'))

@uom_bp.route('/conversions')
@login_required
def conversions_list():
    """List global and company-specific conversions"""
    conversions = UOMService.visible_conversions(current_user.company_id)
    return render_template('uom/conversions_list.html', conversions=conversions)

@uom_bp.route('/conversions/add', methods=['GET', 'POST'])
@login_required
def add_conversion():
    """Add or update a company-specific UOM conversion"""
    if not current_user.is_admin():
        flash('Only administrators can manage conversions', 'danger')
        return redirect(url_for('uom.conversions_list'))

    form = UOMConversionForm(company_id=current_user.company_id)

    if form.validate_on_submit():
        try:
            _, created, cross_family = UOMService.save_tenant_conversion(
                current_user.company_id,
                form.from_unit.data,
                form.to_unit.data,
                form.factor.data,
                form.notes.data
            )
            if cross_family:
                flash('Warning: converting across different unit families', 'warning')
            flash('Conversion saved' if created else 'Conversion updated', 'success')
            return redirect(url_for('uom.conversions_list'))
        except (UOMServiceError, InvalidFactor) as e:
            flash(str(e), 'error')
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error saving conversion: {e}")
            flash(f'Error saving conversion: {str(e)}', 'error')

    preview = None
    if form.from_unit.data and form.to_unit.data:
        preview = UOMService.describe_conversion(db.session.get(UnitOfMeasure, form.from_unit.data),
                                                 db.session.get(UnitOfMeasure, form.to_unit.data),
                                                 form.factor.data)

    return render_template('uom/conversion_form.html', form=form, title='Add UOM Conversion', preview=preview)

@uom_bp.route('/conversions/delete/<int:conversion_id>', methods=['POST'])
@login_required
def delete_conversion(conversion_id):
    if not current_user.is_admin():
        flash('Only administrators can manage conversions', 'danger')
        return redirect(url_for('uom.conversions_list'))

    try:
        UOMService.delete_tenant_conversion(current_user.company_id, conversion_id)
        flash('Conversion deleted', 'success')
    except UOMServiceError as e:
        flash(str(e), 'error')

    return redirect(url_for('uom.conversions_list'))

@uom_bp.route('/quick-test', methods=['GET', 'POST'])
@login_required
def quick_test():
    """Ad-hoc conversion against the current company's factors"""
    form = UOMQuickTestForm(company_id=current_user.company_id)
    result = None

    if form.validate_on_submit():
        try:
            result = UOMService.quick_test(current_user.company_id, form.quantity.data,
                                           form.from_unit.data, form.to_unit.data,
                                           user_id=current_user.id)
        except InvalidQuantity:
            flash(INVALID_QUANTITY_MESSAGE, 'error')
            return render_template('uom/quick_test.html', form=form, result=None)
        if result is None:
            visible = UnitOfMeasure.visible_to(current_user.company_id)
            from_unit = visible.filter(UnitOfMeasure.id == form.from_unit.data).first()
            to_unit = visible.filter(UnitOfMeasure.id == form.to_unit.data).first()
            flash('No path found. ' + _no_path_message(from_unit.code if from_unit else form.from_unit.data,
                                                        to_unit.code if to_unit else form.to_unit.data), 'error')

    return render_template('uom/quick_test.html', form=form, result=result)

@uom_bp.route('/api/convert', methods=['POST'])
@login_required
def api_convert():
    """API endpoint for quantity conversion; units may be given as ids or codes"""
    data = request.get_json(silent=True) or {}
    from_unit = _unit_ref(data.get('from_unit', data.get('from_unit_id')))
    to_unit = _unit_ref(data.get('to_unit', data.get('to_unit_id')))

    if from_unit is None or to_unit is None:
        return jsonify({'error': 'from_unit and to_unit are required'}), 400
    try:
        result = UOMService.quick_test(current_user.company_id, data.get('quantity', 0), from_unit, to_unit,
                                       user_id=current_user.id)
    except InvalidQuantity:
        return jsonify({'error': INVALID_QUANTITY_MESSAGE}), 400
    if result is None:
        return jsonify({'error': _no_path_message(from_unit, to_unit)}), 400

    return jsonify({
        'original_quantity': result.quantity,
        'converted_quantity': result.converted_quantity,
        'factor': result.factor,
        'path': result.path,
    })

@uom_bp.route('/api/can-convert')
@login_required
def api_can_convert():
    graph = UOMService.load_graph(current_user.company_id)
    from_unit = UOMService.resolve_unit_ref(graph, _unit_ref(request.args.get('from_unit')))
    to_unit = UOMService.resolve_unit_ref(graph, _unit_ref(request.args.get('to_unit')))
    return jsonify({'can_convert': can_convert(from_unit, to_unit, graph)})
