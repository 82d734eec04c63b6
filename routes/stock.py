from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify
from flask_login import login_required, current_user
from models import StockMovement
from forms_stock import StockMovementForm
from services.stock_movement_service import StockMovementService, StockMovementError
import logging

logger = logging.getLogger(__name__)

stock_bp = Blueprint('stock', __name__)

@stock_bp.route('/movements')
@login_required
def movements_list():
    movements = StockMovement.query.filter_by(company_id=current_user.company_id)\
                                   .order_by(StockMovement.created_at.desc()).limit(200).all()
    return render_template('stock/movements_list.html', movements=movements)

@stock_bp.route('/movements/add', methods=['GET', 'POST'])
@login_required
def add_movement():
    """Record a stock movement; the quantity is converted to the item's base unit"""
    form = StockMovementForm(company_id=current_user.company_id)

    if form.validate_on_submit():
        try:
            movement = StockMovementService.record_movement(
                current_user.company_id,
                form.item.data,
                form.movement_type.data,
                form.quantity.data,
                uom_id=form.uom.data or None,
                user_id=current_user.id,
                reference=form.reference.data,
                notes=form.notes.data
            )
            flash(f'Movement recorded: {movement.quantity:g} entered = '
                  f'{movement.quantity_base:g} {movement.item.base_unit.code}', 'success')
            return redirect(url_for('stock.movements_list'))
        except StockMovementError as e:
            flash(str(e), 'error')

    return render_template('stock/movement_form.html', form=form)

@stock_bp.route('/api/preview', methods=['POST'])
@login_required
def api_preview():
    """Base-unit preview for the movement form"""
    data = request.get_json(silent=True) or {}
    try:
        item_id = int(data.get('item_id'))
        quantity = float(data.get('quantity', 0))
        uom_id = int(data['uom_id']) if data.get('uom_id') else None
    except (TypeError, ValueError):
        return jsonify({'error': 'item_id, quantity and uom_id must be numbers'}), 400

    try:
        preview = StockMovementService.preview_movement(current_user.company_id, item_id, quantity, uom_id)
    except StockMovementError as e:
        return jsonify({'error': str(e)}), 404

    return jsonify(preview._asdict())
