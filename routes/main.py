from flask import Blueprint, redirect, url_for
from flask_login import login_required

main_bp = Blueprint('main', __name__)

@main_bp.route('/')
@login_required
def dashboard():
    return redirect(url_for('uom.dashboard'))
