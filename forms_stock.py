from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, SelectField, FloatField, SubmitField
from wtforms.validators import DataRequired, NumberRange, Optional, Length
from models import Item
from models.uom import UnitOfMeasure

class StockMovementForm(FlaskForm):
    """Form for recording a stock movement in any unit"""
    item = SelectField('Item', validators=[DataRequired()], coerce=int)
    movement_type = SelectField('Movement Type', validators=[DataRequired()],
                                choices=[('receive', 'Receive'), ('issue', 'Issue'), ('adjust', 'Adjustment')])
    quantity = FloatField('Quantity', validators=[DataRequired(), NumberRange(min=0.000001)],
                          render_kw={"step": "any"})
    uom = SelectField('Unit (defaults to item base unit)', coerce=int, validators=[Optional()])
    reference = StringField('Reference', validators=[Optional(), Length(max=100)],
                            render_kw={"placeholder": "e.g., PO-2026-0001"})
    notes = TextAreaField('Notes', validators=[Optional()], render_kw={"rows": 2})
    submit = SubmitField('Record Movement')

    def __init__(self, *args, company_id=None, **kwargs):
        super(StockMovementForm, self).__init__(*args, **kwargs)

        # Populate item choices
        items = Item.query.filter_by(company_id=company_id).order_by(Item.name).all()
        self.item.choices = [(i.id, f"{i.name} ({i.code})") for i in items]

        # Populate unit choices; 0 means "item base unit"
        self.uom.choices = [(0, 'Base unit')] + UnitOfMeasure.get_choices(company_id)
