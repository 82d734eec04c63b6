from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, SelectField, FloatField, SubmitField, ValidationError
from wtforms.validators import DataRequired, InputRequired, NumberRange, Optional, Length
from models.uom import UnitOfMeasure

class UnitOfMeasureForm(FlaskForm):
    """Form for creating units of measure"""
    code = StringField('Code', validators=[DataRequired(), Length(max=20)],
                       render_kw={"placeholder": "e.g., KG, EACH, BOX"})
    name = StringField('Unit Name', validators=[DataRequired(), Length(max=50)],
                       render_kw={"placeholder": "e.g., Kilogram, Each, Box"})
    family = SelectField('Family', validators=[DataRequired()],
                         choices=[
                             ('count', 'Count (EACH, DOZEN, BOX)'),
                             ('mass', 'Mass (KG, G, TON)'),
                             ('volume', 'Volume (L, ML)'),
                             ('length', 'Length (M, CM, FT)'),
                             ('area', 'Area (SQM, SQFT)'),
                             ('time', 'Time (HR, MIN)'),
                             ('other', 'Other')
                         ], default='count')
    description = TextAreaField('Description', validators=[Optional()],
                                render_kw={"rows": 3, "placeholder": "Optional description"})
    submit = SubmitField('Save Unit')

    def __init__(self, *args, company_id=None, **kwargs):
        super(UnitOfMeasureForm, self).__init__(*args, **kwargs)
        self.company_id = company_id

    def validate_code(self, field):
        if self.company_id is not None and UnitOfMeasure.find_by_code(self.company_id, field.data):
            raise ValidationError(f'Unit code "{field.data.strip().upper()}" already exists')

class UOMConversionForm(FlaskForm):
    """Form for tenant-specific UOM conversions"""
    from_unit = SelectField('From Unit', validators=[DataRequired()], coerce=int)
    to_unit = SelectField('To Unit', validators=[DataRequired()], coerce=int)
    factor = FloatField('Conversion Factor', validators=[DataRequired(), NumberRange(min=0.000001)],
                        render_kw={"step": "0.000001", "placeholder": "e.g., 12 (1 DOZEN × 12 = EACH)"})
    notes = TextAreaField('Notes', validators=[Optional()],
                          render_kw={"rows": 2, "placeholder": "e.g., Supplier packs 10 per box"})
    submit = SubmitField('Save Conversion')

    def __init__(self, *args, company_id=None, **kwargs):
        super(UOMConversionForm, self).__init__(*args, **kwargs)
        unit_choices = UnitOfMeasure.get_choices(company_id)
        self.from_unit.choices = unit_choices
        self.to_unit.choices = unit_choices

    def validate_to_unit(self, field):
        if field.data == self.from_unit.data:
            raise ValidationError('From and To must be different')

class UOMQuickTestForm(FlaskForm):
    """Form for quick UOM conversion tests"""
    quantity = FloatField('Quantity', validators=[InputRequired()], render_kw={"step": "any"})
    from_unit = SelectField('From Unit', validators=[DataRequired()], coerce=int)
    to_unit = SelectField('To Unit', validators=[DataRequired()], coerce=int)
    calculate = SubmitField('Test')

    def __init__(self, *args, company_id=None, **kwargs):
        super(UOMQuickTestForm, self).__init__(*args, **kwargs)
        unit_choices = UnitOfMeasure.get_choices(company_id)
        self.from_unit.choices = unit_choices
        self.to_unit.choices = unit_choices
