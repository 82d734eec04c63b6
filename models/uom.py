from app import db
from datetime import datetime
from sqlalchemy import func, or_
from services.uom_converter import ConversionRecord, UnitRef, SCOPE_GLOBAL, SCOPE_TENANT, normalize_code


class UnitOfMeasure(db.Model):
    """Units of measure (KG, EACH, BOX, ...). company_id NULL means visible to every tenant."""
    __tablename__ = 'units_of_measure'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False)  # e.g., "KG", "EACH", "BOX"
    name = db.Column(db.String(50), nullable=False)  # e.g., "Kilogram", "Each", "Box"
    family = db.Column(db.String(20), nullable=False, default='other')  # mass, volume, length, area, time, count, other
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), index=True)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship('Company')

    def __repr__(self):
        return f'<UnitOfMeasure {self.name} ({self.code})>'

    @property
    def is_global(self):
        return self.company_id is None

    def to_ref(self):
        return UnitRef(self.id, self.code, self.name, self.family)

    @classmethod
    def visible_to(cls, company_id):
        """Global units plus the tenant's own"""
        return cls.query.filter(or_(cls.company_id.is_(None), cls.company_id == company_id))

    @classmethod
    def find_by_code(cls, company_id, code):
        """Case-insensitive lookup within the tenant's visible set"""
        return cls.visible_to(company_id).filter(func.upper(cls.code) == normalize_code(code)).first()

    @staticmethod
    def ensure_default_units():
        """Ensure default global units of measure exist in the database"""
        if UnitOfMeasure.query.filter(UnitOfMeasure.company_id.is_(None)).first():
            return  # Already populated

        default_units = [
            # Count
            {'code': 'EACH', 'name': 'Each', 'family': 'count'},
            {'code': 'DOZEN', 'name': 'Dozen', 'family': 'count'},
            {'code': 'PAIR', 'name': 'Pair', 'family': 'count'},
            {'code': 'BOX', 'name': 'Box', 'family': 'count'},

            # Mass
            {'code': 'KG', 'name': 'Kilogram', 'family': 'mass'},
            {'code': 'G', 'name': 'Gram', 'family': 'mass'},
            {'code': 'TON', 'name': 'Tonne', 'family': 'mass'},
            {'code': 'LB', 'name': 'Pound', 'family': 'mass'},

            # Length
            {'code': 'M', 'name': 'Meter', 'family': 'length'},
            {'code': 'CM', 'name': 'Centimeter', 'family': 'length'},
            {'code': 'MM', 'name': 'Millimeter', 'family': 'length'},
            {'code': 'FT', 'name': 'Feet', 'family': 'length'},

            # Area
            {'code': 'SQM', 'name': 'Square Meter', 'family': 'area'},
            {'code': 'SQFT', 'name': 'Square Feet', 'family': 'area'},

            # Volume
            {'code': 'L', 'name': 'Liter', 'family': 'volume'},
            {'code': 'ML', 'name': 'Milliliter', 'family': 'volume'},

            # Time
            {'code': 'HR', 'name': 'Hour', 'family': 'time'},
            {'code': 'MIN', 'name': 'Minute', 'family': 'time'},
        ]

        for unit_data in default_units:
            db.session.add(UnitOfMeasure(**unit_data))
        db.session.commit()
        return len(default_units)

    @staticmethod
    def get_choices(company_id):
        """Get choices for form dropdowns"""
        units = UnitOfMeasure.visible_to(company_id).order_by(UnitOfMeasure.family, UnitOfMeasure.code).all()
        return [(unit.id, f"{unit.code} - {unit.name}") for unit in units]


class UOMConversion(db.Model):
    """Conversion factors between units: 1 from_unit = factor to_unit.
    company_id NULL is a global default, otherwise a tenant override."""
    __tablename__ = 'uom_conversions'

    id = db.Column(db.Integer, primary_key=True)
    from_unit_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)
    to_unit_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)
    factor = db.Column(db.Float, nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), index=True)
    notes = db.Column(db.Text)  # e.g., "Supplier packs 10 per box"
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    from_unit = db.relationship('UnitOfMeasure', foreign_keys=[from_unit_id])
    to_unit = db.relationship('UnitOfMeasure', foreign_keys=[to_unit_id])

    __table_args__ = (db.UniqueConstraint('from_unit_id', 'to_unit_id', 'company_id', name='unique_conversion_pair'),)

    def __repr__(self):
        return f'<UOMConversion 1 {self.from_unit_id} = {self.factor} {self.to_unit_id}>'

    @property
    def scope(self):
        return SCOPE_GLOBAL if self.company_id is None else SCOPE_TENANT

    def to_record(self):
        return ConversionRecord(self.from_unit_id, self.to_unit_id, self.factor, self.scope, self.company_id)

    @classmethod
    def visible_to(cls, company_id):
        """Global rows first, then the tenant's overrides"""
        return cls.query.filter(or_(cls.company_id.is_(None), cls.company_id == company_id))\
                        .order_by(cls.company_id.isnot(None), cls.id)

    @staticmethod
    def ensure_default_conversions():
        """Seed global conversion factors between the default units"""
        if UOMConversion.query.filter(UOMConversion.company_id.is_(None)).first():
            return

        defaults = [
            ('DOZEN', 'EACH', 12),
            ('PAIR', 'EACH', 2),
            ('TON', 'KG', 1000),
            ('KG', 'G', 1000),
            ('LB', 'KG', 0.45359237),
            ('M', 'CM', 100),
            ('CM', 'MM', 10),
            ('FT', 'M', 0.3048),
            ('SQM', 'SQFT', 10.7639104),
            ('L', 'ML', 1000),
            ('HR', 'MIN', 60),
        ]
        units = {u.code: u.id for u in UnitOfMeasure.query.filter(UnitOfMeasure.company_id.is_(None)).all()}

        created = 0
        for from_code, to_code, factor in defaults:
            if from_code in units and to_code in units:
                db.session.add(UOMConversion(from_unit_id=units[from_code], to_unit_id=units[to_code],
                                             factor=factor, notes='Standard conversion factor'))
                created += 1
        db.session.commit()
        return created


class UOMConversionLog(db.Model):
    """Log of UOM conversions for audit trail"""
    __tablename__ = 'uom_conversion_logs'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('items.id'))
    transaction_type = db.Column(db.String(50), nullable=False)  # 'quick_test', 'stock_movement', 'cli'
    transaction_id = db.Column(db.String(100))  # Reference to the stock movement, if any

    original_quantity = db.Column(db.Float, nullable=False)
    original_unit_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)
    converted_quantity = db.Column(db.Float, nullable=False)
    converted_unit_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)
    conversion_factor = db.Column(db.Float, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))

    # Relationships
    item = db.relationship('Item')
    original_unit = db.relationship('UnitOfMeasure', foreign_keys=[original_unit_id])
    converted_unit = db.relationship('UnitOfMeasure', foreign_keys=[converted_unit_id])
    created_by_user = db.relationship('User')

    def __repr__(self):
        return f'<UOMConversionLog {self.original_quantity} {self.original_unit_id} -> {self.converted_quantity} {self.converted_unit_id}>'
