from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from app import db

# Import UOM models
from .uom import UnitOfMeasure, UOMConversion, UOMConversionLog

# Import stock movement models
from .stock import StockMovement


class Company(db.Model):
    """Tenant: every user, item and tenant-scoped conversion belongs to one company"""
    __tablename__ = 'companies'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(20), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, default=True)
    is_default = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    users = db.relationship('User', backref='company', lazy=True)

    @classmethod
    def get_default_company(cls):
        """Get the default company"""
        return cls.query.filter_by(is_default=True, is_active=True).first()

    @classmethod
    def create_default_company(cls):
        company = cls.get_default_company()
        if company:
            return company
        company = cls(name='Default Company', code='DEFAULT', is_default=True)
        db.session.add(company)
        db.session.commit()
        return company

    def __repr__(self):
        return f'<Company {self.code}>'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='staff')  # admin, staff
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == 'admin'

    def __repr__(self):
        return f'<User {self.username}>'


class Item(db.Model):
    __tablename__ = 'items'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    base_unit_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)  # stock is recorded in this unit
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    base_unit = db.relationship('UnitOfMeasure')

    __table_args__ = (db.UniqueConstraint('company_id', 'code', name='unique_item_code_per_company'),)

    def __repr__(self):
        return f'<Item {self.code}>'
