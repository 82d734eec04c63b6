from app import db
from datetime import datetime

MOVEMENT_TYPES = ('receive', 'issue', 'adjust')


class StockMovement(db.Model):
    """
    A stock movement entered in any unit; quantity_base is the quantity
    converted to the item's base unit and is the value that counts.
    """
    __tablename__ = 'stock_movements'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey('items.id'), nullable=False)
    movement_type = db.Column(db.String(20), nullable=False)  # receive, issue, adjust

    # Movement details
    uom_id = db.Column(db.Integer, db.ForeignKey('units_of_measure.id'), nullable=False)  # unit the operator entered
    quantity = db.Column(db.Float, nullable=False)
    quantity_base = db.Column(db.Float, nullable=False)

    reference = db.Column(db.String(100))  # PO / SO number, adjustment reason
    notes = db.Column(db.Text)

    # Metadata
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    item = db.relationship('Item')
    uom = db.relationship('UnitOfMeasure')
    user = db.relationship('User')

    @property
    def signed_base_quantity(self):
        """Base quantity as a stock delta: issues reduce stock"""
        if self.movement_type == 'issue':
            return -abs(self.quantity_base)
        return self.quantity_base

    def __repr__(self):
        return f'<StockMovement {self.movement_type} {self.quantity} -> {self.quantity_base}>'
