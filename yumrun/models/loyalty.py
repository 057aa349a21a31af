from datetime import datetime
from yumrun import db
from yumrun.utils.helpers import new_object_id, isoformat

TRANSACTION_TYPES = ('EARN', 'REDEEM', 'ADJUST', 'EXPIRE')
TRANSACTION_SOURCES = ('ORDER', 'REFUND', 'ADMIN', 'SYSTEM', 'PROMOTION')


class LoyaltyTransaction(db.Model):
    """One signed movement of a user's loyalty balance"""
    __tablename__ = 'loyalty_transactions'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    user_id = db.Column(db.String(24), db.ForeignKey('users.id'), nullable=False, index=True)
    restaurant_id = db.Column(db.String(24), db.ForeignKey('restaurants.id'), index=True)
    points = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(10), nullable=False, index=True)
    source = db.Column(db.String(10), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    reference_id = db.Column(db.String(24), index=True)
    balance = db.Column(db.Integer, nullable=False)  # running balance after this transaction
    expiry_date = db.Column(db.DateTime)  # EARN transactions only
    processed_expiry = db.Column(db.Boolean, default=False, nullable=False)
    adjusted_by = db.Column(db.String(24), db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('loyalty_transactions', lazy='dynamic'))

    __table_args__ = (
        db.Index('ix_loyalty_expiry_lookup', 'expiry_date', 'type', 'processed_expiry'),
    )

    @property
    def is_expired(self):
        if not self.expiry_date:
            return False
        return datetime.utcnow() > self.expiry_date

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'restaurant_id': self.restaurant_id,
            'points': self.points,
            'type': self.type,
            'source': self.source,
            'description': self.description,
            'reference_id': self.reference_id,
            'balance': self.balance,
            'expiry_date': isoformat(self.expiry_date),
            'is_expired': self.is_expired,
            'processed_expiry': self.processed_expiry,
            'adjusted_by': self.adjusted_by,
            'created_at': isoformat(self.created_at)
        }
