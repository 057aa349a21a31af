from datetime import datetime
from sqlalchemy import func
from yumrun import db
from yumrun.models.models import MenuItem
from yumrun.utils.helpers import new_object_id, isoformat


class Review(db.Model):
    __tablename__ = 'reviews'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    user_id = db.Column(db.String(24), db.ForeignKey('users.id'), nullable=False, index=True)
    menu_item_id = db.Column(db.String(24), db.ForeignKey('menu_items.id'), nullable=False, index=True)
    restaurant_id = db.Column(db.String(24), db.ForeignKey('restaurants.id'), nullable=False, index=True)
    order_id = db.Column(db.String(24), db.ForeignKey('orders.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text)
    reply = db.Column(db.Text)
    replied_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationship with user
    user = db.relationship('User', backref=db.backref('reviews', lazy=True))
    menu_item = db.relationship('MenuItem', backref=db.backref('reviews', lazy=True, cascade='all, delete-orphan'))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'menu_item_id', 'order_id', name='uq_review_per_order_item'),
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_name': self.user.full_name if self.user else None,
            'menu_item_id': self.menu_item_id,
            'menu_item_name': self.menu_item.item_name if self.menu_item else None,
            'restaurant_id': self.restaurant_id,
            'order_id': self.order_id,
            'rating': self.rating,
            'comment': self.comment,
            'reply': self.reply,
            'replied_at': isoformat(self.replied_at),
            'created_at': isoformat(self.created_at)
        }

    @staticmethod
    def rating_stats(menu_item_id):
        """Average, count and 1-5 distribution of a menu item's reviews"""
        rows = (
            db.session.query(Review.rating, func.count(Review.id))
            .filter(Review.menu_item_id == menu_item_id)
            .group_by(Review.rating)
            .all()
        )
        distribution = {str(star): 0 for star in range(1, 6)}
        total = 0
        weighted = 0
        for rating, count in rows:
            distribution[str(rating)] = count
            total += count
            weighted += rating * count

        return {
            'average_rating': round(weighted / total, 2) if total else 0,
            'total': total,
            'distribution': distribution
        }

    @staticmethod
    def update_menu_item_rating(menu_item_id):
        db.session.flush()
        stats = Review.rating_stats(menu_item_id)
        menu_item = MenuItem.query.get(menu_item_id)
        if menu_item is not None:
            menu_item.average_rating = stats['average_rating']
            menu_item.number_of_ratings = stats['total']
        return stats
