from datetime import datetime
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash
from yumrun import db
from yumrun.utils.helpers import new_object_id, isoformat

NUTRIENTS = ('calories', 'protein', 'carbs', 'fat', 'sodium', 'sugar', 'fiber')
ORDER_NUTRIENTS = ('calories', 'protein', 'carbs', 'fat', 'sodium')

MENU_CATEGORIES = (
    'Appetizers', 'Main Course', 'Desserts', 'Drinks', 'Beverages', 'Sides', 'Specials',
    'Breakfast', 'Lunch', 'Dinner', 'Vegan', 'Vegetarian', 'Gluten-Free'
)

HEALTH_ATTRIBUTES = (
    'is_diabetic_friendly', 'is_low_sodium', 'is_heart_healthy',
    'is_low_glycemic_index', 'is_high_protein', 'is_low_carb'
)

LOYALTY_TIERS = ('BRONZE', 'SILVER', 'GOLD', 'PLATINUM')

DEFAULT_DAILY_TARGETS = {
    'calories': 2000,
    'protein': 50,
    'carbs': 250,
    'fat': 70,
    'fiber': 25
}


def default_health_profile():
    return {
        'allergies': [],
        'health_conditions': [],
        'dietary_preferences': [],
        'disliked_foods': [],
        'favourite_foods': [],
        'weight_management_goal': 'None',
        'daily_targets': dict(DEFAULT_DAILY_TARGETS)
    }


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    full_name = db.Column(db.String(201))
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(10), nullable=False)
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), nullable=False, default='customer')
    is_active = db.Column(db.Boolean, default=True)
    address = db.Column(db.JSON, default=dict)
    health_profile = db.Column(db.JSON, default=default_health_profile)
    favorites = db.Column(db.JSON, default=list)
    cart = db.Column(db.JSON, default=list)

    # Loyalty program
    loyalty_points = db.Column(db.Integer, default=0, nullable=False)
    lifetime_loyalty_points = db.Column(db.Integer, default=0, nullable=False)
    loyalty_tier = db.Column(db.String(10), default='BRONZE', nullable=False)
    tier_update_date = db.Column(db.DateTime, default=datetime.utcnow)

    # Delivery riders only
    rider_details = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders = db.relationship('Order', backref='user', lazy=True, foreign_keys='Order.user_id')
    restaurants = db.relationship('Restaurant', backref='owner', lazy=True)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def set_name(self, first_name, last_name):
        self.first_name = first_name.strip()
        self.last_name = last_name.strip()
        self.full_name = f'{self.first_name} {self.last_name}'.strip()

    @property
    def restaurant(self):
        return self.restaurants[0] if self.restaurants else None

    def to_dict(self, include_private=False):
        data = {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'email': self.email,
            'phone': self.phone,
            'role': self.role,
            'is_active': self.is_active,
            'loyalty_points': self.loyalty_points,
            'loyalty_tier': self.loyalty_tier,
            'created_at': isoformat(self.created_at)
        }
        if include_private:
            data.update({
                'address': self.address or {},
                'health_profile': self.health_profile or default_health_profile(),
                'favorites': self.favorites or [],
                'lifetime_loyalty_points': self.lifetime_loyalty_points,
                'rider_details': self.rider_details,
                'restaurant_id': self.restaurant.id if self.restaurant else None
            })
        return data


class Restaurant(db.Model):
    __tablename__ = 'restaurants'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False)
    logo = db.Column(db.String(500), default='')
    owner_id = db.Column(db.String(24), db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.String(20), default='pending', nullable=False)  # pending, approved, rejected
    is_open = db.Column(db.Boolean, default=True)
    delivery_fee = db.Column(db.Float)
    minimum_order = db.Column(db.Float, default=0.0)
    cuisine = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    menu_items = db.relationship('MenuItem', backref='restaurant', lazy=True, cascade='all, delete-orphan')
    orders = db.relationship('Order', backref='restaurant', lazy=True)

    @property
    def is_approved(self):
        return self.status == 'approved'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'description': self.description,
            'logo': self.logo,
            'owner_id': self.owner_id,
            'status': self.status,
            'is_open': self.is_open,
            'delivery_fee': self.delivery_fee,
            'minimum_order': self.minimum_order,
            'cuisine': self.cuisine or [],
            'created_at': isoformat(self.created_at)
        }


class MenuItem(db.Model):
    __tablename__ = 'menu_items'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    restaurant_id = db.Column(db.String(24), db.ForeignKey('restaurants.id'), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    item_price = db.Column(db.Float, nullable=False)
    description = db.Column(db.Text, default='')
    image = db.Column(db.String(500), default='uploads/placeholders/food-placeholder.jpg')
    category = db.Column(db.String(50), default='Main Course')

    # Nutrition per serving
    calories = db.Column(db.Float)
    protein = db.Column(db.Float)
    carbs = db.Column(db.Float)
    fat = db.Column(db.Float)
    sodium = db.Column(db.Float, default=0.0)
    sugar = db.Column(db.Float, default=0.0)
    fiber = db.Column(db.Float, default=0.0)

    ingredients = db.Column(db.JSON, default=list)
    customization_options = db.Column(db.JSON, default=dict)
    health_attributes = db.Column(db.JSON, default=dict)
    allergens = db.Column(db.JSON, default=list)
    is_vegetarian = db.Column(db.Boolean, default=False)
    is_vegan = db.Column(db.Boolean, default=False)
    is_gluten_free = db.Column(db.Boolean, default=False)
    is_available = db.Column(db.Boolean, default=True)
    average_rating = db.Column(db.Float, default=0.0)
    number_of_ratings = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def nutrition(self):
        """Nutrition of the default recipe, falling back to the item's own values"""
        ingredients = self.ingredients or []
        if not ingredients:
            return {key: getattr(self, key) or 0 for key in ORDER_NUTRIENTS}

        totals = dict.fromkeys(ORDER_NUTRIENTS, 0)
        for ingredient in ingredients:
            if ingredient.get('is_default', True):
                for key in ORDER_NUTRIENTS:
                    totals[key] += ingredient.get(key) or 0
        return totals

    def find_ingredient(self, name):
        for ingredient in self.ingredients or []:
            if ingredient.get('name') == name:
                return ingredient
        return None

    def find_add_on(self, name):
        for add_on in (self.customization_options or {}).get('available_add_ons', []):
            if add_on.get('name') == name:
                return add_on
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'restaurant_name': self.restaurant.name if self.restaurant else None,
            'item_name': self.item_name,
            'item_price': self.item_price,
            'description': self.description,
            'image': self.image,
            'category': self.category,
            'calories': self.calories,
            'protein': self.protein,
            'carbs': self.carbs,
            'fat': self.fat,
            'sodium': self.sodium,
            'sugar': self.sugar,
            'fiber': self.fiber,
            'ingredients': self.ingredients or [],
            'customization_options': self.customization_options or {},
            'health_attributes': self.health_attributes or {},
            'allergens': self.allergens or [],
            'is_vegetarian': self.is_vegetarian,
            'is_vegan': self.is_vegan,
            'is_gluten_free': self.is_gluten_free,
            'is_available': self.is_available,
            'average_rating': self.average_rating,
            'number_of_ratings': self.number_of_ratings
        }


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    order_number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(24), db.ForeignKey('users.id'), nullable=False, index=True)
    restaurant_id = db.Column(db.String(24), db.ForeignKey('restaurants.id'), nullable=False, index=True)

    # Pricing
    total_price = db.Column(db.Float, nullable=False)
    delivery_fee = db.Column(db.Float, default=0.0)
    tax = db.Column(db.Float, default=0.0)
    tip = db.Column(db.Float, default=0.0)
    loyalty_points_earned = db.Column(db.Integer, default=0)
    loyalty_points_used = db.Column(db.Integer, default=0)
    grand_total = db.Column(db.Float, nullable=False, default=0.0)
    total_nutritional_info = db.Column(db.JSON, default=dict)

    status = db.Column(db.String(20), default='PENDING', nullable=False, index=True)
    status_updates = db.Column(db.JSON, default=list)
    assigned_rider_id = db.Column(db.String(24), db.ForeignKey('users.id'), index=True)

    # Payment
    payment_method = db.Column(db.String(10), nullable=False)  # CASH, KHALTI
    payment_status = db.Column(db.String(10), default='PENDING', nullable=False)
    payment_details = db.Column(db.JSON, default=dict)
    is_paid = db.Column(db.Boolean, default=False)
    paid_at = db.Column(db.DateTime)

    # Delivery
    delivery_address = db.Column(db.JSON, nullable=False)
    special_instructions = db.Column(db.Text, default='')
    estimated_delivery_time = db.Column(db.DateTime)
    actual_delivery_time = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = db.relationship('OrderItem', backref='order', lazy=True, cascade='all, delete-orphan')
    assigned_rider = db.relationship('User', foreign_keys=[assigned_rider_id])
    payments = db.relationship('Payment', backref='order', lazy=True, cascade='all, delete-orphan')

    def recalculate_totals(self):
        points_used = self.loyalty_points_used or 0
        self.grand_total = round(
            (self.total_price or 0) + (self.delivery_fee or 0) + (self.tax or 0) + (self.tip or 0) - points_used,
            2
        )

        totals = dict.fromkeys(ORDER_NUTRIENTS, 0)
        for item in self.items:
            info = item.nutritional_info or {}
            for key in ORDER_NUTRIENTS:
                totals[key] += (info.get(key) or 0) * item.quantity
        self.total_nutritional_info = {key: round(value, 2) for key, value in totals.items()}

    def add_status_update(self, status, updated_by=None):
        self.status = status
        self.status_updates = list(self.status_updates or []) + [{
            'status': status,
            'timestamp': datetime.utcnow().isoformat(),
            'updated_by': updated_by
        }]

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'user_id': self.user_id,
            'restaurant_id': self.restaurant_id,
            'restaurant_name': self.restaurant.name if self.restaurant else None,
            'items': [item.to_dict() for item in self.items],
            'total_price': self.total_price,
            'delivery_fee': self.delivery_fee,
            'tax': self.tax,
            'tip': self.tip,
            'loyalty_points_earned': self.loyalty_points_earned,
            'loyalty_points_used': self.loyalty_points_used,
            'grand_total': self.grand_total,
            'total_nutritional_info': self.total_nutritional_info or {},
            'status': self.status,
            'status_updates': self.status_updates or [],
            'assigned_rider_id': self.assigned_rider_id,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'payment_details': self.payment_details or {},
            'is_paid': self.is_paid,
            'paid_at': isoformat(self.paid_at),
            'delivery_address': self.delivery_address,
            'special_instructions': self.special_instructions,
            'estimated_delivery_time': isoformat(self.estimated_delivery_time),
            'actual_delivery_time': isoformat(self.actual_delivery_time),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }


@db.event.listens_for(Session, 'before_flush')
def _recalculate_order_totals(session, flush_context, instances):
    orders = set()
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, Order):
            orders.add(obj)
        elif isinstance(obj, OrderItem) and obj.order is not None:
            orders.add(obj.order)
    for order in orders:
        order.recalculate_totals()


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(24), db.ForeignKey('orders.id'), nullable=False, index=True)
    product_id = db.Column(db.String(24), db.ForeignKey('menu_items.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    options = db.Column(db.JSON, default=list)
    customization = db.Column(db.JSON, default=dict)
    nutritional_info = db.Column(db.JSON, default=dict)

    __table_args__ = (db.CheckConstraint('quantity >= 1', name='ck_order_items_quantity'),)

    @property
    def line_total(self):
        return round(self.price * self.quantity, 2)

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'price': self.price,
            'quantity': self.quantity,
            'options': self.options or [],
            'customization': self.customization or {},
            'nutritional_info': self.nutritional_info or {},
            'line_total': self.line_total
        }


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.String(24), primary_key=True, default=new_object_id)
    order_id = db.Column(db.String(24), db.ForeignKey('orders.id'), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)  # Cash on Delivery, Khalti, Card
    status = db.Column(db.String(10), nullable=False, default='Pending')  # Pending, Completed, Failed, Refunded
    pidx = db.Column(db.String(64), index=True)
    transaction_id = db.Column(db.String(64))
    date = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'amount': self.amount,
            'payment_method': self.payment_method,
            'status': self.status,
            'pidx': self.pidx,
            'transaction_id': self.transaction_id,
            'date': isoformat(self.date)
        }
