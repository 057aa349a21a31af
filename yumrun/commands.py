import click
from yumrun import db
from yumrun.models.models import MenuItem, Restaurant, User
from yumrun.services.loyalty import process_expired_points
from yumrun.utils.auth import ADMIN, CUSTOMER, DELIVERY_RIDER, RESTAURANT

SAMPLE_USERS = (
    ('Admin', 'User', 'admin@yumrun.com', '9800000001', ADMIN),
    ('Sita', 'Sharma', 'customer@yumrun.com', '9800000002', CUSTOMER),
    ('Ram', 'Thapa', 'owner@yumrun.com', '9800000003', RESTAURANT),
    ('Hari', 'Gurung', 'rider@yumrun.com', '9800000004', DELIVERY_RIDER),
)

SAMPLE_MENU = (
    {
        'item_name': 'Chicken Momo',
        'item_price': 250,
        'description': 'Steamed dumplings filled with spiced chicken',
        'category': 'Main Course',
        'calories': 420, 'protein': 28, 'carbs': 48, 'fat': 12, 'sodium': 680, 'sugar': 3, 'fiber': 2,
        'ingredients': [
            {'name': 'Dough', 'calories': 220, 'protein': 6, 'carbs': 44, 'fat': 1, 'sodium': 200,
             'is_default': True, 'is_removable': False},
            {'name': 'Chicken', 'calories': 160, 'protein': 21, 'carbs': 0, 'fat': 8, 'sodium': 380,
             'is_default': True, 'is_removable': False},
            {'name': 'Onion', 'calories': 20, 'protein': 1, 'carbs': 4, 'fat': 0, 'sodium': 5,
             'is_default': True, 'is_removable': True},
            {'name': 'Sesame Chutney', 'calories': 20, 'protein': 0, 'carbs': 0, 'fat': 3, 'sodium': 95,
             'is_default': True, 'is_removable': True}
        ],
        'customization_options': {
            'available_add_ons': [
                {'name': 'Extra Chutney', 'price': 30, 'calories': 40, 'protein': 1, 'carbs': 2, 'fat': 3,
                 'sodium': 120}
            ],
            'serving_size_options': ['Small', 'Regular', 'Large'],
            'cooking_methods': [{'name': 'Steamed', 'price': 0}, {'name': 'Fried', 'price': 40}]
        },
        'health_attributes': {'is_high_protein': True},
        'allergens': ['Gluten', 'Sesame']
    },
    {
        'item_name': 'Veg Thali',
        'item_price': 350,
        'description': 'Rice, lentil soup, seasonal vegetables and pickle',
        'category': 'Lunch',
        'calories': 610, 'protein': 18, 'carbs': 98, 'fat': 14, 'sodium': 520, 'sugar': 6, 'fiber': 11,
        'health_attributes': {'is_heart_healthy': True, 'is_low_sodium': True},
        'allergens': [],
        'is_vegetarian': True,
        'is_vegan': True,
        'is_gluten_free': True
    },
    {
        'item_name': 'Grilled Chicken Salad',
        'item_price': 420,
        'description': 'Grilled chicken breast over greens with lemon dressing',
        'category': 'Specials',
        'calories': 330, 'protein': 35, 'carbs': 12, 'fat': 15, 'sodium': 410, 'sugar': 5, 'fiber': 4,
        'health_attributes': {'is_diabetic_friendly': True, 'is_low_carb': True, 'is_high_protein': True},
        'allergens': [],
        'is_gluten_free': True
    },
    {
        'item_name': 'Mango Lassi',
        'item_price': 150,
        'description': 'Yogurt smoothie with ripe mango',
        'category': 'Beverages',
        'calories': 260, 'protein': 7, 'carbs': 45, 'fat': 6, 'sodium': 90, 'sugar': 40, 'fiber': 1,
        'allergens': ['Milk'],
        'is_vegetarian': True,
        'is_gluten_free': True
    },
)


def seed_sample_data(password):
    """Create sample users, an approved restaurant and its menu.

    Returns False when users already exist.
    """
    if User.query.first() is not None:
        return False

    users = {}
    for first_name, last_name, email, phone, role in SAMPLE_USERS:
        user = User(email=email, phone=phone, role=role)
        user.set_name(first_name, last_name)
        user.set_password(password)
        if role == DELIVERY_RIDER:
            user.rider_details = {'vehicle_type': 'Motorcycle', 'approved': True,
                                  'is_available': True, 'completed_deliveries': 0}
        db.session.add(user)
        users[role] = user

    restaurant = Restaurant(
        name='Himalayan Kitchen',
        location='Thamel, Kathmandu',
        description='Nepali and Tibetan home style cooking',
        owner=users[RESTAURANT],
        status='approved',
        cuisine=['Nepali', 'Tibetan'],
        minimum_order=200
    )
    db.session.add(restaurant)

    for entry in SAMPLE_MENU:
        db.session.add(MenuItem(restaurant=restaurant, **entry))

    db.session.commit()
    return True


def register_commands(app):

    @app.cli.command('setup-db')
    def setup_db():
        """Setup database and create tables"""
        db.create_all()
        click.echo('Database tables created!')

    @app.cli.command('seed')
    @click.option('--password', default='password123', show_default=True,
                  help='Password given to every sample user.')
    def seed(password):
        """Create tables and load sample data"""
        db.create_all()
        if seed_sample_data(password):
            click.echo('Sample data created!')
        else:
            click.echo('Sample data already exists.')

    @app.cli.command('process-expired-points')
    def expire_points():
        """Expire loyalty points past their expiry date"""
        processed = process_expired_points()
        click.echo(f'Processed {processed} expired loyalty transactions')
