import logging
from flask import Flask
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
from config import Config

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()
cors = CORS()
socketio = SocketIO(cors_allowed_origins="*")


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config['FRONTEND_URL']}},
        supports_credentials=True,
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS', 'PATCH'],
        allow_headers=['Content-Type', 'Authorization']
    )
    # Socket.IO handlers must be attached before init_app so every app's server gets them
    from yumrun.services.order_events import register_socket_events
    register_socket_events(socketio)
    socketio.init_app(app)

    # Import models to ensure they are registered with SQLAlchemy
    from yumrun.models import models, loyalty, review  # noqa: F401

    from yumrun.utils.auth import register_user_loaders
    from yumrun.utils.errors import register_error_handlers, register_jwt_handlers
    register_user_loaders(jwt)
    register_jwt_handlers(jwt)
    register_error_handlers(app, db)

    from yumrun.routes import (
        admin, auth, cart, delivery, favorites, loyalty as loyalty_routes, menu, nutrition,
        orders, payment, recommendations, restaurants, reviews, status
    )
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(restaurants.restaurants_bp)
    app.register_blueprint(menu.menu_bp)
    app.register_blueprint(orders.orders_bp)
    app.register_blueprint(delivery.delivery_bp)
    app.register_blueprint(payment.payment_bp)
    app.register_blueprint(loyalty_routes.loyalty_bp)
    app.register_blueprint(nutrition.nutrition_bp)
    app.register_blueprint(recommendations.recommendations_bp)
    app.register_blueprint(cart.cart_bp)
    app.register_blueprint(favorites.favorites_bp)
    app.register_blueprint(reviews.reviews_bp)
    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(status.status_bp)

    from yumrun.commands import register_commands
    register_commands(app)

    app.logger.info(
        f"YumRun API configured ({app.config['ENVIRONMENT']}), Khalti base URL "
        f"{app.config['KHALTI_BASE_URL']}, secret key available: {bool(app.config['KHALTI_SECRET_KEY'])}"
    )
    return app
