import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

KHALTI_PRODUCTION_URL = 'https://khalti.com/api/v2'
KHALTI_SANDBOX_URL = 'https://dev.khalti.com/api/v2'


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///yumrun.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.environ.get('JWT_EXPIRY_DAYS', 7)))

    ENVIRONMENT = os.environ.get('FLASK_ENV', 'development')
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:5173'
    API_VERSION = '1.0.0'

    # Khalti payment gateway
    KHALTI_SECRET_KEY = os.environ.get('KHALTI_SECRET_KEY')
    KHALTI_BASE_URL = os.environ.get('KHALTI_BASE_URL') or (
        KHALTI_PRODUCTION_URL if ENVIRONMENT == 'production' else KHALTI_SANDBOX_URL
    )
    KHALTI_TIMEOUT = int(os.environ.get('KHALTI_TIMEOUT', 15))

    # Order pricing
    TAX_RATE = float(os.environ.get('TAX_RATE', 0.13))
    DEFAULT_DELIVERY_FEE = float(os.environ.get('DELIVERY_FEE', 100))

    # Loyalty program
    LOYALTY_POINTS_EXPIRY_DAYS = int(os.environ.get('LOYALTY_POINTS_EXPIRY_DAYS', 365))

    # Email Configuration
    SMTP_SERVER = os.environ.get('SMTP_SERVER')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
    SMTP_USERNAME = os.environ.get('SMTP_USERNAME')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD')
    FROM_EMAIL = os.environ.get('FROM_EMAIL', 'noreply@yumrun.com')

    # SMS Configuration
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///yumrun.db'


class ProductionConfig(Config):
    DEBUG = False
    ENVIRONMENT = 'production'
    KHALTI_BASE_URL = os.environ.get('KHALTI_BASE_URL') or KHALTI_PRODUCTION_URL
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')  # Must be set in production


class TestingConfig(Config):
    TESTING = True
    ENVIRONMENT = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    KHALTI_SECRET_KEY = 'test_secret_key'
    KHALTI_BASE_URL = KHALTI_SANDBOX_URL
    FRONTEND_URL = 'http://localhost:5173'
    JWT_SECRET_KEY = 'test-jwt-secret-key-that-is-long-enough'
    SMTP_USERNAME = None
    SMTP_PASSWORD = None
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
