import os
from datetime import timedelta
from cachelib import SimpleCache
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 't')


def _engine_options(dialect):
    """Pool settings per relational backend, chosen once at startup."""
    if dialect == 'mysql':
        # MySQL drops idle connections after wait_timeout
        return {'pool_pre_ping': True, 'pool_recycle': 280}
    if dialect in ('postgres', 'postgresql'):
        return {'pool_pre_ping': True, 'pool_recycle': 300}
    return {}


class Config:
    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    ENV = os.environ.get('FLASK_ENV', 'development')
    DEBUG = _flag('FLASK_DEBUG', 'True')

    # Database Configuration
    DB_DIALECT = os.environ.get('DB_DIALECT', 'sqlite').lower()
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///salondesk.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(DB_DIALECT)

    # Server Configuration
    HOST = os.environ.get('FLASK_HOST', '127.0.0.1')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    # CORS Configuration
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5173')

    # Salon Configuration
    SALON_TIMEZONE = os.environ.get('SALON_TIMEZONE', 'Africa/Casablanca')
    SEED_DEFAULTS = _flag('SEED_DEFAULTS', 'True')

    # Public booking rate limit (requests per window, per address)
    PUBLIC_RATE_LIMIT = int(os.environ.get('PUBLIC_RATE_LIMIT', 30))
    PUBLIC_RATE_WINDOW = int(os.environ.get('PUBLIC_RATE_WINDOW', 60))

    # PIN login lockout
    PIN_MAX_ATTEMPTS = int(os.environ.get('PIN_MAX_ATTEMPTS', 5))
    PIN_LOCKOUT_SECONDS = int(os.environ.get('PIN_LOCKOUT_SECONDS', 300))

    # Roles persisted with an empty permission list get full access
    EMPTY_PERMISSIONS_GRANT_ALL = _flag('EMPTY_PERMISSIONS_GRANT_ALL', 'True')

    # Messaging providers
    YCLOUD_API_KEY = os.environ.get('YCLOUD_API_KEY')
    WHATSAPP_API_KEY = os.environ.get('WHATSAPP_API_KEY')
    WHATSAPP_PHONE_NUMBER_ID = os.environ.get('WHATSAPP_PHONE_NUMBER_ID')
    WHATSAPP_FROM_NUMBER = os.environ.get('WHATSAPP_FROM_NUMBER', '212669640496')
    MESSAGING_TIMEOUT = float(os.environ.get('MESSAGING_TIMEOUT', 10))

    # Web push
    VAPID_PUBLIC_KEY = os.environ.get('VAPID_PUBLIC_KEY', '')
    VAPID_PRIVATE_KEY = os.environ.get('VAPID_PRIVATE_KEY', '')
    VAPID_CLAIM_EMAIL = os.environ.get('VAPID_CLAIM_EMAIL', 'mailto:contact@salondesk.app')

    # Session Configuration
    SESSION_TYPE = 'filesystem'
    SESSION_PERMANENT = True
    SESSION_LIFETIME_DAYS = int(os.environ.get('SESSION_LIFETIME_DAYS', 7))
    PERMANENT_SESSION_LIFETIME = timedelta(days=SESSION_LIFETIME_DAYS)
    SESSION_COOKIE_SAMESITE = 'Strict'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = ENV == 'production'  # Automatically set to True in production


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    DB_DIALECT = 'sqlite'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SEED_DEFAULTS = False
    SESSION_TYPE = 'cachelib'
    SESSION_CACHELIB = SimpleCache()
    PUBLIC_RATE_LIMIT = 1000
    YCLOUD_API_KEY = None
    WHATSAPP_API_KEY = None
    WHATSAPP_PHONE_NUMBER_ID = None
    VAPID_PUBLIC_KEY = ''
    VAPID_PRIVATE_KEY = ''
