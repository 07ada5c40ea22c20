from flask import Flask
from flask_cors import CORS
from salondesk.config import Config
import logging


# Custom logging filter to suppress 401 logs for /api/admin-roles/session
class SuppressSessionProbe401Filter(logging.Filter):
    def filter(self, record):
        # Werkzeug logs format: "GET /api/admin-roles/session HTTP/1.1" 401
        message = record.getMessage()
        if '401' in message and '/api/admin-roles/session' in message:
            return False  # Suppress this log
        return True


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    from salondesk.extensions import db, server_session
    db.init_app(app)

    # Configure CORS to allow credentials
    CORS(app, supports_credentials=True, origins=[app.config['FRONTEND_URL']])

    # Initialize session
    server_session.init_app(app)

    # Dashboards probe the session on load; a 401 there just means "show the PIN screen"
    werkzeug_logger = logging.getLogger('werkzeug')
    werkzeug_logger.addFilter(SuppressSessionProbe401Filter())

    from salondesk.auth import init_auth
    from salondesk.errors import register_error_handlers
    from salondesk.notifier import init_broadcaster
    from salondesk.public import init_limiter, public
    from salondesk.routes import main
    from salondesk.storage import init_storage

    init_storage(app)
    init_broadcaster(app)
    init_auth(app)
    init_limiter(app)
    register_error_handlers(app)

    app.register_blueprint(main)
    app.register_blueprint(public)

    with app.app_context():
        from salondesk import models  # noqa: F401
        db.create_all()
        if app.config['SEED_DEFAULTS']:
            from salondesk.seed import seed_defaults
            seed_defaults()

    return app
