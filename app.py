import logging # Standard library logging; Flask's app.logger is a logging.Logger.
import stripe # Stripe Python library for payment processing.
from flask import Flask # The main Flask class.
from config import Config # Import the application's configuration class.
from extensions import db, login_manager, migrate # Import initialized extensions.
from models.user import User # Import User model, primarily for the user_loader.
from utils.errors import register_error_handlers, unauthorized_response

# Application Factory Function
def create_app(config_class=Config):
    """
    Application factory for creating and configuring the Flask app.

    Args:
        config_class (type): Configuration object to load; tests pass a subclass of Config.
    """
    app = Flask(__name__)

    # Load configuration from the given config object (defined in config.py by default).
    app.config.from_object(config_class)

    # Log level comes from configuration (LOG_LEVEL, default INFO).
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    # --- Initialize Stripe ---
    # Server-side Stripe calls (customers, payment intents) use this secret key.
    stripe.api_key = app.config['STRIPE_SECRET_KEY']

    # --- Initialize Flask Extensions ---
    db.init_app(app)
    # Links the Flask app and SQLAlchemy DB instance to the migration engine.
    migrate.init_app(app, db)

    # Flask-Login for session-based authentication.
    # This is a JSON API, so unauthenticated requests get a 401 body instead of a login redirect.
    login_manager.init_app(app)
    login_manager.unauthorized_handler(unauthorized_response)

    # JSON bodies for every HTTP error.
    register_error_handlers(app)

    # --- Import and Register Blueprints ---
    from routes.subscription import subscription_bp
    from routes.billing import billing_bp
    from routes.admin import admin_bp

    app.register_blueprint(subscription_bp) # /subscription/...
    app.register_blueprint(billing_bp)      # /billing/stripe-webhook
    app.register_blueprint(admin_bp)        # /admin/...

    # --- Flask-Login User Loader ---
    # Reloads the user object from the user ID stored in the session on each request.
    @login_manager.user_loader
    def load_user(user_id):
        """Loads a user from the database given their ID."""
        return db.session.get(User, int(user_id))

    return app # Return the configured Flask app instance.

# This block allows running the Flask development server directly using `python app.py`.
if __name__ == '__main__':
    app = create_app() # Create an app instance using the factory.
    app.run(debug=True)
