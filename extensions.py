from flask_sqlalchemy import SQLAlchemy # ORM for database interactions.
from flask_login import LoginManager    # Resolves the authenticated user for each request.
from flask_migrate import Migrate       # Alembic-backed schema migrations.

# Initialize SQLAlchemy.
# This instance will be further configured and associated with the Flask app
# in the application factory (create_app function in app.py) using db.init_app(app).
db = SQLAlchemy()

# Initialize Flask-Login's LoginManager.
# The session/token layer that authenticates users lives outside this service;
# Flask-Login only turns the stored user id back into a User via the user_loader in create_app.
login_manager = LoginManager()

# Initialize Flask-Migrate. Bound to the app and db in create_app.
migrate = Migrate()
