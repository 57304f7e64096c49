from datetime import datetime
from extensions import db
from flask_login import UserMixin # For Flask-Login integration (e.g., current_user).

class User(db.Model, UserMixin):
    """
    Represents a player account.

    Only the fields the subscription flow reads or writes live here: contact details
    handed to the payment provider, the external billing identity (Stripe Customer ID),
    and the account type that purchase flips to "host". UserMixin provides default
    implementations for methods required by Flask-Login (e.g., is_authenticated, get_id).
    """
    __tablename__ = 'users' # Specifies the database table name.

    # Account types.
    TYPE_USER = 'user'
    TYPE_HOST = 'host'   # Set after a subscription purchase; hosts can create premium rooms.
    TYPE_ADMIN = 'admin'

    # --- Basic User Information ---
    id = db.Column(db.Integer, primary_key=True) # Unique identifier for the user.
    name = db.Column(db.String(100), nullable=True) # Display name.
    username = db.Column(db.String(100), unique=True, nullable=True, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True) # Nullable for guest / social accounts without email.
    type = db.Column(db.String(20), nullable=False, default=TYPE_USER, index=True) # 'user', 'host' or 'admin'.
    status = db.Column(db.Integer, nullable=False, default=1) # 1 = enabled, 0 = disabled.

    # --- Billing Information ---
    # External billing identity (Stripe Customer ID). Created lazily on first purchase.
    billing_id = db.Column(db.String(120), unique=True, nullable=True, index=True)

    # --- Timestamps ---
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- Relationships ---
    # 'lazy='dynamic'' means the subscriptions are loaded as a query, not immediately when the User object is loaded.
    subscriptions = db.relationship('Subscription', backref='user', lazy='dynamic')

    @property
    def is_admin(self):
        return self.type == self.TYPE_ADMIN

    def to_summary(self):
        """Public fields shown alongside a subscription in admin listings."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'type': self.type,
            'status': self.status,
        }

    def __repr__(self):
        """
        Provides a string representation of the User object, useful for debugging.
        """
        return f'<User {self.id} {self.email or self.username}>'
