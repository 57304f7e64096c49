from datetime import datetime
from extensions import db # Import the SQLAlchemy instance from extensions.

# Sentinel stored in games_allowed for plans without a game quota.
UNLIMITED_GAMES = -1

class SubscriptionPlan(db.Model):
    """
    Represents a purchasable subscription plan (a "subscription type").

    A plan fixes the quota a subscriber gets: how many games they may start,
    how many questions a game may hold and how many players may join, plus
    the price charged through Stripe. Plans are scoped to a content language.
    """
    __tablename__ = 'subscription_plans' # Specifies the database table name.

    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'

    # --- Plan Identification and Details ---
    id = db.Column(db.Integer, primary_key=True) # Unique identifier for the subscription plan.
    title = db.Column(db.String(100), nullable=True) # Marketing name, e.g. "Premium", "Platinum".
    # Game mode the plan is sold for (e.g. 'TOURNAMENT'). Informational: entitlement checks accept any active plan.
    game_mode = db.Column(db.String(50), nullable=False, default='QUICK_GAME', index=True)

    # --- Quota ---
    games_allowed = db.Column(db.Integer, nullable=False) # Positive count, or UNLIMITED_GAMES.
    questions_allowed = db.Column(db.Integer, nullable=False)
    players_allowed = db.Column(db.Integer, nullable=False)

    # --- Pricing ---
    price = db.Column(db.Numeric(10, 2), nullable=False) # Numeric type for precise decimal values (e.g., 10.00).
    currency = db.Column(db.String(3), nullable=False, default='usd')

    # --- Availability ---
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE, index=True) # Only 'active' plans can be purchased.
    language_id = db.Column(db.String(36), nullable=True, index=True) # Content language the plan is sold for.

    # --- Timestamps ---
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- Table Arguments: Quota Constraint ---
    # games_allowed is either a positive integer or the unlimited sentinel; never zero or any other negative.
    __table_args__ = (
        db.CheckConstraint(f'games_allowed > 0 OR games_allowed = {UNLIMITED_GAMES}',
                           name='ck_subscription_plans_games_allowed'),
    )

    @property
    def is_unlimited(self):
        """True when the plan places no ceiling on games played."""
        return self.games_allowed == UNLIMITED_GAMES

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'game_mode': self.game_mode,
            'games_allowed': self.games_allowed,
            'questions_allowed': self.questions_allowed,
            'players_allowed': self.players_allowed,
            'price': float(self.price) if self.price is not None else None,
            'currency': self.currency,
            'status': self.status,
            'language_id': self.language_id,
        }

    def __repr__(self):
        """
        Provides a string representation of the SubscriptionPlan object, useful for debugging.
        """
        return f'<SubscriptionPlan {self.id} {self.game_mode} - {self.price}>'
