import enum
from datetime import datetime
from extensions import db # Import the SQLAlchemy instance.


def _enum_values(enum_cls):
    # Persist the lowercase values ('active'), not the member names ('ACTIVE').
    return [member.value for member in enum_cls]


class SubscriptionStatusEnum(enum.Enum):
    """
    Lifecycle states of a subscription.

    pending -> active | failed, and any non-cancelled state -> cancelled.
    """
    PENDING = 'pending'      # Created at purchase time, waiting for the payment to settle.
    ACTIVE = 'active'        # Paid; counts toward entitlement checks.
    CANCELLED = 'cancelled'  # Cancelled by the user or an admin.
    FAILED = 'failed'        # Payment intent creation or the payment itself failed.


class PaymentStatusEnum(enum.Enum):
    """Settlement state of the payment backing a subscription."""
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'


class Subscription(db.Model):
    """
    A user's purchased instance of a SubscriptionPlan, with its consumption state.

    `games_played_count` only ever grows; it is compared against the plan's
    `games_allowed` by the entitlement checks. `payment_reference_number` holds
    the Stripe PaymentIntent ID and is the key webhook events are matched on.
    """
    __tablename__ = 'subscriptions' # Specifies the database table name.

    id = db.Column(db.Integer, primary_key=True)

    # --- Foreign Keys ---
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subscription_type_id = db.Column(db.Integer, db.ForeignKey('subscription_plans.id'), nullable=False, index=True)

    # --- Lifecycle and Consumption ---
    status = db.Column(db.Enum(SubscriptionStatusEnum, values_callable=_enum_values, native_enum=False, length=20),
                       nullable=False, default=SubscriptionStatusEnum.PENDING, index=True)
    games_played_count = db.Column(db.Integer, nullable=False, default=0)

    # --- Payment Details ---
    payment_status = db.Column(db.Enum(PaymentStatusEnum, values_callable=_enum_values, native_enum=False, length=20),
                               nullable=True, default=PaymentStatusEnum.PENDING)
    payment_raw_status = db.Column(db.String(50), nullable=True) # Provider's own status string (e.g. 'succeeded').
    paid_amount = db.Column(db.Numeric(10, 2), nullable=True)
    paid_currency = db.Column(db.String(3), nullable=True)
    payment_provider = db.Column(db.String(50), nullable=True) # e.g. 'stripe'.
    # Stripe PaymentIntent ID. Set once at purchase time; unique so a webhook event maps to exactly one row.
    payment_reference_number = db.Column(db.String(255), unique=True, nullable=True, index=True)
    payment_provider_charge_type = db.Column(db.String(20), nullable=True, default='percentage')
    payment_provider_charge = db.Column(db.Numeric(10, 2), nullable=True)

    # --- Timestamps ---
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- Relationship to SubscriptionPlan ---
    plan = db.relationship('SubscriptionPlan', lazy='joined')

    # --- Table Arguments: one active subscription per user and plan ---
    # Partial unique index: rows in any other status are unrestricted.
    __table_args__ = (
        db.Index('uq_subscriptions_active_user_plan', 'user_id', 'subscription_type_id',
                 unique=True,
                 postgresql_where=db.text("status = 'active'"),
                 sqlite_where=db.text("status = 'active'")),
    )

    @property
    def games_remaining(self):
        """
        Games left on the plan, or None for unlimited plans.
        Not clamped: a negative value means the quota has been overshot.
        """
        if self.plan.is_unlimited:
            return None
        return self.plan.games_allowed - self.games_played_count

    def to_dict(self, include_plan=True):
        """
        Serializes the subscription for API responses.

        Args:
            include_plan (bool): Embed the plan details under 'subscription_type'.
        """
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'subscription_type_id': self.subscription_type_id,
            'status': self.status.value,
            'games_played_count': self.games_played_count,
            'payment_status': self.payment_status.value if self.payment_status else None,
            'payment_raw_status': self.payment_raw_status,
            'paid_amount': float(self.paid_amount) if self.paid_amount is not None else None,
            'paid_currency': self.paid_currency,
            'payment_provider': self.payment_provider,
            'payment_reference_number': self.payment_reference_number,
            'payment_provider_charge_type': self.payment_provider_charge_type,
            'payment_provider_charge': float(self.payment_provider_charge) if self.payment_provider_charge is not None else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_plan:
            data['subscription_type'] = self.plan.to_dict() if self.plan else None
        return data

    def __repr__(self):
        """
        Provides a string representation of the Subscription object, useful for debugging.
        """
        return f'<Subscription {self.id} User {self.user_id} - Plan {self.subscription_type_id} - Status {self.status.value}>'
