from datetime import datetime
from extensions import db

class PaymentTransaction(db.Model):
    """
    Ledger entry for money moving through the payment provider.

    One row is written per subscription purchase attempt, carrying the same
    reference number (Stripe PaymentIntent ID) as the subscription so the two
    can be reconciled from webhook events.
    """
    __tablename__ = 'payment_transactions'

    TYPE_SUBSCRIPTION = 'subscription'
    TYPE_ORDER = 'order'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    subscription_id = db.Column(db.Integer, db.ForeignKey('subscriptions.id'), nullable=True, index=True)

    type = db.Column(db.String(20), nullable=False, default=TYPE_ORDER)
    provider = db.Column(db.String(50), nullable=True)
    reference_number = db.Column(db.String(255), nullable=True, index=True) # Not unique: retries may share a reference.
    status = db.Column(db.String(20), nullable=False, default='pending')
    raw_status = db.Column(db.String(50), nullable=True)

    # --- Amounts ---
    amount = db.Column(db.Numeric(10, 2), nullable=True)      # Amount requested.
    currency = db.Column(db.String(3), nullable=True)
    paid_amount = db.Column(db.Numeric(10, 2), nullable=True) # Amount the provider reports as received.
    paid_currency = db.Column(db.String(3), nullable=True)

    # --- Timestamps ---
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- Relationships ---
    # Ledger rows of a subscription, as a query (subscription.payment_transactions.order_by(...)).
    subscription = db.relationship('Subscription', backref=db.backref('payment_transactions', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount) if self.amount is not None else None,
            'currency': self.currency,
            'status': self.status,
            'provider': self.provider,
            'reference_number': self.reference_number,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<PaymentTransaction {self.id} {self.type} ref={self.reference_number} status={self.status}>'
