from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField
from wtforms.validators import DataRequired, NumberRange, Optional, Length # Import standard validators.


class PurchaseSubscriptionForm(FlaskForm):
    """
    Body of POST /subscription/purchase.
    Flask-WTF reads JSON request bodies as well as form posts.
    """
    class Meta:
        csrf = False # JSON API; requests are authenticated by the session cookie only.

    # The SubscriptionPlan to buy.
    subscription_type_id = IntegerField('Subscription Type', validators=[DataRequired(message="subscription_type_id is required."), NumberRange(min=1, message="subscription_type_id must be a positive integer.")])
    # Optional saved Stripe PaymentMethod ID.
    payment_method_id = StringField('Payment Method', validators=[Optional(), Length(max=255)])
    # Accepted and recorded but not applied to the price.
    promo_code = StringField('Promo Code', validators=[Optional(), Length(max=64)])
    # Where the client returns after confirming the payment; not used server-side.
    return_url = StringField('Return URL', validators=[Optional(), Length(max=2048)])


class CancelSubscriptionForm(FlaskForm):
    """Body of PUT /subscription/cancel and PUT /admin/subscriptions/<id>/cancel."""
    class Meta:
        csrf = False

    subscription_id = IntegerField('Subscription', validators=[Optional(), NumberRange(min=1, message="subscription_id must be a positive integer.")])
    reason = StringField('Reason', validators=[Optional(), Length(max=500, message="Reason must be at most 500 characters.")])


class ValidateGameForm(FlaskForm):
    """Body of POST /subscription/validate-game."""
    class Meta:
        csrf = False

    game_mode = StringField('Game Mode', validators=[DataRequired(message="game_mode is required.")])
    max_players = IntegerField('Max Players', validators=[Optional(), NumberRange(min=1, message="max_players must be at least 1.")])
