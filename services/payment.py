from decimal import Decimal, ROUND_HALF_UP

import stripe # Stripe Python library; stripe.api_key is set in create_app.

# Currencies Stripe charges in whole units (no cents).
ZERO_DECIMAL_CURRENCIES = frozenset(['bif', 'clp', 'djf', 'gnf', 'jpy', 'kmf', 'krw', 'mga', 'pyg', 'rwf', 'ugx', 'vnd', 'vuv', 'xaf', 'xof', 'xpf'])


def to_minor_units(amount, currency):
    """
    Converts a decimal amount (e.g. 9.99) to the integer Stripe expects (e.g. 999).

    Args:
        amount (Decimal, float, int or str): Amount in major units.
        currency (str): ISO currency code.

    Returns:
        int: Amount in the currency's smallest unit.
    """
    value = Decimal(str(amount))
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        value = value * 100
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(amount, currency):
    """Inverse of to_minor_units, returning a Decimal in major units."""
    value = Decimal(int(amount))
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return value
    return value / 100


class StripePayment:
    """
    Thin wrapper over the Stripe calls the subscription purchase flow needs.
    Stripe errors (stripe.StripeError and subclasses) propagate to the caller.
    """

    def create_customer(self, user_id, name, email):
        """
        Creates a Stripe Customer for a user who has no billing identity yet.

        Returns:
            stripe.Customer: The created customer; its 'id' is stored as the user's billing_id.
        """
        return stripe.Customer.create(
            name=name,
            email=email or None, # Stripe rejects an empty string email.
            metadata={'user_id': str(user_id)}, # Link back to our user from the Stripe dashboard.
        )

    def create_payment_intent(self, amount, currency, customer_id, metadata, payment_method=None):
        """
        Creates a PaymentIntent the client confirms with Stripe.js.

        Args:
            amount (Decimal or float): Price in major units (converted to minor units here).
            currency (str): ISO currency code, e.g. 'usd'.
            customer_id (str): Stripe Customer ID.
            metadata (dict): Correlation data echoed back in webhook events. Values are stringified.
            payment_method (str, optional): A saved Stripe PaymentMethod ID to attach.

        Returns:
            stripe.PaymentIntent: Exposes 'id' and 'client_secret'.
        """
        params = {
            'amount': to_minor_units(amount, currency),
            'currency': currency,
            'customer': customer_id,
            'metadata': {key: str(value) for key, value in metadata.items() if value is not None},
            'automatic_payment_methods': {'enabled': True},
        }
        if payment_method:
            params['payment_method'] = payment_method
        return stripe.PaymentIntent.create(**params)
