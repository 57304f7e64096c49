from flask import current_app

from services.game_modes import GameModeCatalog
from services.entitlement import EntitlementEngine
from services.payment import StripePayment
from services.ledger import TransactionLedger
from services.subscription import SubscriptionService


def get_entitlement_engine():
    """Builds an EntitlementEngine from the current app's configuration."""
    config = current_app.config
    return EntitlementEngine(
        GameModeCatalog.from_config(config),
        default_players_limit=config.get('DEFAULT_PLAYERS_LIMIT', 4),
    )


def get_subscription_service():
    """Builds a SubscriptionService wired to Stripe and the payment ledger."""
    config = current_app.config
    return SubscriptionService(
        get_entitlement_engine(),
        StripePayment(),
        TransactionLedger(),
        currency=config.get('SUBSCRIPTION_CURRENCY', 'usd'),
        provider_name=config.get('PAYMENT_PROVIDER', 'stripe'),
    )
