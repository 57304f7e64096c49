from .user import User
from .subscription_plan import SubscriptionPlan, UNLIMITED_GAMES
from .subscription import Subscription, SubscriptionStatusEnum, PaymentStatusEnum
from .payment_transaction import PaymentTransaction
