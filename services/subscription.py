from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError # Raised when activation would break the one-active-per-plan index.

from extensions import db
from models.user import User
from models.subscription_plan import SubscriptionPlan
from models.subscription import Subscription, SubscriptionStatusEnum, PaymentStatusEnum
from models.payment_transaction import PaymentTransaction
from utils.errors import NotFoundError, BadRequestError, ConflictError
from utils.helpers import pagination_meta, SORTABLE_SUBSCRIPTION_FIELDS


class SubscriptionService:
    """
    Subscription lifecycle: purchase through the payment provider, payment
    webhooks, cancellation, and the user/admin read views built on top of
    the entitlement engine.

    User-facing methods return {'success', 'message', 'data'} envelopes or raise
    NotFoundError / BadRequestError / ConflictError.
    """

    def __init__(self, entitlements, payment_provider, ledger, currency='usd', provider_name='stripe'):
        """
        Args:
            entitlements (EntitlementEngine): Read-side quota checks.
            payment_provider (StripePayment): Creates customers and payment intents.
            ledger (TransactionLedger): Writes payment ledger rows.
            currency (str): Currency purchases are charged in.
            provider_name (str): Recorded on subscriptions and ledger rows.
        """
        self.entitlements = entitlements
        self.payment_provider = payment_provider
        self.ledger = ledger
        self.currency = currency
        self.provider_name = provider_name

    # --- Catalog and read views ---

    def get_subscription_types(self, language_id=None):
        """Active plans, cheapest first, optionally restricted to one language."""
        query = SubscriptionPlan.query.filter_by(status=SubscriptionPlan.STATUS_ACTIVE)
        if language_id:
            query = query.filter_by(language_id=language_id)
        plans = query.order_by(SubscriptionPlan.price.asc(), SubscriptionPlan.id.asc()).all()
        return {
            'success': True,
            'message': 'Subscription types retrieved successfully',
            'data': [plan.to_dict() for plan in plans],
        }

    def get_user_subscriptions(self, user_id, game_mode=None):
        """All of the user's subscriptions (any status), newest first, optionally for one game mode."""
        query = Subscription.query.filter(Subscription.user_id == user_id)
        if game_mode:
            query = query.join(SubscriptionPlan, Subscription.subscription_type_id == SubscriptionPlan.id)\
                .filter(SubscriptionPlan.game_mode == game_mode)
        subscriptions = query.order_by(Subscription.created_at.desc(), Subscription.id.desc()).all()

        label = game_mode.replace('_', ' ') if game_mode else None
        if not subscriptions:
            return {
                'success': False,
                'message': f'No subscriptions found for {label}.' if label else 'No subscriptions found.',
                'data': [],
            }
        return {
            'success': True,
            'message': f'{label} subscriptions retrieved successfully' if label else 'Subscriptions retrieved successfully',
            'data': [subscription.to_dict() for subscription in subscriptions],
        }

    def get_subscription_status(self, user_id):
        """Summary of the user's newest active subscription; data is None when there is none."""
        subscription = self.entitlements.find_active_subscription(user_id)
        if subscription is None:
            return {'success': True, 'message': 'No active subscription found', 'data': None}

        plan = subscription.plan
        games_remaining = subscription.games_remaining # None on unlimited plans.
        data = {
            'subscription_id': subscription.id,
            'status': subscription.status.value,
            'is_active': subscription.status == SubscriptionStatusEnum.ACTIVE,
            'can_play_games': games_remaining is None or games_remaining > 0,
            'games_remaining': games_remaining,
            'subscription_type': {
                'id': plan.id,
                'game_mode': plan.game_mode,
                'games_allowed': plan.games_allowed,
                'questions_allowed': plan.questions_allowed,
                'players_allowed': plan.players_allowed,
            },
        }
        return {'success': True, 'message': 'Subscription status retrieved successfully', 'data': data}

    def get_subscription_by_id(self, user_id, subscription_id):
        """One of the user's subscriptions. Another user's subscription is reported as not found."""
        subscription = Subscription.query.filter_by(id=subscription_id, user_id=user_id).first()
        if subscription is None:
            raise NotFoundError('Subscription not found')
        return {'success': True, 'message': 'Subscription retrieved successfully', 'data': subscription.to_dict()}

    def get_subscription_limits(self, user_id):
        return {
            'success': True,
            'message': 'Subscription limits retrieved successfully',
            'data': self.entitlements.get_subscription_limits(user_id),
        }

    def can_user_play_game(self, user_id, game_mode):
        if self.entitlements.catalog.is_free(game_mode):
            return {
                'success': True,
                'message': 'User can play this game mode',
                'data': {'can_play': True, 'game_mode': game_mode, 'requires_subscription': False},
            }

        can_play = self.entitlements.can_play_game_mode(user_id, game_mode)
        return {
            'success': True,
            'message': 'User can play this game mode' if can_play else 'User cannot play this game mode',
            'data': {'can_play': can_play, 'game_mode': game_mode, 'requires_subscription': True},
        }

    def validate_game_creation(self, user_id, game_mode, max_players=None):
        return self.entitlements.validate_game_creation(user_id, game_mode, max_players)

    def increment_game_played(self, user_id):
        return self.entitlements.increment_game_played(user_id)

    # --- Purchase ---

    def purchase_subscription(self, user_id, plan_id, payment_method=None, promo_code=None):
        """
        Starts a subscription purchase and returns the PaymentIntent details the client confirms.

        The subscription row is committed as pending/pending before Stripe is
        contacted, so a record exists even when intent creation fails; in that
        case it is marked failed/failed and a generic BadRequestError is raised.
        On success the user's account type becomes 'host'.

        Args:
            user_id (int): Purchasing user.
            plan_id (int): SubscriptionPlan to buy.
            payment_method (str, optional): Saved Stripe PaymentMethod ID.
            promo_code (str, optional): Recorded in the intent metadata; not applied to the price.

        Raises:
            NotFoundError: Unknown plan or user.
            BadRequestError: Plan not active, or the payment provider failed.
            ConflictError: The user already has an active subscription to this plan.
        """
        # Lock the user row first so two purchases by the same user run the
        # duplicate check and insert one after the other.
        user = db.session.get(User, user_id, with_for_update=True)

        plan = db.session.get(SubscriptionPlan, plan_id)
        if plan is None:
            raise NotFoundError('Subscription type not found')
        if not plan.is_active:
            raise BadRequestError('Subscription type is not available')

        existing = Subscription.query.filter_by(
            user_id=user_id,
            subscription_type_id=plan.id,
            status=SubscriptionStatusEnum.ACTIVE,
        ).first()
        if existing is not None:
            raise ConflictError('User already has an active subscription of this type')

        if user is None:
            raise NotFoundError('User not found')

        subscription = Subscription(
            user_id=user.id,
            subscription_type_id=plan.id,
            status=SubscriptionStatusEnum.PENDING,
            payment_status=PaymentStatusEnum.PENDING,
            payment_provider=self.provider_name,
        )
        db.session.add(subscription)
        db.session.commit()
        current_app.logger.info(f"Created pending subscription {subscription.id} for user {user.id}, plan {plan.id}.")

        amount = plan.price
        currency = self.currency
        try:
            customer_id = user.billing_id
            if not customer_id:
                customer = self.payment_provider.create_customer(
                    user_id=user.id,
                    name=user.name or 'Unknown',
                    email=user.email or '',
                )
                customer_id = customer['id']
                user.billing_id = customer_id
                db.session.commit() # Keep the customer link even if the intent below fails.
                current_app.logger.info(f"Created billing customer {customer_id} for user {user.id}.")

            payment_intent = self.payment_provider.create_payment_intent(
                amount=amount,
                currency=currency,
                customer_id=customer_id,
                metadata={
                    'subscription_id': subscription.id,
                    'user_id': user.id,
                    'subscription_type_id': plan.id,
                    'game_mode': plan.game_mode,
                    'promo_code': promo_code,
                },
                payment_method=payment_method,
            )

            subscription.payment_reference_number = payment_intent['id']
            self.ledger.create_subscription_transaction(
                subscription_id=subscription.id,
                user_id=user.id,
                amount=amount,
                currency=currency,
                reference_number=payment_intent['id'],
                status='pending',
                provider=self.provider_name,
            )
            user.type = User.TYPE_HOST
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            subscription.status = SubscriptionStatusEnum.FAILED
            subscription.payment_status = PaymentStatusEnum.FAILED
            db.session.commit()
            current_app.logger.error(f"Error creating payment intent for subscription {subscription.id} (user {user_id}, plan {plan_id}): {e}", exc_info=True)
            raise BadRequestError('Failed to create payment intent')

        current_app.logger.info(f"Payment intent {payment_intent['id']} created for subscription {subscription.id}.")
        data = {
            'client_secret': payment_intent['client_secret'],
            'subscription_id': subscription.id,
            'payment_intent_id': payment_intent['id'],
            'amount': float(amount),
            'currency': currency,
            'status': SubscriptionStatusEnum.PENDING.value,
        }
        return {
            'success': True,
            'message': 'Payment intent created successfully. Complete payment to activate subscription.',
            'data': data,
        }

    # --- Payment webhooks ---

    def handle_payment_success(self, payment_reference, paid_amount=None, paid_currency=None, raw_status=None):
        """
        Activates the subscription whose payment_reference_number matches.

        Safe to replay. Unknown references are logged and ignored. A cancelled
        subscription is never reactivated. A failed one is: Stripe lets a
        PaymentIntent be confirmed again after a failed attempt, so a later
        success for the same reference moves failed -> active.

        Returns:
            Subscription or None: The subscription touched, if any.
        """
        subscription = Subscription.query.filter_by(payment_reference_number=payment_reference).first()
        if subscription is None:
            current_app.logger.warning(f"Payment success: no subscription found for payment intent {payment_reference}.")
            return None
        if subscription.status == SubscriptionStatusEnum.CANCELLED:
            current_app.logger.warning(f"Payment success: subscription {subscription.id} is cancelled; not reactivating.")
            return subscription

        try:
            # pending -> active, or failed -> active on a retried intent.
            subscription.status = SubscriptionStatusEnum.ACTIVE
            subscription.payment_status = PaymentStatusEnum.COMPLETED
            if paid_amount is not None:
                subscription.paid_amount = paid_amount
            if paid_currency:
                subscription.paid_currency = paid_currency
            if raw_status:
                subscription.payment_raw_status = raw_status
            self.ledger.update_transaction(payment_reference, status=PaymentStatusEnum.COMPLETED.value,
                                           paid_amount=paid_amount, paid_currency=paid_currency, raw_status=raw_status)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            current_app.logger.error(f"Payment success: subscription for payment intent {payment_reference} not activated, "
                                     f"the user already has an active subscription to this plan: {e}")
            return None

        current_app.logger.info(f"Subscription {subscription.id} activated by payment intent {payment_reference}.")
        return subscription

    def handle_payment_failed(self, payment_reference, raw_status=None):
        """
        Marks the subscription whose payment_reference_number matches as failed.
        Same replay and unknown-reference behaviour as handle_payment_success.
        """
        subscription = Subscription.query.filter_by(payment_reference_number=payment_reference).first()
        if subscription is None:
            current_app.logger.warning(f"Payment failure: no subscription found for payment intent {payment_reference}.")
            return None
        if subscription.status == SubscriptionStatusEnum.CANCELLED:
            current_app.logger.info(f"Payment failure: subscription {subscription.id} already cancelled; leaving as is.")
            return subscription

        subscription.status = SubscriptionStatusEnum.FAILED
        subscription.payment_status = PaymentStatusEnum.FAILED
        if raw_status:
            subscription.payment_raw_status = raw_status
        self.ledger.update_transaction(payment_reference, status=PaymentStatusEnum.FAILED.value, raw_status=raw_status)
        db.session.commit()
        current_app.logger.info(f"Subscription {subscription.id} marked failed by payment intent {payment_reference}.")
        return subscription

    # --- Cancellation ---

    def cancel_subscription(self, user_id, subscription_id, reason=None):
        """
        Cancels one of the user's own subscriptions.

        Raises:
            NotFoundError: No such subscription for this user (including other users' subscriptions).
            BadRequestError: Already cancelled.
        """
        subscription = Subscription.query.filter_by(id=subscription_id, user_id=user_id).first()
        if subscription is None:
            raise NotFoundError('Subscription not found')
        return self._cancel(subscription, reason)

    def admin_cancel_subscription(self, subscription_id, reason=None):
        subscription = db.session.get(Subscription, subscription_id)
        if subscription is None:
            raise NotFoundError('Subscription not found')
        return self._cancel(subscription, reason)

    def _cancel(self, subscription, reason):
        if subscription.status == SubscriptionStatusEnum.CANCELLED:
            raise BadRequestError('Subscription is already cancelled')

        previous_status = subscription.status
        subscription.status = SubscriptionStatusEnum.CANCELLED
        subscription.updated_at = datetime.utcnow()
        db.session.commit()
        current_app.logger.info(f"Subscription {subscription.id} (user {subscription.user_id}) cancelled from '{previous_status.value}'. Reason: {reason or 'n/a'}")

        # The reason is echoed back only; it is not stored.
        message = 'Subscription cancelled successfully'
        if reason:
            message = f'{message}. Reason: {reason}'
        return {'success': True, 'message': message, 'data': subscription.to_dict()}

    # --- Admin reporting ---

    def list_subscriptions(self, search=None, page=1, limit=10, sort='created_at', order='desc', status=None):
        """Paginated listing of subscriptions with a completed payment, for the admin panel."""
        query = Subscription.query\
            .join(User, Subscription.user_id == User.id)\
            .join(SubscriptionPlan, Subscription.subscription_type_id == SubscriptionPlan.id)\
            .filter(Subscription.payment_status == PaymentStatusEnum.COMPLETED)

        if status:
            try:
                query = query.filter(Subscription.status == SubscriptionStatusEnum(status))
            except ValueError:
                raise BadRequestError(f'Unknown subscription status: {status}')

        if search:
            pattern = f'%{search}%'
            query = query.filter(or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.username.ilike(pattern),
                SubscriptionPlan.game_mode.ilike(pattern),
            ))

        total = query.count()

        if sort == 'name':
            sort_column = User.name
        elif sort == 'email':
            sort_column = User.email
        elif sort in SORTABLE_SUBSCRIPTION_FIELDS:
            sort_column = getattr(Subscription, sort)
        else:
            sort_column = Subscription.created_at
        sort_clause = sort_column.asc() if order == 'asc' else sort_column.desc()

        subscriptions = query.order_by(sort_clause, Subscription.id.desc())\
            .offset((page - 1) * limit).limit(limit).all()

        data = [{
            'subscription_id': sub.id,
            'subscription_status': sub.status.value,
            'games_played_count': sub.games_played_count,
            'payment_status': sub.payment_status.value if sub.payment_status else None,
            'payment_provider': sub.payment_provider,
            'paid_amount': float(sub.paid_amount) if sub.paid_amount is not None else None,
            'paid_currency': sub.paid_currency,
            'subscription_created_at': sub.created_at.isoformat() if sub.created_at else None,
            'subscription_updated_at': sub.updated_at.isoformat() if sub.updated_at else None,
            'user': sub.user.to_summary(),
            'subscription_type': sub.plan.to_dict(),
        } for sub in subscriptions]

        return {
            'success': True,
            'message': 'Subscribed users retrieved successfully',
            'data': data,
            'pagination': pagination_meta(total, page, limit),
        }

    def get_user_subscriptions_for_admin(self, user_id):
        """
        Every subscription of one user, newest first, with the user summary,
        the plan and the subscription's ledger rows (newest first).
        """
        subscriptions = Subscription.query.filter(Subscription.user_id == user_id)\
            .order_by(Subscription.created_at.desc(), Subscription.id.desc()).all()
        if not subscriptions:
            return {'success': False, 'message': 'No subscriptions found for this user', 'data': None}

        data = [{
            'subscription_id': sub.id,
            'subscription_status': sub.status.value,
            'games_played_count': sub.games_played_count,
            'payment_status': sub.payment_status.value if sub.payment_status else None,
            'payment_provider': sub.payment_provider,
            'paid_amount': float(sub.paid_amount) if sub.paid_amount is not None else None,
            'paid_currency': sub.paid_currency,
            'subscription_created_at': sub.created_at.isoformat() if sub.created_at else None,
            'subscription_updated_at': sub.updated_at.isoformat() if sub.updated_at else None,
            'user': sub.user.to_summary(),
            'subscription_type': sub.plan.to_dict(),
            'payment_transactions': [
                transaction.to_dict() for transaction in sub.payment_transactions.order_by(
                    PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
            ],
        } for sub in subscriptions]

        return {'success': True, 'message': 'User subscriptions retrieved successfully', 'data': data}

    def get_subscription_stats(self):
        """Counts per status, revenue from active subscriptions, and active counts per plan."""
        counts = dict(
            db.session.query(Subscription.status, func.count(Subscription.id))
            .group_by(Subscription.status).all()
        )
        revenue = db.session.query(func.coalesce(func.sum(Subscription.paid_amount), 0))\
            .filter(Subscription.status == SubscriptionStatusEnum.ACTIVE).scalar()
        by_plan = db.session.query(Subscription.subscription_type_id, func.count(Subscription.id))\
            .filter(Subscription.status == SubscriptionStatusEnum.ACTIVE)\
            .group_by(Subscription.subscription_type_id).all()

        data = {
            'total_subscriptions': sum(counts.values()),
            'active_subscriptions': counts.get(SubscriptionStatusEnum.ACTIVE, 0),
            'cancelled_subscriptions': counts.get(SubscriptionStatusEnum.CANCELLED, 0),
            'pending_subscriptions': counts.get(SubscriptionStatusEnum.PENDING, 0),
            'failed_subscriptions': counts.get(SubscriptionStatusEnum.FAILED, 0),
            'total_revenue': float(revenue or 0),
            'subscriptions_by_type': [
                {'subscription_type_id': plan_id, 'count': count} for plan_id, count in by_plan
            ],
        }
        return {'success': True, 'message': 'Subscription statistics retrieved successfully', 'data': data}
