from flask import current_app

from extensions import db
from models.subscription import Subscription, SubscriptionStatusEnum


class EntitlementEngine:
    """
    Read-side entitlement checks: which game modes a user may play and how much
    of their subscription quota is left.

    "Active subscription" here always means any active subscription the user
    holds, whatever plan or game mode it was bought for. When several are
    active the newest one is used.
    """

    def __init__(self, catalog, default_players_limit=4):
        """
        Args:
            catalog (GameModeCatalog): Free/premium split of game modes.
            default_players_limit (int): Player cap reported to users without a subscription.
        """
        self.catalog = catalog
        self.default_players_limit = default_players_limit

    def find_active_subscription(self, user_id):
        """Returns the user's newest active Subscription (plan eagerly loaded), or None."""
        return Subscription.query.filter_by(
            user_id=user_id,
            status=SubscriptionStatusEnum.ACTIVE,
        ).order_by(Subscription.created_at.desc(), Subscription.id.desc()).first()

    def has_active_subscription(self, user_id):
        return self.find_active_subscription(user_id) is not None

    def can_play_game_mode(self, user_id, game_mode):
        """
        Checks whether the user may start a game in `game_mode`.

        Free modes are always playable and never touch the database. Premium
        (and unknown) modes need an active subscription with games left, or
        one on an unlimited plan.
        """
        if self.catalog.is_free(game_mode):
            return True

        subscription = self.find_active_subscription(user_id)
        if subscription is None:
            return False

        return self._has_games_left(subscription)

    def get_subscription_limits(self, user_id):
        """
        Snapshot of the user's quota.

        Returns:
            dict: has_subscription, games_limit, games_played, games_remaining,
                  questions_limit, players_limit and, when subscribed, subscription_type.
                  games_remaining is -1 on unlimited plans and is not clamped at zero
                  otherwise, so an overshot quota shows up as a negative number.
        """
        subscription = self.find_active_subscription(user_id)
        if subscription is None:
            return {
                'has_subscription': False,
                'games_limit': 0,
                'games_played': 0,
                'games_remaining': 0,
                'questions_limit': 0,
                'players_limit': self.default_players_limit,
            }

        plan = subscription.plan
        if plan.is_unlimited:
            games_remaining = plan.games_allowed # The sentinel itself (-1).
        else:
            games_remaining = plan.games_allowed - subscription.games_played_count

        return {
            'has_subscription': True,
            'games_limit': plan.games_allowed,
            'games_played': subscription.games_played_count,
            'games_remaining': games_remaining,
            'questions_limit': plan.questions_allowed,
            'players_limit': plan.players_allowed,
            'subscription_type': plan.game_mode,
        }

    def validate_game_creation(self, user_id, game_mode, max_players=None):
        """
        Validates a game-creation request against the user's subscription.

        Checks run in a fixed order and the first failure is returned:
        free mode, subscription exists, games left, player cap.

        Returns:
            dict: {'valid': True} or {'valid': False, 'message': ..., 'subscription_required': bool}.
        """
        if self.catalog.is_free(game_mode):
            return {'valid': True}

        subscription = self.find_active_subscription(user_id)
        if subscription is None:
            return {
                'valid': False,
                'message': 'Subscription required to play this game mode',
                'subscription_required': True,
            }

        if not self._has_games_left(subscription):
            return {
                'valid': False,
                'message': 'No games remaining in your subscription',
                'subscription_required': False,
            }

        players_allowed = subscription.plan.players_allowed
        if max_players is not None and max_players > players_allowed:
            return {
                'valid': False,
                'message': f'Your subscription allows maximum {players_allowed} players',
                'subscription_required': False,
            }

        return {'valid': True}

    def increment_game_played(self, user_id):
        """
        Counts one finished game against the user's newest active subscription.

        The increment is a single conditional UPDATE so concurrent calls cannot
        lose counts, and it only applies while that subscription is still active.
        No limit check: overshoot is detected by the read-side checks.
        Callers must invoke this once per completed game.

        Returns:
            bool: True if a subscription was incremented, False if the user had none active.
        """
        subscription = self.find_active_subscription(user_id)
        if subscription is None:
            current_app.logger.info(f"No active subscription to count a game against for user {user_id}.")
            return False

        updated = Subscription.query.filter(
            Subscription.id == subscription.id,
            Subscription.status == SubscriptionStatusEnum.ACTIVE,
        ).update(
            {Subscription.games_played_count: Subscription.games_played_count + 1},
            synchronize_session=False,
        )
        db.session.commit()

        if not updated:
            current_app.logger.warning(f"Subscription {subscription.id} for user {user_id} left 'active' before its game count could be incremented.")
        return bool(updated)

    @staticmethod
    def _has_games_left(subscription):
        plan = subscription.plan
        return plan.is_unlimited or plan.games_allowed - subscription.games_played_count > 0
