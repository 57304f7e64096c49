import pytest
from models import Subscription, SubscriptionStatusEnum, UNLIMITED_GAMES
from services import get_entitlement_engine

@pytest.fixture
def engine(db):
    return get_entitlement_engine()

# --- can_play_game_mode ---

def test_free_mode_playable_without_subscription(engine, user):
    assert engine.can_play_game_mode(user.id, 'QUICK_GAME') is True
    assert engine.can_play_game_mode(user.id, 'GRID_STYLE') is True

def test_free_mode_does_not_query_subscriptions(engine, user, mocker):
    spy = mocker.patch.object(engine, 'find_active_subscription')
    assert engine.can_play_game_mode(user.id, 'QUICK_GAME') is True
    spy.assert_not_called()

def test_premium_mode_requires_subscription(engine, user):
    assert engine.can_play_game_mode(user.id, 'TOURNAMENT') is False

def test_unknown_mode_requires_subscription(engine, user):
    assert engine.can_play_game_mode(user.id, 'NOT_A_MODE') is False

def test_premium_mode_with_games_left(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=4) # 5 allowed
    assert engine.can_play_game_mode(user.id, 'TOURNAMENT') is True

def test_premium_mode_quota_exhausted(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=5)
    assert engine.can_play_game_mode(user.id, 'TOURNAMENT') is False

def test_unlimited_plan_never_exhausts(engine, user, make_plan, make_subscription):
    unlimited = make_plan(games_allowed=UNLIMITED_GAMES)
    make_subscription(user, unlimited, games_played_count=1000)
    assert engine.can_play_game_mode(user.id, 'SURVIVAL_MODE') is True

def test_any_active_subscription_grants_every_premium_mode(engine, user, make_plan, make_subscription):
    tournament_plan = make_plan(game_mode='TOURNAMENT')
    make_subscription(user, tournament_plan)
    assert engine.can_play_game_mode(user.id, 'MULTIPLAYER') is True

@pytest.mark.parametrize('status', [SubscriptionStatusEnum.PENDING, SubscriptionStatusEnum.CANCELLED, SubscriptionStatusEnum.FAILED])
def test_non_active_subscriptions_grant_nothing(engine, user, plan, make_subscription, status):
    make_subscription(user, plan, status=status)
    assert engine.has_active_subscription(user.id) is False
    assert engine.can_play_game_mode(user.id, 'TOURNAMENT') is False

def test_other_users_subscription_does_not_count(engine, make_user, plan, make_subscription):
    owner = make_user()
    other = make_user()
    make_subscription(owner, plan)
    assert engine.can_play_game_mode(other.id, 'TOURNAMENT') is False

# --- get_subscription_limits ---

def test_limits_without_subscription(engine, user):
    assert engine.get_subscription_limits(user.id) == {
        'has_subscription': False,
        'games_limit': 0,
        'games_played': 0,
        'games_remaining': 0,
        'questions_limit': 0,
        'players_limit': 4,
    }

def test_limits_with_subscription(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=2)
    limits = engine.get_subscription_limits(user.id)
    assert limits == {
        'has_subscription': True,
        'games_limit': 5,
        'games_played': 2,
        'games_remaining': 3,
        'questions_limit': 20,
        'players_limit': 10,
        'subscription_type': 'TOURNAMENT',
    }

def test_limits_unlimited_plan_reports_sentinel(engine, user, make_plan, make_subscription):
    unlimited = make_plan(games_allowed=UNLIMITED_GAMES)
    make_subscription(user, unlimited, games_played_count=7)
    limits = engine.get_subscription_limits(user.id)
    assert limits['games_limit'] == -1
    assert limits['games_remaining'] == -1
    assert limits['games_played'] == 7

def test_limits_overshoot_is_negative(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=6)
    assert engine.get_subscription_limits(user.id)['games_remaining'] == -1

def test_newest_active_subscription_is_used(engine, user, make_plan, make_subscription):
    older_plan = make_plan(game_mode='TOURNAMENT', players_allowed=6)
    newer_plan = make_plan(game_mode='MULTIPLAYER', players_allowed=12)
    make_subscription(user, older_plan)
    make_subscription(user, newer_plan)
    limits = engine.get_subscription_limits(user.id)
    assert limits['players_limit'] == 12
    assert limits['subscription_type'] == 'MULTIPLAYER'

# --- validate_game_creation ---

def test_validate_free_mode_always_valid(engine, user):
    assert engine.validate_game_creation(user.id, 'QUICK_GAME', max_players=100) == {'valid': True}

def test_validate_without_subscription(engine, user):
    result = engine.validate_game_creation(user.id, 'TOURNAMENT')
    assert result == {
        'valid': False,
        'message': 'Subscription required to play this game mode',
        'subscription_required': True,
    }

def test_validate_quota_exhausted(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=5)
    result = engine.validate_game_creation(user.id, 'TOURNAMENT', max_players=2)
    assert result['valid'] is False
    assert result['message'] == 'No games remaining in your subscription'
    assert result['subscription_required'] is False

def test_validate_quota_checked_before_players(engine, user, plan, make_subscription):
    make_subscription(user, plan, games_played_count=5)
    result = engine.validate_game_creation(user.id, 'TOURNAMENT', max_players=50)
    assert result['message'] == 'No games remaining in your subscription'

def test_validate_player_cap(engine, user, plan, make_subscription):
    make_subscription(user, plan)
    result = engine.validate_game_creation(user.id, 'TOURNAMENT', max_players=11)
    assert result == {
        'valid': False,
        'message': 'Your subscription allows maximum 10 players',
        'subscription_required': False,
    }

def test_validate_player_cap_boundary(engine, user, plan, make_subscription):
    make_subscription(user, plan)
    assert engine.validate_game_creation(user.id, 'TOURNAMENT', max_players=10) == {'valid': True}

def test_validate_without_max_players(engine, user, plan, make_subscription):
    make_subscription(user, plan)
    assert engine.validate_game_creation(user.id, 'TOURNAMENT') == {'valid': True}

def test_validate_unlimited_plan(engine, user, make_plan, make_subscription):
    unlimited = make_plan(games_allowed=UNLIMITED_GAMES)
    make_subscription(user, unlimited, games_played_count=500)
    assert engine.validate_game_creation(user.id, 'CUSTOM_QUIZ', max_players=3) == {'valid': True}

# --- increment_game_played ---

def test_increment_game_played(engine, db, user, plan, make_subscription):
    subscription = make_subscription(user, plan, games_played_count=1)
    assert engine.increment_game_played(user.id) is True
    db.session.expire_all()
    assert db.session.get(Subscription, subscription.id).games_played_count == 2

def test_increment_without_subscription_is_noop(engine, user):
    assert engine.increment_game_played(user.id) is False

def test_increment_ignores_non_active(engine, db, user, plan, make_subscription):
    subscription = make_subscription(user, plan, status=SubscriptionStatusEnum.CANCELLED, games_played_count=1)
    assert engine.increment_game_played(user.id) is False
    db.session.expire_all()
    assert db.session.get(Subscription, subscription.id).games_played_count == 1

def test_increment_does_not_stop_at_limit(engine, db, user, plan, make_subscription):
    subscription = make_subscription(user, plan, games_played_count=5)
    assert engine.increment_game_played(user.id) is True
    db.session.expire_all()
    assert db.session.get(Subscription, subscription.id).games_played_count == 6
    assert engine.can_play_game_mode(user.id, 'TOURNAMENT') is False

def test_repeated_increments_all_count(engine, db, user, plan, make_subscription):
    subscription = make_subscription(user, plan)
    for _ in range(3):
        engine.increment_game_played(user.id)
    db.session.expire_all()
    assert db.session.get(Subscription, subscription.id).games_played_count == 3
