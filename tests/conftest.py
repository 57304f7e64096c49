from decimal import Decimal

import pytest
from flask_login import FlaskLoginClient
from app import create_app
from config import Config
from extensions import db as _db # Alias to avoid fixture name conflict
from models import User, SubscriptionPlan, Subscription, SubscriptionStatusEnum, PaymentStatusEnum

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:' # Use in-memory SQLite for tests
    WTF_CSRF_ENABLED = False # Disable CSRF for form testing convenience
    SECRET_KEY = 'test-secret-key-for-forms' # Flask-Login requires a SECRET_KEY for session context
    STRIPE_SECRET_KEY = 'sk_test_dummy'
    STRIPE_WEBHOOK_SECRET = 'whsec_test_dummy'
    FREE_GAME_MODES = ('QUICK_GAME', 'GRID_STYLE')
    PREMIUM_GAME_MODES = ('TOURNAMENT', 'MULTIPLAYER', 'CUSTOM_QUIZ', 'TIMED_CHALLENGE', 'SURVIVAL_MODE')
    DEFAULT_PLAYERS_LIMIT = 4

@pytest.fixture(scope='session')
def app():
    """
    Session-wide test Flask application.
    Ensures the app is created once per test session with TestConfig.
    test_client_class is FlaskLoginClient so tests can do app.test_client(user=...).
    """
    app_instance = create_app(config_class=TestConfig)
    app_instance.test_client_class = FlaskLoginClient
    return app_instance

@pytest.fixture(scope='function')
def app_context(app):
    """
    Function-scoped application context.
    Pushes an app context before each test that needs it and pops it afterwards.
    """
    with app.app_context():
        yield

@pytest.fixture(scope='function')
def db(app_context): # db fixture depends on app_context
    """
    Function-scoped database fixture.
    Creates all database tables before each test and drops them afterwards.
    """
    _db.create_all() # Create tables based on models
    yield _db          # Provide the database session/object to the test
    _db.session.remove() # Ensure session is closed
    _db.drop_all()     # Drop all tables to clean up

@pytest.fixture(scope='function')
def client(app, db):
    """Anonymous test client."""
    return app.test_client()

# --- Factories ---
# Each returns a callable so a test can build as many rows as it needs.

@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make_user(**overrides):
        counter['n'] += 1
        fields = {
            'name': f"Player {counter['n']}",
            'username': f"player{counter['n']}",
            'email': f"player{counter['n']}@example.com",
            'type': User.TYPE_USER,
        }
        fields.update(overrides)
        user = User(**fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user

@pytest.fixture
def make_plan(db):
    def _make_plan(**overrides):
        fields = {
            'title': 'Premium',
            'game_mode': 'TOURNAMENT',
            'games_allowed': 5,
            'questions_allowed': 20,
            'players_allowed': 10,
            'price': Decimal('9.99'),
            'status': SubscriptionPlan.STATUS_ACTIVE,
        }
        fields.update(overrides)
        plan = SubscriptionPlan(**fields)
        db.session.add(plan)
        db.session.commit()
        return plan
    return _make_plan

@pytest.fixture
def make_subscription(db):
    def _make_subscription(user, plan, **overrides):
        fields = {
            'user_id': user.id,
            'subscription_type_id': plan.id,
            'status': SubscriptionStatusEnum.ACTIVE,
            'payment_status': PaymentStatusEnum.COMPLETED,
            'payment_provider': 'stripe',
            'games_played_count': 0,
        }
        fields.update(overrides)
        subscription = Subscription(**fields)
        db.session.add(subscription)
        db.session.commit()
        return subscription
    return _make_subscription

@pytest.fixture
def user(make_user):
    return make_user()

@pytest.fixture
def admin(make_user):
    return make_user(type=User.TYPE_ADMIN, name='Admin', username='admin', email='admin@example.com')

@pytest.fixture
def plan(make_plan):
    return make_plan()
