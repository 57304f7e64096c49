from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from forms import PurchaseSubscriptionForm, CancelSubscriptionForm, ValidateGameForm
from services import get_subscription_service

# Blueprint for the user-facing subscription API.
# Every route acts on the logged-in user; IDs of other users are never accepted.
subscription_bp = Blueprint('subscription', __name__, url_prefix='/subscription')


def _validation_error(form):
    """400 response listing the form's field errors."""
    return jsonify({'success': False, 'message': 'Validation failed', 'errors': form.errors}), 400


@subscription_bp.route('/types', methods=['GET'])
@login_required
def list_subscription_types():
    """Active plans, optionally filtered by ?language_id=."""
    language_id = request.args.get('language_id')
    return jsonify(get_subscription_service().get_subscription_types(language_id=language_id))


@subscription_bp.route('/my-subscriptions', methods=['GET'])
@login_required
def my_subscriptions():
    """
    The current user's subscriptions, newest first.
    Optional ?game_mode= restricts the list to plans of that mode.
    """
    game_mode = request.args.get('game_mode')
    return jsonify(get_subscription_service().get_user_subscriptions(current_user.id, game_mode=game_mode))


@subscription_bp.route('/status', methods=['GET'])
@login_required
def subscription_status():
    return jsonify(get_subscription_service().get_subscription_status(current_user.id))


@subscription_bp.route('/limits', methods=['GET'])
@login_required
def subscription_limits():
    return jsonify(get_subscription_service().get_subscription_limits(current_user.id))


@subscription_bp.route('/purchase', methods=['POST'])
@login_required
def purchase_subscription():
    """
    Starts a purchase and returns the Stripe PaymentIntent client secret.
    The subscription becomes active only when the payment webhook arrives.
    """
    form = PurchaseSubscriptionForm()
    if not form.validate():
        return _validation_error(form)

    result = get_subscription_service().purchase_subscription(
        current_user.id,
        form.subscription_type_id.data,
        payment_method=form.payment_method_id.data or None,
        promo_code=form.promo_code.data or None,
    )
    return jsonify(result), 201


@subscription_bp.route('/cancel', methods=['PUT'])
@login_required
def cancel_subscription():
    form = CancelSubscriptionForm()
    if not form.validate():
        return _validation_error(form)
    if form.subscription_id.data is None:
        return jsonify({'success': False, 'message': 'Validation failed',
                        'errors': {'subscription_id': ['subscription_id is required.']}}), 400

    result = get_subscription_service().cancel_subscription(
        current_user.id,
        form.subscription_id.data,
        reason=form.reason.data or None,
    )
    return jsonify(result)


@subscription_bp.route('/can-play/<game_mode>', methods=['GET'])
@login_required
def can_play(game_mode):
    return jsonify(get_subscription_service().can_user_play_game(current_user.id, game_mode))


@subscription_bp.route('/validate-game', methods=['POST'])
@login_required
def validate_game():
    """
    Pre-flight check before a game is created.
    Returns 200 when the game may be created and 403 with the first failing reason otherwise.
    """
    form = ValidateGameForm()
    if not form.validate():
        return _validation_error(form)

    result = get_subscription_service().validate_game_creation(
        current_user.id,
        form.game_mode.data,
        max_players=form.max_players.data,
    )
    if not result['valid']:
        current_app.logger.info(f"Game creation refused for user {current_user.id} ({form.game_mode.data}): {result['message']}")
        return jsonify({'success': False, 'message': result['message'], 'data': result}), 403
    return jsonify({'success': True, 'message': 'Game creation allowed', 'data': result})


@subscription_bp.route('/<int:subscription_id>', methods=['GET'])
@login_required
def get_subscription(subscription_id):
    return jsonify(get_subscription_service().get_subscription_by_id(current_user.id, subscription_id))
