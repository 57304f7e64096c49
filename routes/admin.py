from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user

from forms import CancelSubscriptionForm
from services import get_subscription_service
from utils.decorators import admin_required
from utils.helpers import parse_pagination

# Blueprint for admin subscription management.
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


@admin_bp.route('/subscriptions', methods=['GET'])
@admin_required
def list_subscriptions():
    """
    Paginated list of subscriptions with a completed payment.
    Query params: page, limit, sort, order, search, status.
    """
    params, error = parse_pagination(request.args)
    if error:
        return jsonify(error[0]), error[1]

    result = get_subscription_service().list_subscriptions(
        search=request.args.get('search') or None,
        status=request.args.get('status') or None,
        **params,
    )
    return jsonify(result)


@admin_bp.route('/subscriptions/stats', methods=['GET'])
@admin_required
def subscription_stats():
    return jsonify(get_subscription_service().get_subscription_stats())


@admin_bp.route('/subscriptions/user/<int:user_id>', methods=['GET'])
@admin_required
def user_subscriptions(user_id):
    """All subscriptions of one user with their ledger rows."""
    return jsonify(get_subscription_service().get_user_subscriptions_for_admin(user_id))


@admin_bp.route('/subscriptions/<int:subscription_id>/cancel', methods=['PUT'])
@admin_required
def cancel_subscription(subscription_id):
    form = CancelSubscriptionForm()
    if not form.validate():
        return jsonify({'success': False, 'message': 'Validation failed', 'errors': form.errors}), 400

    current_app.logger.info(f"Admin {current_user.id} cancelling subscription {subscription_id}.")
    result = get_subscription_service().admin_cancel_subscription(subscription_id, reason=form.reason.data or None)
    return jsonify(result)
