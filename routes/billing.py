from flask import Blueprint, request, current_app, jsonify
import stripe # Import the Stripe Python library

from services import get_subscription_service
from services.payment import from_minor_units

# Blueprint for payment-provider callbacks.
billing_bp = Blueprint('billing', __name__, url_prefix='/billing')

# Note: stripe.api_key is assigned from app.config['STRIPE_SECRET_KEY'] in create_app.
# STRIPE_WEBHOOK_SECRET is the signing secret of the webhook endpoint configured in the Stripe dashboard.


@billing_bp.route('/stripe-webhook', methods=['POST'])
def stripe_webhook():
    """
    Handles PaymentIntent webhooks from Stripe.
    Must be publicly accessible (no @login_required); authenticity is established
    by verifying the Stripe signature.

    payment_intent.succeeded activates the matching subscription,
    payment_intent.payment_failed marks it failed. Every other event type is
    acknowledged with 200 so Stripe does not retry it.
    """
    # Retrieve the raw request body and the Stripe-Signature header.
    payload = request.data
    sig_header = request.headers.get('Stripe-Signature')

    # --- Webhook Signature Verification ---
    try:
        event = stripe.Webhook.construct_event(
            payload, sig_header, current_app.config['STRIPE_WEBHOOK_SECRET']
        )
    except ValueError as e:
        # Invalid payload (e.g., not valid JSON).
        current_app.logger.error(f"Webhook ValueError: Invalid payload - {e}")
        return jsonify({'success': False, 'message': 'Invalid payload'}), 400
    except stripe.SignatureVerificationError as e:
        # Invalid signature - spoofed request or misconfigured webhook secret.
        current_app.logger.error(f"Webhook SignatureVerificationError: {e}")
        return jsonify({'success': False, 'message': 'Invalid signature'}), 400

    event_id = event.get('id', 'unknown_event_id')
    event_type = event['type']
    current_app.logger.info(f"Stripe Webhook Event ID {event_id}: Received event type '{event_type}'.")

    service = get_subscription_service()

    # Event: 'payment_intent.succeeded'
    # The purchase started by POST /subscription/purchase was paid.
    if event_type == 'payment_intent.succeeded':
        intent = event['data']['object']
        currency = intent.get('currency')
        amount_received = intent.get('amount_received')
        paid_amount = from_minor_units(amount_received, currency) if amount_received is not None and currency else None
        service.handle_payment_success(
            intent['id'],
            paid_amount=paid_amount,
            paid_currency=currency,
            raw_status=intent.get('status'),
        )

    # Event: 'payment_intent.payment_failed'
    # The payment attempt was declined or errored.
    elif event_type == 'payment_intent.payment_failed':
        intent = event['data']['object']
        service.handle_payment_failed(intent['id'], raw_status=intent.get('status'))

    else:
        current_app.logger.info(f"Stripe Webhook Event ID {event_id}: Unhandled event type '{event_type}'.")

    # Acknowledge receipt so Stripe stops retrying.
    return jsonify({'success': True, 'received': True}), 200
