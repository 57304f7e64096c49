from extensions import db
from models.payment_transaction import PaymentTransaction


class TransactionLedger:
    """
    Writes payment ledger rows. Rows are added to the current session;
    committing is left to the caller so the ledger write shares its transaction.
    """

    def create_subscription_transaction(self, subscription_id, user_id, amount, currency='usd',
                                        reference_number=None, status='pending', provider='stripe'):
        transaction = PaymentTransaction(
            user_id=user_id,
            subscription_id=subscription_id,
            type=PaymentTransaction.TYPE_SUBSCRIPTION,
            amount=amount,
            currency=currency,
            reference_number=reference_number,
            status=status,
            provider=provider,
        )
        db.session.add(transaction)
        return transaction

    def update_transaction(self, reference_number, status, paid_amount=None, paid_currency=None, raw_status=None):
        """
        Updates every ledger row carrying `reference_number`.

        Returns:
            int: Number of rows updated (0 when the reference is unknown).
        """
        values = {PaymentTransaction.status: status}
        if paid_amount is not None:
            values[PaymentTransaction.paid_amount] = paid_amount
        if paid_currency:
            values[PaymentTransaction.paid_currency] = paid_currency
        if raw_status:
            values[PaymentTransaction.raw_status] = raw_status

        return PaymentTransaction.query.filter_by(reference_number=reference_number).update(
            values, synchronize_session=False,
        )
