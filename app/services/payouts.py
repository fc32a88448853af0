"""
Payout gateway for bonus transfers.

Stripe Connect transfers are used when a secret key is configured and the
cleaner has a connected account. Without them the transfer is logged and
treated as sent, so local environments can exercise the whole flow.
"""

import logging
from decimal import Decimal

from flask import current_app

logger = logging.getLogger(__name__)


class PayoutGateway:
    """Interface: move `amount` to `destination`, return True on success"""

    def transfer(self, destination, amount, metadata=None, idempotency_key=None):
        raise NotImplementedError


class StripePayoutGateway(PayoutGateway):

    def __init__(self, api_key=None, currency=None):
        self._api_key = api_key
        self._currency = currency
        self._stripe = None

    def _get_stripe(self):
        if self._stripe is None:
            import stripe
            stripe.api_key = self._api_key or current_app.config.get('STRIPE_SECRET_KEY', '')
            self._stripe = stripe
        return self._stripe

    def transfer(self, destination, amount, metadata=None, idempotency_key=None):
        """
        Send a payout.

        Args:
            destination: PayoutDetails of the cleaner
            amount: Decimal amount in currency units
            metadata (dict): Extra data attached to the transfer
            idempotency_key (str): Key that makes a retried transfer a no-op

        Returns:
            bool: True when the transfer was accepted
        """
        api_key = self._api_key or current_app.config.get('STRIPE_SECRET_KEY', '')
        currency = self._currency or current_app.config.get('BONUS_CURRENCY', 'brl')
        cents = int((Decimal(amount) * 100).to_integral_value())

        if api_key and destination.stripe_connect_id:
            stripe = self._get_stripe()
            transfer = stripe.Transfer.create(
                amount=cents,
                currency=currency,
                destination=destination.stripe_connect_id,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )
            logger.info('Stripe transfer %s of %s %s sent', transfer.id, amount, currency)
            return True

        logger.info('[DEV] %s transfer of %s %s to %s',
                    destination.method, amount, currency, destination.destination)
        return True
