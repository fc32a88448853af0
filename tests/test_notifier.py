"""
Tests for notification delivery and the payout gateway
"""
from decimal import Decimal
from unittest.mock import Mock, patch

from app.models import Notification
from app.services.notifier import Notifier
from app.services.payouts import StripePayoutGateway


class TestNotifier:
    """Test in-app notifications and SMS"""

    def test_stores_notification(self, app, test_cleaner):
        notification = Notifier().notify(
            test_cleaner.id, 'Hello', 'Welcome aboard', 'welcome', data={'k': 'v'}
        )

        stored = Notification.query.one()
        assert stored.id == notification.id
        assert stored.actor_type == 'cleaner'
        assert stored.data == {'k': 'v'}
        assert stored.sms_sent is False

    def test_sms_through_twilio(self, app, test_cleaner):
        app.config['TWILIO_FROM_NUMBER'] = '+15550001111'
        client = Mock()
        client.messages.create.return_value = Mock(sid='SM123')

        with patch.object(Notifier, '_get_twilio', return_value=client):
            notification = Notifier().notify(test_cleaner.id, 'Bonus', 'R$ 100.00', 'bonus_awarded')

        assert notification.sms_sent is True
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs['to'] == test_cleaner.phone
        assert kwargs['body'] == 'Bonus: R$ 100.00'

    def test_sms_disabled(self, app, test_cleaner):
        with patch.object(Notifier, 'send_sms') as send_sms:
            Notifier(sms_enabled=False).notify(test_cleaner.id, 'Hi', 'There', 'info')

        send_sms.assert_not_called()

    def test_failure_is_swallowed(self, app, test_cleaner):
        """A notification that cannot be stored never raises"""
        assert Notifier().notify(test_cleaner.id, None, 'No title', 'broken') is None
        assert Notification.query.count() == 0

    def test_sms_failure_keeps_notification(self, app, test_cleaner):
        with patch.object(Notifier, 'send_sms', side_effect=RuntimeError('twilio down')):
            notification = Notifier().notify(test_cleaner.id, 'Hi', 'There', 'info')

        assert notification is not None
        assert Notification.query.count() == 1


class TestStripePayoutGateway:
    """Test bonus payouts"""

    def test_without_stripe_key_logs_and_succeeds(self, app, payout_details):
        with patch('stripe.Transfer.create') as create:
            assert StripePayoutGateway().transfer(payout_details, Decimal('100.00')) is True

        create.assert_not_called()

    def test_stripe_connect_transfer(self, app, payout_details, db_session):
        app.config['STRIPE_SECRET_KEY'] = 'sk_test_123'
        payout_details.stripe_connect_id = 'acct_123'
        db_session.commit()

        with patch('stripe.Transfer.create', return_value=Mock(id='tr_1')) as create:
            sent = StripePayoutGateway().transfer(payout_details, Decimal('100.00'),
                                                  metadata={'bonus_id': 'b-1'},
                                                  idempotency_key='bonus-b-1')

        assert sent is True
        create.assert_called_once_with(
            amount=10000,
            currency='brl',
            destination='acct_123',
            metadata={'bonus_id': 'b-1'},
            idempotency_key='bonus-b-1',
        )
