"""
Notification delivery for incentive events.

In-app notifications are stored in their own transaction after the
business operation has committed. SMS goes out through Twilio when it is
configured and the recipient has a phone number.

IMPORTANT: notify() never raises. All errors are caught and logged so that
a notification failure never rolls back a bonus, punishment or ranking.
"""

import logging

from flask import current_app

from app import db
from app.models import Cleaner, Notification, User

logger = logging.getLogger(__name__)


class Notifier:
    """Fire-and-forget notifier used by every engine"""

    def __init__(self, sms_enabled=True):
        self.sms_enabled = sms_enabled
        self._twilio_client = None

    def _get_twilio(self):
        """Lazily initialise the Twilio client."""
        if self._twilio_client is None:
            sid = current_app.config.get('TWILIO_ACCOUNT_SID')
            token = current_app.config.get('TWILIO_AUTH_TOKEN')
            if sid and token:
                from twilio.rest import Client
                self._twilio_client = Client(sid, token)
        return self._twilio_client

    def _phone_for(self, actor_type, actor_id):
        model = Cleaner if actor_type == 'cleaner' else User
        actor = db.session.get(model, actor_id)
        return actor.phone if actor else None

    def send_sms(self, to_number, body):
        """Send an SMS via Twilio. Returns message SID or None."""
        client = self._get_twilio()
        from_number = current_app.config.get('TWILIO_FROM_NUMBER')
        if not client or not from_number:
            logger.info('[DEV] SMS to %s: %s', to_number, body)
            return None

        message = client.messages.create(body=body, from_=from_number, to=to_number)
        logger.info('SMS sent to %s (SID: %s)', to_number, message.sid)
        return message.sid

    def notify(self, actor_id, title, message, type, actor_type='cleaner', data=None):
        """Store an in-app notification and optionally text the actor. Never raises."""
        try:
            notification = Notification(
                actor_id=actor_id,
                actor_type=actor_type,
                type=type,
                title=title,
                message=message,
                data=data,
            )
            db.session.add(notification)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception('Failed to store %s notification for %s %s', type, actor_type, actor_id)
            return None

        if self.sms_enabled:
            try:
                phone = self._phone_for(actor_type, actor_id)
                if phone and self.send_sms(phone, f'{title}: {message}'):
                    notification.sms_sent = True
                    db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception('Failed to send SMS for notification %s', notification.id)

        return notification
