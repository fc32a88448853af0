"""
Pytest configuration and fixtures for the cleaner incentives backend tests
"""
import itertools
import os
from datetime import timedelta
from unittest.mock import Mock

import jwt
import pytest

from app import create_app, db
from app.models import Booking, Cleaner, PayoutDetails, Rating, User, utcnow
from app.models.rating import USER_TO_CLEANER
from app.services import Engines
from app.services.notifier import Notifier
from app.services.payouts import PayoutGateway


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing, with a fresh database"""
    os.environ['FLASK_ENV'] = 'testing'
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Database session bound to the test app"""
    return db.session


@pytest.fixture
def notifier():
    """Notifier double; records calls instead of storing or texting"""
    return Mock(spec=Notifier)


@pytest.fixture
def gateway():
    """Payout gateway double that accepts every transfer"""
    gateway = Mock(spec=PayoutGateway)
    gateway.transfer.return_value = True
    return gateway


@pytest.fixture
def engines(app, notifier, gateway):
    """Engines wired to the doubles and installed on the app"""
    engines = Engines(notifier=notifier, gateway=gateway)
    app.extensions['incentives'] = engines
    return engines


_sequence = itertools.count(1)


@pytest.fixture
def cleaner_factory(db_session):
    """Factory for creating cleaners"""
    def _create_cleaner(**kwargs):
        n = next(_sequence)
        defaults = {
            'name': f'Cleaner {n}',
            'email': f'cleaner{n}@example.com',
            'phone': f'+5511900000{n:03d}',
            'region': 'São Paulo - Centro',
            'status': 'active',
        }
        defaults.update(kwargs)

        cleaner = Cleaner(**defaults)
        db_session.add(cleaner)
        db_session.commit()
        return cleaner

    return _create_cleaner


@pytest.fixture
def test_cleaner(cleaner_factory):
    return cleaner_factory(name='Maria Silva', email='maria@example.com')


@pytest.fixture
def user_factory(db_session):
    """Factory for creating clients"""
    def _create_user(**kwargs):
        n = next(_sequence)
        defaults = {
            'name': f'Client {n}',
            'email': f'client{n}@example.com',
        }
        defaults.update(kwargs)

        user = User(**defaults)
        db_session.add(user)
        db_session.commit()
        return user

    return _create_user


@pytest.fixture
def test_user(user_factory):
    return user_factory(name='João Souza', email='joao@example.com')


@pytest.fixture
def payout_details(db_session, test_cleaner):
    details = PayoutDetails(
        cleaner_id=test_cleaner.id,
        pix_key='maria@example.com',
        holder_name='Maria Silva',
    )
    db_session.add(details)
    db_session.commit()
    return details


@pytest.fixture
def booking_factory(db_session, test_user):
    """Factory for creating bookings; completed by default"""
    def _create_booking(cleaner, user=None, **kwargs):
        defaults = {
            'cleaner_id': cleaner.id,
            'user_id': (user or test_user).id,
            'status': 'completed',
            'service_type': 'standard',
        }
        defaults.update(kwargs)

        booking = Booking(**defaults)
        db_session.add(booking)
        db_session.commit()
        return booking

    return _create_booking


@pytest.fixture
def review_factory(db_session, booking_factory):
    """
    Factory for client reviews, each on its own completed booking.
    Reviews get strictly increasing created_at values in creation order.
    """
    clock = itertools.count()
    base = utcnow() - timedelta(days=1)

    def _create_review(cleaner, rating=5, created_at=None, **kwargs):
        booking = booking_factory(cleaner)
        review = Rating(
            booking_id=booking.id,
            direction=USER_TO_CLEANER,
            given_by_user_id=booking.user_id,
            to_cleaner_id=cleaner.id,
            rating=rating,
            created_at=created_at or base + timedelta(minutes=next(clock)),
            **kwargs
        )
        db_session.add(review)
        db_session.commit()
        return review

    return _create_review


def _headers(app, user_id, role):
    token = jwt.encode({
        'user_id': user_id,
        'role': role,
        'exp': utcnow() + timedelta(hours=1)
    }, app.config['JWT_SECRET_KEY'], algorithm=app.config['JWT_ALGORITHM'])

    return {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json'
    }


@pytest.fixture
def admin_headers(app):
    """Generate auth headers with JWT token for an admin"""
    return _headers(app, 'admin-1', 'admin')


@pytest.fixture
def cleaner_headers(app, test_cleaner):
    """Generate auth headers with JWT token for the test cleaner"""
    return _headers(app, test_cleaner.id, 'cleaner')


@pytest.fixture
def user_headers(app, test_user):
    """Generate auth headers with JWT token for the test client"""
    return _headers(app, test_user.id, 'user')
