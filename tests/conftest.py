"""Shared test fixtures."""
import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from teedclub.database import Base


class FakeRedis:
    """Minimal in-memory Redis fake (hash commands only)."""

    def __init__(self):
        self.hash_store = {}

    def hset(self, key, field=None, value=None, mapping=None):
        h = self.hash_store.setdefault(key, {})
        if field is not None:
            h[field] = str(value)
        for k, v in (mapping or {}).items():
            h[k] = str(v)
        return 1

    def hincrby(self, key, field, amount=1):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)
        return int(h[field])

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def hdel(self, key, *fields):
        h = self.hash_store.get(key, {})
        return sum(1 for f in fields if h.pop(f, None) is not None)


class FakeClock:
    """Manually advanced clock for TTL / timeout tests."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import teedclub.models.application
    import teedclub.models.equipment
    import teedclub.models.feature_flags
    import teedclub.models.invite_code
    import teedclub.models.profile
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    We disable close() so that services calling session.close() in their
    finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('teedclub.database.get_session', return_value=db_session), \
            patch('teedclub.services.applications.get_session', return_value=db_session), \
            patch('teedclub.services.lookups.get_session', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture
def fake_redis():
    """In-memory Redis fake with dict-backed storage."""
    return FakeRedis()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def config_loader():
    """Loader over the feature_flags row only (no remote, no env)."""
    from teedclub.waitlist.config_loader import (
        DatabaseConfigSource, EnvironmentConfigSource, ScoringConfigLoader,
    )
    return ScoringConfigLoader([DatabaseConfigSource(), EnvironmentConfigSource(environ={})])


@pytest.fixture
def app(config_loader, fake_redis):
    """Flask test app."""
    from teedclub import create_app
    app = create_app(config_loader=config_loader, redis_client=fake_redis)
    app.config['TESTING'] = True
    app.config['ADMIN_TOKEN'] = None
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_answers():
    """Factory fixture — raw waitlist form payload with overridable fields."""
    def _make(**overrides):
        data = dict(
            role='golfer',
            share_channels=[],
            learn_channels=[],
            spend_bracket='<300',
            uses=[],
            buy_frequency='never',
            share_frequency='never',
            display_name='Jane Golfer',
            city_region='Boston, MA',
            email='jane@teed.club',
            termsAccepted=True,
        )
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def high_scorer(make_answers):
    """Payload that scores the full 10 points under the default config."""
    return make_answers(
        role='fitter_builder',
        share_channels=['reddit', 'golfwrx', 'instagram'],
        buy_frequency='monthly',
        city_region='Scottsdale, AZ',
        invite_code='ABC123',
        email='fitter@teed.club',
    )
