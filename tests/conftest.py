import pytest

from aqi_dashboard.app import create_app
from aqi_dashboard.cache import RateLimiter
from aqi_dashboard.store import MemoryStore


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ZeroRng:
    """Stands in for numpy's Generator with the noise term switched off."""

    def uniform(self, low, high):
        return 0.0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def limiter():
    return RateLimiter(limit=20, window_seconds=60)


@pytest.fixture
def app(store, limiter):
    app = create_app({"TESTING": True}, store=store, limiter=limiter)
    return app


@pytest.fixture
def client(app):
    return app.test_client()
