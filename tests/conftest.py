import pytest
import os
import sys
from datetime import datetime, timedelta, timezone

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from cache import CaseCache
from database import CourtDatabase
from fetcher import CaseFetcher
from scraper import MockCourtScraper


class FakeClock:
    """Controllable stand-in for the wall clock."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def database(tmp_path):
    """A fresh on-disk database, closed after the test."""
    db = CourtDatabase(str(tmp_path / 'data' / 'court_data.db'))
    yield db
    db.close()


@pytest.fixture
def cache(database):
    return CaseCache(database)


@pytest.fixture
def scraper(clock):
    return MockCourtScraper(delay=0, clock=clock)


@pytest.fixture
def fetcher(cache, scraper, clock):
    return CaseFetcher(cache, scraper, clock=clock)


@pytest.fixture
def app(tmp_path, scraper, clock):
    """Create the Flask application against a temporary database."""
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(tmp_path / 'court_data.db'),
        'BACKUP_DIR': str(tmp_path / 'backups'),
        'RATELIMIT_ENABLED': False,
    }, scraper=scraper, clock=clock)
    yield app
    app.extensions['court_database'].close()


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    with app.test_client() as client:
        yield client
