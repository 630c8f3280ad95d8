# conftest.py
# Shared fixtures: a fresh SQLite store per test and a context with a controllable clock.
#
# Imports
from datetime import datetime, timedelta, timezone
#
# Third-Party Imports
import pytest
#
# Local Imports
from transcriptions_Server_API.app.core.DB_Management.Transcriptions_DB import TranscriptionsDB
from transcriptions_Server_API.app.core.Sync.context import SyncContext
from transcriptions_Server_API.app.core.Sync.upsert_engine import UpsertEngine
#
########################################################################################################################
#
# Functions:

SITE = "https://example.org"


class SteppingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "transcriptions_test.sqlite"


@pytest.fixture
def db_instance(db_path):
    db = TranscriptionsDB(db_path, "test_client")
    yield db
    db.close_connection()


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def sync_context(db_instance, clock):
    return SyncContext(db=db_instance, site_base_url=SITE, clock=clock)


@pytest.fixture
def engine(sync_context):
    return UpsertEngine(sync_context)
