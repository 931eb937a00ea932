import pytest

from config import DatabaseSettings
from db_setup import init_db, open_repository
from identity_service import IdentityService


@pytest.fixture
def db_settings(tmp_path):
    settings = DatabaseSettings(backend="sqlite", sqlite_path=str(tmp_path / "contacts.db"))
    init_db(settings)
    return settings


@pytest.fixture
def service(db_settings):
    return IdentityService(db_settings)


@pytest.fixture
def seed(db_settings):
    """Insert contacts directly, bypassing the consolidation engine."""

    def insert(email=None, phone=None, linked_id=None):
        with open_repository(db_settings) as repository:
            if linked_id is None:
                return repository.insert_primary(email, phone)
            return repository.insert_secondary(email, phone, linked_id)

    return insert


@pytest.fixture
def all_contacts(db_settings):
    def fetch():
        with open_repository(db_settings) as repository:
            cursor = repository.connection.execute(
                "SELECT id, email, phoneNumber, linkPrecedence, linkedId FROM contact ORDER BY id"
            )
            return cursor.fetchall()

    return fetch
