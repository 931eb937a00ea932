import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterable, Iterator

import psycopg

from config import DatabaseSettings
from contact_store import ContactRepository, PostgresContactRepository, SQLiteContactRepository
from errors import ErrorKind, IdentityResolutionError

logger = logging.getLogger(__name__)

SQLITE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS contact (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        phoneNumber INTEGER,
        email TEXT,
        linkedId INTEGER,
        linkPrecedence TEXT NOT NULL CHECK(linkPrecedence IN ('secondary', 'primary')),
        createdAt TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
        CHECK (email IS NOT NULL OR phoneNumber IS NOT NULL),
        CHECK ((linkPrecedence = 'primary' AND linkedId IS NULL)
               OR (linkPrecedence = 'secondary' AND linkedId IS NOT NULL)),
        FOREIGN KEY (linkedId) REFERENCES contact (id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS contact_email_idx ON contact (email)",
    "CREATE INDEX IF NOT EXISTS contact_phone_idx ON contact (phoneNumber)",
]

POSTGRES_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS contact (
        id BIGSERIAL PRIMARY KEY,
        phoneNumber BIGINT,
        email TEXT,
        linkedId BIGINT REFERENCES contact (id),
        linkPrecedence TEXT NOT NULL CHECK (linkPrecedence IN ('secondary', 'primary')),
        createdAt TIMESTAMPTZ NOT NULL DEFAULT now(),
        CHECK (email IS NOT NULL OR phoneNumber IS NOT NULL),
        CHECK ((linkPrecedence = 'primary' AND linkedId IS NULL)
               OR (linkPrecedence = 'secondary' AND linkedId IS NOT NULL))
    )
    """,
    "CREATE INDEX IF NOT EXISTS contact_email_idx ON contact (email)",
    "CREATE INDEX IF NOT EXISTS contact_phone_idx ON contact (phoneNumber)",
]

REPOSITORIES = {
    "sqlite": SQLiteContactRepository,
    "postgres": PostgresContactRepository,
}


def get_db_connection(settings: DatabaseSettings):
    try:
        if settings.backend == "postgres":
            return psycopg.connect(**settings.connection_kwargs())
        # transactions are opened explicitly by the repository
        conn = sqlite3.connect(settings.sqlite_path, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn
    except (sqlite3.Error, psycopg.Error) as exc:
        logger.exception("Could not connect to the %s contact store", settings.backend)
        raise IdentityResolutionError(ErrorKind.STORE_UNAVAILABLE) from exc


def init_db(settings: DatabaseSettings):
    statements = POSTGRES_SCHEMA if settings.backend == "postgres" else SQLITE_SCHEMA
    conn = get_db_connection(settings)
    try:
        for statement in statements:
            conn.execute(statement)
        conn.commit()
    except (sqlite3.Error, psycopg.Error) as exc:
        logger.exception("Could not create the contact schema")
        raise IdentityResolutionError(ErrorKind.STORE_UNAVAILABLE) from exc
    finally:
        conn.close()
    logger.info("Contact schema ready (%s)", settings.backend)


@contextmanager
def open_repository(settings: DatabaseSettings, keys: Iterable[str] = ()) -> Iterator[ContactRepository]:
    """Yield a repository inside one transaction holding the locks for ``keys``.

    The transaction commits when the block exits normally and rolls back on
    any exception.
    """
    conn = get_db_connection(settings)
    repository = REPOSITORIES[settings.backend](conn)
    try:
        repository.begin(keys)
        yield repository
        repository.commit()
    except BaseException:
        try:
            repository.rollback()
        except (sqlite3.Error, psycopg.Error):
            logger.exception("Rollback failed")
        raise
    finally:
        conn.close()
