"""
Contact store access: the match query and the two inserts the consolidation
engine relies on, for SQLite and PostgreSQL.

A repository wraps one open connection and runs everything inside a single
transaction started by :meth:`ContactRepository.begin`, so the lookup and the
insert that follows it are serialized against other requests for the same
email or phone number.
"""
import logging
import sqlite3
from typing import Iterable, List, Optional

import psycopg

from db_models import Contact, Identity, LinkPrecedence
from errors import ErrorKind, IdentityResolutionError

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = ("id", "email", "phoneNumber", "linkPrecedence", "linkedId", "createdAt")


def lock_keys(identity: Identity) -> List[str]:
    """Normalized per-attribute keys a resolution must hold exclusively."""
    keys = []
    if identity.email:
        keys.append(f"email:{identity.email.strip().lower()}")
    if identity.phoneNumber is not None:
        keys.append(f"phone:{identity.phoneNumber}")
    return sorted(keys)


class ContactRepository:
    placeholder = "?"
    driver_errors = ()

    def __init__(self, connection):
        self.connection = connection

    def _execute(self, query: str, params: tuple, kind: ErrorKind):
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
        except self.driver_errors as exc:
            logger.exception("Contact store call failed (%s)", kind.value)
            raise IdentityResolutionError(kind) from exc
        return cursor

    def begin(self, keys: Iterable[str] = ()):
        raise NotImplementedError

    def commit(self):
        try:
            self.connection.commit()
        except self.driver_errors as exc:
            logger.exception("Commit failed")
            raise IdentityResolutionError(ErrorKind.STORE_INSERT_FAILED) from exc

    def rollback(self):
        self.connection.rollback()

    def find_contacts(self, email: Optional[str] = None, phone: Optional[int] = None) -> List[Contact]:
        query = f"""
            SELECT {", ".join(CONTACT_COLUMNS)} FROM contact
            WHERE email = {self.placeholder} OR phoneNumber = {self.placeholder}
            ORDER BY createdAt ASC, id ASC
        """
        cursor = self._execute(query, (email, phone), ErrorKind.STORE_QUERY_FAILED)
        rows = cursor.fetchall()
        logger.debug("Found %d contacts for email=%s phone=%s", len(rows), email, phone)
        return [Contact(**dict(zip(CONTACT_COLUMNS, row))) for row in rows]

    def insert_primary(self, email: Optional[str] = None, phone: Optional[int] = None) -> int:
        contact_id = self._insert(email, phone, LinkPrecedence.PRIMARY, None)
        logger.info("Created primary contact %s", contact_id)
        return contact_id

    def insert_secondary(self, email: Optional[str], phone: Optional[int], primary_id: int) -> int:
        contact_id = self._insert(email, phone, LinkPrecedence.SECONDARY, primary_id)
        logger.info("Created secondary contact %s linked to %s", contact_id, primary_id)
        return contact_id

    def _insert_query(self) -> str:
        p = self.placeholder
        return f"""
            INSERT INTO contact (phoneNumber, email, linkPrecedence, linkedId)
            VALUES ({p}, {p}, {p}, {p})
        """

    def _insert(self, email, phone, precedence: LinkPrecedence, linked_id) -> int:
        raise NotImplementedError


class SQLiteContactRepository(ContactRepository):
    placeholder = "?"
    # OverflowError: ints outside the signed 64-bit range sqlite3 can bind
    driver_errors = (sqlite3.Error, OverflowError)

    def begin(self, keys: Iterable[str] = ()):
        # SQLite only has a database-wide write lock; taking it up front
        # serializes every resolution, which covers any per-key lock.
        self._execute("BEGIN IMMEDIATE", (), ErrorKind.STORE_UNAVAILABLE)

    def _insert(self, email, phone, precedence, linked_id) -> int:
        cursor = self._execute(
            self._insert_query(), (phone, email, precedence.value, linked_id), ErrorKind.STORE_INSERT_FAILED
        )
        return cursor.lastrowid


class PostgresContactRepository(ContactRepository):
    placeholder = "%s"
    driver_errors = (psycopg.Error,)

    def begin(self, keys: Iterable[str] = ()):
        # psycopg opens the transaction implicitly on the first statement;
        # advisory locks are released when it ends.
        for key in sorted(keys):
            self._execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (key,), ErrorKind.STORE_UNAVAILABLE)

    def _insert(self, email, phone, precedence, linked_id) -> int:
        cursor = self._execute(
            self._insert_query() + " RETURNING id",
            (phone, email, precedence.value, linked_id),
            ErrorKind.STORE_INSERT_FAILED,
        )
        return cursor.fetchone()[0]
