import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import dict_row
from pydantic import BaseModel, ConfigDict

from config.postgres import PostgresConfig

logger = logging.getLogger("udyam")

USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    password VARCHAR(255) NOT NULL,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    first_name: str
    last_name: str
    created_at: datetime


class StoreError(Exception):
    """The user store could not complete a request."""


class DatabaseMissingError(StoreError):
    pass


class TableMissingError(StoreError):
    pass


class DatabaseUnreachableError(StoreError):
    pass


class DuplicateEmailError(StoreError):
    pass


class UserStore:
    """
    Thin access layer over the ``users`` table. Every call opens its own
    connection; psycopg errors come out as ``StoreError`` subclasses.
    """

    def __init__(self, pg: PostgresConfig):
        self.pg = pg

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(row_factory=dict_row, **self.pg.connect_kwargs())

    @contextmanager
    def _translated(self) -> Iterator[None]:
        try:
            yield
        except pg_errors.UniqueViolation as exc:
            raise DuplicateEmailError("User with this email already exists") from exc
        except pg_errors.UndefinedTable as exc:
            raise TableMissingError(str(exc)) from exc
        except pg_errors.InvalidCatalogName as exc:
            raise DatabaseMissingError(str(exc)) from exc
        except psycopg.OperationalError as exc:
            message = str(exc)
            if "database" in message and "does not exist" in message:
                raise DatabaseMissingError(message) from exc
            if "refused" in message.lower():
                raise DatabaseUnreachableError(message) from exc
            raise StoreError(message) from exc

    def setup(self) -> None:
        with self._translated(), self._connect() as conn:
            conn.execute(USERS_DDL)

    def now(self) -> datetime:
        with self._translated(), self._connect() as conn:
            row = conn.execute("SELECT NOW() AS current_time").fetchone()
        return row["current_time"]

    def exists(self, email: str) -> bool:
        with self._translated(), self._connect() as conn:
            row = conn.execute("SELECT id FROM users WHERE email = %s", (email,)).fetchone()
        return row is not None

    def insert(self, email: str, password_hash: str, first_name: str, last_name: str) -> User:
        with self._translated(), self._connect() as conn:
            row = conn.execute(
                """
                INSERT INTO users (email, password, first_name, last_name, created_at, updated_at)
                VALUES (%s, %s, %s, %s, NOW(), NOW())
                RETURNING id, email, first_name, last_name, created_at
                """,
                (email, password_hash, first_name, last_name),
            ).fetchone()
        logger.info("users.created", extra={"user_id": row["id"]})
        return User(**row)
