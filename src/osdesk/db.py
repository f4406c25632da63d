from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import psycopg
from psycopg import Connection
from psycopg.conninfo import make_conninfo

from .config import DbConfig

logger = logging.getLogger(__name__)


class DbError(Exception):
    pass


def rows_as_dicts(cur) -> list[dict]:
    cols = [d.name for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def row_as_dict(cur) -> dict | None:
    row = cur.fetchone()
    if not row:
        return None
    cols = [d.name for d in cur.description]
    return dict(zip(cols, row))


@dataclass(frozen=True)
class Db:
    """Connection factory. Each scope opens its own autocommit connection."""

    cfg: DbConfig
    application_name: str = "osdesk"

    def conninfo(self) -> str:
        return make_conninfo(
            host=self.cfg.host,
            port=self.cfg.port,
            dbname=self.cfg.name,
            user=self.cfg.user,
            password=self.cfg.password,
            sslmode=self.cfg.sslmode,
            application_name=self.application_name,
        )

    def connect(self) -> Connection:
        try:
            return psycopg.connect(self.conninfo(), autocommit=True)
        except psycopg.Error as e:
            logger.error("No database at %s:%s/%s: %s", self.cfg.host, self.cfg.port, self.cfg.name, e)
            raise DbError(
                f"Cannot reach PostgreSQL at {self.cfg.host}:{self.cfg.port}. Check the [db] section of config.toml."
            ) from e

    @contextmanager
    def session(self) -> Iterator[Connection]:
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Session wrapped in BEGIN/COMMIT; an exception rolls back and propagates."""
        with self.session() as conn, conn.transaction():
            yield conn
