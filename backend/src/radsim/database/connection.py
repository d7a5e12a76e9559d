# -*- coding: utf-8 -*-
import logging
import os
from contextlib import contextmanager

from psycopg2 import pool

from radsim.core import config

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the psycopg2 connection pool. Built once at startup, closed at
    shutdown, and handed to the stores that need it.
    """

    def __init__(
        self,
        *,
        host: str = config.DB_HOST,
        port: int = config.DB_PORT,
        dbname: str = config.DB_NAME,
        user: str = config.DB_USER,
        password: str = config.DB_PASSWORD,
        minconn: int = config.DB_POOL_MIN,
        maxconn: int = config.DB_POOL_MAX,
    ):
        self._params = dict(host=host, port=port, dbname=dbname, user=user, password=password)
        self._minconn = minconn
        self._maxconn = maxconn
        self._pool: pool.SimpleConnectionPool | None = None

    def init_pool(self) -> None:
        """
        Create the pool. Forces UTF-8 and ASCII server messages to avoid
        decoding errors on localized servers.
        """
        if self._pool is not None:
            return

        os.environ["PGCLIENTENCODING"] = "UTF8"
        options = "-c client_encoding=UTF8 -c lc_messages=C"

        try:
            self._pool = pool.SimpleConnectionPool(
                minconn=self._minconn,
                maxconn=self._maxconn,
                options=options,
                **self._params,
            )
        except Exception as e:
            logger.error("DB pool init failed: %r", e)
            raise RuntimeError("DB init failed") from e

    def get_connection(self):
        if self._pool is None:
            raise RuntimeError("DB not ready")
        conn = self._pool.getconn()
        try:
            conn.set_client_encoding("UTF8")
        except Exception:
            self._pool.putconn(conn)
            raise
        return conn

    def release_connection(self, conn) -> None:
        if self._pool and conn:
            self._pool.putconn(conn)

    @contextmanager
    def connection(self):
        """Borrow a connection; commit on success, roll back on error."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.release_connection(conn)

    def close_pool(self) -> None:
        if self._pool:
            self._pool.closeall()
            self._pool = None

    def ping(self) -> bool:
        """Light health check: True when SELECT 1 succeeds."""
        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
            return True
        finally:
            self.release_connection(conn)
