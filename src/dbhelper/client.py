"""
Database client for dbhelper
Wraps a psycopg_pool connection pool with row/result helpers, write execution
and literal transaction-control statements
"""
import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from .config import get_database_config
from .exceptions import ConnectError
from .rows import result_set, row_mapping

logger = logging.getLogger(__name__)

DEFAULT_POOL_MIN_SIZE = 1
DEFAULT_POOL_MAX_SIZE = 10
DEFAULT_POOL_TIMEOUT = 30.0
DEFAULT_MAX_LIFETIME = 3600.0

LAST_INSERT_ID = "LastInsertId"
ROWS_AFFECTED = "RowsAffected"


def build_conninfo(host: str, user: str, password: str, dbname: str, timeout: str) -> str:
    """
    Build a libpq connection string

    A "host:port" value is split into host and port. The timeout is passed
    through as connect_timeout without validation.
    """
    hostname, _, port = host.partition(":")
    params = {
        'host': hostname,
        'dbname': dbname,
        'user': user,
        'password': password,
        'connect_timeout': timeout,
        'client_encoding': 'utf8',
    }
    if port:
        params['port'] = port
    return make_conninfo(**params)


def _ping(conninfo: str):
    # Single direct attempt outside the pool; failures carry the driver's error
    with psycopg.Connection.connect(conninfo, autocommit=True) as conn:
        conn.execute("SELECT 1")


class Client:
    """
    Convenience wrapper around a pooled PostgreSQL connection

    A client created by connect() either holds an open pool or the ConnectError
    captured while opening it. Once an error is recorded, every operation raises
    that same error without touching the network.
    """

    def __init__(self, host: str, pool: Optional[ConnectionPool] = None,
                 error: Optional[ConnectError] = None,
                 conninfo: str = "",
                 default_max_size: int = DEFAULT_POOL_MAX_SIZE):
        self.host = host
        self._pool = pool
        self._error = error
        self._conninfo = conninfo
        self._default_max_size = default_max_size
        # Connection checked out by start(), used by every call until commit/rollback
        self._session: Optional[psycopg.Connection] = None

    def __repr__(self):
        state = f"error={self._error}" if self._error is not None else "connected"
        return f"<Client host={self.host!r} {state}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def error(self) -> Optional[ConnectError]:
        """The captured connection error, or None while the client is healthy"""
        return self._error

    def _check(self):
        if self._error is not None:
            raise self._error.with_traceback(None)

    @contextmanager
    def _connection(self):
        self._check()
        if self._session is not None:
            yield self._session
            return
        with self._pool.connection() as conn:
            yield conn

    def close(self):
        """
        Return any pinned session and close the pool

        A closed client behaves like a failed one: ping() returns, and every other
        call raises, a ConnectError saying the client is closed.
        """
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        if self._session is not None:
            pool.putconn(self._session)
            self._session = None
        pool.close()
        if self._error is None:
            self._error = ConnectError(self.host, "client is closed")
        logger.info(f"Database pool closed for host {self.host}")

    def ping(self) -> Optional[ConnectError]:
        """
        Check the connection

        Inside a transaction the pinned session is checked; otherwise a single
        direct connection is made, so a busy pool does not count as a failure.

        Returns:
            None when the database answers, otherwise the ConnectError now
            stored on the client
        """
        if self._error is not None:
            return self._error

        try:
            if self._session is not None:
                self._session.execute("SELECT 1")
            else:
                _ping(self._conninfo)
        except psycopg.Error as e:
            self._error = ConnectError(self.host, e)
            logger.warning(f"Database ping failed: {self._error}")
        return self._error

    def set_conn_max_lifetime(self, lifetime: Union[timedelta, float]):
        """Maximum age of pooled connections opened from now on; <= 0 disables expiry"""
        if self._error is not None:
            logger.debug("Ignoring set_conn_max_lifetime on failed client")
            return
        if isinstance(lifetime, timedelta):
            seconds = lifetime.total_seconds()
        else:
            seconds = float(lifetime)
        self._pool.max_lifetime = seconds if seconds > 0 else float("inf")

    def set_max_idle_conns(self, n: int):
        """Number of connections the pool keeps open while idle, capped at the open limit"""
        if self._error is not None:
            logger.debug("Ignoring set_max_idle_conns on failed client")
            return
        max_size = self._pool.max_size
        self._pool.resize(min(max(n, 0), max_size), max_size)

    def set_max_open_conns(self, n: int):
        """Maximum number of pooled connections; <= 0 restores the default maximum"""
        if self._error is not None:
            logger.debug("Ignoring set_max_open_conns on failed client")
            return
        max_size = n if n > 0 else self._default_max_size
        self._pool.resize(min(self._pool.min_size, max_size), max_size)

    def get_row(self, query: str, *args: Any) -> Dict[str, str]:
        """
        Fetch a single row as {column: text}

        Every row the query returns is read; when there is more than one, the
        last row's values win. No rows gives an empty dict. NULL reads as "".
        """
        with self._connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, args or None)
            return row_mapping(cursor)

    def get_result(self, query: str, *args: Any) -> List[Dict[str, str]]:
        """Fetch all rows as a list of {column: text} in server order"""
        with self._connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, args or None)
            return result_set(cursor)

    def query(self, statement: str, *args: Any) -> Dict[str, int]:
        """
        Execute a write statement

        Returns:
            {"LastInsertId": ..., "RowsAffected": ...}. LastInsertId is the
            integer in the first column of the first returned row (use
            INSERT ... RETURNING id), 0 when the statement returns none.
        """
        with self._connection() as conn, conn.cursor() as cursor:
            cursor.execute(statement, args or None)

            last_insert_id = 0
            if cursor.description is not None:
                row = cursor.fetchone()
                if row and isinstance(row[0], int):
                    last_insert_id = row[0]

            return {
                LAST_INSERT_ID: last_insert_id,
                ROWS_AFFECTED: max(cursor.rowcount, 0),
            }

    def start(self):
        """Execute START TRANSACTION on a connection pinned to this client"""
        self._check()
        pinned_here = self._session is None
        if pinned_here:
            self._session = self._pool.getconn()
            logger.info(f"Pinned session connection for host {self.host}")

        try:
            self._session.execute("START TRANSACTION")
        except psycopg.Error:
            if pinned_here:
                self._release_session()
            raise

    def commit(self):
        """Execute COMMIT"""
        self._finish("COMMIT")

    def rollback(self):
        """Execute ROLLBACK"""
        self._finish("ROLLBACK")

    def _finish(self, statement: str):
        self._check()
        if self._session is None:
            with self._pool.connection() as conn:
                conn.execute(statement)
            return

        try:
            self._session.execute(statement)
        finally:
            self._release_session()

    def _release_session(self):
        session, self._session = self._session, None
        self._pool.putconn(session)
        logger.info(f"Released session connection for host {self.host}")


def connect(host: str, user: str, password: str, dbname: str, timeout: str,
            min_size: int = DEFAULT_POOL_MIN_SIZE,
            max_size: int = DEFAULT_POOL_MAX_SIZE,
            pool_timeout: float = DEFAULT_POOL_TIMEOUT,
            max_lifetime: float = DEFAULT_MAX_LIFETIME) -> Client:
    """
    Ping the server, then open a connection pool

    Connection failures are not raised: the returned client carries the
    ConnectError (see Client.error) and raises it from every operation.

    Args:
        host: Server host, optionally "host:port"
        timeout: connect_timeout for libpq, passed through unchecked
    """
    pool = None
    try:
        conninfo = build_conninfo(host, user, password, dbname, timeout)
        _ping(conninfo)
        pool = ConnectionPool(
            conninfo,
            min_size=min_size,
            max_size=max_size,
            kwargs={'autocommit': True},
            timeout=pool_timeout,
            max_lifetime=max_lifetime,
            name=f"dbhelper-{host}",
            open=False,
        )
        pool.open()
    except psycopg.Error as e:
        if pool is not None:
            pool.close()
        error = ConnectError(host, e)
        logger.warning(f"Failed to connect to database: {error}")
        return Client(host, error=error)

    logger.info(f"Database pool opened for {user}@{host}/{dbname}")
    return Client(host, pool, conninfo=conninfo, default_max_size=max_size)


def connect_from_config(config: Optional[Dict[str, Any]] = None) -> Client:
    """Connect using get_database_config() (environment and Secrets Manager)"""
    if config is None:
        config = get_database_config()

    host = config['host']
    if config.get('port'):
        host = f"{host}:{config['port']}"

    return connect(
        host,
        config['user'],
        config['password'],
        config['database'],
        config['connect_timeout'],
        min_size=config.get('pool_min_size', DEFAULT_POOL_MIN_SIZE),
        max_size=config.get('pool_max_size', DEFAULT_POOL_MAX_SIZE),
        pool_timeout=config.get('pool_timeout', DEFAULT_POOL_TIMEOUT),
        max_lifetime=config.get('max_lifetime', DEFAULT_MAX_LIFETIME),
    )
