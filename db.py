"""
Database handle for the Room Status Tracker.

A single Database object is created by the app factory and attached to the
Flask app. Each request gets its own SQLite connection, opened on first use
and closed when the app context tears down.
"""
import logging
import sqlite3
from contextlib import contextmanager

from flask import current_app, g

logger = logging.getLogger(__name__)

EXTENSION_KEY = "room_status_db"


def dict_factory(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


class Database:
    def __init__(self, path: str, timeout: float = 10.0):
        self.path = path
        self.timeout = timeout
        self.last_pruned = None

    def connect(self):
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = dict_factory
        return conn

    def init_app(self, app):
        app.extensions[EXTENSION_KEY] = self
        app.teardown_appcontext(self.close_connection)

    def get_connection(self):
        if "db_conn" not in g:
            g.db_conn = self.connect()
        return g.db_conn

    def close_connection(self, exc=None):
        conn = g.pop("db_conn", None)
        if conn is not None:
            if conn.in_transaction:
                conn.rollback()
            conn.close()


def get_db() -> Database:
    return current_app.extensions[EXTENSION_KEY]


def get_connection():
    """Connection bound to the current request."""
    return get_db().get_connection()


@contextmanager
def transaction(conn):
    """
    Run a block inside BEGIN IMMEDIATE with rollback on error.

    IMMEDIATE takes the write lock up front, so reads made inside the block
    cannot be invalidated by another writer before the block commits.
    """
    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
