"""
Database management and connection handling.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

try:
    import psycopg2
    from psycopg2.extras import RealDictCursor
    PSYCOPG2_AVAILABLE = True
except ImportError:
    PSYCOPG2_AVAILABLE = False

from ..core.exceptions import (
    GradebookException, PersistenceError, ConfigurationError, DuplicateEntityError
)
from .schema import SCHEMA

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


class DatabaseManager(ABC):
    """Abstract base class for database management.

    Queries are written with ``?`` placeholders; backends with another
    paramstyle translate them before execution.
    """

    @abstractmethod
    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def execute_update(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute an update query and return affected rows."""
        pass

    @abstractmethod
    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        pass

    @abstractmethod
    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation."""

    def __init__(self, database_path: str = "gradebook.db"):
        self._database_path = database_path
        self._lock = threading.RLock()
        self.create_tables(SCHEMA)

    @property
    def database_path(self) -> str:
        return self._database_path

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = sqlite3.connect(self._database_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            yield conn
        except GradebookException:
            if conn:
                conn.rollback()
            raise
        except sqlite3.IntegrityError as e:
            if conn:
                conn.rollback()
            if "UNIQUE constraint failed" in str(e):
                raise DuplicateEntityError(f"Duplicate entry: {e}") from e
            raise PersistenceError(f"Integrity error: {e}", cause=e) from e
        except Exception as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database connection error: {str(e)}", cause=e) from e
        finally:
            if conn:
                conn.close()

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params or ()))
            if cursor.description is None:
                return []
            columns = [description[0] for description in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params or ()))
            conn.commit()
            return cursor.rowcount

    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                for query, params in queries:
                    cursor.execute(query, tuple(params or ()))
                conn.commit()
                return True

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for table_name, table_schema in schema.items():
                cursor.execute(table_schema)
            conn.commit()
        logger.debug("SQLite schema ready at %s", self._database_path)

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0


class PostgreSQLDatabase(DatabaseManager):
    """PostgreSQL database implementation."""

    def __init__(self, host: str = "localhost", port: int = 5432,
                 database: str = "gradebook", user: str = "gradebook", password: str = ""):
        if not PSYCOPG2_AVAILABLE:
            raise ConfigurationError("psycopg2 is required for PostgreSQL support")

        self._host = host
        self._port = port
        self._database = database
        self._user = user
        self._password = password
        self._lock = threading.RLock()
        self.create_tables(SCHEMA)

    def _get_connection_string(self) -> str:
        """Get PostgreSQL connection string."""
        return f"host={self._host} port={self._port} dbname={self._database} user={self._user} password={self._password}"

    @staticmethod
    def _translate(query: str) -> str:
        return query.replace("?", "%s")

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = psycopg2.connect(self._get_connection_string())
            yield conn
        except GradebookException:
            if conn:
                conn.rollback()
            raise
        except psycopg2.IntegrityError as e:
            if conn:
                conn.rollback()
            if getattr(e, "pgcode", None) == PG_UNIQUE_VIOLATION:
                raise DuplicateEntityError(f"Duplicate entry: {e}") from e
            raise PersistenceError(f"Integrity error: {e}", cause=e) from e
        except Exception as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database connection error: {str(e)}", cause=e) from e
        finally:
            if conn:
                conn.close()

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            cursor.execute(self._translate(query), tuple(params or ()))
            if cursor.description is None:
                conn.commit()
                return []
            results = [dict(row) for row in cursor.fetchall()]
            conn.commit()
            return results

    def execute_update(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(self._translate(query), tuple(params or ()))
            conn.commit()
            return cursor.rowcount

    def execute_transaction(self, queries: List[tuple]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                for query, params in queries:
                    cursor.execute(self._translate(query), tuple(params or ()))
                conn.commit()
                return True

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for table_name, table_schema in schema.items():
                cursor.execute(table_schema)
            conn.commit()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT table_name FROM information_schema.tables WHERE table_name = ?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(database_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        if database_type.lower() == "sqlite":
            return SQLiteDatabase(**kwargs)
        elif database_type.lower() == "postgresql":
            return PostgreSQLDatabase(**kwargs)
        else:
            raise ConfigurationError(f"Unsupported database type: {database_type}")
