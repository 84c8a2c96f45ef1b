"""
Database connection and schema introspection for MySQL Data Extractor.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import mysql.connector
from mysql.connector import Error as MySQLError

from .models import ForeignKeyEdge, OrderDirection

SYSTEM_DATABASES = ('information_schema', 'mysql', 'performance_schema', 'sys')


def quote_identifier(name: str) -> str:
    """Backtick-quote an identifier."""
    return "`" + name.replace("`", "``") + "`"


def qualified_name(database: str, table: str) -> str:
    return f"{quote_identifier(database)}.{quote_identifier(table)}"


class DatabaseConnection:
    """Manages a MySQL/MariaDB connection with context manager support.

    Every query is issued against fully qualified names, so one connection
    serves all databases of an extraction run.
    """

    DEFAULT_PORT = 3306
    DEFAULT_CHARSET = 'utf8mb4'
    DEFAULT_TIMEOUT = 300

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        timeout: Optional[int] = DEFAULT_TIMEOUT
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout
        self.connection = None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection."""
        params = dict(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            charset=self.DEFAULT_CHARSET,
            use_unicode=True
        )
        if self.timeout:
            params['connection_timeout'] = self.timeout

        try:
            self.connection = mysql.connector.connect(**params)
            logging.info(f"Connected to {self.host}:{self.port}")
        except MySQLError as e:
            logging.error(f"Failed to connect to database: {e}")
            raise

        if self.timeout:
            self._apply_statement_timeout(self.timeout)

    def _apply_statement_timeout(self, seconds: int) -> None:
        """Bound the run time of each statement on this session.

        MariaDB takes seconds in ``max_statement_time``; MySQL takes
        milliseconds in ``max_execution_time`` and only applies it to SELECT.
        """
        try:
            self.execute_query("SET SESSION max_statement_time = %s", (seconds,))
            return
        except MySQLError:
            logging.debug("max_statement_time not supported, trying max_execution_time")

        try:
            self.execute_query("SET SESSION max_execution_time = %s", (seconds * 1000,))
        except MySQLError as e:
            logging.warning(f"Could not set a statement timeout on the session: {e}")

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and self.connection.is_connected():
            self.connection.close()
            logging.debug("Database connection closed")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            if cursor.with_rows:
                return cursor.fetchall()
            return []
        finally:
            cursor.close()

    def get_cursor(self, buffered: bool = False):
        """Get a cursor for streaming large results.

        Args:
            buffered: If False (default), rows are streamed from the server
                     instead of being loaded into memory at once.
        """
        return self.connection.cursor(buffered=buffered)

    def list_databases(self, include_system: bool = False) -> list[str]:
        """List schemata on the server, optionally without system schemata."""
        results = self.execute_query(
            "SELECT SCHEMA_NAME FROM information_schema.SCHEMATA ORDER BY SCHEMA_NAME"
        )
        names = [row[0] for row in results]
        if include_system:
            return names
        return [n for n in names if n.lower() not in SYSTEM_DATABASES]

    def list_base_tables(self, database: str) -> list[str]:
        """List stored (non-view) tables of a database."""
        results = self.execute_query(
            "SELECT TABLE_NAME FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE' "
            "ORDER BY TABLE_NAME",
            (database,)
        )
        return [row[0] for row in results]

    def list_foreign_keys(self, database: str) -> list[ForeignKeyEdge]:
        """List foreign key columns declared by tables of a database."""
        results = self.execute_query(
            "SELECT CONSTRAINT_NAME, TABLE_NAME, COLUMN_NAME, "
            "REFERENCED_TABLE_SCHEMA, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME "
            "FROM information_schema.KEY_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = %s AND REFERENCED_TABLE_NAME IS NOT NULL "
            "ORDER BY TABLE_NAME, ORDINAL_POSITION",
            (database,)
        )
        return [
            ForeignKeyEdge(
                constraint_name=row[0],
                owning_table=row[1],
                owning_column=row[2],
                referenced_table=row[4],
                referenced_column=row[5],
                owning_database=database,
                referenced_database=row[3] or database
            )
            for row in results
        ]

    def count_rows(self, database: str, table: str, where_clause: Optional[str] = None) -> int:
        """Get the live row count for a table."""
        query = f"SELECT COUNT(*) FROM {qualified_name(database, table)}"
        if where_clause:
            query += f" WHERE {where_clause}"
        results = self.execute_query(query)
        return int(results[0][0])

    @contextmanager
    def scan_rows(
        self,
        database: str,
        table: str,
        limit: Optional[int] = None,
        where_clause: Optional[str] = None,
        order_by: Optional[str] = None,
        order_direction: OrderDirection = OrderDirection.ASC
    ) -> Iterator[tuple[list[str], Iterator[tuple]]]:
        """
        Stream the rows of a table.

        Yields ``(column_names, rows)``; rows must be consumed inside the
        ``with`` block because the cursor is unbuffered.
        """
        query = build_select_query(database, table, limit, where_clause, order_by, order_direction)
        logging.debug(f"Scanning with query: {query[:200]}")

        cursor = self.get_cursor()
        try:
            cursor.execute(query)
            yield list(cursor.column_names), iter(cursor)
        finally:
            try:
                if self.connection.unread_result:
                    # Rows left behind by a consumer that stopped early
                    self.connection.consume_results()
            except MySQLError as e:
                logging.warning(f"Could not discard unread rows of {database}.{table}: {e}")
            finally:
                cursor.close()


def build_select_query(
    database: str,
    table: str,
    limit: Optional[int] = None,
    where_clause: Optional[str] = None,
    order_by: Optional[str] = None,
    order_direction: OrderDirection = OrderDirection.ASC
) -> str:
    """Build the SELECT used to scan a table."""
    query = f"SELECT * FROM {qualified_name(database, table)}"

    if where_clause:
        query += f" WHERE {where_clause}"

    if order_by:
        query += f" ORDER BY {quote_identifier(order_by)} {OrderDirection(order_direction).value}"

    if limit is not None and limit >= 0:
        query += f" LIMIT {limit}"

    return query
