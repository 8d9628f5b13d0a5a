"""SQLite explorer MCP server.

Exposes a database schema as resources and lets the client run SQL through
tools. The connection is opened once per session in ``lifespan`` and handed
to tools through the request context. The database is opened read-only
unless ``--enable-write-operations`` is given.
"""

import argparse
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import pandas as pd

from mcp_framework import BaseMCPServer, Context, ResourceError, ToolError, mcp_resource, mcp_tool

from .config import SQLITE_DB_PATH

MAX_QUERY_ROWS = 1000


def infer_column_type(series: pd.Series) -> str:
    """Get a descriptive data type for a column loaded from SQLite.

    SQLite is dynamically typed, so object columns are inspected value by value.
    """
    dtype = series.dtype

    if pd.api.types.is_bool_dtype(dtype):
        return "boolean"
    if pd.api.types.is_integer_dtype(dtype):
        return "integer"
    if pd.api.types.is_float_dtype(dtype):
        return "float"
    if pd.api.types.is_datetime64_any_dtype(dtype):
        return "datetime"

    sample = series.dropna().head(100)
    if len(sample) == 0:
        return "unknown"

    types_found = set()
    for value in sample:
        if isinstance(value, str):
            types_found.add("text")
        elif isinstance(value, bytes):
            types_found.add("blob")
        else:
            types_found.add(type(value).__name__.lower())

    if len(types_found) == 1:
        return types_found.pop()
    return f"mixed({', '.join(sorted(types_found))})"


def _table_names(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    ).fetchall()
    return [row[0] for row in rows]


class SQLiteExplorerServer(BaseMCPServer):
    """Browse and query a SQLite database."""

    def __init__(self, db_path: str = SQLITE_DB_PATH, enable_write_operations: bool = False):
        """Initialize the SQLite explorer.

        Args:
            db_path: Path to the SQLite database file
            enable_write_operations: Whether statements may modify the database
        """
        super().__init__(
            "sqlite-explorer",
            "0.1.0",
            instructions="Read schema://main before writing queries.",
        )
        self.db_path = db_path
        self.write_operations_enabled = enable_write_operations

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add SQLite-specific command line arguments."""
        parser.add_argument(
            "--db-path",
            default=self.db_path,
            help=f"SQLite database file (default: {self.db_path})"
        )
        parser.add_argument(
            "--enable-write-operations",
            action="store_true",
            help="Allow INSERT/UPDATE/DELETE and DDL statements. "
                 "By default the database is opened read-only and must already exist."
        )

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator[Dict[str, Any]]:
        """Open the database for the duration of a client session."""
        if self.write_operations_enabled:
            conn = sqlite3.connect(self.db_path)
        else:
            conn = sqlite3.connect(f"{Path(self.db_path).resolve().as_uri()}?mode=ro", uri=True)
        logging.info(f"Opened {self.db_path} (write operations {'enabled' if self.write_operations_enabled else 'disabled'})")
        try:
            yield {"db": conn}
        finally:
            conn.close()
            logging.info(f"Closed {self.db_path}")

    @mcp_resource("schema://main", name="schema")
    def get_schema(self, ctx: Context) -> str:
        """Provide the database schema as a resource"""
        conn: sqlite3.Connection = ctx.lifespan_context["db"]
        rows = conn.execute("SELECT sql FROM sqlite_master WHERE sql IS NOT NULL").fetchall()
        return "\n".join(sql for (sql,) in rows)

    @mcp_resource("schema://tables/{table}", name="table-schema")
    def get_table_schema(self, table: str, ctx: Context) -> str:
        """CREATE statement of a single table"""
        conn: sqlite3.Connection = ctx.lifespan_context["db"]
        row = conn.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
        ).fetchone()
        if row is None:
            raise ResourceError(f"Unknown table: {table}")
        return row[0]

    @mcp_tool()
    def query(self, sql: str, ctx: Context, max_rows: int = 100) -> str:
        """Execute a single SQL statement and return the rows as a text table.

        Args:
            sql: The SQL statement to run
            max_rows: Maximum number of rows to return (max 1000)

        Returns:
            Formatted rows, or a summary for statements that return no rows
        """
        conn: sqlite3.Connection = ctx.lifespan_context["db"]
        max_rows = max(1, min(max_rows, MAX_QUERY_ROWS))

        try:
            cursor = conn.execute(sql)
            if cursor.description is None:
                conn.commit()
                return f"Statement executed. {max(cursor.rowcount, 0)} row(s) affected."
            columns = [column[0] for column in cursor.description]
            rows = cursor.fetchmany(max_rows + 1)
        except sqlite3.OperationalError as e:
            if not self.write_operations_enabled and "readonly" in str(e):
                raise ToolError(
                    "Write operations are disabled. Use --enable-write-operations flag to enable."
                ) from e
            raise ToolError(f"SQL error: {e}") from e
        except sqlite3.Error as e:
            raise ToolError(f"SQL error: {e}") from e

        if not rows:
            return "Query returned no rows."

        df = pd.DataFrame(rows[:max_rows], columns=columns)
        text = df.to_string(index=False)
        if len(rows) > max_rows:
            text += f"\n... (showing first {max_rows} rows)"
        return text

    @mcp_tool(name="list-tables")
    def list_tables(self, ctx: Context) -> List[str]:
        """List the user tables in the database."""
        return _table_names(ctx.lifespan_context["db"])

    @mcp_tool(name="describe-table")
    def describe_table(self, table: str, ctx: Context, rows: int = 5) -> Dict[str, Any]:
        """Describe a table's columns, row count and a few sample rows.

        Args:
            table: Name of the table to describe
            rows: Number of sample rows to include

        Returns:
            Dictionary with columns, row count and preview records
        """
        conn: sqlite3.Connection = ctx.lifespan_context["db"]
        if table not in _table_names(conn):
            raise ToolError(f"Unknown table: {table}")

        quoted = '"' + table.replace('"', '""') + '"'
        row_count = conn.execute(f"SELECT COUNT(*) FROM {quoted}").fetchone()[0]
        preview = pd.read_sql_query(f"SELECT * FROM {quoted} LIMIT ?", conn, params=(max(rows, 0),))

        columns = []
        for _, name, declared_type, not_null, _, primary_key in conn.execute(f"PRAGMA table_info({quoted})"):
            columns.append({
                "name": name,
                "declared_type": declared_type or None,
                "sampled_type": infer_column_type(preview[name]) if name in preview else "unknown",
                "nullable": not not_null,
                "primary_key": bool(primary_key),
            })

        return {
            "table": table,
            "row_count": row_count,
            "columns": columns,
            "preview": preview.astype(object).where(preview.notna(), None).to_dict(orient="records"),
        }


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the SQLite explorer."""
    # Create server instance to parse args
    parsed_args = SQLiteExplorerServer().parse_args(args)

    # Create actual server with parsed arguments
    server = SQLiteExplorerServer(
        db_path=parsed_args.db_path,
        enable_write_operations=parsed_args.enable_write_operations,
    )
    server.main(args)


if __name__ == "__main__":
    main()
