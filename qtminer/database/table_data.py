"""
Table data queries.

Reads the distinct rows of a table, the distinct values of one column and
the MIN/MAX aggregates of a numeric column.
"""

from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import MetaData, Table, func, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import NoSuchTableError

from qtminer.database.db_access import DbAccess
from qtminer.database.table_schema import Column, TableSchema
from qtminer.utils.advanced_logging import get_logger
from qtminer.utils.error_handling import DatabaseError, EmptySetError, NoValueError


logger = get_logger(__name__)


class QueryType(str, Enum):
    """Supported column aggregates."""

    MIN = "min"
    MAX = "max"


def _convert(column: Column, value: Any) -> Any:
    if column.is_number():
        return float(value)
    return str(value)


class TableData:
    """Queries over the rows of a table."""

    def __init__(self, db: DbAccess):
        self.db = db

    def _reflect(self, conn: Connection, table_name: str) -> Table:
        try:
            return Table(table_name, MetaData(), autoload_with=conn)
        except NoSuchTableError as e:
            raise DatabaseError(
                f"Table '{table_name}' does not exist",
                error_code="TABLE_NOT_FOUND",
                details={"table": table_name},
            ) from e

    def get_distinct_examples(self, table_name: str, schema: Optional[TableSchema] = None) -> List[tuple]:
        """
        Distinct rows of ``table_name`` over its supported columns.

        Raises:
            DatabaseError: If the table has no supported column
            EmptySetError: If the table has no rows
            NoValueError: If a cell is NULL
        """
        schema = schema or TableSchema(self.db, table_name)
        if schema.number_of_attributes == 0:
            raise DatabaseError(
                f"Table '{table_name}' has no numeric or string column",
                error_code="NO_ATTRIBUTES",
            )

        columns = list(schema)
        with self.db.get_connection() as conn:
            table = self._reflect(conn, table_name)
            query = select(*[table.c[column.name] for column in columns]).distinct()
            result = conn.execute(query).all()

        if not result:
            raise EmptySetError(f"Table '{table_name}' is empty", details={"table": table_name})

        examples = []
        for row_number, row in enumerate(result):
            example = []
            for column, value in zip(columns, row):
                if value is None:
                    raise NoValueError(
                        f"NULL value in column '{column.name}' of '{table_name}'",
                        details={"table": table_name, "column": column.name, "row": row_number},
                    )
                example.append(_convert(column, value))
            examples.append(tuple(example))

        logger.debug("distinct_examples_loaded", table=table_name, rows=len(examples))
        return examples

    def get_distinct_column_values(self, table_name: str, column: Column) -> List[Any]:
        """Sorted distinct non-NULL values of ``column``."""
        with self.db.get_connection() as conn:
            table = self._reflect(conn, table_name)
            sql_column = table.c[column.name]
            query = (
                select(sql_column)
                .where(sql_column.is_not(None))
                .distinct()
                .order_by(sql_column)
            )
            values = conn.execute(query).scalars().all()

        return sorted({_convert(column, value) for value in values})

    def get_aggregate_column_value(self, table_name: str, column: Column, aggregate: QueryType) -> Any:
        """
        MIN or MAX of ``column``.

        Raises:
            NoValueError: If the aggregate is NULL (empty table or all NULL)
        """
        aggregate = QueryType(aggregate)
        with self.db.get_connection() as conn:
            table = self._reflect(conn, table_name)
            sql_column = table.c[column.name]
            function = func.min if aggregate is QueryType.MIN else func.max
            value = conn.execute(select(function(sql_column))).scalar()

        if value is None:
            raise NoValueError(
                f"No value found for {aggregate.value.upper()}({column.name}) on '{table_name}'",
                details={"table": table_name, "column": column.name, "aggregate": aggregate.value},
            )
        return _convert(column, value)

    def __str__(self) -> str:
        return f"TableData using {self.db}"
