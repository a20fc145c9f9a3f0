"""
Table schema introspection.

Maps the SQL column types of a table onto the two abstract kinds the miner
understands: ``number`` and ``string``. Columns of any other type are
ignored.
"""

from dataclasses import dataclass
from typing import Iterator, List

from sqlalchemy import inspect
from sqlalchemy import types as sqltypes
from sqlalchemy.exc import SQLAlchemyError

from qtminer.database.db_access import DbAccess
from qtminer.utils.advanced_logging import get_logger
from qtminer.utils.error_handling import DatabaseError


logger = get_logger(__name__)

NUMBER = "number"
STRING = "string"

# Float no longer derives from Numeric in SQLAlchemy 2.1.
_NUMBER_TYPES = (sqltypes.Integer, sqltypes.Numeric, sqltypes.Float)
# Boolean/BIT columns are read as symbols.
_STRING_TYPES = (sqltypes.String, sqltypes.Boolean)


@dataclass(frozen=True)
class Column:
    """A table column with its abstract kind."""

    name: str
    type: str

    def is_number(self) -> bool:
        return self.type == NUMBER

    def __str__(self) -> str:
        return f"{self.name}:{self.type}"


def column_kind(sql_type: sqltypes.TypeEngine):
    """Abstract kind of a SQL type, or None when unsupported."""
    if isinstance(sql_type, _NUMBER_TYPES):
        return NUMBER
    if isinstance(sql_type, _STRING_TYPES):
        return STRING
    return None


class TableSchema:
    """Ordered list of the supported columns of a table."""

    def __init__(self, db: DbAccess, table_name: str):
        """
        Introspect ``table_name``.

        Raises:
            DatabaseError: If the table does not exist or cannot be inspected
        """
        self.db = db
        self.table_name = table_name
        self._columns: List[Column] = []

        if db.engine is None:
            db.init_connection()

        try:
            inspector = inspect(db.engine)
            if not inspector.has_table(table_name):
                raise DatabaseError(
                    f"Table '{table_name}' does not exist",
                    error_code="TABLE_NOT_FOUND",
                    details={"table": table_name},
                )
            reflected = inspector.get_columns(table_name)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Cannot inspect table '{table_name}': {e}") from e

        for info in reflected:
            kind = column_kind(info["type"])
            if kind is None:
                logger.debug("column_skipped", table=table_name, column=info["name"], sql_type=str(info["type"]))
                continue
            self._columns.append(Column(info["name"], kind))

    @property
    def number_of_attributes(self) -> int:
        return len(self._columns)

    def get_column(self, index: int) -> Column:
        return self._columns[index]

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __str__(self) -> str:
        return " ".join(str(c) for c in self._columns)
