"""
Dataset accessor.

``Data`` holds an attribute schema and the distinct rows of a table, and
materialises rows as ``Tuple`` objects on demand. It is read-only once
built: the clustering engine only queries it.
"""

import logging
import numbers
from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, Sequence

from qtminer.data.attribute import AnyAttribute, ContinuousAttribute, DiscreteAttribute
from qtminer.data.item import ContinuousItem, DiscreteItem
from qtminer.data.tuple import Tuple
from qtminer.utils.advanced_logging import timed
from qtminer.utils.error_handling import ConfigurationError, DatasetError

if TYPE_CHECKING:
    from qtminer.database.db_access import DbAccess

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


class Data:
    """
    Attribute schema plus distinct rows (examples) of one dataset.

    Rows are de-duplicated on construction, keeping the first occurrence
    order. Every value is checked against its attribute: continuous values
    must lie within the declared bounds and discrete values within the
    declared domain.
    """

    def __init__(self, attributes: Sequence[AnyAttribute], rows: Iterable[Sequence[Any]]):
        """
        Build a dataset.

        Args:
            attributes: Attribute schema, ``attributes[i].index == i``
            rows: Raw rows, one value per attribute in schema order

        Raises:
            ConfigurationError: If the schema is empty or badly indexed
            DatasetError: If a row does not fit the schema
        """
        attributes = list(attributes)
        if not attributes:
            raise ConfigurationError("A dataset needs at least one attribute")
        for position, attribute in enumerate(attributes):
            if not isinstance(attribute, (ContinuousAttribute, DiscreteAttribute)):
                raise ConfigurationError(f"Unsupported attribute type: {type(attribute).__name__}")
            if attribute.index != position:
                raise ConfigurationError(
                    f"Attribute '{attribute.name}' has index {attribute.index}, expected {position}"
                )

        self._attributes = tuple(attributes)
        self._examples: List[tuple] = []

        seen = set()
        for row_number, row in enumerate(rows):
            example = self._validate_row(row, row_number)
            if example in seen:
                continue
            seen.add(example)
            self._examples.append(example)

        logger.debug(
            f"Dataset built: {len(self._examples)} distinct rows, "
            f"{len(self._attributes)} attributes"
        )

    def _validate_row(self, row: Sequence[Any], row_number: int) -> tuple:
        if row is None or len(row) != len(self._attributes):
            raise DatasetError(
                f"Row {row_number} has {0 if row is None else len(row)} values, "
                f"expected {len(self._attributes)}",
                details={"row": row_number},
            )

        values = []
        for attribute, value in zip(self._attributes, row):
            if isinstance(attribute, ContinuousAttribute):
                if not _is_number(value):
                    raise DatasetError(
                        f"Row {row_number}: value of '{attribute.name}' must be a number, got {value!r}",
                        details={"row": row_number, "attribute": attribute.name},
                    )
                value = float(value)
                if not attribute.contains_value(value):
                    raise DatasetError(
                        f"Row {row_number}: value {value} of '{attribute.name}' is outside "
                        f"[{attribute.min_value}, {attribute.max_value}]",
                        details={"row": row_number, "attribute": attribute.name},
                    )
            else:
                if not isinstance(value, str):
                    raise DatasetError(
                        f"Row {row_number}: value of '{attribute.name}' must be a string, got {value!r}",
                        details={"row": row_number, "attribute": attribute.name},
                    )
                if value not in attribute:
                    raise DatasetError(
                        f"Row {row_number}: '{value}' is not in the domain of '{attribute.name}'",
                        details={"row": row_number, "attribute": attribute.name},
                    )
            values.append(value)
        return tuple(values)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_rows(cls, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> "Data":
        """
        Build a dataset inferring the schema from the rows.

        A column whose values are all numbers becomes a continuous attribute
        bounded by the observed minimum and maximum; any other column becomes
        a discrete attribute over its observed values.
        """
        rows = [tuple(row) for row in rows]
        columns = list(columns)
        for row_number, row in enumerate(rows):
            if len(row) != len(columns):
                raise DatasetError(
                    f"Row {row_number} has {len(row)} values, expected {len(columns)}",
                    details={"row": row_number},
                )

        attributes: List[AnyAttribute] = []
        for index, name in enumerate(columns):
            column_values = [row[index] for row in rows]
            if column_values and all(_is_number(v) for v in column_values):
                attributes.append(
                    ContinuousAttribute(name, index, min(column_values), max(column_values))
                )
            else:
                attributes.append(DiscreteAttribute(name, index, tuple(column_values)))

        return cls(attributes, rows)

    @classmethod
    @timed(operation="load_table")
    def from_table(cls, table_name: str, db: Optional["DbAccess"] = None) -> "Data":
        """
        Load the distinct rows of a database table.

        Numeric columns become continuous attributes bounded by the table's
        MIN/MAX aggregates; string columns become discrete attributes over
        their distinct values.

        Args:
            table_name: Table to load
            db: Open database access (a new one is opened and closed if None)
        """
        from qtminer.database.db_access import DbAccess
        from qtminer.database.table_data import QueryType, TableData
        from qtminer.database.table_schema import TableSchema

        owns_connection = db is None
        if owns_connection:
            db = DbAccess()
            db.init_connection()

        try:
            schema = TableSchema(db, table_name)
            table_data = TableData(db)
            examples = table_data.get_distinct_examples(table_name, schema)

            attributes: List[AnyAttribute] = []
            for index, column in enumerate(schema):
                if column.is_number():
                    minimum = table_data.get_aggregate_column_value(table_name, column, QueryType.MIN)
                    maximum = table_data.get_aggregate_column_value(table_name, column, QueryType.MAX)
                    attributes.append(ContinuousAttribute(column.name, index, minimum, maximum))
                else:
                    values = table_data.get_distinct_column_values(table_name, column)
                    attributes.append(DiscreteAttribute(column.name, index, tuple(values)))
        finally:
            if owns_connection:
                db.close_connection()

        logger.info(f"Loaded table '{table_name}': {len(examples)} rows, {len(attributes)} attributes")
        return cls(attributes, examples)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def number_of_examples(self) -> int:
        return len(self._examples)

    @property
    def number_of_attributes(self) -> int:
        return len(self._attributes)

    @property
    def attribute_schema(self) -> tuple:
        return self._attributes

    def get_attribute(self, index: int) -> AnyAttribute:
        if not 0 <= index < len(self._attributes):
            raise IndexError(f"Attribute index {index} out of range")
        return self._attributes[index]

    def get_attribute_value(self, example_index: int, attribute_index: int) -> Any:
        self._check_row(example_index)
        if not 0 <= attribute_index < len(self._attributes):
            raise IndexError(f"Attribute index {attribute_index} out of range")
        return self._examples[example_index][attribute_index]

    def get_item_set(self, index: int) -> Tuple:
        """Materialise row ``index`` as a fresh Tuple."""
        self._check_row(index)
        example = self._examples[index]
        tuple_ = Tuple(len(self._attributes))
        for i, (attribute, value) in enumerate(zip(self._attributes, example)):
            if isinstance(attribute, ContinuousAttribute):
                tuple_.add(ContinuousItem(attribute, value), i)
            else:
                tuple_.add(DiscreteItem(attribute, value), i)
        return tuple_

    def _check_row(self, index: int) -> None:
        if not 0 <= index < len(self._examples):
            raise IndexError(f"Row index {index} out of range for {len(self._examples)} rows")

    def __iter__(self) -> Iterator[AnyAttribute]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._examples)

    def __str__(self) -> str:
        lines = ["", "--- Dataset schema ---"]
        lines.append("\t".join(f"{attribute.name}[{i}]" for i, attribute in enumerate(self._attributes)))
        lines.append("----------------------")
        for i, example in enumerate(self._examples):
            lines.append(f"{i}: " + " ".join(str(value) for value in example))
        return "\n".join(lines) + "\n"
