"""
Records ("tuples"): one observation as a fixed-size sequence of items.
"""

from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional

from qtminer.data.item import ContinuousItem, DiscreteItem, Item
from qtminer.utils.error_handling import ConfigurationError, DatasetError, DistanceError

if TYPE_CHECKING:
    from qtminer.data.dataset import Data


class Tuple:
    """
    Fixed-length ordered sequence of items, one per attribute in schema order.

    The length is set at construction and never changes. Slots start empty
    and are filled with ``add``; a tuple must be complete before it is used
    in a distance computation.
    """

    def __init__(self, size: int):
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ConfigurationError(f"Tuple size must be a positive integer, got {size!r}")
        self._items: List[Optional[Item]] = [None] * size

    @classmethod
    def of(cls, items: Iterable[Item]) -> "Tuple":
        """Build a complete tuple from items given in schema order."""
        items = list(items)
        tuple_ = cls(len(items))
        for i, item in enumerate(items):
            tuple_.add(item, i)
        return tuple_

    def add(self, item: Item, i: int) -> None:
        if not isinstance(item, (ContinuousItem, DiscreteItem)):
            raise DatasetError(f"Only items can be stored in a tuple, got {type(item).__name__}")
        self._check_index(i)
        self._items[i] = item

    def get(self, i: int) -> Optional[Item]:
        self._check_index(i)
        return self._items[i]

    def _check_index(self, i: int) -> None:
        if not 0 <= i < len(self._items):
            raise IndexError(f"Index {i} out of bounds for tuple of length {len(self._items)}")

    @property
    def length(self) -> int:
        return len(self._items)

    def is_complete(self) -> bool:
        return all(item is not None for item in self._items)

    def distance(self, other: "Tuple") -> float:
        """
        Sum of the per-position item distances.

        Raises:
            DistanceError: If ``other`` is missing, of another arity, or
                either tuple has an empty slot
        """
        if other is None:
            raise DistanceError("Cannot compute the distance to a missing tuple")
        if not isinstance(other, Tuple):
            raise DistanceError(f"Cannot compute the distance to {type(other).__name__}")
        if self.length != other.length:
            raise DistanceError(
                f"Tuples must have the same length ({self.length} != {other.length})",
                details={"left": self.length, "right": other.length},
            )

        total = 0.0
        for i, (mine, theirs) in enumerate(zip(self._items, other._items)):
            if mine is None or theirs is None:
                raise DistanceError(f"Tuple slot {i} has not been filled")
            total += mine.distance(theirs)
        return total

    def avg_distance(self, data: "Data", ids: Iterable[int]) -> float:
        """
        Mean distance from this tuple to the rows ``ids`` of ``data``.

        Returns 0.0 for an empty id collection.
        """
        if data is None:
            raise ValueError("Dataset must not be None")
        if ids is None:
            raise ValueError("Index set must not be None")

        total = 0.0
        count = 0
        for row in ids:
            if not 0 <= row < data.number_of_examples:
                raise IndexError(f"Row {row} out of bounds for dataset of {data.number_of_examples} rows")
            total += self.distance(data.get_item_set(row))
            count += 1

        return total / count if count > 0 else 0.0

    def values(self) -> List[Any]:
        return [item.value if item is not None else None for item in self._items]

    def sort_key(self) -> tuple:
        """Total order over tuples of one schema, consistent with equality."""
        key = []
        for item in self._items:
            if item is None:
                key.append((2, ""))
            elif isinstance(item, ContinuousItem):
                key.append((0, item.value))
            else:
                key.append((1, item.value))
        return tuple(key)

    def _identity(self) -> tuple:
        return tuple(
            (item.attribute.name, item.value) if item is not None else None
            for item in self._items
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tuple):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, i: int) -> Optional[Item]:
        return self.get(i)

    def __iter__(self) -> Iterator[Optional[Item]]:
        return iter(self._items)

    def __str__(self) -> str:
        return ", ".join(str(item) for item in self._items)

    def __repr__(self) -> str:
        return f"Tuple({self.values()!r})"
