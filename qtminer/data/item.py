"""
Record values ("items") and the distance between them.

An item is one column's value bound to its attribute. Items form a closed
union of two variants and their pairwise distance is looked up in an
explicit table:

    self \\ other   Continuous              Discrete      other / None
    Continuous      |scale(a) - scale(b)|   DistanceError DistanceError
    Discrete        1.0                     0.0 or 1.0    1.0

Continuous comparisons fail loudly on a type or attribute mismatch while
discrete comparisons degrade to the maximal distance.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple as TupleType, Type, Union

from qtminer.data.attribute import ContinuousAttribute, DiscreteAttribute
from qtminer.utils.error_handling import DatasetError, DistanceError


@dataclass(frozen=True)
class ContinuousItem:
    """Numeric value of a continuous attribute."""

    attribute: ContinuousAttribute
    value: float

    def __post_init__(self):
        if not isinstance(self.attribute, ContinuousAttribute):
            raise DatasetError("ContinuousItem requires a ContinuousAttribute")
        if self.value is None or isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise DatasetError(
                f"Value of '{self.attribute.name}' must be a number, got {self.value!r}",
                details={"attribute": self.attribute.name},
            )
        if math.isnan(self.value):
            raise DatasetError(f"Value of '{self.attribute.name}' is NaN")
        object.__setattr__(self, "value", float(self.value))

    @property
    def scaled_value(self) -> float:
        return self.attribute.get_scaled_value(self.value)

    def distance(self, other: Any) -> float:
        return item_distance(self, other)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class DiscreteItem:
    """Symbolic value of a discrete attribute."""

    attribute: DiscreteAttribute
    value: str

    def __post_init__(self):
        if not isinstance(self.attribute, DiscreteAttribute):
            raise DatasetError("DiscreteItem requires a DiscreteAttribute")
        if not isinstance(self.value, str):
            raise DatasetError(
                f"Value of '{self.attribute.name}' must be a string, got {self.value!r}",
                details={"attribute": self.attribute.name},
            )

    def distance(self, other: Any) -> float:
        return item_distance(self, other)

    def __str__(self) -> str:
        return self.value


Item = Union[ContinuousItem, DiscreteItem]


# =============================================================================
# Distance Table
# =============================================================================


def _continuous_distance(a: ContinuousItem, b: ContinuousItem) -> float:
    left, right = a.attribute, b.attribute
    if left is not right and left != right:
        left_range = [left.min_value, left.max_value]
        right_range = [right.min_value, right.max_value]
        raise DistanceError(
            f"Cannot compare '{left.name}' {left_range} with '{right.name}' {right_range}",
            details={
                "left": left.name,
                "right": right.name,
                "left_range": left_range,
                "right_range": right_range,
            },
        )
    return abs(a.scaled_value - b.scaled_value)


def _discrete_distance(a: DiscreteItem, b: DiscreteItem) -> float:
    return 0.0 if a.value == b.value else 1.0


def _maximal_distance(a: DiscreteItem, b: Any) -> float:
    return 1.0


def _incompatible(a: ContinuousItem, b: Any) -> float:
    if b is None:
        raise DistanceError(f"Cannot compare '{a.attribute.name}' with nothing")
    raise DistanceError(
        f"A continuous item can only be compared with a continuous item, "
        f"got {type(b).__name__}",
        details={"attribute": a.attribute.name, "other_type": type(b).__name__},
    )


DistanceRule = Callable[[Any, Any], float]

DISTANCE_TABLE: Dict[TupleType[Type, Type], DistanceRule] = {
    (ContinuousItem, ContinuousItem): _continuous_distance,
    (DiscreteItem, DiscreteItem): _discrete_distance,
    (DiscreteItem, ContinuousItem): _maximal_distance,
}

# Rule used when the right operand is not an item (or None).
FALLBACK_RULES: Dict[Type, DistanceRule] = {
    ContinuousItem: _incompatible,
    DiscreteItem: _maximal_distance,
}


def item_distance(a: Item, b: Any) -> float:
    """
    Distance between ``a`` and ``b`` following the item distance table.

    Args:
        a: Left item
        b: Anything; only items of a compatible kind yield a real distance

    Returns:
        Non-negative distance

    Raises:
        DistanceError: If ``a`` is not an item or a continuous item is
            compared with something incompatible
    """
    left = type(a)
    if left not in FALLBACK_RULES:
        raise DistanceError(f"Not an item: {a!r}")
    rule = DISTANCE_TABLE.get((left, type(b)), FALLBACK_RULES[left])
    return rule(a, b)
