"""
Attribute schema.

An attribute describes one column of a dataset: either a discrete domain
(finite, lexicographically ordered set of symbols) or a continuous range
used to rescale values into [0, 1].
"""

from dataclasses import dataclass, field
from typing import Iterator, Tuple as TupleType, Union

from qtminer.utils.error_handling import ConfigurationError


@dataclass(frozen=True)
class Attribute:
    """Common part of every attribute: symbolic name and column index."""

    name: str
    index: int

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("Attribute name must be a non-empty string")
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise ConfigurationError(
                f"Attribute index must be a non-negative integer, got {self.index!r}",
                details={"attribute": self.name},
            )

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DiscreteAttribute(Attribute):
    """Attribute whose values come from a finite set of symbols."""

    values: TupleType[str, ...] = field(default=())

    def __post_init__(self):
        super().__post_init__()
        if self.values is None or isinstance(self.values, str):
            raise ConfigurationError(
                f"Domain of '{self.name}' must be a collection of strings",
            )
        domain = set(self.values)
        if not domain:
            raise ConfigurationError(
                f"Domain of '{self.name}' must not be empty",
                details={"attribute": self.name},
            )
        if not all(isinstance(v, str) for v in domain):
            raise ConfigurationError(
                f"Domain of '{self.name}' must only contain strings",
                details={"attribute": self.name},
            )
        # Frozen dataclass: normalise the domain in place once.
        object.__setattr__(self, "values", tuple(sorted(domain)))

    @property
    def number_of_distinct_values(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __contains__(self, value: object) -> bool:
        return value in self.values

    def __str__(self) -> str:
        return f"{self.name} [{', '.join(self.values)}]"


@dataclass(frozen=True)
class ContinuousAttribute(Attribute):
    """Numeric attribute with strict bounds ``min_value < max_value``."""

    min_value: float = 0.0
    max_value: float = 1.0

    def __post_init__(self):
        super().__post_init__()
        for bound in (self.min_value, self.max_value):
            if isinstance(bound, bool) or not isinstance(bound, (int, float)):
                raise ConfigurationError(
                    f"Bounds of '{self.name}' must be numbers, got {bound!r}",
                    details={"attribute": self.name},
                )
        if not self.min_value < self.max_value:
            raise ConfigurationError(
                f"Minimum of '{self.name}' must be lower than its maximum "
                f"({self.min_value} >= {self.max_value})",
                details={"attribute": self.name, "min": self.min_value, "max": self.max_value},
            )
        object.__setattr__(self, "min_value", float(self.min_value))
        object.__setattr__(self, "max_value", float(self.max_value))

    def get_scaled_value(self, value: float) -> float:
        """Linearly rescale ``value`` so that min maps to 0 and max to 1."""
        return (value - self.min_value) / (self.max_value - self.min_value)

    def contains_value(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value

    def __str__(self) -> str:
        return f"{self.name} [{self.min_value}, {self.max_value}]"


AnyAttribute = Union[DiscreteAttribute, ContinuousAttribute]
