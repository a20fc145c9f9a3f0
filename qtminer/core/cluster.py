"""
Cluster: a centroid tuple plus the ids of the dataset rows assigned to it.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional, Set

from qtminer.data.tuple import Tuple

if TYPE_CHECKING:
    from qtminer.data.dataset import Data


class Cluster:
    """
    Centroid tuple and member row ids.

    The centroid is fixed at construction. Membership has set semantics:
    adding an id twice is a no-op. Clusters order by member count only;
    equality compares centroid and members.
    """

    def __init__(self, centroid: Tuple):
        if centroid is None:
            raise ValueError("Cluster centroid must not be None")
        self._centroid = centroid
        self._clustered_data: Set[int] = set()

    @property
    def centroid(self) -> Tuple:
        return self._centroid

    def add_data(self, id: int) -> bool:
        """Add row ``id``; returns whether it was not already a member."""
        self._check_id(id)
        if id in self._clustered_data:
            return False
        self._clustered_data.add(id)
        return True

    def contains(self, id: int) -> bool:
        self._check_id(id)
        return id in self._clustered_data

    def remove_tuple(self, id: int) -> None:
        self._check_id(id)
        self._clustered_data.discard(id)

    def copy(self) -> "Cluster":
        clone = Cluster(self._centroid)
        clone._clustered_data = set(self._clustered_data)
        return clone

    @staticmethod
    def _check_id(id: int) -> None:
        if id < 0:
            raise ValueError(f"Row id must not be negative, got {id}")

    @property
    def size(self) -> int:
        return len(self._clustered_data)

    @property
    def member_ids(self) -> list:
        return sorted(self._clustered_data)

    def __len__(self) -> int:
        return len(self._clustered_data)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._clustered_data))

    def __contains__(self, id: object) -> bool:
        return id in self._clustered_data

    def __lt__(self, other: "Cluster") -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self.size < other.size

    def __gt__(self, other: "Cluster") -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self.size > other.size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self._centroid == other._centroid and self._clustered_data == other._clustered_data

    __hash__ = None

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def render(self, data: "Data") -> str:
        """
        Detailed listing: centroid, every member row with its distance to
        the centroid, and the mean distance.
        """
        if data is None:
            raise ValueError("Dataset must not be None")

        lines = ["Centroid=(" + "".join(f"{item} " for item in self._centroid) + ")", "Examples:"]
        for id in self:
            values = "".join(
                f"{data.get_attribute_value(id, j)} " for j in range(data.number_of_attributes)
            )
            distance = self._centroid.distance(data.get_item_set(id))
            lines.append(f"[{values}] dist={distance}")
        lines.append("")
        lines.append(f"AvgDistance={self._centroid.avg_distance(data, self)}")
        return "\n".join(lines)

    def summarize(self) -> str:
        """Compact form: centroid values only."""
        return "Centroid=(" + " ".join(str(item) for item in self._centroid) + ")"

    def to_dict(self, data: Optional["Data"] = None) -> Dict[str, Any]:
        """Plain-value export; the mean distance needs the dataset."""
        result: Dict[str, Any] = {
            "centroid": self._centroid.values(),
            "member_ids": self.member_ids,
            "size": self.size,
        }
        if data is not None:
            result["avg_distance"] = self._centroid.avg_distance(data, self)
        return result

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def __getstate__(self) -> Dict[str, Any]:
        return {"centroid": self._centroid, "members": self.member_ids}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self._centroid = state["centroid"]
        self._clustered_data = set(state["members"])

    def __str__(self) -> str:
        return self.summarize()

    def __repr__(self) -> str:
        return f"Cluster(centroid={self._centroid!r}, members={self.member_ids})"
