"""
ClusterSet: deduplicating collection of clusters produced by one QT run.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, Iterable, Iterator, List, Optional

from qtminer.core.cluster import Cluster

if TYPE_CHECKING:
    from qtminer.data.dataset import Data


class ClusterOrdering(str, Enum):
    """
    Identity of a cluster inside a ClusterSet.

    CENTROID: clusters are distinct when their centroids differ; iteration
        is by member count, ties broken by centroid value.
    SIZE: clusters are distinct when their member counts differ, so a
        second cluster of an already present size is dropped (legacy
        behaviour).
    """

    CENTROID = "centroid"
    SIZE = "size"


_IDENTITY: Dict[ClusterOrdering, Callable[[Cluster], Hashable]] = {
    ClusterOrdering.CENTROID: lambda cluster: cluster.centroid,
    ClusterOrdering.SIZE: lambda cluster: cluster.size,
}

_SORT_KEY: Dict[ClusterOrdering, Callable[[Cluster], Any]] = {
    ClusterOrdering.CENTROID: lambda cluster: (cluster.size, cluster.centroid.sort_key()),
    ClusterOrdering.SIZE: lambda cluster: cluster.size,
}


class ClusterSet:
    """Clusters keyed by the configured identity, iterated in size order."""

    def __init__(
        self,
        clusters: Optional[Iterable[Cluster]] = None,
        ordering: ClusterOrdering = ClusterOrdering.CENTROID,
    ):
        self.ordering = ClusterOrdering(ordering)
        self._clusters: Dict[Hashable, Cluster] = {}
        for cluster in clusters or ():
            self.add(cluster)

    def add(self, cluster: Cluster) -> bool:
        """Insert ``cluster``; returns False when an equal one is already held."""
        if cluster is None:
            raise ValueError("Cluster to add must not be None")
        key = _IDENTITY[self.ordering](cluster)
        if key in self._clusters:
            return False
        self._clusters[key] = cluster
        return True

    def clusters(self) -> List[Cluster]:
        return sorted(self._clusters.values(), key=_SORT_KEY[self.ordering])

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self.clusters())

    def __len__(self) -> int:
        return len(self._clusters)

    def __contains__(self, cluster: object) -> bool:
        return any(cluster == held for held in self._clusters.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClusterSet):
            return NotImplemented
        return self.clusters() == other.clusters()

    __hash__ = None

    def render(self, data: "Data") -> str:
        """Detailed listing of every cluster, numbered from 0."""
        if data is None:
            raise ValueError("Dataset must not be None")
        return "".join(f"{i}:{cluster.render(data)}\n" for i, cluster in enumerate(self))

    def summarize(self) -> str:
        """Centroids only, numbered from 1."""
        return "".join(f"{i}:{cluster.summarize()}\n" for i, cluster in enumerate(self, start=1))

    def copy(self) -> "ClusterSet":
        """Independent set holding copies of the clusters."""
        return ClusterSet((cluster.copy() for cluster in self), ordering=self.ordering)

    def to_list(self, data: Optional["Data"] = None) -> List[Dict[str, Any]]:
        return [cluster.to_dict(data) for cluster in self]

    def __str__(self) -> str:
        return self.summarize()

    def __repr__(self) -> str:
        return f"ClusterSet(ordering={self.ordering.value}, clusters={self.clusters()!r})"
