"""
QT Miner - Quality Threshold clustering.

Partitions the rows of a dataset into clusters whose members all lie
within ``radius`` of the cluster centroid. The centroid is always one of
the dataset rows. Each round builds one candidate cluster per unassigned
row and commits the most populated one.
"""

import logging
import math
from numbers import Real
from pathlib import Path
from typing import List, Tuple as TupleType, Union

import numpy as np

from qtminer.core.cluster import Cluster
from qtminer.core.cluster_set import ClusterOrdering, ClusterSet
from qtminer.data.dataset import Data
from qtminer.data.tuple import Tuple
from qtminer.utils.advanced_logging import BatchLogger, PerformanceLogger, get_logger
from qtminer.utils.error_handling import (
    ClusterDecodeError,
    ClusteringRadiusError,
    ConfigurationError,
    EmptyDatasetError,
)

logger = logging.getLogger(__name__)
perf_logger = get_logger(__name__)

DEFAULT_PROGRESS_INTERVAL = 100


class QTMiner:
    """
    Quality Threshold clustering engine.

    Holds the radius, the identity policy of its result set and the
    clusters found by the last ``compute`` call.
    """

    def __init__(
        self,
        radius: float,
        ordering: Union[ClusterOrdering, str] = ClusterOrdering.CENTROID,
        progress_log_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ):
        """
        Args:
            radius: Maximum distance between a member and its centroid
            ordering: Cluster identity inside the result set
            progress_log_interval: Log distance matrix progress every N rows

        Raises:
            ConfigurationError: If radius is not a finite number > 0 or
                the ordering is unknown
        """
        if isinstance(radius, bool) or not isinstance(radius, Real) or not math.isfinite(radius) or radius <= 0:
            raise ConfigurationError(
                f"Radius must be a positive finite number, got {radius!r}",
                error_code="INVALID_RADIUS",
                details={"radius": repr(radius)},
            )
        try:
            self.ordering = ClusterOrdering(ordering)
        except ValueError as e:
            raise ConfigurationError(f"Unknown cluster ordering {ordering!r}") from e

        self.radius = float(radius)
        self.progress_log_interval = max(1, progress_log_interval)
        self._cluster_set = ClusterSet(ordering=self.ordering)

    # -------------------------------------------------------------------------
    # Clustering
    # -------------------------------------------------------------------------

    def compute(self, data: Data) -> int:
        """
        Run QT clustering over every row of ``data``.

        Pairwise distances are computed once per call and kept only as an
        n x n boolean "within radius" matrix, so memory grows as n**2 bytes
        (about 400 MB for 20,000 rows) and time as n**2 distance calls.

        Returns:
            Number of clusters found

        Raises:
            ValueError: If data is None
            EmptyDatasetError: If data has no rows
            ClusteringRadiusError: If all rows fall into a single cluster
        """
        if data is None:
            raise ValueError("Dataset must not be None")

        n = data.number_of_examples
        if n == 0:
            raise EmptyDatasetError("Cannot cluster an empty dataset", error_code="EMPTY_DATASET")

        logger.info(f"Starting QT clustering on {n} rows with radius {self.radius}")

        with PerformanceLogger("qt_compute", logger=perf_logger, item_count=n, radius=self.radius):
            tuples = [data.get_item_set(i) for i in range(n)]
            within = self._neighbourhoods(tuples)
            cluster_set, number_of_clusters = self._build_clusters(tuples, within)

        self._cluster_set = cluster_set

        if number_of_clusters == 1:
            raise ClusteringRadiusError(
                f"All {n} rows fall into a single cluster with radius {self.radius}",
                number_of_examples=n,
                details={"radius": self.radius},
            )

        logger.info(f"QT clustering produced {number_of_clusters} clusters")
        return number_of_clusters

    def _neighbourhoods(self, tuples: List[Tuple]) -> np.ndarray:
        """Symmetric boolean matrix: row j lies within the radius of row i."""
        n = len(tuples)
        within = np.eye(n, dtype=bool)
        progress = BatchLogger(
            total_items=n,
            operation="distance_matrix",
            log_interval=self.progress_log_interval,
            logger=perf_logger,
        )
        for i in range(n):
            for j in range(i + 1, n):
                within[i, j] = within[j, i] = tuples[i].distance(tuples[j]) <= self.radius
            progress.update()
        progress.complete()
        return within

    def _build_clusters(self, tuples: List[Tuple], within: np.ndarray) -> TupleType[ClusterSet, int]:
        """
        Commit clusters until every row is assigned.

        Returns the set and the number of committed clusters. Under SIZE
        ordering the set may hold fewer clusters than were committed.
        """
        cluster_set = ClusterSet(ordering=self.ordering)
        committed = 0
        unassigned = np.ones(len(tuples), dtype=bool)
        # Unassigned rows within the radius of each row, itself included.
        counts = within.sum(axis=1, dtype=np.int64)

        while unassigned.any():
            # argmax returns the first maximum: ties go to the lowest row id.
            best = int(np.argmax(np.where(unassigned, counts, -1)))
            members = np.flatnonzero(within[best] & unassigned)
            if members.size == 0:
                break

            cluster = Cluster(tuples[best])
            for id in members:
                cluster.add_data(int(id))
            if not cluster_set.add(cluster):
                logger.debug(f"Cluster centred on row {best} dropped by {self.ordering.value} ordering")
            unassigned[members] = False
            for id in members:
                counts -= within[id]
            committed += 1

        return cluster_set, committed

    def get_cluster_set(self) -> ClusterSet:
        """Copy of the clusters found by the last run."""
        return self._cluster_set.copy()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> Path:
        """
        Save the current clusters and radius to ``path``.

        Raises:
            OSError: If the file cannot be written
        """
        from qtminer.storage.cluster_storage import save_clusters

        return save_clusters(path, self._cluster_set, self.radius)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "QTMiner":
        """
        Restore a miner saved with :meth:`save`.

        Raises:
            OSError: If the file cannot be read
            ClusterDecodeError: If the file is not a saved clustering
        """
        from qtminer.storage.cluster_storage import load_clusters

        cluster_set, radius = load_clusters(path)
        if radius is None:
            raise ClusterDecodeError(
                f"Cluster file '{path}' carries no radius",
                error_code="MISSING_RADIUS",
                details={"path": str(path)},
            )
        try:
            miner = cls(radius, ordering=cluster_set.ordering)
        except ConfigurationError as e:
            raise ClusterDecodeError(f"Cluster file '{path}' carries an invalid radius: {e}") from e
        miner._cluster_set = cluster_set
        return miner

    def __str__(self) -> str:
        return self._cluster_set.summarize()

    def __repr__(self) -> str:
        return f"QTMiner(radius={self.radius}, ordering={self.ordering.value}, clusters={len(self._cluster_set)})"
