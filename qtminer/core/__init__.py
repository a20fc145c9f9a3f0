"""
Core clustering module.

Exports:
- QTMiner: Quality Threshold clustering engine
- Cluster: Centroid plus member row ids
- ClusterSet, ClusterOrdering: Result collection and its identity policy
"""

from qtminer.core.cluster import Cluster
from qtminer.core.cluster_set import ClusterOrdering, ClusterSet
from qtminer.core.qt_miner import QTMiner

__all__ = [
    "QTMiner",
    "Cluster",
    "ClusterSet",
    "ClusterOrdering",
]
