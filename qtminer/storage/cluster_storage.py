"""
Cluster Storage

Saves and restores the result of a QT run as a single file:
- Versioned pickle payload (radius, ordering policy, clusters)
- Clusters stored as (centroid, sorted member ids)
- File naming helper for saved runs

I/O errors surface as the usual OSError family. A file that can be read
but not decoded raises ClusterDecodeError.
"""

import pickle
from pathlib import Path
from typing import Any, Optional, Tuple as TupleType, Union

from qtminer.core.cluster import Cluster
from qtminer.core.cluster_set import ClusterOrdering, ClusterSet
from qtminer.data.tuple import Tuple
from qtminer.utils.advanced_logging import PerformanceLogger, get_logger
from qtminer.utils.error_handling import ClusterDecodeError


logger = get_logger(__name__)

FORMAT_VERSION = 1
DEFAULT_EXTENSION = ".dmp"

PathLike = Union[str, Path]


# =============================================================================
# Paths
# =============================================================================


def build_output_path(
    output_dir: PathLike,
    table_name: str,
    radius: float,
    extension: str = DEFAULT_EXTENSION,
) -> Path:
    """
    Default file for a run: ``<output_dir>/<table>_<radius><extension>``.

    Example:
        >>> build_output_path("data/clusters", "playtennis", 0.5)
        PosixPath('data/clusters/playtennis_0.5.dmp')
    """
    if not extension.startswith("."):
        extension = "." + extension
    return Path(output_dir) / f"{table_name}_{radius}{extension}"


# =============================================================================
# Save / Load
# =============================================================================


def save_clusters(path: PathLike, cluster_set: ClusterSet, radius: Optional[float] = None) -> Path:
    """
    Write ``cluster_set`` (and the radius that produced it) to ``path``.

    Parent directories are created.

    Returns:
        The path written

    Raises:
        ValueError: If cluster_set is None
        OSError: If the file cannot be written
    """
    if cluster_set is None:
        raise ValueError("Cluster set to save must not be None")

    path = Path(path)
    payload = {
        "format_version": FORMAT_VERSION,
        "radius": radius,
        "ordering": cluster_set.ordering.value,
        "clusters": [(cluster.centroid, cluster.member_ids) for cluster in cluster_set],
    }

    with PerformanceLogger("save_clusters", logger=logger, item_count=len(cluster_set), path=str(path)):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)

    logger.info("clusters_saved", path=str(path), clusters=len(cluster_set), radius=radius)
    return path


def load_clusters(path: PathLike) -> TupleType[ClusterSet, Optional[float]]:
    """
    Read a clustering written by :func:`save_clusters`.

    Returns:
        (cluster_set, radius)

    Raises:
        OSError: If the file cannot be opened or read
        ClusterDecodeError: If the content is not a saved clustering
    """
    path = Path(path)

    with open(path, "rb") as f:
        try:
            payload = pickle.load(f)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, TypeError, ValueError) as e:
            logger.error("cluster_file_decode_failed", path=str(path), error=str(e))
            raise ClusterDecodeError(
                f"Cannot decode cluster file '{path}': {e}",
                error_code="DECODE_FAILED",
                details={"path": str(path)},
            ) from e

    cluster_set, radius = _from_payload(payload, path)
    logger.info("clusters_loaded", path=str(path), clusters=len(cluster_set), radius=radius)
    return cluster_set, radius


def _decode_error(path: Path, reason: str) -> ClusterDecodeError:
    return ClusterDecodeError(
        f"Invalid cluster file '{path}': {reason}",
        error_code="INVALID_PAYLOAD",
        details={"path": str(path)},
    )


def _from_payload(payload: Any, path: Path) -> TupleType[ClusterSet, Optional[float]]:
    if not isinstance(payload, dict) or "clusters" not in payload:
        raise _decode_error(path, "not a saved clustering")

    version = payload.get("format_version")
    if version != FORMAT_VERSION:
        raise ClusterDecodeError(
            f"Unsupported cluster file version {version!r} in '{path}'",
            error_code="UNSUPPORTED_VERSION",
            details={"path": str(path), "format_version": version},
        )

    try:
        ordering = ClusterOrdering(payload.get("ordering", ClusterOrdering.CENTROID.value))
    except ValueError as e:
        raise _decode_error(path, f"unknown ordering {payload.get('ordering')!r}") from e

    radius = payload.get("radius")
    if radius is not None and not isinstance(radius, (int, float)):
        raise _decode_error(path, f"radius must be a number, got {type(radius).__name__}")

    entries = payload["clusters"]
    if not isinstance(entries, (list, tuple)):
        raise _decode_error(path, "clusters must be a list")

    cluster_set = ClusterSet(ordering=ordering)
    for entry in entries:
        try:
            centroid, members = entry
        except (TypeError, ValueError) as e:
            raise _decode_error(path, "cluster entry must be (centroid, members)") from e
        if not isinstance(centroid, Tuple):
            raise _decode_error(path, f"centroid must be a Tuple, got {type(centroid).__name__}")

        cluster = Cluster(centroid)
        for id in members:
            if isinstance(id, bool) or not isinstance(id, int) or id < 0:
                raise _decode_error(path, f"invalid member id {id!r}")
            cluster.add_data(id)
        cluster_set.add(cluster)

    return cluster_set, radius
