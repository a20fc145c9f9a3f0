"""
data_models.py

Pydantic data models for QT miner reports.
Defines the machine-readable output of a clustering run (``--json``).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from qtminer.core.cluster_set import ClusterSet
from qtminer.data.attribute import AnyAttribute, DiscreteAttribute
from qtminer.data.dataset import Data


# =============================================================================
# ENUMS
# =============================================================================


class RunSource(str, Enum):
    """Where the clusters of a report came from."""

    MINED = "mined"
    LOADED = "loaded"


# =============================================================================
# CLUSTER MODELS
# =============================================================================


class AttributeInfo(BaseModel):
    """Schema entry of the clustered dataset."""

    name: str = Field(..., description="Column name")
    index: int = Field(..., ge=0, description="Position in the schema")
    kind: str = Field(..., description="discrete or continuous")
    domain: List[Any] = Field(default_factory=list, description="Distinct values, or [min, max]")


class ClusterReport(BaseModel):
    """One cluster of a run."""

    index: int = Field(..., ge=0, description="Position in the iteration order of the set")
    centroid: List[Any] = Field(..., description="Centroid values in schema order")
    member_ids: List[int] = Field(default_factory=list, description="Dataset row ids, ascending")
    size: int = Field(..., ge=0, description="Number of members")
    avg_distance: Optional[float] = Field(None, ge=0.0, description="Mean member distance to the centroid")


class RunReport(BaseModel):
    """Results of a clustering run."""

    table: Optional[str] = Field(None, description="Source table")
    radius: Optional[float] = Field(None, gt=0.0, description="Radius used for the run")
    ordering: str = Field(..., description="Cluster identity policy")
    source: RunSource = Field(default=RunSource.MINED)
    number_of_examples: Optional[int] = Field(None, ge=0, description="Rows clustered")
    number_of_clusters: int = Field(..., ge=0)
    attributes: List[AttributeInfo] = Field(default_factory=list)
    clusters: List[ClusterReport] = Field(default_factory=list)
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Report creation timestamp",
    )

    @classmethod
    def from_cluster_set(
        cls,
        cluster_set: ClusterSet,
        data: Optional[Data] = None,
        table: Optional[str] = None,
        radius: Optional[float] = None,
        source: RunSource = RunSource.MINED,
    ) -> "RunReport":
        """
        Build a report from a result set.

        Mean distances and the attribute schema are filled in only when the
        dataset is given.
        """
        clusters = [
            ClusterReport(index=i, **cluster.to_dict(data))
            for i, cluster in enumerate(cluster_set)
        ]
        attributes = [_attribute_info(attribute) for attribute in data] if data is not None else []
        return cls(
            table=table,
            radius=radius,
            ordering=cluster_set.ordering.value,
            source=source,
            number_of_examples=data.number_of_examples if data is not None else None,
            number_of_clusters=len(cluster_set),
            attributes=attributes,
            clusters=clusters,
        )


def _attribute_info(attribute: AnyAttribute) -> AttributeInfo:
    if isinstance(attribute, DiscreteAttribute):
        return AttributeInfo(
            name=attribute.name,
            index=attribute.index,
            kind="discrete",
            domain=list(attribute.values),
        )
    return AttributeInfo(
        name=attribute.name,
        index=attribute.index,
        kind="continuous",
        domain=[attribute.min_value, attribute.max_value],
    )


class ErrorReport(BaseModel):
    """Error payload printed by the CLI in JSON mode."""

    error_type: str
    error_code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
