"""
Graph Types

Renderable projections of consolidated records. Recomputed on every request,
never mutated independently.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SystemsMapFilters(BaseModel):
    """
    Optional filters for a systems map request.

    Attributes:
        entity_types: Only include entities of these types
        min_confidence: Drop records below this confidence
    """

    entity_types: list[str] | None = None
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("entity_types", mode="before")
    @classmethod
    def _lower_types(cls, value):
        if value is None:
            return None
        return [str(v).strip().lower() for v in value]


class GraphNode(BaseModel):
    id: str
    label: str
    type: str
    group: str | None = None
    documents: list[str] = Field(default_factory=list)
    confidence: float


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str
    strength: str
    description: str = ""
    documents: list[str] = Field(default_factory=list)
    confidence: float


class SystemsMap(BaseModel):
    """Nodes and edges for a set of documents."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    document_ids: list[str] = Field(default_factory=list)

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None
