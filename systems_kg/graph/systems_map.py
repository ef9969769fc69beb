"""
Systems Graph Aggregator

Projects persisted systems records for a set of documents into a renderable
graph. Nothing here is stored; the map is rebuilt on every request.

Nodes:
    - grouped by slug (lower-cased name, whitespace runs -> "-")
    - documents unioned, confidence averaged over occurrences

Edges:
    - grouped by (from slug, type, to slug)
    - documents unioned, descriptions joined with " | ", confidence averaged
    - strength escalates to the strongest observed (weak < medium < strong)
    - ids c1, c2, ... in first-seen order
    - dropped when an endpoint is not among the returned nodes
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from systems_kg.types import (
    GraphEdge,
    GraphNode,
    SystemEntityRecord,
    SystemRelationshipRecord,
    SystemsMap,
    SystemsMapFilters,
    escalate_strength,
)

_WHITESPACE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Stable node id for an entity name."""
    return _WHITESPACE.sub("-", name.lower())


@dataclass
class _NodeAccumulator:
    label: str
    type: str
    group: str | None
    documents: list[str] = field(default_factory=list)
    total_confidence: float = 0.0
    count: int = 0


@dataclass
class _EdgeAccumulator:
    source: str
    target: str
    type: str
    strength: str
    descriptions: list[str] = field(default_factory=list)
    documents: list[str] = field(default_factory=list)
    total_confidence: float = 0.0
    count: int = 0


def _add_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def build_systems_map(
    entities: Iterable[SystemEntityRecord],
    relationships: Iterable[SystemRelationshipRecord],
    filters: SystemsMapFilters | None = None,
    document_ids: list[str] | None = None,
) -> SystemsMap:
    """
    Aggregate entity and relationship records into nodes and edges.

    Filters are applied here as well as by the storage query, so records
    from any source can be mapped.
    """
    filters = filters or SystemsMapFilters()
    min_confidence = filters.min_confidence or 0.0

    nodes: dict[str, _NodeAccumulator] = {}
    for entity in entities:
        if filters.entity_types is not None and entity.type not in filters.entity_types:
            continue
        if entity.confidence < min_confidence:
            continue
        node_id = slugify(entity.name)
        node = nodes.get(node_id)
        if node is None:
            node = _NodeAccumulator(label=entity.name, type=entity.type, group=entity.category)
            nodes[node_id] = node
        elif node.group is None and entity.category:
            node.group = entity.category
        _add_unique(node.documents, entity.document_id)
        node.total_confidence += entity.confidence
        node.count += 1

    edges: dict[tuple[str, str, str], _EdgeAccumulator] = {}
    for relationship in relationships:
        if relationship.confidence < min_confidence:
            continue
        source, target = slugify(relationship.from_name), slugify(relationship.to_name)
        key = (source, relationship.type, target)
        edge = edges.get(key)
        if edge is None:
            edge = _EdgeAccumulator(
                source=source,
                target=target,
                type=relationship.type,
                strength=relationship.strength,
            )
            edges[key] = edge
        else:
            edge.strength = escalate_strength(edge.strength, relationship.strength)
        if relationship.description:
            edge.descriptions.append(relationship.description)
        _add_unique(edge.documents, relationship.document_id)
        edge.total_confidence += relationship.confidence
        edge.count += 1

    graph_nodes = [
        GraphNode(
            id=node_id,
            label=node.label,
            type=node.type,
            group=node.group,
            documents=node.documents,
            confidence=node.total_confidence / node.count,
        )
        for node_id, node in nodes.items()
    ]

    graph_edges: list[GraphEdge] = []
    for edge in edges.values():
        if edge.source not in nodes or edge.target not in nodes:
            continue
        graph_edges.append(
            GraphEdge(
                id=f"c{len(graph_edges) + 1}",
                source=edge.source,
                target=edge.target,
                type=edge.type,
                strength=edge.strength,
                description=" | ".join(edge.descriptions),
                documents=edge.documents,
                confidence=edge.total_confidence / edge.count,
            )
        )

    return SystemsMap(nodes=graph_nodes, edges=graph_edges, document_ids=list(document_ids or []))
