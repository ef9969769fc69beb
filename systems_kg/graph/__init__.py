"""
Graph Projection

Modules:
    systems_map: Nodes/edges aggregation across documents
"""

from systems_kg.graph.systems_map import build_systems_map, slugify

__all__ = ["build_systems_map", "slugify"]
