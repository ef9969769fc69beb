"""
Tests for the systems graph aggregator.
"""

from systems_kg.graph import build_systems_map
from systems_kg.graph.systems_map import slugify
from systems_kg.types import SystemEntityRecord, SystemRelationshipRecord, SystemsMapFilters


def entity(name, document_id="d1", confidence=0.8, type_="service", category=None):
    return SystemEntityRecord(
        uuid=f"{document_id}-{name}",
        document_id=document_id,
        name=name,
        type=type_,
        category=category,
        confidence=confidence,
    )


def relationship(from_name, to_name, document_id="d1", confidence=0.8, strength="medium",
                 type_="supports", description=""):
    return SystemRelationshipRecord(
        uuid=f"{document_id}-{from_name}-{to_name}-{strength}",
        document_id=document_id,
        from_uuid=f"{document_id}-{from_name}",
        from_name=from_name,
        to_uuid=f"{document_id}-{to_name}",
        to_name=to_name,
        type=type_,
        strength=strength,
        description=description,
        confidence=confidence,
    )


class TestSlugify:
    def test_slug(self):
        assert slugify("Youth  Mentoring\tProgram") == "youth-mentoring-program"


class TestBuildSystemsMap:
    """Tests for build_systems_map."""

    def test_nodes_merge_across_documents(self):
        graph = build_systems_map(
            [entity("Youth Hub", "d1", 0.9), entity("youth hub", "d2", 0.5, category="facility")],
            [],
            document_ids=["d1", "d2"],
        )
        assert len(graph.nodes) == 1
        node = graph.nodes[0]
        assert node.id == "youth-hub"
        assert node.label == "Youth Hub"
        assert node.documents == ["d1", "d2"]
        assert abs(node.confidence - 0.7) < 1e-9
        assert node.group == "facility"
        assert graph.document_ids == ["d1", "d2"]

    def test_names_differing_only_in_case_share_a_node(self):
        graph = build_systems_map(
            [entity("Youth Hub", confidence=0.9), entity("youth hub", confidence=0.7), entity("Elders")],
            [
                relationship("Youth Hub", "Elders", description="hosts"),
                relationship("youth hub", "elders", description="invites"),
            ],
        )
        assert [(n.id, n.label) for n in graph.nodes] == [("youth-hub", "Youth Hub"), ("elders", "Elders")]
        hub = graph.nodes[0]
        assert hub.documents == ["d1"]
        assert abs(hub.confidence - 0.8) < 1e-9

        assert len(graph.edges) == 1
        edge = graph.edges[0]
        assert (edge.source, edge.target) == ("youth-hub", "elders")
        assert edge.description == "hosts | invites"

    def test_edges_merge_and_escalate(self):
        entities = [entity("A"), entity("B")]
        graph = build_systems_map(
            entities,
            [
                relationship("A", "B", "d1", 0.6, "weak", description="funds"),
                relationship("A", "B", "d2", 0.8, "strong", description="staffs"),
                relationship("A", "B", "d3", 1.0, "medium"),
            ],
        )
        assert len(graph.edges) == 1
        edge = graph.edges[0]
        assert edge.id == "c1"
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.strength == "strong"
        assert edge.description == "funds | staffs"
        assert edge.documents == ["d1", "d2", "d3"]
        assert abs(edge.confidence - 0.8) < 1e-9

    def test_edges_with_missing_endpoints_dropped(self):
        graph = build_systems_map(
            [entity("A"), entity("B")],
            [relationship("A", "Ghost"), relationship("A", "B")],
        )
        assert [(e.id, e.target) for e in graph.edges] == [("c1", "b")]

    def test_type_filter_drops_dependent_edges(self):
        graph = build_systems_map(
            [entity("A"), entity("Wellbeing", type_="outcome")],
            [relationship("A", "Wellbeing")],
            SystemsMapFilters(entity_types=["service"]),
        )
        assert [n.label for n in graph.nodes] == ["A"]
        assert graph.edges == []

    def test_min_confidence_filter(self):
        graph = build_systems_map(
            [entity("A", confidence=0.9), entity("B", confidence=0.9), entity("C", confidence=0.3)],
            [relationship("A", "B", confidence=0.4), relationship("B", "A", confidence=0.95)],
            SystemsMapFilters(min_confidence=0.5),
        )
        assert sorted(n.label for n in graph.nodes) == ["A", "B"]
        assert [(e.source, e.target) for e in graph.edges] == [("b", "a")]

    def test_empty_input(self):
        graph = build_systems_map([], [])
        assert graph.nodes == []
        assert graph.edges == []
        assert graph.document_ids == []
