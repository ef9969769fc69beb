from pathlib import Path

import pytest

from systems_kg.errors import PersistenceError
from systems_kg.storage.parquet.backend import ParquetBackend
from systems_kg.types import Document, QuoteRecord, SystemEntityRecord, SystemRelationshipRecord


def _entity(
    uuid: str,
    document_id: str,
    name: str,
    confidence: float,
    type_: str = "service",
    created_at: str = "2026-02-01T00:00:00+00:00",
    pass_id: str = "",
) -> SystemEntityRecord:
    return SystemEntityRecord(
        uuid=uuid,
        document_id=document_id,
        name=name,
        type=type_,
        confidence=confidence,
        evidence=f"evidence for {name}",
        model="gpt-4o",
        pass_id=pass_id,
        created_at=created_at,
    )


def _relationship(
    uuid: str,
    document_id: str,
    confidence: float,
    pass_id: str = "",
    created_at: str = "2026-02-01T00:00:00+00:00",
) -> SystemRelationshipRecord:
    return SystemRelationshipRecord(
        uuid=uuid,
        document_id=document_id,
        from_uuid="e1",
        from_name="Youth Hub",
        to_uuid="e2",
        to_name="Cultural Identity",
        type="supports",
        strength="strong",
        description="runs cultural programs",
        confidence=confidence,
        pass_id=pass_id,
        created_at=created_at,
    )


async def _init_backend(tmp_path: Path) -> ParquetBackend:
    backend = ParquetBackend(tmp_path / "kb")
    await backend.initialize()
    return backend


@pytest.mark.asyncio
async def test_initialize_writes_metadata(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)
    assert (backend.kb_path / "metadata.json").exists()
    await backend.close()


@pytest.mark.asyncio
async def test_empty_kb_reads_as_empty(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    assert await backend.get_document("missing") is None
    assert await backend.list_documents() == []
    assert await backend.find_system_entities() == []
    assert await backend.find_system_relationships() == []

    await backend.close()


@pytest.mark.asyncio
async def test_document_revisions_latest_wins(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_document(Document(uuid="doc-1", name="plan.txt"))
    updated = await backend.update_document("doc-1", status="completed", quality_score=72)
    assert updated is not None
    assert updated.status == "completed"

    document = await backend.get_document("doc-1")
    assert document is not None
    assert document.status == "completed"
    assert document.quality_score == 72
    assert document.name == "plan.txt"
    assert document.created_at is not None

    documents = await backend.list_documents()
    assert [d.uuid for d in documents] == ["doc-1"]

    # Each revision is its own immutable part file
    assert len(list((backend.kb_path / "documents.parquet").glob("*.parquet"))) == 2

    await backend.close()


@pytest.mark.asyncio
async def test_update_unknown_document_returns_none(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)
    assert await backend.update_document("missing", status="failed") is None
    await backend.close()


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)
    await backend.write_document(Document(uuid="doc-1", name="plan.txt"))
    with pytest.raises(ValueError):
        await backend.update_document("doc-1", colour="red")
    await backend.close()


@pytest.mark.asyncio
async def test_entity_filters(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_system_entities([
        _entity("e1", "doc-1", "Youth Hub", 0.9),
        _entity("e2", "doc-1", "Cultural Identity", 0.4, type_="theme"),
    ])
    # Later batch
    await backend.write_system_entities([
        _entity("e3", "doc-2", "Youth Hub", 0.7, created_at="2026-02-02T00:00:00+00:00"),
    ])

    all_entities = await backend.find_system_entities()
    assert [e.uuid for e in all_entities] == ["e1", "e2", "e3"]
    assert all_entities[0].evidence == "evidence for Youth Hub"
    assert all_entities[0].category is None

    doc1 = await backend.find_system_entities(["doc-1"])
    assert [e.uuid for e in doc1] == ["e1", "e2"]

    themes = await backend.find_system_entities(entity_types=["theme"])
    assert [e.uuid for e in themes] == ["e2"]

    confident = await backend.find_system_entities(min_confidence=0.5)
    assert [e.uuid for e in confident] == ["e1", "e3"]

    assert await backend.find_system_entities([]) == []
    assert await backend.find_system_entities(entity_types=[]) == []

    await backend.close()


@pytest.mark.asyncio
async def test_relationship_filters(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_system_relationships([
        _relationship("r1", "doc-1", 0.8),
        _relationship("r2", "doc-2", 0.3),
    ])

    relationships = await backend.find_system_relationships(["doc-1", "doc-2"])
    assert [r.uuid for r in relationships] == ["r1", "r2"]
    assert relationships[0].strength == "strong"
    assert relationships[0].description == "runs cultural programs"

    strong = await backend.find_system_relationships(min_confidence=0.5)
    assert [r.uuid for r in strong] == ["r1"]

    await backend.close()


@pytest.mark.asyncio
async def test_empty_batches_write_nothing(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)
    await backend.write_system_entities([])
    await backend.write_system_relationships([])
    await backend.write_quotes([])
    assert await backend.find_quotes() == []
    assert not (backend.kb_path / "system_entities.parquet").exists()
    await backend.close()


@pytest.mark.asyncio
async def test_write_failure_is_persistence_error(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)
    # A file where the dataset directory should be
    (backend.kb_path / "system_entities.parquet").write_text("not a directory")

    with pytest.raises(PersistenceError):
        await backend.write_system_entities([_entity("e1", "doc-1", "Youth Hub", 0.9)])

    await backend.close()


@pytest.mark.asyncio
async def test_latest_pass_hides_earlier_passes(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_system_entities([
        _entity("a1", "doc-1", "Youth Hub", 0.9, created_at="2026-02-01T00:00:00+00:00", pass_id="job-a"),
        _entity("a2", "doc-1", "Cultural Identity", 0.7, created_at="2026-02-01T00:00:00+00:00", pass_id="job-a"),
        _entity("c1", "doc-2", "Health Clinic", 0.8, created_at="2026-02-01T00:00:00+00:00", pass_id="job-c"),
    ])
    await backend.write_system_relationships([
        _relationship("ra", "doc-1", 0.8, pass_id="job-a", created_at="2026-02-01T00:00:00+00:00"),
    ])
    await backend.write_system_entities([
        _entity("b1", "doc-1", "Youth Hub", 0.8, created_at="2026-02-02T00:00:00+00:00", pass_id="job-b"),
    ])
    await backend.write_system_relationships([
        _relationship("rb", "doc-1", 0.6, pass_id="job-b", created_at="2026-02-02T00:00:00+00:00"),
    ])

    entities = await backend.find_system_entities()
    assert sorted(e.uuid for e in entities) == ["b1", "c1"]
    assert {e.pass_id for e in entities if e.document_id == "doc-1"} == {"job-b"}
    assert [r.uuid for r in await backend.find_system_relationships(["doc-1"])] == ["rb"]

    await backend.close()


@pytest.mark.asyncio
async def test_document_pass_id_selects_pass(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_document(Document(uuid="doc-1", name="plan.txt", pass_id="job-a"))
    await backend.write_system_entities([
        _entity("a1", "doc-1", "Youth Hub", 0.9, created_at="2026-02-01T00:00:00+00:00", pass_id="job-a"),
    ])
    # A newer pass still in flight is not visible yet
    await backend.write_system_entities([
        _entity("b1", "doc-1", "Youth Hub", 0.8, created_at="2026-02-02T00:00:00+00:00", pass_id="job-b"),
        _entity("b2", "doc-1", "Elders Circle", 0.8, created_at="2026-02-02T00:00:00+00:00", pass_id="job-b"),
    ])

    assert [e.uuid for e in await backend.find_system_entities(["doc-1"])] == ["a1"]

    await backend.update_document("doc-1", status="completed", pass_id="job-b")
    assert (await backend.get_document("doc-1")).pass_id == "job-b"
    assert [e.uuid for e in await backend.find_system_entities(["doc-1"])] == ["b1", "b2"]

    await backend.close()


@pytest.mark.asyncio
async def test_quotes_round_trip(tmp_path: Path) -> None:
    backend = await _init_backend(tmp_path)

    await backend.write_quotes([
        QuoteRecord(
            uuid="q1",
            document_id="doc-1",
            text="We needed a place where our kids could just be themselves.",
            knowledge_holder="Elder",
            cultural_sensitivity="restricted",
            requires_attribution=True,
            pass_id="job-a",
        ),
        QuoteRecord(
            uuid="q2",
            document_id="doc-1",
            text="The clinic outreach nurses are the only health contact many families have.",
            pass_id="job-a",
        ),
    ])

    quotes = await backend.find_quotes(["doc-1"])
    assert [q.uuid for q in quotes] == ["q1", "q2"]
    assert quotes[0].knowledge_holder == "Elder"
    assert quotes[0].cultural_sensitivity == "restricted"
    assert quotes[0].requires_attribution is True
    assert quotes[1].knowledge_holder is None
    assert quotes[1].cultural_sensitivity == "public"

    assert await backend.find_quotes(["doc-2"]) == []
    assert await backend.find_quotes([]) == []

    await backend.close()
