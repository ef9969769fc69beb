"""
Tests for the systems-kg CLI.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from systems_kg.cli import app
from systems_kg.storage.parquet.backend import ParquetBackend

runner = CliRunner()

RESPONSE = json.dumps({
    "entities": [
        {"name": "Youth Mentoring Program", "type": "SERVICE", "confidence": 0.9},
        {"name": "Cultural Identity", "type": "THEME", "confidence": 0.7},
    ],
    "relationships": [
        {"fromName": "Youth Mentoring Program", "toName": "Cultural Identity",
         "type": "SUPPORTS", "confidence": 0.8},
    ],
})


@pytest.fixture
def fake_llm():
    llm = MagicMock()
    llm.model_name = "gpt-4o"
    llm.generate = AsyncMock(return_value=RESPONSE)
    with patch("systems_kg.api.systems_kg.SystemsKG._create_llm_provider", return_value=llm):
        yield llm


class TestCLIHelp:
    """Tests for CLI help output."""

    def test_cli_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("ingest", "map", "duplicates", "quality", "corpus-quality"):
            assert command in result.stdout

    @pytest.mark.parametrize("command", ["ingest", "map", "duplicates", "quality", "corpus-quality"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0
        assert "--kb" in result.stdout


class TestCLICommands:
    """Tests running commands against a temporary knowledge base."""

    def test_corpus_quality_on_empty_kb(self, tmp_path):
        (tmp_path / "kb").mkdir()
        result = runner.invoke(app, ["corpus-quality", "--kb", str(tmp_path / "kb")])
        assert result.exit_code == 0, result.stdout
        assert "Quality score: 0" in result.stdout
        assert "No systems data extracted yet" in result.stdout

    def test_ingest_then_map(self, tmp_path, fake_llm):
        document = tmp_path / "plan.txt"
        document.write_text(
            "The Youth Mentoring Program pairs young people with community mentors. "
            "Mentors help young people stay connected to their cultural identity."
        )
        kb = tmp_path / "kb"

        result = runner.invoke(app, ["ingest", str(document), "--kb", str(kb)])
        assert result.exit_code == 0, result.stdout
        assert "Jobs" in result.stdout
        fake_llm.generate.assert_awaited_once()

        corpus = runner.invoke(app, ["corpus-quality", "--kb", str(kb)])
        assert corpus.exit_code == 0, corpus.stdout
        assert "Extracted: 2" in corpus.stdout

    def test_map_json(self, tmp_path, fake_llm):
        document = tmp_path / "plan.txt"
        document.write_text(
            "The Youth Mentoring Program pairs young people with community mentors. "
            "Mentors help young people stay connected to their cultural identity."
        )
        kb = tmp_path / "kb"
        runner.invoke(app, ["ingest", str(document), "--kb", str(kb)])

        async def _document_ids():
            async with ParquetBackend(kb) as backend:
                return [d.uuid for d in await backend.list_documents()]

        document_ids = asyncio.run(_document_ids())
        result = runner.invoke(app, ["map", *document_ids, "--kb", str(kb), "--json"])
        assert result.exit_code == 0, result.stdout
        graph = json.loads(result.stdout)
        assert {n["label"] for n in graph["nodes"]} == {"Youth Mentoring Program", "Cultural Identity"}
        assert len(graph["edges"]) == 1

    def test_invalid_priority_fails(self, tmp_path, fake_llm):
        document = tmp_path / "plan.txt"
        document.write_text("text")
        result = runner.invoke(
            app, ["ingest", str(document), "--kb", str(tmp_path / "kb"), "--priority", "urgent"]
        )
        assert result.exit_code != 0
