"""
Tests for SKGConfig.
"""

import pytest

from systems_kg.config import DEFAULT_EXPECTED_KEYWORDS, SKGConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "OPENAI_API_KEY",
        "SYSTEMS_KG_LLM_PROVIDER",
        "SYSTEMS_KG_LLM_MODEL",
        "SYSTEMS_KG_MAX_CONCURRENT_JOBS",
        "SYSTEMS_KG_MEMORY_THRESHOLD",
        "SYSTEMS_KG_CACHE_MAX_BYTES",
        "SYSTEMS_KG_EXTRACTION_BATCH_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = SKGConfig()
        assert config.llm_provider == "openai"
        assert config.llm_model == "gpt-4o"
        assert config.max_concurrent_jobs == 3
        assert config.memory_threshold == 512 * 1024 * 1024
        assert config.default_job_memory == 50 * 1024 * 1024
        assert config.cache_max_bytes == 100 * 1024 * 1024
        assert config.cache_ttl_seconds == 1800
        assert config.duplicate_similarity_threshold == 0.7
        assert config.generic_name_min_length == 15
        assert config.expected_keywords == list(DEFAULT_EXPECTED_KEYWORDS)
        assert config.openai_api_key is None

    def test_keyword_list_not_shared(self):
        a = SKGConfig()
        a.expected_keywords.append("extra")
        assert "extra" not in SKGConfig().expected_keywords


class TestOverrides:
    """Tests for keyword, environment and file overrides."""

    def test_keyword_overrides(self):
        config = SKGConfig(max_concurrent_jobs=5, llm_model="gpt-4o-mini")
        assert config.max_concurrent_jobs == 5
        assert config.llm_model == "gpt-4o-mini"

    def test_unknown_option_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration option"):
            SKGConfig(max_jobs=5)

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("SYSTEMS_KG_MAX_CONCURRENT_JOBS", "7")
        monkeypatch.setenv("SYSTEMS_KG_LLM_MODEL", "gpt-4o-mini")
        config = SKGConfig()
        assert config.openai_api_key == "sk-test"
        assert config.max_concurrent_jobs == 7
        assert config.llm_model == "gpt-4o-mini"

    def test_keywords_beat_environment(self, monkeypatch):
        monkeypatch.setenv("SYSTEMS_KG_MAX_CONCURRENT_JOBS", "7")
        assert SKGConfig(max_concurrent_jobs=2).max_concurrent_jobs == 2

    def test_from_file(self, tmp_path):
        path = tmp_path / "systems_kg.toml"
        path.write_text(
            "\n".join([
                "chunk_size_chars = 2000",
                "",
                "[llm]",
                'model = "gpt-4o-mini"',
                "",
                "[scheduler]",
                "max_concurrent_jobs = 4",
                "",
                "[cache]",
                "max_bytes = 1024",
                "",
                "[quality]",
                'expected_keywords = ["health"]',
                "",
                "[api_keys]",
                'openai = "sk-file"',
            ])
        )
        config = SKGConfig.from_file(path)
        assert config.llm_model == "gpt-4o-mini"
        assert config.max_concurrent_jobs == 4
        assert config.cache_max_bytes == 1024
        assert config.expected_keywords == ["health"]
        assert config.openai_api_key == "sk-file"
        assert config.chunk_size_chars == 2000

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SKGConfig.from_file(tmp_path / "missing.toml")

    def test_from_file_unknown_key(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[scheduler]\nmax_jobs = 4\n")
        with pytest.raises(ValueError):
            SKGConfig.from_file(path)

    def test_with_overrides(self):
        base = SKGConfig(max_concurrent_jobs=2)
        derived = base.with_overrides(llm_model="gpt-4o-mini")
        assert derived.max_concurrent_jobs == 2
        assert derived.llm_model == "gpt-4o-mini"
        assert base.llm_model == "gpt-4o"
        derived.expected_keywords.append("extra")
        assert "extra" not in base.expected_keywords
        with pytest.raises(ValueError):
            base.with_overrides(nope=1)
