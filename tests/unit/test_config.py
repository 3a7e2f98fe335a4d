"""Unit tests for configuration management.

Tests cover:
- Default configuration values
- TOML file loading
- Environment variable overrides
- Validation errors for invalid configurations
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from cognigen.config import (
    CognigenConfig,
    DatabaseConfig,
    GenerationConfig,
    LoggingConfig,
    OllamaConfig,
    PipelineConfig,
    StoreConfig,
    TimeoutConfig,
    WebConfig,
    load_config,
)


class TestPipelineConfig:
    """Test PipelineConfig defaults and validation."""

    def test_default_values(self) -> None:
        config = PipelineConfig()
        assert config.enable_caching is True
        assert config.enable_validation is True
        assert config.enable_architecture is True
        assert config.enable_learning is True
        assert config.max_concurrent_components == 4
        assert config.coalesce_concurrent_requests is False
        assert config.default_min_quality_score == 70

    def test_concurrency_validation(self) -> None:
        with pytest.raises(ValidationError):
            PipelineConfig(max_concurrent_components=0)
        with pytest.raises(ValidationError):
            PipelineConfig(max_concurrent_components=65)

    def test_quality_threshold_validation(self) -> None:
        with pytest.raises(ValidationError):
            PipelineConfig(default_min_quality_score=101)


class TestTimeoutConfig:
    """Test TimeoutConfig defaults and validation."""

    def test_default_values(self) -> None:
        config = TimeoutConfig()
        assert config.analysis_seconds == 30.0
        assert config.generation_seconds == 120.0
        assert config.learning_seconds == 10.0

    def test_timeouts_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            TimeoutConfig(analysis_seconds=0)


class TestGenerationConfig:
    """Test provider selection."""

    def test_default_provider_is_template(self) -> None:
        assert GenerationConfig().provider == "template"

    def test_provider_is_case_insensitive(self) -> None:
        assert GenerationConfig(provider="OLLAMA").provider == "ollama"

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Invalid generation provider"):
            GenerationConfig(provider="openai")


class TestOllamaConfig:
    """Test OllamaConfig defaults and validation."""

    def test_default_values(self) -> None:
        config = OllamaConfig()
        assert config.url == "http://localhost:11434"
        assert config.model == "qwen2.5-coder"
        assert config.timeout_seconds == 120
        assert config.max_retries == 3

    def test_timeout_validation(self) -> None:
        with pytest.raises(ValidationError):
            OllamaConfig(timeout_seconds=0)


class TestStoreAndDatabaseConfig:
    """Test store backend and database defaults."""

    def test_store_defaults_to_memory(self) -> None:
        assert StoreConfig().backend == "memory"

    def test_unknown_store_backend_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Invalid store backend"):
            StoreConfig(backend="redis")

    def test_database_defaults(self) -> None:
        config = DatabaseConfig()
        assert config.url.startswith("postgresql+asyncpg://")
        assert config.pool_size == 5
        assert config.max_overflow == 10
        assert config.echo is False

    def test_pool_size_validation(self) -> None:
        with pytest.raises(ValidationError):
            DatabaseConfig(pool_size=0)


class TestLoggingConfig:
    """Test LoggingConfig defaults and validation."""

    def test_default_values(self) -> None:
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "json"
        assert config.file is None

    def test_level_validation(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="INVALID")

    def test_format_validation(self) -> None:
        assert LoggingConfig(format="JSON").format == "json"
        with pytest.raises(ValidationError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestWebConfig:
    def test_port_validation(self) -> None:
        assert WebConfig().port == 8000
        with pytest.raises(ValidationError):
            WebConfig(port=65536)


class TestCognigenConfig:
    """Test root configuration."""

    def test_default_sections(self) -> None:
        config = CognigenConfig()
        assert isinstance(config.pipeline, PipelineConfig)
        assert isinstance(config.timeouts, TimeoutConfig)
        assert isinstance(config.store, StoreConfig)
        assert isinstance(config.web, WebConfig)

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CognigenConfig(agents={"workers": 3})


class TestLoadConfig:
    """Test TOML configuration loading."""

    def test_load_defaults_when_no_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        config = load_config()
        assert config.pipeline.max_concurrent_components == 4

    def test_explicit_path_not_found(self) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(Path("/nonexistent/cognigen.toml"))

    def test_load_from_toml_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "test.toml"
        config_file.write_text(
            """
[pipeline]
enable_validation = false
max_concurrent_components = 8

[timeouts]
generation_seconds = 45

[store]
backend = "sql"
"""
        )

        config = load_config(config_file)
        assert config.pipeline.enable_validation is False
        assert config.pipeline.max_concurrent_components == 8
        assert config.timeouts.generation_seconds == 45
        assert config.store.backend == "sql"
        assert config.pipeline.enable_caching is True

    def test_invalid_value_raises_value_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "invalid.toml"
        config_file.write_text('[pipeline]\nmax_concurrent_components = "many"\n')

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(config_file)

    def test_malformed_toml_raises_value_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "broken.toml"
        config_file.write_text("[pipeline\nenable_caching = true\n")

        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config(config_file)

    def test_search_current_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "cognigen.toml").write_text("[pipeline]\ncache_max_entries = 99\n")
        monkeypatch.chdir(tmp_path)

        config = load_config()
        assert config.pipeline.cache_max_entries == 99

    def test_environment_variable_overrides_toml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        config_file = tmp_path / "test.toml"
        config_file.write_text("[pipeline]\nmax_concurrent_components = 2\n")
        monkeypatch.setenv("COGNIGEN_PIPELINE__MAX_CONCURRENT_COMPONENTS", "6")

        config = load_config(config_file)
        assert config.pipeline.max_concurrent_components == 6

    def test_environment_variables_without_toml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("COGNIGEN_GENERATION__PROVIDER", "ollama")
        monkeypatch.setenv("COGNIGEN_WEB__PORT", "9000")

        config = load_config()
        assert config.generation.provider == "ollama"
        assert config.web.port == 9000
