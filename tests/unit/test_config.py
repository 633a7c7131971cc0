"""Tests for server configuration loading."""

import random

import pytest

from devflow_mcp.config import GenerationConfig, ServerConfig

_ENV_VARS = [
    "DEVFLOW_MCP_LOG_LEVEL",
    "DEVFLOW_MCP_STRUCTURED_LOGGING",
    "DEVFLOW_MCP_SERVER_NAME",
    "DEVFLOW_MCP_METRICS_ENABLED",
    "DEVFLOW_MCP_AUDIT_ENABLED",
    "DEVFLOW_MCP_RANDOM_SEED",
    "DEVFLOW_MCP_CONFIG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep a stray devflow-mcp.toml in the cwd from being picked up
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = ServerConfig.from_env()
    assert config.log_level == "INFO"
    assert config.server_name == "devflow-mcp"
    assert config.metrics_enabled is True
    assert config.generation.random_seed is None
    assert config.generation.max_execution_ms == 500


def test_toml_file(tmp_path):
    path = tmp_path / "custom.toml"
    path.write_text(
        "\n".join(
            [
                "[logging]",
                'level = "debug"',
                "structured = false",
                "[server]",
                'name = "devflow-test"',
                "[observability]",
                "metrics_enabled = false",
                "[generation]",
                "random_seed = 42",
                "max_execution_ms = 250",
            ]
        )
    )
    config = ServerConfig.from_env(str(path))
    assert config.log_level == "DEBUG"
    assert config.structured_logging is False
    assert config.server_name == "devflow-test"
    assert config.metrics_enabled is False
    assert config.audit_enabled is True
    assert config.generation == GenerationConfig(random_seed=42, max_execution_ms=250)


def test_default_file_in_cwd(tmp_path):
    (tmp_path / "devflow-mcp.toml").write_text('[server]\nname = "from-cwd"\n')
    assert ServerConfig.from_env().server_name == "from-cwd"


def test_env_overrides_toml(tmp_path, monkeypatch):
    path = tmp_path / "custom.toml"
    path.write_text('[server]\nname = "from-file"\n[generation]\nrandom_seed = 1\n')
    monkeypatch.setenv("DEVFLOW_MCP_CONFIG_FILE", str(path))
    monkeypatch.setenv("DEVFLOW_MCP_SERVER_NAME", "from-env")
    monkeypatch.setenv("DEVFLOW_MCP_RANDOM_SEED", "9")
    monkeypatch.setenv("DEVFLOW_MCP_AUDIT_ENABLED", "no")

    config = ServerConfig.from_env()
    assert config.server_name == "from-env"
    assert config.generation.random_seed == 9
    assert config.audit_enabled is False


def test_invalid_seed_ignored(monkeypatch):
    monkeypatch.setenv("DEVFLOW_MCP_RANDOM_SEED", "abc")
    assert ServerConfig.from_env().generation.random_seed is None


def test_missing_and_broken_files(tmp_path):
    assert ServerConfig.from_env(str(tmp_path / "missing.toml")).server_name == "devflow-mcp"

    broken = tmp_path / "broken.toml"
    broken.write_text("[server\nname=")
    assert ServerConfig.from_env(str(broken)).server_name == "devflow-mcp"


def test_seeded_rng_is_reproducible():
    config = ServerConfig(generation=GenerationConfig(random_seed=5))
    expected = random.Random(5).random()
    assert config.get_rng().random() == expected
    assert config.get_rng().random() == expected
