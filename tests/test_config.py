"""Tests for EngineConfig loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from prodshell import ConfigurationError, EngineConfig

ENV_VARS = (
    "PRODSHELL_BASE_DIR",
    "PRODSHELL_SHELL",
    "PRODSHELL_TIMEOUT",
    "PRODSHELL_MAX_OUTPUT_BYTES",
    "PRODSHELL_HARDENED_LEVEL",
    "PRODSHELL_AUDIT_LOG",
    "PRODSHELL_CONFIG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(temp_dir)


class TestEngineConfig:
    """Tests for direct construction."""

    def test_defaults(self, temp_dir: Path) -> None:
        config = EngineConfig()
        assert config.base_dir == Path.cwd()
        assert config.shell is None
        assert config.timeout == 10.0
        assert config.max_output_bytes == 30_000
        assert config.hardened_level == 2
        assert config.audit_log is None

    def test_coerces_paths(self) -> None:
        config = EngineConfig(base_dir="game", audit_log="audit.jsonl")  # type: ignore[arg-type]
        assert config.base_dir == Path("game")
        assert config.audit_log == Path("audit.jsonl")

    def test_unknown_shell_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            EngineConfig(shell="definitely-not-a-shell")

    @pytest.mark.parametrize("timeout", [0, -1.5])
    def test_non_positive_timeout_raises(self, timeout: float) -> None:
        with pytest.raises(ConfigurationError):
            EngineConfig(timeout=timeout)

    def test_hardened_level_below_one_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            EngineConfig(hardened_level=0)


class TestFromEnv:
    """Tests for environment and file configuration."""

    def test_defaults_without_env(self, temp_dir: Path) -> None:
        config = EngineConfig.from_env()
        assert config.base_dir == temp_dir
        assert config.timeout == 10.0
        assert config.audit_log is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
        monkeypatch.setenv("PRODSHELL_BASE_DIR", str(temp_dir / "game"))
        monkeypatch.setenv("PRODSHELL_SHELL", "sh")
        monkeypatch.setenv("PRODSHELL_TIMEOUT", "2.5")
        monkeypatch.setenv("PRODSHELL_MAX_OUTPUT_BYTES", "500")
        monkeypatch.setenv("PRODSHELL_HARDENED_LEVEL", "3")
        monkeypatch.setenv("PRODSHELL_AUDIT_LOG", "audit.jsonl")

        config = EngineConfig.from_env()
        assert config.base_dir == temp_dir / "game"
        assert config.shell == "sh"
        assert config.timeout == 2.5
        assert config.max_output_bytes == 500
        assert config.hardened_level == 3
        assert config.audit_log == Path("audit.jsonl")

    @pytest.mark.parametrize("value", ["abc", "-5", "0", ""])
    def test_invalid_numbers_fall_back(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("PRODSHELL_TIMEOUT", value)
        monkeypatch.setenv("PRODSHELL_HARDENED_LEVEL", value)
        config = EngineConfig.from_env()
        assert config.timeout == 10.0
        assert config.hardened_level == 2

    def test_reads_default_config_file(self, temp_dir: Path) -> None:
        (temp_dir / "prodshell.config.json").write_text(
            json.dumps({"timeout": 4, "max_output_bytes": 1000, "base_dir": "arena"})
        )
        config = EngineConfig.from_env()
        assert config.timeout == 4.0
        assert config.max_output_bytes == 1000
        assert config.base_dir == Path("arena")

    def test_environment_wins_over_file(
        self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path
    ) -> None:
        path = temp_dir / "custom.json"
        path.write_text(json.dumps({"timeout": 4, "hardened_level": 4}))
        monkeypatch.setenv("PRODSHELL_CONFIG_FILE", str(path))
        monkeypatch.setenv("PRODSHELL_TIMEOUT", "7")

        config = EngineConfig.from_env()
        assert config.timeout == 7.0
        assert config.hardened_level == 4

    @pytest.mark.parametrize("content", ["not json", "[1, 2, 3]"])
    def test_unusable_file_is_ignored(self, temp_dir: Path, content: str) -> None:
        (temp_dir / "prodshell.config.json").write_text(content)
        assert EngineConfig.from_env().timeout == 10.0

    def test_bad_values_in_file_fall_back(self, temp_dir: Path) -> None:
        (temp_dir / "prodshell.config.json").write_text(
            json.dumps({"timeout": "soon", "max_output_bytes": True, "shell": 5})
        )
        config = EngineConfig.from_env()
        assert config.timeout == 10.0
        assert config.max_output_bytes == 30_000
        assert config.shell is None

    def test_missing_explicit_file_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRODSHELL_CONFIG_FILE", "nope.json")
        assert EngineConfig.from_env().hardened_level == 2
