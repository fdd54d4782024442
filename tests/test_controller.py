"""Tests for PolicyController and the level table."""

from __future__ import annotations

from pathlib import Path

import pytest

from prodshell import (
    DEFAULT_LEVELS,
    LevelError,
    LevelSpec,
    PolicyContext,
    PolicyController,
    UnknownLevelError,
)
from prodshell.levels import index_levels


class TestLevels:
    """Tests for level switching."""

    def test_starts_at_level_one(self, controller: PolicyController) -> None:
        assert controller.current_level() == 1
        assert controller.context() == PolicyContext(level=1)

    def test_switch_level(self, controller: PolicyController) -> None:
        assert controller.switch_level(2) is True
        assert controller.current_level() == 2

    def test_switch_to_current_level_is_noop(self, controller: PolicyController) -> None:
        """Switching to the active level reports already-active."""
        assert controller.switch_level(1) is False
        assert controller.current_level() == 1

    def test_unknown_level_raises(self, controller: PolicyController) -> None:
        with pytest.raises(UnknownLevelError) as exc_info:
            controller.switch_level(99)
        assert isinstance(exc_info.value, LevelError)
        assert exc_info.value.level == 99
        assert "does not exist" in str(exc_info.value)
        assert controller.current_level() == 1

    def test_sandbox_root_per_level(self, controller: PolicyController, temp_dir: Path) -> None:
        assert controller.sandbox_root() == temp_dir / "Level-1" / "prodbot-activities"
        assert controller.sandbox_root(3) == temp_dir / "Level-3" / "prodbot-activities"

    def test_levels_listed_in_order(self, controller: PolicyController) -> None:
        assert controller.levels == [1, 2, 3, 4]

    def test_custom_levels(self, temp_dir: Path) -> None:
        controller = PolicyController(
            temp_dir, [LevelSpec(1, "Intro", "intro"), LevelSpec(5, "Final", "final")]
        )
        assert controller.switch_level(5)
        assert controller.sandbox_root() == temp_dir / "final"
        with pytest.raises(UnknownLevelError):
            controller.switch_level(2)

    def test_level_table_validation(self) -> None:
        with pytest.raises(ValueError, match="Level 1"):
            index_levels([LevelSpec(2, "Two", "two")])
        with pytest.raises(ValueError, match="Duplicate"):
            index_levels([LevelSpec(1, "One", "a"), LevelSpec(1, "Again", "b")])
        with pytest.raises(ValueError, match="start at 1"):
            index_levels([LevelSpec(0, "Zero", "z"), *DEFAULT_LEVELS])


class TestOverrides:
    """Tests for scope overrides and their TTL."""

    def test_set_override_appears_in_context(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace")
        context = controller.context()
        assert context.overrides == {"scope": "workspace"}
        assert context.allows_traversal

    def test_ttl_zero_persists(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace", ttl=0)
        for _ in range(10):
            assert controller.consume_one_command() == []
        assert controller.overrides() == {"scope": "workspace"}
        assert controller.remaining("scope") == 0

    def test_ttl_counts_down(self, controller: PolicyController) -> None:
        controller.set_override("elevated_paths", "..", ttl=2)
        assert controller.consume_one_command() == []
        assert controller.remaining("elevated_paths") == 1
        assert controller.consume_one_command() == ["elevated_paths"]
        assert controller.remaining("elevated_paths") is None
        assert controller.overrides() == {}

    def test_mixed_ttls(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace", ttl=0)
        controller.set_override("lang", "python", ttl=1)
        assert controller.consume_one_command() == ["lang"]
        assert controller.overrides() == {"scope": "workspace"}

    def test_setting_again_replaces_ttl(self, controller: PolicyController) -> None:
        controller.set_override("lang", "python", ttl=1)
        controller.set_override("lang", "go", ttl=3)
        controller.consume_one_command()
        assert controller.overrides() == {"lang": "go"}
        assert controller.remaining("lang") == 2

    def test_negative_ttl_rejected(self, controller: PolicyController) -> None:
        with pytest.raises(ValueError):
            controller.set_override("scope", "workspace", ttl=-1)

    def test_clear_override(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace")
        assert controller.clear_override("scope") is True
        assert controller.clear_override("scope") is False
        assert not controller.context().allows_traversal

    def test_level_switch_drops_overrides(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace")
        controller.switch_level(2)
        assert controller.overrides() == {}

    def test_failed_switch_keeps_overrides(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace")
        with pytest.raises(UnknownLevelError):
            controller.switch_level(42)
        assert controller.overrides() == {"scope": "workspace"}

    def test_context_is_a_snapshot(self, controller: PolicyController) -> None:
        controller.set_override("scope", "workspace", ttl=1)
        context = controller.context()
        controller.consume_one_command()
        assert context.allows_traversal
        assert not controller.context().allows_traversal
