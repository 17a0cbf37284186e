"""Tests for settings, user config and optimization config."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from promptground.config import (
    CONFIG_FILENAME,
    Settings,
    ToolSpec,
    UserConfig,
    UserConfigLoader,
)
from promptground.models import AVAILABLE_METRICS, OptimizationConfig, RunConfig


class TestSettings:
    """Tests for Settings."""

    def test_api_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PROMPTGROUND_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert Settings(_env_file=None).api_key == "sk-openai"

        monkeypatch.setenv("PROMPTGROUND_API_KEY", "sk-own")
        assert Settings(_env_file=None).api_key == "sk-own"

    def test_explicit_data_dir_wins(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None, data_dir=tmp_path / "custom")
        assert settings.resolve_data_dir(tmp_path) == tmp_path / "custom"

    def test_data_dir_resolution_order(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PROMPTGROUND_DATA_DIR", raising=False)
        settings = Settings(_env_file=None)
        assert settings.resolve_data_dir(tmp_path) == tmp_path / ".promptground" / "data"

        (tmp_path / "data").mkdir()
        assert settings.resolve_data_dir(tmp_path) == tmp_path / "data"

        (tmp_path / ".promptground" / "data").mkdir(parents=True)
        assert settings.resolve_data_dir(tmp_path) == tmp_path / ".promptground" / "data"

    def test_config_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PROMPTGROUND_CONFIG_PATH", raising=False)
        assert Settings(_env_file=None).resolve_config_path(tmp_path) == tmp_path / CONFIG_FILENAME


class TestUserConfigLoader:
    """Tests for UserConfigLoader."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = UserConfigLoader(tmp_path / "missing.yaml").load()
        assert config.tools == []
        assert config.system_prompt is None

    def test_invalid_yaml_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("tools: [unclosed", encoding="utf-8")
        assert UserConfigLoader(path).load() == UserConfig()

    def test_load_is_memoized_until_reload(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("default_model: model-a\n", encoding="utf-8")
        loader = UserConfigLoader(path)
        assert loader.load().default_model == "model-a"

        path.write_text("default_model: model-b\n", encoding="utf-8")
        assert loader.load().default_model == "model-a"
        assert loader.reload().default_model == "model-b"

    def test_tools_are_resolved(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text(
            "tools:\n"
            "  - name: dump\n"
            "    description: Serialize to JSON\n"
            "    handler: json:dumps\n"
            "  - name: broken\n"
            "    handler: no_such_module_here:fn\n",
            encoding="utf-8",
        )
        tools = UserConfigLoader(path).tools()
        assert [tool.name for tool in tools] == ["dump"]
        assert tools[0].to_openai()["function"]["description"] == "Serialize to JSON"

    def test_handler_must_have_module_and_attribute(self) -> None:
        with pytest.raises(ValueError):
            ToolSpec(name="bad", handler="json").resolve_handler()


class TestOptimizationConfig:
    """Tests for run and optimization configs."""

    def test_defaults(self) -> None:
        config = OptimizationConfig()
        assert config.selected_metrics == AVAILABLE_METRICS
        assert config.batch_size >= 1

    def test_empty_metrics_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(selected_metrics=[])

    def test_duplicate_metrics_removed(self) -> None:
        assert RunConfig(selected_metrics=["tone", "tone", "accuracy"]).selected_metrics == ["tone", "accuracy"]

    def test_bounds(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(batch_size=0)
        with pytest.raises(ValidationError):
            RunConfig(num_rollouts=-1)

    def test_zero_rollouts_allowed(self) -> None:
        assert RunConfig(num_rollouts=0).num_rollouts == 0

    def test_camel_case_input(self) -> None:
        config = RunConfig.model_validate({"batchSize": 4, "numRollouts": 7, "useStructuredOutput": True})
        assert (config.batch_size, config.num_rollouts, config.use_structured_output) == (4, 7, True)

    def test_profiles(self) -> None:
        fast = OptimizationConfig.from_profile("fast")
        quality = OptimizationConfig.from_profile("quality", num_rollouts=3)
        assert fast.num_rollouts < OptimizationConfig.from_profile("balanced").num_rollouts
        assert quality.num_rollouts == 3
        with pytest.raises(ValueError):
            OptimizationConfig.from_profile("turbo")

    def test_run_config_round_trip(self) -> None:
        config = OptimizationConfig(batch_size=5, judge_timeout=12.0, seed=3)
        run_config = config.to_run_config()
        assert type(run_config) is RunConfig
        rebuilt = OptimizationConfig.from_run_config(run_config, judge_timeout=7.0)
        assert rebuilt.batch_size == 5
        assert rebuilt.judge_timeout == 7.0
