"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest

from promptground.cli import build_event_sink, build_optimization_config, build_parser, main
from promptground.core.state.run_store import RunStore
from promptground.core.ui.progress_tracker import ProgressTracker
from promptground.models import OptimizationRun, ProgressEvent, RunConfig


@pytest.fixture
def paths(tmp_path: Path):
    return tmp_path / "data", tmp_path / "promptground.yaml"


def run_cli(paths, *args: str) -> int:
    data_dir, config_path = paths
    return main(["--data-dir", str(data_dir), "--config", str(config_path), *args])


class TestInit:
    """Tests for `promptground init`."""

    def test_creates_project_files(self, paths) -> None:
        data_dir, config_path = paths

        assert run_cli(paths, "init") == 0

        assert (data_dir / "prompt.md").read_text(encoding="utf-8").strip()
        samples = json.loads((data_dir / "samples.json").read_text(encoding="utf-8"))
        assert samples
        assert "optimize:" in config_path.read_text(encoding="utf-8")

    def test_keeps_existing_files(self, paths) -> None:
        data_dir, config_path = paths
        config_path.write_text("default_model: mine\n", encoding="utf-8")

        assert run_cli(paths, "init") == 0

        assert config_path.read_text(encoding="utf-8") == "default_model: mine\n"


class TestBuildOptimizationConfig:
    """Tests for merging profile, YAML and CLI settings."""

    def parse(self, *args: str):
        return build_parser().parse_args(["optimize", *args])

    def test_defaults_to_balanced_profile(self) -> None:
        config = build_optimization_config({}, self.parse())
        assert config.num_rollouts == 10
        assert config.batch_size == 3

    def test_yaml_overrides_profile(self) -> None:
        config = build_optimization_config({"profile": "fast", "batch_size": 4}, self.parse())
        assert config.num_rollouts == 5
        assert config.batch_size == 4

    def test_cli_overrides_yaml(self) -> None:
        config = build_optimization_config(
            {"batch_size": 4, "num_rollouts": 8},
            self.parse("--batch-size", "2", "--metrics", "tone, accuracy", "--structured"),
        )
        assert config.batch_size == 2
        assert config.num_rollouts == 8
        assert config.selected_metrics == ["tone", "accuracy"]
        assert config.use_structured_output is True

    def test_default_model_fills_models(self) -> None:
        config = build_optimization_config({}, self.parse("--model", "gen-model"), default_model="house-model")
        assert config.optimization_model == "gen-model"
        assert config.reflection_model == "house-model"

    def test_unknown_keys_ignored(self) -> None:
        config = build_optimization_config({"mystery": 1}, self.parse())
        assert not hasattr(config, "mystery")

    def test_unknown_profile_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_optimization_config({"profile": "turbo"}, self.parse())


class TestEventSink:
    """Tests for the optimize command's event sink."""

    @pytest.mark.asyncio
    async def test_json_lines_alongside_progress_bar(self, capsys: pytest.CaptureFixture) -> None:
        tracker = ProgressTracker(num_rollouts=1, disable=True)
        sink = build_event_sink(tracker, json_lines=True)

        await sink.emit(ProgressEvent(type="iteration", iteration=1, accepted=True, best_score=0.9, run_id="r1"))

        line = json.loads(capsys.readouterr().out.strip())
        assert line["runId"] == "r1"
        assert tracker.accepted == 1
        assert tracker.best_score == 0.9

    def test_progress_bar_only_by_default(self) -> None:
        tracker = ProgressTracker(num_rollouts=1, disable=True)
        assert build_event_sink(tracker) is tracker


class TestRuns:
    """Tests for `promptground runs`."""

    def test_list_empty(self, paths) -> None:
        assert run_cli(paths, "runs", "list") == 0

    def test_show_missing_run(self, paths) -> None:
        assert run_cli(paths, "runs", "show", "missing") == 1

    def test_show_and_delete(self, paths) -> None:
        data_dir, _ = paths
        store = RunStore(data_dir)
        store.save(OptimizationRun(id="run-1", config=RunConfig(), status="completed"))

        assert run_cli(paths, "runs", "show", "run-1") == 0
        assert run_cli(paths, "runs", "delete", "run-1") == 0
        assert store.get("run-1") is None


def test_optimize_without_api_key_fails(paths, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PROMPTGROUND_API_KEY", "OPENAI_API_KEY", "API_KEY", "PROMPTGROUND_BASE_URL", "OPENAI_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(paths[0].parent)
    assert run_cli(paths, "optimize") == 1
