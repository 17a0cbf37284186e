"""Tests for sample, prompt, schema and rubric files."""

import json
from pathlib import Path

import pytest
from conftest import make_sample

from promptground.core.state.data_store import DEFAULT_PROMPT, DataStore
from promptground.models import AVAILABLE_METRICS, ToolCallPart


class TestDataStore:
    """Tests for DataStore."""

    def test_missing_files_use_defaults(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path / "nothing")
        assert store.load_samples() == []
        assert store.load_prompt() == DEFAULT_PROMPT
        assert store.load_schema() is None
        assert list(store.load_rubric().dimensions) == AVAILABLE_METRICS

    def test_blank_prompt_uses_default(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.save_prompt("   \n")
        assert store.load_prompt() == DEFAULT_PROMPT

    def test_prompt_round_trip(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.save_prompt("Be kind.\n")
        assert store.load_prompt() == "Be kind."

    def test_legacy_flat_samples(self, tmp_path: Path) -> None:
        payload = {"samples": [make_sample("legacy").to_json_dict()]}
        (tmp_path / "samples.json").write_text(json.dumps(payload), encoding="utf-8")
        assert [s.id for s in DataStore(tmp_path).load_samples()] == ["legacy"]

    def test_groups_use_current_group_by_default(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.save_samples([make_sample("a")], group_id="alpha")
        store.save_samples([make_sample("b")], group_id="beta")

        assert [s.id for s in store.load_samples()] == ["b"]
        assert [s.id for s in store.load_samples("alpha")] == ["a"]
        assert store.load_samples("unknown") == []

    def test_save_samples_replaces_same_group(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        store.save_samples([make_sample("a")])
        store.save_samples([make_sample("b"), make_sample("c")])

        raw = json.loads((tmp_path / "samples.json").read_text(encoding="utf-8"))
        assert len(raw["groups"]) == 1
        assert [s.id for s in store.load_samples()] == ["b", "c"]

    def test_malformed_samples_are_skipped(self, tmp_path: Path) -> None:
        payload = {
            "groups": [
                {"id": "default", "name": "Default", "samples": [{"id": "ok", "messages": []}, {"messages": 3}]}
            ]
        }
        (tmp_path / "samples.json").write_text(json.dumps(payload), encoding="utf-8")
        assert [s.id for s in DataStore(tmp_path).load_samples()] == ["ok"]

    def test_tool_parts_are_parsed(self, tmp_path: Path) -> None:
        payload = {
            "samples": [{
                "id": "tools",
                "messages": [
                    {"role": "user", "content": "Where is order 42?"},
                    {
                        "role": "assistant",
                        "content": [
                            {"type": "tool-call", "toolCallId": "c1", "toolName": "lookup", "args": {"id": 42}}
                        ],
                    },
                ],
                "feedback": {"rating": "positive"},
            }]
        }
        (tmp_path / "samples.json").write_text(json.dumps(payload), encoding="utf-8")

        sample = DataStore(tmp_path).load_samples()[0]
        part = sample.messages[1].content[0]
        assert isinstance(part, ToolCallPart)
        assert part.tool_name == "lookup"
        assert sample.first_user_input() == "Where is order 42?"

    def test_schema_round_trip(self, tmp_path: Path) -> None:
        store = DataStore(tmp_path)
        schema = {"type": "object", "properties": {"answer": {"type": "string"}}}
        store.save_schema(schema)
        assert store.load_schema() == schema

    def test_non_object_schema_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "schema.json").write_text("[1, 2]", encoding="utf-8")
        assert DataStore(tmp_path).load_schema() is None

    def test_partial_rubric_keeps_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "metrics-prompt.json").write_text(
            json.dumps({"evaluation_instructions": "Judge strictly."}), encoding="utf-8"
        )
        rubric = DataStore(tmp_path).load_rubric()
        assert rubric.evaluation_instructions == "Judge strictly."
        assert list(rubric.dimensions) == AVAILABLE_METRICS

    def test_malformed_rubric_uses_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "metrics-prompt.json").write_text(
            json.dumps({"dimensions": "not a mapping"}), encoding="utf-8"
        )
        rubric = DataStore(tmp_path).load_rubric()
        assert list(rubric.dimensions) == AVAILABLE_METRICS

    @pytest.mark.parametrize(
        "key", ["_brand", "brand voice", "overall_score", "detailed_feedback", "suggested_improvements", "copy", "model_fields"]
    )
    def test_unusable_dimension_key_uses_default_rubric(self, tmp_path: Path, key: str) -> None:
        dimension = {"name": "Brand", "description": "Sounds like us."}
        (tmp_path / "metrics-prompt.json").write_text(
            json.dumps({"dimensions": {key: dimension}}), encoding="utf-8"
        )
        rubric = DataStore(tmp_path).load_rubric()
        assert list(rubric.dimensions) == AVAILABLE_METRICS

    def test_custom_dimension_accepted(self, tmp_path: Path) -> None:
        dimension = {"name": "Brand", "description": "Sounds like us.", "weight": 2.0}
        (tmp_path / "metrics-prompt.json").write_text(
            json.dumps({"dimensions": {"brand": dimension}}), encoding="utf-8"
        )
        assert list(DataStore(tmp_path).load_rubric().dimensions) == ["brand"]
