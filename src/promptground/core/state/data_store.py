"""Samples, seed prompt, output schema and judge rubric stored as files."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from ...models import JudgeRubric, Sample

SAMPLES_FILENAME = "samples.json"
PROMPT_FILENAME = "prompt.md"
SCHEMA_FILENAME = "schema.json"
RUBRIC_FILENAME = "metrics-prompt.json"
DEFAULT_GROUP_ID = "default"
DEFAULT_PROMPT = "You are a helpful assistant."


class DataStore:
    """Read/write access to the files in a data directory."""

    def __init__(self, data_dir: Path):
        """Initialize store rooted at the data directory."""
        self.data_dir = Path(data_dir)

    def load_samples(self, group_id: Optional[str] = None) -> List[Sample]:
        """Load the samples of a group.

        Supports the grouped layout ``{"groups": [...], "currentGroupId": ...}``
        and the legacy flat ``{"samples": [...]}`` layout. Unreadable data
        yields an empty list.
        """
        data = self._read_json(SAMPLES_FILENAME)
        if not isinstance(data, dict):
            return []

        if isinstance(data.get("groups"), list):
            target = group_id or data.get("currentGroupId") or DEFAULT_GROUP_ID
            group = next(
                (g for g in data["groups"] if isinstance(g, dict) and g.get("id") == target),
                None,
            )
            raw_samples = group.get("samples", []) if group else []
        else:
            raw_samples = data.get("samples") or []

        samples: List[Sample] = []
        for item in raw_samples:
            try:
                samples.append(Sample.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed sample: {e.error_count()} errors")
        return samples

    def load_prompt(self) -> str:
        """Load the seed prompt, falling back to a generic assistant prompt."""
        try:
            text = (self.data_dir / PROMPT_FILENAME).read_text(encoding="utf-8").strip()
        except OSError:
            return DEFAULT_PROMPT
        return text or DEFAULT_PROMPT

    def load_schema(self) -> Optional[Dict[str, Any]]:
        """Load the structured-output JSON schema, or None."""
        data = self._read_json(SCHEMA_FILENAME)
        return data if isinstance(data, dict) else None

    def load_rubric(self) -> JudgeRubric:
        """Load the judge rubric; missing or malformed files use the defaults."""
        data = self._read_json(RUBRIC_FILENAME)
        if not isinstance(data, dict):
            return JudgeRubric()
        try:
            return JudgeRubric.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid {RUBRIC_FILENAME}, using default rubric: {e.error_count()} errors")
            return JudgeRubric()

    def save_prompt(self, prompt: str) -> None:
        self._write_text(PROMPT_FILENAME, prompt)

    def save_samples(self, samples: List[Sample], group_id: str = DEFAULT_GROUP_ID, group_name: str = "Default") -> None:
        """Write samples as a single group, replacing any group with the same id."""
        data = self._read_json(SAMPLES_FILENAME)
        groups = data.get("groups") if isinstance(data, dict) else None
        groups = [g for g in groups or [] if isinstance(g, dict) and g.get("id") != group_id]
        groups.append({
            "id": group_id,
            "name": group_name,
            "samples": [sample.to_json_dict() for sample in samples],
        })
        payload = {"groups": groups, "currentGroupId": group_id}
        self._write_text(SAMPLES_FILENAME, json.dumps(payload, indent=2, ensure_ascii=False))

    def save_schema(self, schema: Dict[str, Any]) -> None:
        self._write_text(SCHEMA_FILENAME, json.dumps(schema, indent=2, ensure_ascii=False))

    def _read_json(self, filename: str) -> Any:
        path = self.data_dir / filename
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def _write_text(self, filename: str, content: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        (self.data_dir / filename).write_text(content, encoding="utf-8")
