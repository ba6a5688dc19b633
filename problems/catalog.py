"""Practice-problem catalog loaded from YAML."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path

import yaml
from pydantic import ConfigDict, Field

from practice_core.schemas import BaseSchema, TestCase

BUILTIN_PROBLEMS_PATH = Path(__file__).resolve().parent / "data" / "basics.yaml"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Problem(BaseSchema):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    topic: str = ""
    title: str
    description: str = ""
    difficulty: Difficulty = Difficulty.EASY
    language: str = "python"
    starter_code: str = Field(default="", alias="starterCode")
    solution: str = ""
    solution_explanation: str | None = Field(default=None, alias="solutionExplanation")
    hints: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    test_cases: list[TestCase] = Field(default_factory=list, alias="testCases")


class ProblemCatalog:
    """Problems grouped by topic, in authored order."""

    def __init__(self, problems_by_topic: Mapping[str, list[Problem]] | None = None) -> None:
        self._by_topic: dict[str, list[Problem]] = {}
        self._by_id: dict[str, Problem] = {}
        for topic, problems in (problems_by_topic or {}).items():
            for problem in problems:
                self.add(problem if problem.topic else problem.model_copy(update={"topic": topic}))

    def add(self, problem: Problem) -> None:
        if problem.id in self._by_id:
            raise ValueError(f"Duplicate problem id: {problem.id}")
        self._by_id[problem.id] = problem
        self._by_topic.setdefault(problem.topic, []).append(problem)

    def topics(self) -> list[str]:
        return list(self._by_topic)

    def for_topic(self, topic_id: str) -> list[Problem]:
        return list(self._by_topic.get(topic_id, []))

    def get(self, problem_id: str) -> Problem | None:
        return self._by_id.get(problem_id)

    def __iter__(self) -> Iterator[Problem]:
        for problems in self._by_topic.values():
            yield from problems

    def __len__(self) -> int:
        return len(self._by_id)


def load_problems(yaml_path: str | Path) -> ProblemCatalog:
    """Load a problem catalog from a YAML file.

    The file holds a ``topics`` mapping of topic id to a list of problems.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist
        ValueError: If the YAML is invalid or a problem fails validation
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Problem file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or not isinstance(data.get("topics"), dict):
        raise ValueError(f"Problem file has no 'topics' mapping: {yaml_path}")

    try:
        grouped = {
            str(topic): [
                Problem.model_validate({"topic": str(topic), **entry})
                for entry in (entries or [])
            ]
            for topic, entries in data["topics"].items()
        }
        return ProblemCatalog(grouped)
    except Exception as e:
        raise ValueError(f"Invalid problem definition in {yaml_path}: {e}") from e


def load_builtin_problems() -> ProblemCatalog:
    return load_problems(BUILTIN_PROBLEMS_PATH)
