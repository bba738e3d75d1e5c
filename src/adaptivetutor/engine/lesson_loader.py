"""YAML lesson parser for adaptivetutor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml


class ExerciseType(str, Enum):
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    MULTIPLE_CHOICE = "multiple_choice"
    ESSAY = "essay"

    @property
    def rank(self) -> int:
        """Position in the easiest-first ordering."""
        return list(ExerciseType).index(self) + 1


@dataclass
class Exercise:
    id: str
    type: ExerciseType
    prompt: str
    answer: Optional[str] = None
    choices: list[str] = field(default_factory=list)
    topic: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Exercise requires an id")
        if not self.prompt:
            raise ValueError(f"Exercise {self.id!r} requires a prompt")
        self.type = ExerciseType(self.type)
        if self.type == ExerciseType.MULTIPLE_CHOICE and not self.choices:
            raise ValueError(f"Multiple choice exercise {self.id!r} has no choices")


@dataclass
class Lesson:
    id: str
    title: str
    summary: str = ""
    objectives: list[str] = field(default_factory=list)
    duration_minutes: int = 15
    video_url: Optional[str] = None
    exercises: list[Exercise] = field(default_factory=list)
    base_path: Optional[Path] = None  # directory containing lesson.yaml

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError(f"Lesson {self.id!r} requires a title")
        seen: set[str] = set()
        for exercise in self.exercises:
            if exercise.id in seen:
                raise ValueError(f"Duplicate exercise id {exercise.id!r} in lesson {self.id!r}")
            seen.add(exercise.id)


def _parse_choices(raw) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        # "a;b;c" shorthand
        return [c.strip() for c in raw.split(";") if c.strip()]
    return [str(c) for c in raw]


def _parse_exercise(raw: dict) -> Exercise:
    try:
        exercise_id = str(raw["id"])
        exercise_type = raw["type"]
        prompt = raw["prompt"]
    except KeyError as e:
        raise ValueError(f"Exercise is missing required field {e.args[0]!r}") from e

    answer = raw.get("answer")
    return Exercise(
        id=exercise_id,
        type=ExerciseType(exercise_type),
        prompt=prompt,
        answer=str(answer) if answer is not None else None,
        choices=_parse_choices(raw.get("choices")),
        topic=raw.get("topic"),
    )


def load_lesson(lesson_dir: Path) -> Lesson:
    """Load a lesson.yaml from a lesson directory."""
    lesson_file = lesson_dir / "lesson.yaml"
    with open(lesson_file) as f:
        data = yaml.safe_load(f) or {}

    meta = data.get("lesson") or {}
    return Lesson(
        id=lesson_dir.name,
        title=meta.get("title", ""),
        summary=meta.get("summary", ""),
        objectives=list(meta.get("objectives", [])),
        duration_minutes=meta.get("duration_minutes", 15),
        video_url=meta.get("video_url"),
        exercises=[_parse_exercise(raw) for raw in data.get("exercises", [])],
        base_path=lesson_dir,
    )


BUNDLED_LESSONS_DIR = Path(__file__).parent.parent / "lessons"


def list_lessons(lessons_dir: Path | None = None) -> list[Path]:
    """Lesson directories (those holding a lesson.yaml) under ``lessons_dir``."""
    lessons_dir = lessons_dir or BUNDLED_LESSONS_DIR
    return [
        path for path in sorted(lessons_dir.iterdir())
        if path.is_dir() and (path / "lesson.yaml").exists()
    ]
