"""Level-aware lesson assembly.

Packages a lesson for a learner:
- Exercises ordered easiest-first, trimmed to a count that suits the level
- A difficulty tier per position, ramping up through the set
- Per-tier hints, time limits and reward points
- Video playback settings keyed by level, with quick-check quizzes
- Time-on-lesson statistics
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from adaptivetutor.engine.adaptive import DifficultyTier, SkillLevel
from adaptivetutor.engine.lesson_loader import Exercise, Lesson


@dataclass(frozen=True)
class HintAllowance:
    available: int
    detail: str
    used: int = 0


_HINT_ALLOWANCES = {
    DifficultyTier.EASY: HintAllowance(available=3, detail="very detailed"),
    DifficultyTier.MODERATE: HintAllowance(available=2, detail="detailed"),
    DifficultyTier.STANDARD: HintAllowance(available=2, detail="moderate"),
    DifficultyTier.CHALLENGING: HintAllowance(available=1, detail="light"),
    DifficultyTier.EXPERT: HintAllowance(available=0, detail="none"),
}

GENERIC_HINTS = [
    "Notice the key words in the question.",
    "Review the concepts this topic builds on.",
    "Try solving a similar example first.",
]

_CONTEXTUAL_HINTS = {
    DifficultyTier.EASY: [
        "Read the question carefully.",
        "Review the lesson summary.",
        "Watch the video section again.",
    ],
    DifficultyTier.MODERATE: [
        "Think about the core concepts.",
        "Write down what you know so far.",
        "How do the ideas relate to each other?",
    ],
    DifficultyTier.STANDARD: [
        "Think outside the box.",
        "Look for patterns.",
        "Connect this to what you learned earlier.",
    ],
    DifficultyTier.CHALLENGING: [
        "Break the problem down step by step.",
        "What is the real goal here?",
        "Try a different approach.",
    ],
}

# seconds
_TIME_LIMITS = {
    DifficultyTier.EASY: 30,
    DifficultyTier.MODERATE: 45,
    DifficultyTier.STANDARD: 60,
    DifficultyTier.CHALLENGING: 90,
    DifficultyTier.EXPERT: 120,
}

_REWARD_POINTS = {
    DifficultyTier.EASY: 10,
    DifficultyTier.MODERATE: 15,
    DifficultyTier.STANDARD: 20,
    DifficultyTier.CHALLENGING: 30,
    DifficultyTier.EXPERT: 50,
}

_EXERCISE_COUNTS = {
    SkillLevel.BEGINNER: 3,
    SkillLevel.INTERMEDIATE: 5,
    SkillLevel.ADVANCED: 7,
}

_E, _M, _S, _C, _X = (
    DifficultyTier.EASY,
    DifficultyTier.MODERATE,
    DifficultyTier.STANDARD,
    DifficultyTier.CHALLENGING,
    DifficultyTier.EXPERT,
)

# Tier by position; positions past the end use the fallback tier.
_TIER_RAMPS: dict[SkillLevel, tuple[list[DifficultyTier], DifficultyTier]] = {
    SkillLevel.BEGINNER: ([_E, _M], _S),
    SkillLevel.INTERMEDIATE: ([_E, _M, _S, _C, _C], _X),
    SkillLevel.ADVANCED: ([_M, _S, _C, _C, _X, _X, _X], _X),
}


@dataclass(frozen=True)
class VideoQuiz:
    at_seconds: int
    question: str
    kind: str


# Paused checks shown while the lesson video plays.
VIDEO_QUIZZES = (
    VideoQuiz(at_seconds=60, question="What is the main idea explained so far?", kind="quick_check"),
    VideoQuiz(at_seconds=300, question="Did the worked examples make sense?", kind="confidence_check"),
)

# (elapsed seconds upper bound, label), strict less-than, top-down
_LESSON_ENGAGEMENT_LEVELS = [
    (60, "low"),
    (300, "medium"),
    (600, "good"),
]


@dataclass
class AdaptiveExercise:
    exercise: Exercise
    difficulty: DifficultyTier
    bloom_level: str
    complexity: float
    time_limit: int  # seconds
    hints: HintAllowance
    hint_texts: list[str] = field(default_factory=lambda: list(GENERIC_HINTS))


@dataclass
class ProgressiveExercise:
    exercise: Exercise
    difficulty: DifficultyTier
    sequence: int
    hints: list[str]
    time_limit: int
    reward_points: int


@dataclass
class ExerciseSet:
    exercises: list[ProgressiveExercise] = field(default_factory=list)

    @property
    def total_exercises(self) -> int:
        return len(self.exercises)

    @property
    def estimated_seconds(self) -> int:
        return sum(e.time_limit for e in self.exercises)


@dataclass
class VideoSettings:
    url: Optional[str]
    duration_minutes: int
    quality: str
    autoplay: bool
    playback_speeds: list[float]
    subtitles: bool = True
    quizzes: list[VideoQuiz] = field(default_factory=lambda: list(VIDEO_QUIZZES))


@dataclass
class LessonPlan:
    lesson_id: str
    title: str
    level: SkillLevel
    summary: str
    objectives: list[str]
    video: VideoSettings
    exercises: ExerciseSet


@dataclass
class LessonStatistics:
    exercises_completed: int
    time_spent: int  # seconds
    average_time_per_exercise: int
    engagement_level: str


def generate_adaptive_exercise(
    exercise: Exercise,
    difficulty: DifficultyTier,
    estimated_time_per_question: float,
) -> AdaptiveExercise:
    """Calibrate a single exercise to the learner's selected tier."""
    difficulty = DifficultyTier(difficulty)
    return AdaptiveExercise(
        exercise=exercise,
        difficulty=difficulty,
        bloom_level=difficulty.bloom_level,
        complexity=difficulty.multiplier,
        time_limit=round(estimated_time_per_question * difficulty.multiplier),
        hints=_HINT_ALLOWANCES[difficulty],
    )


def sort_by_difficulty(exercises: list[Exercise]) -> list[Exercise]:
    return sorted(exercises, key=lambda e: e.type.rank)


def difficulty_for_position(index: int, level: SkillLevel) -> DifficultyTier:
    ramp, fallback = _TIER_RAMPS[SkillLevel(level)]
    if index < len(ramp):
        return ramp[index]
    return fallback


def contextual_hints(difficulty: DifficultyTier) -> list[str]:
    return list(_CONTEXTUAL_HINTS.get(difficulty, _CONTEXTUAL_HINTS[DifficultyTier.STANDARD]))


def build_progressive_exercises(exercises: list[Exercise], level: SkillLevel) -> ExerciseSet:
    level = SkillLevel(level)
    ordered = sort_by_difficulty(exercises)[: _EXERCISE_COUNTS[level]]

    items = []
    for i, exercise in enumerate(ordered):
        tier = difficulty_for_position(i, level)
        items.append(ProgressiveExercise(
            exercise=exercise,
            difficulty=tier,
            sequence=i + 1,
            hints=contextual_hints(tier),
            time_limit=_TIME_LIMITS[tier],
            reward_points=_REWARD_POINTS[tier],
        ))
    return ExerciseSet(exercises=items)


def _video_settings(lesson: Lesson, level: SkillLevel) -> VideoSettings:
    if level == SkillLevel.ADVANCED:
        quality, autoplay, speeds = "FullHD", True, [1.0, 1.25, 1.5]
    elif level == SkillLevel.BEGINNER:
        quality, autoplay, speeds = "SD", False, [1.0, 1.25]
    else:
        quality, autoplay, speeds = "HD", False, [1.0, 1.25]
    return VideoSettings(
        url=lesson.video_url,
        duration_minutes=lesson.duration_minutes,
        quality=quality,
        autoplay=autoplay,
        playback_speeds=speeds,
    )


def build_lesson_plan(lesson: Lesson, level: SkillLevel) -> LessonPlan:
    """Assemble summary, video settings and exercises for one learner level."""
    level = SkillLevel(level)
    return LessonPlan(
        lesson_id=lesson.id,
        title=lesson.title,
        level=level,
        summary=lesson.summary,
        objectives=list(lesson.objectives),
        video=_video_settings(lesson, level),
        exercises=build_progressive_exercises(lesson.exercises, level),
    )


def lesson_engagement(time_spent: float) -> str:
    for bound, label in _LESSON_ENGAGEMENT_LEVELS:
        if time_spent < bound:
            return label
    return "excellent"


def lesson_statistics(time_spent: float, exercises_shown: int) -> LessonStatistics:
    """Summarize one sitting: ``time_spent`` seconds over ``exercises_shown`` exercises."""
    if not math.isfinite(time_spent) or time_spent < 0:
        raise ValueError(f"time_spent must be finite and not negative: {time_spent}")
    if exercises_shown < 0:
        raise ValueError("exercises_shown cannot be negative")
    return LessonStatistics(
        exercises_completed=exercises_shown,
        time_spent=round(time_spent),
        average_time_per_exercise=round(time_spent / (exercises_shown or 1)),
        engagement_level=lesson_engagement(time_spent),
    )
