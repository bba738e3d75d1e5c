"""Adaptive difficulty engine.

Scores a learner's cumulative attempt history: next exercise tier, mastery
percentage, learning speed, engagement and skill level. Every function here
is pure over the LearnerStats value it is given; loading and saving the
record is the caller's job (see ``adaptivetutor.state.learners``).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Below this many attempts the success rate is too noisy to act on.
MIN_ATTEMPTS_FOR_SIGNAL = 3
# Mastery ramps up linearly until this many attempts.
MASTERY_RAMP_ATTEMPTS = 5
DEFAULT_TIME_PER_QUESTION = 60.0

SECONDS_PER_DAY = 24 * 60 * 60


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class DifficultyTier(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    STANDARD = "standard"
    CHALLENGING = "challenging"
    EXPERT = "expert"

    @property
    def multiplier(self) -> float:
        """Time multiplier applied to the learner's per-question estimate."""
        return _TIER_MULTIPLIERS[self]

    @property
    def bloom_level(self) -> str:
        """Cognitive level label, display only."""
        return _BLOOM_LEVELS[self]


_TIER_MULTIPLIERS = {
    DifficultyTier.EASY: 0.6,
    DifficultyTier.MODERATE: 0.8,
    DifficultyTier.STANDARD: 1.0,
    DifficultyTier.CHALLENGING: 1.2,
    DifficultyTier.EXPERT: 1.5,
}

_BLOOM_LEVELS = {
    DifficultyTier.EASY: "remembering",
    DifficultyTier.MODERATE: "understanding",
    DifficultyTier.STANDARD: "applying",
    DifficultyTier.CHALLENGING: "analyzing",
    DifficultyTier.EXPERT: "evaluating/creating",
}

# (minimum success rate, tier), checked top-down
_SUCCESS_BRACKETS: list[tuple[float, DifficultyTier]] = [
    (0.85, DifficultyTier.EXPERT),
    (0.75, DifficultyTier.CHALLENGING),
    (0.60, DifficultyTier.STANDARD),
    (0.40, DifficultyTier.MODERATE),
]

# (time ratio upper bound, speed multiplier), strict less-than, top-down
_SPEED_BRACKETS: list[tuple[float, float]] = [
    (0.5, 1.3),
    (1.0, 1.1),
    (1.5, 1.0),
    (2.0, 0.8),
]
SLOWEST_SPEED = 0.6
LEARNING_SPEEDS = frozenset(speed for _, speed in _SPEED_BRACKETS) | {SLOWEST_SPEED}

_LEVEL_THRESHOLDS: list[tuple[float, SkillLevel]] = [
    (85, SkillLevel.ADVANCED),
    (70, SkillLevel.INTERMEDIATE),
]


class WeakTopicRanking(str, Enum):
    INSERTION = "insertion"  # order in which errors were first seen
    SEVERITY = "severity"  # most errors first


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class LearnerStats:
    """Cumulative attempt statistics for one learner.

    Construct with zero counters for a new learner; afterwards only
    ``record_attempt`` and ``refresh_engagement`` produce new values.
    """
    total_attempts: int = 0
    correct_answers: int = 0
    average_score: float = 0.0
    mastery_percentage: int = 0
    common_errors: dict[str, int] = field(default_factory=dict)
    solved_exercises: list[str] = field(default_factory=list)
    learning_speed: float = 1.0
    engagement_score: int = 0
    last_active: Optional[datetime] = None
    total_time_spent: float = 0.0
    estimated_time_per_question: float = DEFAULT_TIME_PER_QUESTION

    def __post_init__(self) -> None:
        if self.total_attempts < 0 or self.correct_answers < 0:
            raise ValueError("Attempt counts cannot be negative")
        if self.correct_answers > self.total_attempts:
            raise ValueError(
                f"correct_answers ({self.correct_answers}) exceeds "
                f"total_attempts ({self.total_attempts})"
            )
        if not 0 <= self.average_score <= 100:
            raise ValueError(f"average_score out of range: {self.average_score}")
        if not 0 <= self.mastery_percentage <= 100:
            raise ValueError(f"mastery_percentage out of range: {self.mastery_percentage}")
        if not 0 <= self.engagement_score <= 100:
            raise ValueError(f"engagement_score out of range: {self.engagement_score}")
        if not math.isfinite(self.total_time_spent) or self.total_time_spent < 0:
            raise ValueError(
                f"total_time_spent must be finite and not negative: {self.total_time_spent}"
            )
        if self.learning_speed not in LEARNING_SPEEDS:
            raise ValueError(
                f"learning_speed must be one of {sorted(LEARNING_SPEEDS)}: {self.learning_speed}"
            )
        estimate = self.estimated_time_per_question
        if not math.isfinite(estimate) or estimate <= 0:
            raise ValueError("estimated_time_per_question must be positive")
        for exercise_id, count in self.common_errors.items():
            if count < 1:
                raise ValueError(f"Error count for {exercise_id!r} must be at least 1")
        if self.last_active is not None:
            self.last_active = as_utc(self.last_active)

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_answers / self.total_attempts

    @property
    def level(self) -> SkillLevel:
        return classify_level(self.average_score)


@dataclass(frozen=True)
class AttemptRecord:
    exercise_id: str
    timestamp: datetime
    is_correct: bool
    time_spent: float
    difficulty: DifficultyTier


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def select_next_difficulty(stats: LearnerStats) -> DifficultyTier:
    """Pick the tier for the next exercise from the success rate."""
    if stats.total_attempts < MIN_ATTEMPTS_FOR_SIGNAL:
        return DifficultyTier.EASY

    rate = stats.success_rate
    for threshold, tier in _SUCCESS_BRACKETS:
        if rate >= threshold:
            return tier
    return DifficultyTier.EASY


def compute_mastery(stats: LearnerStats) -> int:
    """Mastery percentage, dampened over the first few attempts.

    One correct answer out of one attempt yields 20, not 100.
    """
    total = stats.total_attempts
    if total <= 0:
        return 0

    raw = 100 * stats.correct_answers / total
    if total < MASTERY_RAMP_ATTEMPTS:
        raw *= total / MASTERY_RAMP_ATTEMPTS
    return _round_half_up(min(100.0, raw))


def classify_speed(time_spent: float, estimated_time_per_question: float) -> float:
    for bound, speed in _SPEED_BRACKETS:
        if time_spent < estimated_time_per_question * bound:
            return speed
    return SLOWEST_SPEED


def compute_engagement(stats: LearnerStats, now: Optional[datetime] = None) -> int:
    """Additive engagement score from recency, time spent and volume."""
    now = as_utc(now) if now else utcnow()
    score = 0

    if stats.last_active is not None:
        days_since_active = (now - stats.last_active).total_seconds() / SECONDS_PER_DAY
        if days_since_active < 1:
            score += 30
        elif days_since_active < 3:
            score += 20
        elif days_since_active < 7:
            score += 10

    if stats.total_time_spent > 300:
        score += 25
    elif stats.total_time_spent > 60:
        score += 15

    if stats.total_attempts > 20:
        score += 25
    elif stats.total_attempts > 5:
        score += 15

    return min(100, score)


def classify_level(average_score: float) -> SkillLevel:
    for threshold, level in _LEVEL_THRESHOLDS:
        if average_score >= threshold:
            return level
    return SkillLevel.BEGINNER


def identify_weak_topics(
    common_errors: Mapping[str, int],
    threshold: int = 2,
    limit: int = 3,
    ranking: WeakTopicRanking = WeakTopicRanking.INSERTION,
) -> list[str]:
    """Exercises with more than ``threshold`` errors, at most ``limit`` of them."""
    weak = [(topic, count) for topic, count in common_errors.items() if count > threshold]
    if ranking == WeakTopicRanking.SEVERITY:
        # sorted() is stable, so equal counts keep insertion order
        weak = sorted(weak, key=lambda item: item[1], reverse=True)
    return [topic for topic, _ in weak[:limit]]


def record_attempt(
    stats: LearnerStats,
    exercise_id: str,
    is_correct: bool,
    time_spent: float,
    difficulty: DifficultyTier | str,
    now: Optional[datetime] = None,
) -> tuple[LearnerStats, AttemptRecord]:
    """Fold one answered exercise into ``stats``.

    Returns the updated stats and an immutable record of the attempt. The
    ``stats`` argument itself is left untouched.
    """
    if not math.isfinite(time_spent) or time_spent < 0:
        raise ValueError(f"time_spent must be finite and not negative: {time_spent}")
    tier = DifficultyTier(difficulty)
    now = as_utc(now) if now else utcnow()

    total = stats.total_attempts + 1
    correct = stats.correct_answers + (1 if is_correct else 0)

    common_errors = dict(stats.common_errors)
    solved = list(stats.solved_exercises)
    if is_correct:
        if exercise_id not in solved:
            solved.append(exercise_id)
    else:
        common_errors[exercise_id] = common_errors.get(exercise_id, 0) + 1

    updated = replace(
        stats,
        total_attempts=total,
        correct_answers=correct,
        average_score=100 * correct / total,
        common_errors=common_errors,
        solved_exercises=solved,
        learning_speed=classify_speed(time_spent, stats.estimated_time_per_question),
        last_active=now,
        total_time_spent=stats.total_time_spent + time_spent,
    )
    updated = replace(updated, mastery_percentage=compute_mastery(updated))

    logger.debug(
        "attempt %s correct=%s tier=%s -> mastery=%d speed=%.1f",
        exercise_id, is_correct, tier.value,
        updated.mastery_percentage, updated.learning_speed,
    )

    record = AttemptRecord(
        exercise_id=exercise_id,
        timestamp=now,
        is_correct=is_correct,
        time_spent=time_spent,
        difficulty=tier,
    )
    return updated, record


def refresh_engagement(stats: LearnerStats, now: Optional[datetime] = None) -> LearnerStats:
    return replace(stats, engagement_score=compute_engagement(stats, now))
