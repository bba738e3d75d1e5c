"""Per-level recommendations and learner reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from adaptivetutor.engine.adaptive import (
    LearnerStats,
    SkillLevel,
    WeakTopicRanking,
    classify_level,
    compute_engagement,
    identify_weak_topics,
    utcnow,
)

# Baseline minutes for the next study block at learning speed 1.0
BASE_STUDY_MINUTES = 30
# Score difference (points) beyond which a learner is above/below the class
CLASS_COMPARISON_MARGIN = 10
MAX_STRENGTHS = 3


@dataclass
class Recommendations:
    level: SkillLevel
    next_steps: list[str]
    tips: list[str]
    estimated_minutes: int


_RECOMMENDATIONS: dict[SkillLevel, tuple[list[str], list[str]]] = {
    SkillLevel.ADVANCED: (
        [
            "Move on to advanced lessons",
            "Solve challenge exercises",
            "Help your classmates",
        ],
        [
            "You are well ahead. Try more complex problems.",
            "Focus on the topics you still want to improve.",
        ],
    ),
    SkillLevel.INTERMEDIATE: (
        [
            "Review your weak topics",
            "Solve extra exercises",
            "Watch the explanatory videos",
        ],
        [
            "Good progress! Keep practising.",
            "Go over the core concepts once more.",
        ],
    ),
    SkillLevel.BEGINNER: (
        [
            "Start with easy exercises",
            "Understand the core concepts",
            "Ask the assistant for help",
        ],
        [
            "Start with the basics and build up gradually.",
            "Use the assistant when something is unclear.",
        ],
    ),
}


def recommendations_for(level: SkillLevel, learning_speed: float = 1.0) -> Recommendations:
    level = SkillLevel(level)
    next_steps, tips = _RECOMMENDATIONS[level]
    return Recommendations(
        level=level,
        next_steps=list(next_steps),
        tips=list(tips),
        estimated_minutes=round(BASE_STUDY_MINUTES / learning_speed),
    )


@dataclass
class LearnerReport:
    name: str
    level: SkillLevel
    performance_score: int
    mastery_percentage: int
    total_attempts: int
    engagement_score: int
    learning_speed: str
    strengths: list[str] = field(default_factory=list)
    weak_topics: list[str] = field(default_factory=list)
    recommendations: Optional[Recommendations] = None
    generated_at: Optional[datetime] = None


def strengths_of(stats: LearnerStats, limit: int = MAX_STRENGTHS) -> list[str]:
    """Solved exercises the learner never got wrong."""
    return [e for e in stats.solved_exercises if e not in stats.common_errors][:limit]


def build_report(
    stats: LearnerStats,
    name: str = "",
    now: Optional[datetime] = None,
    weak_topic_threshold: int = 2,
    weak_topic_limit: int = 3,
    ranking: WeakTopicRanking = WeakTopicRanking.INSERTION,
) -> LearnerReport:
    now = now or utcnow()
    level = classify_level(stats.average_score)
    return LearnerReport(
        name=name,
        level=level,
        performance_score=round(stats.average_score),
        mastery_percentage=stats.mastery_percentage,
        total_attempts=stats.total_attempts,
        engagement_score=compute_engagement(stats, now),
        learning_speed=f"{stats.learning_speed:.1f}x",
        strengths=strengths_of(stats),
        weak_topics=identify_weak_topics(
            stats.common_errors,
            threshold=weak_topic_threshold,
            limit=weak_topic_limit,
            ranking=ranking,
        ),
        recommendations=recommendations_for(level, stats.learning_speed),
        generated_at=now,
    )


@dataclass
class ClassComparison:
    student_score: float
    class_average: float
    difference: float
    status: str  # "above average", "below average", "around average"
    percentile: Optional[float] = None


def compare_with_class(
    student_score: float,
    class_average: float,
    percentile: Optional[float] = None,
) -> ClassComparison:
    difference = student_score - class_average
    if difference > CLASS_COMPARISON_MARGIN:
        status = "above average"
    elif difference < -CLASS_COMPARISON_MARGIN:
        status = "below average"
    else:
        status = "around average"
    return ClassComparison(
        student_score=student_score,
        class_average=class_average,
        difference=difference,
        status=status,
        percentile=percentile,
    )
