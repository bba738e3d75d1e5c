"""Tutor session: load learner → score → save."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from adaptivetutor.config.settings import Settings
from adaptivetutor.engine.adaptive import (
    AttemptRecord,
    DifficultyTier,
    LearnerStats,
    identify_weak_topics,
    record_attempt,
    refresh_engagement,
    select_next_difficulty,
    utcnow,
)
from adaptivetutor.engine.lesson_builder import (
    AdaptiveExercise,
    LessonPlan,
    build_lesson_plan,
    generate_adaptive_exercise,
)
from adaptivetutor.engine.lesson_loader import Exercise, Lesson
from adaptivetutor.engine.recommendations import (
    ClassComparison,
    LearnerReport,
    build_report,
    compare_with_class,
)
from adaptivetutor.state.learners import LearnerRepository, LearnerStore

logger = logging.getLogger(__name__)


class TutorSession:
    """Drives the scoring engine against a learner store.

    Holds no learner state between calls: each operation loads the record,
    runs the engine and, for writes, saves the result. Callers must not
    submit two attempts for the same learner concurrently.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[LearnerRepository] = None,
    ):
        self.settings = settings or Settings.load()
        self.store: LearnerRepository = store or LearnerStore(db_path=self.settings.db_path)

    def new_learner(self) -> LearnerStats:
        return LearnerStats(
            estimated_time_per_question=self.settings.estimated_time_per_question,
        )

    def get_or_create(self, learner_id: str) -> LearnerStats:
        """Return the stored record, or a fresh zero-state one (not saved)."""
        stats = self.store.load(learner_id)
        if stats is None:
            logger.info("no record for learner %s, starting fresh", learner_id)
            return self.new_learner()
        return stats

    def next_difficulty(self, learner_id: str) -> DifficultyTier:
        return select_next_difficulty(self.get_or_create(learner_id))

    def next_exercise(self, learner_id: str, exercise: Exercise) -> AdaptiveExercise:
        stats = self.get_or_create(learner_id)
        return generate_adaptive_exercise(
            exercise,
            select_next_difficulty(stats),
            stats.estimated_time_per_question,
        )

    def submit_attempt(
        self,
        learner_id: str,
        exercise_id: str,
        is_correct: bool,
        time_spent: float,
        difficulty: Optional[DifficultyTier | str] = None,
        now: Optional[datetime] = None,
    ) -> AttemptRecord:
        now = now or utcnow()
        stats = self.get_or_create(learner_id)
        if difficulty is None:
            difficulty = select_next_difficulty(stats)

        stats, record = record_attempt(
            stats, exercise_id, is_correct, time_spent, difficulty, now=now,
        )
        stats = refresh_engagement(stats, now)

        self.store.record(learner_id, stats, record)
        logger.info(
            "learner %s answered %s (%s): mastery %d%%",
            learner_id, exercise_id, "correct" if is_correct else "wrong",
            stats.mastery_percentage,
        )
        return record

    def history(self, learner_id: str, limit: Optional[int] = None) -> list[AttemptRecord]:
        return self.store.attempts(learner_id, limit=limit)

    def weak_topics(self, learner_id: str) -> list[str]:
        cfg = self.settings.weak_topics
        return identify_weak_topics(
            self.get_or_create(learner_id).common_errors,
            threshold=cfg.threshold,
            limit=cfg.limit,
            ranking=cfg.ranking,
        )

    def report(
        self, learner_id: str, name: str = "", now: Optional[datetime] = None,
    ) -> LearnerReport:
        cfg = self.settings.weak_topics
        return build_report(
            self.get_or_create(learner_id),
            name=name or learner_id,
            now=now,
            weak_topic_threshold=cfg.threshold,
            weak_topic_limit=cfg.limit,
            ranking=cfg.ranking,
        )

    def compare_with_class(self, learner_id: str) -> ClassComparison:
        """Compare a learner's average score with every active learner's."""
        scores = self.store.average_scores()
        student_score = self.get_or_create(learner_id).average_score
        if not scores:
            return compare_with_class(student_score, student_score)

        class_average = sum(scores.values()) / len(scores)
        below = sum(1 for s in scores.values() if s < student_score)
        percentile = 100 * below / len(scores)
        return compare_with_class(student_score, class_average, percentile=percentile)

    def plan_lesson(self, lesson: Lesson, learner_id: str) -> LessonPlan:
        level = self.get_or_create(learner_id).level
        logger.debug("planning lesson %s at level %s", lesson.id, level.value)
        return build_lesson_plan(lesson, level)

    def reset(self, learner_id: str) -> None:
        self.store.delete(learner_id)
