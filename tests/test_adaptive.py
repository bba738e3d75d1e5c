"""Tests for the adaptive difficulty engine."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from adaptivetutor.engine.adaptive import (
    DifficultyTier,
    LearnerStats,
    SkillLevel,
    WeakTopicRanking,
    classify_level,
    classify_speed,
    compute_engagement,
    compute_mastery,
    identify_weak_topics,
    record_attempt,
    refresh_engagement,
    select_next_difficulty,
)


def _stats(total: int, correct: int, **kwargs) -> LearnerStats:
    return LearnerStats(total_attempts=total, correct_answers=correct, **kwargs)


class TestLearnerStats:
    def test_defaults_are_zero_state(self):
        stats = LearnerStats()
        assert stats.total_attempts == 0
        assert stats.correct_answers == 0
        assert stats.common_errors == {}
        assert stats.learning_speed == 1.0
        assert stats.last_active is None
        assert stats.success_rate == 0.0
        assert stats.level == SkillLevel.BEGINNER

    def test_rejects_more_correct_than_attempts(self):
        with pytest.raises(ValueError, match="exceeds"):
            _stats(2, 3)

    def test_rejects_negative_counts(self):
        with pytest.raises(ValueError, match="negative"):
            _stats(-1, 0)

    def test_rejects_zero_error_count(self):
        with pytest.raises(ValueError, match="at least 1"):
            LearnerStats(common_errors={"Q1": 0})

    def test_rejects_out_of_range_engagement(self):
        with pytest.raises(ValueError, match="engagement_score"):
            LearnerStats(engagement_score=101)

    @pytest.mark.parametrize("seconds", [float("nan"), float("inf"), -1.0])
    def test_rejects_bad_total_time(self, seconds):
        with pytest.raises(ValueError, match="total_time_spent"):
            LearnerStats(total_time_spent=seconds)

    @pytest.mark.parametrize("speed", [0.5, 1.2, 2.0])
    def test_rejects_speed_outside_known_multipliers(self, speed):
        with pytest.raises(ValueError, match="learning_speed"):
            LearnerStats(learning_speed=speed)

    @pytest.mark.parametrize("speed", [0.6, 0.8, 1.0, 1.1, 1.3])
    def test_accepts_known_speeds(self, speed):
        assert LearnerStats(learning_speed=speed).learning_speed == speed

    def test_naive_last_active_is_treated_as_utc(self):
        stats = LearnerStats(last_active=datetime(2026, 3, 1, 12, 0))
        assert stats.last_active == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_last_active_is_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        stats = LearnerStats(last_active=datetime(2026, 3, 1, 14, 0, tzinfo=plus_two))
        assert stats.last_active.tzinfo == timezone.utc
        assert stats.last_active.hour == 12


class TestDifficultyTier:
    def test_multipliers(self):
        assert [t.multiplier for t in DifficultyTier] == [0.6, 0.8, 1.0, 1.2, 1.5]

    def test_bloom_labels(self):
        assert DifficultyTier.EASY.bloom_level == "remembering"
        assert DifficultyTier.EXPERT.bloom_level == "evaluating/creating"


class TestSelectNextDifficulty:
    @pytest.mark.parametrize("total,correct", [(0, 0), (1, 1), (2, 2), (2, 0)])
    def test_too_few_attempts_is_easy(self, total, correct):
        assert select_next_difficulty(_stats(total, correct)) == DifficultyTier.EASY

    @pytest.mark.parametrize("total,correct,expected", [
        (20, 17, DifficultyTier.EXPERT),        # exactly 0.85
        (4, 3, DifficultyTier.CHALLENGING),     # exactly 0.75
        (5, 3, DifficultyTier.STANDARD),        # exactly 0.60
        (5, 2, DifficultyTier.MODERATE),        # exactly 0.40
    ])
    def test_boundaries_select_higher_tier(self, total, correct, expected):
        assert select_next_difficulty(_stats(total, correct)) == expected

    def test_just_below_boundary(self):
        assert select_next_difficulty(_stats(25, 21)) == DifficultyTier.CHALLENGING  # 0.84

    def test_low_success_is_easy(self):
        assert select_next_difficulty(_stats(5, 1)) == DifficultyTier.EASY

    def test_perfect_record_is_expert(self):
        assert select_next_difficulty(_stats(3, 3)) == DifficultyTier.EXPERT


class TestComputeMastery:
    def test_no_attempts(self):
        assert compute_mastery(LearnerStats()) == 0

    def test_single_lucky_answer_is_dampened(self):
        assert compute_mastery(_stats(1, 1)) == 20

    def test_five_of_five_is_full(self):
        assert compute_mastery(_stats(5, 5)) == 100

    def test_ramp_before_five_attempts(self):
        assert compute_mastery(_stats(3, 3)) == 60
        assert compute_mastery(_stats(4, 2)) == 40

    def test_rounds_half_up(self):
        assert compute_mastery(_stats(8, 1)) == 13  # 12.5

    def test_monotonic_in_correct_answers(self):
        for total in range(0, 12):
            values = [compute_mastery(_stats(total, c)) for c in range(total + 1)]
            assert values == sorted(values)
            assert all(0 <= v <= 100 for v in values)


class TestClassifySpeed:
    @pytest.mark.parametrize("time_spent,expected", [
        (29, 1.3),
        (30, 1.1),
        (59, 1.1),
        (60, 1.0),   # exactly 1.0x falls into the <1.5x bracket
        (89, 1.0),
        (90, 0.8),
        (119, 0.8),
        (120, 0.6),
        (600, 0.6),
    ])
    def test_brackets(self, time_spent, expected):
        assert classify_speed(time_spent, 60) == expected


class TestComputeEngagement:
    def test_all_bonuses_reach_eighty(self, now):
        stats = _stats(50, 40, last_active=now, total_time_spent=10_000)
        assert compute_engagement(stats, now) == 80

    def test_never_exceeds_hundred(self, now):
        stats = _stats(10**6, 10**6, last_active=now, total_time_spent=10**9)
        assert compute_engagement(stats, now) <= 100

    def test_never_active_learner(self, now):
        assert compute_engagement(LearnerStats(), now) == 0

    def test_naive_now_mixes_with_aware_last_active(self, now):
        stats = LearnerStats(last_active=now)
        naive = now.replace(tzinfo=None) + timedelta(hours=2)
        assert compute_engagement(stats, naive) == 30

    @pytest.mark.parametrize("days,expected", [
        (0.5, 30), (1, 20), (2.9, 20), (3, 10), (6.9, 10), (7, 0), (30, 0),
    ])
    def test_recency_bonus(self, now, days, expected):
        stats = LearnerStats(last_active=now - timedelta(days=days))
        assert compute_engagement(stats, now) == expected

    @pytest.mark.parametrize("seconds,expected", [(60, 0), (61, 15), (300, 15), (301, 25)])
    def test_time_spent_bonus(self, now, seconds, expected):
        assert compute_engagement(LearnerStats(total_time_spent=seconds), now) == expected

    @pytest.mark.parametrize("attempts,expected", [(5, 0), (6, 15), (20, 15), (21, 25)])
    def test_attempt_volume_bonus(self, now, attempts, expected):
        assert compute_engagement(_stats(attempts, 0), now) == expected

    def test_refresh_engagement_stores_score(self, now):
        stats = refresh_engagement(_stats(6, 3, last_active=now), now)
        assert stats.engagement_score == 45


class TestClassifyLevel:
    @pytest.mark.parametrize("score,expected", [
        (100, SkillLevel.ADVANCED),
        (85, SkillLevel.ADVANCED),
        (84.9, SkillLevel.INTERMEDIATE),
        (70, SkillLevel.INTERMEDIATE),
        (69.9, SkillLevel.BEGINNER),
        (0, SkillLevel.BEGINNER),
    ])
    def test_thresholds(self, score, expected):
        assert classify_level(score) == expected


class TestIdentifyWeakTopics:
    def test_filters_and_keeps_insertion_order(self):
        assert identify_weak_topics({"Q1": 3, "Q2": 1, "Q3": 5}) == ["Q1", "Q3"]

    def test_at_most_three(self):
        errors = {"a": 3, "b": 4, "c": 5, "d": 6}
        assert identify_weak_topics(errors) == ["a", "b", "c"]

    def test_severity_ranking(self):
        errors = {"Q1": 3, "Q2": 1, "Q3": 5}
        assert identify_weak_topics(errors, ranking=WeakTopicRanking.SEVERITY) == ["Q3", "Q1"]

    def test_severity_ties_keep_insertion_order(self):
        errors = {"a": 3, "b": 7, "c": 3, "d": 4}
        ranked = identify_weak_topics(errors, ranking=WeakTopicRanking.SEVERITY)
        assert ranked == ["b", "d", "a"]

    def test_empty(self):
        assert identify_weak_topics({}) == []


class TestRecordAttempt:
    def test_first_correct_attempt(self, now):
        stats, record = record_attempt(LearnerStats(), "Q1", True, 30, DifficultyTier.EASY, now=now)
        assert stats.total_attempts == 1
        assert stats.correct_answers == 1
        assert stats.average_score == 100
        assert stats.mastery_percentage == 20
        assert stats.common_errors == {}
        assert stats.solved_exercises == ["Q1"]

    def test_returns_attempt_record(self, now):
        _, record = record_attempt(LearnerStats(), "Q1", False, 45.5, "moderate", now=now)
        assert record.exercise_id == "Q1"
        assert record.timestamp == now
        assert record.is_correct is False
        assert record.time_spent == 45.5
        assert record.difficulty == DifficultyTier.MODERATE
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.is_correct = True

    def test_wrong_answers_count_errors(self, now):
        stats = LearnerStats()
        for _ in range(2):
            stats, _ = record_attempt(stats, "Q7", False, 60, DifficultyTier.EASY, now=now)
        stats, _ = record_attempt(stats, "Q8", False, 60, DifficultyTier.EASY, now=now)
        assert stats.common_errors == {"Q7": 2, "Q8": 1}
        assert list(stats.common_errors) == ["Q7", "Q8"]
        assert stats.average_score == 0

    def test_does_not_mutate_input(self, now):
        original = LearnerStats(common_errors={"Q1": 1})
        record_attempt(original, "Q1", False, 10, DifficultyTier.EASY, now=now)
        assert original.total_attempts == 0
        assert original.common_errors == {"Q1": 1}

    def test_updates_speed_time_and_activity(self, now):
        stats, _ = record_attempt(LearnerStats(), "Q1", True, 25, DifficultyTier.EASY, now=now)
        assert stats.learning_speed == 1.3
        assert stats.total_time_spent == 25
        assert stats.last_active == now

        stats, _ = record_attempt(stats, "Q2", True, 130, DifficultyTier.EASY, now=now)
        assert stats.learning_speed == 0.6
        assert stats.total_time_spent == 155

    def test_uses_personal_time_estimate(self, now):
        base = LearnerStats(estimated_time_per_question=20)
        stats, _ = record_attempt(base, "Q1", True, 25, DifficultyTier.EASY, now=now)
        assert stats.learning_speed == 1.0

    def test_solved_exercises_are_unique(self, now):
        stats = LearnerStats()
        for _ in range(3):
            stats, _ = record_attempt(stats, "Q1", True, 10, DifficultyTier.EASY, now=now)
        assert stats.solved_exercises == ["Q1"]

    def test_mastery_tracks_history(self, now):
        stats = LearnerStats()
        for correct in (True, True, False, True, True, True):
            stats, _ = record_attempt(stats, "Q", correct, 30, DifficultyTier.STANDARD, now=now)
        assert stats.total_attempts == 6
        assert stats.correct_answers == 5
        assert stats.mastery_percentage == 83

    def test_rejects_negative_time(self, now):
        with pytest.raises(ValueError, match="negative"):
            record_attempt(LearnerStats(), "Q1", True, -1, DifficultyTier.EASY, now=now)

    @pytest.mark.parametrize("seconds", [float("nan"), float("inf")])
    def test_rejects_non_finite_time(self, now, seconds):
        with pytest.raises(ValueError, match="finite"):
            record_attempt(LearnerStats(), "Q1", True, seconds, DifficultyTier.EASY, now=now)

    def test_naive_now_gives_aware_timestamps(self):
        stats, record = record_attempt(
            LearnerStats(), "Q1", True, 10, DifficultyTier.EASY, now=datetime(2026, 3, 1, 12, 0),
        )
        assert record.timestamp.tzinfo == timezone.utc
        assert stats.last_active.tzinfo == timezone.utc
        assert compute_engagement(stats) >= 0

    def test_rejects_unknown_difficulty(self, now):
        with pytest.raises(ValueError):
            record_attempt(LearnerStats(), "Q1", True, 10, "impossible", now=now)
