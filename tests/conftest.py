"""Shared fixtures for adaptivetutor tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import yaml

from adaptivetutor.config.settings import Settings
from adaptivetutor.engine.session import TutorSession
from adaptivetutor.state.learners import LearnerStore


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def store(tmp_path):
    return LearnerStore(db_path=tmp_path / "data" / "test_learners.db")


@pytest.fixture
def session(settings, store):
    return TutorSession(settings=settings, store=store)


@pytest.fixture
def sample_lesson_dir(tmp_path):
    """Create a minimal lesson directory for testing."""
    lesson_dir = tmp_path / "lessons" / "01_test_lesson"
    lesson_dir.mkdir(parents=True)

    lesson_data = {
        "lesson": {
            "title": "Test Lesson",
            "summary": "A test lesson",
            "objectives": ["Add numbers", "Compare numbers"],
            "duration_minutes": 10,
            "video_url": "https://example.org/test.mp4",
        },
        "exercises": [
            {"id": "essay-1", "type": "essay", "prompt": "Explain addition."},
            {
                "id": "mc-1",
                "type": "multiple_choice",
                "prompt": "What is 2+2?",
                "choices": "3;4;5;6",
                "answer": 4,
                "topic": "addition",
            },
            {"id": "tf-1", "type": "true_false", "prompt": "1 < 2", "answer": "true"},
            {"id": "fb-1", "type": "fill_blank", "prompt": "3 + ? = 5", "answer": "2"},
            {"id": "tf-2", "type": "true_false", "prompt": "2 > 3", "answer": "false"},
        ],
    }
    with open(lesson_dir / "lesson.yaml", "w") as f:
        yaml.dump(lesson_data, f)

    return lesson_dir
