"""Configuration model for adaptivetutor."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from adaptivetutor.engine.adaptive import DEFAULT_TIME_PER_QUESTION, WeakTopicRanking

DEFAULT_DATA_DIR = Path.home() / ".adaptivetutor"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class WeakTopicConfig(BaseModel):
    threshold: int = Field(default=2, ge=0)
    limit: int = Field(default=3, ge=1)
    ranking: WeakTopicRanking = WeakTopicRanking.SEVERITY


class Settings(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    estimated_time_per_question: float = Field(default=DEFAULT_TIME_PER_QUESTION, gt=0)
    weak_topics: WeakTopicConfig = Field(default_factory=WeakTopicConfig)
    log_level: LogLevel = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def db_path(self) -> Path:
        return self.data_dir / "learners.db"

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None, data_dir: Path | None = None) -> "Settings":
        """Read ``config.yaml`` from the data directory, then apply env overrides.

        The data directory is ``data_dir``, else ``ADAPTIVETUTOR_DATA_DIR``,
        else ``~/.adaptivetutor``; ``save()`` writes back to the same file.
        """
        env_dir = os.environ.get("ADAPTIVETUTOR_DATA_DIR")
        base_dir = Path(data_dir or env_dir or DEFAULT_DATA_DIR)
        config_path = config_path or (base_dir / "config.yaml")

        data: dict = {}
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

        if data_dir is not None or env_dir:
            data["data_dir"] = str(base_dir)
        if os.environ.get("ADAPTIVETUTOR_LOG_LEVEL"):
            data["log_level"] = os.environ["ADAPTIVETUTOR_LOG_LEVEL"]
        return cls(**data)

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
