"""Adaptive difficulty selection and mastery scoring for learners."""

__version__ = "0.1.0"
