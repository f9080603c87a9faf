"""Mastery tracking.

- ``core``: pure update rule, no I/O
- ``service``: persistence of knowledge states and response submission
"""

from mathtutor.learning_engine.mastery.core import (
    DEFAULT_PARAMS,
    MasteryParams,
    apply_correct,
    apply_incorrect,
    clamp_mastery,
    is_mastered,
    update_mastery,
)

__all__ = [
    "DEFAULT_PARAMS",
    "MasteryParams",
    "apply_correct",
    "apply_incorrect",
    "clamp_mastery",
    "is_mastered",
    "update_mastery",
]
