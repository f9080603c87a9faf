"""
Mastery Core Math - Pure functions for the exponential mastery heuristic.

The update is a loose, BKT-inspired heuristic rather than a fitted model:

- Correct answer:   m' = min(m + r_c * (1 - m), ceiling)
- Incorrect answer: m' = max(m - r_i * m, floor)

A correct answer closes a fixed fraction of the gap to the ceiling, so
increments shrink as mastery rises and the ceiling is a fixed point. An
incorrect answer decays mastery proportionally but never below the floor.
"""

from dataclasses import dataclass

from mathtutor.learning_engine import config as engine_config


@dataclass(frozen=True)
class MasteryParams:
    """Tuning constants of the update rule."""

    correct_rate: float = engine_config.MASTERY_CORRECT_RATE.value
    incorrect_rate: float = engine_config.MASTERY_INCORRECT_RATE.value
    floor: float = engine_config.MASTERY_FLOOR.value
    ceiling: float = engine_config.MASTERY_CEILING.value
    default: float = engine_config.MASTERY_DEFAULT.value
    threshold: float = engine_config.MASTERY_THRESHOLD.value

    def __post_init__(self):
        if not 0.0 < self.correct_rate < 1.0:
            raise ValueError(f"correct_rate must be in (0, 1), got {self.correct_rate}")
        if not 0.0 < self.incorrect_rate < 1.0:
            raise ValueError(f"incorrect_rate must be in (0, 1), got {self.incorrect_rate}")
        if not 0.0 <= self.floor < self.ceiling <= 1.0:
            raise ValueError(
                f"Expected 0 <= floor < ceiling <= 1, got floor={self.floor} ceiling={self.ceiling}"
            )
        if not self.floor <= self.default <= self.ceiling:
            raise ValueError(f"default must lie within [floor, ceiling], got {self.default}")

    @classmethod
    def from_settings(cls, settings) -> "MasteryParams":
        """Build parameters from application settings."""
        return cls(
            correct_rate=settings.MASTERY_CORRECT_RATE,
            incorrect_rate=settings.MASTERY_INCORRECT_RATE,
            floor=settings.MASTERY_FLOOR,
            ceiling=settings.MASTERY_CEILING,
            default=settings.MASTERY_DEFAULT,
            threshold=settings.MASTERY_THRESHOLD,
        )


DEFAULT_PARAMS = MasteryParams()


def clamp_mastery(m: float, params: MasteryParams = DEFAULT_PARAMS) -> float:
    """Clamp a mastery value to [floor, ceiling]."""
    return max(params.floor, min(params.ceiling, m))


def apply_correct(m: float, params: MasteryParams = DEFAULT_PARAMS) -> float:
    """
    Mastery after a correct answer.

    Formula:
        m' = min(m + r_c * (1 - m), ceiling)

    Example (r_c = 0.15): 0.5 -> 0.575
    """
    return min(m + params.correct_rate * (1.0 - m), params.ceiling)


def apply_incorrect(m: float, params: MasteryParams = DEFAULT_PARAMS) -> float:
    """
    Mastery after an incorrect answer.

    Formula:
        m' = max(m - r_i * m, floor)

    Example (r_i = 0.10): 0.575 -> 0.5175
    """
    return max(m - params.incorrect_rate * m, params.floor)


def update_mastery(m: float, is_correct: bool, params: MasteryParams = DEFAULT_PARAMS) -> float:
    """Apply one observation to the current mastery."""
    if is_correct:
        return apply_correct(m, params)
    return apply_incorrect(m, params)


def is_mastered(m: float, params: MasteryParams = DEFAULT_PARAMS) -> bool:
    return m >= params.threshold
