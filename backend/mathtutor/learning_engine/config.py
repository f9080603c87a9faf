"""
Learning Engine Configuration - Central Constants Registry.

Every constant used by the mastery and intervention heuristics is declared here
with its provenance. Runtime settings (see ``mathtutor.core.config``) read their
defaults from this registry, so deployments can override a value through the
environment while the documented default stays in one place.

Each constant includes:
- value: The actual constant value
- source: Where the value comes from
- notes: Rationale and context
- validated: Whether the value has been validated against data
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourcedValue:
    """
    A constant value with documented provenance.

    All learning heuristics must use this type to enforce documentation.
    """

    value: Any
    source: str
    notes: str = ""
    validated: bool = False

    def __post_init__(self):
        if not self.source or self.source.strip() == "":
            raise ValueError(f"SourcedValue must have non-empty source. Got: {self.source}")


# =============================================================================
# Mastery update heuristic
# =============================================================================

# The update rule is an exponential heuristic loosely inspired by BKT. None of
# these values come from a parameter fit, hence validated=False throughout.

MASTERY_DEFAULT = SourcedValue(
    value=0.3,
    source="Tutoring pilot heuristic (empirical)",
    notes="Starting mastery for a knowledge component the student has never answered. "
    "Also reported by read endpoints when no state row exists yet.",
    validated=False,
)

MASTERY_CORRECT_RATE = SourcedValue(
    value=0.15,
    source="Tutoring pilot heuristic (empirical)",
    notes="Fraction of the remaining gap to 1.0 closed by a correct answer: "
    "m' = m + rate * (1 - m).",
    validated=False,
)

MASTERY_INCORRECT_RATE = SourcedValue(
    value=0.10,
    source="Tutoring pilot heuristic (empirical)",
    notes="Proportional decay applied on an incorrect answer: m' = m - rate * m.",
    validated=False,
)

MASTERY_FLOOR = SourcedValue(
    value=0.1,
    source="Tutoring pilot heuristic (empirical)",
    notes="Lower bound so that mastery never collapses to zero after a run of mistakes.",
    validated=False,
)

MASTERY_CEILING = SourcedValue(
    value=1.0,
    source="Probability upper bound",
    notes="Fixed point of the correct-answer update.",
    validated=True,
)

MASTERY_THRESHOLD = SourcedValue(
    value=0.75,
    source="Tutoring pilot heuristic (empirical)",
    notes="A knowledge component counts as mastered (quiz complete) at or above this value.",
    validated=False,
)

# =============================================================================
# Recommendation bands (student-facing guidance)
# =============================================================================

RECOMMENDATION_BANDS = SourcedValue(
    value=[
        (0.3, {"difficulty": 1, "hints": "detailed", "message": "Start with the basics."}),
        (0.6, {"difficulty": 2, "hints": "moderate", "message": "Keep practicing."}),
        (0.8, {"difficulty": 3, "hints": "minimal", "message": "Almost there."}),
        (None, {"difficulty": 4, "hints": "none", "message": "Challenge yourself."}),
    ],
    source="Tutoring pilot heuristic (empirical)",
    notes="(upper bound exclusive, guidance). The last band has no upper bound.",
    validated=False,
)

# =============================================================================
# Intervention scoring (teacher dashboards)
# =============================================================================

INTERVENTION_MIN_RESPONSES = SourcedValue(
    value=5,
    source="Teacher dashboard heuristic (empirical)",
    notes="Students with fewer responses are not scored.",
    validated=False,
)

INTERVENTION_RECENT_WINDOW = SourcedValue(
    value=10,
    source="Teacher dashboard heuristic (empirical)",
    notes="Number of most recent responses used for the correct rate and trend.",
    validated=False,
)

INTERVENTION_WEIGHTS = SourcedValue(
    value={"mastery": 0.4, "recent_correct_rate": 0.4, "trend": 0.2},
    source="Teacher dashboard heuristic (empirical)",
    notes="Weights of the composite intervention score. They sum to 1.0.",
    validated=False,
)

INTERVENTION_PRIORITY_BANDS = SourcedValue(
    value=[(0.3, "High"), (0.5, "Medium"), (0.7, "Low")],
    source="Teacher dashboard heuristic (empirical)",
    notes="(upper bound exclusive, priority). Scores at or above 0.7 need no intervention.",
    validated=False,
)

INTERVENTION_WEAK_KC_THRESHOLD = SourcedValue(
    value=0.7,
    source="Teacher dashboard heuristic (empirical)",
    notes="Knowledge components below this mastery are recommended for review.",
    validated=False,
)

INTERVENTION_MAX_KCS = SourcedValue(
    value=3,
    source="Teacher dashboard heuristic (empirical)",
    notes="Maximum number of weak knowledge components listed per student.",
    validated=False,
)

INTERVENTION_ITEMS_PER_KC = SourcedValue(
    value=2,
    source="Teacher dashboard heuristic (empirical)",
    notes="Content items suggested per weak knowledge component, easiest first.",
    validated=False,
)

STRUGGLING_KC_LIMIT = SourcedValue(
    value=3,
    source="Student dashboard heuristic (empirical)",
    notes="Number of lowest-mastery knowledge components offered for practice.",
    validated=False,
)


def list_all_constants() -> dict[str, SourcedValue]:
    """Return every registered constant keyed by name."""
    return {
        name: value
        for name, value in globals().items()
        if isinstance(value, SourcedValue)
    }
