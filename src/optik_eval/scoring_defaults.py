# optik_eval/scoring_defaults.py
from dataclasses import dataclass

@dataclass(frozen=True)
class ScoringDefaults:
    # Single source of truth for grading constants
    points_per_question: float = 2.5     # no negative marking for wrong answers
    pass_mark: float = 70.0              # PASS iff score >= pass_mark
    similarity_threshold: float = 90.0   # percent; pairs at or above are flagged
    absent_marker: str = "G"             # value of the absence field meaning "did not sit"
    net_penalty: float = 0.25            # display-only net = correct - wrong * net_penalty

DEFAULTS = ScoringDefaults()

def apply_overrides(
    points_per_question: float | None = None,
    pass_mark: float | None = None,
    similarity_threshold: float | None = None,
    absent_marker: str | None = None,
    net_penalty: float | None = None,
) -> ScoringDefaults:
    # produce an overridden immutable config without mutating DEFAULTS
    return ScoringDefaults(
        points_per_question = DEFAULTS.points_per_question if points_per_question is None else points_per_question,
        pass_mark = DEFAULTS.pass_mark if pass_mark is None else pass_mark,
        similarity_threshold = DEFAULTS.similarity_threshold if similarity_threshold is None else similarity_threshold,
        absent_marker = DEFAULTS.absent_marker if absent_marker is None else absent_marker,
        net_penalty = DEFAULTS.net_penalty if net_penalty is None else net_penalty,
    )
