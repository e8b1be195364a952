"""
Pure tournament core: values, rules and the six decision components.
"""
from trickfish.domain.enums import Species, PaymentStatus, StageStatus, RankingCategory
from trickfish.domain.models import Competitor, Edition, Stage, Registration, Capture, Ruler, RankingEntry
from trickfish.domain.rules import QUOTA_MAX, MIN_PEACOCK_BASS_SIZE, PENALTY_MIN, PENALTY_MAX, final_size
from trickfish.domain.eligibility import can_compete, can_register, can_participate
from trickfish.domain.captures import new_capture, validate_capture, annul_capture
from trickfish.domain.quota import is_countable, counts_toward_quota_for
from trickfish.domain.scoring import compute_score, apply_score, ScoreResult
from trickfish.domain.ranking import build_overall_ranking, build_species_ranking, build_stage_rankings
from trickfish.domain.rulers import generate_rulers, pair_rulers, return_ruler

__all__ = [
    "Species", "PaymentStatus", "StageStatus", "RankingCategory",
    "Competitor", "Edition", "Stage", "Registration", "Capture", "Ruler", "RankingEntry",
    "QUOTA_MAX", "MIN_PEACOCK_BASS_SIZE", "PENALTY_MIN", "PENALTY_MAX", "final_size",
    "can_compete", "can_register", "can_participate",
    "new_capture", "validate_capture", "annul_capture",
    "is_countable", "counts_toward_quota_for",
    "compute_score", "apply_score", "ScoreResult",
    "build_overall_ranking", "build_species_ranking", "build_stage_rankings",
    "generate_rulers", "pair_rulers", "return_ruler",
]
