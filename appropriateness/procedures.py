"""Procedure profiling for imaging requests.

Keyword maps that classify a free-text procedure name ("CT head without
contrast", "US abdomen (graded compression)") as radiation-based,
contrast-based, or neither, and place it on the cost and radiation ladders
used when comparing alternatives.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from appropriateness.models import Comparison, CriteriaFact, RadiationLevel


# ═══════════════════════════════════════════════════════════════════════
# KEYWORD MAPS
# ═══════════════════════════════════════════════════════════════════════

# Checked in order; the first hit decides the estimated radiation level.
RADIATION_PATTERNS: List[Tuple[RadiationLevel, str]] = [
    (RadiationLevel.HIGH, r"\bpet\b|\bnuclear\b|\bspect\b|\bscintigra"),
    (RadiationLevel.MEDIUM, r"\bct[a-z]*\b|\bcomputed tomography\b|\bfluoro"),
    (RadiationLevel.LOW, r"x-?ray|\bradiograph|\bmammo"),
    (
        RadiationLevel.NONE,
        r"\bmri?\b|\bmra\b|\bmagnetic resonance\b|\bultrasound\b|\bus\b|\bdoppler\b"
        r"|\bsonograph|\bno imaging\b|\bconservative\b|\bd-dimer\b|\bclinical management\b",
    ),
]

CONTRAST_PATTERN = re.compile(
    r"\bwith (?:and without )?(?:iv )?contrast\b"
    r"|\bcontrast[- ]enhanced\b|\bpost-contrast\b"
    r"|\bcta\b|\bctpa\b|\bangiograph"
    r"|\bgadolinium\b|\biodinated\b"
)

# Relative cost tiers; the highest matching tier wins.
COST_TIERS: List[Tuple[int, str]] = [
    (4, r"\bpet\b|\bnuclear\b|\bspect\b"),
    (3, r"\bmri?\b|\bmra\b|\bmagnetic resonance\b"),
    (2, r"\bct[a-z]*\b|\bcomputed tomography\b"),
    (1, r"x-?ray|\bradiograph|\bultrasound\b|\bus\b|\bdoppler\b|\bsonograph"),
    (0, r"\bno imaging\b|\bconservative\b|\bd-dimer\b|\bclinical management\b|\breferral\b"),
]
DEFAULT_COST_TIER = 2

_RADIATION_RES = [(level, re.compile(p)) for level, p in RADIATION_PATTERNS]
_COST_RES = [(tier, re.compile(p)) for tier, p in COST_TIERS]


# ═══════════════════════════════════════════════════════════════════════
# PROFILE
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProcedureProfile:
    procedure: str
    radiation_level: Optional[RadiationLevel]
    uses_contrast: bool
    cost_tier: int

    @property
    def uses_radiation(self) -> bool:
        return self.radiation_level is not None and self.radiation_level != RadiationLevel.NONE


def estimate_radiation_level(procedure: str) -> Optional[RadiationLevel]:
    """Guess the radiation level from the procedure name, None if unknown."""
    text = procedure.lower()
    for level, pattern in _RADIATION_RES:
        if pattern.search(text):
            return level
    return None


def uses_contrast(procedure: str) -> bool:
    """True for contrast-enhanced studies; "without contrast" alone does not count."""
    return bool(CONTRAST_PATTERN.search(procedure.lower()))


def cost_tier(procedure: str) -> int:
    text = procedure.lower()
    tiers = [tier for tier, pattern in _COST_RES if pattern.search(text)]
    return max(tiers) if tiers else DEFAULT_COST_TIER


def profile_procedure(procedure: str, fact: Optional[CriteriaFact] = None) -> ProcedureProfile:
    """Profile a requested procedure.

    The keyword estimate wins; the reference fact's radiation level is only
    used when the name alone says nothing about radiation.
    """
    level = estimate_radiation_level(procedure)
    if level is None and fact is not None:
        level = fact.radiation_level
    return ProcedureProfile(
        procedure=procedure,
        radiation_level=level,
        uses_contrast=uses_contrast(procedure),
        cost_tier=cost_tier(procedure),
    )


# ═══════════════════════════════════════════════════════════════════════
# COMPARISONS
# ═══════════════════════════════════════════════════════════════════════


def compare_radiation(
    alternative: RadiationLevel, proposed: Optional[RadiationLevel]
) -> Comparison:
    """Compare an alternative's radiation ordinal against the proposed study."""
    if proposed is None:
        proposed = RadiationLevel.MEDIUM
    if alternative.ordinal < proposed.ordinal:
        return Comparison.NONE if alternative == RadiationLevel.NONE else Comparison.LOWER
    if alternative.ordinal > proposed.ordinal:
        return Comparison.HIGHER
    return Comparison.SIMILAR


def compare_cost(alternative_procedure: str, proposed_procedure: str) -> Comparison:
    alt_tier = cost_tier(alternative_procedure)
    proposed_tier = cost_tier(proposed_procedure)
    if alt_tier < proposed_tier:
        return Comparison.LOWER
    if alt_tier > proposed_tier:
        return Comparison.HIGHER
    return Comparison.SIMILAR
