"""Weighted Factor Scorer.

Starts from the rule table baseline (5.0) and adds the signed contribution of
every in-scope scoring rule that fires. The factor score is the raw sum
clamped to [1, 9].

When the matcher returned a fact, the final score is anchored to its ACR
rating:

    score = round_half_up(w * fact.rating + (1 - w) * factor_score)

Without a matched fact the factor score alone is rounded. With no match at
all the score is the insufficient-data sentinel 0.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from appropriateness.models import Factor, FactorDirection, MatchQuality, MatchResult
from appropriateness.rules import ScoringRuleTable, evaluate_rules, render
from config.settings import settings


MIN_SCORE = 1
MAX_SCORE = 9
INSUFFICIENT_DATA_SCORE = 0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = MIN_SCORE, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def direction_for(contribution: float) -> FactorDirection:
    if contribution > 0:
        return FactorDirection.SUPPORTS
    if contribution < 0:
        return FactorDirection.OPPOSES
    return FactorDirection.NEUTRAL


@dataclass
class ScoreBreakdown:
    score: int
    baseline: float
    raw_score: float
    factor_score: float
    factors: List[Factor] = field(default_factory=list)


class FactorScorer:
    """Applies the scoring rule table to one request's attribute view."""

    def __init__(self, rules: ScoringRuleTable, evidence_weight: float = settings.EVIDENCE_WEIGHT):
        if not 0.0 <= evidence_weight <= 1.0:
            raise ValueError(f"evidence_weight must be in [0, 1], got {evidence_weight}")
        self.rules = rules
        self.evidence_weight = evidence_weight

    def factors(self, topic: str, attributes: Dict[str, Any]) -> List[Factor]:
        in_scope = [rule for rule in self.rules.rules if rule.in_scope(topic)]
        return [
            Factor(
                rule_id=rule.id,
                name=rule.name,
                observed_value=render(rule.observed, attributes),
                contribution=rule.contribution,
                direction=direction_for(rule.contribution),
                rationale=rule.rationale,
                citation=rule.citation,
                evidence_type=rule.evidence_type,
            )
            for rule in evaluate_rules(in_scope, attributes)
        ]

    def score(self, topic: str, attributes: Dict[str, Any], match: MatchResult) -> ScoreBreakdown:
        factors = self.factors(topic, attributes)
        baseline = self.rules.baseline
        raw = baseline + sum(f.contribution for f in factors)
        factor_score = clamp(raw)

        if match.quality == MatchQuality.NONE:
            final = INSUFFICIENT_DATA_SCORE
        elif match.fact is not None:
            w = self.evidence_weight
            final = round_half_up(w * match.fact.rating + (1 - w) * factor_score)
        else:
            final = round_half_up(factor_score)

        if final != INSUFFICIENT_DATA_SCORE:
            final = int(clamp(final))
        return ScoreBreakdown(
            score=final,
            baseline=baseline,
            raw_score=raw,
            factor_score=factor_score,
            factors=factors,
        )
