"""Evaluation Orchestrator for the Imaging Appropriateness Engine.

Runs one request through the pipeline:

    match -> score -> classify -> alternatives -> warnings -> evidence
          -> reasoning -> EvaluationResult

The engine keeps no per-request state and caches nothing between calls, so
identical requests give identical results. The default engine is built
once from the reference tables and shared by every caller of ``evaluate``.
"""

import time
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from appropriateness.alternatives import rank_alternatives
from appropriateness.classifier import (
    classify_score,
    confidence_for_match,
    coverage_for_match,
)
from appropriateness.evidence import build_evidence_links
from appropriateness.knowledge import KnowledgeBase
from appropriateness.matcher import CriteriaMatcher
from appropriateness.metrics import record_evaluation, record_warnings, update_reference_sizes
from appropriateness.models import (
    ClinicalRequest,
    CoverageStatus,
    EvaluationResult,
    MatchResult,
)
from appropriateness.procedures import profile_procedure
from appropriateness.rules import (
    SafetyRuleTable,
    ScoringRuleTable,
    build_attributes,
    load_safety_rules,
    load_scoring_rules,
)
from appropriateness.safety import SafetyWarningDeriver
from appropriateness.scoring import FactorScorer
from config.settings import settings


# ═══════════════════════════════════════════════════════════════════════
# REASONING
# ═══════════════════════════════════════════════════════════════════════


def build_reasoning(
    topic: str,
    attributes: Dict[str, Any],
    match: MatchResult,
    coverage: CoverageStatus,
    score: int,
    description: str,
) -> List[str]:
    """Plain-language explanation of an evaluation, one sentence per entry."""
    reasons = [
        f"Patient presents with {topic or 'the reported complaint'} for {attributes['duration_text']}."
    ]

    if attributes["any_red_flag"]:
        reasons.append(f"Red flags identified: {attributes['red_flags_present']}.")
    else:
        reasons.append("No red flags identified based on clinical presentation.")

    fact, closest = match.fact, match.closest_fact
    if coverage == CoverageStatus.DIRECT_MATCH and fact is not None:
        reasons.append(
            f'Direct match to ACR Appropriateness Criteria: "{fact.topic}" - "{fact.variant}".'
        )
        reasons.append(f"ACR rating for {fact.procedure}: {fact.rating}/9.")
    elif coverage == CoverageStatus.SIMILAR_MATCH and fact is not None:
        reasons.append(
            f'Similar case match to ACR Appropriateness Criteria: "{fact.topic}" - "{fact.variant}".'
        )
        reasons.append(f"ACR rating for {fact.procedure}: {fact.rating}/9.")
        reasons.append(
            "Note: This is a similar case extrapolation. Clinical judgment should be "
            "applied as the match is not exact."
        )
    elif coverage == CoverageStatus.GENERAL_GUIDANCE and closest is not None:
        reasons.append(
            f'General guidance based on similar ACR criteria: "{closest.topic}" - "{closest.variant}".'
        )
        reasons.append(f"Reference ACR rating for {closest.procedure}: {closest.rating}/9.")
        reasons.append(
            "Note: This is general guidance based on similar cases. The recommendation "
            "may not directly apply to this specific scenario."
        )
    else:
        reasons.append(
            "Insufficient data to provide appropriateness rating. No matching ACR "
            "criteria found for this clinical scenario."
        )
        reasons.append(
            "Recommendation: Consult ACR Appropriateness Criteria directly or seek "
            "expert radiology consultation for this specific case."
        )

    if attributes.get("has_recent_same_region_imaging"):
        reasons.append(
            f"Recent {attributes['recent_prior_imaging_summary']} may reduce need for "
            "additional imaging."
        )

    if score > 0:
        reasons.append(description)
    return reasons


# ═══════════════════════════════════════════════════════════════════════
# ENGINE
# ═══════════════════════════════════════════════════════════════════════


class AppropriatenessEngine:
    """Stateless evaluator over immutable reference tables."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        scoring_rules: ScoringRuleTable,
        safety_rules: SafetyRuleTable,
        matcher: Optional[CriteriaMatcher] = None,
        evidence_weight: float = settings.EVIDENCE_WEIGHT,
        max_alternatives: Optional[int] = settings.MAX_ALTERNATIVES,
        recent_days: int = settings.RECENT_IMAGING_DAYS,
    ):
        self.kb = knowledge_base
        self.scoring_rules = scoring_rules
        self.safety_rules = safety_rules
        self.matcher = matcher or CriteriaMatcher(knowledge_base)
        self.scorer = FactorScorer(scoring_rules, evidence_weight)
        self.safety = SafetyWarningDeriver(safety_rules)
        self.max_alternatives = max_alternatives
        self.recent_days = recent_days
        self.reference_versions = {
            "criteria": knowledge_base.version,
            "scoring_rules": scoring_rules.version,
            "safety_rules": safety_rules.version,
        }

    @classmethod
    def from_reference_files(
        cls,
        criteria_path: Union[str, Path, None] = None,
        scoring_rules_path: Union[str, Path, None] = None,
        safety_rules_path: Union[str, Path, None] = None,
    ) -> "AppropriatenessEngine":
        """Load and validate all three reference tables."""
        kb = KnowledgeBase.from_file(criteria_path or settings.CRITERIA_FILE)
        scoring = load_scoring_rules(scoring_rules_path)
        safety = load_safety_rules(safety_rules_path)
        update_reference_sizes(len(kb), len(scoring.rules), len(safety.rules))
        return cls(kb, scoring, safety)

    def evaluate(self, request: ClinicalRequest) -> EvaluationResult:
        start = time.perf_counter()

        # 1. Match
        match = self.matcher.match(request.topic, request.variant, request.procedure)
        reference = match.reference_fact
        topic = reference.topic if reference is not None else request.topic

        # 2. Score
        profile = profile_procedure(request.procedure, reference)
        attributes = build_attributes(request, profile, self.recent_days)
        breakdown = self.scorer.score(topic, attributes, match)

        # 3. Classify
        category, color, description = classify_score(breakdown.score)
        coverage = coverage_for_match(match)
        confidence = confidence_for_match(match)

        # 4. Alternatives
        alternatives = rank_alternatives(
            self.kb,
            topic,
            request.procedure,
            profile.radiation_level,
            matched_procedure=match.fact.procedure if match.fact is not None else None,
            limit=self.max_alternatives,
        )

        # 5. Warnings
        warnings = self.safety.derive(attributes)

        # 6. Evidence
        evidence_links = build_evidence_links(topic, reference, breakdown.factors)

        # 7. Reasoning
        reasoning = build_reasoning(
            request.topic or topic, attributes, match, coverage, breakdown.score, description,
        )

        result = EvaluationResult(
            score=breakdown.score,
            category=category,
            status_color=color,
            description=description,
            match_result=match,
            coverage_status=coverage,
            confidence=confidence,
            factors=breakdown.factors,
            alternatives=alternatives,
            warnings=warnings,
            evidence_links=evidence_links,
            reasoning=reasoning,
            baseline_score=breakdown.baseline,
            raw_score=breakdown.raw_score,
            reference_versions=self.reference_versions,
        )

        latency = time.perf_counter() - start
        record_evaluation(category.value, coverage.value, latency)
        record_warnings(w.severity.value for w in warnings)
        logger.debug(
            f"Evaluated '{request.procedure}' for '{topic}': score={result.score} "
            f"({category.value}), coverage={coverage.value}, "
            f"{len(breakdown.factors)} factors, {len(warnings)} warnings "
            f"[{latency * 1000:.2f}ms]"
        )
        return result


# ═══════════════════════════════════════════════════════════════════════
# DEFAULT ENGINE
# ═══════════════════════════════════════════════════════════════════════


@lru_cache(maxsize=1)
def get_default_engine() -> AppropriatenessEngine:
    return AppropriatenessEngine.from_reference_files()


def reload_default_engine() -> AppropriatenessEngine:
    """Rebuild the shared engine from the reference files on disk."""
    get_default_engine.cache_clear()
    engine = get_default_engine()
    logger.info(f"Reloaded reference tables: {engine.reference_versions}")
    return engine


def evaluate(request: ClinicalRequest) -> EvaluationResult:
    """Evaluate a request with the shared default engine."""
    return get_default_engine().evaluate(request)
