"""Similarity Matcher: find the best-fitting criteria fact for a request.

Steps, first success wins:
  1. Exact      topic equal (case-insensitive) and fact procedure contains
                the requested procedure -> EXACT, similarity 1.0
  2. Topic      candidates from ``KnowledgeBase.by_topic``
  3. Ranked     0.7 * procedure_sim + 0.3 * variant_sim
                >= 0.8 SIMILAR with fact, [0.5, 0.8) SIMILAR closest-only,
                < 0.5 GENERAL closest-only
  4. Global     procedure similarity over every fact; best > 0.3 GENERAL,
                otherwise NONE

Equal scores prefer the most recently reviewed fact, then table order.
"""

from typing import List, Optional, Sequence, Tuple

from loguru import logger

from appropriateness.knowledge import KnowledgeBase
from appropriateness.models import CriteriaFact, MatchQuality, MatchResult
from appropriateness.similarity import SimilarityStrategy, string_similarity
from config.settings import settings


def _review_year(fact: CriteriaFact) -> str:
    return fact.last_reviewed or ""


def _best(scored: Sequence[Tuple[float, int, CriteriaFact]]) -> Tuple[float, CriteriaFact]:
    """Highest score; ties go to the latest review, then the earliest row."""
    score, _, fact = max(scored, key=lambda item: (item[0], _review_year(item[2]), -item[1]))
    return score, fact


class CriteriaMatcher:
    """Matches (topic, variant, procedure) requests against a knowledge base."""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        procedure_weight: float = settings.PROCEDURE_WEIGHT,
        variant_weight: float = settings.VARIANT_WEIGHT,
        similar_threshold: float = settings.SIMILAR_MATCH_THRESHOLD,
        closest_threshold: float = settings.CLOSEST_MATCH_THRESHOLD,
        fallback_threshold: float = settings.GLOBAL_FALLBACK_THRESHOLD,
        strategies: Optional[Sequence[SimilarityStrategy]] = None,
    ):
        self.kb = knowledge_base
        self.procedure_weight = procedure_weight
        self.variant_weight = variant_weight
        self.similar_threshold = similar_threshold
        self.closest_threshold = closest_threshold
        self.fallback_threshold = fallback_threshold
        self.strategies = strategies
        self._row = {fact.id: i for i, fact in enumerate(knowledge_base.all_facts())}

    def similarity(self, a: str, b: str) -> float:
        return string_similarity(a, b, self.strategies)

    def combined_score(self, fact: CriteriaFact, variant: str, procedure: str) -> float:
        # rounded so weighted sums land on the thresholds they hit exactly
        return round(
            self.procedure_weight * self.similarity(procedure, fact.procedure)
            + self.variant_weight * self.similarity(variant, fact.variant),
            6,
        )

    def _rank(
        self, facts: List[CriteriaFact], variant: str, procedure: str
    ) -> Tuple[float, CriteriaFact]:
        scored = [
            (self.combined_score(fact, variant, procedure), self._row.get(fact.id, 0), fact)
            for fact in facts
        ]
        return _best(scored)

    def match(self, topic: str, variant: str, procedure: str) -> MatchResult:
        topic_key = topic.strip().lower()
        procedure_key = procedure.strip().lower()

        # 1. Exact
        exact = [
            fact for fact in self.kb.all_facts()
            if topic_key and fact.topic.lower() == topic_key
            and procedure_key in fact.procedure.lower()
        ]
        if exact:
            _, fact = self._rank(exact, variant, procedure)
            logger.debug(f"Exact match {fact.id} for '{procedure}' under '{topic}'")
            return MatchResult(fact=fact, quality=MatchQuality.EXACT, similarity_score=1.0)

        # 2. Topic candidates
        candidates = self.kb.by_topic(topic)
        if candidates:
            # 3. Scored ranking
            score, fact = self._rank(candidates, variant, procedure)
            score = min(1.0, score)
            if score >= self.similar_threshold:
                logger.debug(f"Similar match {fact.id} (score {score:.3f})")
                return MatchResult(fact=fact, quality=MatchQuality.SIMILAR, similarity_score=score)
            if score >= self.closest_threshold:
                logger.info(f"Closest-only similar match {fact.id} (score {score:.3f})")
                return MatchResult(
                    quality=MatchQuality.SIMILAR, similarity_score=score, closest_fact=fact,
                )
            logger.info(f"General guidance from {fact.id} (score {score:.3f})")
            return MatchResult(
                quality=MatchQuality.GENERAL, similarity_score=score, closest_fact=fact,
            )

        # 4. Global fallback on procedure similarity alone
        scored = [
            (self.similarity(procedure, fact.procedure), self._row[fact.id], fact)
            for fact in self.kb.all_facts()
        ]
        if scored:
            score, fact = _best(scored)
            if score > self.fallback_threshold:
                logger.info(f"Global fallback to {fact.id} (score {score:.3f})")
                return MatchResult(
                    quality=MatchQuality.GENERAL, similarity_score=score, closest_fact=fact,
                )

        logger.warning(f"No criteria coverage for topic '{topic}', procedure '{procedure}'")
        return MatchResult(quality=MatchQuality.NONE, similarity_score=0.0)
