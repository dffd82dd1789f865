"""Alternative Ranker: competing procedures for the same topic, best first."""

from typing import List, Optional

from loguru import logger

from appropriateness.knowledge import KnowledgeBase
from appropriateness.models import Alternative, CriteriaFact, RadiationLevel
from appropriateness.procedures import compare_cost, compare_radiation


def _topic_facts(kb: KnowledgeBase, topic: str) -> List[CriteriaFact]:
    key = topic.strip().lower()
    same = [fact for fact in kb.all_facts() if key and fact.topic.lower() == key]
    return same or kb.by_topic(topic)


def rank_alternatives(
    kb: KnowledgeBase,
    topic: str,
    requested_procedure: str,
    proposed_level: Optional[RadiationLevel],
    matched_procedure: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Alternative]:
    """Other procedures under ``topic``, sorted by ACR rating descending.

    The requested and matched procedures are excluded, and a procedure rated
    under several variants is listed once at its best rating.
    """
    excluded = {requested_procedure.strip().lower()}
    if matched_procedure:
        excluded.add(matched_procedure.strip().lower())

    # sorted() is stable, so equal ratings keep table order
    ranked = sorted(_topic_facts(kb, topic), key=lambda fact: -fact.rating)

    alternatives: List[Alternative] = []
    seen = set()
    for fact in ranked:
        key = fact.procedure.strip().lower()
        if key in excluded or key in seen:
            continue
        seen.add(key)
        alternatives.append(
            Alternative(
                procedure=fact.procedure,
                rating=fact.rating,
                rationale=f"ACR rates this {fact.rating}/9 for {fact.variant}",
                cost_comparison=compare_cost(fact.procedure, requested_procedure),
                radiation_comparison=compare_radiation(fact.radiation_level, proposed_level),
            )
        )

    if limit is not None:
        alternatives = alternatives[:limit]
    logger.debug(f"Ranked {len(alternatives)} alternatives for '{topic}'")
    return alternatives
