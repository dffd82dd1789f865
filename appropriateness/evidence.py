"""Evidence Linker: guideline and literature links backing an evaluation."""

from typing import List, Optional, Sequence
from urllib.parse import quote_plus

from appropriateness.models import CriteriaFact, EvidenceLink, EvidenceType, Factor
from config.settings import settings


def build_evidence_links(
    topic: str,
    fact: Optional[CriteriaFact],
    factors: Sequence[Factor],
) -> List[EvidenceLink]:
    """ACR topic search, the reference fact's source, then one link per citation."""
    links = []
    if topic:
        links.append(
            EvidenceLink(
                title=f"ACR Appropriateness Criteria: {topic}",
                url=f"{settings.ACR_SEARCH_URL}?q={quote_plus(topic)}",
                type=EvidenceType.GUIDELINE,
            )
        )
    if fact is not None:
        links.append(
            EvidenceLink(
                title=fact.source,
                url=settings.ACR_CRITERIA_URL,
                type=EvidenceType.GUIDELINE,
                citation=fact.source,
            )
        )

    seen = set()
    for factor in factors:
        if factor.citation in seen:
            continue
        seen.add(factor.citation)
        links.append(
            EvidenceLink(
                title=f"{factor.name}: {factor.citation}",
                url=f"{settings.PUBMED_SEARCH_URL}?term={quote_plus(factor.citation)}",
                type=factor.evidence_type,
                citation=factor.citation,
            )
        )
    return links
