"""Tests for the Alternative Ranker and the Evidence Linker."""

from appropriateness.alternatives import rank_alternatives
from appropriateness.evidence import build_evidence_links
from appropriateness.models import (
    Comparison,
    EvidenceType,
    Factor,
    FactorDirection,
    RadiationLevel,
)


# ===================================================================
# ALTERNATIVES
# ===================================================================


class TestRankAlternatives:

    def test_sorted_by_rating_excluding_requested(self, small_kb):
        alts = rank_alternatives(small_kb, "Back Pain", "X-ray lumbar spine", RadiationLevel.LOW)
        assert [a.procedure for a in alts] == ["No imaging", "MRI lumbar spine without contrast"]
        ratings = [a.rating for a in alts]
        assert ratings == sorted(ratings, reverse=True)

    def test_duplicate_procedure_listed_once_at_best_rating(self, small_kb):
        alts = rank_alternatives(small_kb, "Back Pain", "X-ray lumbar spine", RadiationLevel.LOW)
        mri = [a for a in alts if a.procedure.startswith("MRI")]
        assert len(mri) == 1
        assert mri[0].rating == 9
        assert mri[0].rationale == "ACR rates this 9/9 for With neurological deficit"

    def test_matched_procedure_excluded(self, small_kb):
        alts = rank_alternatives(
            small_kb, "Back Pain", "MRI lumbar spine", RadiationLevel.NONE,
            matched_procedure="MRI lumbar spine without contrast",
        )
        assert [a.procedure for a in alts] == ["No imaging", "X-ray lumbar spine"]

    def test_requested_match_is_case_insensitive(self, small_kb):
        alts = rank_alternatives(small_kb, "Back Pain", "x-ray LUMBAR spine", RadiationLevel.LOW)
        assert "X-ray lumbar spine" not in [a.procedure for a in alts]

    def test_stable_for_equal_ratings(self, reference_kb):
        alts = rank_alternatives(reference_kb, "Low Back Pain", "PET", RadiationLevel.HIGH)
        nines = [a.procedure for a in alts if a.rating == 9]
        assert nines == [
            "No imaging (conservative management)",
            "MRI lumbar spine without contrast",
            "MRI lumbar spine with and without contrast",
        ]

    def test_radiation_and_cost_comparisons(self, small_kb):
        alts = {a.procedure: a for a in rank_alternatives(
            small_kb, "Knee Injury", "CT knee", RadiationLevel.MEDIUM,
        )}
        assert alts["X-ray knee"].radiation_comparison == Comparison.LOWER
        assert alts["X-ray knee"].cost_comparison == Comparison.LOWER
        assert alts["MRI knee without contrast"].radiation_comparison == Comparison.NONE
        assert alts["MRI knee without contrast"].cost_comparison == Comparison.HIGHER

    def test_limit(self, reference_kb):
        alts = rank_alternatives(reference_kb, "Low Back Pain", "PET", RadiationLevel.HIGH, limit=2)
        assert len(alts) == 2

    def test_unknown_topic(self, small_kb):
        assert rank_alternatives(small_kb, "Shoulder", "MRI", RadiationLevel.NONE) == []

    def test_partial_topic_falls_back_to_containment(self, small_kb):
        alts = rank_alternatives(small_kb, "Knee", "CT knee", RadiationLevel.MEDIUM)
        assert len(alts) == 2


# ===================================================================
# EVIDENCE LINKS
# ===================================================================


def _factor(name, citation, evidence_type=EvidenceType.STUDY):
    return Factor(
        name=name, contribution=1.0, direction=FactorDirection.SUPPORTS,
        citation=citation, evidence_type=evidence_type,
    )


class TestEvidenceLinks:

    def test_topic_source_and_citations(self, sample_facts):
        links = build_evidence_links(
            "Back Pain",
            sample_facts[0],
            [
                _factor("Age", "Jarvik JG, Deyo RA. Ann Intern Med. 2002"),
                _factor("Conservative", "Qaseem A, et al. 2017", EvidenceType.GUIDELINE),
            ],
        )
        assert len(links) == 4
        assert links[0].url.startswith("https://acsearch.acr.org/list?q=Back+Pain")
        assert links[0].type == EvidenceType.GUIDELINE
        assert links[1].title == sample_facts[0].source
        assert links[2].url.startswith("https://pubmed.ncbi.nlm.nih.gov/?term=")
        assert links[2].type == EvidenceType.STUDY
        assert links[3].type == EvidenceType.GUIDELINE

    def test_citations_deduplicated(self):
        links = build_evidence_links(
            "Headache", None, [_factor("A", "Same 2007"), _factor("B", "Same 2007")],
        )
        assert len(links) == 2
        assert links[1].citation == "Same 2007"

    def test_no_topic_no_fact(self):
        assert build_evidence_links("", None, []) == []
