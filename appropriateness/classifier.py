"""Classifier: score -> ACR category, status color, confidence and coverage."""

from typing import Dict, Tuple

from appropriateness.models import (
    AppropriatenessCategory,
    ConfidenceLevel,
    CoverageStatus,
    MatchQuality,
    MatchResult,
    StatusColor,
)


CATEGORY_DESCRIPTIONS: Dict[AppropriatenessCategory, str] = {
    AppropriatenessCategory.USUALLY_APPROPRIATE: (
        "Usually Appropriate - The imaging is supported by evidence and likely "
        "to improve patient outcomes."
    ),
    AppropriatenessCategory.MAY_BE_APPROPRIATE: (
        "May Be Appropriate - Clinical judgment and patient-specific factors "
        "should guide the decision."
    ),
    AppropriatenessCategory.USUALLY_NOT_APPROPRIATE: (
        "Usually NOT Appropriate - The imaging is unlikely to improve patient outcomes."
    ),
}

INSUFFICIENT_DATA_DESCRIPTION = (
    "Insufficient data to provide appropriateness rating. No matching ACR "
    "criteria found for this clinical scenario."
)

CATEGORY_COLORS: Dict[AppropriatenessCategory, StatusColor] = {
    AppropriatenessCategory.USUALLY_APPROPRIATE: StatusColor.GREEN,
    AppropriatenessCategory.MAY_BE_APPROPRIATE: StatusColor.YELLOW,
    AppropriatenessCategory.USUALLY_NOT_APPROPRIATE: StatusColor.RED,
}


def category_for_score(score: int) -> AppropriatenessCategory:
    if score == 0:
        return AppropriatenessCategory.MAY_BE_APPROPRIATE
    if not 1 <= score <= 9:
        raise ValueError(f"Score must be 0 or within 1-9, got {score}")
    if score >= 7:
        return AppropriatenessCategory.USUALLY_APPROPRIATE
    if score >= 4:
        return AppropriatenessCategory.MAY_BE_APPROPRIATE
    return AppropriatenessCategory.USUALLY_NOT_APPROPRIATE


def classify_score(score: int) -> Tuple[AppropriatenessCategory, StatusColor, str]:
    """Map a final score to (category, status color, description).

    The insufficient-data sentinel 0 maps to "may be appropriate" / yellow.
    """
    category = category_for_score(score)
    description = INSUFFICIENT_DATA_DESCRIPTION if score == 0 else CATEGORY_DESCRIPTIONS[category]
    return category, CATEGORY_COLORS[category], description


def confidence_for_match(match: MatchResult) -> ConfidenceLevel:
    if match.quality == MatchQuality.EXACT:
        return ConfidenceLevel.HIGH
    if match.quality == MatchQuality.SIMILAR and match.fact is not None:
        return ConfidenceLevel.HIGH
    if match.quality in (MatchQuality.SIMILAR, MatchQuality.GENERAL):
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def coverage_for_match(match: MatchResult) -> CoverageStatus:
    if match.quality == MatchQuality.EXACT:
        return CoverageStatus.DIRECT_MATCH
    if match.quality == MatchQuality.SIMILAR and match.fact is not None:
        return CoverageStatus.SIMILAR_MATCH
    if match.quality in (MatchQuality.SIMILAR, MatchQuality.GENERAL):
        return CoverageStatus.GENERAL_GUIDANCE
    return CoverageStatus.INSUFFICIENT_DATA
