"""Pydantic data models for the Imaging Appropriateness Engine.

Reference facts, clinical requests and every piece of an evaluation result.
Request and result models are frozen: the engine only reads requests and
hands back results that the caller owns.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


# ═══════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════


class RadiationLevel(str, Enum):
    """ACR relative radiation level (RRL), lowest to highest."""
    NONE = "none"
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"

    @property
    def ordinal(self) -> int:
        return list(RadiationLevel).index(self)


class MatchQuality(str, Enum):
    """How closely the knowledge base covers a request."""
    EXACT = "exact"
    SIMILAR = "similar"
    GENERAL = "general"
    NONE = "none"


class CoverageStatus(str, Enum):
    DIRECT_MATCH = "DIRECT_MATCH"
    SIMILAR_MATCH = "SIMILAR_MATCH"
    GENERAL_GUIDANCE = "GENERAL_GUIDANCE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class AppropriatenessCategory(str, Enum):
    """ACR three-way appropriateness category."""
    USUALLY_APPROPRIATE = "usually appropriate"
    MAY_BE_APPROPRIATE = "may be appropriate"
    USUALLY_NOT_APPROPRIATE = "usually not appropriate"


class StatusColor(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FactorDirection(str, Enum):
    SUPPORTS = "supports"
    OPPOSES = "opposes"
    NEUTRAL = "neutral"


class WarningSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class WarningKind(str, Enum):
    PRIOR_IMAGING = "prior-imaging"
    PREGNANCY = "pregnancy"
    CONTRAST_ALLERGY = "contrast-allergy"
    RENAL_FUNCTION = "renal-function"
    MEDICATION = "medication"
    CONTRAINDICATION = "contraindication"


class Comparison(str, Enum):
    """Relative cost / radiation of an alternative vs. the proposed study."""
    LOWER = "lower"
    SIMILAR = "similar"
    HIGHER = "higher"
    NONE = "none"


class EvidenceType(str, Enum):
    GUIDELINE = "guideline"
    STUDY = "study"
    RECOMMENDATION = "recommendation"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PregnancyStatus(str, Enum):
    NOT_PREGNANT = "not-pregnant"
    PREGNANT = "pregnant"
    UNKNOWN = "unknown"
    NOT_APPLICABLE = "not-applicable"


class ContrastAllergyType(str, Enum):
    IODINATED = "iodinated"
    GADOLINIUM = "gadolinium"
    BOTH = "both"
    UNKNOWN = "unknown"


# ═══════════════════════════════════════════════════════════════════════
# REFERENCE DATA
# ═══════════════════════════════════════════════════════════════════════


class CriteriaFact(BaseModel):
    """One appropriateness fact: (topic, variant, procedure) -> rating."""
    id: str = Field(..., min_length=1, max_length=100)
    topic: str = Field(..., min_length=1, max_length=200)
    variant: str = Field(..., max_length=500)
    procedure: str = Field(..., min_length=1, max_length=300)
    rating: int = Field(..., ge=1, le=9)
    radiation_level: RadiationLevel = RadiationLevel.NONE
    source: str = Field(..., min_length=1, max_length=300)
    last_reviewed: str = Field("", max_length=20, description="Review year, e.g. 2021")

    model_config = {"frozen": True}


# ═══════════════════════════════════════════════════════════════════════
# CLINICAL REQUEST
# ═══════════════════════════════════════════════════════════════════════


class RedFlags(BaseModel):
    """Warning signs that raise the pre-test probability of serious pathology."""
    cancer_history: bool = False
    neurological_deficit: bool = False
    fever: bool = False
    weight_loss: bool = False
    trauma: bool = False
    immunocompromised: bool = False
    iv_drug_use: bool = False
    osteoporosis: bool = False
    progressive_symptoms: bool = False
    bladder_bowel_dysfunction: bool = False
    sudden_onset: bool = False

    model_config = {"frozen": True}

    def present(self) -> List[str]:
        """Names of the red flags that are present, in declaration order."""
        return [name for name, value in self if value]

    @property
    def any_present(self) -> bool:
        return any(value for _, value in self)


class ContrastAllergy(BaseModel):
    has_allergy: bool = False
    allergy_type: Optional[ContrastAllergyType] = None

    model_config = {"frozen": True}


class RenalFunction(BaseModel):
    egfr: Optional[float] = Field(None, ge=0, description="mL/min/1.73m2")
    has_impairment: bool = False

    model_config = {"frozen": True}


class Medications(BaseModel):
    on_anticoagulation: bool = False
    on_metformin: bool = False

    model_config = {"frozen": True}


class PriorImaging(BaseModel):
    """A previously performed study."""
    modality: str = Field(..., min_length=1, max_length=100)
    body_region: str = Field("", max_length=100)
    days_ago: int = Field(..., ge=0)
    findings: str = Field("", max_length=500)

    model_config = {"frozen": True}


class ScenarioAttributes(BaseModel):
    """Structured patient presentation attached to a request."""
    age: int = Field(..., ge=0, le=120)
    sex: Sex = Sex.OTHER
    duration_weeks: Optional[float] = Field(None, ge=0)
    duration_text: str = Field("", max_length=200)
    symptoms: List[str] = Field(default_factory=list)
    red_flags: RedFlags = Field(default_factory=RedFlags)
    conservative_management_tried: Optional[bool] = None
    pregnancy_status: Optional[PregnancyStatus] = None
    contrast_allergy: ContrastAllergy = Field(default_factory=ContrastAllergy)
    renal_function: RenalFunction = Field(default_factory=RenalFunction)
    medications: Medications = Field(default_factory=Medications)
    prior_imaging: List[PriorImaging] = Field(default_factory=list)
    body_region: str = Field("", max_length=100, description="Region of the proposed study")

    model_config = {"frozen": True}


class ClinicalRequest(BaseModel):
    """Input to the engine: a normalized topic plus the requested procedure."""
    topic: str = Field("", max_length=200)
    variant: str = Field("", max_length=500)
    procedure: str = Field(..., min_length=1, max_length=300)
    scenario: ScenarioAttributes

    model_config = {"frozen": True}


# ═══════════════════════════════════════════════════════════════════════
# EVALUATION RESULT PARTS
# ═══════════════════════════════════════════════════════════════════════


class MatchResult(BaseModel):
    """Best knowledge-base fit for a request."""
    fact: Optional[CriteriaFact] = None
    quality: MatchQuality = MatchQuality.NONE
    similarity_score: float = Field(0.0, ge=0.0, le=1.0)
    closest_fact: Optional[CriteriaFact] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _fact_only_for_confident_tiers(self) -> "MatchResult":
        if self.fact is not None and self.quality not in (MatchQuality.EXACT, MatchQuality.SIMILAR):
            raise ValueError(f"fact cannot be set for match quality {self.quality.value}")
        return self

    @property
    def reference_fact(self) -> Optional[CriteriaFact]:
        """The matched fact, or the closest one when nothing matched directly."""
        return self.fact or self.closest_fact


class Factor(BaseModel):
    """One scoring rule's signed, cited contribution."""
    rule_id: str = ""
    name: str
    observed_value: str = ""
    contribution: float
    direction: FactorDirection
    rationale: str = ""
    citation: str = Field(..., min_length=1)
    evidence_type: EvidenceType = EvidenceType.STUDY

    model_config = {"frozen": True}


class Alternative(BaseModel):
    procedure: str
    rating: int = Field(..., ge=1, le=9)
    rationale: str = ""
    cost_comparison: Comparison = Comparison.SIMILAR
    radiation_comparison: Comparison = Comparison.SIMILAR

    model_config = {"frozen": True}


class SafetyWarning(BaseModel):
    rule_id: str = ""
    kind: WarningKind
    message: str
    severity: WarningSeverity

    model_config = {"frozen": True}


class EvidenceLink(BaseModel):
    title: str
    url: str
    type: EvidenceType = EvidenceType.GUIDELINE
    citation: str = ""

    model_config = {"frozen": True}


class EvaluationResult(BaseModel):
    """Output of one evaluation. ``score == 0`` means insufficient data."""
    score: int = Field(..., ge=0, le=9)
    category: AppropriatenessCategory
    status_color: StatusColor
    description: str = ""
    match_result: MatchResult
    coverage_status: CoverageStatus
    confidence: ConfidenceLevel
    factors: List[Factor] = Field(default_factory=list)
    alternatives: List[Alternative] = Field(default_factory=list)
    warnings: List[SafetyWarning] = Field(default_factory=list)
    evidence_links: List[EvidenceLink] = Field(default_factory=list)
    reasoning: List[str] = Field(default_factory=list)
    baseline_score: float = 5.0
    raw_score: float = 5.0
    reference_versions: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_insufficient_data(self) -> bool:
        return self.score == 0

    def warnings_by_severity(self) -> Dict[str, List[SafetyWarning]]:
        grouped: Dict[str, List[SafetyWarning]] = {}
        for warning in self.warnings:
            grouped.setdefault(warning.severity.value, []).append(warning)
        return grouped
