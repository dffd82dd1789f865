"""CDS Hooks adapter.

Accepts an ``order-select`` / ``order-sign`` hook call, evaluates the first
draft imaging order and answers with CDS Hooks cards:

  - one appropriateness card, indicator taken from the status color
  - one card per warning- or critical-severity safety warning
  - one alternatives card with order suggestions

Patient demographics are read from the draft order; fetching them from the
FHIR server is left to the host.
"""

from typing import Any, Dict, List, Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field

from appropriateness.engine import AppropriatenessEngine, get_default_engine
from appropriateness.intake import build_request
from appropriateness.models import (
    ClinicalRequest,
    EvaluationResult,
    StatusColor,
    WarningSeverity,
)
from config.settings import settings


Indicator = Literal["info", "warning", "critical"]

STATUS_INDICATORS: Dict[StatusColor, str] = {
    StatusColor.GREEN: "info",
    StatusColor.YELLOW: "warning",
    StatusColor.RED: "critical",
}


# ═══════════════════════════════════════════════════════════════════════
# MODELS
# ═══════════════════════════════════════════════════════════════════════


class CDSHooksContext(BaseModel):
    user_id: str = Field("", alias="userId", description="FHIR Practitioner reference")
    patient_id: str = Field("", alias="patientId", description="FHIR Patient reference")
    selections: List[str] = Field(default_factory=list)
    draft_orders: List[Dict[str, Any]] = Field(default_factory=list, alias="draftOrders")

    model_config = {"populate_by_name": True}


class CDSHooksRequest(BaseModel):
    hook: str = "order-select"
    hook_instance: str = Field("", alias="hookInstance")
    context: CDSHooksContext

    model_config = {"populate_by_name": True}


class CDSHooksSource(BaseModel):
    label: str


class CDSHooksSuggestion(BaseModel):
    label: str
    uuid: str


class CDSHooksCard(BaseModel):
    summary: str = Field(..., max_length=140)
    indicator: Indicator
    source: CDSHooksSource
    detail: Optional[str] = None
    suggestions: List[CDSHooksSuggestion] = Field(default_factory=list)


class CDSHooksResponse(BaseModel):
    cards: List[CDSHooksCard] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════
# CONVERSION
# ═══════════════════════════════════════════════════════════════════════


def extract_request_from_cds_hooks(request: CDSHooksRequest) -> ClinicalRequest:
    """Build a ClinicalRequest from the first draft order of a hook call.

    Raises:
        ValueError: if the hook context carries no draft orders.
    """
    if not request.context.draft_orders:
        raise ValueError(f"Hook {request.hook_instance or request.hook} has no draft orders")
    draft = request.context.draft_orders[0]
    indication = draft.get("indication") or draft.get("reason") or ""
    context = {
        "age": draft.get("patientAge", 50),
        "sex": draft.get("patientSex", "other"),
        "chief_complaint": indication,
        "clinical_history": draft.get("clinicalHistory", ""),
        "symptoms": draft.get("symptoms", []),
        "duration": draft.get("duration", ""),
        "red_flags": draft.get("redFlags", []),
        "pregnancy_status": draft.get("pregnancyStatus"),
        "contrast_allergy": draft.get("contrastAllergy"),
        "renal_function": draft.get("renalFunction"),
        "medications": draft.get("medications"),
        "prior_imaging": [
            {
                "modality": p.get("modality", ""),
                "body_part": p.get("bodyPart", ""),
                "days_ago": p.get("daysAgo", 0),
                "findings": p.get("findings", ""),
            }
            for p in draft.get("priorImaging", [])
        ],
        "proposed_imaging": {
            "modality": draft.get("modality", "CT"),
            "body_part": draft.get("bodyPart", ""),
            "procedure": draft.get("procedure"),
        },
    }
    patient = request.context.patient_id.replace("Patient/", "")
    logger.debug(f"CDS Hooks {request.hook} for patient {patient or 'unknown'}")
    return build_request(context)


def _slug(text: str) -> str:
    return "-".join(text.lower().split())


def result_to_cds_cards(
    result: EvaluationResult, source_label: str = settings.CDS_SOURCE_LABEL
) -> List[CDSHooksCard]:
    source = CDSHooksSource(label=source_label)
    if result.is_insufficient_data:
        summary = "Appropriateness: insufficient data"
    else:
        summary = f"Appropriateness Score: {result.score}/9 ({result.category.value})"
    cards = [
        CDSHooksCard(
            summary=summary,
            indicator=STATUS_INDICATORS[result.status_color],
            source=source,
            detail="\n\n".join(result.reasoning),
        )
    ]

    for warning in result.warnings:
        if warning.severity == WarningSeverity.INFO:
            continue
        cards.append(
            CDSHooksCard(
                summary=warning.message[:140],
                indicator=warning.severity.value,
                source=source,
                detail=warning.message,
            )
        )

    if result.alternatives:
        cards.append(
            CDSHooksCard(
                summary="Alternative imaging options available",
                indicator="info",
                source=source,
                detail="\n".join(
                    f"{a.procedure} (Rating: {a.rating}/9) - {a.rationale}"
                    for a in result.alternatives
                ),
                suggestions=[
                    CDSHooksSuggestion(label=a.procedure, uuid=f"alt-{_slug(a.procedure)}")
                    for a in result.alternatives
                ],
            )
        )
    return cards


def evaluate_cds_hooks(
    request: CDSHooksRequest, engine: Optional[AppropriatenessEngine] = None
) -> CDSHooksResponse:
    """Hook entry point: extract, evaluate, convert to cards."""
    clinical_request = extract_request_from_cds_hooks(request)
    result = (engine or get_default_engine()).evaluate(clinical_request)
    return CDSHooksResponse(cards=result_to_cds_cards(result))
