"""Host intake normalization.

Turns the loosely structured order context a host application sends
(chief complaint, free-text duration, red-flag checklist, proposed imaging)
into a validated ``ClinicalRequest``. Only keyword lookup and simple
pattern parsing happen here.
"""

import re
from typing import Any, Dict, List, Optional

from loguru import logger

from appropriateness.models import ClinicalRequest, RedFlags, ScenarioAttributes


# ═══════════════════════════════════════════════════════════════════════
# TOPIC KEYWORDS
# ═══════════════════════════════════════════════════════════════════════

# First matching keyword wins, so more specific phrases come first.
TOPIC_KEYWORDS: Dict[str, str] = {
    "back pain": "Low Back Pain",
    "lower back": "Low Back Pain",
    "lumbar": "Low Back Pain",
    "headache": "Headache",
    "head pain": "Headache",
    "migraine": "Headache",
    "chest pain": "Chest Pain",
    "pulmonary embolism": "Suspected Pulmonary Embolism",
    "shortness of breath": "Suspected Pulmonary Embolism",
    "dyspnea": "Suspected Pulmonary Embolism",
    "right lower quadrant": "Right Lower Quadrant Pain - Suspected Appendicitis",
    "appendicitis": "Right Lower Quadrant Pain - Suspected Appendicitis",
    "abdominal pain": "Abdominal Pain",
    "stomach pain": "Abdominal Pain",
    "knee pain": "Acute Knee Injury",
    "knee injury": "Acute Knee Injury",
    "knee trauma": "Acute Knee Injury",
}

# Free-text red-flag labels -> RedFlags field
RED_FLAG_KEYWORDS: Dict[str, str] = {
    "cancer": "cancer_history",
    "malignan": "cancer_history",
    "neuro": "neurological_deficit",
    "weakness": "neurological_deficit",
    "numbness": "neurological_deficit",
    "fever": "fever",
    "weight loss": "weight_loss",
    "trauma": "trauma",
    "immuno": "immunocompromised",
    "steroid": "immunocompromised",
    "iv drug": "iv_drug_use",
    "intravenous drug": "iv_drug_use",
    "osteopor": "osteoporosis",
    "progressive": "progressive_symptoms",
    "bladder": "bladder_bowel_dysfunction",
    "bowel": "bladder_bowel_dysfunction",
    "saddle": "bladder_bowel_dysfunction",
    "thunderclap": "sudden_onset",
    "sudden": "sudden_onset",
    "worst headache": "sudden_onset",
}


def identify_topic(chief_complaint: str, body_part: str = "") -> str:
    """Map a chief complaint / body part to a knowledge-base topic.

    Falls back to the complaint itself when no keyword matches.
    """
    complaint = chief_complaint.lower()
    region = body_part.lower()
    for keyword, topic in TOPIC_KEYWORDS.items():
        if keyword in complaint or keyword in region:
            return topic
    return chief_complaint.strip()


# ═══════════════════════════════════════════════════════════════════════
# DURATION
# ═══════════════════════════════════════════════════════════════════════

NUMBER_WORDS: Dict[str, float] = {
    "a couple of": 2, "couple of": 2, "a few": 3, "few": 3, "several": 3,
    "an": 1, "a": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "half a": 0.5,
}

UNIT_WEEKS: Dict[str, float] = {
    "hour": 1 / 168,
    "hr": 1 / 168,
    "day": 1 / 7,
    "week": 1.0,
    "wk": 1.0,
    "month": 52 / 12,
    "mo": 52 / 12,
    "year": 52.0,
    "yr": 52.0,
}

_NUMBER = r"\d+(?:\.\d+)?|" + "|".join(
    re.escape(w) for w in sorted(NUMBER_WORDS, key=len, reverse=True)
)
_DURATION_RE = re.compile(
    rf"\b({_NUMBER})[\s-]*(hours?|hrs?|days?|weeks?|wks?|months?|mos?|years?|yrs?)\b"
)


def parse_duration_weeks(text: Optional[str]) -> Optional[float]:
    """Convert the first "<number> <unit>" phrase to weeks; None if none found.

    >>> parse_duration_weeks("10 years")
    520.0
    >>> parse_duration_weeks("two weeks")
    2.0
    """
    if not text:
        return None
    match = _DURATION_RE.search(text.lower())
    if match is None:
        return None
    amount, unit = match.group(1), match.group(2)
    value = float(amount) if amount[0].isdigit() else NUMBER_WORDS[amount]
    return value * UNIT_WEEKS[unit.rstrip("s")]


# ═══════════════════════════════════════════════════════════════════════
# VARIANT + REQUEST
# ═══════════════════════════════════════════════════════════════════════


def derive_variant(scenario: ScenarioAttributes, clinical_history: str = "") -> str:
    """Describe the presentation in variant terms (acute/chronic, red flags, ...)."""
    parts: List[str] = []
    if scenario.duration_weeks is not None:
        parts.append("acute" if scenario.duration_weeks < 6 else "chronic")
    parts.append("with red flags" if scenario.red_flags.any_present else "no red flags")
    if scenario.age < 18:
        parts.append("pediatric")
    pregnant_text = any("pregnan" in s.lower() for s in scenario.symptoms) or (
        "pregnant" in clinical_history.lower()
    )
    if scenario.pregnancy_status == "pregnant" or pregnant_text:
        parts.append("pregnancy")
    return ", ".join(parts)


def parse_red_flags(raw: Any) -> RedFlags:
    """Accept a RedFlags-shaped dict or a ``[{"flag": ..., "present": ...}]`` checklist."""
    if isinstance(raw, RedFlags):
        return raw
    if isinstance(raw, dict):
        return RedFlags(**raw)
    present: Dict[str, bool] = {}
    for item in raw or []:
        if not item.get("present"):
            continue
        label = str(item.get("flag", "")).lower()
        matched = [name for keyword, name in RED_FLAG_KEYWORDS.items() if keyword in label]
        if not matched:
            logger.warning(f"Unrecognized red flag '{item.get('flag')}' ignored")
        for field_name in matched:
            present[field_name] = True
    return RedFlags(**present)


def build_request(context: Dict[str, Any]) -> ClinicalRequest:
    """Build a ClinicalRequest from a host order context.

    Recognized keys: age, sex, chief_complaint, clinical_history, symptoms,
    duration, red_flags, conservative_management_tried, pregnancy_status,
    contrast_allergy, renal_function, medications, prior_imaging and
    proposed_imaging ({modality, body_part, procedure}). Explicit ``topic``
    and ``variant`` keys override the derived ones.

    Raises:
        pydantic.ValidationError: if the context does not describe a valid request.
    """
    imaging = context.get("proposed_imaging", {})
    body_part = imaging.get("body_part", "")
    procedure = imaging.get("procedure") or f"{imaging.get('modality', '')} {body_part}".strip()
    complaint = context.get("chief_complaint", "")
    duration_text = context.get("duration", "")

    prior_imaging = [
        {
            "modality": p.get("modality", ""),
            "body_region": p.get("body_part", p.get("body_region", "")),
            "days_ago": p.get("days_ago", 0),
            "findings": p.get("findings", "") or "",
        }
        for p in context.get("prior_imaging", [])
    ]

    scenario = ScenarioAttributes(
        age=context.get("age"),
        sex=context.get("sex", "other"),
        duration_weeks=parse_duration_weeks(duration_text),
        duration_text=duration_text,
        symptoms=context.get("symptoms", []),
        red_flags=parse_red_flags(context.get("red_flags")),
        conservative_management_tried=context.get("conservative_management_tried"),
        pregnancy_status=context.get("pregnancy_status"),
        contrast_allergy=context.get("contrast_allergy") or {},
        renal_function=context.get("renal_function") or {},
        medications=context.get("medications") or {},
        prior_imaging=prior_imaging,
        body_region=body_part,
    )
    topic = context.get("topic") or identify_topic(complaint, body_part)
    variant = context.get("variant") or derive_variant(scenario, context.get("clinical_history", ""))
    return ClinicalRequest(topic=topic, variant=variant, procedure=procedure, scenario=scenario)
