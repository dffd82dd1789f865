"""Data-driven predicate rules shared by the scorer and the safety deriver.

Both rule tables are versioned JSON files under ``data/reference/``. A rule
is a predicate plus an effect:

    {"id": ..., "when": [Condition, ...], "when_any": [Condition, ...], <effect>}

A rule fires when every ``when`` condition holds and, if ``when_any`` is not
empty, at least one of those holds. A condition on a missing attribute is
false (except ``is_missing``). Rules are evaluated exhaustively, in file order.

The attribute view that conditions and templates read is built by
``build_attributes`` from a ClinicalRequest plus the proposed-procedure
profile.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, TypeVar, Union

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from appropriateness.models import (
    ClinicalRequest,
    ContrastAllergyType,
    EvidenceType,
    WarningKind,
    WarningSeverity,
)
from appropriateness.procedures import ProcedureProfile
from config.settings import settings


Operator = Literal[
    "eq", "ne", "lt", "le", "gt", "ge", "in", "not_in", "contains_any", "is_set", "is_missing",
]


# ═══════════════════════════════════════════════════════════════════════
# RULE MODELS
# ═══════════════════════════════════════════════════════════════════════


def _norm(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class Condition(BaseModel):
    """``{attribute, op, value}`` test against the attribute view."""
    attribute: str = Field(..., min_length=1)
    op: Operator
    value: Any = None

    model_config = {"frozen": True}

    def holds(self, attributes: Dict[str, Any]) -> bool:
        actual = attributes.get(self.attribute)
        if self.op == "is_missing":
            return actual is None
        if actual is None:
            return False
        if self.op == "is_set":
            return not (actual is False or actual == "" or actual == [])

        op, expected = self.op, self.value
        if op == "eq":
            return _norm(actual) == _norm(expected)
        if op == "ne":
            return _norm(actual) != _norm(expected)
        if op in ("lt", "le", "gt", "ge"):
            if isinstance(actual, bool) or not isinstance(actual, (int, float)):
                return False
            return {
                "lt": actual < expected,
                "le": actual <= expected,
                "gt": actual > expected,
                "ge": actual >= expected,
            }[op]
        if op in ("in", "not_in"):
            options = [_norm(v) for v in (expected or [])]
            return (_norm(actual) in options) == (op == "in")
        if op == "contains_any":
            needles = [expected] if isinstance(expected, str) else list(expected or [])
            haystack = [actual] if isinstance(actual, str) else list(actual)
            return any(
                str(needle).lower() in str(item).lower()
                for needle in needles for item in haystack
            )
        raise ValueError(f"Unsupported operator: {op}")


class Rule(BaseModel):
    id: str = Field(..., min_length=1)
    when: List[Condition] = Field(default_factory=list)
    when_any: List[Condition] = Field(default_factory=list)

    model_config = {"frozen": True}

    def applies(self, attributes: Dict[str, Any]) -> bool:
        if not all(condition.holds(attributes) for condition in self.when):
            return False
        if self.when_any and not any(condition.holds(attributes) for condition in self.when_any):
            return False
        return True


class ScoringRule(Rule):
    """A weighted, cited factor."""
    topics: List[str] = Field(default_factory=list, description="Empty = every topic")
    name: str = Field(..., min_length=1)
    observed: str = ""
    contribution: float
    rationale: str = ""
    citation: str = Field(..., min_length=1)
    evidence_type: EvidenceType = EvidenceType.STUDY

    def in_scope(self, topic: str) -> bool:
        if not self.topics:
            return True
        key = topic.strip().lower()
        if not key:
            return False
        return any(t.lower() in key or key in t.lower() for t in self.topics)


class SafetyRule(Rule):
    kind: WarningKind
    severity: WarningSeverity
    message: str = Field(..., min_length=1)


def _reject_duplicate_ids(rules: Sequence[Rule]) -> None:
    seen = set()
    for rule in rules:
        if rule.id in seen:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        seen.add(rule.id)


class ScoringRuleTable(BaseModel):
    version: str = ""
    baseline: float = 5.0
    rules: List[ScoringRule] = Field(default_factory=list)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _unique_ids(self) -> "ScoringRuleTable":
        _reject_duplicate_ids(self.rules)
        return self


class SafetyRuleTable(BaseModel):
    version: str = ""
    rules: List[SafetyRule] = Field(default_factory=list)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _unique_ids(self) -> "SafetyRuleTable":
        _reject_duplicate_ids(self.rules)
        return self


# ═══════════════════════════════════════════════════════════════════════
# LOADING
# ═══════════════════════════════════════════════════════════════════════

def _load_table(path: Union[str, Path], model: type) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rule table not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        table = model.model_validate(json.load(f))
    logger.info(f"Loaded {len(table.rules)} rules (version {table.version}) from {path.name}")
    return table


def load_scoring_rules(path: Union[str, Path, None] = None) -> ScoringRuleTable:
    return _load_table(path or settings.SCORING_RULES_FILE, ScoringRuleTable)


def load_safety_rules(path: Union[str, Path, None] = None) -> SafetyRuleTable:
    return _load_table(path or settings.SAFETY_RULES_FILE, SafetyRuleTable)


# ═══════════════════════════════════════════════════════════════════════
# EVALUATION
# ═══════════════════════════════════════════════════════════════════════

RuleT = TypeVar("RuleT", bound=Rule)


def evaluate_rules(rules: Iterable[RuleT], attributes: Dict[str, Any]) -> List[RuleT]:
    """Every rule that fires, in table order. No rule suppresses another."""
    return [rule for rule in rules if rule.applies(attributes)]


class _TemplateView(dict):
    def __missing__(self, key: str) -> str:
        return ""


def _display(value: Any) -> Any:
    if value is None:
        return "unknown"
    if isinstance(value, float):
        return f"{value:g}"
    return value


def render(template: str, attributes: Dict[str, Any]) -> str:
    """Fill ``{name}`` placeholders from the attribute view; None renders as 'unknown'."""
    view = _TemplateView((key, _display(value)) for key, value in attributes.items())
    return template.format_map(view)


# ═══════════════════════════════════════════════════════════════════════
# ATTRIBUTE VIEW
# ═══════════════════════════════════════════════════════════════════════


def _regions_match(prior_region: str, request_region: str, procedure: str) -> bool:
    prior = prior_region.strip().lower()
    if not prior:
        return False
    region = request_region.strip().lower()
    if region and (prior in region or region in prior):
        return True
    return prior in procedure.lower()


def _format_duration(weeks: Optional[float], text: str) -> str:
    if text:
        return text
    if weeks is None:
        return "unknown"
    if weeks < 1:
        return f"{round(weeks * 7)} days"
    return f"{weeks:g} weeks"


def _allergy_label(allergy_type: Optional[ContrastAllergyType]) -> str:
    if allergy_type is None:
        return "unknown"
    if allergy_type == ContrastAllergyType.BOTH:
        return "iodinated and gadolinium"
    return allergy_type.value


def build_attributes(
    request: ClinicalRequest,
    profile: ProcedureProfile,
    recent_days: int = settings.RECENT_IMAGING_DAYS,
) -> Dict[str, Any]:
    """Flatten a request and the proposed-procedure profile into rule attributes."""
    scenario = request.scenario
    flags = scenario.red_flags
    present = flags.present()

    attrs: Dict[str, Any] = {
        "topic": request.topic,
        "variant": request.variant,
        "procedure": request.procedure,
        "age": scenario.age,
        "sex": scenario.sex.value,
        "duration_weeks": scenario.duration_weeks,
        "duration_text": _format_duration(scenario.duration_weeks, scenario.duration_text),
        "symptoms": [s.lower() for s in scenario.symptoms],
        "symptoms_text": ", ".join(scenario.symptoms) or "none reported",
        "any_red_flag": flags.any_present,
        "red_flags_present": ", ".join(name.replace("_", " ") for name in present) or "none",
        "conservative_management_tried": scenario.conservative_management_tried,
        "pregnancy_status": scenario.pregnancy_status.value if scenario.pregnancy_status else None,
        "contrast_allergy": scenario.contrast_allergy.has_allergy,
        "contrast_allergy_type": _allergy_label(scenario.contrast_allergy.allergy_type),
        "egfr": scenario.renal_function.egfr,
        "renal_impairment": scenario.renal_function.has_impairment,
        "on_metformin": scenario.medications.on_metformin,
        "on_anticoagulation": scenario.medications.on_anticoagulation,
        "body_region": scenario.body_region,
        "procedure_uses_radiation": profile.uses_radiation,
        "procedure_uses_contrast": profile.uses_contrast,
        "procedure_radiation_level": profile.radiation_level.value if profile.radiation_level else None,
    }
    for name, value in flags:
        attrs[f"red_flags.{name}"] = value

    priors = scenario.prior_imaging
    attrs["prior_imaging_count"] = len(priors)
    findings = " ".join(p.findings.lower() for p in priors)
    attrs["prior_imaging_normal"] = (
        bool(priors) and "normal" in findings and "abnormal" not in findings
    )

    same_region = [
        p for p in priors if _regions_match(p.body_region, scenario.body_region, request.procedure)
    ]
    if same_region:
        latest = min(same_region, key=lambda p: p.days_ago)
        attrs["recent_same_region_days"] = latest.days_ago
        where = f" of {latest.body_region}" if latest.body_region else ""
        attrs["recent_prior_imaging_summary"] = (
            f"{latest.modality}{where} performed {latest.days_ago} days ago"
        )
        attrs["has_recent_same_region_imaging"] = latest.days_ago < recent_days
    else:
        attrs["recent_same_region_days"] = None
        attrs["recent_prior_imaging_summary"] = ""
        attrs["has_recent_same_region_imaging"] = False
    return attrs
