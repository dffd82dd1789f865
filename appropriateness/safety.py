"""Safety Warning Deriver.

Evaluates the safety rule table (pregnancy, contrast allergy, renal function,
medications, recent prior imaging) against the attribute view. Every rule
that fires yields exactly one warning; rules never suppress each other.
"""

from typing import Any, Dict, List

from loguru import logger

from appropriateness.models import SafetyWarning
from appropriateness.rules import SafetyRuleTable, evaluate_rules, render


class SafetyWarningDeriver:

    def __init__(self, rules: SafetyRuleTable):
        self.rules = rules

    def derive(self, attributes: Dict[str, Any]) -> List[SafetyWarning]:
        warnings = [
            SafetyWarning(
                rule_id=rule.id,
                kind=rule.kind,
                message=render(rule.message, attributes),
                severity=rule.severity,
            )
            for rule in evaluate_rules(self.rules.rules, attributes)
        ]
        if warnings:
            logger.debug(f"Safety rules fired: {[w.rule_id for w in warnings]}")
        return warnings
