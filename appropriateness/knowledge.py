"""Imaging Appropriateness Engine: reference Knowledge Base.

An immutable, versioned table of ACR Appropriateness Criteria facts. Each
fact rates one (topic, variant, procedure) triple on the 1-9 scale and
records the procedure's relative radiation level (RRL).

The table is read once from ``data/reference/acr_criteria.json``. There is
no mutation API; reloading builds a new ``KnowledgeBase``.

Lookups mirror the way the criteria are browsed on acsearch.acr.org:
    - by_topic: case-insensitive, bidirectional substring containment
    - by_procedure: case-insensitive substring
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from loguru import logger

from appropriateness.models import CriteriaFact, RadiationLevel


# ═══════════════════════════════════════════════════════════════════════
# RELATIVE RADIATION LEVEL SYMBOLS
# ═══════════════════════════════════════════════════════════════════════

# O = None, ☢ = <0.1 mSv, ☢☢ = 0.1-1 mSv, ☢☢☢ = 1-10 mSv,
# ☢☢☢☢ = 10-30 mSv, ☢☢☢☢☢ = >30 mSv
RRL_SYMBOLS: Dict[str, RadiationLevel] = {
    "O": RadiationLevel.NONE,
    "☢": RadiationLevel.MINIMAL,
    "☢☢": RadiationLevel.LOW,
    "☢☢☢": RadiationLevel.MEDIUM,
    "☢☢☢☢": RadiationLevel.HIGH,
    "☢☢☢☢☢": RadiationLevel.VERY_HIGH,
}


def parse_radiation_level(value: Union[str, RadiationLevel, None]) -> RadiationLevel:
    """Accept an ordinal name ("medium") or an RRL symbol ("☢☢☢")."""
    if value is None or value == "":
        return RadiationLevel.NONE
    if isinstance(value, RadiationLevel):
        return value
    text = value.strip()
    if text in RRL_SYMBOLS:
        return RRL_SYMBOLS[text]
    return RadiationLevel(text.lower())


# ═══════════════════════════════════════════════════════════════════════
# KNOWLEDGE BASE
# ═══════════════════════════════════════════════════════════════════════


class KnowledgeBase:
    """Immutable collection of appropriateness facts."""

    def __init__(self, facts: Tuple[CriteriaFact, ...], version: str = ""):
        self._facts = facts
        self._by_id = {fact.id: fact for fact in facts}
        self.version = version

    @classmethod
    def load(cls, facts: Iterable[CriteriaFact], version: str = "") -> "KnowledgeBase":
        """Build a knowledge base; duplicate fact ids are rejected."""
        facts = tuple(facts)
        seen = set()
        for fact in facts:
            if fact.id in seen:
                raise ValueError(f"Duplicate criteria fact id: {fact.id}")
            seen.add(fact.id)
        return cls(facts, version)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]], version: str = "") -> "KnowledgeBase":
        facts = []
        for record in records:
            record = dict(record)
            if "rrl" in record:
                record["radiation_level"] = record.pop("rrl")
            record["radiation_level"] = parse_radiation_level(record.get("radiation_level"))
            facts.append(CriteriaFact(**record))
        return cls.load(facts, version)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KnowledgeBase":
        """Read the versioned JSON reference table."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Criteria table not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        kb = cls.from_records(payload.get("facts", []), str(payload.get("version", "")))
        logger.info(f"Loaded {len(kb)} criteria facts (version {kb.version}) from {path.name}")
        return kb

    # ── Lookups ──

    def all_facts(self) -> Tuple[CriteriaFact, ...]:
        return self._facts

    def get(self, fact_id: str) -> Optional[CriteriaFact]:
        return self._by_id.get(fact_id)

    def by_topic(self, topic: str) -> List[CriteriaFact]:
        """Facts whose topic contains, or is contained in, ``topic``."""
        needle = topic.strip().lower()
        if not needle:
            return []
        return [
            fact for fact in self._facts
            if needle in fact.topic.lower() or fact.topic.lower() in needle
        ]

    def by_procedure(self, procedure: str) -> List[CriteriaFact]:
        needle = procedure.strip().lower()
        if not needle:
            return []
        return [fact for fact in self._facts if needle in fact.procedure.lower()]

    def topics(self) -> List[str]:
        """Distinct topics in table order."""
        seen: List[str] = []
        for fact in self._facts:
            if fact.topic not in seen:
                seen.append(fact.topic)
        return seen

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self):
        return iter(self._facts)
