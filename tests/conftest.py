"""Shared pytest fixtures for the Imaging Appropriateness Engine test suite.

Provides a small in-memory knowledge base, the reference rule tables, the
default reference engine and a request factory so tests stay independent
of one another.
"""

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so ``from appropriateness...``
# imports work regardless of how pytest is invoked.
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from appropriateness.demo_scenarios import DEMO_SCENARIOS  # noqa: E402
from appropriateness.engine import AppropriatenessEngine  # noqa: E402
from appropriateness.knowledge import KnowledgeBase  # noqa: E402
from appropriateness.models import (  # noqa: E402
    ClinicalRequest,
    CriteriaFact,
    RadiationLevel,
    ScenarioAttributes,
)
from appropriateness.rules import load_safety_rules, load_scoring_rules  # noqa: E402


# ===================================================================
# SMALL IN-MEMORY KNOWLEDGE BASE
# ===================================================================


def _fact(fact_id, topic, variant, procedure, rating, level=RadiationLevel.NONE, year="2021"):
    return CriteriaFact(
        id=fact_id,
        topic=topic,
        variant=variant,
        procedure=procedure,
        rating=rating,
        radiation_level=level,
        source=f"ACR AC: {topic} ({year})",
        last_reviewed=year,
    )


@pytest.fixture
def sample_facts():
    """Six facts across two topics, with one duplicated procedure name."""
    return [
        _fact("bp-xray", "Back Pain", "Acute, no red flags", "X-ray lumbar spine", 2, RadiationLevel.LOW),
        _fact("bp-mri", "Back Pain", "Acute, no red flags", "MRI lumbar spine without contrast", 3),
        _fact("bp-none", "Back Pain", "Acute, no red flags", "No imaging", 9),
        _fact("bp-neuro-mri", "Back Pain", "With neurological deficit", "MRI lumbar spine without contrast", 9),
        _fact("knee-xray", "Knee Injury", "Ottawa positive", "X-ray knee", 9, RadiationLevel.MINIMAL, "2019"),
        _fact("knee-mri", "Knee Injury", "Internal derangement", "MRI knee without contrast", 8, year="2019"),
    ]


@pytest.fixture
def small_kb(sample_facts):
    return KnowledgeBase.load(sample_facts, version="test-1")


# ===================================================================
# REFERENCE TABLES + ENGINE
# ===================================================================


@pytest.fixture(scope="session")
def scoring_rules():
    return load_scoring_rules()


@pytest.fixture(scope="session")
def safety_rules():
    return load_safety_rules()


@pytest.fixture(scope="session")
def reference_kb():
    return KnowledgeBase.from_file(PROJECT_ROOT / "data" / "reference" / "acr_criteria.json")


@pytest.fixture(scope="session")
def engine(reference_kb, scoring_rules, safety_rules):
    """Engine over the shipped reference tables."""
    return AppropriatenessEngine(reference_kb, scoring_rules, safety_rules)


@pytest.fixture
def demo_scenarios():
    return DEMO_SCENARIOS


# ===================================================================
# REQUEST FACTORY
# ===================================================================


@pytest.fixture
def make_request():
    """Build a ClinicalRequest; scenario fields are passed as keyword args."""

    def _make(topic="Low Back Pain", variant="", procedure="MRI lumbar spine", **scenario):
        scenario.setdefault("age", 40)
        return ClinicalRequest(
            topic=topic,
            variant=variant,
            procedure=procedure,
            scenario=ScenarioAttributes(**scenario),
        )

    return _make
