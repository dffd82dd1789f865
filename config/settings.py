"""Imaging Appropriateness Engine configuration.

Pydantic BaseSettings; every value can be overridden with an
``APPROPRIATENESS_``-prefixed environment variable or a ``.env`` file.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class AppropriatenessSettings(BaseSettings):
    """Configuration for the Imaging Appropriateness Engine."""

    # ── Paths ──
    PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = PROJECT_ROOT / "data"
    REFERENCE_DIR: Path = DATA_DIR / "reference"

    # ── Reference tables (versioned JSON, loaded once at startup) ──
    CRITERIA_FILE: Path = REFERENCE_DIR / "acr_criteria.json"
    SCORING_RULES_FILE: Path = REFERENCE_DIR / "scoring_rules.json"
    SAFETY_RULES_FILE: Path = REFERENCE_DIR / "safety_rules.json"

    # ── Similarity Matcher ──
    PROCEDURE_WEIGHT: float = 0.7
    VARIANT_WEIGHT: float = 0.3
    SIMILAR_MATCH_THRESHOLD: float = 0.8
    CLOSEST_MATCH_THRESHOLD: float = 0.5
    GLOBAL_FALLBACK_THRESHOLD: float = 0.3

    # ── Scoring ──
    # Share of the final score taken from the matched reference rating
    EVIDENCE_WEIGHT: float = 0.5

    # ── Alternatives ──
    MAX_ALTERNATIVES: Optional[int] = None  # None = every competing procedure

    # ── Safety ──
    RECENT_IMAGING_DAYS: int = 30

    # ── Evidence links ──
    ACR_SEARCH_URL: str = "https://acsearch.acr.org/list"
    ACR_CRITERIA_URL: str = (
        "https://www.acr.org/Clinical-Resources/ACR-Appropriateness-Criteria"
    )
    PUBMED_SEARCH_URL: str = "https://pubmed.ncbi.nlm.nih.gov/"

    # ── Host adapter ──
    CDS_SOURCE_LABEL: str = "Imaging Appropriateness Advisor"

    # ── Prometheus Metrics ──
    METRICS_ENABLED: bool = True

    # ── Logging ──
    LOG_LEVEL: str = "INFO"

    model_config = {"env_prefix": "APPROPRIATENESS_", "env_file": ".env"}


settings = AppropriatenessSettings()
