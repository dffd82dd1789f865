"""Reference clinical scenarios with their expected evaluations.

Used by ``scripts/run_demo_scenarios.py`` and the engine regression tests.
"""

from typing import Dict, List

from pydantic import BaseModel

from appropriateness.models import (
    AppropriatenessCategory,
    ClinicalRequest,
    Medications,
    PregnancyStatus,
    PriorImaging,
    RedFlags,
    RenalFunction,
    ScenarioAttributes,
    Sex,
)


class DemoScenario(BaseModel):
    id: str
    title: str
    description: str
    request: ClinicalRequest
    expected_score: int
    expected_category: AppropriatenessCategory
    expected_contributions: List[float] = []

    model_config = {"frozen": True}


DEMO_SCENARIOS: Dict[str, DemoScenario] = {
    "lbp-inappropriate": DemoScenario(
        id="lbp-inappropriate",
        title="Low Back Pain - Usually Not Appropriate",
        description="45yo male, 3 days of back pain, no red flags, MRI ordered",
        request=ClinicalRequest(
            topic="Low Back Pain",
            variant="Uncomplicated low back pain, no red flags, < 6 weeks duration",
            procedure="MRI lumbar spine",
            scenario=ScenarioAttributes(
                age=45,
                sex=Sex.MALE,
                duration_weeks=3 / 7,
                duration_text="3 days",
                symptoms=["pain", "stiffness"],
                conservative_management_tried=False,
                body_region="lumbar spine",
            ),
        ),
        expected_score=2,
        expected_category=AppropriatenessCategory.USUALLY_NOT_APPROPRIATE,
        expected_contributions=[-2.0, -1.5, -1.0, 0.0],
    ),
    "lbp-red-flags": DemoScenario(
        id="lbp-red-flags",
        title="Low Back Pain - Usually Appropriate",
        description="62yo female, 2 weeks of back pain, leg weakness, history of breast cancer",
        request=ClinicalRequest(
            topic="Low Back Pain",
            variant="Low back pain with history of cancer",
            procedure="MRI lumbar spine with contrast",
            scenario=ScenarioAttributes(
                age=62,
                sex=Sex.FEMALE,
                duration_weeks=2,
                duration_text="2 weeks",
                symptoms=["pain", "weakness", "numbness"],
                red_flags=RedFlags(
                    cancer_history=True,
                    neurological_deficit=True,
                    progressive_symptoms=True,
                ),
                conservative_management_tried=False,
                body_region="lumbar spine",
            ),
        ),
        expected_score=9,
        expected_category=AppropriatenessCategory.USUALLY_APPROPRIATE,
        expected_contributions=[3.0, 2.5, 1.0, 0.5],
    ),
    "headache-inappropriate": DemoScenario(
        id="headache-inappropriate",
        title="Chronic Headache - Usually Not Appropriate",
        description="35yo female, 10-year history of stable migraines, prior normal CT",
        request=ClinicalRequest(
            topic="Headache",
            variant="Chronic headache, no red flags, stable pattern",
            procedure="CT head",
            scenario=ScenarioAttributes(
                age=35,
                sex=Sex.FEMALE,
                duration_weeks=520,
                duration_text="10 years",
                symptoms=["throbbing pain", "photophobia", "nausea"],
                conservative_management_tried=True,
                pregnancy_status=PregnancyStatus.NOT_PREGNANT,
                prior_imaging=[
                    PriorImaging(modality="CT", body_region="head", days_ago=1825, findings="normal"),
                ],
                body_region="head",
            ),
        ),
        expected_score=2,
        expected_category=AppropriatenessCategory.USUALLY_NOT_APPROPRIATE,
        expected_contributions=[-2.5, -1.0, -0.5],
    ),
    "headache-appropriate": DemoScenario(
        id="headache-appropriate",
        title="Thunderclap Headache - Usually Appropriate",
        description="52yo male, sudden severe headache 2 hours ago, neck stiffness",
        request=ClinicalRequest(
            topic="Headache",
            variant="Sudden severe headache (thunderclap), worst headache of life",
            procedure="CT head without contrast",
            scenario=ScenarioAttributes(
                age=52,
                sex=Sex.MALE,
                duration_weeks=2 / 168,
                duration_text="2 hours",
                symptoms=["worst headache of life", "sudden onset", "neck stiffness"],
                red_flags=RedFlags(sudden_onset=True),
                conservative_management_tried=False,
                body_region="head",
            ),
        ),
        expected_score=9,
        expected_category=AppropriatenessCategory.USUALLY_APPROPRIATE,
        expected_contributions=[4.0, 1.5, 1.0],
    ),
    "pe-pregnancy-ctpa": DemoScenario(
        id="pe-pregnancy-ctpa",
        title="Suspected PE in Pregnancy - Safety Review",
        description="29yo pregnant female, acute dyspnea, eGFR 45, on metformin, CTPA ordered",
        request=ClinicalRequest(
            topic="Suspected Pulmonary Embolism",
            variant="Pregnancy, suspected PE",
            procedure="CT pulmonary angiography (CTPA)",
            scenario=ScenarioAttributes(
                age=29,
                sex=Sex.FEMALE,
                duration_weeks=1 / 7,
                duration_text="1 day",
                symptoms=["shortness of breath", "pleuritic chest pain"],
                pregnancy_status=PregnancyStatus.PREGNANT,
                renal_function=RenalFunction(egfr=45),
                medications=Medications(on_metformin=True),
                body_region="chest",
            ),
        ),
        expected_score=6,
        expected_category=AppropriatenessCategory.MAY_BE_APPROPRIATE,
        expected_contributions=[-1.5],
    ),
}
