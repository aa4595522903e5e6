"""Diagnosis keyword risk assessment."""

from pydantic import BaseModel, ConfigDict, Field

from vitalsign.domain.models import MeasurementType, RiskLevel
from vitalsign.domain.reference import DIAGNOSIS_RISK_RULES, UnsupportedMeasurementError


class RiskAssessment(BaseModel):
    """Contextual risk a patient's diagnosis adds to one measurement type."""

    model_config = ConfigDict(frozen=True)

    risk_level: RiskLevel
    observation: str
    reasoning: str
    factors: list[str] = Field(default_factory=list)


def assess_risk(measurement_type: MeasurementType, diagnosis: str) -> RiskAssessment:
    """
    Match the diagnosis text against the keyword rules for this measurement type.

    Zero matched rules is low risk, one is medium, more than one is high.
    """
    try:
        rules = DIAGNOSIS_RISK_RULES[measurement_type]
    except KeyError:
        raise UnsupportedMeasurementError(
            f"No diagnosis rules configured for {measurement_type!r}"
        ) from None

    text = diagnosis.lower()
    factors = [
        rule.phrase for rule in rules if any(keyword in text for keyword in rule.keywords)
    ]

    if not factors:
        return RiskAssessment(
            risk_level="low",
            observation="Diagnosis has no direct high-risk link to this measurement",
            reasoning="Standard interpretation applies",
        )

    return RiskAssessment(
        risk_level="high" if len(factors) > 1 else "medium",
        observation="; ".join(factors),
        reasoning="The patient's background raises the clinical importance of this reading",
        factors=factors,
    )
