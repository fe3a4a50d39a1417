"""
Clinical constants and the shared severity model.

Three severity vocabularies coexist in the engine:
- CDSS alerts: info / warning / critical / contraindicated
- Drug interactions: minor / moderate / major / contraindicated
- Allergy cross-reactivity: mild / moderate / severe / life_threatening

Each one is mapped explicitly into the four canonical severity buckets below,
and every comparison or sort goes through the bucket rank. Raw severity
strings are never compared across vocabularies.
"""
from enum import Enum
from typing import Dict, Union


class AlertSeverity(str, Enum):
    """Severity of a CDSS alert."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    CONTRAINDICATED = "contraindicated"


class AlertCategory(str, Enum):
    """Category of a guideline rule and the alerts it produces."""
    MEDICATION = "medication"
    LAB = "lab"
    VITALS = "vitals"
    GUIDELINE = "guideline"
    PROTOCOL = "protocol"
    REMINDER = "reminder"


class Module(str, Enum):
    """Clinical module a rule belongs to."""
    DIALYSE = "dialyse"
    CARDIOLOGY = "cardiology"
    OPHTHALMOLOGY = "ophthalmology"
    GENERAL = "general"


class GuidelineSource(str, Enum):
    """Professional body a rule threshold comes from."""
    KDIGO = "KDIGO"
    ESC = "ESC"
    AHA = "AHA"
    AAO = "AAO"
    WHO = "WHO"
    FDA = "FDA"
    INTERNAL = "INTERNAL"


class InteractionSeverity(str, Enum):
    """Drug-drug and drug-disease interaction severity levels."""
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CONTRAINDICATED = "contraindicated"


class AllergySeverity(str, Enum):
    """Allergy cross-reactivity severity levels."""
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    LIFE_THREATENING = "life_threatening"


class SeverityBucket(str, Enum):
    """Canonical severity buckets shared by every vocabulary."""
    CONTRAINDICATED = "contraindicated"
    MAJOR = "major"
    MODERATE = "moderate"
    MINOR = "minor"


class RenalCategory(str, Enum):
    """eGFR band used to pick a renal dose."""
    NORMAL = "normal"
    EGFR_30_59 = "egfr_30_59"
    EGFR_15_29 = "egfr_15_29"
    EGFR_BELOW_15 = "egfr_below_15"
    DIALYSIS = "dialysis"


# Lower rank sorts first
BUCKET_RANK: Dict[SeverityBucket, int] = {
    SeverityBucket.CONTRAINDICATED: 0,
    SeverityBucket.MAJOR: 1,
    SeverityBucket.MODERATE: 2,
    SeverityBucket.MINOR: 3,
}

INTERACTION_SEVERITY_BUCKETS: Dict[InteractionSeverity, SeverityBucket] = {
    InteractionSeverity.CONTRAINDICATED: SeverityBucket.CONTRAINDICATED,
    InteractionSeverity.MAJOR: SeverityBucket.MAJOR,
    InteractionSeverity.MODERATE: SeverityBucket.MODERATE,
    InteractionSeverity.MINOR: SeverityBucket.MINOR,
}

ALLERGY_SEVERITY_BUCKETS: Dict[AllergySeverity, SeverityBucket] = {
    AllergySeverity.LIFE_THREATENING: SeverityBucket.CONTRAINDICATED,
    AllergySeverity.SEVERE: SeverityBucket.MAJOR,
    AllergySeverity.MODERATE: SeverityBucket.MODERATE,
    AllergySeverity.MILD: SeverityBucket.MINOR,
}

# contraindicated ranks above critical for CDSS alerts
ALERT_SEVERITY_BUCKETS: Dict[AlertSeverity, SeverityBucket] = {
    AlertSeverity.CONTRAINDICATED: SeverityBucket.CONTRAINDICATED,
    AlertSeverity.CRITICAL: SeverityBucket.MAJOR,
    AlertSeverity.WARNING: SeverityBucket.MODERATE,
    AlertSeverity.INFO: SeverityBucket.MINOR,
}

AnySeverity = Union[AlertSeverity, InteractionSeverity, AllergySeverity, SeverityBucket]


def to_bucket(severity: AnySeverity) -> SeverityBucket:
    """
    Map a severity from any vocabulary into its canonical bucket.

    Dispatch is on the enum type, so "moderate" coming from the allergy table
    and "moderate" coming from the interaction table are never confused.

    Raises:
        TypeError: if the value is not one of the severity enums
    """
    if isinstance(severity, SeverityBucket):
        return severity
    if isinstance(severity, AlertSeverity):
        return ALERT_SEVERITY_BUCKETS[severity]
    if isinstance(severity, InteractionSeverity):
        return INTERACTION_SEVERITY_BUCKETS[severity]
    if isinstance(severity, AllergySeverity):
        return ALLERGY_SEVERITY_BUCKETS[severity]
    raise TypeError(f"Unsupported severity value: {severity!r}")


def severity_rank(severity: AnySeverity) -> int:
    """Canonical sort rank of a severity (0 = most severe)."""
    return BUCKET_RANK[to_bucket(severity)]


# Clinical thresholds shared by rules and calculators
class Thresholds:
    """Guideline thresholds used by the rule registry."""
    KTV_TARGET = 1.2
    KTV_CRITICAL = 1.0
    PHOSPHORUS_HIGH = 5.5
    PHOSPHORUS_CRITICAL = 7.0
    PTH_HIGH = 600
    PTH_CRITICAL = 900
    HEMOGLOBIN_LOW = 10.0
    HEMOGLOBIN_CRITICAL = 8.0
    POTASSIUM_HIGH = 5.5
    POTASSIUM_CRITICAL = 6.5
    LVEF_REDUCED = 40
    LVEF_CRITICAL = 30
    SYSTOLIC_HIGH = 140
    DIASTOLIC_HIGH = 90
    SYSTOLIC_CRITICAL = 180
    TROPONIN_HIGH = 0.04
    LDL_TARGET_VERY_HIGH_RISK = 55
    LDL_TARGET = 70
    IOP_HIGH = 21
    IOP_CRITICAL = 30
    EGFR_SEVERE = 30
    EGFR_FAILURE = 15
    HBA1C_HIGH = 8.0
    HBA1C_CRITICAL = 10.0


# Error Codes
class ErrorCodes:
    """Standard error codes."""
    UNKNOWN_MODULE = "UNKNOWN_MODULE"
    DUPLICATE_RULE = "DUPLICATE_RULE"
    RULE_EVALUATION_ERROR = "RULE_EVALUATION_ERROR"
    INVALID_CLINICAL_INPUT = "INVALID_CLINICAL_INPUT"
