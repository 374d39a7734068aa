"""
Role and workflow enums for the clinical workflow demo.

Invariants:
- Every enum is str-valued so records serialize as plain JSON strings
- Enum values match the keys persisted in the state blob
- Role tags are labels, not a security boundary

Design:
- Use these everywhere - no hardcoded strings
- Comparisons against raw strings work because each enum subclasses str
"""

from enum import Enum


class Role(str, Enum):
    """
    Client-selected role tag.

    RECEPTIONIST:
        Front-desk intake. Creates patients, collects consent, processes payment.

    DOCTOR:
        Runs FNON / PRS / brain mapping assessments and authors treatment plans.

    CLINICAL_ASSISTANT:
        Performs PRS assessments and logs treatment sessions.

    PATIENT:
        Self-registration, payment, progress tracking.
    """
    RECEPTIONIST = "receptionist"
    DOCTOR = "doctor"
    CLINICAL_ASSISTANT = "clinicalAssistant"
    PATIENT = "patient"


class AssessmentKind(str, Enum):
    """Fixed set of assessment slots on every patient record"""
    PRS = "prs"
    FNON = "fnon"
    EEG = "eeg"
    BRAIN_MAPPING = "brainMapping"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    PAY_LATER = "payLater"


class PlanStatus(str, Enum):
    NOT_CREATED = "not_created"
    ACTIVE = "active"
    COMPLETED = "completed"


class Device(str, Enum):
    TPS = "TPS"
    TDCS = "tDCS"
    TACS = "tACS"


# Label mapping for UI display
ROLE_LABELS = {
    Role.RECEPTIONIST: "Receptionist",
    Role.DOCTOR: "Doctor",
    Role.CLINICAL_ASSISTANT: "Clinical Assistant",
    Role.PATIENT: "Patient",
}

# Role order for dropdowns
ROLE_LIST = [
    Role.RECEPTIONIST,
    Role.DOCTOR,
    Role.CLINICAL_ASSISTANT,
    Role.PATIENT,
]

ASSESSMENT_LABELS = {
    AssessmentKind.PRS: "PRS",
    AssessmentKind.FNON: "FNON",
    AssessmentKind.EEG: "EEG",
    AssessmentKind.BRAIN_MAPPING: "Brain Mapping",
}

# Assessments the doctor screen requires before a treatment plan can be authored.
# EEG is not part of the gate.
PLAN_PREREQUISITE_ASSESSMENTS = (
    AssessmentKind.FNON,
    AssessmentKind.PRS,
    AssessmentKind.BRAIN_MAPPING,
)

# Single source of truth for valid assessment slot names
VALID_ASSESSMENT_KINDS = {kind.value for kind in AssessmentKind}


def parse_assessment_kind(value) -> AssessmentKind | None:
    """
    Resolve a slot name to an AssessmentKind.

    Args:
        value: AssessmentKind or raw slot name (e.g. 'brainMapping')

    Returns:
        AssessmentKind, or None if the name is not a recognized slot
    """
    if isinstance(value, AssessmentKind):
        return value
    if value in VALID_ASSESSMENT_KINDS:
        return AssessmentKind(value)
    return None
